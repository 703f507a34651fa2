"""Helpers shared by the long-running consumer loops."""

import asyncio
from typing import Any, Optional


async def next_item(queue: asyncio.Queue, stop: asyncio.Event) -> Optional[Any]:
    """Wait for the next queue item or the stop signal, whichever comes first.

    Returns None once stop is set. An item that arrives together with the
    stop signal is abandoned.
    """
    if stop.is_set():
        return None
    getter = asyncio.ensure_future(queue.get())
    stopper = asyncio.ensure_future(stop.wait())
    try:
        done, _ = await asyncio.wait({getter, stopper}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (getter, stopper):
            if not task.done():
                task.cancel()
    if stopper in done:
        return None
    return getter.result()
