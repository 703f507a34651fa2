"""Webhook receiver for Alertmanager notifications.

Alertmanager POSTs its webhook payload here; each payload is queued for the
notification relay as a plain dict.
"""

import asyncio
import logging
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

logger = logging.getLogger("alertbot.webhook")


class WebhookAlert(BaseModel):
    status: str
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    startsAt: Optional[str] = None
    endsAt: Optional[str] = None
    generatorURL: str = ""
    fingerprint: str = ""


class WebhookMessage(BaseModel):
    """Alertmanager webhook payload (version 4)."""

    version: str = "4"
    groupKey: str = ""
    truncatedAlerts: int = 0
    status: str
    receiver: str = ""
    groupLabels: dict[str, str] = Field(default_factory=dict)
    commonLabels: dict[str, str] = Field(default_factory=dict)
    commonAnnotations: dict[str, str] = Field(default_factory=dict)
    externalURL: str = ""
    alerts: list[WebhookAlert] = Field(default_factory=list)


def create_app(events: asyncio.Queue) -> FastAPI:
    """Build the webhook app feeding events into the relay queue."""
    app = FastAPI(title="Alertbot webhook receiver")

    async def receive(message: WebhookMessage):
        try:
            events.put_nowait(message.model_dump())
        except asyncio.QueueFull:
            logger.warning(f"Webhook queue full, rejecting event for {message.receiver}")
            raise HTTPException(status_code=503, detail="webhook queue is full")
        logger.debug(f"Queued {message.status} webhook with {len(message.alerts)} alert(s)")
        return {"status": "queued"}

    app.add_api_route("/", receive, methods=["POST"])
    app.add_api_route("/webhooks/alertmanager", receive, methods=["POST"])

    @app.get("/health")
    async def health():
        return {"status": "ok", "queued": events.qsize()}

    return app
