"""Alertmanager API v2 client and message formatting for its objects."""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import httpx

from .communication.outbound import escape_markdown
from .errors import BackendUnavailable

logger = logging.getLogger("alertbot.alertmanager")

# Alertmanager may send nanoseconds; fromisoformat accepts at most microseconds
_FRACTION_RE = re.compile(r"\.(\d+)")


@dataclass
class Status:
    version: str
    uptime: Optional[datetime]


def parse_time(value: Optional[str]) -> Optional[datetime]:
    """Parse an Alertmanager RFC 3339 timestamp. Returns None if unparseable."""
    if not value:
        return None
    try:
        value = _FRACTION_RE.sub(
            lambda m: "." + m.group(1)[:6].ljust(6, "0"), value.replace("Z", "+00:00")
        )
        dt = datetime.fromisoformat(value)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_duration(seconds: float) -> str:
    """Human readable duration: '2 days 3 hours 4 minutes 5 seconds'."""
    seconds = int(max(0, seconds))
    parts = []
    for unit, size in (("week", 604800), ("day", 86400), ("hour", 3600), ("minute", 60), ("second", 1)):
        count, seconds = divmod(seconds, size)
        if count:
            parts.append(f"{count} {unit}{'s' if count != 1 else ''}")
    return " ".join(parts) or "0 seconds"


def since(start: Optional[datetime], now: Optional[datetime] = None) -> str:
    if start is None:
        return "unknown"
    now = now or datetime.now(timezone.utc)
    return format_duration((now - start).total_seconds())


class AlertmanagerClient:
    """Read-only client for the Alertmanager HTTP API."""

    def __init__(self, base_url: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def _get(self, path: str):
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(url)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as e:
            logger.warning(f"Alertmanager returned HTTP {e.response.status_code} for {path}")
            raise BackendUnavailable(f"Alertmanager returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.warning(f"Alertmanager request {path} failed: {e}")
            raise BackendUnavailable(f"Alertmanager request failed: {type(e).__name__}") from e
        except ValueError as e:
            raise BackendUnavailable(f"Alertmanager sent invalid JSON for {path}") from e

    async def get_status(self) -> Status:
        data = await self._get("/api/v2/status")
        version = (data.get("versionInfo") or {}).get("version", "unknown")
        return Status(version=version, uptime=parse_time(data.get("uptime")))

    async def list_alerts(self) -> list[dict]:
        return await self._get("/api/v2/alerts") or []

    async def list_silences(self) -> list[dict]:
        """Active silences only; expired ones are omitted."""
        silences = await self._get("/api/v2/silences") or []
        return [s for s in silences if (s.get("status") or {}).get("state", "active") != "expired"]


def _matcher(m: dict) -> str:
    if m.get("isRegex"):
        op = "=~" if m.get("isEqual", True) else "!~"
    else:
        op = "=" if m.get("isEqual", True) else "!="
    return escape_markdown(f'{m.get("name")}{op}"{m.get("value")}"')


def silence_message(silence: dict) -> str:
    """Format a silence for a Markdown reply. Backend values are escaped."""
    matchers = " ".join(_matcher(m) for m in silence.get("matchers") or [])
    ends = parse_time(silence.get("endsAt"))
    lines = [
        f"🔕 `{silence.get('id', '?')}`",
        f"*Matchers:* {matchers}",
        f"*Starts:* {escape_markdown(silence.get('startsAt', '?'))}",
        f"*Ends:* {escape_markdown(silence.get('endsAt', '?'))}",
    ]
    if ends is not None:
        remaining = (ends - datetime.now(timezone.utc)).total_seconds()
        if remaining > 0:
            lines.append(f"*Remaining:* {format_duration(remaining)}")
    lines.append(f"*Created by:* {escape_markdown(silence.get('createdBy', '?'))}")
    if silence.get("comment"):
        lines.append(f"*Comment:* {escape_markdown(silence['comment'])}")
    return "\n".join(lines)


def alerts_event(alerts: list[dict]) -> dict:
    """Wrap API v2 alerts into webhook-shaped data for the renderer."""
    converted = []
    for a in alerts:
        state = (a.get("status") or {}).get("state", "active")
        converted.append({
            "status": "firing" if state == "active" else state,
            "labels": a.get("labels") or {},
            "annotations": a.get("annotations") or {},
            "startsAt": a.get("startsAt"),
            "endsAt": a.get("endsAt"),
            "generatorURL": a.get("generatorURL", ""),
            "fingerprint": a.get("fingerprint", ""),
        })
    return {
        "receiver": "alertbot",
        "status": "firing",
        "alerts": converted,
        "groupLabels": {},
        "commonLabels": {},
        "commonAnnotations": {},
        "externalURL": "",
    }
