"""Tests for the Alertmanager client and formatting helpers."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from alertbot.alertmanager import (
    AlertmanagerClient,
    alerts_event,
    format_duration,
    parse_time,
    silence_message,
    since,
)
from alertbot.errors import BackendUnavailable

from conftest import assert_markdown_parses


# ── Time helpers ─────────────────────────────────────────────

class TestParseTime:
    def test_zulu(self):
        assert parse_time("2024-01-02T03:04:05Z") == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_nanoseconds_are_trimmed(self):
        dt = parse_time("2024-01-02T03:04:05.123456789Z")
        assert dt == datetime(2024, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc)

    def test_offset(self):
        dt = parse_time("2024-01-02T05:04:05.5+02:00")
        assert dt == datetime(2024, 1, 2, 3, 4, 5, 500000, tzinfo=timezone.utc)

    def test_garbage(self):
        assert parse_time("yesterday") is None
        assert parse_time(None) is None
        assert parse_time("") is None


class TestFormatDuration:
    def test_zero(self):
        assert format_duration(0) == "0 seconds"

    def test_units(self):
        assert format_duration(86400 + 3600 + 60 + 1) == "1 day 1 hour 1 minute 1 second"
        assert format_duration(2 * 604800 + 2 * 3600) == "2 weeks 2 hours"

    def test_negative_clamped(self):
        assert format_duration(-5) == "0 seconds"

    def test_since(self):
        now = datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
        assert since(now - timedelta(minutes=3), now=now) == "3 minutes"
        assert since(None) == "unknown"


# ── Formatting ───────────────────────────────────────────────

class TestSilenceMessage:
    def test_fields(self):
        ends = (datetime.now(timezone.utc) + timedelta(hours=1, minutes=1)).isoformat()
        msg = silence_message({
            "id": "abc",
            "matchers": [
                {"name": "env", "value": "dev", "isRegex": False, "isEqual": True},
                {"name": "job", "value": "node.*", "isRegex": True, "isEqual": False},
            ],
            "startsAt": "2024-01-01T00:00:00Z",
            "endsAt": ends,
            "createdBy": "alice",
            "comment": "maintenance",
        })
        assert "`abc`" in msg
        assert 'env="dev" job!~"node.\\*"' in msg
        assert "*Remaining:* 1 hour" in msg
        assert "*Created by:* alice" in msg
        assert "*Comment:* maintenance" in msg

    def test_backend_values_are_escaped(self):
        msg = silence_message({
            "id": "abc",
            "matchers": [{"name": "job_name", "value": "node_exporter", "isRegex": False}],
            "createdBy": "ops_team",
            "comment": "see [runbook] *now*",
        })
        assert "job\\_name=\"node\\_exporter\"" in msg
        assert "*Created by:* ops\\_team" in msg
        assert_markdown_parses(msg)

    def test_expired_has_no_remaining(self):
        msg = silence_message({"id": "x", "endsAt": "2020-01-01T00:00:00Z"})
        assert "Remaining" not in msg


class TestAlertsEvent:
    def test_converts_api_alerts(self):
        event = alerts_event([
            {"labels": {"alertname": "A"}, "status": {"state": "active"}, "startsAt": "t0"},
            {"labels": {"alertname": "B"}, "status": {"state": "suppressed"}},
        ])
        assert event["status"] == "firing"
        assert [a["status"] for a in event["alerts"]] == ["firing", "suppressed"]
        assert event["alerts"][0]["labels"] == {"alertname": "A"}
        assert event["alerts"][0]["startsAt"] == "t0"
        assert event["alerts"][1]["annotations"] == {}


# ── HTTP client ──────────────────────────────────────────────

@pytest.fixture
def routes(monkeypatch):
    """Route table for a mocked Alertmanager: path -> response or exception."""
    table = {}

    def handler(request: httpx.Request) -> httpx.Response:
        result = table[request.url.path]
        if isinstance(result, Exception):
            raise result
        return result

    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        httpx, "AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )
    return table


class TestAlertmanagerClient:

    @pytest.mark.asyncio
    async def test_status(self, routes):
        routes["/api/v2/status"] = httpx.Response(200, json={
            "versionInfo": {"version": "0.27.0"},
            "uptime": "2024-01-02T03:04:05.000Z",
        })
        status = await AlertmanagerClient("http://am:9093/").get_status()
        assert status.version == "0.27.0"
        assert status.uptime == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_list_alerts(self, routes):
        routes["/api/v2/alerts"] = httpx.Response(200, json=[{"labels": {"alertname": "A"}}])
        alerts = await AlertmanagerClient("http://am:9093").list_alerts()
        assert alerts == [{"labels": {"alertname": "A"}}]

    @pytest.mark.asyncio
    async def test_expired_silences_omitted(self, routes):
        routes["/api/v2/silences"] = httpx.Response(200, json=[
            {"id": "1", "status": {"state": "active"}},
            {"id": "2", "status": {"state": "expired"}},
            {"id": "3", "status": {"state": "pending"}},
        ])
        silences = await AlertmanagerClient("http://am:9093").list_silences()
        assert [s["id"] for s in silences] == ["1", "3"]

    @pytest.mark.asyncio
    async def test_http_error(self, routes):
        routes["/api/v2/alerts"] = httpx.Response(500, text="oops")
        with pytest.raises(BackendUnavailable, match="HTTP 500"):
            await AlertmanagerClient("http://am:9093").list_alerts()

    @pytest.mark.asyncio
    async def test_connect_error(self, routes):
        routes["/api/v2/alerts"] = httpx.ConnectError("connection refused")
        with pytest.raises(BackendUnavailable, match="ConnectError"):
            await AlertmanagerClient("http://am:9093").list_alerts()

    @pytest.mark.asyncio
    async def test_invalid_json(self, routes):
        routes["/api/v2/status"] = httpx.Response(200, text="<html>")
        with pytest.raises(BackendUnavailable, match="invalid JSON"):
            await AlertmanagerClient("http://am:9093").get_status()
