# This project was developed with assistance from AI tools.
"""Tests for Mixpanel forwarding: scrubbing, validation, delivery."""

import json

import httpx
import pytest
from db.enums import AnalyticsEventType

from src.services.analytics import (
    AnalyticsRequestError,
    AnalyticsService,
    extract_os,
    get_analytics_service,
    parse_track_request,
    sanitize_properties,
)

_IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
_ANDROID_UA = "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 Chrome/120 Mobile"


def _make_service(handler=None) -> tuple[AnalyticsService, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request) if handler else httpx.Response(200, text="1")

    http = httpx.AsyncClient(transport=httpx.MockTransport(_record))
    return AnalyticsService(http, token="mp-token", api_url="https://mixpanel.test"), seen


# ---------------------------------------------------------------------------
# Scrubbing
# ---------------------------------------------------------------------------


class TestSanitizeProperties:
    def test_top_level_pii_removed(self):
        props = {"email": "a@b.co", "caseId": "c1", "step": "contact", "count": 2}
        assert sanitize_properties(props) == {"step": "contact", "count": 2}

    def test_nested_pii_removed(self):
        props = {"form": {"hospitalName": "Mercy", "inner": {"zipCode": "02115", "ok": True}}}
        assert sanitize_properties(props) == {"form": {"inner": {"ok": True}}}

    def test_lists_passed_through(self):
        assert sanitize_properties({"steps": ["a", "b"]}) == {"steps": ["a", "b"]}

    def test_objects_inside_lists_sanitized(self):
        props = {"items": [{"email": "a@b.co", "ok": 1}, [{"phone": "555", "n": 2}], "x"]}
        assert sanitize_properties(props) == {"items": [{"ok": 1}, [{"n": 2}], "x"]}


class TestExtractOs:
    @pytest.mark.parametrize(
        "ua,expected",
        [
            (_IPHONE_UA, "iOS"),
            (_ANDROID_UA, "Android"),
            ("Mozilla/5.0 (Windows NT 10.0; Win64; x64)", "Windows"),
            ("Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0)", "macOS"),
            ("Mozilla/5.0 (X11; Linux x86_64)", "Linux"),
            ("curl/8.0", None),
            (None, None),
        ],
    )
    def test_detection(self, ua, expected):
        assert extract_os(ua) == expected


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestParseTrackRequest:
    def test_defaults_to_track(self):
        req = parse_track_request({"event": "Step Viewed", "properties": {"email": "x"}})
        assert req.type is AnalyticsEventType.TRACK
        assert req.properties == {}

    def test_invalid_type(self):
        with pytest.raises(AnalyticsRequestError, match="Invalid type"):
            parse_track_request({"type": "alias", "event": "x"})

    def test_track_requires_event(self):
        with pytest.raises(AnalyticsRequestError, match="Event name required"):
            parse_track_request({"type": "track"})

    @pytest.mark.parametrize("event_type", ["identify", "set"])
    def test_profile_calls_require_distinct_id(self, event_type):
        with pytest.raises(AnalyticsRequestError, match="distinctId required"):
            parse_track_request({"type": event_type})

    def test_properties_must_be_object(self):
        with pytest.raises(AnalyticsRequestError):
            parse_track_request({"event": "x", "properties": ["a"]})


# ---------------------------------------------------------------------------
# Mixpanel request building and delivery
# ---------------------------------------------------------------------------


class TestBuildRequest:
    def test_track(self):
        service, _ = _make_service()
        req = parse_track_request({"event": "Viewed", "distinctId": "d1", "properties": {"step": 2}})
        path, body = service.build_request(req, user_agent=_IPHONE_UA)
        assert path == "/track"
        event = body[0]
        assert event["event"] == "Viewed"
        props = event["properties"]
        assert props["token"] == "mp-token"
        assert props["distinct_id"] == "d1"
        assert props["$os"] == "iOS"
        assert props["step"] == 2
        assert isinstance(props["time"], int)

    def test_client_os_overrides_server(self):
        service, _ = _make_service()
        req = parse_track_request({"event": "Viewed", "properties": {"$os": "Custom"}})
        _, body = service.build_request(req, user_agent=_IPHONE_UA)
        assert body[0]["properties"]["$os"] == "Custom"

    def test_set(self):
        service, _ = _make_service()
        req = parse_track_request({"type": "set", "distinctId": "d1", "properties": {"plan": "a", "email": "x"}})
        path, body = service.build_request(req)
        assert path == "/engage"
        assert body == [{"$token": "mp-token", "$distinct_id": "d1", "$set": {"plan": "a"}}]

    def test_identify(self):
        service, _ = _make_service()
        req = parse_track_request({"type": "identify", "distinctId": "d1"})
        _, body = service.build_request(req)
        assert body == [{"$token": "mp-token", "$distinct_id": "d1", "$identify": "d1"}]


class TestEnqueue:
    @pytest.mark.asyncio
    async def test_delivered_in_background(self):
        service, seen = _make_service()
        task = service.enqueue(parse_track_request({"event": "Viewed"}))
        await task
        assert len(seen) == 1
        assert str(seen[0].url) == "https://mixpanel.test/track"
        assert json.loads(seen[0].content)[0]["event"] == "Viewed"

    @pytest.mark.asyncio
    async def test_delivery_error_logged_not_raised(self, caplog):
        service, _ = _make_service(lambda r: httpx.Response(500, text="down"))
        task = service.enqueue(parse_track_request({"event": "Viewed"}))
        await task
        assert "Mixpanel /track API error 500" in caplog.text

    @pytest.mark.asyncio
    async def test_unconfigured_is_noop(self):
        service = AnalyticsService(None, token=None, api_url="https://mixpanel.test")
        assert service.enqueue(parse_track_request({"event": "Viewed"})) is None


# ---------------------------------------------------------------------------
# Route
# ---------------------------------------------------------------------------


class TestTrackRoute:
    @pytest.mark.parametrize(
        "path", ["/api/analytics/track", "/api/mixpanel/track", "/api/functions/trackMixpanelEvent"]
    )
    def test_accepts_event(self, client, path):
        response = client.post(path, json={"event": "Step Viewed"})
        assert response.status_code == 200
        assert response.json() == {"success": True}

    def test_invalid_type_400(self, client):
        response = client.post("/api/analytics/track", json={"type": "nope"})
        assert response.status_code == 400
        assert "Invalid type" in response.json()["detail"]

    def test_missing_event_400(self, client):
        assert client.post("/api/analytics/track", json={"type": "track"}).status_code == 400

    def test_configured_service_receives_user_agent(self, app, client):
        captured = {}

        class _Recorder(AnalyticsService):
            def enqueue(self, request, user_agent=None):
                captured["request"] = request
                captured["ua"] = user_agent

        app.dependency_overrides[get_analytics_service] = lambda: _Recorder(
            None, token="t", api_url="https://mixpanel.test"
        )
        client.post(
            "/api/analytics/track",
            json={"event": "Viewed", "properties": {"phone": "555"}},
            headers={"user-agent": _ANDROID_UA},
        )
        assert captured["ua"] == _ANDROID_UA
        assert captured["request"].properties == {}
