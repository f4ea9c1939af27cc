# This project was developed with assistance from AI tools.
"""Mixpanel event forwarding for the intake widget.

Properties are scrubbed of PII/PHI keys at every nesting level before they
leave the process. Delivery is fire-and-forget: the request returns
immediately and a tracked background task talks to Mixpanel, logging (not
raising) any failure.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

import httpx
from db.enums import AnalyticsEventType

from ..core.config import Settings

logger = logging.getLogger(__name__)

FORBIDDEN_PROPERTIES = frozenset(
    {
        "email",
        "phone",
        "hospitalName",
        "hospitalId",
        "balance",
        "balanceAmount",
        "insuranceStatus",
        "billType",
        "billToken",
        "caseId",
        "name",
        "firstName",
        "lastName",
        "address",
        "zipCode",
        "city",
        "state",
    }
)

# Checked in order; iOS user agents also contain "Mac OS X".
_OS_MARKERS: list[tuple[tuple[str, ...], str]] = [
    (("iphone", "ipad", "ipod"), "iOS"),
    (("android",), "Android"),
    (("windows",), "Windows"),
    (("mac os x", "macintosh"), "macOS"),
    (("linux",), "Linux"),
]


class AnalyticsRequestError(ValueError):
    """Malformed tracking request."""


@dataclass(frozen=True)
class TrackRequest:
    type: AnalyticsEventType
    event: str | None = None
    distinct_id: str | None = None
    properties: dict[str, Any] = field(default_factory=dict)


def _sanitize_value(value: Any) -> Any:
    if isinstance(value, dict):
        return sanitize_properties(value)
    if isinstance(value, list):
        return [_sanitize_value(item) for item in value]
    return value


def sanitize_properties(properties: dict[str, Any]) -> dict[str, Any]:
    """Drop forbidden keys from ``properties`` and any nested objects or lists."""
    sanitized: dict[str, Any] = {}
    for key, value in properties.items():
        if key in FORBIDDEN_PROPERTIES:
            logger.debug("Dropping forbidden analytics property: %s", key)
            continue
        sanitized[key] = _sanitize_value(value)
    return sanitized


def extract_os(user_agent: str | None) -> str | None:
    if not user_agent:
        return None
    ua = user_agent.lower()
    for markers, name in _OS_MARKERS:
        if any(marker in ua for marker in markers):
            return name
    return None


def parse_track_request(body: Any) -> TrackRequest:
    """Validate a tracking request body.

    Raises:
        AnalyticsRequestError: unknown type, or missing event / distinctId.
    """
    if not isinstance(body, dict):
        raise AnalyticsRequestError("Request body must be a JSON object")

    try:
        event_type = AnalyticsEventType(body.get("type", AnalyticsEventType.TRACK.value))
    except ValueError as exc:
        raise AnalyticsRequestError('Invalid type. Must be "track", "identify", or "set"') from exc

    event = body.get("event")
    distinct_id = body.get("distinctId") or body.get("distinct_id")
    properties = body.get("properties") or {}
    if not isinstance(properties, dict):
        raise AnalyticsRequestError("properties must be an object")

    if event_type is AnalyticsEventType.TRACK and not event:
        raise AnalyticsRequestError("Event name required for track type")
    if event_type is not AnalyticsEventType.TRACK and not distinct_id:
        raise AnalyticsRequestError("distinctId required for identify and set types")

    return TrackRequest(
        type=event_type,
        event=event,
        distinct_id=distinct_id,
        properties=sanitize_properties(properties),
    )


class AnalyticsService:
    def __init__(self, http_client: httpx.AsyncClient | None, *, token: str | None, api_url: str):
        self._http = http_client
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._tasks: set[asyncio.Task] = set()

    @property
    def configured(self) -> bool:
        return bool(self._token and self._http is not None)

    def build_request(self, request: TrackRequest, user_agent: str | None = None) -> tuple[str, list]:
        """Return (endpoint path, JSON body) for the Mixpanel ingestion API."""
        if request.type is AnalyticsEventType.TRACK:
            server_props: dict[str, Any] = {}
            os_name = extract_os(user_agent)
            if os_name:
                server_props["$os"] = os_name
            # client-sent properties win over server-detected ones
            properties = {
                "token": self._token,
                "distinct_id": request.distinct_id or str(uuid.uuid4()),
                "time": int(time.time()),
                **server_props,
                **request.properties,
            }
            return "/track", [{"event": request.event, "properties": properties}]

        engage: dict[str, Any] = {"$token": self._token, "$distinct_id": request.distinct_id}
        if request.type is AnalyticsEventType.SET:
            engage["$set"] = request.properties
        else:
            engage["$identify"] = request.distinct_id
        return "/engage", [engage]

    async def _deliver(self, path: str, body: list) -> None:
        try:
            response = await self._http.post(f"{self._api_url}{path}", json=body)
        except httpx.HTTPError as exc:
            logger.error("Mixpanel %s request failed: %s", path, exc)
            return
        if response.is_error:
            logger.error(
                "Mixpanel %s API error %s: %s", path, response.status_code, response.text[:200]
            )

    def enqueue(self, request: TrackRequest, user_agent: str | None = None) -> asyncio.Task | None:
        """Schedule delivery in the background. No-op when not configured."""
        if not self.configured:
            logger.debug("Mixpanel not configured; dropping %s", request.type.value)
            return None
        path, body = self.build_request(request, user_agent)
        task = asyncio.create_task(self._deliver(path, body))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for in-flight deliveries (shutdown)."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_service: AnalyticsService | None = None
_http_client: httpx.AsyncClient | None = None


def init_analytics_service(cfg: Settings) -> AnalyticsService:
    """Initialise the singleton (called once from app lifespan)."""
    global _service, _http_client  # noqa: PLW0603
    if cfg.MIXPANEL_TOKEN:
        _http_client = httpx.AsyncClient(timeout=cfg.MIXPANEL_TIMEOUT_SECONDS)
        logger.info("Mixpanel analytics: ACTIVE")
    else:
        logger.warning("Mixpanel analytics: INACTIVE (MIXPANEL_TOKEN not set)")
    _service = AnalyticsService(_http_client, token=cfg.MIXPANEL_TOKEN, api_url=cfg.MIXPANEL_API_URL)
    return _service


def get_analytics_service() -> AnalyticsService:
    if _service is None:
        raise RuntimeError("AnalyticsService not initialised -- call init_analytics_service() first")
    return _service


async def close_analytics_service() -> None:
    global _http_client  # noqa: PLW0603
    if _service is not None:
        await _service.drain()
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None
