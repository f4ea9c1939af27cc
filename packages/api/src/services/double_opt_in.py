# This project was developed with assistance from AI tools.
"""Brevo double opt-in confirmation emails.

Never raises for delivery problems: callers get a ``DoubleOptInResult``
whose status is ``sent``, ``skipped`` (not configured) or ``failed``.
"""

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from db.enums import DoubleOptInStatus

from ..core.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DoubleOptInResult:
    status: DoubleOptInStatus
    error: str | None = None
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.status is DoubleOptInStatus.SENT


class DoubleOptInService:
    def __init__(
        self,
        http_client: httpx.AsyncClient | None,
        *,
        api_key: str | None,
        api_url: str,
        template_id: int | None,
        redirect_url: str | None,
        include_list_ids: list[int],
        exclude_list_ids: list[int],
    ):
        self._http = http_client
        self._api_key = api_key
        self._api_url = api_url.rstrip("/")
        self._template_id = template_id
        self._redirect_url = redirect_url
        self._include_list_ids = include_list_ids
        self._exclude_list_ids = exclude_list_ids

    @property
    def configured(self) -> bool:
        return bool(
            self._http is not None
            and self._api_key
            and self._redirect_url
            and self._template_id is not None
            and self._include_list_ids
        )

    def build_payload(self, email: str, case_id: str | None = None) -> dict[str, Any]:
        attributes: dict[str, Any] = {"CONSENT_STATUS": "pending"}
        if case_id:
            attributes["CASE_ID"] = case_id
        return {
            "attributes": attributes,
            "includeListIds": self._include_list_ids,
            "excludeListIds": self._exclude_list_ids,
            "email": email,
            "redirectionUrl": self._redirect_url,
            "templateId": self._template_id,
        }

    async def send(self, email: str, case_id: str | None = None) -> DoubleOptInResult:
        if not self.configured:
            logger.warning("Brevo DOI not configured; skipping confirmation for case %s", case_id)
            return DoubleOptInResult(
                status=DoubleOptInStatus.SKIPPED,
                error="Brevo DOI is not fully configured on the server.",
            )
        try:
            response = await self._http.post(
                f"{self._api_url}/contacts/doubleOptinConfirmation",
                headers={"api-key": self._api_key, "accept": "application/json"},
                json=self.build_payload(email, case_id),
            )
        except httpx.HTTPError as exc:
            logger.error("Brevo DOI request failed: %s", exc)
            return DoubleOptInResult(status=DoubleOptInStatus.FAILED, error=str(exc) or "Unknown Brevo error")

        if response.is_error:
            logger.error("Brevo DOI API error %s: %s", response.status_code, response.text[:500])
            return DoubleOptInResult(
                status=DoubleOptInStatus.FAILED,
                error=f"Brevo DOI failed with status {response.status_code}",
            )

        try:
            data = response.json() if response.content else None
        except ValueError:
            data = None
        logger.info("Brevo DOI sent (case_id=%s)", case_id)
        return DoubleOptInResult(status=DoubleOptInStatus.SENT, data=data)


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_service: DoubleOptInService | None = None
_http_client: httpx.AsyncClient | None = None


def init_double_opt_in_service(cfg: Settings) -> DoubleOptInService:
    """Initialise the singleton (called once from app lifespan)."""
    global _service, _http_client  # noqa: PLW0603
    if cfg.BREVO_API_KEY:
        _http_client = httpx.AsyncClient(timeout=cfg.BREVO_TIMEOUT_SECONDS)
    _service = DoubleOptInService(
        _http_client,
        api_key=cfg.BREVO_API_KEY,
        api_url=cfg.BREVO_API_URL,
        template_id=cfg.BREVO_DOI_TEMPLATE_ID,
        redirect_url=cfg.BREVO_DOI_REDIRECT_URL,
        include_list_ids=cfg.BREVO_INCLUDE_LIST_IDS,
        exclude_list_ids=cfg.BREVO_EXCLUDE_LIST_IDS,
    )
    if _service.configured:
        logger.info("Brevo double opt-in: ACTIVE")
    else:
        logger.warning("Brevo double opt-in: INACTIVE (BREVO_* settings incomplete)")
    return _service


def get_double_opt_in_service() -> DoubleOptInService:
    if _service is None:
        raise RuntimeError(
            "DoubleOptInService not initialised -- call init_double_opt_in_service() first"
        )
    return _service


async def close_double_opt_in_service() -> None:
    global _http_client  # noqa: PLW0603
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None
