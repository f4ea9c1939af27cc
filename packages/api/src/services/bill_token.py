# This project was developed with assistance from AI tools.
"""Bill tokens bind an upload session to its caseId.

HS256 JWTs carrying ``{caseId, iat}``. They prove the caller obtained the
upload URL for that case; they do not expire.
"""

import time

import jwt

from ..core.config import settings

_ALGORITHM = "HS256"


class BillTokenError(Exception):
    """Token is malformed, signed with another secret, or has no caseId."""


def sign_bill_token(case_id: str, secret: str | None = None) -> str:
    payload = {"caseId": case_id, "iat": int(time.time())}
    return jwt.encode(payload, secret or settings.BILL_TOKEN_SECRET, algorithm=_ALGORITHM)


def verify_bill_token(token: str, secret: str | None = None) -> dict:
    """Decode and verify a bill token, returning its claims.

    Raises:
        BillTokenError: signature or format is invalid.
    """
    try:
        claims = jwt.decode(
            token,
            secret or settings.BILL_TOKEN_SECRET,
            algorithms=[_ALGORITHM],
            options={"require": ["caseId", "iat"], "verify_iat": False},
        )
    except jwt.PyJWTError as exc:
        raise BillTokenError(f"Invalid bill token: {exc}") from exc
    if not isinstance(claims.get("caseId"), str) or not claims["caseId"]:
        raise BillTokenError("Invalid bill token: caseId claim missing")
    return claims
