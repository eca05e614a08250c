"""API key check shared by every /notifications route."""

import hmac
import logging

from fastapi import HTTPException, Header

from goalalerts.config import settings

logger = logging.getLogger(__name__)


def _presented_key(x_api_key: str | None, authorization: str | None) -> str | None:
    if x_api_key is not None:
        return x_api_key
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip()
    return None


async def verify_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    authorization: str | None = Header(default=None),
) -> str:
    """Accept X-API-Key or Authorization: Bearer.

    With API_KEY unset the notification API is open (single-user installs).
    """
    if settings.api_key is None:
        return ""

    key = _presented_key(x_api_key, authorization)
    if key is None or not hmac.compare_digest(key, settings.api_key):
        logger.warning("Rejected notification API request: %s", "bad key" if key else "no key")
        raise HTTPException(status_code=401, detail="Invalid or missing API key")

    return key
