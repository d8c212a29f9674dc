from typing import Optional

from fastapi import Header, HTTPException, Request

from backend import RedisBackend
from constants import REQUIRE_ADMIN_TOKEN
from logging_config import get_logger
from mailer import EmailJSMailer
from realtime.relay import EventRelay
from security import InvalidTokenError, decode_access_token

logger = get_logger(__name__)


def get_backend(request: Request) -> RedisBackend:
    return request.app.state.backend


def get_mailer(request: Request) -> EmailJSMailer:
    return request.app.state.mailer


def get_relay(request: Request) -> EventRelay:
    return request.app.state.relay


def require_admin(request: Request, authorization: Optional[str] = Header(None)) -> Optional[dict]:
    """Bearer-token guard for the admin routes; a no-op when the app runs with require_admin_token off."""
    if not getattr(request.app.state, "require_admin_token", REQUIRE_ADMIN_TOKEN):
        return None

    if not authorization or not authorization.lower().startswith("bearer "):
        logger.warning(f"Admin request without bearer token from {request.client.host if request.client else 'unknown'}")
        raise HTTPException(status_code=401, detail="Missing token")

    token = authorization.split(" ", 1)[1].strip()
    try:
        claims = decode_access_token(token)
    except InvalidTokenError as e:
        logger.warning(f"Admin request rejected: {e}")
        raise HTTPException(status_code=401, detail=str(e))

    if claims.get("role") != "admin":
        logger.warning(f"Admin request rejected: user {claims.get('id')} is not an admin")
        raise HTTPException(status_code=403, detail="Not an admin")
    return claims
