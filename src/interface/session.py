"""Signed session tokens identifying the calling user."""

import logging

from fastapi import HTTPException, Request, status
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from src.core.config import settings


logger = logging.getLogger(__name__)

SESSION_COOKIE = "session"

serializer = URLSafeTimedSerializer(str(settings.secret_key), salt="colivo-session")


def create_session_token(user_id: str) -> str:
    """Sign a session token for a user."""
    return serializer.dumps({"user_id": user_id})


def _extract_token(request: Request) -> str | None:
    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return request.cookies.get(SESSION_COOKIE)


async def require_user(request: Request) -> str:
    """Resolve the caller's user ID from a Bearer token or session cookie."""
    token = _extract_token(request)
    if not token:
        logger.warning("session_missing", extra={"path": request.url.path})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    try:
        session_data = serializer.loads(token, max_age=settings.session_max_age_seconds)
    except (BadSignature, SignatureExpired) as err:
        logger.warning("session_tampered_or_expired", extra={"path": request.url.path})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized") from err

    user_id = session_data.get("user_id") if isinstance(session_data, dict) else None
    if not user_id:
        logger.warning("session_invalid", extra={"path": request.url.path})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user_id
