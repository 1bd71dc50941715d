"""
FastAPI dependencies (DB session, cache, authentication)
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from app.application.auth import ADMIN_ROLE, USER_ROLE, AuthService, get_auth_service
from app.infrastructure.cache.base import Cache
from app.infrastructure.cache.provider import get_cache as _get_cache
from app.infrastructure.db.session import get_db as _get_db
from app.infrastructure.sso.client import SSOError, TokenInfo

logger = logging.getLogger(__name__)

TOKEN_COOKIE = "token"

# Re-export для удобства (и для dependency_overrides в тестах)
get_db = _get_db


def get_cache() -> Cache:
    return _get_cache()


def get_auth() -> AuthService:
    return get_auth_service()


def extract_token(request: Request) -> Optional[str]:
    """Token из cookie "token" или заголовка Authorization: Bearer <token>"""
    token = request.cookies.get(TOKEN_COOKIE)
    if token:
        return token
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None
    return None


def get_current_user(request: Request, auth: AuthService = Depends(get_auth)) -> TokenInfo:
    """
    Проверить токен через SSO

    Raises:
        HTTPException(401): токена нет, он невалиден или SSO недоступен
    """
    token = extract_token(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthorized")

    try:
        info = auth.check_token(token)
    except SSOError as e:
        logger.error("Token check failed: %s", e)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="token validation failed")

    if not info.is_valid:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid token")
    return info


def _require_role(role: str):
    def dependency(user: TokenInfo = Depends(get_current_user)) -> TokenInfo:
        if not user.has_role(role):
            logger.warning("%s role required, user_id=%s", role, user.user_id)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"{role} role required")
        return user
    return dependency


require_user = _require_role(USER_ROLE)
require_admin = _require_role(ADMIN_ROLE)
