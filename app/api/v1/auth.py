"""
Authentication routes (login, register, me) - делегируются SSO
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel

from app.api.deps import TOKEN_COOKIE, extract_token, get_auth
from app.application.auth import AuthService
from app.infrastructure.sso.client import SSOAuthError, SSOError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

TOKEN_MAX_AGE = 360000


# === Request/Response models ===

class CredentialsRequest(BaseModel):
    email: str
    password: str


class MeResponse(BaseModel):
    user_id: int
    email: str
    roles: list[str]


# === Endpoints ===

@router.post("/login")
def login(req: CredentialsRequest, response: Response, auth: AuthService = Depends(get_auth)):
    """Вход: токен SSO кладётся в httponly cookie "token" """
    try:
        token = auth.login(req.email, req.password)
    except SSOAuthError:
        raise HTTPException(status_code=401, detail="invalid email or password")
    except SSOError as e:
        logger.error("Login failed for %s: %s", req.email, e)
        raise HTTPException(status_code=502, detail="identity service unavailable")

    response.set_cookie(TOKEN_COOKIE, token, max_age=TOKEN_MAX_AGE, path="/", httponly=True)
    return {"status": "OK", "message": "login successful"}


@router.post("/register")
def register(req: CredentialsRequest, auth: AuthService = Depends(get_auth)):
    try:
        user_id = auth.register(req.email, req.password)
    except SSOAuthError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SSOError as e:
        logger.error("Register failed for %s: %s", req.email, e)
        raise HTTPException(status_code=502, detail="identity service unavailable")
    return {"status": "OK", "user_id": user_id}


@router.get("/me", response_model=MeResponse)
def me(request: Request, auth: AuthService = Depends(get_auth)):
    token = extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="unauthorized")
    try:
        info = auth.check_token(token)
    except SSOError:
        raise HTTPException(status_code=401, detail="invalid token")
    if not info.is_valid:
        raise HTTPException(status_code=401, detail="invalid token")
    return MeResponse(user_id=info.user_id, email=info.email, roles=info.roles)
