"""
SSO client - внешний сервис идентификации (HTTP/JSON шлюз)

Эндпоинты шлюза:
    POST /login        {"email", "password", "app_id"}  → {"token"}
    POST /register     {"email", "password"}            → {"user_id"}
    POST /check_token  {"app_id", "token"}              → {"user_id", "email", "roles", "is_valid"}
"""
import logging
from dataclasses import dataclass, field
from typing import List

import requests

logger = logging.getLogger(__name__)


class SSOError(Exception):
    """Transport failure or unexpected response from the SSO service."""


class SSOAuthError(SSOError):
    """Credentials rejected by the SSO service (4xx)."""


@dataclass
class TokenInfo:
    user_id: int
    email: str
    roles: List[str] = field(default_factory=list)
    is_valid: bool = False

    def has_role(self, role: str) -> bool:
        return role in self.roles


class SSOClient:
    def __init__(self, base_url: str, timeout: float = 5.0, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def login(self, app_id: int, email: str, password: str) -> str:
        data = self._post("/login", {"email": email, "password": password, "app_id": app_id})
        token = data.get("token")
        if not token:
            raise SSOError("sso login: empty token in response")
        return token

    def register(self, email: str, password: str) -> int:
        data = self._post("/register", {"email": email, "password": password})
        return int(data["user_id"])

    def check_token(self, app_id: int, token: str) -> TokenInfo:
        data = self._post("/check_token", {"app_id": app_id, "token": token})
        return TokenInfo(
            user_id=int(data.get("user_id") or 0),
            email=data.get("email") or "",
            roles=list(data.get("roles") or []),
            is_valid=bool(data.get("is_valid")),
        )

    def _post(self, path: str, payload: dict) -> dict:
        try:
            resp = self.session.post(f"{self.base_url}{path}", json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("SSO request %s failed: %s", path, e)
            raise SSOError(f"sso {path}: {e}") from e

        if 400 <= resp.status_code < 500:
            raise SSOAuthError(f"sso {path}: {resp.status_code} {resp.text[:200]}")
        if resp.status_code != 200:
            logger.error("SSO request %s returned %d", path, resp.status_code)
            raise SSOError(f"sso {path}: unexpected status {resp.status_code}")

        try:
            return resp.json()
        except ValueError as e:
            raise SSOError(f"sso {path}: invalid JSON") from e
