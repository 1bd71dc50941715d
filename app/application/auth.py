"""
Auth service - обёртка над SSO-клиентом с app_id из настроек
"""
import logging
from functools import lru_cache

from app.config import get_settings
from app.infrastructure.sso.client import SSOClient, TokenInfo

logger = logging.getLogger(__name__)

USER_ROLE = "user"
ADMIN_ROLE = "admin"


class AuthService:
    def __init__(self, client: SSOClient, app_id: int):
        self.client = client
        self.app_id = app_id

    def login(self, email: str, password: str) -> str:
        logger.info("Logging in %s", email)
        token = self.client.login(self.app_id, email, password)
        logger.info("Login successful for %s", email)
        return token

    def register(self, email: str, password: str) -> int:
        logger.info("Registering new user %s", email)
        return self.client.register(email, password)

    def check_token(self, token: str) -> TokenInfo:
        return self.client.check_token(self.app_id, token)


@lru_cache
def get_auth_service() -> AuthService:
    settings = get_settings()
    return AuthService(SSOClient(settings.SSO_URL, settings.SSO_TIMEOUT), settings.SSO_APP_ID)
