from datetime import timedelta
import logging

from fastapi import Response
from jose import JWTError

from core.config import Settings
from core.errors import InvalidToken
from core.security import create_access_token, verify_token
from schemas.account_schema import Identity, PublicAccount
from utils.timing import Clock

logger = logging.getLogger(__name__)

SESSION_TTL = timedelta(hours=8)
BEARER_PREFIX = "Bearer "


class SessionService:
    """Mints stateless session tokens and moves them in and out of cookies."""

    def __init__(self, settings: Settings, clock: Clock):
        self.settings = settings
        self.clock = clock

    def issue_token(self, account: PublicAccount) -> str:
        claims = {"sub": account.id, "email": account.email, "verified": account.verified}
        return create_access_token(
            claims,
            self.settings.SECRET_KEY,
            self.settings.ALGORITHM,
            issued_at=self.clock(),
            expires_delta=SESSION_TTL,
        )

    def decode(self, token: str) -> Identity:
        try:
            payload = verify_token(token, self.settings.SECRET_KEY, self.settings.ALGORITHM)
        except JWTError as e:
            logger.warning(f"JWT decode failed: {e}")
            raise InvalidToken() from e
        return Identity(
            id=payload["sub"],
            email=payload.get("email", ""),
            verified=bool(payload.get("verified", False)),
        )

    def attach(self, response: Response, token: str) -> None:
        secure = self.settings.is_production
        response.set_cookie(
            key=self.settings.SESSION_COOKIE_NAME,
            value=BEARER_PREFIX + token,
            expires=self.clock() + SESSION_TTL,
            path="/",
            samesite="lax",
            httponly=secure,
            secure=secure,
        )

    def clear(self, response: Response) -> None:
        secure = self.settings.is_production
        response.delete_cookie(
            key=self.settings.SESSION_COOKIE_NAME,
            path="/",
            samesite="lax",
            httponly=secure,
            secure=secure,
        )


def strip_bearer(raw: str) -> str:
    raw = raw.strip()
    return raw.split(" ", 1)[1].strip() if " " in raw else raw
