from fastapi import Depends, Request
from core.config import Settings, settings as app_settings
from core.errors import Internal, Unauthorized
from db.credential_store import MongoCredentialStore
from db.mongodb import get_mongo_db
from schemas.account_schema import Identity
from services.auth_service import AuthService
from services.session_service import SessionService, strip_bearer
from utils.email import Mailer
from utils.timing import Clock, utc_now
import logging

logger = logging.getLogger(__name__)


def get_settings() -> Settings:
    return app_settings


def get_clock() -> Clock:
    return utc_now


def get_credential_store(clock: Clock = Depends(get_clock)) -> MongoCredentialStore:
    db = get_mongo_db()
    if db is None:
        logger.error("Credential store requested but Mongo is not configured")
        raise Internal()
    return MongoCredentialStore(db.users, clock)


def get_mailer(settings: Settings = Depends(get_settings)) -> Mailer:
    return Mailer(settings)


def get_session_service(settings: Settings = Depends(get_settings), clock: Clock = Depends(get_clock)) -> SessionService:
    return SessionService(settings, clock)


def get_auth_service(
    store: MongoCredentialStore = Depends(get_credential_store),
    mailer: Mailer = Depends(get_mailer),
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> AuthService:
    return AuthService(store, mailer, settings, clock)


def extract_token(request: Request, cookie_name: str) -> str:
    raw = request.headers.get("authorization") or request.cookies.get(cookie_name)
    if not raw or not raw.strip():
        return ""
    return strip_bearer(raw)


async def get_current_identity(
    request: Request,
    settings: Settings = Depends(get_settings),
    sessions: SessionService = Depends(get_session_service),
) -> Identity:
    """Request gate: bearer header or session cookie, decoded for this request only."""
    token = extract_token(request, settings.SESSION_COOKIE_NAME)
    if not token:
        raise Unauthorized()
    return sessions.decode(token)
