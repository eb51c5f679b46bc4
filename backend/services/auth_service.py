from typing import Any, Dict, Tuple
import logging

from core.config import Settings
from core.errors import AlreadyExists, AlreadyVerified, InvalidCredentials, NotFound, NotVerified
from core.security import hash_password_in_thread, verify_password_in_thread
from schemas.account_schema import CodeKind, Identity, PublicAccount
from schemas.auth_schema import (
    ChangePasswordRequest,
    EmailRequest,
    ForgotPasswordVerifyRequest,
    SigninRequest,
    SignupRequest,
    UpdateProfileRequest,
    VerifyCodeRequest,
)
from services.code_service import CodeService
from services.session_service import SessionService
from utils.email import Mailer
from utils.timing import Clock, timeit

logger = logging.getLogger(__name__)


def session_payload(account: PublicAccount) -> Dict[str, Any]:
    """Identity block returned alongside a fresh session token"""
    return {
        "id": account.id,
        "handle": account.handle,
        "email": account.email,
        "verified": account.verified,
        "created_at": account.created_at,
    }


class AuthService:
    """Credential lifecycle: signup, signin, verification, password change and reset, profile."""

    def __init__(self, store, mailer: Mailer, settings: Settings, clock: Clock):
        self.store = store
        self.settings = settings
        self.codes = CodeService(store, mailer, settings, clock)
        self.sessions = SessionService(settings, clock)

    async def _hash(self, password: str) -> str:
        return await hash_password_in_thread(password, self.settings.PASSWORD_HASH_ROUNDS)

    @timeit("signup")
    async def signup(self, request: SignupRequest) -> PublicAccount:
        if await self.store.find_by_email(request.email):
            raise AlreadyExists()
        password_hash = await self._hash(request.password)
        account = await self.store.create(request.handle, request.email, password_hash)
        logger.info(f"Created account {account.id}")
        return account

    @timeit("signin")
    async def signin(self, request: SigninRequest) -> Tuple[PublicAccount, str]:
        account = await self.store.find_by_email_with_secrets(request.email)
        if account is None:
            raise NotFound()
        if not account.verified:
            raise NotVerified()
        if not await verify_password_in_thread(request.password, account.password_hash):
            raise InvalidCredentials()
        public = account.to_public()
        return public, self.sessions.issue_token(public)

    async def send_verification_code(self, request: EmailRequest) -> None:
        account = await self.store.find_by_email_with_secrets(request.email)
        if account is None:
            raise NotFound()
        await self.codes.issue(CodeKind.VERIFICATION, account)

    async def verify_verification_code(self, request: VerifyCodeRequest) -> Tuple[PublicAccount, str]:
        account = await self.store.find_by_email_with_secrets(request.email)
        if account is None:
            raise NotFound()
        if account.verified:
            raise AlreadyVerified()
        account = await self.codes.verify(CodeKind.VERIFICATION, account, str(request.provided_code))
        public = account.to_public()
        return public, self.sessions.issue_token(public)

    @timeit("change_password")
    async def change_password(self, identity: Identity, request: ChangePasswordRequest) -> None:
        # The verified flag is taken from the session claims
        if not identity.verified:
            raise NotVerified()
        account = await self.store.find_by_id_with_secrets(identity.id)
        if account is None:
            raise NotFound()
        if not await verify_password_in_thread(request.old_password, account.password_hash):
            raise InvalidCredentials()
        # Only the password is written; challenges issued meanwhile stay intact
        if not await self.store.set_password_hash(account.id, await self._hash(request.new_password)):
            raise NotFound()
        logger.info(f"Password changed for account {account.id}")

    async def send_forgot_password_code(self, request: EmailRequest) -> None:
        account = await self.store.find_by_email_with_secrets(request.email)
        if account is None:
            raise NotFound()
        await self.codes.issue(CodeKind.RESET, account)

    @timeit("verify_forgot_password_code")
    async def verify_forgot_password_code(self, request: ForgotPasswordVerifyRequest) -> None:
        account = await self.store.find_by_email_with_secrets(request.email)
        if account is None:
            raise NotFound()
        await self.codes.verify(CodeKind.RESET, account, str(request.provided_code), new_password=request.new_password)

    async def get_me(self, identity: Identity) -> PublicAccount:
        account = await self.store.find_by_id(identity.id)
        if account is None:
            raise NotFound("User not found")
        return account

    async def update_profile(self, identity: Identity, request: UpdateProfileRequest) -> PublicAccount:
        account = await self.store.update_handle(identity.id, request.handle)
        if account is None:
            raise NotFound("User not found")
        logger.info(f"Updated profile for account {account.id}")
        return account
