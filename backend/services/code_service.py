"""One-time code challenges for email verification and password reset.

A challenge is the HMAC of a random code plus the moment it was issued. It is
written only after the mail server accepts the message, lives for
``CODE_TTL``, and is cleared the first time it is answered correctly.
"""
from datetime import timedelta
from typing import Optional
import logging
import secrets

from core.config import Settings
from core.errors import AlreadyVerified, CodeExpired, DispatchFailed, InvalidCode, NoChallengeOutstanding, NotFound
from core.security import code_matches, hash_code, hash_password_in_thread
from schemas.account_schema import AccountWithSecrets, CodeKind
from utils.email import Mailer, send_code_email
from utils.timing import Clock

logger = logging.getLogger(__name__)

CODE_TTL = timedelta(minutes=5)
CODE_SPACE = 1_000_000


def generate_code() -> str:
    """Random integer in [0, 999999] as a decimal string (no zero padding)."""
    return str(secrets.randbelow(CODE_SPACE))


class CodeService:
    def __init__(self, store, mailer: Mailer, settings: Settings, clock: Clock):
        self.store = store
        self.mailer = mailer
        self.settings = settings
        self.clock = clock

    def _hash(self, code: str) -> str:
        return hash_code(code, self.settings.HMAC_VERIFICATION_CODE_SECRET)

    async def issue(self, kind: CodeKind, account: AccountWithSecrets) -> None:
        if kind is CodeKind.VERIFICATION and account.verified:
            raise AlreadyVerified()

        code = generate_code()
        accepted = await send_code_email(
            self.mailer, account.email, code, kind, ttl_minutes=int(CODE_TTL.total_seconds() // 60)
        )
        if account.email not in accepted:
            logger.warning(f"{kind.value} code for account {account.id} was not accepted by the mail transport")
            raise DispatchFailed()

        # Replaces any challenge of the same kind still outstanding
        code_hash, issued_at = self._hash(code), self.clock()
        if not await self.store.set_challenge(account.id, kind, code_hash, issued_at):
            raise NotFound()
        account.set_challenge(kind, code_hash, issued_at)
        logger.info(f"Issued {kind.value} code for account {account.id}")

    async def verify(
        self,
        kind: CodeKind,
        account: AccountWithSecrets,
        submitted_code: str,
        new_password: Optional[str] = None,
    ) -> AccountWithSecrets:
        stored_hash, issued_at = account.challenge(kind)
        if not stored_hash or issued_at is None:
            raise NoChallengeOutstanding()

        if self.clock() - issued_at > CODE_TTL:
            raise CodeExpired()

        if not code_matches(self._hash(str(submitted_code)), stored_hash):
            logger.info(f"Rejected {kind.value} code for account {account.id}")
            raise InvalidCode()

        if kind is CodeKind.VERIFICATION:
            changes = {"verified": True}
        else:
            if not new_password:
                raise ValueError("new_password is required to answer a reset challenge")
            changes = {
                "password_hash": await hash_password_in_thread(new_password, self.settings.PASSWORD_HASH_ROUNDS)
            }

        # Only the challenge that was checked above may be consumed; a newer
        # code or a concurrent answer leaves nothing to match
        if not await self.store.consume_challenge(account.id, kind, stored_hash, **changes):
            logger.info(f"{kind.value} challenge for account {account.id} changed before it was consumed")
            raise NoChallengeOutstanding()

        for field, value in changes.items():
            setattr(account, field, value)
        account.set_challenge(kind, None, None)
        logger.info(f"Accepted {kind.value} code for account {account.id}")
        return account
