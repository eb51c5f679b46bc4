from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel


class CodeKind(str, Enum):
    VERIFICATION = "verification"
    RESET = "reset"

    @property
    def hash_field(self) -> str:
        if self is CodeKind.VERIFICATION:
            return "verification_code_hash"
        return "forgot_password_code_hash"

    @property
    def issued_at_field(self) -> str:
        if self is CodeKind.VERIFICATION:
            return "verification_code_issued_at"
        return "forgot_password_code_issued_at"


class PublicAccount(BaseModel):
    """Account as clients may see it: no password or code hashes."""
    id: str
    handle: str
    email: str
    verified: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AccountWithSecrets(PublicAccount):
    password_hash: str
    verification_code_hash: Optional[str] = None
    verification_code_issued_at: Optional[datetime] = None
    forgot_password_code_hash: Optional[str] = None
    forgot_password_code_issued_at: Optional[datetime] = None

    def to_public(self) -> PublicAccount:
        return PublicAccount(**self.model_dump(include=set(PublicAccount.model_fields)))

    def challenge(self, kind: CodeKind) -> tuple[Optional[str], Optional[datetime]]:
        return getattr(self, kind.hash_field), getattr(self, kind.issued_at_field)

    def set_challenge(self, kind: CodeKind, code_hash: Optional[str], issued_at: Optional[datetime]) -> None:
        setattr(self, kind.hash_field, code_hash)
        setattr(self, kind.issued_at_field, issued_at)


class Identity(BaseModel):
    """Claims carried by a session token."""
    id: str
    email: str
    verified: bool = False
