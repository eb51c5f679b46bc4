from datetime import datetime, timedelta
from typing import Any, Dict
from functools import lru_cache
from jose import JWTError, jwt
from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool
import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@lru_cache(maxsize=None)
def _context_for_cost(cost: int) -> CryptContext:
    return pwd_context.copy(bcrypt__rounds=cost)


def hash_password(plain_password: str, cost: int) -> str:
    """Generate a salted bcrypt hash with the given work factor"""
    return _context_for_cost(cost).hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as e:
        # Unrecognised or corrupt hash
        logger.warning(f"Password hash could not be checked: {e}")
        return False


# bcrypt holds the CPU for the whole work factor, so request handlers go
# through these and keep the event loop free
async def hash_password_in_thread(plain_password: str, cost: int) -> str:
    return await run_in_threadpool(hash_password, plain_password, cost)


async def verify_password_in_thread(plain_password: str, hashed_password: str) -> bool:
    return await run_in_threadpool(verify_password, plain_password, hashed_password)


def hash_code(code: str, secret: str) -> str:
    """Keyed HMAC-SHA256 of a one-time code"""
    return hmac.new(secret.encode("utf-8"), str(code).encode("utf-8"), hashlib.sha256).hexdigest()


def code_matches(submitted_hash: str, stored_hash: str) -> bool:
    return hmac.compare_digest(submitted_hash, stored_hash)


def create_access_token(data: Dict[str, Any], secret: str, algorithm: str, issued_at: datetime, expires_delta: timedelta) -> str:
    """Create JWT access token"""
    to_encode = data.copy()
    to_encode.update({"iat": issued_at, "exp": issued_at + expires_delta})
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def verify_token(token: str, secret: str, algorithm: str) -> Dict[str, Any]:
    """Verify and decode JWT token; raises JWTError when invalid or expired"""
    payload = jwt.decode(token, secret, algorithms=[algorithm])
    if not payload.get("sub"):
        raise JWTError("Token has no subject")
    return payload

