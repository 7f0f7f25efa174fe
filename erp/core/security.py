"""Security utilities: password hashing, session tokens, recovery JWTs."""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from erp.core.config import get_settings

settings = get_settings()

RECOVERY_PURPOSE = "recovery"

# ── Password hashing (Argon2) ────────────────────────────────

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


# ── Session token hashing (SHA-256, deterministic for lookups) ─

def hash_session_token(raw_token: str) -> str:
    """One-way SHA-256 hash for session token storage.

    Sessions are looked up by hash on every request, so the hash must be
    deterministic. The raw token carries 256 bits of entropy.
    """
    return hashlib.sha256(raw_token.encode()).hexdigest()


def generate_session_token() -> str:
    """Generate a cryptographically secure 256-bit session token."""
    return secrets.token_urlsafe(32)


# ── Recovery JWT ──────────────────────────────────────────────

def create_recovery_token(subject: str, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.recovery_expire_minutes)
    )
    payload = {
        "sub": subject,
        "purpose": RECOVERY_PURPOSE,
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_recovery_token(token: str) -> dict:
    """Decode and verify a recovery JWT. Raises jose.JWTError on failure."""
    payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    if payload.get("purpose") != RECOVERY_PURPOSE:
        raise JWTError("Token is not a recovery token")
    return payload
