"""Auth provider contract and its SQL-backed implementation.

The tenancy core treats identities and sessions as opaque: it creates and
deletes identities and reads the identity behind a session token, nothing
more. ``SqlAuthProvider`` keeps both in the ``auth_identities`` /
``auth_sessions`` tables of the same database; any other implementation of
``AuthProvider`` (a hosted auth service, for instance) can be swapped in.
"""

import logging
import uuid
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Protocol

from email_validator import EmailNotValidError, validate_email
from jose import JWTError
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from erp.core.config import Settings, get_settings
from erp.core.security import (
    create_recovery_token,
    decode_recovery_token,
    generate_session_token,
    hash_password,
    hash_session_token,
    verify_password,
)
from erp.models.base import touch, utcnow
from erp.models.identity import AuthSession, Identity, IdentityRead, SessionGrant

logger = logging.getLogger(__name__)


class AuthErrorCode(StrEnum):
    INVALID_CREDENTIALS = "invalid_credentials"
    EMAIL_TAKEN = "email_taken"
    WEAK_PASSWORD = "weak_password"
    INVALID_EMAIL = "invalid_email"
    INVALID_TOKEN = "invalid_token"
    NOT_FOUND = "not_found"


class AuthError(Exception):
    def __init__(self, message: str, code: AuthErrorCode) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class AuthProvider(Protocol):
    async def create_identity(self, email: str, password: str) -> Identity: ...

    async def delete_identity(self, identity_id: uuid.UUID) -> None: ...

    async def sign_in(self, email: str, password: str) -> SessionGrant: ...

    async def get_session(self, token: str | None) -> AuthSession | None: ...

    async def get_user(self, token: str | None) -> Identity: ...

    async def update_password(self, token: str, new_password: str) -> None: ...

    async def sign_out(self, token: str) -> None: ...

    async def request_password_reset(self, email: str) -> str | None: ...

    async def exchange_recovery_token(self, token: str) -> SessionGrant: ...

    async def list_identities(self, created_before: datetime | None = None) -> list[Identity]: ...


def normalize_email(email: str) -> str:
    """Validate syntax and return the lowercased address."""
    try:
        result = validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError as exc:
        raise AuthError(str(exc), AuthErrorCode.INVALID_EMAIL) from exc
    return result.normalized.lower()


class SqlAuthProvider:
    """Identities and opaque session tokens stored through SQLModel."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        self.session = session
        self.settings = settings or get_settings()

    # ── Identities ────────────────────────────────────────────

    async def create_identity(self, email: str, password: str) -> Identity:
        email = normalize_email(email)
        self._check_password(password)

        identity = Identity(email=email, password_hash=hash_password(password))
        self.session.add(identity)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise AuthError(
                "A user with this email address has already been registered",
                AuthErrorCode.EMAIL_TAKEN,
            ) from exc
        await self.session.refresh(identity)
        logger.info("Created identity %s", identity.id)
        return identity

    async def delete_identity(self, identity_id: uuid.UUID) -> None:
        identity = await self.session.get(Identity, identity_id)
        if identity is None:
            raise AuthError("Identity not found", AuthErrorCode.NOT_FOUND)

        await self.session.execute(
            delete(AuthSession).where(AuthSession.identity_id == identity_id)
        )
        await self.session.delete(identity)
        await self.session.commit()
        logger.info("Deleted identity %s", identity_id)

    async def list_identities(self, created_before: datetime | None = None) -> list[Identity]:
        stmt = select(Identity)
        if created_before is not None:
            stmt = stmt.where(Identity.created_at < created_before)
        result = await self.session.execute(stmt.order_by(Identity.created_at.asc()))  # type: ignore[attr-defined]
        return list(result.scalars().all())

    # ── Sessions ──────────────────────────────────────────────

    async def sign_in(self, email: str, password: str) -> SessionGrant:
        stmt = select(Identity).where(Identity.email == email.strip().lower())
        result = await self.session.execute(stmt)
        identity = result.scalar_one_or_none()

        if identity is None or not verify_password(password, identity.password_hash):
            raise AuthError("Invalid email or password", AuthErrorCode.INVALID_CREDENTIALS)

        return await self._issue_session(identity)

    async def get_session(self, token: str | None) -> AuthSession | None:
        """Return the live session for a bearer token, or None."""
        if not token:
            return None

        stmt = select(AuthSession).where(
            AuthSession.token_hash == hash_session_token(token),
            AuthSession.revoked_at.is_(None),  # type: ignore[union-attr]
        )
        result = await self.session.execute(stmt)
        auth_session = result.scalar_one_or_none()
        if auth_session is None or auth_session.expires_at <= utcnow():
            return None

        auth_session.last_used_at = utcnow()
        self.session.add(auth_session)
        await self.session.commit()
        return auth_session

    async def get_user(self, token: str | None) -> Identity:
        auth_session = await self.get_session(token)
        if auth_session is None:
            raise AuthError("Invalid or expired session", AuthErrorCode.INVALID_TOKEN)

        identity = await self.session.get(Identity, auth_session.identity_id)
        if identity is None:
            raise AuthError("Invalid or expired session", AuthErrorCode.INVALID_TOKEN)
        return identity

    async def sign_out(self, token: str) -> None:
        """Revoke the session behind ``token``. Unknown tokens are ignored."""
        stmt = select(AuthSession).where(AuthSession.token_hash == hash_session_token(token))
        result = await self.session.execute(stmt)
        auth_session = result.scalar_one_or_none()
        if auth_session is None or auth_session.revoked_at is not None:
            return

        auth_session.revoked_at = utcnow()
        self.session.add(auth_session)
        await self.session.commit()

    # ── Passwords ─────────────────────────────────────────────

    async def update_password(self, token: str, new_password: str) -> None:
        identity = await self.get_user(token)
        self._check_password(new_password)

        identity.password_hash = hash_password(new_password)
        touch(identity)
        self.session.add(identity)
        await self.session.commit()
        logger.info("Password updated for identity %s", identity.id)

    async def request_password_reset(self, email: str) -> str | None:
        """Return a recovery token for a known address, None otherwise."""
        stmt = select(Identity).where(Identity.email == email.strip().lower())
        result = await self.session.execute(stmt)
        identity = result.scalar_one_or_none()
        if identity is None:
            return None
        return create_recovery_token(str(identity.id))

    async def exchange_recovery_token(self, token: str) -> SessionGrant:
        try:
            payload = decode_recovery_token(token)
            identity_id = uuid.UUID(payload["sub"])
        except (JWTError, KeyError, ValueError) as exc:
            raise AuthError("Invalid or expired recovery link", AuthErrorCode.INVALID_TOKEN) from exc

        identity = await self.session.get(Identity, identity_id)
        if identity is None:
            raise AuthError("Invalid or expired recovery link", AuthErrorCode.INVALID_TOKEN)
        return await self._issue_session(identity)

    # ── Internal helpers ──────────────────────────────────────

    def _check_password(self, password: str) -> None:
        if len(password) < self.settings.password_min_length:
            raise AuthError(
                f"Password must be at least {self.settings.password_min_length} characters",
                AuthErrorCode.WEAK_PASSWORD,
            )

    async def _issue_session(self, identity: Identity) -> SessionGrant:
        raw_token = generate_session_token()
        auth_session = AuthSession(
            identity_id=identity.id,
            token_hash=hash_session_token(raw_token),
            expires_at=utcnow() + timedelta(minutes=self.settings.session_expire_minutes),
        )
        self.session.add(auth_session)
        await self.session.commit()

        return SessionGrant(
            access_token=raw_token,
            expires_at=auth_session.expires_at,
            identity=IdentityRead.model_validate(identity),
        )
