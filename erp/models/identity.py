"""Identity + session models — storage for the SQL-backed auth provider.

These tables belong to the auth provider, not to the tenancy core. The core
only ever sees them through ``erp.providers.auth``.
"""

import uuid
from datetime import datetime

from sqlmodel import Field, SQLModel

from erp.models.base import TimestampMixin, new_uuid


class Identity(TimestampMixin, SQLModel, table=True):
    __tablename__ = "auth_identities"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    email: str = Field(max_length=320, unique=True, nullable=False, index=True)
    password_hash: str = Field(nullable=False)


class AuthSession(TimestampMixin, SQLModel, table=True):
    __tablename__ = "auth_sessions"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    identity_id: uuid.UUID = Field(
        foreign_key="auth_identities.id", nullable=False, index=True
    )

    # SHA-256 hash of the bearer token; the raw value is handed out once at sign-in
    token_hash: str = Field(nullable=False, unique=True, index=True)

    expires_at: datetime = Field(nullable=False)
    revoked_at: datetime | None = Field(default=None)
    last_used_at: datetime | None = Field(default=None)


# ── Pydantic schemas ─────────────────────────────────────────

class IdentityRead(SQLModel):
    id: uuid.UUID
    email: str
    created_at: datetime


class SessionGrant(SQLModel):
    """Returned exactly once at sign-in — includes the raw token."""
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    identity: IdentityRead
