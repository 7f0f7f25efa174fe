"""User model — tenant membership for an identity."""

import uuid
from datetime import datetime
from enum import StrEnum

from sqlmodel import Field, SQLModel

from erp.models.base import TimestampMixin


class UserRole(StrEnum):
    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"


class UserStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class User(TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"

    # Same id as the identity in the auth provider, so no default
    id: uuid.UUID = Field(primary_key=True)

    # Null until provisioning links the user to a tenant
    tenant_id: uuid.UUID | None = Field(
        default=None, foreign_key="tenants.id", nullable=True, index=True
    )
    email: str = Field(max_length=320, nullable=False, index=True)
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    role: UserRole = Field(default=UserRole.MEMBER)
    status: UserStatus = Field(default=UserStatus.ACTIVE)
    last_login: datetime | None = Field(default=None)

    @property
    def is_provisioned(self) -> bool:
        return self.tenant_id is not None


# ── Pydantic schemas ─────────────────────────────────────────

class UserCreate(SQLModel):
    email: str = Field(max_length=320)
    password: str = Field(max_length=128)
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    role: UserRole = UserRole.MEMBER


class UserUpdate(SQLModel):
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    role: UserRole | None = None
    status: UserStatus | None = None


class UserRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID | None
    email: str
    first_name: str | None
    last_name: str | None
    role: UserRole
    status: UserStatus
    last_login: datetime | None
