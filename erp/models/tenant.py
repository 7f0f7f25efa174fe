"""Tenant model — top-level isolation boundary."""

import re
import uuid
from datetime import datetime
from enum import StrEnum

from sqlmodel import Field, SQLModel

from erp.models.base import TimestampMixin, new_uuid

SUBDOMAIN_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")


class TenantStatus(StrEnum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


def canonical_subdomain(value: str) -> str:
    """Trim and lowercase a subdomain, then check it is a DNS label.

    Raises ValueError for anything that is not URL-safe once normalized, so
    case variants of one subdomain collide on the unique constraint.
    """
    candidate = value.strip().lower()
    if not SUBDOMAIN_PATTERN.match(candidate):
        raise ValueError(
            "Subdomain must be 1-63 characters of a-z, 0-9 or '-', "
            "and cannot start or end with '-'"
        )
    return candidate


class Tenant(TimestampMixin, SQLModel, table=True):
    __tablename__ = "tenants"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    name: str = Field(max_length=255, nullable=False)
    subdomain: str = Field(max_length=63, unique=True, nullable=False, index=True)
    status: TenantStatus = Field(default=TenantStatus.ACTIVE)

    # Billing / plan metadata
    subscription_plan: str = Field(default="basic", max_length=50)
    subscription_end_date: datetime | None = Field(default=None)


# ── Pydantic schemas ─────────────────────────────────────────

class TenantRead(SQLModel):
    id: uuid.UUID
    name: str
    subdomain: str
    status: TenantStatus
    subscription_plan: str
    subscription_end_date: datetime | None
    created_at: datetime
