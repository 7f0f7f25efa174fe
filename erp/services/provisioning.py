"""Tenant provisioning — identity, tenant and admin membership as one saga.

The three resources live in independently failing systems (auth provider
vs. relational storage), so there is no shared transaction. Each step
registers its compensation; on failure the completed steps are undone in
reverse order and the caller sees the error of the step that failed.
"""

import asyncio
import logging
import uuid
from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator

from erp.core.config import Settings, get_settings
from erp.core.errors import (
    AuthCreationFailed,
    ProvisioningError,
    TenantCreationFailed,
    TenantFailureKind,
    UserLinkFailed,
)
from erp.models.identity import Identity, IdentityRead
from erp.models.tenant import TenantRead, TenantStatus, canonical_subdomain
from erp.models.user import UserRead, UserRole, UserStatus
from erp.providers.auth import AuthError, AuthErrorCode, AuthProvider
from erp.providers.data import DataConflictError, DataError, DataProvider
from erp.services.saga import Saga

logger = logging.getLogger(__name__)


# ── Request / result schemas ──────────────────────────────────

class ProvisioningRequest(BaseModel):
    """Everything needed to create a tenant and its first admin."""
    email: EmailStr
    password: str = Field(max_length=128)
    tenant_name: str = Field(max_length=255)
    subdomain: str = Field(max_length=100)
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)

    @field_validator("tenant_name")
    @classmethod
    def _tenant_name_present(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Tenant name is required")
        return value

    @field_validator("subdomain")
    @classmethod
    def _canonical_subdomain(cls, value: str) -> str:
        return canonical_subdomain(value)


class ProvisioningResult(BaseModel):
    identity: IdentityRead
    tenant: TenantRead
    user: UserRead


# ── Sagas ─────────────────────────────────────────────────────

class TenantProvisioner:
    """Runs the provisioning saga against injected providers."""

    def __init__(
        self,
        auth: AuthProvider,
        data: DataProvider,
        settings: Settings | None = None,
    ) -> None:
        self.auth = auth
        self.data = data
        self.settings = settings or get_settings()

    async def provision(self, request: ProvisioningRequest) -> ProvisioningResult:
        """Create identity -> tenant -> admin user, or undo what was created.

        Raises AuthCreationFailed, TenantCreationFailed or UserLinkFailed.
        """
        saga = Saga(f"provision-tenant:{request.subdomain}")
        try:
            result = await self._provision(saga, request)
        except ProvisioningError as exc:
            exc.compensation_failures = await saga.compensate()
            logger.warning(
                "Provisioning of '%s' failed: %s (%d compensation failures)",
                request.subdomain,
                exc.reason,
                len(exc.compensation_failures),
            )
            raise
        except (Exception, asyncio.CancelledError):
            await saga.compensate()
            raise

        logger.info(
            "Provisioned tenant %s (%s) with admin %s",
            result.tenant.id,
            result.tenant.subdomain,
            result.identity.id,
        )
        return result

    async def _provision(self, saga: Saga, request: ProvisioningRequest) -> ProvisioningResult:
        # 1. Identity
        identity = await _create_identity(self.auth, saga, request.email, request.password)

        # 2. Tenant
        try:
            tenant = await self.data.insert("tenants", {
                "name": request.tenant_name,
                "subdomain": request.subdomain,
                "status": TenantStatus.ACTIVE,
                "subscription_plan": self.settings.default_subscription_plan,
            })
        except DataConflictError as exc:
            raise TenantCreationFailed(
                f"Subdomain '{request.subdomain}' is already taken",
                TenantFailureKind.DUPLICATE_SUBDOMAIN,
            ) from exc
        except DataError as exc:
            raise TenantCreationFailed(exc.message) from exc
        tenant_id = tenant.id
        saga.on_rollback("delete tenant", lambda: self.data.delete("tenants", id=tenant_id))

        # 3. Link the identity's user row to the tenant as its first admin
        user = await _link_user(self.data, {
            "id": identity.id,
            "tenant_id": tenant_id,
            "email": identity.email,
            "first_name": request.first_name,
            "last_name": request.last_name,
            "role": UserRole.ADMIN,
            "status": UserStatus.ACTIVE,
        })

        return ProvisioningResult(
            identity=IdentityRead.model_validate(identity),
            tenant=TenantRead.model_validate(tenant),
            user=UserRead.model_validate(user),
        )


async def register_identity(
    auth: AuthProvider,
    data: DataProvider,
    email: str,
    password: str,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
) -> UserRead:
    """Sign up without a tenant: the user row stays incomplete (no tenant_id)."""
    saga = Saga("register-identity")
    try:
        identity = await _create_identity(auth, saga, email, password)
        user = await _link_user(data, {
            "id": identity.id,
            "tenant_id": None,
            "email": identity.email,
            "first_name": first_name,
            "last_name": last_name,
            "role": UserRole.MEMBER,
        })
    except ProvisioningError as exc:
        exc.compensation_failures = await saga.compensate()
        raise
    except (Exception, asyncio.CancelledError):
        await saga.compensate()
        raise
    return UserRead.model_validate(user)


async def add_member(
    auth: AuthProvider,
    data: DataProvider,
    tenant_id: uuid.UUID,
    email: str,
    password: str,
    *,
    role: UserRole = UserRole.MEMBER,
    first_name: str | None = None,
    last_name: str | None = None,
) -> UserRead:
    """Create an identity and attach it to an existing tenant."""
    saga = Saga(f"add-member:{tenant_id}")
    try:
        identity = await _create_identity(auth, saga, email, password)
        user = await _link_user(data, {
            "id": identity.id,
            "tenant_id": tenant_id,
            "email": identity.email,
            "first_name": first_name,
            "last_name": last_name,
            "role": role,
            "status": UserStatus.ACTIVE,
        })
    except ProvisioningError as exc:
        exc.compensation_failures = await saga.compensate()
        raise
    except (Exception, asyncio.CancelledError):
        await saga.compensate()
        raise
    logger.info("Added %s %s to tenant %s", role, identity.id, tenant_id)
    return UserRead.model_validate(user)


# ── Shared steps ──────────────────────────────────────────────

async def _create_identity(
    auth: AuthProvider, saga: Saga, email: str, password: str
) -> Identity:
    try:
        identity = await auth.create_identity(email, password)
    except AuthError as exc:
        raise AuthCreationFailed(
            exc.message, email_taken=exc.code is AuthErrorCode.EMAIL_TAKEN
        ) from exc
    # A failed write rolls the shared session back and expires loaded rows,
    # so compensations hold plain ids rather than ORM instances
    identity_id = identity.id
    saga.on_rollback("delete identity", lambda: auth.delete_identity(identity_id))
    return identity


async def _link_user(data: DataProvider, values: dict[str, Any]) -> Any:
    try:
        return await data.upsert("users", values)
    except DataError as exc:
        raise UserLinkFailed(exc.message) from exc
