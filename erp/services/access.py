"""Tenant-scoped access gate.

Per request:

    Unauthenticated -> Authenticated (no tenant) -> Authenticated (tenant, role)

Nothing is cached between calls; every check re-reads the user and tenant
rows, so a revoked role or suspended tenant takes effect on the next check.
"""

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass

from erp.core.errors import Forbidden, IncompleteProvisioning, NoTenant, Unauthenticated
from erp.models.identity import Identity
from erp.models.tenant import Tenant, TenantStatus
from erp.models.user import User, UserStatus
from erp.providers.data import DataProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TenantContext:
    """Resolved tenant + membership. Both None until provisioning completes."""

    tenant: Tenant | None
    user: User | None

    @property
    def is_resolved(self) -> bool:
        return self.tenant is not None and self.user is not None


UNRESOLVED = TenantContext(tenant=None, user=None)


class AccessGate:
    def __init__(self, data: DataProvider) -> None:
        self.data = data

    async def resolve_current_tenant(self, identity: Identity | None) -> TenantContext:
        if identity is None:
            return UNRESOLVED

        user = await self.data.select_one("users", id=identity.id)
        if user is None or not user.is_provisioned:
            return UNRESOLVED

        tenant = await self.data.select_one("tenants", id=user.tenant_id)
        if tenant is None:
            return UNRESOLVED
        return TenantContext(tenant=tenant, user=user)

    async def require_user(self, identity: Identity | None) -> User:
        if identity is None:
            raise Unauthenticated()

        user = await self.data.select_one("users", id=identity.id)
        if user is None:
            raise IncompleteProvisioning()
        if user.status != UserStatus.ACTIVE:
            raise Forbidden("Account is disabled")
        return user

    async def require_tenant(self, identity: Identity | None) -> TenantContext:
        if identity is None:
            raise Unauthenticated()

        context = await self.resolve_current_tenant(identity)
        if not context.is_resolved:
            raise NoTenant()
        if context.user.status != UserStatus.ACTIVE:  # type: ignore[union-attr]
            raise Forbidden("Account is disabled")
        if context.tenant.status != TenantStatus.ACTIVE:  # type: ignore[union-attr]
            raise Forbidden("Tenant is suspended")
        return context

    async def require_role(self, identity: Identity | None, allowed_roles: Iterable[str]) -> User:
        user = await self.require_user(identity)
        allowed = {str(role) for role in allowed_roles}
        if str(user.role) not in allowed:
            logger.warning(
                "User %s with role %s denied; requires one of %s",
                user.id,
                user.role,
                sorted(allowed),
            )
            raise Forbidden()
        return user

    async def require_tenant_access(
        self, identity: Identity | None, target_tenant_id: uuid.UUID
    ) -> TenantContext:
        """Row-level boundary: the target row must belong to the caller's tenant."""
        context = await self.require_tenant(identity)
        if context.tenant.id != target_tenant_id:  # type: ignore[union-attr]
            logger.warning(
                "User %s of tenant %s denied access to tenant %s",
                context.user.id,  # type: ignore[union-attr]
                context.tenant.id,  # type: ignore[union-attr]
                target_tenant_id,
            )
            raise Forbidden()
        return context
