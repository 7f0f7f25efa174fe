"""Orphan detection for provisioning runs whose compensation was lost.

A lost compensation leaves an identity without a tenant membership, or a
tenant nobody belongs to. Both are visible in storage; this module only
reports them, acting on the report is left to an operator.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import timedelta

from erp.core.config import get_settings
from erp.models.base import utcnow
from erp.providers.auth import AuthProvider
from erp.providers.data import DataProvider

logger = logging.getLogger(__name__)


@dataclass
class OrphanReport:
    identity_ids: list[uuid.UUID] = field(default_factory=list)
    tenant_ids: list[uuid.UUID] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.identity_ids and not self.tenant_ids


async def find_orphans(
    auth: AuthProvider,
    data: DataProvider,
    grace_period: timedelta | None = None,
) -> OrphanReport:
    """List identities and tenants older than ``grace_period`` that lack a link.

    An identity is orphaned when it has no user row or its user row has no
    tenant. A tenant is orphaned when no user row points at it.
    """
    if grace_period is None:
        grace_period = timedelta(minutes=get_settings().orphan_grace_period_minutes)
    cutoff = utcnow() - grace_period

    users = await data.select("users")
    linked_identities = {u.id for u in users if u.tenant_id is not None}
    populated_tenants = {u.tenant_id for u in users if u.tenant_id is not None}

    report = OrphanReport()
    for identity in await auth.list_identities(created_before=cutoff):
        if identity.id not in linked_identities:
            report.identity_ids.append(identity.id)

    for tenant in await data.select("tenants", order_by="created_at"):
        if tenant.created_at < cutoff and tenant.id not in populated_tenants:
            report.tenant_ids.append(tenant.id)

    if not report.empty:
        logger.warning(
            "Found %d orphaned identities and %d orphaned tenants older than %s",
            len(report.identity_ids),
            len(report.tenant_ids),
            cutoff,
        )
    return report
