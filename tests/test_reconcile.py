"""Tests for orphan detection."""

from datetime import timedelta

import pytest

from erp.services.provisioning import ProvisioningRequest, TenantProvisioner, register_identity
from erp.services.reconcile import find_orphans


@pytest.mark.asyncio
async def test_fully_provisioned_tenant_is_not_orphaned(auth, data):
    await TenantProvisioner(auth, data).provision(ProvisioningRequest(
        email="a@x.com", password="secret1", tenant_name="Acme", subdomain="acme",
    ))
    report = await find_orphans(auth, data, grace_period=timedelta(0))
    assert report.empty


@pytest.mark.asyncio
async def test_orphans_are_reported(auth, data):
    bare = await auth.create_identity("bare@x.com", "secret1")
    incomplete = await register_identity(auth, data, "solo@x.com", "secret1")
    empty_tenant = await data.insert("tenants", {"name": "Ghost", "subdomain": "ghost"})

    report = await find_orphans(auth, data, grace_period=timedelta(0))

    assert sorted(report.identity_ids) == sorted([bare.id, incomplete.id])
    assert report.tenant_ids == [empty_tenant.id]


@pytest.mark.asyncio
async def test_grace_period_hides_recent_runs(auth, data):
    await auth.create_identity("fresh@x.com", "secret1")
    await data.insert("tenants", {"name": "Fresh", "subdomain": "fresh"})

    report = await find_orphans(auth, data, grace_period=timedelta(hours=1))
    assert report.empty
