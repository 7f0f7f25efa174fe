"""Tests for the relational data provider."""

import uuid

import pytest

from erp.providers.data import DataConflictError, DataError, UnknownRelation


@pytest.mark.asyncio
async def test_insert_select_update_delete(data):
    tenant = await data.insert("tenants", {"name": "Acme", "subdomain": "acme"})
    assert tenant.status == "active"

    [updated] = await data.update("tenants", {"name": "Acme Inc"}, id=tenant.id)
    assert updated.name == "Acme Inc"
    assert updated.updated_at >= updated.created_at

    assert (await data.select_one("tenants", subdomain="acme")).name == "Acme Inc"
    assert await data.delete("tenants", id=tenant.id) == 1
    assert await data.select_one("tenants", id=tenant.id) is None


@pytest.mark.asyncio
async def test_unique_violation_is_a_conflict(data):
    await data.insert("tenants", {"name": "Acme", "subdomain": "acme"})
    with pytest.raises(DataConflictError):
        await data.insert("tenants", {"name": "Other", "subdomain": "acme"})

    # The session is still usable after the rollback
    assert len(await data.select("tenants")) == 1


@pytest.mark.asyncio
async def test_not_null_violation_is_not_a_conflict(data):
    with pytest.raises(DataError) as exc_info:
        await data.insert("tenants", {"name": None, "subdomain": "acme"})
    assert not isinstance(exc_info.value, DataConflictError)

    assert await data.select("tenants") == []


@pytest.mark.asyncio
async def test_upsert(data):
    user_id = uuid.uuid4()
    created = await data.upsert("users", {"id": user_id, "email": "a@x.com"})
    assert created.tenant_id is None

    tenant = await data.insert("tenants", {"name": "Acme", "subdomain": "acme"})
    linked = await data.upsert("users", {"id": user_id, "tenant_id": tenant.id, "role": "admin"})
    assert linked.tenant_id == tenant.id
    assert linked.email == "a@x.com"
    assert len(await data.select("users")) == 1


@pytest.mark.asyncio
async def test_null_filter_matches_incomplete_users(data):
    await data.upsert("users", {"id": uuid.uuid4(), "email": "a@x.com"})
    assert len(await data.select("users", tenant_id=None)) == 1


@pytest.mark.asyncio
async def test_order_by(data):
    for sub in ("bravo", "alpha", "charlie"):
        await data.insert("tenants", {"name": sub, "subdomain": sub})

    ascending = await data.select("tenants", order_by="subdomain")
    descending = await data.select("tenants", order_by="-subdomain")
    assert [t.subdomain for t in ascending] == ["alpha", "bravo", "charlie"]
    assert [t.subdomain for t in descending] == ["charlie", "bravo", "alpha"]


@pytest.mark.asyncio
async def test_rejects_bad_requests(data):
    with pytest.raises(UnknownRelation):
        await data.select("invoices")
    with pytest.raises(DataError):
        await data.select("tenants", colour="red")
    with pytest.raises(DataError):
        await data.delete("tenants")
    with pytest.raises(DataError):
        await data.upsert("users", {"email": "a@x.com"})
