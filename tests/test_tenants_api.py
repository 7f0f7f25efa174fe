"""End-to-end tenant provisioning over HTTP."""

import pytest
from httpx import AsyncClient


async def _provision(client: AsyncClient, subdomain: str, email: str | None = None):
    return await client.post("/v1/tenants", json={
        "email": email or f"admin@{subdomain}.com",
        "password": "secret1",
        "tenant_name": f"{subdomain.title()} Manufacturing",
        "subdomain": subdomain,
        "first_name": "Ada",
    })


@pytest.mark.asyncio
async def test_provision_tenant(client: AsyncClient):
    resp = await client.post("/v1/tenants", json={
        "email": "a@x.com",
        "password": "secret1",
        "tenant_name": "Acme",
        "subdomain": "acme",
    })
    assert resp.status_code == 201, resp.text
    data = resp.json()
    assert data["identity"]["email"] == "a@x.com"
    assert data["tenant"]["subdomain"] == "acme"
    assert data["tenant"]["status"] == "active"
    assert data["user"]["tenant_id"] == data["tenant"]["id"]
    assert data["user"]["role"] == "admin"


@pytest.mark.asyncio
async def test_duplicate_subdomain_conflict(client: AsyncClient):
    resp = await _provision(client, "dup")
    assert resp.status_code == 201

    resp = await _provision(client, "DUP", email="second@dup.com")
    assert resp.status_code == 409
    body = resp.json()
    assert body["error"] == "TenantCreationFailed"
    assert body["kind"] == "duplicate_subdomain"
    assert "already taken" in body["detail"]

    # Compensated: the second identity cannot sign in
    resp = await client.post("/v1/auth/login", json={
        "email": "second@dup.com",
        "password": "secret1",
    })
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_duplicate_email_conflict(client: AsyncClient):
    assert (await _provision(client, "first", email="same@x.com")).status_code == 201
    resp = await _provision(client, "second", email="same@x.com")
    assert resp.status_code == 409
    assert resp.json()["error"] == "AuthCreationFailed"


@pytest.mark.asyncio
async def test_short_password_rejected(client: AsyncClient):
    resp = await client.post("/v1/tenants", json={
        "email": "a@x.com",
        "password": "12345",
        "tenant_name": "Acme",
        "subdomain": "acme",
    })
    assert resp.status_code == 400
    assert "at least 6 characters" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_invalid_subdomain_rejected(client: AsyncClient):
    resp = await _provision(client, "not a subdomain!")
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_current_tenant(client: AsyncClient):
    await _provision(client, "mine")
    resp = await client.post("/v1/auth/login", json={
        "email": "admin@mine.com",
        "password": "secret1",
    })
    headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}

    resp = await client.get("/v1/tenants/me", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["subdomain"] == "mine"


@pytest.mark.asyncio
async def test_current_tenant_requires_auth(client: AsyncClient):
    resp = await client.get("/v1/tenants/me")
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_lookup_by_subdomain(client: AsyncClient):
    await _provision(client, "lookup")

    resp = await client.get("/v1/tenants/by-subdomain/LOOKUP")
    assert resp.status_code == 200
    assert resp.json()["name"] == "Lookup Manufacturing"

    assert (await client.get("/v1/tenants/by-subdomain/missing")).status_code == 404
    assert (await client.get("/v1/tenants/by-subdomain/-bad-")).status_code == 404
