"""Tenant provisioning (signup with a new tenant) and lookup endpoints."""

from fastapi import APIRouter, HTTPException, status

from erp.api.deps import Auth, CurrentTenant, Data
from erp.models.tenant import TenantRead, TenantStatus, canonical_subdomain
from erp.services.provisioning import ProvisioningRequest, ProvisioningResult, TenantProvisioner

router = APIRouter(prefix="/tenants", tags=["tenants"])


@router.post(
    "",
    response_model=ProvisioningResult,
    status_code=status.HTTP_201_CREATED,
    summary="Provision a new tenant and its admin",
)
async def provision_tenant(
    body: ProvisioningRequest,
    auth: Auth,
    data: Data,
) -> ProvisioningResult:
    """Create an identity, a tenant and the tenant's first admin user.

    This is the only unauthenticated write endpoint besides plain signup.
    On failure nothing created along the way is left behind.
    """
    return await TenantProvisioner(auth, data).provision(body)


@router.get(
    "/me",
    response_model=TenantRead,
    summary="Get current tenant info",
)
async def get_current_tenant(context: CurrentTenant) -> TenantRead:
    return TenantRead.model_validate(context.tenant)


@router.get(
    "/by-subdomain/{subdomain}",
    response_model=TenantRead,
    summary="Look up an active tenant by subdomain",
)
async def get_tenant_by_subdomain(subdomain: str, data: Data) -> TenantRead:
    try:
        subdomain = canonical_subdomain(subdomain)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found"
        ) from None

    tenant = await data.select_one("tenants", subdomain=subdomain, status=TenantStatus.ACTIVE)
    if tenant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return TenantRead.model_validate(tenant)
