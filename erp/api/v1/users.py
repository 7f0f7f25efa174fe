"""Users of the caller's tenant — restricted to tenant admins."""

import uuid
from typing import Any

from fastapi import APIRouter, HTTPException, status

from erp.api.deps import Auth, CurrentIdentity, Data, Gate, TenantAdmin
from erp.core.config import get_settings
from erp.models.user import User, UserCreate, UserRead, UserStatus, UserUpdate
from erp.providers.data import DataProvider
from erp.services.provisioning import add_member

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    context: TenantAdmin,
    auth: Auth,
    data: Data,
) -> UserRead:
    return await add_member(
        auth,
        data,
        context.tenant.id,  # type: ignore[union-attr]
        body.email,
        body.password,
        role=body.role,
        first_name=body.first_name,
        last_name=body.last_name,
    )


@router.get("", response_model=list[UserRead])
async def list_users(context: TenantAdmin, data: Data) -> list[UserRead]:
    users = await data.select(
        "users",
        order_by="email",
        tenant_id=context.tenant.id,  # type: ignore[union-attr]
    )
    return [UserRead.model_validate(u) for u in users]


@router.patch("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: uuid.UUID,
    body: UserUpdate,
    context: TenantAdmin,
    identity: CurrentIdentity,
    gate: Gate,
    data: Data,
) -> UserRead:
    user = await data.select_one("users", id=user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    await gate.require_tenant_access(identity, user.tenant_id)

    update_data = body.model_dump(exclude_unset=True, exclude_none=True)
    if update_data:
        await _keep_an_admin(data, user, update_data)
        [user] = await data.update("users", update_data, id=user_id, tenant_id=user.tenant_id)
    return UserRead.model_validate(user)


# ── Internal helper ───────────────────────────────────────────

def _is_active_admin(role: Any, user_status: Any) -> bool:
    return str(role) in get_settings().admin_role_set and user_status == UserStatus.ACTIVE


async def _keep_an_admin(data: DataProvider, user: User, update_data: dict[str, Any]) -> None:
    """Raise 409 if the update would leave the tenant without an active admin."""
    if not _is_active_admin(user.role, user.status):
        return
    if _is_active_admin(update_data.get("role", user.role), update_data.get("status", user.status)):
        return

    members = await data.select("users", tenant_id=user.tenant_id, status=UserStatus.ACTIVE)
    if sum(1 for m in members if _is_active_admin(m.role, m.status)) <= 1:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="The tenant must keep at least one active admin",
        )
