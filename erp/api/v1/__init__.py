"""V1 API router aggregation."""

from fastapi import APIRouter

from erp.api.v1.auth import router as auth_router
from erp.api.v1.dashboard import router as dashboard_router
from erp.api.v1.profile import router as profile_router
from erp.api.v1.tasks import router as tasks_router
from erp.api.v1.tenants import router as tenants_router
from erp.api.v1.users import router as users_router

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(tenants_router)
v1_router.include_router(auth_router)
v1_router.include_router(profile_router)
v1_router.include_router(users_router)
v1_router.include_router(tasks_router)
v1_router.include_router(dashboard_router)
