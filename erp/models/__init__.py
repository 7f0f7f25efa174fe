"""Import all models so SQLModel.metadata picks them up."""

from erp.models.identity import AuthSession, Identity, IdentityRead, SessionGrant
from erp.models.task import Task, TaskCreate, TaskPriority, TaskRead, TaskStatus, TaskUpdate
from erp.models.tenant import Tenant, TenantRead, TenantStatus, canonical_subdomain
from erp.models.user import User, UserCreate, UserRead, UserRole, UserStatus, UserUpdate

__all__ = [
    "AuthSession",
    "Identity",
    "IdentityRead",
    "SessionGrant",
    "Task",
    "TaskCreate",
    "TaskPriority",
    "TaskRead",
    "TaskStatus",
    "TaskUpdate",
    "Tenant",
    "TenantRead",
    "TenantStatus",
    "User",
    "UserCreate",
    "UserRead",
    "UserRole",
    "UserStatus",
    "UserUpdate",
    "canonical_subdomain",
]
