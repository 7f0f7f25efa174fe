"""FastAPI dependencies: per-request providers, session token, access gate."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.config import get_settings
from erp.core.database import get_session
from erp.models.identity import Identity
from erp.models.user import User
from erp.providers.auth import AuthError, AuthProvider, SqlAuthProvider
from erp.providers.data import DataProvider, SqlDataProvider
from erp.services.access import AccessGate, TenantContext

bearer_scheme = HTTPBearer(auto_error=False)

Session = Annotated[AsyncSession, Depends(get_session)]


# ── Providers (constructed per request, never module-level) ──

def get_auth_provider(session: Session) -> AuthProvider:
    return SqlAuthProvider(session)


def get_data_provider(session: Session) -> DataProvider:
    return SqlDataProvider(session)


Auth = Annotated[AuthProvider, Depends(get_auth_provider)]
Data = Annotated[DataProvider, Depends(get_data_provider)]


def get_gate(data: Data) -> AccessGate:
    return AccessGate(data)


Gate = Annotated[AccessGate, Depends(get_gate)]


# ── Session token carrier ────────────────────────────────────

def get_session_token(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str | None:
    """Bearer header wins; fall back to the session cookie."""
    if credentials is not None:
        return credentials.credentials
    return request.cookies.get(get_settings().session_cookie_name)


Token = Annotated[str | None, Depends(get_session_token)]


async def get_identity(token: Token, auth: Auth) -> Identity | None:
    """Identity behind the request's session, or None when anonymous."""
    if not token:
        return None
    try:
        return await auth.get_user(token)
    except AuthError:
        return None


CurrentIdentity = Annotated[Identity | None, Depends(get_identity)]


# ── Gate checks ──────────────────────────────────────────────

async def require_user(identity: CurrentIdentity, gate: Gate) -> User:
    return await gate.require_user(identity)


async def require_tenant(identity: CurrentIdentity, gate: Gate) -> TenantContext:
    return await gate.require_tenant(identity)


async def require_tenant_admin(identity: CurrentIdentity, gate: Gate) -> TenantContext:
    context = await gate.require_tenant(identity)
    await gate.require_role(identity, get_settings().admin_role_set)
    return context


# Typed shorthand for use in route signatures
CurrentUser = Annotated[User, Depends(require_user)]
CurrentTenant = Annotated[TenantContext, Depends(require_tenant)]
TenantAdmin = Annotated[TenantContext, Depends(require_tenant_admin)]
