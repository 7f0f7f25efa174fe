"""Authentication endpoints — signup, login/logout, session check, recovery."""

import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException, Response, status
from pydantic import BaseModel, EmailStr, Field

from erp.api.deps import Auth, CurrentIdentity, Data, Gate, Token
from erp.core.config import get_settings
from erp.core.errors import Unauthenticated
from erp.models.base import utcnow
from erp.models.identity import IdentityRead, SessionGrant
from erp.models.tenant import TenantRead
from erp.models.user import UserRead
from erp.providers.auth import AuthError
from erp.services.provisioning import register_identity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# ── Schemas ──────────────────────────────────────────────────

class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(max_length=128)
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class MeResponse(BaseModel):
    identity: IdentityRead
    user: UserRead | None
    tenant: TenantRead | None


class ResetPasswordRequest(BaseModel):
    email: EmailStr


class RecoverRequest(BaseModel):
    token: str


class MessageResponse(BaseModel):
    success: bool = True
    message: str = ""


# ── Cookie helpers ───────────────────────────────────────────

def _set_session_cookie(response: Response, token: str, expires_at: datetime) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=int((expires_at - utcnow()).total_seconds()),
        httponly=True,
        samesite="lax",
        secure=not settings.debug,
        path="/",
    )


def _clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=get_settings().session_cookie_name, path="/")


# ── Routes ───────────────────────────────────────────────────

@router.post("/signup", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def signup(body: SignupRequest, auth: Auth, data: Data) -> UserRead:
    """Create an account that is not yet part of any tenant."""
    return await register_identity(
        auth,
        data,
        body.email,
        body.password,
        first_name=body.first_name,
        last_name=body.last_name,
    )


@router.post("/login", response_model=SessionGrant)
async def login(body: LoginRequest, response: Response, auth: Auth, data: Data) -> SessionGrant:
    """Authenticate with email + password, receive a session token."""
    try:
        grant = await auth.sign_in(body.email, body.password)
    except AuthError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.message,
        ) from exc

    await data.update("users", {"last_login": utcnow()}, id=grant.identity.id)
    _set_session_cookie(response, grant.access_token, grant.expires_at)
    return grant


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(response: Response, token: Token, auth: Auth) -> None:
    if token:
        await auth.sign_out(token)
    _clear_session_cookie(response)


@router.post("/session", response_model=MessageResponse)
async def check_session(token: Token, auth: Auth) -> MessageResponse:
    """Validate the bearer token carried by the request."""
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header",
        )
    try:
        await auth.get_user(token)
    except AuthError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        ) from exc
    return MessageResponse()


@router.get("/me", response_model=MeResponse)
async def get_me(identity: CurrentIdentity, gate: Gate) -> MeResponse:
    """Return the current identity and, once provisioned, its user and tenant."""
    if identity is None:
        raise Unauthenticated()

    context = await gate.resolve_current_tenant(identity)
    return MeResponse(
        identity=IdentityRead.model_validate(identity),
        user=UserRead.model_validate(context.user) if context.user else None,
        tenant=TenantRead.model_validate(context.tenant) if context.tenant else None,
    )


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def reset_password(body: ResetPasswordRequest, auth: Auth) -> MessageResponse:
    """Start password recovery. Same answer whether or not the address exists."""
    token = await auth.request_password_reset(body.email)
    if token is not None:
        logger.info("Password recovery requested for %s", body.email)
        # No mail transport in this service; the link is only visible in debug logs
        logger.debug("Recovery link: /update-password?token=%s", token)
    return MessageResponse(message="Check your email for the password reset link")


@router.post("/recover", response_model=SessionGrant)
async def recover(body: RecoverRequest, response: Response, auth: Auth) -> SessionGrant:
    """Exchange a recovery token for a session, then update the password via /v1/profile."""
    try:
        grant = await auth.exchange_recovery_token(body.token)
    except AuthError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.message,
        ) from exc

    _set_session_cookie(response, grant.access_token, grant.expires_at)
    return grant
