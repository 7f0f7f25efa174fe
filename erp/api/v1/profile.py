"""Profile of the signed-in user.

Updates arrive as a tagged union: ``kind`` selects the request type and each
type is validated and handled by its own function.
"""

from typing import Annotated, Literal

from fastapi import APIRouter, Body, HTTPException, status
from pydantic import BaseModel, Field, model_validator

from erp.api.deps import Auth, CurrentUser, Data, Token
from erp.api.v1.auth import MessageResponse
from erp.models.user import User, UserRead
from erp.providers.auth import AuthError, AuthProvider
from erp.providers.data import DataProvider

router = APIRouter(prefix="/profile", tags=["profile"])


# ── Request variants ─────────────────────────────────────────

class ProfileUpdate(BaseModel):
    kind: Literal["profile"] = "profile"
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)


class PasswordUpdate(BaseModel):
    kind: Literal["password"] = "password"
    password: str = Field(max_length=128)
    confirm_password: str = Field(max_length=128)

    @model_validator(mode="after")
    def _passwords_match(self) -> "PasswordUpdate":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


ProfileRequest = Annotated[ProfileUpdate | PasswordUpdate, Body(discriminator="kind")]


# ── Routes ───────────────────────────────────────────────────

@router.get("", response_model=UserRead)
async def get_profile(user: CurrentUser) -> UserRead:
    return UserRead.model_validate(user)


@router.post("", response_model=MessageResponse)
async def update_profile(
    body: ProfileRequest,
    user: CurrentUser,
    token: Token,
    auth: Auth,
    data: Data,
) -> MessageResponse:
    if isinstance(body, PasswordUpdate):
        return await _update_password(body, token, auth)
    return await _update_names(body, user, data)


async def _update_names(body: ProfileUpdate, user: User, data: DataProvider) -> MessageResponse:
    await data.update(
        "users",
        {"first_name": body.first_name, "last_name": body.last_name},
        id=user.id,
    )
    return MessageResponse(message="Profile updated successfully")


async def _update_password(
    body: PasswordUpdate, token: str | None, auth: AuthProvider
) -> MessageResponse:
    try:
        await auth.update_password(token or "", body.password)
    except AuthError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.message,
        ) from exc
    return MessageResponse(message="Password updated successfully")
