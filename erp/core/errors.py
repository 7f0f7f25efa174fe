"""Error taxonomy for provisioning and tenant access control.

Two families:

- ``ProvisioningError`` — raised by the provisioning saga to its immediate
  caller. Carries a human-readable ``reason`` and any compensation steps that
  failed while unwinding.
- ``AccessDenied`` — raised by the access gate. Always terminal for the
  current request.

Every concrete class carries the HTTP status the API layer answers with.
"""

from dataclasses import dataclass
from enum import StrEnum

from fastapi import status


@dataclass(frozen=True)
class CompensationFailed:
    """A compensating action that could not be completed.

    Never raised: logged and attached to the original error so an operator
    can clean up the orphaned resource.
    """

    step: str
    error: str


class ProvisioningError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
        self.compensation_failures: list[CompensationFailed] = []

    @property
    def detail(self) -> str:
        return self.reason


class AuthCreationFailed(ProvisioningError):
    def __init__(self, reason: str, *, email_taken: bool = False) -> None:
        super().__init__(reason)
        self.email_taken = email_taken
        if email_taken:
            self.status_code = status.HTTP_409_CONFLICT


class TenantFailureKind(StrEnum):
    DUPLICATE_SUBDOMAIN = "duplicate_subdomain"
    OTHER = "other"


class TenantCreationFailed(ProvisioningError):
    def __init__(self, reason: str, kind: TenantFailureKind = TenantFailureKind.OTHER) -> None:
        super().__init__(reason)
        self.kind = kind
        if kind is TenantFailureKind.DUPLICATE_SUBDOMAIN:
            self.status_code = status.HTTP_409_CONFLICT

    @property
    def duplicate_subdomain(self) -> bool:
        return self.kind is TenantFailureKind.DUPLICATE_SUBDOMAIN


class UserLinkFailed(ProvisioningError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# ── Access gate ───────────────────────────────────────────────

class AccessDenied(Exception):
    status_code: int = status.HTTP_403_FORBIDDEN
    default_detail: str = "Access denied"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthenticated(AccessDenied):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authenticated"


class IncompleteProvisioning(AccessDenied):
    default_detail = "Account setup is incomplete"


class NoTenant(AccessDenied):
    default_detail = "No tenant is associated with this account"


class Forbidden(AccessDenied):
    default_detail = "You do not have permission to perform this action"
