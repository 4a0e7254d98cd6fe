# Overview: Explicit caller identity passed into every adoption and billing operation.

from __future__ import annotations

from dataclasses import dataclass

from ..models import RoleName
from ..validation import AuthorizationError


class RoleRequired(AuthorizationError):
    code = "RoleRequired"


class NotOwner(AuthorizationError):
    code = "NotOwner"


@dataclass(frozen=True)
class CallerContext:
    """
    Who is calling, as established by the authentication layer.

    The core never looks up the current user on its own; routes build this
    from the session token and hand it down.
    """
    user_id: int
    role: str

    @property
    def is_staff(self) -> bool:
        return self.role in RoleName.SHELTER_STAFF

    @classmethod
    def for_user(cls, user) -> "CallerContext":
        return cls(user_id=user.id, role=user.role_name)


def require_role(caller: CallerContext, *roles: str) -> None:
    if caller.role not in roles:
        raise RoleRequired(f"Requires role: {', '.join(roles)}")


def require_owner(caller: CallerContext, owner_id: int, message: str = "You do not own this record") -> None:
    if caller.user_id != owner_id:
        raise NotOwner(message)
