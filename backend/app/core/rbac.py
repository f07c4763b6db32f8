"""Role-Based Access Control (RBAC) utilities.

Engine services never look up "the signed-in user" themselves. Routes turn
the bearer token into an :class:`ActorContext` and pass it down explicitly.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Iterable

from fastapi import Depends, HTTPException, Request, status

from app.core.exceptions import AuthorizationError
from app.core.security import decode_access_token


class UserRole(str, Enum):
    """Staff roles."""

    CHAIRMAN = "CHAIRMAN"
    CASHIER = "CASHIER"
    WAITER = "WAITER"
    KITCHEN = "KITCHEN"


@dataclass(frozen=True)
class ActorContext:
    """Who is performing an engine operation, and for which branch.

    Attributes:
        staff_id: Opaque staff identifier (token ``sub``).
        role: The staff member's role.
        branch_id: Branch the staff member works at.
    """

    staff_id: str
    role: UserRole
    branch_id: str

    def require(self, *roles: UserRole) -> None:
        """Raise AuthorizationError unless the actor holds one of ``roles``."""
        if self.role not in roles:
            allowed = ", ".join(r.value for r in roles)
            raise AuthorizationError(f"Role {self.role.value} cannot perform this action (requires {allowed})")

    def require_branch(self, branch_id: str) -> None:
        """Raise AuthorizationError when a record belongs to another branch."""
        if branch_id != self.branch_id:
            raise AuthorizationError("Record belongs to a different branch")


async def get_current_actor(request: Request) -> ActorContext:
    """Build the ActorContext from the Authorization bearer token."""
    payload = None

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            payload = decode_access_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    staff_id = payload.get("sub")
    role = payload.get("role")
    branch_id = payload.get("branch_id")

    if staff_id is None or role is None or branch_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    try:
        user_role = UserRole(role)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid role in token",
        )

    return ActorContext(staff_id=str(staff_id), role=user_role, branch_id=str(branch_id))


def require_roles(roles: Iterable[UserRole]):
    """Dependency factory rejecting actors outside ``roles`` with 403."""
    allowed = tuple(roles)

    async def role_checker(
        actor: Annotated[ActorContext, Depends(get_current_actor)]
    ) -> ActorContext:
        if actor.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires one of: {', '.join(r.value for r in allowed)}",
            )
        return actor

    return role_checker


CurrentActor = Annotated[ActorContext, Depends(get_current_actor)]
RequireFloorStaff = Annotated[ActorContext, Depends(require_roles([UserRole.CASHIER, UserRole.WAITER]))]
RequireCashier = Annotated[ActorContext, Depends(require_roles([UserRole.CASHIER]))]
RequireKitchen = Annotated[ActorContext, Depends(require_roles([UserRole.KITCHEN]))]
