"""Access decision engine.

Every protected route declares a :class:`Requirement` (any-of permissions
and/or any-of roles). :func:`decide` evaluates it against the claims carried
in the bearer token. It is a pure function: no I/O, no state.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

AUTHENTICATION_REQUIRED = "Authentication required"
INSUFFICIENT_PERMISSIONS = "Access denied: insufficient permissions/roles"


@dataclass(frozen=True)
class Claims:
    """Identity plus roles and permissions resolved at login."""

    id: int
    email: str
    first_name: str
    last_name: str
    roles: FrozenSet[str] = frozenset()
    permissions: FrozenSet[str] = frozenset()

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "roles": sorted(self.roles),
            "permissions": sorted(self.permissions),
        }

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Claims":
        """Build claims from the ``user`` object of a decoded token.

        Raises KeyError/TypeError/ValueError on a malformed payload.
        """
        roles = data.get("roles") or []
        permissions = data.get("permissions") or []
        if not isinstance(roles, list) or not isinstance(permissions, list):
            raise TypeError("roles and permissions must be lists")
        return cls(
            id=int(data["id"]),
            email=str(data["email"]),
            first_name=str(data.get("first_name") or ""),
            last_name=str(data.get("last_name") or ""),
            roles=frozenset(str(r) for r in roles),
            permissions=frozenset(str(p) for p in permissions),
        )


@dataclass(frozen=True)
class Requirement:
    """Any single matching permission or role satisfies the requirement."""

    any_of_permissions: FrozenSet[str] = frozenset()
    any_of_roles: FrozenSet[str] = frozenset()

    @classmethod
    def of(
        cls,
        any_of_permissions: Optional[Iterable[str]] = None,
        any_of_roles: Optional[Iterable[str]] = None,
    ) -> "Requirement":
        return cls(
            any_of_permissions=frozenset(any_of_permissions or ()),
            any_of_roles=frozenset(any_of_roles or ()),
        )

    @property
    def is_empty(self) -> bool:
        return not self.any_of_permissions and not self.any_of_roles

    def describe(self) -> Dict[str, List[str]]:
        return {
            "anyOfPermissions": sorted(self.any_of_permissions),
            "anyOfRoles": sorted(self.any_of_roles),
        }


@dataclass(frozen=True)
class Decision:
    allowed: bool
    authenticated: bool = True
    reason: Optional[str] = None
    required: Dict[str, List[str]] = field(default_factory=dict)


def decide(claims: Optional[Claims], requirement: Requirement) -> Decision:
    """Decide whether ``claims`` satisfy ``requirement``.

    ``claims`` is None when the token was missing, malformed, tampered with
    or expired; that is an authentication failure, not an authorization one.
    """
    if claims is None:
        return Decision(
            allowed=False, authenticated=False, reason=AUTHENTICATION_REQUIRED
        )

    if requirement.is_empty:
        return Decision(allowed=True)

    if claims.permissions & requirement.any_of_permissions:
        return Decision(allowed=True)
    if claims.roles & requirement.any_of_roles:
        return Decision(allowed=True)

    return Decision(
        allowed=False,
        reason=INSUFFICIENT_PERMISSIONS,
        required=requirement.describe(),
    )
