"""
Identity Provider

Read-only view of the external user store. The engine never writes
users; it only consumes their role, explicit permissions, explicit
regions and position in the org hierarchy.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol, Set

from geoaccess.api.access.rbac import Role, parse_role


@dataclass
class User:
    """User as seen by the authorization engine."""

    id: str
    name: str
    role: Role
    email: str = ""
    explicit_permissions: Set[str] = field(default_factory=set)
    explicit_regions: Set[str] = field(default_factory=set)
    assigned_under: List[str] = field(default_factory=list)  # Manager ids
    is_active: bool = True

    def __post_init__(self):
        self.role = parse_role(self.role)
        self.explicit_permissions = set(self.explicit_permissions)
        self.explicit_regions = set(self.explicit_regions)
        self.assigned_under = list(self.assigned_under)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "explicit_permissions": sorted(self.explicit_permissions),
            "explicit_regions": sorted(self.explicit_regions),
            "assigned_under": list(self.assigned_under),
            "is_active": self.is_active,
        }


class IdentityProvider(Protocol):
    """External, read-only user store."""

    def get_user(self, user_id: str) -> Optional[User]:
        ...

    def get_org_hierarchy(self, user_id: str) -> List[str]:
        """Ids of users declared under ``user_id``."""
        ...


class InMemoryIdentityProvider:
    """Identity provider backed by a dict, for tests and local runs."""

    def __init__(self, users: Optional[Iterable[User]] = None):
        self._users: Dict[str, User] = {}
        for user in users or []:
            self.add_user(user)

    def add_user(self, user: User) -> User:
        self._users[user.id] = user
        return user

    def remove_user(self, user_id: str) -> bool:
        return self._users.pop(user_id, None) is not None

    def get_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    def list_users(self) -> List[User]:
        return list(self._users.values())

    def get_org_hierarchy(self, user_id: str) -> List[str]:
        return [u.id for u in self._users.values() if user_id in u.assigned_under]
