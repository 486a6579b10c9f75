"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data containers). Stores and services do the work;
the only behaviour here is derivation of values that are never stored
(initials, name split) and the sanitized projection that leaves the service
boundary.

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations

from dataclasses import dataclass

ADMINISTRATOR = "Administrator"
SHIP_CAPTAIN = "Ship Captain"
FLEET_OPERATOR = "Fleet Operator"
DEMO_USER = "Demo User"

ROLES: tuple[str, ...] = (ADMINISTRATOR, SHIP_CAPTAIN, FLEET_OPERATOR, DEMO_USER)
# Administrator is only reachable through promote_user_role() or the seeding CLI.
SELF_ASSIGNABLE_ROLES: tuple[str, ...] = (SHIP_CAPTAIN, FLEET_OPERATOR, DEMO_USER)
DEFAULT_ROLE = DEMO_USER


def split_full_name(full_name: str) -> tuple[str, str]:
    """Split a full name into (first_name, last_name).

    First whitespace-separated token is the first name; the remaining tokens
    joined by a single space are the last name. A single-word name is used for
    both fields. An empty name returns ("", "").
    """
    names = full_name.split()
    if not names:
        return "", ""
    first = names[0]
    last = " ".join(names[1:]) if len(names) > 1 else names[0]
    return first, last


def compute_initials(first_name: str | None, last_name: str | None, full_name: str | None) -> str:
    """Return 1-2 uppercase initials, falling back to "U"."""
    if first_name and last_name:
        return (first_name[0] + last_name[0]).upper()
    if full_name and full_name.strip():
        names = full_name.split()
        if len(names) >= 2:
            return (names[0][0] + names[-1][0]).upper()
        return names[0][0].upper()
    return "U"


@dataclass
class User:
    """A registered account.

    password is a transient plaintext field: the store hashes it into
    hashed_password on the next write and clears it. It is never persisted and
    never leaves the store. hashed_password is never exposed either --
    sanitize_user() is the only projection that crosses the service boundary.
    """

    email: str
    full_name: str
    role: str = DEFAULT_ROLE
    first_name: str = ""
    last_name: str = ""
    id: str | None = None
    hashed_password: str | None = None
    password: str | None = None
    avatar: str | None = None
    is_active: bool = True
    last_login: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def initials(self) -> str:
        return compute_initials(self.first_name, self.last_name, self.full_name)


@dataclass(frozen=True)
class Identity:
    """Sanitized identity attached to a request by the auth dependencies.

    Carries no credential material. Route handlers receive this, never the raw
    User record.
    """

    id: str
    email: str
    full_name: str
    first_name: str
    last_name: str
    role: str
    avatar: str | None
    initials: str

    @classmethod
    def from_user(cls, user: User) -> Identity:
        return cls(
            id=user.id or "",
            email=user.email,
            full_name=user.full_name,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role,
            avatar=user.avatar,
            initials=user.initials,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "fullName": self.full_name,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role,
            "avatar": self.avatar,
            "initials": self.initials,
        }


@dataclass(frozen=True)
class RoleChange:
    """Audit record returned by a successful role promotion."""

    target_id: str
    email: str
    old_role: str
    new_role: str
    updated_by: str

    def to_dict(self) -> dict:
        return {
            "userId": self.target_id,
            "email": self.email,
            "oldRole": self.old_role,
            "newRole": self.new_role,
            "updatedBy": self.updated_by,
        }


def sanitize_user(user: User) -> dict:
    """Project a User onto the public JSON shape.

    Whitelist, not blacklist: only the keys below ever leave the service, so a
    new internal column cannot leak by accident.
    """
    return {
        "id": user.id,
        "email": user.email,
        "fullName": user.full_name,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "role": user.role,
        "avatar": user.avatar,
        "initials": user.initials,
        "createdAt": user.created_at,
        "lastLogin": user.last_login,
    }
