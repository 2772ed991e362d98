"""
BaseSites Backend: Access Policy
================================

What:  The role hierarchy USER(1) < ADMIN(2) < SUPERUSER(3) and the single
       comparison every role gate uses.
Who:   `require_role()` in middleware/auth.py; admin location and review
       routes depend on it.

An unknown or unresolved role (the profile lookup failed, or the stored
value is not a Role) always denies. Contrast the quota tracker, which
fails open on read errors.

    authorize(Role.SUPERUSER, Role.ADMIN)  → True
    authorize(Role.ADMIN, Role.SUPERUSER)  → False
    authorize(None, Role.USER)             → False
"""

import enum
from typing import Optional, Union


class Role(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    SUPERUSER = "SUPERUSER"


ROLE_RANK = {
    Role.USER: 1,
    Role.ADMIN: 2,
    Role.SUPERUSER: 3,
}


def parse_role(value: Union[Role, str, None]) -> Optional[Role]:
    """Stored role text to Role; anything unrecognised becomes None."""
    if value is None or isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def authorize(actual: Union[Role, str, None], required: Role) -> bool:
    """True iff rank(actual) >= rank(required)."""
    role = parse_role(actual)
    if role is None:
        return False
    return ROLE_RANK[role] >= ROLE_RANK[required]
