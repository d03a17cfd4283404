from enum import Enum
from typing import Optional


AUDIT_LOG_LIMIT = 50


class AccessTier(str, Enum):
    """Access tier shared by students and materials, ordered basic < premium < vip."""

    BASIC = "basic"
    PREMIUM = "premium"
    VIP = "vip"

    @property
    def rank(self) -> int:
        return _TIER_RANKS[self.value]

    # str would otherwise compare tiers alphabetically
    def __lt__(self, other):
        if not isinstance(other, AccessTier):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, AccessTier):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, AccessTier):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, AccessTier):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def resolve(cls, value: Optional[str]) -> "AccessTier":
        """Missing tiers count as basic."""
        if value is None or value == "":
            return cls.BASIC
        if isinstance(value, AccessTier):
            return value
        return cls(value)


_TIER_RANKS = {
    "basic": 0,
    "premium": 1,
    "vip": 2,
}


class PermissionType(str, Enum):
    """Capability a teacher holds over one material. Higher levels include lower ones."""

    VIEW = "view"
    DOWNLOAD = "download"
    MANAGE = "manage"
    FULL = "full"

    @property
    def rank(self) -> int:
        return PERMISSION_LEVELS[self.value]

    def satisfies(self, action: str) -> bool:
        return self.rank >= required_rank(action)


PERMISSION_LEVELS = {
    "view": 1,
    "download": 2,
    "manage": 3,
    "full": 4,
}


def required_rank(action: Optional[str]) -> int:
    """Rank needed to perform `action`; unknown actions need the lowest level."""
    return PERMISSION_LEVELS.get(action, 1)


class AccessLogAction(str, Enum):
    VIEW = "view"
    DOWNLOAD = "download"
    GRANT = "grant"
    REVOKE = "revoke"
    MODIFY = "modify"


class MaterialType(str, Enum):
    EXAM = "exam"
    SOLUTION = "solution"
    PRACTICE = "practice"
    THEORY = "theory"
    NOTES = "notes"


class StudentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    GRADUATED = "graduated"


ADMIN_ROLES = frozenset({"super_admin", "admin", "moderator"})
