import datetime
from enum import Enum
from typing import Any, Optional

from tutor_backend.utils import as_utc, utc_now


class GrantState(str, Enum):
    ACTIVE_VALID = "active_valid"
    ACTIVE_EXPIRED = "active_expired"
    REVOKED = "revoked"


def grant_state(grant: Any, now: Optional[datetime.datetime] = None) -> GrantState:
    """Derive the lifecycle state of a teacher permission from `is_active` and `expires_at`.

    Expiry is evaluated lazily here; nothing flips `is_active` when a grant runs out.
    """
    if not grant.is_active:
        return GrantState.REVOKED

    expires_at = as_utc(grant.expires_at)
    if expires_at is not None:
        now = as_utc(now) if now is not None else utc_now()
        if now > expires_at:
            return GrantState.ACTIVE_EXPIRED

    return GrantState.ACTIVE_VALID


def is_grant_valid(grant: Any, now: Optional[datetime.datetime] = None) -> bool:
    return grant_state(grant, now) == GrantState.ACTIVE_VALID


def is_grant_expired(grant: Any, now: Optional[datetime.datetime] = None) -> bool:
    expires_at = as_utc(grant.expires_at)
    if expires_at is None:
        return False
    now = as_utc(now) if now is not None else utc_now()
    return now > expires_at
