"""
Access control for exam materials.

Main components:
- levels: ordered tiers and permission levels
- access: student-facing access evaluator
- grants: validity state of a teacher permission
- ledger: grant / update / revoke / audit of teacher permissions
- evaluator: capability check of a teacher over a material
- principal, auth: caller identity and the coarse role gates
"""

from .levels import (
    AUDIT_LOG_LIMIT,
    AccessLogAction,
    AccessTier,
    PermissionType,
    required_rank,
)

from .access import (
    AccessDecision,
    DenyReason,
    check_student_eligibility,
    evaluate_student_access,
    filter_accessible,
)

from .grants import GrantState, grant_state, is_grant_valid

from .principal import Principal

__all__ = [
    'AUDIT_LOG_LIMIT',
    'AccessLogAction',
    'AccessTier',
    'PermissionType',
    'required_rank',
    'AccessDecision',
    'DenyReason',
    'check_student_eligibility',
    'evaluate_student_access',
    'filter_accessible',
    'GrantState',
    'grant_state',
    'is_grant_valid',
    'Principal',
]
