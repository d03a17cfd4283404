"""
Resolution of the calling principal.

Authentication happens upstream: the gateway forwards the verified caller in
`X-Principal` (base64 encoded JSON, see `Principal.encode`) and proves itself
with one of the configured API tokens in `X-API-Token`.
"""

import binascii
import hashlib
import logging
from typing import Annotated, Optional

from aiocache import SimpleMemoryCache
from fastapi import Depends, Header
from pydantic import ValidationError
from sqlalchemy.orm import Session

from tutor_backend.api.exceptions import UnauthorizedException, forbidden
from tutor_backend.database import get_db
from tutor_backend.model.student import Student
from tutor_backend.permissions.principal import Principal
from tutor_backend.settings import settings

logger = logging.getLogger(__name__)

_principal_cache = SimpleMemoryCache()


async def clear_principal_cache():
    await _principal_cache.clear()


def verify_api_token(token: Optional[str]) -> None:
    if not token or token not in settings.API_TOKENS:
        raise UnauthorizedException("Unrecognized API token")


async def get_current_principal(
    x_api_token: Annotated[Optional[str], Header()] = None,
    x_principal: Annotated[Optional[str], Header()] = None,
) -> Principal:

    verify_api_token(x_api_token)

    if not x_principal:
        raise UnauthorizedException("No principal provided")

    cache_key = hashlib.sha256(x_principal.encode()).hexdigest()

    cached = await _principal_cache.get(cache_key)
    if cached is not None:
        logger.debug(f"Principal cache hit for {cache_key}")
        return Principal.model_validate_json(cached)

    try:
        principal = Principal.decode(x_principal)
    except (binascii.Error, ValueError, ValidationError) as e:
        logger.warning(f"Rejected malformed principal header: {e}")
        raise UnauthorizedException("Invalid principal")

    if principal.user_id is None:
        raise UnauthorizedException("Principal without user id")

    await _principal_cache.set(cache_key, principal.model_dump_json(), ttl=settings.AUTH_CACHE_TTL)
    return principal


def require_admin(principal: Annotated[Principal, Depends(get_current_principal)]) -> Principal:
    """Coarse role gate for every management action on permissions and materials."""
    if not principal.is_admin:
        raise forbidden("admin_required", "Access denied. Admin privileges required.")
    return principal


def require_staff(principal: Annotated[Principal, Depends(get_current_principal)]) -> Principal:
    if not principal.is_staff:
        raise forbidden("staff_required", "Access denied. Staff account required.")
    return principal


def require_student(principal: Annotated[Principal, Depends(get_current_principal)]) -> Principal:
    if not principal.is_student:
        raise forbidden("student_required", "Access denied. Student account required.")
    return principal


def get_current_student(
    principal: Annotated[Principal, Depends(require_student)],
    db: Session = Depends(get_db),
) -> Student:
    """Load the student record behind the principal. Never cached, status changes apply at once."""
    student = db.get(Student, principal.user_id)
    if student is None:
        raise UnauthorizedException("Unknown student")
    return student
