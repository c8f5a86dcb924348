"""
API dependency functions for database sessions and staff authentication.
"""

from typing import Optional
from fastapi import Header, HTTPException, status
import secrets

from civic_reporter.database import get_db
from civic_reporter.config import settings

__all__ = ["get_db", "require_staff", "optional_staff"]


def _password_matches(password: str) -> bool:
    return secrets.compare_digest(password.encode(), settings.STAFF_PASSWORD.encode())


async def require_staff(
    x_staff_password: Optional[str] = Header(None, alias="X-Staff-Password")
) -> bool:
    """
    Shared-secret authentication for staff and admin endpoints.

    Verifies the staff password from the X-Staff-Password header
    using constant-time comparison to prevent timing attacks.

    Raises:
        HTTPException: 401 if the header is missing or the password is invalid
    """
    if x_staff_password is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Staff authentication required"
        )
    if not _password_matches(x_staff_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid staff password"
        )
    return True


async def optional_staff(
    x_staff_password: Optional[str] = Header(None, alias="X-Staff-Password")
) -> bool:
    """
    Whether the request carries a valid staff password.

    Used by citizen-facing endpoints that reveal more to staff. A wrong
    password is still rejected.
    """
    if x_staff_password is None:
        return False
    if not _password_matches(x_staff_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid staff password"
        )
    return True
