"""
Role-based route protection.

Provides:
- require_role: dependency factory restricting a route to given profile roles.
- get_admin_user: admin-only dependency.
"""
from fastapi import Depends, HTTPException, status

from swiftlink.core.auth import get_current_user
from swiftlink.models import User


def require_role(*allowed_roles: str):
    """
    Build a dependency that only lets users with one of allowed_roles through.

    Args:
        allowed_roles: Profile roles permitted on the route

    Returns:
        FastAPI dependency returning the current user
    """

    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if not current_user.role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden: no role found",
            )
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden: insufficient permissions",
            )
        return current_user

    return dependency


get_admin_user = require_role("admin")
