from typing import Annotated, Callable

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from libs.auth.models import AuthUser, UserRole
from libs.common.config import get_settings
from libs.common.errors import Unauthorized

security = HTTPBearer()


async def get_current_user(
    request: Request,
    token: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> AuthUser:
    """
    Validate the bearer JWT and return the authenticated user.
    """
    settings = get_settings()

    try:
        payload = jwt.decode(
            token.credentials,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_aud": False},
        )
        user = AuthUser(**payload)
    except (JWTError, ValidationError):
        raise Unauthorized("Not authorized, token failed")

    # Lets the rate limiter key on the user instead of the IP
    request.state.user = user
    return user


def require_roles(*roles: UserRole) -> Callable:
    """Build a dependency that admits only the given roles (admins always pass)."""
    allowed = set(roles) | {UserRole.ADMIN}

    async def _check(
        current_user: Annotated[AuthUser, Depends(get_current_user)]
    ) -> AuthUser:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not authorized for this action",
            )
        return current_user

    return _check


async def require_admin(
    current_user: Annotated[AuthUser, Depends(get_current_user)]
) -> AuthUser:
    """
    Ensure the user has the admin role.
    """
    if current_user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized as an admin",
        )
    return current_user


require_packer = require_roles(UserRole.PACKER)
require_driver = require_roles(UserRole.DRIVER)
