from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from carelink.features.auth.models import User
from carelink.features.auth.service import AuthService
from carelink.core.security import decode_token
from carelink.shared.exceptions import CredentialsException


# HTTP Bearer security scheme; missing headers are reported as 401 below
security = HTTPBearer(auto_error=False)


async def get_user_from_token(token: str) -> Optional[User]:
    """
    Resolve a bearer token to an active user.

    Shared by the REST dependency and the Socket.IO handshake.
    """
    payload = decode_token(token)
    if payload is None:
        return None

    email: str = payload.get("sub")
    if email is None:
        return None

    user = await AuthService.get_user_by_email(email)
    if user is None or not user.is_active:
        return None

    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> User:
    """
    Dependency to get current authenticated user.

    Args:
        credentials: HTTP Bearer credentials

    Returns:
        User: Current authenticated user

    Raises:
        CredentialsException: If credentials are missing or invalid
    """
    if credentials is None:
        raise CredentialsException("Not authenticated")

    user = await get_user_from_token(credentials.credentials)
    if user is None:
        raise CredentialsException("Invalid authentication credentials")

    return user
