"""Authentication dependencies for FastAPI."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.dependencies.services import get_user_service
from core.exceptions import AuthenticationError, ErrorCode, UserNotFoundError
from domain.entities.user import User
from domain.services.user_service import UserService
from infrastructure.auth.jwt_provider import JWTAuthProvider
from infrastructure.auth.provider import TokenUser

# Security scheme for OpenAPI docs
security = HTTPBearer(auto_error=False)

# Singleton auth provider
_auth_provider: JWTAuthProvider | None = None


def get_auth_provider() -> JWTAuthProvider:
    """Get or create the auth provider singleton."""
    global _auth_provider
    if _auth_provider is None:
        _auth_provider = JWTAuthProvider()
    return _auth_provider


async def get_current_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None,
        Depends(security),
    ],
    auth_provider: JWTAuthProvider = Depends(get_auth_provider),
) -> TokenUser:
    """
    Dependency to get the identity from the bearer token.

    Raises:
        AuthenticationError: If no token provided or token is invalid
    """
    if not credentials:
        raise AuthenticationError(
            message="Authorization header required",
            error_code=ErrorCode.UNAUTHORIZED,
        )

    user = await auth_provider.validate_token(credentials.credentials)
    if not user:
        raise AuthenticationError(
            message="Invalid or expired token",
            error_code=ErrorCode.INVALID_TOKEN,
        )

    return user


async def get_current_actor(
    token_user: Annotated[TokenUser, Depends(get_current_user)],
    user_service: UserService = Depends(get_user_service),
) -> User:
    """
    Dependency to load the authenticated user from the directory.

    Role and workspace come from the directory, never from the token.

    Raises:
        AuthenticationError: If the user is unknown or deactivated
    """
    try:
        actor = await user_service.get_user(token_user.id)
    except UserNotFoundError as exc:
        raise AuthenticationError(
            message="User is not registered",
            error_code=ErrorCode.INVALID_TOKEN,
        ) from exc

    if not actor.is_active:
        raise AuthenticationError(message="User is deactivated")

    return actor


# Type aliases for convenience in route handlers
CurrentUser = Annotated[TokenUser, Depends(get_current_user)]
CurrentActor = Annotated[User, Depends(get_current_actor)]
