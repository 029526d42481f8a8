from typing import Optional
from beanie import PydanticObjectId
from bson.errors import InvalidId
from carelink.features.auth.models import User
from carelink.features.auth.schemas import RegisterRequest, LoginRequest, UserResponse
from carelink.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
)
from carelink.shared.exceptions import CredentialsException, ConflictException
from carelink.core.logging import logger


class AuthService:
    """Authentication service for handling auth business logic."""

    @staticmethod
    async def register(register_data: RegisterRequest) -> tuple[User, str]:
        """
        Register a new user.

        Returns:
            tuple: (user, access_token)
        """
        email = register_data.email.lower()

        existing_user = await User.find_one(User.email == email)
        if existing_user:
            raise ConflictException("Email already registered")

        user = User(
            email=email,
            password_hash=get_password_hash(register_data.password),
            name=register_data.name,
            phone=register_data.phone,
        )
        await user.insert()

        logger.info(f"New user registered: {user.email}")

        return user, AuthService.issue_token(user)

    @staticmethod
    async def login(login_data: LoginRequest) -> tuple[User, str]:
        """
        Authenticate user and return access token.

        Returns:
            tuple: (user, access_token)
        """
        user = await User.find_one(User.email == login_data.email.lower())
        if not user:
            raise CredentialsException("Invalid email or password")

        if not verify_password(login_data.password, user.password_hash):
            raise CredentialsException("Invalid email or password")

        if not user.is_active:
            raise CredentialsException("Account is inactive")

        return user, AuthService.issue_token(user)

    @staticmethod
    def issue_token(user: User) -> str:
        return create_access_token(data={"sub": user.email, "user_id": str(user.id)})

    @staticmethod
    async def get_user_by_email(email: str) -> Optional[User]:
        """Get user by email address."""
        return await User.find_one(User.email == email.lower())

    @staticmethod
    async def get_user_by_id(user_id: str) -> Optional[User]:
        """Get user by id; malformed ids resolve to None."""
        try:
            return await User.get(PydanticObjectId(user_id))
        except (InvalidId, TypeError):
            return None

    @staticmethod
    def to_response(user: User) -> UserResponse:
        return UserResponse(
            id=str(user.id),
            email=user.email,
            name=user.name,
            phone=user.phone,
            is_active=user.is_active,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
