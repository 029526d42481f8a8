from fastapi import APIRouter, Depends, status
from carelink.features.auth.schemas import (
    RegisterRequest,
    LoginRequest,
    TokenResponse,
    UserResponse,
)
from carelink.features.auth.service import AuthService
from carelink.features.auth.dependencies import get_current_user
from carelink.features.auth.models import User


router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(register_data: RegisterRequest):
    """
    Register a new account.

    - **name**: Full name
    - **email**: Email address (also the caregiver invitation key)
    - **password**: At least 8 characters
    """
    user, access_token = await AuthService.register(register_data)

    return TokenResponse(access_token=access_token, user=AuthService.to_response(user))


@router.post("/login", response_model=TokenResponse)
async def login(login_data: LoginRequest):
    """Authenticate and return an access token."""
    user, access_token = await AuthService.login(login_data)

    return TokenResponse(access_token=access_token, user=AuthService.to_response(user))


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get the current user's profile."""
    return AuthService.to_response(current_user)
