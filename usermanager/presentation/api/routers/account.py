"""API router for registration, confirmation, sign-in and password reset."""

from fastapi import APIRouter, Depends, status

from ....application.services.account_service import AccountManager
from ....core.dependencies import get_account_manager
from ....domain.models import User
from ...api.dependencies import get_current_user
from ...api.schemas.account import (
    EmailRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    TokenRequest,
    UserResponse,
)

router = APIRouter(prefix="/api/account", tags=["account"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: RegisterRequest,
    account_manager: AccountManager = Depends(get_account_manager),
) -> RegisterResponse:
    result = account_manager.register(request.email, request.full_name, request.password)
    if result.notification_sent:
        message = "Registration successful. Please check your email to confirm your account."
    else:
        message = (
            "Registration successful, but the confirmation email could not be sent. "
            "Please request a new confirmation email."
        )
    return RegisterResponse(
        user=UserResponse.from_user(result.user),
        notification_sent=result.notification_sent,
        message=message,
    )


@router.post("/confirm-email", response_model=UserResponse)
def confirm_email(
    request: TokenRequest,
    account_manager: AccountManager = Depends(get_account_manager),
) -> UserResponse:
    user = account_manager.confirm_email(request.token)
    return UserResponse.from_user(user)


@router.post("/resend-confirmation", response_model=MessageResponse)
def resend_confirmation(
    request: EmailRequest,
    account_manager: AccountManager = Depends(get_account_manager),
) -> MessageResponse:
    account_manager.resend_confirmation(request.email)
    # Same answer whether or not the account exists.
    return MessageResponse(
        message="If the account exists and is unconfirmed, a confirmation email has been sent."
    )


@router.post("/login", response_model=LoginResponse)
def login(
    request: LoginRequest,
    account_manager: AccountManager = Depends(get_account_manager),
) -> LoginResponse:
    session = account_manager.authenticate(request.email, request.password)
    user = account_manager.get_user(session.user_id)
    return LoginResponse(
        access_token=session.access_token,
        token_type=session.token_type,
        expires_at=session.expires_at,
        user=UserResponse.from_user(user),
    )


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    request: EmailRequest,
    account_manager: AccountManager = Depends(get_account_manager),
) -> MessageResponse:
    account_manager.request_password_reset(request.email)
    return MessageResponse(message="If the email is registered, a reset link has been sent.")


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    request: ResetPasswordRequest,
    account_manager: AccountManager = Depends(get_account_manager),
) -> MessageResponse:
    account_manager.reset_password(request.token, request.new_password)
    return MessageResponse(message="Password has been reset.")


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.from_user(user)
