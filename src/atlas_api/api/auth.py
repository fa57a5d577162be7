"""Account routes: registration, verification, login and password reset."""

from fastapi import APIRouter, Depends, Request, status

from atlas_api.core.startup import AppServices
from atlas_api.dependencies import get_app_services, get_auth_service, get_current_user
from atlas_api.errors import LOGIN_ERRORS, InvalidCredentials, UserNotFound
from atlas_api.models.user import User
from atlas_api.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    ValidateResetCodeRequest,
    VerifyEmailRequest,
)
from atlas_api.schemas.common import ErrorResponse, SuccessResponse
from atlas_api.schemas.responses import (
    AcknowledgedData,
    CodeValidityData,
    LogoutData,
    RegisterData,
    SessionData,
    UserData,
)
from atlas_api.services.auth import AuthResult, AuthService
from atlas_api.utils.response import success

router = APIRouter(prefix="/auth", tags=["auth"])

RESET_REQUESTED_MESSAGE = "Se o email estiver cadastrado, você receberá um código para redefinir a senha."


def user_data(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "display_name": user.display_name,
        "email_verified": user.email_verified,
        "plan_id": user.plan_id,
        "plan_ends_at": user.plan_ends_at,
        "profile_complete": user.profile_complete,
        "last_access_at": user.last_access_at,
    }


def _session_data(result: AuthResult) -> dict:
    return {
        "access_token": result.session.token,
        "token_type": "bearer",
        "expires_at": result.session.expires_at,
        "expires_in": result.session.expires_in,
        "user": user_data(result.user),
    }


@router.post(
    "/register",
    summary="Register an account",
    description="Creates an unverified account and sends a 6-digit verification code.",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[RegisterData],
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def register(payload: RegisterRequest, request: Request, auth: AuthService = Depends(get_auth_service)):
    user = auth.register(payload.display_name, payload.email, payload.password)
    return success(request, {"user": user_data(user), "verification_required": True})


@router.post(
    "/verify-email",
    summary="Verify email",
    description="Consumes the verification code and starts a session.",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[SessionData],
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def verify_email(payload: VerifyEmailRequest, request: Request, auth: AuthService = Depends(get_auth_service)):
    result = auth.verify_email(payload.email, payload.code)
    return success(request, _session_data(result))


@router.post(
    "/login",
    summary="Log in",
    description="Exchanges email and password for a session token.",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[SessionData],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def login(
    payload: LoginRequest,
    request: Request,
    auth: AuthService = Depends(get_auth_service),
    services: AppServices = Depends(get_app_services),
):
    try:
        result = auth.login(payload.email, payload.password)
    except LOGIN_ERRORS as exc:
        if not services.settings.auth_expose_login_failure_reason:
            raise InvalidCredentials() from exc
        if isinstance(exc, UserNotFound):
            raise UserNotFound(status_code=status.HTTP_401_UNAUTHORIZED) from exc
        raise
    return success(request, _session_data(result))


@router.post(
    "/logout",
    summary="Log out",
    description="Sessions are stateless; the client discards its token.",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[LogoutData],
    responses={401: {"model": ErrorResponse}},
)
def logout(request: Request, user: User = Depends(get_current_user)):
    return success(request, {"logged_out": True})


@router.post(
    "/forgot-password",
    summary="Request a password reset code",
    description="Always answers the same way, whether or not the email is registered.",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[AcknowledgedData],
    responses={422: {"model": ErrorResponse}},
)
def forgot_password(payload: ForgotPasswordRequest, request: Request, auth: AuthService = Depends(get_auth_service)):
    auth.request_password_reset(payload.email)
    return success(request, {"message": RESET_REQUESTED_MESSAGE})


@router.post(
    "/validate-reset-token",
    summary="Check a password reset code",
    description="Reports whether the code would be accepted, without consuming it.",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[CodeValidityData],
    responses={422: {"model": ErrorResponse}},
)
def validate_reset_token(
    payload: ValidateResetCodeRequest,
    request: Request,
    auth: AuthService = Depends(get_auth_service),
):
    return success(request, {"valid": auth.validate_reset_code(payload.email, payload.code)})


@router.post(
    "/reset-password",
    summary="Reset password",
    description="Sets a new password and consumes the reset code.",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[AcknowledgedData],
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def reset_password(payload: ResetPasswordRequest, request: Request, auth: AuthService = Depends(get_auth_service)):
    auth.reset_password(payload.email, payload.code, payload.new_password)
    return success(request, {"message": "Senha redefinida com sucesso."})


@router.get(
    "/me",
    summary="Current account",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[UserData],
    responses={401: {"model": ErrorResponse}},
)
def me(request: Request, user: User = Depends(get_current_user)):
    return success(request, user_data(user))
