"""
API v1 routes.

Defines REST endpoints for account creation and email confirmation.
Handlers are plain functions: FastAPI runs them in its threadpool, so the
blocking bcrypt, database and SMTP calls underneath do not stall the event loop.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.api.dependencies import get_base_url, get_confirmation_service
from src.api.models import (
    ChangeEmailRequest,
    ConfirmationSentResponse,
    CreateUserRequest,
    CreateUserResponse,
    ErrorResponse,
    MessageResponse,
    UserResponse,
)
from src.domain.confirmation import ConfirmationService
from src.domain.exceptions import (
    ConfirmationEmailInUse,
    ConfirmationTokenExpired,
    ConfirmationTokenMismatch,
    CouldNotSendEmail,
    DuplicateEmail,
    EmailAddressError,
    EmailAlreadyConfirmed,
    IdentityError,
    PasswordError,
    UserNotFound,
)
from src.domain.models import User
from src.domain.value_objects import EmailAddress, Password

router = APIRouter(tags=["v1"])

# Most specific first; the first isinstance match wins.
_ERROR_STATUS: list[tuple[type[IdentityError], int, str | None]] = [
    (UserNotFound, status.HTTP_404_NOT_FOUND, "User not found"),
    (DuplicateEmail, status.HTTP_409_CONFLICT, "Email already registered"),
    (ConfirmationEmailInUse, status.HTTP_409_CONFLICT, "Email already registered"),
    (EmailAlreadyConfirmed, status.HTTP_409_CONFLICT, "Email already confirmed"),
    (ConfirmationTokenExpired, 422, "Confirmation token expired"),
    (ConfirmationTokenMismatch, 422, "Invalid confirmation token"),
    (EmailAddressError, 422, None),
    (PasswordError, 422, None),
    (CouldNotSendEmail, status.HTTP_500_INTERNAL_SERVER_ERROR, "Could not send email"),
]


def to_http_exception(exc: IdentityError) -> HTTPException:
    """
    Map a domain error to an HTTP error.

    Validation errors carry their own message (it tells the user what to fix).
    Anything unmapped, UnknownError included, becomes a generic 500.
    """
    for error_type, status_code, detail in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=detail or str(exc))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )


def _load_user(service: ConfirmationService, user_id: UUID) -> User:
    try:
        return service.get_user(user_id)
    except IdentityError as exc:
        raise to_http_exception(exc) from None


@router.post(
    "/users",
    response_model=CreateUserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Email already registered"},
        422: {"description": "Validation error (invalid email or weak password)"},
    },
    summary="Create a user",
    description="Create an account. A confirmation link is emailed in the background; "
    "a delivery failure does not fail the request.",
)
def create_user(
    request_data: CreateUserRequest,
    service: ConfirmationService = Depends(get_confirmation_service),
    base_url: str = Depends(get_base_url),
) -> CreateUserResponse:
    """
    Create a user account.

    - **email**: Email address, normalized to lowercase
    - **password**: 8 to 100 characters and hard to guess
    """
    try:
        user_id = service.create_user(
            EmailAddress(request_data.email), Password(request_data.password), base_url
        )
    except IdentityError as exc:
        raise to_http_exception(exc) from None
    return CreateUserResponse(id=user_id)


@router.get(
    "/users/{user_id}",
    response_model=UserResponse,
    responses={404: {"model": ErrorResponse, "description": "User not found"}},
    summary="Get a user",
)
def get_user(
    user_id: UUID,
    service: ConfirmationService = Depends(get_confirmation_service),
) -> UserResponse:
    """Return the public view of an account."""
    user = _load_user(service, user_id)
    return UserResponse(
        id=user.id,
        email=str(user.email),
        new_email=str(user.new_email) if user.new_email is not None else None,
        email_confirmed_at=user.email_confirmed_at,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


@router.post(
    "/users/{user_id}/email/confirmation",
    response_model=ConfirmationSentResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        404: {"model": ErrorResponse, "description": "User not found"},
        409: {"model": ErrorResponse, "description": "Email already confirmed"},
        500: {"model": ErrorResponse, "description": "Could not send email"},
    },
    summary="Send a confirmation email",
    description="Issue a new confirmation token and email the link. "
    "Any previously issued token stops working.",
)
def send_email_confirmation(
    user_id: UUID,
    service: ConfirmationService = Depends(get_confirmation_service),
    base_url: str = Depends(get_base_url),
) -> ConfirmationSentResponse:
    """(Re)send the confirmation email for the current or pending address."""
    user = _load_user(service, user_id)
    try:
        expires_at = service.send_email_confirmation(user, base_url)
    except IdentityError as exc:
        raise to_http_exception(exc) from None
    return ConfirmationSentResponse(expires_at=expires_at)


@router.get(
    "/users/{user_id}/email/confirmation",
    response_model=MessageResponse,
    responses={
        404: {"model": ErrorResponse, "description": "User not found"},
        409: {"model": ErrorResponse, "description": "Email already confirmed or taken"},
        422: {"model": ErrorResponse, "description": "Token invalid or expired"},
    },
    summary="Confirm an email address",
    description="Target of the link sent by email.",
)
def confirm_email(
    user_id: UUID,
    token: str = Query(..., description="Token from the confirmation email"),
    service: ConfirmationService = Depends(get_confirmation_service),
) -> MessageResponse:
    """Confirm the account's email (or promote its pending new email)."""
    user = _load_user(service, user_id)
    try:
        service.confirm_email(user, token)
    except IdentityError as exc:
        raise to_http_exception(exc) from None
    return MessageResponse(message="Email confirmed")


@router.post(
    "/users/{user_id}/email/change",
    response_model=ConfirmationSentResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        404: {"model": ErrorResponse, "description": "User not found"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
        422: {"description": "Validation error"},
        500: {"model": ErrorResponse, "description": "Could not send email"},
    },
    summary="Change the email address",
    description="Email a confirmation link to the new address. The current address "
    "stays in use until the new one is confirmed.",
)
def change_email(
    user_id: UUID,
    request_data: ChangeEmailRequest,
    service: ConfirmationService = Depends(get_confirmation_service),
    base_url: str = Depends(get_base_url),
) -> ConfirmationSentResponse:
    """Start an email change."""
    user = _load_user(service, user_id)
    try:
        expires_at = service.request_email_change(
            user, EmailAddress(request_data.email), base_url
        )
    except IdentityError as exc:
        raise to_http_exception(exc) from None
    return ConfirmationSentResponse(expires_at=expires_at)
