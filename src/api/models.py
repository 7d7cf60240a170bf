"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Email and password policy is enforced by the domain value objects; these
models only shape the payloads.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class CreateUserRequest(BaseModel):
    """Request model for account creation."""

    email: EmailStr
    password: str = Field(..., description="User password (8 to 100 characters, not guessable)")


class CreateUserResponse(BaseModel):
    """Response model for successful account creation."""

    id: UUID


class UserResponse(BaseModel):
    """Public view of an account. Never includes password hash or token."""

    id: UUID
    email: str
    new_email: str | None = None
    email_confirmed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class ChangeEmailRequest(BaseModel):
    """Request model for starting an email change."""

    email: EmailStr


class ConfirmationSentResponse(BaseModel):
    """Response model when a confirmation email has been sent."""

    expires_at: datetime


class MessageResponse(BaseModel):
    """Response model carrying a human-readable outcome."""

    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
