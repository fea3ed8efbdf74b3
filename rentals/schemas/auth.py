"""
Pydantic schemas for authentication requests and responses.
Handles login, token refresh, and current-user data.
"""

from pydantic import BaseModel, EmailStr, Field, validator
from typing import List
from rentals.schemas.user import UserResponse


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr = Field(
        ...,
        description="User's email address",
        examples=["guest@example.com"]
    )
    password: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="User's password"
    )

    @validator('email')
    def normalize_email(cls, v):
        """Normalize email to lowercase."""
        return v.lower().strip()


class RefreshTokenRequest(BaseModel):
    """Refresh token request schema."""

    refresh_token: str = Field(..., description="Valid refresh token")


class AccessTokenResponse(BaseModel):
    """Access token response schema."""

    access_token: str = Field(..., description="New JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token expiration time in seconds", examples=[1800])


class CurrentUserResponse(UserResponse):
    """Current user with the actions their role allows."""

    permissions: List[str] = Field(
        default_factory=list,
        description="Actions allowed for the user's role",
        examples=[["property.view", "booking.create"]]
    )


class LoginResponse(BaseModel):
    """Complete login response schema."""

    user: CurrentUserResponse = Field(..., description="Authenticated user information")
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token expiration time in seconds", examples=[1800])
