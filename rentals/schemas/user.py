"""
Pydantic schemas for user requests and responses.
Handles registration, admin user creation and profile responses.
"""

from pydantic import BaseModel, EmailStr, Field, validator
from typing import Optional, List
from datetime import datetime
from rentals.models.user import UserRole


def _check_password_strength(v: str) -> str:
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters long")

    # At least one letter and one number
    if not any(c.isalpha() for c in v):
        raise ValueError("Password must contain at least one letter")
    if not any(c.isdigit() for c in v):
        raise ValueError("Password must contain at least one number")

    return v


class UserBase(BaseModel):
    """Base user schema with common profile fields."""

    email: EmailStr = Field(
        ...,
        description="User's email address",
        examples=["guest@example.com"]
    )

    first_name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="User's first name",
        examples=["Asha"]
    )

    last_name: str = Field(
        "",
        max_length=100,
        description="User's last name",
        examples=["Rao"]
    )

    phone_number: Optional[str] = Field(
        None,
        max_length=32,
        description="Contact phone number",
        examples=["+91 98765 43210"]
    )

    @validator('email')
    def normalize_email(cls, v):
        """Normalize email to lowercase."""
        return v.lower().strip()

    @validator('first_name', 'last_name')
    def strip_names(cls, v):
        return v.strip()


class RegisterRequest(UserBase):
    """Self-service registration. The account always gets the 'user' role."""

    password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="User's password (minimum 8 characters)",
        examples=["securepassword123"]
    )

    @validator('password')
    def validate_password(cls, v):
        """Validate password strength."""
        return _check_password_strength(v)


class UserCreate(RegisterRequest):
    """Schema for an administrator creating a user with any role."""

    role: UserRole = Field(
        UserRole.USER,
        description="User's role (default: user)",
        examples=["owner"]
    )


class UserResponse(BaseModel):
    """User response schema (excluding sensitive data)."""

    id: str = Field(..., description="User's unique identifier")
    email: EmailStr
    first_name: str
    last_name: str
    full_name: str
    phone_number: Optional[str] = None
    role: UserRole
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    """Schema for paginated user list response."""

    users: List[UserResponse] = Field(..., description="List of users")
    total: int = Field(..., description="Total number of users matching the criteria")
    page: int = Field(..., description="Current page number")
    page_size: int = Field(..., description="Number of users per page")
