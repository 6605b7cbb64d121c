"""
Auth-related Pydantic schemas for request/response validation.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from catering_ops.core import roles


class UserLogin(BaseModel):
    """Schema for user login request."""
    email: EmailStr
    password: str


class Token(BaseModel):
    """Schema for token response."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRefresh(BaseModel):
    """Schema for token refresh request."""
    refresh_token: str


class UserCreate(BaseModel):
    """Staff account created by an admin."""
    email: EmailStr
    password: str = Field(min_length=8)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str = roles.BRANCH_STAFF
    station_assignment: Optional[str] = None
    branch_slugs: List[str] = []

    @field_validator("role")
    @classmethod
    def role_must_exist(cls, v: str) -> str:
        if v not in roles.ALL_ROLES:
            raise ValueError(f"role must be one of: {', '.join(roles.ALL_ROLES)}")
        return v


class UserResponse(BaseModel):
    """Schema for user response (without password)."""
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    station_assignment: Optional[str] = None
    branch_slugs: List[str] = []
    is_active: bool

    model_config = ConfigDict(from_attributes=True)

    @field_validator("branch_slugs", mode="before")
    @classmethod
    def default_branches(cls, v):
        return v or []
