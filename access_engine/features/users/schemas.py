"""
Pydantic schemas for user-related requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from access_engine.features.users.models import AppRole


class Principal(BaseModel):
    """
    An authenticated caller as the permission evaluator sees it.
    
    Build one from a User row with Principal.model_validate(user).
    """
    id: str
    role: AppRole
    
    model_config = ConfigDict(from_attributes=True, frozen=True)


class UserBase(BaseModel):
    """Base user schema with common fields."""
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)


class UserResponse(UserBase):
    """Schema for user responses."""
    id: str
    role: AppRole
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    
    # Resolved identity links (filled in by the /me route)
    org_code: str | None = None
    staff_id: str | None = None
    
    model_config = ConfigDict(from_attributes=True)


class UserPublic(BaseModel):
    """Public user information (limited fields)."""
    id: str
    name: str
    role: AppRole
    
    model_config = ConfigDict(from_attributes=True)


class RoleUpdate(BaseModel):
    """Schema for assigning a role to a user."""
    role: AppRole = Field(..., description="New role for the user")
