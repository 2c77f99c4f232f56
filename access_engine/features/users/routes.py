"""
User feature routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from access_engine.core.database.engine import get_db
from access_engine.features.admin import service
from access_engine.features.permissions.identity import resolve_org_code, resolve_staff_id
from access_engine.features.users.models import User
from access_engine.features.users.schemas import Principal, RoleUpdate, UserPublic, UserResponse
from access_engine.features.users.dependencies import get_current_user, get_current_principal


router = APIRouter(tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Get current user's profile with the org node and staff record it is linked to."""
    profile = UserResponse.model_validate(user)
    profile.org_code = await resolve_org_code(db, user.id)
    profile.staff_id = await resolve_staff_id(db, user.id)
    return profile


@router.get("/{user_id}", response_model=UserPublic)
async def get_user_by_id(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_current_principal)]
):
    """Get public user profile by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    
    return user


@router.patch("/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: str,
    role_update: RoleUpdate,
    admin: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Assign a role to a user (admin only)."""
    return await service.set_role(db, admin, user_id, role_update.role)
