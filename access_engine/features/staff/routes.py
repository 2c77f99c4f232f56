"""
Staff and delegation API routes.
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from access_engine.core.database.engine import get_db
from access_engine.features.permissions.dependencies import require_org_node_access
from access_engine.features.permissions.evaluator import Operation, can_read_delegation
from access_engine.features.permissions.identity import resolve_staff_id
from access_engine.features.staff.assignments import assigned_staff_ids, staff_delegations
from access_engine.features.staff.models import Delegation, StaffIdentity
from access_engine.features.staff.schemas import DelegationResponse, StaffResponse
from access_engine.features.users.dependencies import get_current_principal
from access_engine.features.users.schemas import Principal


router = APIRouter()


@router.get("/me/delegations", response_model=List[DelegationResponse])
async def list_my_delegations(
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """List the current user's delegations. Empty for users without a staff record."""
    staff_id = await resolve_staff_id(db, principal.id)
    if staff_id is None:
        return []
    return await staff_delegations(db, staff_id, include_inactive=include_inactive)


@router.get("/delegations/{delegation_id}", response_model=DelegationResponse)
async def get_delegation(
    delegation_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Get a delegation the current user may read."""
    delegation = await db.get(Delegation, delegation_id)
    if delegation is None:
        raise HTTPException(status_code=404, detail="Delegation not found")
    
    if not await can_read_delegation(db, principal, delegation):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Permission denied: read on delegation {delegation_id}"
        )
    return delegation


@router.get("/nodes/{code}/staff", response_model=List[StaffResponse])
async def list_supporting_staff(
    code: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_org_node_access(Operation.READ))
):
    """List staff members actively assigned to an org node."""
    staff_ids = await assigned_staff_ids(db, code)
    if not staff_ids:
        return []
    result = await db.execute(
        select(StaffIdentity).where(StaffIdentity.id.in_(staff_ids)).order_by(StaffIdentity.name)
    )
    return result.scalars().all()
