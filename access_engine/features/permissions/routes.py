"""
Permission API routes.

Exposes the evaluator as a check endpoint and lists the audit trail.
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from access_engine.core.database.engine import get_db
from access_engine.features.org.models import Team
from access_engine.features.permissions.evaluator import (
    AccessTarget,
    ResourceShape,
    can_access_owned_resource,
    evaluate,
)
from access_engine.features.permissions.models import AuditLog
from access_engine.features.permissions.schemas import (
    PermissionCheckRequest,
    PermissionCheckResponse,
    AuditLogResponse,
    AuditLogListResponse,
)
from access_engine.features.staff.models import Delegation
from access_engine.features.users.dependencies import get_current_principal, get_current_admin_user
from access_engine.features.users.models import User
from access_engine.features.users.schemas import Principal
from access_engine.utils import get_logger


log = get_logger(__name__)
router = APIRouter()


@router.post("/check", response_model=PermissionCheckResponse)
async def check_permission(
    check_request: PermissionCheckRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    """Check whether the current principal may perform an operation on a target."""
    shape = check_request.shape
    operation = check_request.operation

    if shape is ResourceShape.OWNED:
        allowed = await can_access_owned_resource(
            db, principal, check_request.owner_principal_id, operation
        )
    else:
        if shape is ResourceShape.TEAM:
            team = await db.get(Team, check_request.team_id)
            if team is None:
                raise HTTPException(status_code=404, detail="Team not found")
            target = AccessTarget(org_code=team.head_code)
        elif shape is ResourceShape.DELEGATION:
            delegation = await db.get(Delegation, check_request.delegation_id)
            if delegation is None:
                raise HTTPException(status_code=404, detail="Delegation not found")
            target = AccessTarget(org_code=delegation.org_code, staff_id=delegation.staff_id)
        else:
            target = AccessTarget(org_code=check_request.org_code)
        allowed = await evaluate(db, principal, shape, operation, target)
    
    return PermissionCheckResponse(
        has_permission=allowed,
        reason=None if allowed else "Permission denied"
    )


@router.get("/audit-logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    skip: int = 0,
    limit: int = 50,
    user_id: Optional[str] = None,
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user)  # Admin only
):
    """List audit logs with optional filtering."""
    stmt = select(AuditLog)
    
    if user_id:
        stmt = stmt.where(AuditLog.user_id == user_id)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    if resource_type:
        stmt = stmt.where(AuditLog.resource_type == resource_type)
    
    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = (await db.execute(count_stmt)).scalar() or 0
    
    stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(skip).limit(limit)
    result = await db.execute(stmt)
    logs = result.scalars().all()
    
    pages = (total + limit - 1) // limit if limit > 0 else 0
    page = (skip // limit) + 1 if limit > 0 else 1
    
    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(entry) for entry in logs],
        total=total,
        page=page,
        page_size=limit,
        pages=pages
    )
