"""
FastAPI guard dependencies backed by the permission evaluator, plus audit logging.

Guards turn a denial into a 403. Integrity errors raised while deciding are
left to the application's exception handlers.
"""
from typing import Any, Dict, Optional
from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from access_engine.core.database.engine import get_db
from access_engine.features.org.models import OrgNode, Team
from access_engine.features.permissions.evaluator import (
    Operation,
    can_read_org_node,
    can_write_org_node,
    can_read_team,
)
from access_engine.features.permissions.models import AuditLog
from access_engine.features.users.dependencies import get_current_principal
from access_engine.features.users.schemas import Principal
from access_engine.utils import get_logger


log = get_logger(__name__)


def require_org_node_access(operation: Operation):
    """
    FastAPI dependency factory guarding routes with a `{code}` path parameter.
    
    Usage:
        @router.get("/nodes/{code}")
        async def get_node(
            code: str,
            principal: Principal = Depends(require_org_node_access(Operation.READ))
        ):
            ...
    
    Returns:
        Dependency that returns the current principal when access is allowed
    
    Raises:
        HTTPException: 404 if the node does not exist, 403 if access is denied
    """
    async def org_node_dependency(
        code: str,
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal)
    ) -> Principal:
        if await db.get(OrgNode, code) is None:
            raise HTTPException(status_code=404, detail="Org node not found")
        
        if operation is Operation.READ:
            allowed = await can_read_org_node(db, principal, code)
        else:
            allowed = await can_write_org_node(db, principal, code)
        
        if not allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {operation.value.lower()} on org node {code}"
            )
        return principal
    
    return org_node_dependency


async def get_readable_team(
    team_id: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
) -> Team:
    """Load a team the current principal may read, or raise 404/403."""
    team = await db.get(Team, team_id)
    if team is None:
        raise HTTPException(status_code=404, detail="Team not found")
    if not await can_read_team(db, principal, team):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Permission denied: read on team {team_id}"
        )
    return team


# ============================================================================
# Audit Logging
# ============================================================================

async def create_audit_log(
    db: AsyncSession,
    user_id: Optional[str],
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Record an audit entry in the caller's transaction.
    
    Args:
        db: Database session
        user_id: Principal performing the action
        action: Action performed (e.g., "link", "create_delegation", "reassign_manager")
        resource_type: Type of resource (e.g., "org_node", "delegation", "staff")
        resource_id: ID of the resource
        details: Additional details
    
    Returns:
        Created AuditLog object
    """
    audit_log = AuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=details
    )
    db.add(audit_log)
    await db.flush()
    
    log.info(f"Audit: user={user_id} action={action} resource={resource_type}:{resource_id}")
    
    return audit_log
