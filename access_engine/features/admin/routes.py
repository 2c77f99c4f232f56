"""
Administrative API routes.

Handlers never check the role themselves: the service raises
NotAuthorizedToAdminister, which the application maps to a 403 distinct from
an ordinary permission denial.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from access_engine.core.database.engine import get_db
from access_engine.features.admin import service
from access_engine.features.admin.schemas import (
    UserDetails,
    LinkPrincipalToOrgNode,
    LinkPrincipalToStaff,
    OrgNodeCreate,
    ManagerReassign,
    StaffCreate,
    DelegationCreate,
    BulkAssignRequest,
    BulkAssignResult,
)
from access_engine.features.org.schemas import OrgNodeResponse
from access_engine.features.staff.schemas import DelegationResponse, StaffResponse
from access_engine.features.users.dependencies import get_current_principal
from access_engine.features.users.schemas import Principal


router = APIRouter()


# ============================================================================
# Identity Link Routes
# ============================================================================

@router.post("/links/org-node", response_model=OrgNodeResponse)
async def link_user_to_org_node(
    link: LinkPrincipalToOrgNode,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_principal)
):
    """Link a user to an org node (admin only)."""
    return await service.link_principal_to_org_node(db, admin, link.principal_id, link.org_code)


@router.delete("/links/org-node/{code}")
async def unlink_user_from_org_node(
    code: str,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_principal)
):
    """Remove the user link from an org node (admin only)."""
    previous = await service.unlink_principal_from_org_node(db, admin, code)
    return {"message": "User unlinked from org node", "org_code": code, "previous_principal_id": previous}


@router.post("/links/staff", response_model=StaffResponse)
async def link_user_to_staff(
    link: LinkPrincipalToStaff,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_principal)
):
    """Link a user to a staff record (admin only)."""
    return await service.link_principal_to_staff(db, admin, link.principal_id, link.staff_id)


# ============================================================================
# Org Chart Routes
# ============================================================================

@router.post("/nodes", response_model=OrgNodeResponse, status_code=status.HTTP_201_CREATED)
async def create_org_node(
    node: OrgNodeCreate,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_principal)
):
    """Create an org node (admin only)."""
    return await service.create_org_node(db, admin, **node.model_dump())


@router.delete("/nodes/{code}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_org_node(
    code: str,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_principal)
):
    """Delete an org node with no reports and no active delegations (admin only)."""
    await service.delete_org_node(db, admin, code)
    return None


@router.patch("/nodes/{code}/manager", response_model=OrgNodeResponse)
async def reassign_manager(
    code: str,
    reassign: ManagerReassign,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_principal)
):
    """Move an org node under a different manager (admin only)."""
    return await service.reassign_manager(db, admin, code, reassign.manager_code)


# ============================================================================
# Staff and Delegation Routes
# ============================================================================

@router.post("/staff", response_model=StaffResponse, status_code=status.HTTP_201_CREATED)
async def create_staff(
    staff: StaffCreate,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_principal)
):
    """Create a staff record (admin only)."""
    return await service.create_staff_identity(db, admin, staff.name, staff.email)


@router.post("/delegations", response_model=DelegationResponse, status_code=status.HTTP_201_CREATED)
async def create_delegation(
    delegation: DelegationCreate,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_principal)
):
    """Assign a staff member to an advisor (admin only)."""
    return await service.create_delegation(
        db, admin, delegation.staff_id, delegation.org_code, delegation.notes
    )


@router.post("/delegations/bulk", response_model=BulkAssignResult)
async def bulk_assign(
    request: BulkAssignRequest,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_principal)
):
    """Assign a staff member to several advisors, reporting failures per code (admin only)."""
    return await service.bulk_assign(db, admin, request.staff_id, request.org_codes, request.notes)


@router.post("/delegations/{delegation_id}/deactivate", response_model=DelegationResponse)
async def deactivate_delegation(
    delegation_id: str,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_principal)
):
    """Deactivate a delegation; the record is kept for history (admin only)."""
    return await service.deactivate_delegation(db, admin, delegation_id)


# ============================================================================
# User Details
# ============================================================================

@router.get("/users/{user_id}", response_model=UserDetails)
async def get_user_details(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(get_current_principal)
):
    """Profile, links and full delegation history of a user (admin only)."""
    return await service.get_user_details(db, admin, user_id)
