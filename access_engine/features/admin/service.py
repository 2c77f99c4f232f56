"""
Administrative mutators.

The only code that writes identity links, manager_code, org nodes, staff
identities and delegations. Every function checks the admin role first and
raises NotAuthorizedToAdminister otherwise, then validates references and
raises an IntegrityViolation subclass for anything dangling or conflicting.

Functions flush but never commit: the caller's session is the transaction.
"""
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from access_engine.features.admin.schemas import BulkAssignResult, DelegationDetail, UserDetails
from access_engine.features.org.models import OrgNode, OrgNodeStatus, Team
from access_engine.features.org.schemas import OrgNodeResponse
from access_engine.features.permissions.dependencies import create_audit_log
from access_engine.features.permissions.exceptions import (
    DelegationConflict,
    DelegationNotFound,
    HierarchyCycleError,
    IntegrityViolation,
    LinkConflict,
    NotAuthorizedToAdminister,
    OrgNodeNotFound,
    PrincipalNotFound,
    StaffNotFound,
    TeamNotFound,
)
from access_engine.features.permissions.identity import resolve_org_code, resolve_staff_id
from access_engine.features.staff.assignments import staff_delegations
from access_engine.features.staff.models import Delegation, StaffIdentity
from access_engine.features.staff.schemas import StaffResponse
from access_engine.features.users.models import AppRole, User
from access_engine.features.users.schemas import Principal, UserResponse
from access_engine.utils import get_logger


log = get_logger(__name__)


def require_admin(principal: Principal, action: str) -> None:
    """Raise NotAuthorizedToAdminister unless the principal is an admin."""
    if principal.role is not AppRole.ADMIN:
        log.info(f"Principal {principal.id} ({principal.role.value}) refused: {action}")
        raise NotAuthorizedToAdminister(action)


async def _get_org_node(db: AsyncSession, code: str) -> OrgNode:
    node = await db.get(OrgNode, code)
    if node is None:
        raise OrgNodeNotFound(code)
    return node


async def _get_staff(db: AsyncSession, staff_id: str) -> StaffIdentity:
    staff = await db.get(StaffIdentity, staff_id)
    if staff is None:
        raise StaffNotFound(staff_id)
    return staff


async def _get_user(db: AsyncSession, principal_id: str) -> User:
    user = await db.get(User, principal_id)
    if user is None or not user.is_active:
        raise PrincipalNotFound(principal_id)
    return user


# ============================================================================
# Identity links
# ============================================================================

async def link_principal_to_org_node(
    db: AsyncSession,
    admin: Principal,
    principal_id: str,
    org_code: str
) -> OrgNode:
    """
    Link a principal to an org node (one-to-one).

    Repeating an existing link is a no-op.

    Raises:
        LinkConflict: the node is linked to someone else, or the principal is
            linked to another node
    """
    require_admin(admin, "link users to org nodes")
    await _get_user(db, principal_id)
    node = await _get_org_node(db, org_code)

    if node.principal_id == principal_id:
        return node
    if node.principal_id is not None:
        raise LinkConflict(f"Org node {org_code} is already linked to another user")

    result = await db.execute(select(OrgNode.code).where(OrgNode.principal_id == principal_id))
    existing = result.scalar_one_or_none()
    if existing is not None:
        raise LinkConflict(f"User is already linked to org node {existing}. Unlink first if needed.")

    node.principal_id = principal_id
    await db.flush()
    await db.refresh(node)
    await create_audit_log(
        db, admin.id, "link_principal", "org_node", org_code, {"principal_id": principal_id}
    )
    return node


async def unlink_principal_from_org_node(
    db: AsyncSession,
    admin: Principal,
    org_code: str
) -> str:
    """
    Remove the principal link from an org node.

    Returns:
        The previously linked principal id
    """
    require_admin(admin, "unlink users from org nodes")
    node = await _get_org_node(db, org_code)
    if node.principal_id is None:
        raise IntegrityViolation(f"Org node {org_code} is not linked to any user")

    previous = node.principal_id
    node.principal_id = None
    await db.flush()
    await create_audit_log(
        db, admin.id, "unlink_principal", "org_node", org_code, {"previous_principal_id": previous}
    )
    return previous


async def link_principal_to_staff(
    db: AsyncSession,
    admin: Principal,
    principal_id: str,
    staff_id: str
) -> StaffIdentity:
    """Link a principal to a staff identity, with the same rules as org nodes."""
    require_admin(admin, "link users to staff records")
    await _get_user(db, principal_id)
    staff = await _get_staff(db, staff_id)

    if staff.principal_id == principal_id:
        return staff
    if staff.principal_id is not None:
        raise LinkConflict("Staff record is already linked to another user")

    result = await db.execute(select(StaffIdentity.id).where(StaffIdentity.principal_id == principal_id))
    if result.scalar_one_or_none() is not None:
        raise LinkConflict("User is already linked to a staff record")

    staff.principal_id = principal_id
    await db.flush()
    await db.refresh(staff)
    await create_audit_log(
        db, admin.id, "link_principal", "staff", staff_id, {"principal_id": principal_id}
    )
    return staff


async def set_role(
    db: AsyncSession,
    admin: Principal,
    principal_id: str,
    role: AppRole
) -> User:
    """Assign a role to a principal. Admins cannot change their own role."""
    require_admin(admin, "change user roles")
    user = await _get_user(db, principal_id)
    if user.id == admin.id:
        raise IntegrityViolation("Cannot modify your own role")

    previous = user.role
    user.role = role
    await db.flush()
    await db.refresh(user)
    await create_audit_log(
        db, admin.id, "set_role", "user", principal_id,
        {"previous_role": previous.value, "role": role.value}
    )
    return user


async def get_user_details(db: AsyncSession, admin: Principal, principal_id: str) -> UserDetails:
    """
    Admin view of one user: profile, linked org node, linked staff record and
    every delegation of that staff record, inactive ones included.

    Deactivated users are shown too.
    """
    require_admin(admin, "access detailed user information")
    user = await db.get(User, principal_id)
    if user is None:
        raise PrincipalNotFound(principal_id)

    profile = UserResponse.model_validate(user)
    profile.org_code = await resolve_org_code(db, user.id)
    profile.staff_id = await resolve_staff_id(db, user.id)

    org_node = await db.get(OrgNode, profile.org_code) if profile.org_code else None
    staff = await db.get(StaffIdentity, profile.staff_id) if profile.staff_id else None

    delegations = []
    if staff is not None:
        rows = await staff_delegations(db, staff.id, include_inactive=True)
        names = {}
        if rows:
            result = await db.execute(
                select(OrgNode.code, OrgNode.name).where(OrgNode.code.in_({row.org_code for row in rows}))
            )
            names = dict(result.all())
        for row in rows:
            detail = DelegationDetail.model_validate(row)
            detail.advisor_name = names.get(row.org_code)
            delegations.append(detail)

    return UserDetails(
        user_id=user.id,
        profile=profile,
        org_node=OrgNodeResponse.model_validate(org_node) if org_node else None,
        staff=StaffResponse.model_validate(staff) if staff else None,
        delegations=delegations,
    )


# ============================================================================
# Org chart
# ============================================================================

async def create_org_node(
    db: AsyncSession,
    admin: Principal,
    code: str,
    name: Optional[str] = None,
    manager_code: Optional[str] = None,
    status: Optional[str] = OrgNodeStatus.ACTIVE,
    team_id: Optional[str] = None,
    **profile: Optional[str]
) -> OrgNode:
    """Create an org node. The code must be new; the manager and team must exist."""
    require_admin(admin, "create org nodes")
    if await db.get(OrgNode, code) is not None:
        raise IntegrityViolation(f"Org node {code} already exists")
    if manager_code is not None:
        await _get_org_node(db, manager_code)
    if team_id is not None and await db.get(Team, team_id) is None:
        raise TeamNotFound(team_id)

    node = OrgNode(
        code=code,
        name=name,
        manager_code=manager_code,
        status=status,
        team_id=team_id,
        **profile
    )
    db.add(node)
    await db.flush()
    await db.refresh(node)
    await create_audit_log(
        db, admin.id, "create", "org_node", code, {"manager_code": manager_code, "name": name}
    )
    return node


async def delete_org_node(db: AsyncSession, admin: Principal, org_code: str) -> None:
    """
    Delete an org node.

    Refuses while the node still has direct reports or active delegations, so
    deletion never orphans part of the chart or a live grant.
    """
    require_admin(admin, "delete org nodes")
    node = await _get_org_node(db, org_code)

    reports = await db.execute(
        select(func.count()).select_from(OrgNode).where(OrgNode.manager_code == org_code)
    )
    if reports.scalar():
        raise IntegrityViolation(f"Org node {org_code} still has direct reports; reassign them first")

    delegations = await db.execute(
        select(func.count()).select_from(Delegation).where(
            Delegation.org_code == org_code,
            Delegation.active.is_(True)
        )
    )
    if delegations.scalar():
        raise IntegrityViolation(f"Org node {org_code} still has active delegations")

    await db.delete(node)
    await db.flush()
    await create_audit_log(db, admin.id, "delete", "org_node", org_code)


async def _chain_to(db: AsyncSession, start_code: str, target_code: str) -> Optional[list[str]]:
    """
    Management chain from start_code up to target_code, or None if the walk
    reaches a root or an existing loop first.

    Not bounded by MAX_HIERARCHY_DEPTH: a write must see the whole chain.
    """
    chain = [start_code]
    current = start_code
    while current != target_code:
        result = await db.execute(select(OrgNode.manager_code).where(OrgNode.code == current))
        current = result.scalar_one_or_none()
        if current is None or current in chain:
            return None
        chain.append(current)
    return chain


async def reassign_manager(
    db: AsyncSession,
    admin: Principal,
    org_code: str,
    manager_code: Optional[str]
) -> OrgNode:
    """
    Point an org node at a new manager (or detach it with None).

    Raises:
        HierarchyCycleError: the new manager is the node itself or one of its
            subordinates
    """
    require_admin(admin, "reassign managers")
    node = await _get_org_node(db, org_code)

    if manager_code is not None:
        await _get_org_node(db, manager_code)
        chain = await _chain_to(db, manager_code, org_code)
        if chain is not None:
            raise HierarchyCycleError([org_code] + chain)

    previous = node.manager_code
    node.manager_code = manager_code
    await db.flush()
    await db.refresh(node)
    await create_audit_log(
        db, admin.id, "reassign_manager", "org_node", org_code,
        {"previous_manager_code": previous, "manager_code": manager_code}
    )
    return node


# ============================================================================
# Staff and delegations
# ============================================================================

async def create_staff_identity(
    db: AsyncSession,
    admin: Principal,
    name: Optional[str] = None,
    email: Optional[str] = None
) -> StaffIdentity:
    require_admin(admin, "create staff records")
    staff = StaffIdentity(name=name, email=email)
    db.add(staff)
    await db.flush()
    await db.refresh(staff)
    await create_audit_log(db, admin.id, "create", "staff", staff.id, {"name": name})
    return staff


async def create_delegation(
    db: AsyncSession,
    admin: Principal,
    staff_id: str,
    org_code: str,
    notes: Optional[str] = None
) -> Delegation:
    """
    Delegate an org node to a staff member.

    Raises:
        StaffNotFound / OrgNodeNotFound: dangling reference
        DelegationConflict: an active delegation already exists for the pair
    """
    require_admin(admin, "assign staff to advisors")
    await _get_staff(db, staff_id)
    await _get_org_node(db, org_code)

    existing = await db.execute(
        select(Delegation.id).where(
            Delegation.staff_id == staff_id,
            Delegation.org_code == org_code,
            Delegation.active.is_(True)
        )
    )
    if existing.first() is not None:
        raise DelegationConflict("staff is already assigned to this advisor")

    delegation = Delegation(
        staff_id=staff_id,
        org_code=org_code,
        active=True,
        assigned_at=datetime.now(timezone.utc),
        created_by=admin.id,
        notes=notes
    )
    db.add(delegation)
    await db.flush()
    await create_audit_log(
        db, admin.id, "create_delegation", "delegation", delegation.id,
        {"staff_id": staff_id, "org_code": org_code}
    )
    return delegation


async def deactivate_delegation(
    db: AsyncSession,
    admin: Principal,
    delegation_id: str
) -> Delegation:
    """
    Soft-deactivate a delegation. The row is kept; an already inactive
    delegation is returned unchanged.
    """
    require_admin(admin, "remove staff assignments")
    delegation = await db.get(Delegation, delegation_id)
    if delegation is None:
        raise DelegationNotFound(delegation_id)
    if not delegation.active:
        return delegation

    stamp = f"Deactivated by admin on {datetime.now(timezone.utc).isoformat(timespec='seconds')}"
    delegation.active = False
    delegation.notes = f"{delegation.notes} | {stamp}" if delegation.notes else stamp
    await db.flush()
    await create_audit_log(
        db, admin.id, "deactivate_delegation", "delegation", delegation_id,
        {"staff_id": delegation.staff_id, "org_code": delegation.org_code}
    )
    return delegation


async def bulk_assign(
    db: AsyncSession,
    admin: Principal,
    staff_id: str,
    org_codes: list[str],
    notes: Optional[str] = None
) -> BulkAssignResult:
    """
    Delegate several org nodes to one staff member.

    The staff identity is checked once; after that each code is processed on
    its own and an integrity failure on one code is recorded as
    "<code>: <message>" without stopping the rest.
    """
    require_admin(admin, "make bulk assignments")
    await _get_staff(db, staff_id)

    result = BulkAssignResult()
    for code in org_codes:
        try:
            delegation = await create_delegation(db, admin, staff_id, code, notes)
        except IntegrityViolation as exc:
            result.error_count += 1
            result.errors.append(f"{code}: {exc.message}")
            continue
        result.success_count += 1
        result.delegation_ids.append(delegation.id)

    log.info(
        f"Bulk assignment for staff {staff_id}: "
        f"{result.success_count} successes, {result.error_count} errors"
    )
    return result
