"""
Permission evaluator.

Every decision is looked up in DECISION_TABLE by (role, resource shape,
operation). An entry names one or more strategies; access is granted when any
of them allows it. A missing entry denies, and so does a strategy that needs
an identity the principal does not have.

Denials are plain False. Integrity errors raised by the resolvers (an org
chart cycle) propagate unchanged.
"""
import enum
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from access_engine.features.org.hierarchy import is_subordinate_of
from access_engine.features.org.models import Team
from access_engine.features.permissions.identity import resolve_org_code, resolve_staff_id
from access_engine.features.staff.assignments import assigned_org_codes
from access_engine.features.staff.models import Delegation
from access_engine.features.users.models import AppRole
from access_engine.features.users.schemas import Principal
from access_engine.utils import get_logger


log = get_logger(__name__)


class ResourceShape(str, enum.Enum):
    ORG_NODE = "org_node"
    TEAM = "team"
    DELEGATION = "delegation"
    OWNED = "owned"


class Operation(str, enum.Enum):
    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class Strategy(str, enum.Enum):
    ADMIN_ALL = "admin_all"
    SELF_ONLY = "self_only"
    SELF_PLUS_SUBORDINATES = "self_plus_subordinates"
    ASSIGNED_CASCADE = "assigned_cascade"
    OWN_STAFF_RECORD = "own_staff_record"
    OWNER = "owner"


@dataclass(frozen=True)
class AccessTarget:
    """What a decision is about, reduced to the identities strategies compare against."""
    org_code: Optional[str] = None
    staff_id: Optional[str] = None
    owner_principal_id: Optional[str] = None


_A, _M, _S, _V, _C = AppRole.ADMIN, AppRole.MANAGER, AppRole.STAFF, AppRole.ADVISOR, AppRole.CANDIDATE
_ORG, _TEAM, _DLG, _OWN = ResourceShape.ORG_NODE, ResourceShape.TEAM, ResourceShape.DELEGATION, ResourceShape.OWNED
_R, _U = Operation.READ, Operation.UPDATE

DECISION_TABLE: dict[tuple[AppRole, ResourceShape, Operation], tuple[Strategy, ...]] = {
    # Org nodes
    (_A, _ORG, _R): (Strategy.ADMIN_ALL,),
    (_M, _ORG, _R): (Strategy.SELF_PLUS_SUBORDINATES,),
    (_S, _ORG, _R): (Strategy.ASSIGNED_CASCADE,),
    (_V, _ORG, _R): (Strategy.SELF_ONLY,),
    (_C, _ORG, _R): (Strategy.SELF_ONLY,),
    (_A, _ORG, _U): (Strategy.ADMIN_ALL,),
    (_M, _ORG, _U): (Strategy.SELF_ONLY,),
    (_S, _ORG, _U): (Strategy.SELF_ONLY,),
    (_V, _ORG, _U): (Strategy.SELF_ONLY,),
    (_C, _ORG, _U): (Strategy.SELF_ONLY,),
    (_A, _ORG, Operation.CREATE): (Strategy.ADMIN_ALL,),
    (_A, _ORG, Operation.DELETE): (Strategy.ADMIN_ALL,),
    # Teams (target is the head's org code)
    (_A, _TEAM, _R): (Strategy.ADMIN_ALL,),
    (_M, _TEAM, _R): (Strategy.SELF_PLUS_SUBORDINATES,),
    (_S, _TEAM, _R): (Strategy.ASSIGNED_CASCADE,),
    (_V, _TEAM, _R): (Strategy.SELF_ONLY,),
    (_C, _TEAM, _R): (Strategy.SELF_ONLY,),
    # Delegations (target is the delegation's staff id and org code)
    (_A, _DLG, _R): (Strategy.ADMIN_ALL,),
    (_S, _DLG, _R): (Strategy.OWN_STAFF_RECORD,),
    (_M, _DLG, _R): (Strategy.SELF_PLUS_SUBORDINATES,),
    (_V, _DLG, _R): (Strategy.SELF_ONLY,),
    (_C, _DLG, _R): (Strategy.SELF_ONLY,),
    # Owned resources (target org code is the owner's resolved code)
    (_A, _OWN, _R): (Strategy.ADMIN_ALL,),
    (_M, _OWN, _R): (Strategy.OWNER, Strategy.SELF_PLUS_SUBORDINATES),
    (_S, _OWN, _R): (Strategy.OWNER, Strategy.ASSIGNED_CASCADE),
    (_V, _OWN, _R): (Strategy.OWNER, Strategy.SELF_ONLY),
    (_C, _OWN, _R): (Strategy.OWNER, Strategy.SELF_ONLY),
}
for _role in AppRole:
    for _op in (Operation.CREATE, Operation.UPDATE, Operation.DELETE):
        DECISION_TABLE[(_role, _OWN, _op)] = (
            (Strategy.ADMIN_ALL,) if _role is AppRole.ADMIN else (Strategy.OWNER,)
        )


# ============================================================================
# Strategies
# ============================================================================

async def _admin_all(db: AsyncSession, principal: Principal, target: AccessTarget) -> bool:
    return True


async def _self_only(db: AsyncSession, principal: Principal, target: AccessTarget) -> bool:
    if target.org_code is None:
        return False
    own_code = await resolve_org_code(db, principal.id)
    return own_code is not None and own_code == target.org_code


async def _self_plus_subordinates(db: AsyncSession, principal: Principal, target: AccessTarget) -> bool:
    if target.org_code is None:
        return False
    own_code = await resolve_org_code(db, principal.id)
    if own_code is None:
        return False
    if own_code == target.org_code:
        return True
    return await is_subordinate_of(db, target.org_code, own_code)


async def _assigned_cascade(db: AsyncSession, principal: Principal, target: AccessTarget) -> bool:
    if target.org_code is None:
        return False
    staff_id = await resolve_staff_id(db, principal.id)
    if staff_id is None:
        return False
    codes = await assigned_org_codes(db, staff_id)
    if target.org_code in codes:
        return True
    # A delegation to a manager also covers that manager's subtree
    for code in sorted(codes):
        if await is_subordinate_of(db, target.org_code, code):
            return True
    return False


async def _own_staff_record(db: AsyncSession, principal: Principal, target: AccessTarget) -> bool:
    if target.staff_id is None:
        return False
    staff_id = await resolve_staff_id(db, principal.id)
    return staff_id is not None and staff_id == target.staff_id


async def _owner(db: AsyncSession, principal: Principal, target: AccessTarget) -> bool:
    return target.owner_principal_id is not None and target.owner_principal_id == principal.id


StrategyHandler = Callable[[AsyncSession, Principal, AccessTarget], Awaitable[bool]]

STRATEGY_HANDLERS: dict[Strategy, StrategyHandler] = {
    Strategy.ADMIN_ALL: _admin_all,
    Strategy.SELF_ONLY: _self_only,
    Strategy.SELF_PLUS_SUBORDINATES: _self_plus_subordinates,
    Strategy.ASSIGNED_CASCADE: _assigned_cascade,
    Strategy.OWN_STAFF_RECORD: _own_staff_record,
    Strategy.OWNER: _owner,
}


# ============================================================================
# Decision entry points
# ============================================================================

async def evaluate(
    db: AsyncSession,
    principal: Principal,
    shape: ResourceShape,
    operation: Operation,
    target: AccessTarget
) -> bool:
    """
    Decide one (principal, shape, operation, target) request via DECISION_TABLE.

    Returns:
        True if any listed strategy allows the request, False otherwise
    """
    try:
        role = AppRole(principal.role)
    except ValueError:
        log.debug(f"Principal {principal.id} has unknown role {principal.role!r} - denied")
        return False

    strategies = DECISION_TABLE.get((role, shape, operation), ())
    for strategy in strategies:
        if await STRATEGY_HANDLERS[strategy](db, principal, target):
            log.debug(
                f"Principal {principal.id} ({role.value}) granted {operation.value} on "
                f"{shape.value} {target} via {strategy.value}"
            )
            return True

    log.debug(f"Principal {principal.id} ({role.value}) denied {operation.value} on {shape.value} {target}")
    return False


async def can_read_org_node(db: AsyncSession, principal: Principal, target_code: str) -> bool:
    return await evaluate(
        db, principal, ResourceShape.ORG_NODE, Operation.READ, AccessTarget(org_code=target_code)
    )


async def can_write_org_node(db: AsyncSession, principal: Principal, target_code: str) -> bool:
    """Only admins edit records other than their own, managers included."""
    return await evaluate(
        db, principal, ResourceShape.ORG_NODE, Operation.UPDATE, AccessTarget(org_code=target_code)
    )


async def can_read_team(db: AsyncSession, principal: Principal, team: Team) -> bool:
    """Team visibility is the visibility of its head node; a headless team is admin-only."""
    return await evaluate(
        db, principal, ResourceShape.TEAM, Operation.READ, AccessTarget(org_code=team.head_code)
    )


async def can_read_delegation(db: AsyncSession, principal: Principal, delegation: Delegation) -> bool:
    return await evaluate(
        db,
        principal,
        ResourceShape.DELEGATION,
        Operation.READ,
        AccessTarget(org_code=delegation.org_code, staff_id=delegation.staff_id)
    )


async def can_access_owned_resource(
    db: AsyncSession,
    principal: Principal,
    owner_principal_id: str,
    operation: Operation
) -> bool:
    """
    Decide access to any record tagged with an owner principal id.

    Writes are limited to the owner and admins. Reads additionally follow the
    same hierarchy and delegation cascade as org nodes, applied to the
    owner's linked org node; an owner with no org node is visible only to
    itself and admins.
    """
    org_code = None
    if operation is Operation.READ and owner_principal_id != principal.id:
        org_code = await resolve_org_code(db, owner_principal_id)
    return await evaluate(
        db,
        principal,
        ResourceShape.OWNED,
        operation,
        AccessTarget(org_code=org_code, owner_principal_id=owner_principal_id)
    )
