"""
Hierarchy resolver for the org chart.

Traversals are explicit loops over the manager_code edges with a visited set
and a hard depth cap, so a corrupted chart (a cycle or a runaway chain) ends
in a bounded number of queries. Nothing is cached: every call reads the
current snapshot through the caller's session.
"""
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from access_engine.core import config
from access_engine.features.org.models import OrgNode, Team
from access_engine.features.permissions.exceptions import HierarchyCycleError
from access_engine.utils import get_logger


log = get_logger(__name__)


def _depth_cap(max_depth: Optional[int]) -> int:
    return config.MAX_HIERARCHY_DEPTH if max_depth is None else max_depth


async def _manager_code_of(db: AsyncSession, code: str) -> Optional[str]:
    result = await db.execute(select(OrgNode.manager_code).where(OrgNode.code == code))
    return result.scalar_one_or_none()


async def subordinates_of(
    db: AsyncSession,
    org_code: str,
    max_depth: Optional[int] = None
) -> dict[str, int]:
    """
    Compute the subordinate closure of an org node.
    
    Breadth-first over reverse manager_code edges, one query per level.
    Direct reports have depth 1. A node reached a second time is not expanded
    again and is reported as a data-integrity warning; the root never appears
    in its own closure.
    
    Returns:
        Mapping of subordinate code to depth
    """
    cap = _depth_cap(max_depth)
    subordinates: dict[str, int] = {}
    visited = {org_code}
    frontier = [org_code]
    depth = 1
    
    while frontier and depth <= cap:
        result = await db.execute(
            select(OrgNode.code, OrgNode.manager_code).where(OrgNode.manager_code.in_(frontier))
        )
        next_frontier = []
        for code, manager_code in result.all():
            if code in visited:
                log.warning(
                    f"Cycle in org chart: {code} reached again via {manager_code} "
                    f"while resolving subordinates of {org_code}"
                )
                continue
            visited.add(code)
            subordinates[code] = depth
            next_frontier.append(code)
        frontier = next_frontier
        depth += 1
    
    if frontier:
        log.warning(
            f"Subordinate traversal of {org_code} stopped at depth cap {cap} "
            f"with {len(frontier)} node(s) still unexpanded"
        )
    
    return subordinates


async def managers_of(
    db: AsyncSession,
    org_code: str,
    max_depth: Optional[int] = None
) -> dict[str, int]:
    """
    Compute the ancestor closure of an org node by walking manager_code upward.
    
    The direct manager has depth 1. The walk stops at the root, at the depth
    cap, or (with a warning) where it would revisit a node.
    """
    cap = _depth_cap(max_depth)
    managers: dict[str, int] = {}
    visited = {org_code}
    current = org_code
    
    for depth in range(1, cap + 1):
        manager_code = await _manager_code_of(db, current)
        if manager_code is None:
            return managers
        if manager_code in visited:
            log.warning(f"Cycle in org chart above {org_code}: {manager_code} revisited")
            return managers
        visited.add(manager_code)
        managers[manager_code] = depth
        current = manager_code
    
    if await _manager_code_of(db, current) is not None:
        log.warning(f"Manager traversal of {org_code} stopped at depth cap {cap}")
    return managers


async def is_subordinate_of(
    db: AsyncSession,
    target_code: str,
    ancestor_code: str,
    max_depth: Optional[int] = None
) -> bool:
    """
    Check whether target_code sits anywhere below ancestor_code.
    
    Walks upward from the target, which needs one query per level and stops
    as soon as the ancestor is found. A node is never its own subordinate.
    Ancestors further than the depth cap are not found, matching
    subordinates_of. A chain that long means corrupted data: the miss is
    logged as a warning and returned as False, so manager visibility and the
    staff delegation cascade stop at MAX_HIERARCHY_DEPTH levels.

    Raises:
        HierarchyCycleError: the walk looped before reaching the ancestor
    """
    if target_code == ancestor_code:
        return False
    
    cap = _depth_cap(max_depth)
    path = [target_code]
    current = target_code
    
    for _ in range(cap):
        manager_code = await _manager_code_of(db, current)
        if manager_code is None:
            return False
        if manager_code == ancestor_code:
            return True
        if manager_code in path:
            path.append(manager_code)
            log.warning(f"Cycle in org chart: {' -> '.join(path)}")
            raise HierarchyCycleError(path)
        path.append(manager_code)
        current = manager_code
    
    log.warning(
        f"Ancestor walk from {target_code} looking for {ancestor_code} stopped at depth cap {cap}"
    )
    return False


def hierarchy_level(depth: int) -> str:
    """Display label for a subordinate depth."""
    if depth <= 1:
        return "Direct"
    if depth == 2:
        return "Indirect 1"
    return "Indirect 2+"


async def team_members(db: AsyncSession, team: Team) -> list[OrgNode]:
    """All org nodes assigned to a team, ordered by name."""
    result = await db.execute(
        select(OrgNode).where(OrgNode.team_id == team.id).order_by(OrgNode.name, OrgNode.code)
    )
    return list(result.scalars().all())
