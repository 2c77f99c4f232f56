"""
Org chart API routes.

Every route is gated by the permission evaluator through the guard
dependencies in permissions.dependencies.
"""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from access_engine.core.database.engine import get_db
from access_engine.features.org.hierarchy import (
    subordinates_of,
    managers_of,
    hierarchy_level,
    team_members,
)
from access_engine.features.org.models import OrgNode, Team
from access_engine.features.org.schemas import (
    OrgNodeResponse,
    OrgNodeUpdate,
    HierarchyEntry,
    TeamResponse,
)
from access_engine.features.permissions.dependencies import (
    require_org_node_access,
    get_readable_team,
)
from access_engine.features.permissions.evaluator import Operation
from access_engine.features.users.schemas import Principal


router = APIRouter()


async def _hierarchy_entries(db: AsyncSession, depths: dict[str, int]) -> List[HierarchyEntry]:
    if not depths:
        return []
    result = await db.execute(select(OrgNode).where(OrgNode.code.in_(depths)))
    nodes = {node.code: node for node in result.scalars().all()}
    entries = [
        HierarchyEntry(
            code=code,
            name=nodes[code].name if code in nodes else None,
            status=nodes[code].status if code in nodes else None,
            depth=depth,
            hierarchy_level=hierarchy_level(depth),
        )
        for code, depth in depths.items()
    ]
    return sorted(entries, key=lambda entry: (entry.depth, entry.name or "", entry.code))


@router.get("/nodes/{code}", response_model=OrgNodeResponse)
async def get_org_node(
    code: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_org_node_access(Operation.READ))
):
    """Get an org node the current user may read."""
    return await db.get(OrgNode, code)


@router.patch("/nodes/{code}", response_model=OrgNodeResponse)
async def update_org_node(
    code: str,
    node_update: OrgNodeUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_org_node_access(Operation.UPDATE))
):
    """Update profile fields of an org node (own node, or any node for admins)."""
    node = await db.get(OrgNode, code)
    
    update_data = node_update.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        setattr(node, key, value)
    
    await db.flush()
    await db.refresh(node)
    return node


@router.get("/nodes/{code}/subordinates", response_model=List[HierarchyEntry])
async def list_subordinates(
    code: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_org_node_access(Operation.READ))
):
    """List everyone below an org node with depth and hierarchy level."""
    return await _hierarchy_entries(db, await subordinates_of(db, code))


@router.get("/nodes/{code}/managers", response_model=List[HierarchyEntry])
async def list_managers(
    code: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_org_node_access(Operation.READ))
):
    """List the management chain above an org node, nearest first."""
    return await _hierarchy_entries(db, await managers_of(db, code))


@router.get("/teams/{team_id}", response_model=TeamResponse)
async def get_team(team: Team = Depends(get_readable_team)):
    """Get a team the current user may read."""
    return team


@router.get("/teams/{team_id}/members", response_model=List[OrgNodeResponse])
async def list_team_members(
    team: Team = Depends(get_readable_team),
    db: AsyncSession = Depends(get_db)
):
    """List the org nodes assigned to a team."""
    return await team_members(db, team)
