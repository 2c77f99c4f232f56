"""
Assignment resolver: which org nodes a staff member supports, and who supports a node.

Only active delegations count. No recursion happens here; the downward cascade
through the org chart is applied by the permission evaluator.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from access_engine.features.staff.models import Delegation


async def assigned_org_codes(db: AsyncSession, staff_id: str) -> set[str]:
    """Org codes directly delegated to a staff member."""
    result = await db.execute(
        select(Delegation.org_code).where(
            Delegation.staff_id == staff_id,
            Delegation.active.is_(True)
        )
    )
    return set(result.scalars().all())


async def assigned_staff_ids(db: AsyncSession, org_code: str) -> set[str]:
    """Staff ids with an active delegation to an org node."""
    result = await db.execute(
        select(Delegation.staff_id).where(
            Delegation.org_code == org_code,
            Delegation.active.is_(True)
        )
    )
    return set(result.scalars().all())


async def staff_delegations(
    db: AsyncSession,
    staff_id: str,
    include_inactive: bool = False
) -> list[Delegation]:
    """Delegation rows of a staff member, newest first."""
    stmt = select(Delegation).where(Delegation.staff_id == staff_id)
    if not include_inactive:
        stmt = stmt.where(Delegation.active.is_(True))
    result = await db.execute(stmt.order_by(Delegation.assigned_at.desc(), Delegation.id.desc()))
    return list(result.scalars().all())
