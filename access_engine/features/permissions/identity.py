"""
Identity resolver: principal -> linked org node code / staff id.

"Not found" is a normal answer (candidates and new users are often unlinked).
"""
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from access_engine.features.org.models import OrgNode
from access_engine.features.staff.models import StaffIdentity


async def resolve_org_code(db: AsyncSession, principal_id: str) -> Optional[str]:
    result = await db.execute(select(OrgNode.code).where(OrgNode.principal_id == principal_id))
    return result.scalar_one_or_none()


async def resolve_staff_id(db: AsyncSession, principal_id: str) -> Optional[str]:
    result = await db.execute(select(StaffIdentity.id).where(StaffIdentity.principal_id == principal_id))
    return result.scalar_one_or_none()
