"""
OrgNode and Team models.

OrgNode.code is the immutable business key. manager_code points at another
node's code and must form a forest; nothing at the database level enforces
that, so the hierarchy resolver guards against cycles at read time.
"""
from sqlalchemy import String, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from access_engine.core.database.base import Base, TimestampMixin, generate_ulid


class OrgNodeStatus:
    """Known status values. Status is free text upstream, so this is not an enum column."""
    ACTIVE = "active"
    CANCELLED = "cancelled"


class OrgNode(Base, TimestampMixin):
    """
    One organizational participant (advisor or manager).
    
    At most one principal links to a node and a principal links to at most one node.
    """
    __tablename__ = "org_nodes"
    
    code: Mapped[str] = mapped_column(String(50), primary_key=True)
    
    name: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    nickname: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    mobile: Mapped[str | None] = mapped_column(String(30), nullable=True)
    status: Mapped[str | None] = mapped_column(
        String(30), nullable=True, default=OrgNodeStatus.ACTIVE, index=True
    )
    unit_code: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    
    team_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("teams.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    
    # Self-reference (recursive hierarchy)
    manager_code: Mapped[str | None] = mapped_column(
        String(50),
        ForeignKey("org_nodes.code", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    
    # Identity link, written only by administrative mutators
    principal_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
        index=True
    )
    
    def __repr__(self) -> str:
        return f"<OrgNode(code={self.code!r}, manager={self.manager_code!r}, status={self.status})>"


class Team(Base, TimestampMixin):
    """
    Named organizational unit. Read access is derived from its head node.
    """
    __tablename__ = "teams"
    
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    unit_code: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    unit_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    
    head_code: Mapped[str | None] = mapped_column(
        String(50),
        ForeignKey("org_nodes.code", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    
    def __repr__(self) -> str:
        return f"<Team(id={self.id}, unit_code={self.unit_code!r}, head={self.head_code!r})>"
