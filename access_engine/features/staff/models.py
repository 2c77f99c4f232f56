"""
StaffIdentity and Delegation models.
"""
from datetime import datetime
from sqlalchemy import String, ForeignKey, Boolean, Text, DateTime, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from access_engine.core.database.base import Base, TimestampMixin, generate_ulid


class StaffIdentity(Base, TimestampMixin):
    """
    A support staff member. Linked to at most one principal, and vice versa.
    """
    __tablename__ = "staff"
    
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    
    principal_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
        index=True
    )
    
    def __repr__(self) -> str:
        return f"<StaffIdentity(id={self.id}, name={self.name!r})>"


class Delegation(Base):
    """
    Staff-to-advisor assignment (many-to-many edge).
    
    Only effective while active. Deactivation flips the flag and keeps the
    row for audit history; rows are never deleted.
    """
    __tablename__ = "delegations"
    __table_args__ = (
        Index("ix_delegations_active_lookup", "staff_id", "org_code", "active"),
    )
    
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    
    staff_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("staff.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    org_code: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("org_nodes.code", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    created_by: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    
    def __repr__(self) -> str:
        return f"<Delegation(id={self.id}, staff={self.staff_id}, org={self.org_code!r}, active={self.active})>"
