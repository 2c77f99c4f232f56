"""
User model: the authenticated principal as seen by the access engine.
"""
import enum
from datetime import datetime
from sqlalchemy import String, Boolean, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from access_engine.core.database.base import Base, TimestampMixin, generate_ulid


class AppRole(str, enum.Enum):
    """Declared role of a principal. Exactly one per user, assigned by an admin."""
    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"
    ADVISOR = "advisor"
    CANDIDATE = "candidate"


class User(Base, TimestampMixin):
    """
    User model representing authenticated principals.
    
    Identity is verified by Appwrite; this row only carries the declared role.
    Links to an org node or a staff identity live on those tables.
    """
    __tablename__ = "users"
    
    # Primary key using ULID (Universally Unique Lexicographically Sortable Identifier)
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    
    # Appwrite user ID (for linking with Appwrite authentication)
    appwrite_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    
    role: Mapped[AppRole] = mapped_column(
        SQLEnum(AppRole),
        default=AppRole.ADVISOR,
        nullable=False,
        index=True
    )
    
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    
    # Track last login
    last_login_at: Mapped[datetime | None] = mapped_column(nullable=True)
    
    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r}, role={self.role})>"
