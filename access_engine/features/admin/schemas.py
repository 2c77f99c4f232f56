"""
Pydantic schemas for administrative operations.
"""
from typing import List, Optional
from pydantic import BaseModel, Field

from access_engine.features.org.schemas import OrgNodeResponse
from access_engine.features.staff.schemas import DelegationResponse, StaffResponse
from access_engine.features.users.schemas import UserResponse


class LinkPrincipalToOrgNode(BaseModel):
    """Schema for linking a user to an org node."""
    principal_id: str = Field(..., description="User ID")
    org_code: str = Field(..., min_length=1, max_length=50, description="Org node code")


class LinkPrincipalToStaff(BaseModel):
    """Schema for linking a user to a staff record."""
    principal_id: str = Field(..., description="User ID")
    staff_id: str = Field(..., description="Staff ID")


class OrgNodeCreate(BaseModel):
    """Schema for creating an org node."""
    code: str = Field(..., min_length=1, max_length=50, description="Unique business code")
    name: Optional[str] = Field(None, max_length=255)
    nickname: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    mobile: Optional[str] = Field(None, max_length=30)
    status: Optional[str] = Field("active", max_length=30)
    unit_code: Optional[str] = Field(None, max_length=50)
    team_id: Optional[str] = None
    manager_code: Optional[str] = Field(None, max_length=50, description="Code of the direct manager")


class ManagerReassign(BaseModel):
    """Schema for moving an org node under a different manager."""
    manager_code: Optional[str] = Field(None, max_length=50, description="New manager code, or null to detach")


class StaffCreate(BaseModel):
    """Schema for creating a staff record."""
    name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)


class DelegationCreate(BaseModel):
    """Schema for assigning a staff member to an advisor."""
    staff_id: str = Field(..., description="Staff ID")
    org_code: str = Field(..., min_length=1, max_length=50, description="Advisor org code")
    notes: Optional[str] = Field(None, max_length=1000)


class BulkAssignRequest(BaseModel):
    """Schema for assigning one staff member to many advisors."""
    staff_id: str = Field(..., description="Staff ID")
    org_codes: List[str] = Field(..., min_length=1, description="Advisor org codes")
    notes: Optional[str] = Field(None, max_length=1000)


class BulkAssignResult(BaseModel):
    """Per-item outcome of a bulk assignment."""
    success_count: int = 0
    error_count: int = 0
    errors: List[str] = Field(default_factory=list, description="'<code>: <message>' per failed code")
    delegation_ids: List[str] = Field(default_factory=list, description="IDs of created delegations")


class DelegationDetail(DelegationResponse):
    """Delegation with the name of the advisor it points at."""
    advisor_name: Optional[str] = None


class UserDetails(BaseModel):
    """Admin view of a user and everything linked to it."""
    user_id: str
    profile: UserResponse
    org_node: Optional[OrgNodeResponse] = None
    staff: Optional[StaffResponse] = None
    delegations: List[DelegationDetail] = Field(default_factory=list, description="All delegations, inactive included")
