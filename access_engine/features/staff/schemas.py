"""
Pydantic schemas for staff records and delegations.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class StaffResponse(BaseModel):
    """Schema for staff response."""
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    principal_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    
    model_config = ConfigDict(from_attributes=True)


class DelegationResponse(BaseModel):
    """Schema for delegation response."""
    id: str
    staff_id: str
    org_code: str
    active: bool
    assigned_at: datetime
    created_by: Optional[str] = None
    notes: Optional[str] = None
    
    model_config = ConfigDict(from_attributes=True)
