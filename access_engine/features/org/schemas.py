"""
Pydantic schemas for org nodes and teams.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class OrgNodeResponse(BaseModel):
    """Schema for org node response."""
    code: str
    name: Optional[str] = None
    nickname: Optional[str] = None
    email: Optional[str] = None
    mobile: Optional[str] = None
    status: Optional[str] = None
    unit_code: Optional[str] = None
    team_id: Optional[str] = None
    manager_code: Optional[str] = None
    principal_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    
    model_config = ConfigDict(from_attributes=True)


class OrgNodeUpdate(BaseModel):
    """
    Profile fields a node's owner may edit.
    
    Hierarchy and identity fields are changed only through /admin.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    nickname: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    mobile: Optional[str] = Field(None, max_length=30)


class HierarchyEntry(BaseModel):
    """One node of a subordinate or manager closure."""
    code: str
    name: Optional[str] = None
    status: Optional[str] = None
    depth: int
    hierarchy_level: str


class TeamResponse(BaseModel):
    """Schema for team response."""
    id: str
    unit_code: Optional[str] = None
    unit_name: Optional[str] = None
    head_code: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    
    model_config = ConfigDict(from_attributes=True)
