"""
Pydantic schemas for permission checks and audit logs.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from access_engine.features.permissions.evaluator import Operation, ResourceShape


# ============================================================================
# Permission Check Schemas
# ============================================================================

class PermissionCheckRequest(BaseModel):
    """
    Ask whether the current principal may perform an operation on a target.
    
    The target field to fill depends on the shape: org_code for org nodes,
    team_id for teams, delegation_id for delegations, owner_principal_id for
    owned resources.
    """
    shape: ResourceShape = Field(..., description="Resource shape")
    operation: Operation = Field(Operation.READ, description="CREATE, READ, UPDATE or DELETE")
    org_code: Optional[str] = Field(None, description="Target org node code")
    team_id: Optional[str] = Field(None, description="Target team ID")
    delegation_id: Optional[str] = Field(None, description="Target delegation ID")
    owner_principal_id: Optional[str] = Field(None, description="Owner of the target resource")
    
    @model_validator(mode="after")
    def target_matches_shape(self) -> "PermissionCheckRequest":
        required = {
            ResourceShape.ORG_NODE: "org_code",
            ResourceShape.TEAM: "team_id",
            ResourceShape.DELEGATION: "delegation_id",
            ResourceShape.OWNED: "owner_principal_id",
        }[self.shape]
        if getattr(self, required) is None:
            raise ValueError(f"{required} is required for shape '{self.shape.value}'")
        return self


class PermissionCheckResponse(BaseModel):
    """Schema for permission check response."""
    has_permission: bool
    reason: Optional[str] = None


# ============================================================================
# Audit Log Schemas
# ============================================================================

class AuditLogResponse(BaseModel):
    """Schema for audit log response."""
    id: str
    user_id: Optional[str]
    action: str
    resource_type: str
    resource_id: Optional[str]
    details: Optional[Dict[str, Any]]
    created_at: datetime
    
    model_config = ConfigDict(from_attributes=True)


class AuditLogListResponse(BaseModel):
    """Schema for paginated audit log list."""
    items: List[AuditLogResponse]
    total: int
    page: int
    page_size: int
    pages: int
