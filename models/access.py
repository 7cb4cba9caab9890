from typing import Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from models.enums import MembershipStatus


# -----------------------------------------------------
# TENANT MEMBERSHIP
# -----------------------------------------------------
class MemberRead(BaseModel):
    user_id: str
    company_id: str
    role: str
    status: MembershipStatus


class MemberRoleUpdate(BaseModel):
    role: str = Field(..., description="Tenant role: manager, hr, provider or user")


class MemberStatusUpdate(BaseModel):
    status: MembershipStatus


# -----------------------------------------------------
# PLATFORM ASSIGNMENTS
# -----------------------------------------------------
class PlatformAssignmentCreate(BaseModel):
    user_id: str
    role: str = Field(..., description="Platform role (e.g. admin)")


class PlatformAssignmentRead(BaseModel):
    user_id: str
    role: str
    granted_by: Optional[str] = None
    granted_at: Optional[datetime] = None


# -----------------------------------------------------
# SELF-INSPECTION
# -----------------------------------------------------
class PermissionCheckRequest(BaseModel):
    permissions: List[str] = Field(..., min_length=1)
    company_id: Optional[str] = None


class PermissionCheckResponse(BaseModel):
    company_id: Optional[str] = None
    results: Dict[str, bool]


class EffectivePermissionsRead(BaseModel):
    user_id: str
    company_id: Optional[str] = None
    permissions: List[str]
    catalog_version: str
