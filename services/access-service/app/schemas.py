from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class ScopeOut(BaseModel):
    resource_kind: str
    kind: str
    org_id: Optional[str] = None
    impersonating: Optional[bool] = None
    contractor_id: Optional[str] = None
    tenant_user_id: Optional[str] = None
    property_id: Optional[str] = None
    unit_id: Optional[str] = None
    reason: Optional[str] = None


class CaseOut(BaseModel):
    id: str
    org_id: Optional[str] = None
    title: str
    status: str
    priority: str
    property_id: Optional[str] = None
    unit_id: Optional[str] = None
    specialty_id: Optional[str] = None
    assigned_contractor_id: Optional[str] = None
    is_urgent: bool
    restrict_to_favorites: bool
    posted_at: Optional[datetime] = None


class CaseAccessOut(BaseModel):
    case_id: str
    visible: bool
    org_id: Optional[str] = None


class PropertyOut(BaseModel):
    id: str
    org_id: str
    name: str
    address: Optional[str] = None


class AcceptCaseResponse(BaseModel):
    case_id: str
    status: str
    assigned_contractor_id: str


class StartImpersonation(BaseModel):
    org_id: str


class ImpersonationOut(BaseModel):
    active: bool
    org_id: Optional[str] = None
    org_name: Optional[str] = None
