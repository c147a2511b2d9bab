from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import List, Optional
from workhub.models.project import Priority, ProjectStatus
from workhub.models.user import UserRole


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    lead_id: int
    priority: Priority = Priority.MEDIUM
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class ProjectPhase(BaseModel):
    id: str
    phase: str = ""
    date: str = ""
    description: str = ""
    platform: str = "Backend"
    status: str = "Pending"


class PhaseCreate(BaseModel):
    phase: str = Field("New Phase", max_length=200)
    # Free-form display date, dd/mm/yyyy when left out
    date: Optional[str] = None
    description: str = Field("Description", max_length=1000)
    platform: str = Field("Backend", max_length=100)
    status: str = Field("Pending", max_length=50)


class PhaseUpdate(BaseModel):
    phase: Optional[str] = Field(None, max_length=200)
    date: Optional[str] = None
    description: Optional[str] = Field(None, max_length=1000)
    platform: Optional[str] = Field(None, max_length=100)
    status: Optional[str] = Field(None, max_length=50)


class ProjectResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_by_id: Optional[int] = None
    lead_id: int
    member_ids: List[int] = []
    status: ProjectStatus
    stored_status: ProjectStatus
    priority: Priority
    progress: int
    total_tasks: int = 0
    completed_tasks: int = 0
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    closed_by_id: Optional[int] = None
    phases: List[ProjectPhase] = []


class ProjectDeleteResponse(BaseModel):
    message: str
    deleted_tasks: int


class ProjectLeadChange(BaseModel):
    lead_id: int


class ProjectLeadChangeResponse(BaseModel):
    message: str
    reassigned_tasks: int
    project: ProjectResponse


class ProjectMemberAdd(BaseModel):
    member_id: int


class AccessTokenIssueRequest(BaseModel):
    emails: List[EmailStr] = Field(..., min_length=1)
    expires_in_days: Optional[int] = Field(None, ge=1, le=365)


class AccessTokenIssueResult(BaseModel):
    email: str
    success: bool
    token: Optional[str] = None
    error: Optional[str] = None


class LeadMemberResponse(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    skills: List[str] = []
    projects: List[str] = []
