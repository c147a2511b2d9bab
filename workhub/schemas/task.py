from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from workhub.models.project import Priority
from workhub.models.task import TaskStatus


class Subtask(BaseModel):
    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    completed: bool = False


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=2, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    project_id: Optional[int] = None
    assigned_to_id: int
    priority: Priority = Priority.MEDIUM
    due_date: Optional[datetime] = None
    skills: List[str] = []


class TaskStatusUpdate(BaseModel):
    # Plain string so an unknown status is reported by the policy engine
    status: str


class TaskReassign(BaseModel):
    new_assignee_id: int


class SubtasksUpdate(BaseModel):
    subtasks: List[Subtask]


class TaskResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    project_id: Optional[int] = None
    assigned_to_id: int
    assigned_by_id: Optional[int] = None
    status: TaskStatus
    priority: Priority
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    skills: List[str] = []
    subtasks: List[Subtask] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TaskReassignResponse(BaseModel):
    message: str
    previous_assignee_id: int
    task: TaskResponse
