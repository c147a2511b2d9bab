from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from typing import Optional
import enum
from workhub.db.base import Base
from workhub.models.project import Priority


class TaskStatus(str, enum.Enum):
    TODO = "Todo"
    PLANNING = "Planning"
    IN_PROGRESS = "In Progress"
    DONE = "Done"
    BLOCKED = "Blocked"


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False, index=True)
    description = Column(Text, default="")
    status = Column(Enum(TaskStatus), default=TaskStatus.TODO, nullable=False, index=True)
    priority = Column(Enum(Priority), default=Priority.MEDIUM, nullable=False, index=True)
    due_date = Column(DateTime, nullable=True, index=True)
    completed_at = Column(DateTime, nullable=True)
    skills = Column(JSON, default=list, nullable=False)
    # Ordered list of {"id": str, "title": str, "completed": bool}
    subtasks = Column(JSON, default=list, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Foreign Keys
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=True, index=True)
    assigned_to_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # Cleared when the assigner is removed
    assigned_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    project = relationship("Project", back_populates="tasks")
    assignee = relationship("User", back_populates="assigned_tasks", foreign_keys=[assigned_to_id])
    assigner = relationship("User", foreign_keys=[assigned_by_id])

    def set_status(self, status: TaskStatus, now: Optional[datetime] = None) -> None:
        """Write the status and keep completed_at set iff the task is Done"""
        self.status = status
        if status == TaskStatus.DONE:
            if self.completed_at is None:
                self.completed_at = now or datetime.utcnow()
        else:
            self.completed_at = None
