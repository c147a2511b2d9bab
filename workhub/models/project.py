from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, ForeignKey, JSON, Table
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from workhub.db.base import Base


class ProjectStatus(str, enum.Enum):
    NOT_STARTED = "Not Started"
    PLANNING = "Planning"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    ON_HOLD = "On Hold"
    CLOSED = "Closed"


class Priority(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


# Association table for project members
project_members = Table(
    'project_members',
    Base.metadata,
    Column('project_id', Integer, ForeignKey('projects.id', ondelete='CASCADE'), primary_key=True),
    Column('user_id', Integer, ForeignKey('users.id'), primary_key=True)
)


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    description = Column(Text, default="")
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    lead_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # Authoritative only once Closed, see derived_status()
    stored_status = Column(Enum(ProjectStatus), default=ProjectStatus.NOT_STARTED, nullable=False, index=True)
    priority = Column(Enum(Priority), default=Priority.MEDIUM, nullable=False)
    progress = Column(Integer, default=0, nullable=False)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    closed_at = Column(DateTime, nullable=True)
    closed_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    # Ordered list of {"id", "phase", "date", "description", "platform", "status"}
    phases = Column(JSON, default=list, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    lead = relationship("User", back_populates="led_projects", foreign_keys=[lead_id])
    members = relationship("User", secondary=project_members)
    tasks = relationship("Task", back_populates="project")

    @property
    def is_closed(self) -> bool:
        return self.stored_status == ProjectStatus.CLOSED

    @property
    def member_ids(self):
        return [member.id for member in self.members]

    def derived_status(self, total_tasks: int, completed_tasks: int) -> ProjectStatus:
        """Read-time status from task counts; an explicit Closed always wins"""
        if self.is_closed:
            return ProjectStatus.CLOSED
        if total_tasks == 0:
            return ProjectStatus.NOT_STARTED
        if completed_tasks == total_tasks:
            return ProjectStatus.COMPLETED
        if completed_tasks > 0:
            return ProjectStatus.IN_PROGRESS
        return self.stored_status

    def derived_progress(self, total_tasks: int, completed_tasks: int) -> int:
        if self.is_closed:
            return 100
        if total_tasks == 0:
            return 0
        return round(completed_tasks * 100 / total_tasks)
