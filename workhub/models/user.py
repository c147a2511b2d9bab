from sqlalchemy import Column, Integer, String, DateTime, Enum, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from workhub.db.base import Base


class UserRole(str, enum.Enum):
    ADMIN = "Admin"
    LEAD = "Lead"
    MEMBER = "Member"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    # Always stored lowercase so uniqueness is case-insensitive
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=True)
    role = Column(Enum(UserRole), default=UserRole.MEMBER, nullable=False, index=True)
    skills = Column(JSON, default=list, nullable=False)
    access_code = Column(String, unique=True, index=True, nullable=True)
    phone_number = Column(String, nullable=True)
    profile_picture = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    assigned_tasks = relationship("Task", back_populates="assignee", foreign_keys="Task.assigned_to_id")
    led_projects = relationship("Project", back_populates="lead", foreign_keys="Project.lead_id")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
