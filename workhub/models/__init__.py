from workhub.models.user import User, UserRole
from workhub.models.project import Project, ProjectStatus, Priority, project_members
from workhub.models.task import Task, TaskStatus
from workhub.models.access_token import ProjectAccessToken, normalize_code
from workhub.models.team import Team, team_members
from workhub.models.password import PasswordEntry, password_access
from workhub.models.member_request import MemberRequest, MemberRequestStatus

__all__ = [
    "User",
    "UserRole",
    "Project",
    "ProjectStatus",
    "Priority",
    "project_members",
    "Task",
    "TaskStatus",
    "ProjectAccessToken",
    "normalize_code",
    "Team",
    "team_members",
    "PasswordEntry",
    "password_access",
    "MemberRequest",
    "MemberRequestStatus",
]
