"""
Authorization policy engine.

Every mutation in the system is described by an ``Action`` and a small frozen
target dataclass holding the facts the rule needs (ids, states, counts). The
single entry point ``can(principal, action, target)`` looks the rule up and
returns a ``Decision``; it never touches the store and never raises, so each
rule can be exercised in isolation. Services call ``Decision.enforce()`` to
turn a denial into the matching typed error.
"""
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Optional

from workhub.core.config import settings
from workhub.core.errors import ErrorKind, error_for
from workhub.models.member_request import MemberRequestStatus
from workhub.models.project import ProjectStatus
from workhub.models.task import TaskStatus
from workhub.models.user import UserRole
from workhub.services.identity import Principal

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    CHANGE_ACCESS_CODE = "change_access_code"
    VIEW_MEMBER_REQUESTS = "view_member_requests"
    PROCESS_MEMBER_REQUEST = "process_member_request"
    REMOVE_MEMBER = "remove_member"
    CHANGE_ROLE = "change_role"
    MANAGE_USERS = "manage_users"
    SEND_CREDENTIALS = "send_credentials"
    CREATE_PROJECT = "create_project"
    CLOSE_PROJECT = "close_project"
    DELETE_PROJECT = "delete_project"
    CHANGE_PROJECT_LEAD = "change_project_lead"
    MANAGE_PROJECT_MEMBERS = "manage_project_members"
    MANAGE_PROJECT_PHASES = "manage_project_phases"
    ISSUE_ACCESS_TOKENS = "issue_access_tokens"
    CREATE_TASK = "create_task"
    REASSIGN_TASK = "reassign_task"
    UPDATE_TASK_STATUS = "update_task_status"
    UPDATE_SUBTASKS = "update_subtasks"
    DELETE_TASK = "delete_task"
    READ_SECRET = "read_secret"
    WRITE_SECRET = "write_secret"
    CREATE_TEAM = "create_team"
    UPDATE_TEAM = "update_team"
    DELETE_TEAM = "delete_team"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    kind: Optional[ErrorKind] = None
    reason: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, kind: ErrorKind, reason: str, **details) -> "Decision":
        return cls(allowed=False, kind=kind, reason=reason, details=details)

    def __bool__(self) -> bool:
        return self.allowed

    def enforce(self) -> None:
        if not self.allowed:
            raise error_for(self.kind, self.reason, self.details)


def forbid(reason: str, **details) -> Decision:
    return Decision.deny(ErrorKind.FORBIDDEN, reason, **details)


def conflict(reason: str, **details) -> Decision:
    return Decision.deny(ErrorKind.CONFLICT, reason, **details)


def invalid(reason: str, **details) -> Decision:
    return Decision.deny(ErrorKind.VALIDATION_FAILED, reason, **details)


# Targets


@dataclass(frozen=True)
class AccessCodeChange:
    owner_id: Optional[int]
    new_code: Optional[str]
    holder_id: Optional[int] = None


@dataclass(frozen=True)
class MemberRequestTarget:
    status: MemberRequestStatus


@dataclass(frozen=True)
class MemberRemoval:
    user_id: int
    assigned_tasks: int
    led_projects: int
    project_memberships: int


@dataclass(frozen=True)
class RoleChange:
    user_id: int
    current_role: UserRole
    new_role: Any
    led_projects: int
    admin_count: int


@dataclass(frozen=True)
class ProjectState:
    """Project facts shared by close, delete, lead and membership rules"""

    lead_id: int
    status: ProjectStatus
    total_tasks: int = 0
    completed_tasks: int = 0
    created_by_id: Optional[int] = None

    @property
    def pending_tasks(self) -> int:
        return self.total_tasks - self.completed_tasks

    @property
    def counts(self) -> Dict[str, int]:
        return {
            "totalTasks": self.total_tasks,
            "completedTasks": self.completed_tasks,
            "pendingTasks": self.pending_tasks,
        }


@dataclass(frozen=True)
class TaskCreation:
    project_status: Optional[ProjectStatus] = None


@dataclass(frozen=True)
class TaskReassignment:
    project_id: Optional[int]
    project_lead_id: Optional[int]
    project_member_ids: FrozenSet[int]
    new_assignee_id: int
    assignee_exists: bool


@dataclass(frozen=True)
class TaskChange:
    assigned_to_id: int
    assigned_by_id: Optional[int]
    project_id: Optional[int] = None
    new_status: Any = None


@dataclass(frozen=True)
class SecretTarget:
    access_list: FrozenSet[int]


@dataclass(frozen=True)
class TeamCreation:
    name_taken: bool


@dataclass(frozen=True)
class TeamUpdate:
    leader_id: Optional[int]
    changes_details: bool


# Rules

Rule = Callable[[Principal, Any], Decision]
_RULES: Dict[Action, Rule] = {}


def rule(*actions: Action):
    def register(func: Rule) -> Rule:
        for action in actions:
            _RULES[action] = func
        return func
    return register


def can(principal: Principal, action: Action, target: Any = None) -> Decision:
    """Decide whether ``principal`` may perform ``action`` on ``target``"""
    decision = _RULES[action](principal, target)
    if not decision:
        logger.info(
            "Denied %s for principal %s: %s", action.value, principal.id, decision.reason
        )
    return decision


@rule(Action.CHANGE_ACCESS_CODE)
def _change_access_code(principal: Principal, target: AccessCodeChange) -> Decision:
    if not principal.is_user(target.owner_id):
        return forbid("You can only change your own access code")
    code = (target.new_code or "").strip()
    if len(code) < settings.ACCESS_CODE_MIN_LENGTH:
        return invalid(
            f"Access code must be at least {settings.ACCESS_CODE_MIN_LENGTH} characters",
            minLength=settings.ACCESS_CODE_MIN_LENGTH,
        )
    if target.holder_id is not None and target.holder_id != target.owner_id:
        return conflict("This access code is already in use")
    return Decision.allow()


@rule(Action.VIEW_MEMBER_REQUESTS)
def _view_member_requests(principal: Principal, target: None) -> Decision:
    if principal.role not in (UserRole.ADMIN, UserRole.LEAD):
        return forbid("Only admins and leads can view pending requests")
    return Decision.allow()


@rule(Action.PROCESS_MEMBER_REQUEST)
def _process_member_request(principal: Principal, target: MemberRequestTarget) -> Decision:
    if not principal.is_admin:
        return forbid("Only admins can process member requests")
    if target.status != MemberRequestStatus.PENDING:
        return conflict(f"Request has already been {target.status.value}", status=target.status.value)
    return Decision.allow()


@rule(Action.MANAGE_USERS, Action.SEND_CREDENTIALS)
def _admin_only_users(principal: Principal, target: None) -> Decision:
    if not principal.is_admin:
        return forbid("Only admins can manage users")
    return Decision.allow()


@rule(Action.REMOVE_MEMBER)
def _remove_member(principal: Principal, target: MemberRemoval) -> Decision:
    if not principal.is_admin:
        return forbid("Only admins can remove members")
    if principal.is_user(target.user_id):
        return forbid("You cannot remove yourself")
    if target.assigned_tasks > 0:
        return conflict(
            f"Cannot remove member. They have {target.assigned_tasks} assigned task(s). "
            "Please reassign their tasks first.",
            assignedTasks=target.assigned_tasks,
        )
    if target.led_projects > 0:
        return conflict(
            f"Cannot remove member. They are leading {target.led_projects} project(s). "
            "Please reassign the project lead first.",
            leadingProjects=target.led_projects,
        )
    if target.project_memberships > 0:
        return conflict(
            f"Cannot remove member. They are a team member in {target.project_memberships} project(s). "
            "Please remove them from project teams first.",
            projectMemberships=target.project_memberships,
        )
    return Decision.allow()


@rule(Action.CHANGE_ROLE)
def _change_role(principal: Principal, target: RoleChange) -> Decision:
    if not principal.is_admin:
        return forbid("Only Admins can change user roles")
    try:
        new_role = UserRole(target.new_role)
    except ValueError:
        return invalid("Invalid role", allowed=[role.value for role in UserRole])
    if target.current_role == UserRole.LEAD and new_role == UserRole.MEMBER and target.led_projects > 0:
        return conflict(
            f"Cannot demote to Member. User is currently leading {target.led_projects} project(s). "
            "Please reassign project leads first.",
            leadingProjects=target.led_projects,
        )
    if target.current_role == UserRole.ADMIN and new_role != UserRole.ADMIN and target.admin_count <= 1:
        return conflict("Cannot change role. The system must have at least one Admin.", adminCount=target.admin_count)
    return Decision.allow()


@rule(Action.CREATE_PROJECT)
def _create_project(principal: Principal, target: None) -> Decision:
    if principal.is_guest or principal.role not in (UserRole.ADMIN, UserRole.LEAD):
        return forbid("Only Admins and Leads can create projects")
    return Decision.allow()


@rule(Action.CLOSE_PROJECT)
def _close_project(principal: Principal, target: ProjectState) -> Decision:
    if not principal.is_user(target.lead_id) and not principal.is_admin:
        return forbid("Only the project lead can close the project")
    if target.status == ProjectStatus.CLOSED:
        return conflict("Project is already closed")
    if target.total_tasks == 0:
        return conflict("Cannot close project with no tasks. Add tasks first.", **target.counts)
    if target.completed_tasks < target.total_tasks:
        return conflict(
            f"Cannot close project. {target.pending_tasks} task(s) are still incomplete.",
            **target.counts,
        )
    return Decision.allow()


@rule(Action.DELETE_PROJECT)
def _delete_project(principal: Principal, target: ProjectState) -> Decision:
    if not principal.is_admin:
        return forbid("Only Admins can delete projects")
    if target.status != ProjectStatus.CLOSED:
        return conflict(
            "Project must be closed by the lead before it can be deleted. "
            f"Current status: {target.status.value}",
            status=target.status.value,
        )
    if target.total_tasks > 0 and target.completed_tasks < target.total_tasks:
        return conflict(
            f"Cannot delete project. {target.pending_tasks} task(s) are still incomplete.",
            **target.counts,
        )
    return Decision.allow()


@rule(Action.CHANGE_PROJECT_LEAD)
def _change_project_lead(principal: Principal, target: ProjectState) -> Decision:
    if not principal.is_admin:
        return forbid("Only Admins can update project lead")
    if target.status == ProjectStatus.CLOSED:
        return conflict("Project is closed")
    return Decision.allow()


@rule(Action.MANAGE_PROJECT_MEMBERS, Action.MANAGE_PROJECT_PHASES)
def _manage_project(principal: Principal, target: ProjectState) -> Decision:
    if not principal.is_user(target.lead_id) and not principal.is_admin:
        return forbid("Only project leads or admins can manage this project")
    if target.status == ProjectStatus.CLOSED:
        return conflict("Project is closed")
    return Decision.allow()


@rule(Action.ISSUE_ACCESS_TOKENS)
def _issue_access_tokens(principal: Principal, target: ProjectState) -> Decision:
    if principal.is_admin or principal.is_user(target.lead_id) or principal.is_user(target.created_by_id):
        return Decision.allow()
    return forbid("Insufficient permissions")


@rule(Action.CREATE_TASK)
def _create_task(principal: Principal, target: TaskCreation) -> Decision:
    if principal.is_guest:
        return forbid("Guests cannot create tasks")
    if target.project_status == ProjectStatus.CLOSED:
        return conflict("Cannot add tasks to a closed project")
    return Decision.allow()


@rule(Action.REASSIGN_TASK)
def _reassign_task(principal: Principal, target: TaskReassignment) -> Decision:
    is_project_lead = target.project_id is not None and principal.is_user(target.project_lead_id)
    if not principal.is_admin and not is_project_lead:
        return forbid("Only project leads or admins can reassign tasks")
    if not target.assignee_exists:
        return Decision.deny(ErrorKind.NOT_FOUND, "New assignee not found", assigneeId=target.new_assignee_id)
    if target.project_id is not None:
        is_participant = (
            target.new_assignee_id == target.project_lead_id
            or target.new_assignee_id in target.project_member_ids
        )
        if not is_participant:
            return conflict(
                "New assignee is not a member of this project",
                assigneeId=target.new_assignee_id,
                projectId=target.project_id,
            )
    return Decision.allow()


def _may_touch_task(principal: Principal, target: TaskChange) -> bool:
    # Any Lead may update any task; see DESIGN.md open question
    return (
        principal.is_user(target.assigned_to_id)
        or principal.is_user(target.assigned_by_id)
        or principal.is_admin
        or (principal.is_lead and not principal.is_guest)
    )


@rule(Action.UPDATE_TASK_STATUS)
def _update_task_status(principal: Principal, target: TaskChange) -> Decision:
    try:
        TaskStatus(target.new_status)
    except ValueError:
        return invalid("Invalid status", allowed=[status.value for status in TaskStatus])
    if not _may_touch_task(principal, target):
        return forbid("Unauthorized to update this task")
    return Decision.allow()


@rule(Action.UPDATE_SUBTASKS)
def _update_subtasks(principal: Principal, target: TaskChange) -> Decision:
    if not _may_touch_task(principal, target):
        return forbid("Unauthorized to update this task")
    return Decision.allow()


@rule(Action.DELETE_TASK)
def _delete_task(principal: Principal, target: TaskChange) -> Decision:
    if principal.is_guest:
        return forbid("Guests cannot delete tasks")
    if principal.role == UserRole.MEMBER:
        if target.project_id is not None:
            return forbid("Members can only delete personal tasks (not project tasks)")
        if not principal.is_user(target.assigned_to_id):
            return forbid("You can only delete your own tasks")
    return Decision.allow()


@rule(Action.READ_SECRET)
def _read_secret(principal: Principal, target: SecretTarget) -> Decision:
    if principal.is_admin or (not principal.is_guest and principal.user_id in target.access_list):
        return Decision.allow()
    return forbid("You do not have access to this entry")


@rule(Action.WRITE_SECRET)
def _write_secret(principal: Principal, target: None) -> Decision:
    if not principal.is_admin:
        return forbid("Only admins can manage password entries")
    return Decision.allow()


@rule(Action.CREATE_TEAM)
def _create_team(principal: Principal, target: TeamCreation) -> Decision:
    if not principal.is_admin:
        return forbid("Only Admins can create teams")
    if target.name_taken:
        return conflict("Team name already exists")
    return Decision.allow()


@rule(Action.UPDATE_TEAM)
def _update_team(principal: Principal, target: TeamUpdate) -> Decision:
    if principal.is_admin:
        return Decision.allow()
    if not principal.is_user(target.leader_id):
        return forbid("You do not have permission to modify this team")
    if target.changes_details:
        return forbid("Team leaders can only manage team members")
    return Decision.allow()


@rule(Action.DELETE_TEAM)
def _delete_team(principal: Principal, target: None) -> Decision:
    if not principal.is_admin:
        return forbid("Only Admins can delete teams")
    return Decision.allow()
