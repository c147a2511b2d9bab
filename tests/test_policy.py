import pytest

from workhub.core.errors import Conflict, ErrorKind, Forbidden
from workhub.models import MemberRequestStatus, ProjectStatus, UserRole
from workhub.services.identity import Principal
from workhub.services.policy import (
    AccessCodeChange, Action, MemberRemoval, MemberRequestTarget, ProjectState, RoleChange,
    SecretTarget, TaskChange, TaskCreation, TaskReassignment, TeamCreation, TeamUpdate, can
)


def user(user_id: int, role: UserRole = UserRole.MEMBER) -> Principal:
    return Principal(id=str(user_id), email=f"u{user_id}@example.com", role=role, user_id=user_id)


ADMIN = user(1, UserRole.ADMIN)
LEAD = user(2, UserRole.LEAD)
MEMBER = user(3)
OTHER_MEMBER = user(4)
GUEST = Principal(id="guest_7", email="g@example.com", role=UserRole.MEMBER, project_scope=10, is_guest=True)


@pytest.mark.unit
class TestDecision:
    def test_enforce_raises_typed_error(self):
        decision = can(MEMBER, Action.DELETE_PROJECT, ProjectState(lead_id=2, status=ProjectStatus.CLOSED))

        assert not decision
        with pytest.raises(Forbidden):
            decision.enforce()

    def test_allow_enforce_is_noop(self):
        can(ADMIN, Action.MANAGE_USERS).enforce()


@pytest.mark.unit
class TestAccessCodeRules:
    def test_owner_with_long_enough_code(self):
        assert can(MEMBER, Action.CHANGE_ACCESS_CODE, AccessCodeChange(owner_id=3, new_code="ABCDEF"))

    def test_short_code_is_validation_failure(self):
        decision = can(MEMBER, Action.CHANGE_ACCESS_CODE, AccessCodeChange(owner_id=3, new_code="ABC"))
        assert decision.kind == ErrorKind.VALIDATION_FAILED

    def test_code_held_by_someone_else_conflicts(self):
        decision = can(MEMBER, Action.CHANGE_ACCESS_CODE, AccessCodeChange(3, "ABCDEF", holder_id=4))
        assert decision.kind == ErrorKind.CONFLICT

    def test_guest_cannot_change_code(self):
        decision = can(GUEST, Action.CHANGE_ACCESS_CODE, AccessCodeChange(None, "ABCDEF"))
        assert decision.kind == ErrorKind.FORBIDDEN


@pytest.mark.unit
class TestMembershipRules:
    def test_admin_and_lead_view_requests(self):
        assert can(ADMIN, Action.VIEW_MEMBER_REQUESTS)
        assert can(LEAD, Action.VIEW_MEMBER_REQUESTS)
        assert not can(MEMBER, Action.VIEW_MEMBER_REQUESTS)

    def test_processed_request_conflicts(self):
        decision = can(ADMIN, Action.PROCESS_MEMBER_REQUEST, MemberRequestTarget(MemberRequestStatus.APPROVED))
        assert decision.kind == ErrorKind.CONFLICT
        assert "approved" in decision.reason

    @pytest.mark.parametrize(
        "removal, detail",
        [
            (MemberRemoval(5, 2, 0, 0), "assignedTasks"),
            (MemberRemoval(5, 0, 1, 0), "leadingProjects"),
            (MemberRemoval(5, 0, 0, 3), "projectMemberships"),
        ],
    )
    def test_each_blocker_is_a_distinct_conflict(self, removal, detail):
        decision = can(ADMIN, Action.REMOVE_MEMBER, removal)

        assert decision.kind == ErrorKind.CONFLICT
        assert list(decision.details) == [detail]

    def test_blockers_are_checked_in_order(self):
        decision = can(ADMIN, Action.REMOVE_MEMBER, MemberRemoval(5, 1, 1, 1))
        assert decision.details == {"assignedTasks": 1}

    def test_admin_cannot_remove_self(self):
        assert can(ADMIN, Action.REMOVE_MEMBER, MemberRemoval(1, 0, 0, 0)).kind == ErrorKind.FORBIDDEN

    def test_clean_member_can_be_removed(self):
        assert can(ADMIN, Action.REMOVE_MEMBER, MemberRemoval(5, 0, 0, 0))


@pytest.mark.unit
class TestRoleChangeRules:
    def test_non_admin_forbidden(self):
        decision = can(LEAD, Action.CHANGE_ROLE, RoleChange(3, UserRole.MEMBER, "Lead", 0, 1))
        assert decision.kind == ErrorKind.FORBIDDEN

    def test_unknown_role_is_validation_failure(self):
        decision = can(ADMIN, Action.CHANGE_ROLE, RoleChange(3, UserRole.MEMBER, "Owner", 0, 1))
        assert decision.kind == ErrorKind.VALIDATION_FAILED

    def test_leading_lead_cannot_become_member(self):
        decision = can(ADMIN, Action.CHANGE_ROLE, RoleChange(2, UserRole.LEAD, "Member", 2, 1))

        assert decision.kind == ErrorKind.CONFLICT
        assert decision.details == {"leadingProjects": 2}

    def test_last_admin_cannot_be_demoted(self):
        decision = can(ADMIN, Action.CHANGE_ROLE, RoleChange(1, UserRole.ADMIN, "Lead", 0, 1))
        assert decision.kind == ErrorKind.CONFLICT

    def test_one_of_two_admins_can_be_demoted(self):
        assert can(ADMIN, Action.CHANGE_ROLE, RoleChange(9, UserRole.ADMIN, "Member", 0, 2))


@pytest.mark.unit
class TestProjectRules:
    def test_lead_closes_finished_project(self):
        state = ProjectState(lead_id=2, status=ProjectStatus.IN_PROGRESS, total_tasks=3, completed_tasks=3)
        assert can(LEAD, Action.CLOSE_PROJECT, state)

    def test_other_lead_cannot_close(self):
        state = ProjectState(lead_id=99, status=ProjectStatus.IN_PROGRESS, total_tasks=1, completed_tasks=1)
        assert can(LEAD, Action.CLOSE_PROJECT, state).kind == ErrorKind.FORBIDDEN

    def test_close_without_tasks_conflicts(self):
        decision = can(ADMIN, Action.CLOSE_PROJECT, ProjectState(lead_id=2, status=ProjectStatus.NOT_STARTED))
        assert decision.kind == ErrorKind.CONFLICT
        assert decision.details["totalTasks"] == 0

    def test_close_with_pending_tasks_reports_counts(self):
        state = ProjectState(lead_id=2, status=ProjectStatus.IN_PROGRESS, total_tasks=3, completed_tasks=2)
        decision = can(LEAD, Action.CLOSE_PROJECT, state)

        assert decision.kind == ErrorKind.CONFLICT
        assert decision.details == {"totalTasks": 3, "completedTasks": 2, "pendingTasks": 1}

    def test_reclose_conflicts(self):
        state = ProjectState(lead_id=2, status=ProjectStatus.CLOSED, total_tasks=1, completed_tasks=1)
        assert can(LEAD, Action.CLOSE_PROJECT, state).kind == ErrorKind.CONFLICT

    def test_delete_requires_closed(self):
        state = ProjectState(lead_id=2, status=ProjectStatus.COMPLETED, total_tasks=1, completed_tasks=1)
        assert can(ADMIN, Action.DELETE_PROJECT, state).kind == ErrorKind.CONFLICT

    def test_delete_closed_project_without_tasks(self):
        assert can(ADMIN, Action.DELETE_PROJECT, ProjectState(lead_id=2, status=ProjectStatus.CLOSED))

    def test_delete_rechecks_pending_tasks(self):
        state = ProjectState(lead_id=2, status=ProjectStatus.CLOSED, total_tasks=2, completed_tasks=1)
        assert can(ADMIN, Action.DELETE_PROJECT, state).details["pendingTasks"] == 1

    def test_only_admin_and_lead_create_projects(self):
        assert can(ADMIN, Action.CREATE_PROJECT)
        assert can(LEAD, Action.CREATE_PROJECT)
        assert not can(MEMBER, Action.CREATE_PROJECT)
        assert not can(GUEST, Action.CREATE_PROJECT)

    def test_creator_may_issue_access_tokens(self):
        state = ProjectState(lead_id=2, status=ProjectStatus.PLANNING, created_by_id=3)
        assert can(MEMBER, Action.ISSUE_ACCESS_TOKENS, state)
        assert not can(OTHER_MEMBER, Action.ISSUE_ACCESS_TOKENS, state)

    def test_closed_project_members_are_frozen(self):
        state = ProjectState(lead_id=2, status=ProjectStatus.CLOSED)
        assert can(LEAD, Action.MANAGE_PROJECT_MEMBERS, state).kind == ErrorKind.CONFLICT


@pytest.mark.unit
class TestTaskRules:
    def test_reassign_to_non_participant_conflicts(self):
        target = TaskReassignment(10, 2, frozenset({5}), new_assignee_id=6, assignee_exists=True)
        decision = can(LEAD, Action.REASSIGN_TASK, target)
        assert decision.kind == ErrorKind.CONFLICT

    def test_reassign_to_member_allowed(self):
        target = TaskReassignment(10, 2, frozenset({5}), new_assignee_id=5, assignee_exists=True)
        assert can(LEAD, Action.REASSIGN_TASK, target)

    def test_reassign_to_unknown_user_not_found(self):
        target = TaskReassignment(10, 2, frozenset({5}), new_assignee_id=77, assignee_exists=False)
        assert can(ADMIN, Action.REASSIGN_TASK, target).kind == ErrorKind.NOT_FOUND

    def test_member_cannot_reassign(self):
        target = TaskReassignment(10, 2, frozenset({3}), new_assignee_id=3, assignee_exists=True)
        assert can(MEMBER, Action.REASSIGN_TASK, target).kind == ErrorKind.FORBIDDEN

    def test_personal_task_reassign_is_admin_only(self):
        target = TaskReassignment(None, None, frozenset(), new_assignee_id=4, assignee_exists=True)
        assert can(ADMIN, Action.REASSIGN_TASK, target)
        assert not can(LEAD, Action.REASSIGN_TASK, target)

    def test_assignee_updates_status(self):
        assert can(MEMBER, Action.UPDATE_TASK_STATUS, TaskChange(3, 2, new_status="Done"))

    def test_any_lead_updates_status(self):
        assert can(LEAD, Action.UPDATE_TASK_STATUS, TaskChange(3, 1, new_status="Blocked"))

    def test_unrelated_member_cannot_update_status(self):
        decision = can(OTHER_MEMBER, Action.UPDATE_TASK_STATUS, TaskChange(3, 2, new_status="Done"))
        assert decision.kind == ErrorKind.FORBIDDEN

    def test_unknown_status_is_validation_failure(self):
        decision = can(MEMBER, Action.UPDATE_TASK_STATUS, TaskChange(3, 2, new_status="Archived"))
        assert decision.kind == ErrorKind.VALIDATION_FAILED

    def test_guest_is_never_the_assignee(self):
        decision = can(GUEST, Action.UPDATE_TASK_STATUS, TaskChange(7, 7, new_status="Done"))
        assert decision.kind == ErrorKind.FORBIDDEN

    def test_closed_project_blocks_task_creation(self):
        decision = can(MEMBER, Action.CREATE_TASK, TaskCreation(ProjectStatus.CLOSED))
        assert decision.kind == ErrorKind.CONFLICT

    def test_member_deletes_only_own_personal_task(self):
        assert can(MEMBER, Action.DELETE_TASK, TaskChange(3, 3))
        assert not can(MEMBER, Action.DELETE_TASK, TaskChange(3, 3, project_id=10))
        assert not can(MEMBER, Action.DELETE_TASK, TaskChange(4, 4))
        assert can(LEAD, Action.DELETE_TASK, TaskChange(4, 4, project_id=10))


@pytest.mark.unit
class TestSecretAndTeamRules:
    def test_access_list_grants_read(self):
        assert can(MEMBER, Action.READ_SECRET, SecretTarget(frozenset({3})))
        assert not can(OTHER_MEMBER, Action.READ_SECRET, SecretTarget(frozenset({3})))
        assert can(ADMIN, Action.READ_SECRET, SecretTarget(frozenset()))

    def test_only_admin_writes_secrets(self):
        assert can(ADMIN, Action.WRITE_SECRET)
        assert can(LEAD, Action.WRITE_SECRET).kind == ErrorKind.FORBIDDEN

    def test_duplicate_team_name_conflicts(self):
        assert can(ADMIN, Action.CREATE_TEAM, TeamCreation(name_taken=True)).kind == ErrorKind.CONFLICT

    def test_leader_manages_members_only(self):
        assert can(MEMBER, Action.UPDATE_TEAM, TeamUpdate(leader_id=3, changes_details=False))
        assert not can(MEMBER, Action.UPDATE_TEAM, TeamUpdate(leader_id=3, changes_details=True))
        assert not can(OTHER_MEMBER, Action.UPDATE_TEAM, TeamUpdate(leader_id=3, changes_details=False))

    def test_denial_is_logged(self, caplog):
        with caplog.at_level("INFO", logger="workhub.services.policy"):
            decision = can(MEMBER, Action.DELETE_TEAM)

        assert isinstance(decision.details, dict)
        assert "delete_team" in caplog.text


@pytest.mark.unit
def test_conflict_error_carries_details():
    decision = can(ADMIN, Action.REMOVE_MEMBER, MemberRemoval(5, 4, 0, 0))

    with pytest.raises(Conflict) as exc_info:
        decision.enforce()

    assert exc_info.value.details == {"assignedTasks": 4}
