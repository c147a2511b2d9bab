from datetime import datetime

import pytest

from conftest import guest_principal, principal
from workhub.core.errors import Conflict, Forbidden, NotFound, ValidationFailed
from workhub.models import ProjectStatus, Task, TaskStatus, UserRole
from workhub.schemas.task import Subtask, TaskCreate
from workhub.services.task_service import TaskService


@pytest.fixture
def service(store):
    return TaskService(store)


@pytest.mark.unit
class TestCompletionStamp:
    def test_done_iff_completed_at(self):
        task = Task(status=TaskStatus.TODO)
        stamp = datetime(2024, 5, 1, 12, 0)

        task.set_status(TaskStatus.DONE, now=stamp)
        assert task.completed_at == stamp

        task.set_status(TaskStatus.BLOCKED)
        assert task.completed_at is None

    def test_repeated_done_keeps_first_stamp(self):
        task = Task(status=TaskStatus.TODO)
        task.set_status(TaskStatus.DONE, now=datetime(2024, 5, 1))
        task.set_status(TaskStatus.DONE, now=datetime(2024, 6, 1))

        assert task.completed_at == datetime(2024, 5, 1)

    def test_every_transition_keeps_invariant(self, service, make_user, make_task):
        member = make_user()
        task = make_task(member, member)

        for status in ["Done", "In Progress", "Done", "Todo", "Blocked", "Planning", "Done"]:
            updated = service.update_status(principal(member), task.id, status)
            assert (updated.status == TaskStatus.DONE) == (updated.completed_at is not None)


@pytest.mark.unit
class TestCreate:
    def test_personal_task(self, service, make_user):
        member = make_user()
        task = service.create(principal(member), TaskCreate(title="Read", assigned_to_id=member.id))

        assert task.status == TaskStatus.TODO
        assert task.project_id is None
        assert task.assigned_by_id == member.id

    def test_closed_project_rejects_tasks(self, service, store, make_user, make_project):
        lead = make_user(UserRole.LEAD)
        project = make_project(lead)
        project.stored_status = ProjectStatus.CLOSED
        store.commit()

        with pytest.raises(Conflict):
            service.create(principal(lead), TaskCreate(title="Late", project_id=project.id, assigned_to_id=lead.id))

    def test_unknown_project_and_assignee(self, service, make_user):
        member = make_user()
        with pytest.raises(ValidationFailed):
            service.create(principal(member), TaskCreate(title="Read", project_id=404, assigned_to_id=member.id))
        with pytest.raises(ValidationFailed):
            service.create(principal(member), TaskCreate(title="Read", assigned_to_id=404))

    def test_guest_cannot_create(self, service, make_user, make_project):
        lead = make_user(UserRole.LEAD)
        project = make_project(lead)
        with pytest.raises(Forbidden):
            service.create(guest_principal(project.id), TaskCreate(title="Spam", project_id=project.id, assigned_to_id=lead.id))


@pytest.mark.unit
class TestReassign:
    def test_reassign_scenario(self, service, make_user, make_project, make_task):
        """Only lead or member of the project can receive its task"""
        lead = make_user(UserRole.LEAD)
        m1 = make_user()
        m2 = make_user()
        project = make_project(lead, members=[m1])
        task = make_task(lead, lead, project)

        with pytest.raises(Conflict):
            service.reassign(principal(lead), task.id, m2.id)

        updated, previous = service.reassign(principal(lead), task.id, m1.id)
        assert previous == lead.id
        assert updated.assigned_to_id == m1.id

    def test_unknown_assignee(self, service, admin_principal, make_user, make_project, make_task):
        lead = make_user(UserRole.LEAD)
        task = make_task(lead, lead, make_project(lead))
        with pytest.raises(NotFound):
            service.reassign(admin_principal, task.id, 404)

    def test_member_cannot_reassign(self, service, make_user, make_project, make_task):
        lead = make_user(UserRole.LEAD)
        member = make_user()
        task = make_task(member, lead, make_project(lead, members=[member]))
        with pytest.raises(Forbidden):
            service.reassign(principal(member), task.id, lead.id)


@pytest.mark.unit
class TestStatusAndSubtasks:
    def test_invalid_status(self, service, make_user, make_task):
        member = make_user()
        task = make_task(member, member)
        with pytest.raises(ValidationFailed):
            service.update_status(principal(member), task.id, "Archived")

    def test_stranger_cannot_update(self, service, make_user, make_task):
        owner = make_user()
        stranger = make_user()
        task = make_task(owner, owner)
        with pytest.raises(Forbidden):
            service.update_status(principal(stranger), task.id, "Done")

    def test_assigner_updates_subtasks(self, service, make_user, make_task):
        lead = make_user(UserRole.LEAD)
        member = make_user()
        task = make_task(member, lead)

        updated = service.update_subtasks(principal(lead), task.id, [
            Subtask(id="a", title="Outline", completed=True),
            Subtask(id="b", title="Draft"),
        ])

        assert [s["id"] for s in updated.subtasks] == ["a", "b"]
        assert updated.subtasks[0]["completed"] is True


@pytest.mark.unit
class TestDeleteAndReads:
    def test_member_deletes_own_personal_task(self, service, store, make_user, make_task):
        member = make_user()
        task = make_task(member, member)

        service.delete(principal(member), task.id)

        assert store.find_by_id(Task, task.id) is None

    def test_member_cannot_delete_project_task(self, service, make_user, make_project, make_task):
        lead = make_user(UserRole.LEAD)
        member = make_user()
        task = make_task(member, lead, make_project(lead, members=[member]))
        with pytest.raises(Forbidden):
            service.delete(principal(member), task.id)

    def test_my_tasks(self, service, make_user, make_task):
        member = make_user()
        other = make_user()
        mine = make_task(member, other)
        make_task(other, other)

        assert [t.id for t in service.list_for_user(principal(member))] == [mine.id]

    def test_guest_sees_project_tasks(self, service, make_user, make_project, make_task):
        lead = make_user(UserRole.LEAD)
        project = make_project(lead)
        task = make_task(lead, lead, project)
        make_task(lead, lead)

        guest = guest_principal(project.id)
        assert [t.id for t in service.list_for_user(guest)] == [task.id]
        with pytest.raises(Forbidden):
            service.list_for_project(guest, project.id + 1)
