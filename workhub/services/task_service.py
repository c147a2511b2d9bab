import logging
from typing import List, Optional, Tuple

from workhub.core.errors import Forbidden, NotFound, ValidationFailed
from workhub.db.redis_client import ProjectStatsCache
from workhub.db.store import EntityStore
from workhub.models.project import Project
from workhub.models.task import Task, TaskStatus
from workhub.models.user import User
from workhub.schemas.task import Subtask, TaskCreate
from workhub.services.identity import Principal
from workhub.services.policy import Action, TaskChange, TaskCreation, TaskReassignment, can

logger = logging.getLogger(__name__)


class TaskService:
    def __init__(self, store: EntityStore, cache: Optional[ProjectStatsCache] = None):
        self.store = store
        self.cache = cache or ProjectStatsCache(None)

    def create(self, principal: Principal, task_data: TaskCreate) -> Task:
        project = None
        if task_data.project_id is not None:
            project = self.store.find_by_id(Project, task_data.project_id)
            if project is None:
                raise ValidationFailed("Invalid project", {"projectId": task_data.project_id})
        can(principal, Action.CREATE_TASK, TaskCreation(
            project_status=project.stored_status if project else None,
        )).enforce()

        if self.store.find_by_id(User, task_data.assigned_to_id) is None:
            raise ValidationFailed("Assignee not found", {"assigneeId": task_data.assigned_to_id})

        task = Task(
            title=task_data.title,
            description=task_data.description or "",
            project_id=task_data.project_id,
            assigned_to_id=task_data.assigned_to_id,
            assigned_by_id=principal.user_id,
            priority=task_data.priority,
            due_date=task_data.due_date,
            skills=list(task_data.skills),
            subtasks=[],
        )
        task.set_status(TaskStatus.TODO)
        self.store.insert(task)
        self.store.commit()

        # Invalidate cache
        self.cache.invalidate(task.project_id)
        return task

    def get_task(self, task_id: int) -> Task:
        task = self.store.find_by_id(Task, task_id)
        if task is None:
            raise NotFound("Task not found", {"taskId": task_id})
        return task

    def get(self, principal: Principal, task_id: int) -> Task:
        task = self.get_task(task_id)
        if principal.is_guest and task.project_id != principal.project_scope:
            raise Forbidden("Guests can only view tasks of the project they were invited to")
        return task

    def list_for_user(self, principal: Principal) -> List[Task]:
        """The caller's own tasks; a guest sees the tasks of their project"""
        if principal.is_guest:
            return self.list_for_project(principal, principal.project_scope)
        return self.store.find(Task, assigned_to_id=principal.user_id, order_by=Task.due_date)

    def list_for_project(self, principal: Principal, project_id: Optional[int]) -> List[Task]:
        if principal.is_guest and project_id != principal.project_scope:
            raise Forbidden("Guests can only view tasks of the project they were invited to")
        if self.store.find_by_id(Project, project_id) is None:
            raise NotFound("Project not found", {"projectId": project_id})
        return self.store.find(Task, project_id=project_id, order_by=Task.created_at.desc())

    def update_status(self, principal: Principal, task_id: int, status: str) -> Task:
        task = self.get_task(task_id)
        can(principal, Action.UPDATE_TASK_STATUS, TaskChange(
            assigned_to_id=task.assigned_to_id,
            assigned_by_id=task.assigned_by_id,
            project_id=task.project_id,
            new_status=status,
        )).enforce()

        previous = task.status
        task.set_status(TaskStatus(status))
        self.store.commit()
        self.cache.invalidate(task.project_id)
        logger.info(
            "Task %s moved from %s to %s by %s", task.id, previous.value, task.status.value, principal.id
        )
        return task

    def reassign(self, principal: Principal, task_id: int, new_assignee_id: int) -> Tuple[Task, int]:
        """Move a task to another user; returns the task and the previous assignee id"""
        task = self.get_task(task_id)
        project = self.store.find_by_id(Project, task.project_id)
        can(principal, Action.REASSIGN_TASK, TaskReassignment(
            project_id=project.id if project else None,
            project_lead_id=project.lead_id if project else None,
            project_member_ids=frozenset(project.member_ids) if project else frozenset(),
            new_assignee_id=new_assignee_id,
            assignee_exists=self.store.find_by_id(User, new_assignee_id) is not None,
        )).enforce()

        previous_assignee_id = task.assigned_to_id
        task.assigned_to_id = new_assignee_id
        self.store.commit()
        self.cache.invalidate(task.project_id)
        logger.info(
            "Task %s reassigned from %s to %s by %s",
            task.id, previous_assignee_id, new_assignee_id, principal.id,
        )
        return task, previous_assignee_id

    def update_subtasks(self, principal: Principal, task_id: int, subtasks: List[Subtask]) -> Task:
        task = self.get_task(task_id)
        can(principal, Action.UPDATE_SUBTASKS, TaskChange(
            assigned_to_id=task.assigned_to_id,
            assigned_by_id=task.assigned_by_id,
            project_id=task.project_id,
        )).enforce()

        task.subtasks = [subtask.model_dump() for subtask in subtasks]
        self.store.commit()
        return task

    def delete(self, principal: Principal, task_id: int) -> None:
        task = self.get_task(task_id)
        can(principal, Action.DELETE_TASK, TaskChange(
            assigned_to_id=task.assigned_to_id,
            assigned_by_id=task.assigned_by_id,
            project_id=task.project_id,
        )).enforce()

        project_id = task.project_id
        self.store.delete(task)
        self.store.commit()
        self.cache.invalidate(project_id)
        logger.info("Task %s deleted by %s", task_id, principal.id)
