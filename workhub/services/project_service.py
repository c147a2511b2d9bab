import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from workhub.core.errors import Conflict, Forbidden, NotFound, ValidationFailed
from workhub.db.redis_client import ProjectStatsCache
from workhub.db.store import EntityStore
from workhub.models.access_token import ProjectAccessToken
from workhub.models.project import Project, ProjectStatus
from workhub.models.task import Task, TaskStatus
from workhub.models.user import User, UserRole
from workhub.schemas.project import (
    LeadMemberResponse, PhaseCreate, PhaseUpdate, ProjectCreate, ProjectPhase, ProjectResponse
)
from workhub.services.identity import Principal
from workhub.services.policy import Action, ProjectState, can

logger = logging.getLogger(__name__)


class ProjectService:
    def __init__(self, store: EntityStore, cache: Optional[ProjectStatsCache] = None):
        self.store = store
        self.cache = cache or ProjectStatsCache(None)

    def task_counts(self, project_id: int) -> Tuple[int, int]:
        """(total, completed) read straight from the store"""
        total = self.store.count(Task, project_id=project_id)
        completed = self.store.count(Task, project_id=project_id, status=TaskStatus.DONE)
        return total, completed

    def cached_task_counts(self, project_id: int) -> Tuple[int, int]:
        stats = self.cache.get(project_id)
        if stats is not None:
            return stats["total"], stats["completed"]
        total, completed = self.task_counts(project_id)
        self.cache.set(project_id, {"total": total, "completed": completed})
        return total, completed

    def to_response(self, project: Project, fresh: bool = False) -> ProjectResponse:
        if fresh:
            total, completed = self.task_counts(project.id)
        else:
            total, completed = self.cached_task_counts(project.id)
        return ProjectResponse(
            id=project.id,
            name=project.name,
            description=project.description,
            created_by_id=project.created_by_id,
            lead_id=project.lead_id,
            member_ids=project.member_ids,
            status=project.derived_status(total, completed),
            stored_status=project.stored_status,
            priority=project.priority,
            progress=project.derived_progress(total, completed),
            total_tasks=total,
            completed_tasks=completed,
            start_date=project.start_date,
            end_date=project.end_date,
            closed_at=project.closed_at,
            closed_by_id=project.closed_by_id,
            phases=project.phases or [],
        )

    def state(self, project: Project) -> ProjectState:
        total, completed = self.task_counts(project.id)
        return ProjectState(
            lead_id=project.lead_id,
            status=project.stored_status,
            total_tasks=total,
            completed_tasks=completed,
            created_by_id=project.created_by_id,
        )

    def get_project(self, project_id: int) -> Project:
        project = self.store.find_by_id(Project, project_id)
        if project is None:
            raise NotFound("Project not found", {"projectId": project_id})
        return project

    # Reads

    def get(self, principal: Principal, project_id: int) -> ProjectResponse:
        if principal.is_guest and principal.project_scope != project_id:
            raise Forbidden("Guests can only view the project they were invited to")
        return self.to_response(self.get_project(project_id))

    def list(self, principal: Principal) -> List[ProjectResponse]:
        # Single shared workspace: every registered user sees every project
        if principal.is_guest:
            projects = self.store.find(Project, id=principal.project_scope)
        else:
            projects = self.store.find(Project, order_by=Project.created_at.desc())
        return [self.to_response(project) for project in projects]

    def list_led(self, principal: Principal) -> List[ProjectResponse]:
        """Projects the caller leads, newest first"""
        return [self.to_response(project) for project in self._led_projects(principal)]

    def lead_members(self, principal: Principal) -> List[LeadMemberResponse]:
        """Members across the caller's projects, each with the project names they belong to"""
        members: Dict[int, LeadMemberResponse] = {}
        for project in self._led_projects(principal):
            for user in project.members:
                if user.role != UserRole.MEMBER:
                    continue
                if user.id not in members:
                    members[user.id] = LeadMemberResponse(
                        id=user.id,
                        name=user.name,
                        email=user.email,
                        role=user.role,
                        skills=list(user.skills or []),
                        projects=[],
                    )
                members[user.id].projects.append(project.name)
        return list(members.values())

    def _led_projects(self, principal: Principal) -> List[Project]:
        if principal.is_guest:
            raise Forbidden("Guests do not lead projects")
        return self.store.find(Project, lead_id=principal.user_id, order_by=Project.created_at.desc())

    # Transitions

    def create(self, principal: Principal, data: ProjectCreate) -> ProjectResponse:
        can(principal, Action.CREATE_PROJECT).enforce()
        lead = self.store.find_by_id(User, data.lead_id)
        if lead is None:
            raise ValidationFailed("Invalid project lead", {"leadId": data.lead_id})
        if lead.role == UserRole.MEMBER:
            lead.role = UserRole.LEAD

        project = Project(
            name=data.name,
            description=data.description or "",
            created_by_id=principal.user_id,
            lead_id=lead.id,
            priority=data.priority,
            start_date=data.start_date,
            end_date=data.end_date,
        )
        project.members.append(lead)
        self.store.insert(project)
        self.store.commit()
        logger.info("User %s created project %s led by %s", principal.id, project.id, lead.id)
        return self.to_response(project, fresh=True)

    def close(self, principal: Principal, project_id: int) -> ProjectResponse:
        project = self.get_project(project_id)
        can(principal, Action.CLOSE_PROJECT, self.state(project)).enforce()

        project.stored_status = ProjectStatus.CLOSED
        project.closed_at = datetime.utcnow()
        project.closed_by_id = principal.user_id
        project.progress = 100
        self.store.commit()
        self.cache.invalidate(project.id)
        logger.info("Project %s closed by %s", project.id, principal.id)
        return self.to_response(project, fresh=True)

    def delete(self, principal: Principal, project_id: int) -> int:
        """Delete a closed project with its tasks; returns the number of tasks removed"""
        project = self.get_project(project_id)
        can(principal, Action.DELETE_PROJECT, self.state(project)).enforce()

        deleted_tasks = self.store.delete_where(Task, project_id=project.id)
        self.store.delete_where(ProjectAccessToken, project_id=project.id)
        self.store.delete(project)
        self.store.commit()
        self.cache.invalidate(project_id)
        logger.info(
            "Project %s deleted by %s along with %s task(s)", project_id, principal.id, deleted_tasks
        )
        return deleted_tasks

    def change_lead(self, principal: Principal, project_id: int, new_lead_id: int) -> Tuple[ProjectResponse, int]:
        """Hand the project to a new lead; returns the project and the number of tasks moved"""
        project = self.get_project(project_id)
        can(principal, Action.CHANGE_PROJECT_LEAD, self.state(project)).enforce()
        new_lead = self.store.find_by_id(User, new_lead_id)
        if new_lead is None:
            raise NotFound("New lead not found", {"leadId": new_lead_id})

        old_lead_id = project.lead_id
        if old_lead_id == new_lead.id:
            return self.to_response(project), 0

        reassigned = 0
        for task in self.store.find(Task, project_id=project.id, assigned_to_id=old_lead_id):
            task.assigned_to_id = new_lead.id
            reassigned += 1

        project.lead_id = new_lead.id
        if new_lead.id not in project.member_ids:
            project.members.append(new_lead)
        if new_lead.role == UserRole.MEMBER:
            new_lead.role = UserRole.LEAD
        self.store.flush()

        old_lead = self.store.find_by_id(User, old_lead_id)
        if old_lead is not None and old_lead.role == UserRole.LEAD:
            if self.store.count(Project, lead_id=old_lead.id) == 0:
                old_lead.role = UserRole.MEMBER

        self.store.commit()
        self.cache.invalidate(project.id)
        logger.info(
            "Project %s lead changed from %s to %s, %s task(s) reassigned",
            project.id, old_lead_id, new_lead.id, reassigned,
        )
        return self.to_response(project, fresh=True), reassigned

    def add_member(self, principal: Principal, project_id: int, member_id: int) -> ProjectResponse:
        project = self.get_project(project_id)
        can(principal, Action.MANAGE_PROJECT_MEMBERS, self.state(project)).enforce()
        member = self.store.find_by_id(User, member_id)
        if member is None:
            raise NotFound("User not found", {"userId": member_id})
        if member.id in project.member_ids:
            raise Conflict("User is already a member of this project")

        project.members.append(member)
        self.store.commit()
        logger.info("User %s added to project %s", member.id, project.id)
        return self.to_response(project)

    def remove_member(self, principal: Principal, project_id: int, member_id: int) -> ProjectResponse:
        project = self.get_project(project_id)
        can(principal, Action.MANAGE_PROJECT_MEMBERS, self.state(project)).enforce()
        member = next((m for m in project.members if m.id == member_id), None)
        if member is None:
            raise NotFound("User is not a member of this project", {"userId": member_id})
        if member.id == project.lead_id:
            raise Conflict("Cannot remove the project lead. Change the lead first.")

        tasks_count = self.store.count(Task, project_id=project.id, assigned_to_id=member.id)
        if tasks_count > 0:
            raise Conflict(
                f"Cannot remove member. They have {tasks_count} task(s) in this project.",
                {"tasksCount": tasks_count},
            )

        project.members.remove(member)
        self.store.commit()
        logger.info("User %s removed from project %s", member.id, project.id)
        return self.to_response(project)

    # Phases

    def add_phase(self, principal: Principal, project_id: int, data: PhaseCreate) -> ProjectPhase:
        project = self.get_project(project_id)
        can(principal, Action.MANAGE_PROJECT_PHASES, self.state(project)).enforce()

        phase = ProjectPhase(
            id=uuid.uuid4().hex,
            phase=data.phase,
            date=data.date or datetime.utcnow().strftime("%d/%m/%Y"),
            description=data.description,
            platform=data.platform,
            status=data.status,
        )
        # JSON columns only register a change on reassignment
        project.phases = list(project.phases or []) + [phase.model_dump()]
        self.store.commit()
        logger.info("Phase %s added to project %s by %s", phase.id, project.id, principal.id)
        return phase

    def update_phase(
        self, principal: Principal, project_id: int, phase_id: str, data: PhaseUpdate
    ) -> List[ProjectPhase]:
        project = self.get_project(project_id)
        can(principal, Action.MANAGE_PROJECT_PHASES, self.state(project)).enforce()

        phases = [dict(phase) for phase in project.phases or []]
        index = self._phase_index(phases, project.id, phase_id)
        phases[index].update(data.model_dump(exclude_unset=True, exclude_none=True))
        project.phases = phases
        self.store.commit()
        return [ProjectPhase(**phase) for phase in phases]

    def delete_phase(self, principal: Principal, project_id: int, phase_id: str) -> None:
        project = self.get_project(project_id)
        can(principal, Action.MANAGE_PROJECT_PHASES, self.state(project)).enforce()

        phases = list(project.phases or [])
        del phases[self._phase_index(phases, project.id, phase_id)]
        project.phases = phases
        self.store.commit()
        logger.info("Phase %s removed from project %s by %s", phase_id, project.id, principal.id)

    @staticmethod
    def _phase_index(phases: List[Dict[str, Any]], project_id: int, phase_id: str) -> int:
        for index, phase in enumerate(phases):
            if phase.get("id") == phase_id:
                return index
        raise NotFound("Phase not found", {"projectId": project_id, "phaseId": phase_id})
