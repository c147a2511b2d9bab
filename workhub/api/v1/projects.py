from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, status

from workhub.core.deps import (
    get_current_principal, get_guest_access_service, get_notifier, get_project_service, get_task_service
)
from workhub.schemas.project import (
    AccessTokenIssueRequest, LeadMemberResponse, PhaseCreate, PhaseUpdate, ProjectCreate,
    ProjectDeleteResponse, ProjectLeadChange, ProjectLeadChangeResponse, ProjectMemberAdd,
    ProjectPhase, ProjectResponse
)
from workhub.schemas.task import TaskResponse
from workhub.services.guest_access import GuestAccessService
from workhub.services.identity import Principal
from workhub.services.notifications import Notifier
from workhub.services.project_service import ProjectService
from workhub.services.task_service import TaskService

router = APIRouter(prefix="/projects", tags=["Projects"])


@router.post("/", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
def create_project(
    data: ProjectCreate,
    principal: Principal = Depends(get_current_principal),
    service: ProjectService = Depends(get_project_service),
):
    return service.create(principal, data)


@router.get("/", response_model=List[ProjectResponse])
def list_projects(
    principal: Principal = Depends(get_current_principal),
    service: ProjectService = Depends(get_project_service),
):
    return service.list(principal)


@router.get("/lead", response_model=List[ProjectResponse])
def list_led_projects(
    principal: Principal = Depends(get_current_principal),
    service: ProjectService = Depends(get_project_service),
):
    return service.list_led(principal)


@router.get("/lead/members", response_model=List[LeadMemberResponse])
def list_lead_members(
    principal: Principal = Depends(get_current_principal),
    service: ProjectService = Depends(get_project_service),
):
    return service.lead_members(principal)


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: int,
    principal: Principal = Depends(get_current_principal),
    service: ProjectService = Depends(get_project_service),
):
    return service.get(principal, project_id)


@router.get("/{project_id}/tasks", response_model=List[TaskResponse])
def list_project_tasks(
    project_id: int,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    return service.list_for_project(principal, project_id)


@router.post("/{project_id}/close", response_model=ProjectResponse)
def close_project(
    project_id: int,
    principal: Principal = Depends(get_current_principal),
    service: ProjectService = Depends(get_project_service),
):
    return service.close(principal, project_id)


@router.delete("/{project_id}", response_model=ProjectDeleteResponse)
def delete_project(
    project_id: int,
    principal: Principal = Depends(get_current_principal),
    service: ProjectService = Depends(get_project_service),
):
    deleted_tasks = service.delete(principal, project_id)
    return ProjectDeleteResponse(
        message=f"Project deleted successfully along with {deleted_tasks} task(s)",
        deleted_tasks=deleted_tasks,
    )


@router.patch("/{project_id}/lead", response_model=ProjectLeadChangeResponse)
def change_project_lead(
    project_id: int,
    data: ProjectLeadChange,
    principal: Principal = Depends(get_current_principal),
    service: ProjectService = Depends(get_project_service),
):
    project, reassigned = service.change_lead(principal, project_id, data.lead_id)
    return ProjectLeadChangeResponse(
        message=f"Project lead updated, {reassigned} task(s) reassigned to the new lead",
        reassigned_tasks=reassigned,
        project=project,
    )


@router.post("/{project_id}/members", response_model=ProjectResponse)
def add_project_member(
    project_id: int,
    data: ProjectMemberAdd,
    principal: Principal = Depends(get_current_principal),
    service: ProjectService = Depends(get_project_service),
):
    return service.add_member(principal, project_id, data.member_id)


@router.delete("/{project_id}/members/{member_id}", response_model=ProjectResponse)
def remove_project_member(
    project_id: int,
    member_id: int,
    principal: Principal = Depends(get_current_principal),
    service: ProjectService = Depends(get_project_service),
):
    return service.remove_member(principal, project_id, member_id)


@router.post("/{project_id}/publish")
def issue_access_tokens(
    project_id: int,
    data: AccessTokenIssueRequest,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_current_principal),
    service: GuestAccessService = Depends(get_guest_access_service),
    notifier: Notifier = Depends(get_notifier),
):
    results, invitations = service.issue(principal, project_id, data.emails, data.expires_in_days)
    sent = notifier.schedule(background_tasks, invitations)
    return {
        "message": f"Successfully sent {sent} invitation(s)",
        "results": results,
    }


@router.post("/{project_id}/phases", response_model=ProjectPhase, status_code=status.HTTP_201_CREATED)
def add_project_phase(
    project_id: int,
    data: PhaseCreate,
    principal: Principal = Depends(get_current_principal),
    service: ProjectService = Depends(get_project_service),
):
    return service.add_phase(principal, project_id, data)


@router.patch("/{project_id}/phases/{phase_id}", response_model=List[ProjectPhase])
def update_project_phase(
    project_id: int,
    phase_id: str,
    data: PhaseUpdate,
    principal: Principal = Depends(get_current_principal),
    service: ProjectService = Depends(get_project_service),
):
    return service.update_phase(principal, project_id, phase_id, data)


@router.delete("/{project_id}/phases/{phase_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project_phase(
    project_id: int,
    phase_id: str,
    principal: Principal = Depends(get_current_principal),
    service: ProjectService = Depends(get_project_service),
):
    service.delete_phase(principal, project_id, phase_id)
