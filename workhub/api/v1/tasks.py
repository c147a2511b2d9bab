from typing import List

from fastapi import APIRouter, Depends, status

from workhub.core.deps import get_current_principal, get_task_service
from workhub.schemas.task import (
    SubtasksUpdate, TaskCreate, TaskReassign, TaskReassignResponse, TaskResponse, TaskStatusUpdate
)
from workhub.services.identity import Principal
from workhub.services.task_service import TaskService

router = APIRouter(prefix="/tasks", tags=["Tasks"])


@router.post("/", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    task_data: TaskCreate,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    return service.create(principal, task_data)


@router.get("/my-tasks", response_model=List[TaskResponse])
def get_my_tasks(
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    return service.list_for_user(principal)


@router.get("/{task_id}", response_model=TaskResponse)
def get_task(
    task_id: int,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    return service.get(principal, task_id)


@router.patch("/{task_id}/status", response_model=TaskResponse)
def update_task_status(
    task_id: int,
    data: TaskStatusUpdate,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    return service.update_status(principal, task_id, data.status)


@router.patch("/{task_id}/subtasks", response_model=TaskResponse)
def update_subtasks(
    task_id: int,
    data: SubtasksUpdate,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    return service.update_subtasks(principal, task_id, data.subtasks)


@router.post("/{task_id}/reassign", response_model=TaskReassignResponse)
def reassign_task(
    task_id: int,
    data: TaskReassign,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    task, previous_assignee_id = service.reassign(principal, task_id, data.new_assignee_id)
    return TaskReassignResponse(
        message="Task reassigned successfully",
        previous_assignee_id=previous_assignee_id,
        task=TaskResponse.model_validate(task),
    )


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: int,
    principal: Principal = Depends(get_current_principal),
    service: TaskService = Depends(get_task_service),
):
    service.delete(principal, task_id)
