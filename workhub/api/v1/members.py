from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, status

from workhub.core.deps import get_current_principal, get_notifier, get_user_service
from workhub.schemas.user import (
    AdminUserResponse, RoleChangeRequest, RoleChangeResponse, SendCredentialsRequest, UserCreate, UserResponse
)
from workhub.services.identity import Principal
from workhub.services.notifications import Notifier
from workhub.services.user_service import UserService

router = APIRouter(prefix="/members", tags=["Members"])
admin_router = APIRouter(prefix="/admin/users", tags=["Admin"])


@router.get("/", response_model=List[UserResponse])
def list_members(
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    return service.list_members(principal)


@router.delete("/{user_id}")
def remove_member(
    user_id: int,
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    message = service.remove_member(principal, user_id)
    return {"message": message}


@router.patch("/{user_id}/role", response_model=RoleChangeResponse)
def change_role(
    user_id: int,
    data: RoleChangeRequest,
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    user, previous_role = service.change_role(principal, user_id, data.new_role)
    return RoleChangeResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        previous_role=previous_role,
        message=f"User role updated from {previous_role.value} to {user.role.value}",
    )


@admin_router.get("/", response_model=List[AdminUserResponse])
def list_users(
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    return service.list_users(principal)


@admin_router.post("/", response_model=AdminUserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    data: UserCreate,
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    return service.create_user(principal, data)


@admin_router.post("/{user_id}/send-credentials")
def send_credentials(
    user_id: int,
    data: SendCredentialsRequest,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
    notifier: Notifier = Depends(get_notifier),
):
    notification = service.send_credentials(principal, user_id, data.method)
    notifier.schedule(background_tasks, [notification])
    return {"message": f"Credentials sent via {data.method}"}
