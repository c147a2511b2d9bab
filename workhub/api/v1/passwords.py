from typing import List

from fastapi import APIRouter, Depends, status

from workhub.core.deps import get_current_principal, get_password_service
from workhub.schemas.password import PasswordCreate, PasswordResponse, PasswordUpdate
from workhub.services.identity import Principal
from workhub.services.password_service import PasswordService

router = APIRouter(prefix="/passwords", tags=["Passwords"])


@router.get("/", response_model=List[PasswordResponse])
def list_passwords(
    principal: Principal = Depends(get_current_principal),
    service: PasswordService = Depends(get_password_service),
):
    return service.list(principal)


@router.get("/{entry_id}", response_model=PasswordResponse)
def get_password(
    entry_id: int,
    principal: Principal = Depends(get_current_principal),
    service: PasswordService = Depends(get_password_service),
):
    return service.get(principal, entry_id)


@router.post("/", response_model=PasswordResponse, status_code=status.HTTP_201_CREATED)
def create_password(
    data: PasswordCreate,
    principal: Principal = Depends(get_current_principal),
    service: PasswordService = Depends(get_password_service),
):
    return service.create(principal, data)


@router.put("/{entry_id}", response_model=PasswordResponse)
def update_password(
    entry_id: int,
    data: PasswordUpdate,
    principal: Principal = Depends(get_current_principal),
    service: PasswordService = Depends(get_password_service),
):
    return service.update(principal, entry_id, data)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_password(
    entry_id: int,
    principal: Principal = Depends(get_current_principal),
    service: PasswordService = Depends(get_password_service),
):
    service.delete(principal, entry_id)
