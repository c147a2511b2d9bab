from typing import List

from fastapi import APIRouter, Depends, status

from workhub.core.deps import get_current_principal, get_team_service
from workhub.schemas.team import TeamCreate, TeamResponse, TeamUpdate
from workhub.services.identity import Principal
from workhub.services.team_service import TeamService

router = APIRouter(prefix="/teams", tags=["Teams"])


@router.get("/", response_model=List[TeamResponse])
def list_teams(
    principal: Principal = Depends(get_current_principal),
    service: TeamService = Depends(get_team_service),
):
    return service.list(principal)


@router.post("/", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
def create_team(
    data: TeamCreate,
    principal: Principal = Depends(get_current_principal),
    service: TeamService = Depends(get_team_service),
):
    return service.create(principal, data)


@router.patch("/{team_id}", response_model=TeamResponse)
def update_team(
    team_id: int,
    data: TeamUpdate,
    principal: Principal = Depends(get_current_principal),
    service: TeamService = Depends(get_team_service),
):
    return service.update(principal, team_id, data)


@router.delete("/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_team(
    team_id: int,
    principal: Principal = Depends(get_current_principal),
    service: TeamService = Depends(get_team_service),
):
    service.delete(principal, team_id)
