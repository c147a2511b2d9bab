from typing import List

from fastapi import APIRouter, Depends, status

from workhub.core.deps import get_current_principal, get_member_request_service
from workhub.schemas.member_request import MemberRequestResponse, ProcessMemberRequest
from workhub.services.identity import Principal
from workhub.services.member_request_service import MemberRequestService

router = APIRouter(prefix="/member-requests", tags=["Member Requests"])


@router.post("/", response_model=MemberRequestResponse, status_code=status.HTTP_201_CREATED)
def submit_request(
    principal: Principal = Depends(get_current_principal),
    service: MemberRequestService = Depends(get_member_request_service),
):
    return service.submit(principal)


@router.get("/pending", response_model=List[MemberRequestResponse])
def list_pending_requests(
    principal: Principal = Depends(get_current_principal),
    service: MemberRequestService = Depends(get_member_request_service),
):
    return service.list_pending(principal)


@router.post("/{request_id}/process", response_model=MemberRequestResponse)
def process_request(
    request_id: int,
    data: ProcessMemberRequest,
    principal: Principal = Depends(get_current_principal),
    service: MemberRequestService = Depends(get_member_request_service),
):
    return service.process(principal, request_id, data.action)
