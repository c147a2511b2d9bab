from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from workhub.models.member_request import MemberRequestStatus


class MemberRequestResponse(BaseModel):
    id: int
    user_id: int
    status: MemberRequestStatus
    requested_at: datetime
    processed_at: Optional[datetime] = None
    processed_by_id: Optional[int] = None

    class Config:
        from_attributes = True


class ProcessMemberRequest(BaseModel):
    action: str
