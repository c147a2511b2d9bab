import logging
from datetime import datetime
from typing import List

from workhub.core.errors import Conflict, Forbidden, NotFound, ValidationFailed
from workhub.db.store import EntityStore
from workhub.models.member_request import MemberRequest, MemberRequestStatus
from workhub.services.identity import Principal
from workhub.services.policy import Action, MemberRequestTarget, can

logger = logging.getLogger(__name__)

DECISIONS = {
    "approve": MemberRequestStatus.APPROVED,
    "reject": MemberRequestStatus.REJECTED,
}


class MemberRequestService:
    def __init__(self, store: EntityStore):
        self.store = store

    def submit(self, principal: Principal) -> MemberRequest:
        if principal.is_guest:
            raise Forbidden("Guests cannot request membership")
        if self.store.find_one(MemberRequest, user_id=principal.user_id, status=MemberRequestStatus.PENDING):
            raise Conflict("You already have a pending request")
        request = MemberRequest(user_id=principal.user_id, status=MemberRequestStatus.PENDING)
        self.store.insert(request)
        self.store.commit()
        return request

    def list_pending(self, principal: Principal) -> List[MemberRequest]:
        can(principal, Action.VIEW_MEMBER_REQUESTS).enforce()
        return self.store.find(
            MemberRequest,
            status=MemberRequestStatus.PENDING,
            order_by=MemberRequest.requested_at.desc(),
        )

    def process(self, principal: Principal, request_id: int, action: str) -> MemberRequest:
        if action not in DECISIONS:
            raise ValidationFailed("Invalid action. Must be 'approve' or 'reject'", {"allowed": list(DECISIONS)})
        request = self.store.find_by_id(MemberRequest, request_id)
        if request is None:
            raise NotFound("Member request not found", {"requestId": request_id})
        can(principal, Action.PROCESS_MEMBER_REQUEST, MemberRequestTarget(request.status)).enforce()

        request.status = DECISIONS[action]
        request.processed_at = datetime.utcnow()
        request.processed_by_id = principal.user_id
        self.store.commit()
        logger.info("Member request %s %s by %s", request.id, request.status.value, principal.id)
        return request
