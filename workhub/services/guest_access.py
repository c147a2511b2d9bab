"""
Guest access to a single project.

A project lead hands out short access codes bound to a project and an email
address. Redeeming a code yields a guest credential scoped to that project;
guests are never stored as users.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from workhub.core.config import settings
from workhub.core.errors import InternalError, NotFound, Unauthenticated, ValidationFailed
from workhub.core.security import GUEST_CODE_ALPHABET, CredentialService, generate_access_code
from workhub.db.store import EntityStore
from workhub.models.access_token import ProjectAccessToken, normalize_code
from workhub.models.project import Project
from workhub.models.user import UserRole
from workhub.schemas.project import AccessTokenIssueResult
from workhub.services.identity import GUEST_PREFIX, Principal
from workhub.services.notifications import EMAIL, Notification
from workhub.services.policy import Action, ProjectState, can

logger = logging.getLogger(__name__)

TOKEN_GENERATION_ATTEMPTS = 10


class GuestAccessService:
    def __init__(self, store: EntityStore, credentials: CredentialService):
        self.store = store
        self.credentials = credentials

    def redeem(self, code: Optional[str]) -> Tuple[str, Principal, Project]:
        """Exchange an access code for a guest credential"""
        normalized = normalize_code(code or "")
        if not normalized:
            raise ValidationFailed("Access code is required")

        access_token = self.store.find_one(ProjectAccessToken, token=normalized, is_active=True)
        if access_token is None:
            raise Unauthenticated("Invalid access code")
        now = datetime.utcnow()
        if access_token.is_expired(now):
            raise Unauthenticated("Access code has expired")

        project = self.store.find_by_id(Project, access_token.project_id)
        if project is None:
            raise NotFound("Project not found", {"projectId": access_token.project_id})

        if access_token.used_at is None:
            access_token.used_at = now
            self.store.commit()

        principal = Principal(
            id=f"{GUEST_PREFIX}{access_token.id}",
            email=access_token.email,
            role=UserRole.MEMBER,
            project_scope=project.id,
            is_guest=True,
        )
        token = self.credentials.issue(
            principal.claims(),
            ttl=timedelta(minutes=settings.GUEST_TOKEN_EXPIRE_MINUTES),
        )
        logger.info("Guest %s redeemed access to project %s", access_token.email, project.id)
        return token, principal, project

    def issue(
        self,
        principal: Principal,
        project_id: int,
        emails: List[str],
        expires_in_days: Optional[int] = None,
    ) -> Tuple[List[AccessTokenIssueResult], List[Notification]]:
        project = self.store.find_by_id(Project, project_id)
        if project is None:
            raise NotFound("Project not found", {"projectId": project_id})
        can(principal, Action.ISSUE_ACCESS_TOKENS, ProjectState(
            lead_id=project.lead_id,
            status=project.stored_status,
            created_by_id=project.created_by_id,
        )).enforce()

        expires_at = None
        if expires_in_days:
            expires_at = datetime.utcnow() + timedelta(days=expires_in_days)

        results = []
        notifications = []
        for email in emails:
            clean_email = email.strip().lower()
            for previous in self.store.find(
                ProjectAccessToken, project_id=project.id, email=clean_email, is_active=True
            ):
                previous.is_active = False

            code = self._unique_code()
            self.store.insert(ProjectAccessToken(
                project_id=project.id,
                email=clean_email,
                token=code,
                expires_at=expires_at,
                is_active=True,
            ))
            results.append(AccessTokenIssueResult(email=clean_email, success=True, token=code))
            notifications.append(Notification(
                channel=EMAIL,
                destination=clean_email,
                subject=f"You've been invited to track {project.name}",
                body=(
                    f"You have been invited to follow the progress of {project.name}.\n"
                    f"Use this access code to sign in as a guest: {code}"
                ),
            ))

        self.store.commit()
        logger.info("Issued %s access code(s) for project %s", len(results), project.id)
        return results, notifications

    def _unique_code(self) -> str:
        for _ in range(TOKEN_GENERATION_ATTEMPTS):
            code = generate_access_code(settings.ACCESS_CODE_LENGTH, GUEST_CODE_ALPHABET)
            if self.store.find_one(ProjectAccessToken, token=code) is None:
                return code
        raise InternalError("Could not generate a unique access code")
