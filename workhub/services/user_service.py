import logging
from typing import List, Optional, Tuple

from workhub.core.config import settings
from workhub.core.errors import Conflict, Forbidden, InternalError, NotFound, Unauthenticated, ValidationFailed
from workhub.core.security import CredentialService, generate_access_code, get_password_hash, verify_password
from workhub.db.store import EntityStore
from workhub.models.member_request import MemberRequest
from workhub.models.password import password_access
from workhub.models.project import Project
from workhub.models.task import Task
from workhub.models.team import Team, team_members
from workhub.models.user import User, UserRole
from workhub.schemas.auth import SignupRequest
from workhub.schemas.user import UserCreate
from workhub.services.identity import Principal
from workhub.services.notifications import EMAIL, SMS, Notification
from workhub.services.policy import AccessCodeChange, Action, MemberRemoval, RoleChange, can

logger = logging.getLogger(__name__)

CODE_GENERATION_ATTEMPTS = 5


class UserService:
    def __init__(self, store: EntityStore, credentials: CredentialService):
        self.store = store
        self.credentials = credentials

    # Accounts

    def signup(self, data: SignupRequest) -> Tuple[User, str]:
        email = data.email.lower()
        if self.store.find_one(User, email=email):
            raise Conflict("User with this email already exists")

        # The first account bootstraps the workspace Admin
        role = UserRole.ADMIN if self.store.count(User) == 0 else UserRole.MEMBER
        user = User(
            name=data.name,
            email=email,
            hashed_password=get_password_hash(data.password),
            profile_picture=data.profile_picture or data.name[0].upper(),
            role=role,
            skills=[],
        )
        self.store.insert(user)
        self.store.commit()
        logger.info("User %s signed up as %s", user.id, user.role.value)
        return user, self.issue_token(user)

    def login(self, email: str, password: str) -> Tuple[User, str]:
        user = self.store.find_one(User, email=email.lower())
        if not user or not verify_password(password, user.hashed_password):
            raise Unauthenticated("Invalid email or password")
        return user, self.issue_token(user)

    def login_with_code(self, access_code: str) -> Tuple[User, str]:
        code = (access_code or "").strip()
        if not code:
            raise ValidationFailed("Access code is required")
        user = self.store.find_one(User, access_code=code)
        if not user:
            raise Unauthenticated("Invalid access code")
        return user, self.issue_token(user)

    def issue_token(self, user: User) -> str:
        return self.credentials.issue(Principal.for_user(user).claims())

    def change_access_code(self, principal: Principal, new_code: Optional[str]) -> User:
        code = (new_code or "").strip()
        holder = self.store.find_one(User, access_code=code) if code else None
        can(principal, Action.CHANGE_ACCESS_CODE, AccessCodeChange(
            owner_id=principal.user_id,
            new_code=code,
            holder_id=holder.id if holder else None,
        )).enforce()

        user = self.store.update_by_id(User, principal.user_id, {"access_code": code})
        if user is None:
            raise NotFound("User not found")
        self.store.commit()
        return user

    # Administration

    def list_members(self, principal: Principal) -> List[User]:
        """Workspace directory without credentials, open to every registered user"""
        if principal.is_guest:
            raise Forbidden("Guests cannot list members")
        return self.store.find(User, order_by=User.name)

    def list_users(self, principal: Principal) -> List[User]:
        can(principal, Action.MANAGE_USERS).enforce()
        return self.store.find(User, order_by=User.created_at.desc())

    def create_user(self, principal: Principal, data: UserCreate) -> User:
        can(principal, Action.MANAGE_USERS).enforce()
        email = data.email.lower()
        if self.store.find_one(User, email=email):
            raise Conflict("User already exists with this email")

        access_code = (data.access_code or "").strip()
        if data.auto_generate_code or not access_code:
            access_code = self._unique_access_code()
        elif len(access_code) < settings.ACCESS_CODE_MIN_LENGTH:
            raise ValidationFailed(
                f"Access code must be at least {settings.ACCESS_CODE_MIN_LENGTH} characters"
            )
        elif self.store.find_one(User, access_code=access_code):
            raise Conflict("This access code is already in use")

        user = User(
            name=data.name,
            email=email,
            phone_number=data.phone_number,
            role=UserRole.MEMBER,
            access_code=access_code,
            skills=[],
        )
        self.store.insert(user)
        self.store.commit()
        logger.info("Admin %s created user %s", principal.id, user.id)
        return user

    def _unique_access_code(self) -> str:
        for _ in range(CODE_GENERATION_ATTEMPTS):
            code = generate_access_code()
            if not self.store.find_one(User, access_code=code):
                return code
        raise InternalError("Could not generate a unique access code")

    def send_credentials(self, principal: Principal, user_id: int, method: str) -> Notification:
        """Build the credential message; delivery is left to the notifier"""
        can(principal, Action.SEND_CREDENTIALS).enforce()
        user = self._get_user(user_id)
        if not user.access_code:
            raise ValidationFailed("User has no access code")

        if method == EMAIL:
            return Notification(
                channel=EMAIL,
                destination=user.email,
                subject="Your Access Code",
                body=f"Welcome! Your access code to login is: {user.access_code}",
            )
        if method == "phone":
            if not user.phone_number:
                raise ValidationFailed("User has no phone number")
            return Notification(
                channel=SMS,
                destination=user.phone_number,
                subject="Your Access Code",
                body=f"Welcome! Your access code is: {user.access_code}",
            )
        raise ValidationFailed("Invalid method", {"allowed": [EMAIL, "phone"]})

    # Membership and removal guard

    def removal_blockers(self, user_id: int) -> MemberRemoval:
        return MemberRemoval(
            user_id=user_id,
            assigned_tasks=self.store.count(Task, assigned_to_id=user_id),
            led_projects=self.store.count(Project, lead_id=user_id),
            project_memberships=self.store.count(Project, Project.members.any(User.id == user_id)),
        )

    def remove_member(self, principal: Principal, user_id: int) -> str:
        if not principal.is_admin:
            can(principal, Action.REMOVE_MEMBER, MemberRemoval(user_id, 0, 0, 0)).enforce()
        user = self._get_user(user_id)
        can(principal, Action.REMOVE_MEMBER, self.removal_blockers(user_id)).enforce()

        # Removing an Admin must leave another one behind
        if user.role == UserRole.ADMIN and self.store.count(User, role=UserRole.ADMIN) <= 1:
            raise Conflict("Cannot remove the last Admin")

        name = user.name
        # Team and secret links are not ownership, they go with the user
        self.store.unlink(team_members, user_id=user_id)
        self.store.unlink(password_access, user_id=user_id)
        self.store.delete_where(MemberRequest, user_id=user_id)
        for team in self.store.find(Team, leader_id=user_id):
            team.leader_id = None
        self._clear_history_references(user_id)
        self.store.delete(user)
        self.store.commit()
        logger.info("Admin %s removed user %s", principal.id, user_id)
        return f"{name} has been removed from the application"

    def _clear_history_references(self, user_id: int) -> None:
        """Drop who-did-it columns pointing at a user about to be deleted"""
        for task in self.store.find(Task, assigned_by_id=user_id):
            task.assigned_by_id = None
        for project in self.store.find(Project, created_by_id=user_id):
            project.created_by_id = None
        for project in self.store.find(Project, closed_by_id=user_id):
            project.closed_by_id = None
        for request in self.store.find(MemberRequest, processed_by_id=user_id):
            request.processed_by_id = None
        self.store.flush()

    def change_role(self, principal: Principal, user_id: int, new_role: str) -> Tuple[User, UserRole]:
        if not principal.is_admin:
            can(principal, Action.CHANGE_ROLE, RoleChange(user_id, UserRole.MEMBER, new_role, 0, 0)).enforce()
        user = self._get_user(user_id)
        previous_role = user.role
        can(principal, Action.CHANGE_ROLE, RoleChange(
            user_id=user.id,
            current_role=previous_role,
            new_role=new_role,
            led_projects=self.store.count(Project, lead_id=user.id),
            admin_count=self.store.count(User, role=UserRole.ADMIN),
        )).enforce()

        user.role = UserRole(new_role)
        self.store.commit()
        logger.info(
            "Admin %s changed role of user %s from %s to %s",
            principal.id, user.id, previous_role.value, user.role.value,
        )
        return user, previous_role

    def _get_user(self, user_id: int) -> User:
        user = self.store.find_by_id(User, user_id)
        if user is None:
            raise NotFound("User not found", {"userId": user_id})
        return user
