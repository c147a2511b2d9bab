from typing import Generator, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from workhub.core.security import CredentialService
from workhub.db.redis_client import ProjectStatsCache
from workhub.db.store import EntityStore
from workhub.services.guest_access import GuestAccessService
from workhub.services.identity import IdentityResolver, Principal
from workhub.services.member_request_service import MemberRequestService
from workhub.services.notifications import Notifier
from workhub.services.password_service import PasswordService
from workhub.services.project_service import ProjectService
from workhub.services.task_service import TaskService
from workhub.services.team_service import TeamService
from workhub.services.user_service import UserService

# Browsers send the token as a cookie, API clients as a bearer header
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

TOKEN_COOKIE = "token"


def get_db(request: Request) -> Generator[Session, None, None]:
    yield from request.app.state.database.sessions()


def get_store(db: Session = Depends(get_db)) -> EntityStore:
    return EntityStore(db)


def get_credentials(request: Request) -> CredentialService:
    return request.app.state.credentials


def get_cache(request: Request) -> ProjectStatsCache:
    return request.app.state.stats_cache


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def get_current_principal(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    credentials: CredentialService = Depends(get_credentials),
) -> Principal:
    """Resolve the caller from the bearer header, falling back to the session cookie"""
    return IdentityResolver(credentials).resolve(token or request.cookies.get(TOKEN_COOKIE))


def get_user_service(
    store: EntityStore = Depends(get_store),
    credentials: CredentialService = Depends(get_credentials),
) -> UserService:
    return UserService(store, credentials)


def get_project_service(
    store: EntityStore = Depends(get_store),
    cache: ProjectStatsCache = Depends(get_cache),
) -> ProjectService:
    return ProjectService(store, cache)


def get_task_service(
    store: EntityStore = Depends(get_store),
    cache: ProjectStatsCache = Depends(get_cache),
) -> TaskService:
    return TaskService(store, cache)


def get_guest_access_service(
    store: EntityStore = Depends(get_store),
    credentials: CredentialService = Depends(get_credentials),
) -> GuestAccessService:
    return GuestAccessService(store, credentials)


def get_team_service(store: EntityStore = Depends(get_store)) -> TeamService:
    return TeamService(store)


def get_password_service(store: EntityStore = Depends(get_store)) -> PasswordService:
    return PasswordService(store)


def get_member_request_service(store: EntityStore = Depends(get_store)) -> MemberRequestService:
    return MemberRequestService(store)
