import logging
from dataclasses import dataclass, field
from typing import List, Optional

from workhub.core.errors import Unauthenticated
from workhub.core.security import CredentialService
from workhub.db.store import EntityStore
from workhub.models.user import User, UserRole
from workhub.schemas.auth import TokenClaims

logger = logging.getLogger(__name__)

GUEST_PREFIX = "guest_"


@dataclass(frozen=True)
class Principal:
    """The authenticated caller of a core operation"""

    id: str
    email: str
    role: UserRole
    user_id: Optional[int] = None
    project_scope: Optional[int] = None
    is_guest: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_lead(self) -> bool:
        return self.role == UserRole.LEAD

    def is_user(self, user_id: Optional[int]) -> bool:
        """True when this is the registered user with the given id"""
        return not self.is_guest and user_id is not None and self.user_id == user_id

    @classmethod
    def for_user(cls, user: User) -> "Principal":
        return cls(id=str(user.id), email=user.email, role=user.role, user_id=user.id)

    def claims(self) -> TokenClaims:
        return TokenClaims(sub=self.id, email=self.email, role=self.role, project_id=self.project_scope)


@dataclass
class Profile:
    id: str
    name: str
    email: str
    role: UserRole
    skills: List[str] = field(default_factory=list)
    is_guest: bool = False
    project_id: Optional[int] = None
    profile_picture: Optional[str] = None


class IdentityResolver:
    """
    Maps a credential to a Principal.

    Resolution is read-only: guests are built purely from their claims and
    registered users only touch the store when ``load_profile`` is asked for.
    """

    def __init__(self, credentials: CredentialService):
        self.credentials = credentials

    def resolve(self, token: Optional[str]) -> Principal:
        claims = self.credentials.verify(token)
        if claims is None:
            raise Unauthenticated("Invalid or expired credentials")
        return self.principal_from_claims(claims)

    @staticmethod
    def principal_from_claims(claims: TokenClaims) -> Principal:
        if claims.sub.startswith(GUEST_PREFIX):
            return Principal(
                id=claims.sub,
                email=claims.email,
                # Guests are Members whatever the token says
                role=UserRole.MEMBER,
                project_scope=claims.project_id,
                is_guest=True,
            )
        try:
            user_id = int(claims.sub)
        except ValueError:
            raise Unauthenticated("Invalid credential subject")
        return Principal(
            id=claims.sub,
            email=claims.email,
            role=claims.role,
            user_id=user_id,
            project_scope=claims.project_id,
        )

    @staticmethod
    def load_profile(store: EntityStore, principal: Principal) -> Profile:
        if principal.is_guest:
            return Profile(
                id=principal.id,
                name=principal.email.split("@")[0],
                email=principal.email,
                role=principal.role,
                is_guest=True,
                project_id=principal.project_scope,
            )
        user = store.find_by_id(User, principal.user_id)
        if user is None:
            raise Unauthenticated("User no longer exists")
        return Profile(
            id=str(user.id),
            name=user.name,
            email=user.email,
            role=user.role,
            skills=list(user.skills or []),
            profile_picture=user.profile_picture,
        )
