import pytest

from workhub.core.errors import Unauthenticated
from workhub.models import UserRole
from workhub.schemas.auth import TokenClaims
from workhub.services.identity import IdentityResolver, Principal


@pytest.mark.unit
class TestIdentityResolver:
    def test_resolves_registered_user(self, credentials, make_user):
        user = make_user(UserRole.LEAD)
        token = credentials.issue(Principal.for_user(user).claims())

        principal = IdentityResolver(credentials).resolve(token)

        assert principal.user_id == user.id
        assert principal.role == UserRole.LEAD
        assert not principal.is_guest

    def test_role_comes_from_claims_until_expiry(self, credentials, store, make_user):
        """Role changes apply on the next login, not to tokens already issued"""
        admin = make_user(UserRole.ADMIN)
        token = credentials.issue(Principal.for_user(admin).claims())
        admin.role = UserRole.MEMBER
        store.commit()

        assert IdentityResolver(credentials).resolve(token).role == UserRole.ADMIN
        assert IdentityResolver.load_profile(store, IdentityResolver(credentials).resolve(token)).role == UserRole.MEMBER

    def test_guest_is_built_from_claims(self, credentials):
        claims = TokenClaims(sub="guest_5", email="g@example.com", role=UserRole.ADMIN, project_id=3)
        principal = IdentityResolver(credentials).resolve(credentials.issue(claims))

        assert principal.is_guest
        assert principal.user_id is None
        assert principal.project_scope == 3
        # Guests never carry elevated roles
        assert principal.role == UserRole.MEMBER

    def test_bad_token_is_unauthenticated(self, credentials):
        with pytest.raises(Unauthenticated):
            IdentityResolver(credentials).resolve("garbage")

    def test_non_numeric_subject_is_unauthenticated(self, credentials):
        claims = TokenClaims(sub="alice", email="a@example.com", role=UserRole.MEMBER)
        with pytest.raises(Unauthenticated):
            IdentityResolver(credentials).resolve(credentials.issue(claims))

    def test_guest_never_matches_a_user_id(self):
        guest = Principal(id="guest_1", email="g@example.com", role=UserRole.MEMBER, user_id=1, is_guest=True)
        assert not guest.is_user(1)


@pytest.mark.unit
class TestLoadProfile:
    def test_user_profile_from_store(self, store, make_user):
        user = make_user(name="Grace")
        profile = IdentityResolver.load_profile(store, Principal.for_user(user))

        assert profile.name == "Grace"
        assert profile.skills == ["python"]

    def test_guest_profile_without_store(self, store):
        guest = Principal(id="guest_2", email="visitor@example.com", role=UserRole.MEMBER, project_scope=4, is_guest=True)
        profile = IdentityResolver.load_profile(store, guest)

        assert profile.name == "visitor"
        assert profile.is_guest
        assert profile.project_id == 4

    def test_deleted_user_is_unauthenticated(self, store):
        ghost = Principal(id="999", email="x@example.com", role=UserRole.MEMBER, user_id=999)
        with pytest.raises(Unauthenticated):
            IdentityResolver.load_profile(store, ghost)
