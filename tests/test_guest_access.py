from datetime import datetime, timedelta

import pytest

from conftest import principal
from workhub.core.errors import Forbidden, NotFound, Unauthenticated, ValidationFailed
from workhub.models import ProjectAccessToken, User, UserRole
from workhub.services.guest_access import GuestAccessService
from workhub.services.identity import IdentityResolver


@pytest.fixture
def service(store, credentials):
    return GuestAccessService(store, credentials)


@pytest.fixture
def project(make_user, make_project):
    return make_project(make_user(UserRole.LEAD))


def add_token(store, project, token="ABC-123", **kwargs):
    access_token = ProjectAccessToken(project_id=project.id, email="guest@example.com", token=token, **kwargs)
    store.insert(access_token)
    store.commit()
    return access_token


@pytest.mark.unit
class TestRedeem:
    @pytest.mark.parametrize("code", [" abc-123 ", "ABC-123", "a b c - 1 2 3"])
    def test_codes_are_normalized(self, service, store, project, code):
        add_token(store, project)

        _, guest, redeemed = service.redeem(code)

        assert redeemed.id == project.id
        assert guest.is_guest

    def test_guest_credential_is_project_scoped(self, service, store, credentials, project):
        access_token = add_token(store, project)

        token, _, _ = service.redeem("abc-123")
        guest = IdentityResolver(credentials).resolve(token)

        assert guest.id == f"guest_{access_token.id}"
        assert guest.project_scope == project.id
        assert guest.role == UserRole.MEMBER

    def test_used_at_is_stamped_once(self, service, store, project):
        access_token = add_token(store, project)

        service.redeem("ABC-123")
        first_use = access_token.used_at
        service.redeem("ABC-123")

        assert first_use is not None
        assert access_token.used_at == first_use

    def test_inactive_token(self, service, store, project):
        add_token(store, project, is_active=False)
        with pytest.raises(Unauthenticated):
            service.redeem("ABC-123")

    def test_expired_token(self, service, store, project):
        add_token(store, project, expires_at=datetime.utcnow() - timedelta(minutes=1))
        with pytest.raises(Unauthenticated):
            service.redeem("ABC-123")

    def test_missing_code(self, service):
        with pytest.raises(ValidationFailed):
            service.redeem("   ")

    def test_unknown_code(self, service):
        with pytest.raises(Unauthenticated):
            service.redeem("ZZZZ9999")


@pytest.mark.unit
class TestIssue:
    def test_reissue_deactivates_previous_token(self, service, store, admin_principal, project):
        first, _ = service.issue(admin_principal, project.id, ["Guest@Example.com"])
        second, invitations = service.issue(admin_principal, project.id, ["guest@example.com"])

        tokens = store.find(ProjectAccessToken, project_id=project.id, email="guest@example.com")
        active = [t for t in tokens if t.is_active]

        assert len(tokens) == 2
        assert [t.token for t in active] == [second[0].token]
        assert first[0].token != second[0].token
        assert invitations[0].destination == "guest@example.com"
        assert second[0].token in invitations[0].body

    def test_expiry_is_applied(self, service, store, admin_principal, project):
        results, _ = service.issue(admin_principal, project.id, ["a@example.com"], expires_in_days=3)
        token = store.find_one(ProjectAccessToken, token=results[0].token)

        assert token.expires_at > datetime.utcnow() + timedelta(days=2)

    def test_project_lead_may_issue(self, service, store, project):
        lead = store.find_by_id(User, project.lead_id)
        results, _ = service.issue(principal(lead), project.id, ["a@example.com", "b@example.com"])

        assert [r.email for r in results] == ["a@example.com", "b@example.com"]
        assert all(len(r.token) == 8 for r in results)

    def test_unrelated_member_may_not_issue(self, service, make_user, project):
        with pytest.raises(Forbidden):
            service.issue(principal(make_user()), project.id, ["a@example.com"])

    def test_missing_project(self, service, admin_principal):
        with pytest.raises(NotFound):
            service.issue(admin_principal, 404, ["a@example.com"])
