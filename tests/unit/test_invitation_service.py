"""Unit tests for the invitation manager"""
from datetime import timedelta

import pytest

from orgtasks.errors import (
    DuplicateInvitation, UserAlreadyMember, AlreadyInOrganization,
    InvalidOrExpiredInvitation, ValidationError, Forbidden, NotFound,
)
from orgtasks.services.invitation_service import InvitationService

from conftest import NOW, make_user


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock(NOW)


@pytest.fixture
def invitations(fake_db, clock):
    return InvitationService(fake_db, frontend_url="http://app.test/", clock=clock)


class TestInvite:

    def test_creates_pending_invitation_and_sends_link(self, invitations, fake_db, org, manager, sent_emails):
        result = invitations.invite("New@Example.com", "member", org["organization_id"], manager)
        stored = list(fake_db.docs("invitations").values())
        assert len(stored) == 1
        token = stored[0]["token"]
        assert len(token) == 64
        int(token, 16)
        assert stored[0]["email"] == "new@example.com"
        assert stored[0]["status"] == "pending"
        assert stored[0]["expires_at"] == "2025-01-16T12:00:00+00:00"
        assert result["invite_link"] == f"http://app.test/join/{token}"
        assert result["email_sent"] is True
        assert "token" not in result["invitation"]
        assert sent_emails.call_args.args[0] == "new@example.com"
        assert token in sent_emails.call_args.args[2]

    def test_second_pending_invite_conflicts(self, invitations, org, admin):
        invitations.invite("new@example.com", "member", org["organization_id"], admin)
        with pytest.raises(DuplicateInvitation) as exc:
            invitations.invite("new@example.com", "manager", org["organization_id"], admin)
        assert exc.value.status_code == 409

    def test_stale_pending_invite_does_not_block(self, invitations, fake_db, clock, org, admin):
        invitations.invite("new@example.com", "member", org["organization_id"], admin)
        clock.now = NOW + timedelta(hours=25)
        invitations.invite("new@example.com", "member", org["organization_id"], admin)
        statuses = sorted(i["status"] for i in fake_db.docs("invitations").values())
        assert statuses == ["expired", "pending"]

    def test_same_email_other_organization_is_allowed(self, invitations, org, other_org, admin, fake_db):
        globex_admin = make_user(fake_db, other_org["organization_id"], "admin")
        invitations.invite("new@example.com", "member", org["organization_id"], admin)
        invitations.invite("new@example.com", "member", other_org["organization_id"], globex_admin)
        assert len(fake_db.docs("invitations")) == 2

    def test_existing_member_rejected(self, invitations, org, admin, alice):
        with pytest.raises(UserAlreadyMember):
            invitations.invite("alice@acme.com", "member", org["organization_id"], admin)

    def test_admin_role_cannot_be_granted(self, invitations, org, admin):
        with pytest.raises(ValidationError):
            invitations.invite("new@example.com", "admin", org["organization_id"], admin)

    def test_members_cannot_invite(self, invitations, org, alice):
        with pytest.raises(Forbidden):
            invitations.invite("new@example.com", "member", org["organization_id"], alice)

    def test_email_failure_keeps_invitation(self, invitations, fake_db, org, admin, sent_emails):
        sent_emails.return_value = False
        result = invitations.invite("new@example.com", "member", org["organization_id"], admin)
        assert result["email_sent"] is False
        assert len(fake_db.docs("invitations")) == 1


class TestVerifyAndAccept:

    @pytest.fixture
    def token(self, invitations, fake_db, org, admin):
        invitations.invite("new@example.com", "manager", org["organization_id"], admin)
        return next(iter(fake_db.docs("invitations").values()))["token"]

    def test_verify_returns_public_fields(self, invitations, token):
        assert invitations.verify(token) == {
            "email": "new@example.com",
            "organization_name": "Acme",
            "role": "manager",
        }

    def test_verify_unknown_token(self, invitations):
        with pytest.raises(InvalidOrExpiredInvitation):
            invitations.verify("f" * 64)

    def test_verify_expired_token_marks_it_expired(self, invitations, fake_db, clock, token):
        clock.now = NOW + timedelta(hours=24)
        with pytest.raises(InvalidOrExpiredInvitation):
            invitations.verify(token)
        assert next(iter(fake_db.docs("invitations").values()))["status"] == "expired"

    def test_accept_joins_with_invited_role(self, invitations, fake_db, org, token):
        newcomer = make_user(fake_db, email="someone-else@example.com")
        result = invitations.accept(token, newcomer)
        assert result["user"]["organization_id"] == org["organization_id"]
        assert result["user"]["role"] == "manager"
        assert "password_hash" not in result["user"]
        assert result["organization"]["name"] == "Acme"
        stored = next(iter(fake_db.docs("invitations").values()))
        assert stored["status"] == "accepted"
        assert stored["accepted_by"] == newcomer["user_id"]
        assert stored["accepted_at"] == "2025-01-15T12:00:00+00:00"

    def test_accept_twice_fails(self, invitations, fake_db, token):
        invitations.accept(token, make_user(fake_db))
        with pytest.raises(InvalidOrExpiredInvitation):
            invitations.accept(token, make_user(fake_db))

    def test_accept_by_user_with_organization(self, invitations, outsider, token):
        with pytest.raises(AlreadyInOrganization):
            invitations.accept(token, outsider)


class TestListAndCancel:

    def test_list_pending_hides_tokens(self, invitations, org, admin):
        invitations.invite("one@example.com", "member", org["organization_id"], admin)
        invitations.invite("two@example.com", "member", org["organization_id"], admin)
        pending = invitations.list_pending(org["organization_id"], admin)
        assert {i["email"] for i in pending} == {"one@example.com", "two@example.com"}
        assert all("token" not in i for i in pending)

    def test_list_is_tenant_scoped(self, invitations, fake_db, org, other_org, admin):
        invitations.invite("one@example.com", "member", org["organization_id"], admin)
        globex_admin = make_user(fake_db, other_org["organization_id"], "admin")
        assert invitations.list_pending(other_org["organization_id"], globex_admin) == []

    def test_cancel_marks_expired(self, invitations, fake_db, org, admin):
        result = invitations.invite("one@example.com", "member", org["organization_id"], admin)
        invitation_id = result["invitation"]["invitation_id"]
        invitations.cancel(invitation_id, org["organization_id"], admin)
        assert fake_db.docs("invitations")[invitation_id]["status"] == "expired"
        with pytest.raises(ValidationError):
            invitations.cancel(invitation_id, org["organization_id"], admin)

    def test_cancel_other_tenant_invitation(self, invitations, fake_db, org, other_org, admin):
        result = invitations.invite("one@example.com", "member", org["organization_id"], admin)
        globex_admin = make_user(fake_db, other_org["organization_id"], "admin")
        with pytest.raises(NotFound):
            invitations.cancel(result["invitation"]["invitation_id"], other_org["organization_id"], globex_admin)
