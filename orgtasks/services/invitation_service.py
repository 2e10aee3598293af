"""Organization invitations: issue, verify, accept, list and cancel."""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Dict, Any, List, Callable

from orgtasks.errors import (
    ValidationError, NotFound, DuplicateInvitation, UserAlreadyMember,
    AlreadyInOrganization, InvalidOrExpiredInvitation,
)
from orgtasks.models.invitation_model import InvitationModel
from orgtasks.models.organization_model import OrganizationModel
from orgtasks.models.user_model import UserModel
from orgtasks.services import policy
from orgtasks.services.notification_service import Notifier
from orgtasks.utils.validators import Validators, Helpers

logger = logging.getLogger(__name__)

PENDING = 'pending'
ACCEPTED = 'accepted'
EXPIRED = 'expired'


def generate_token() -> str:
    """64 hex characters"""
    return secrets.token_hex(32)


def to_public(invitation: Dict[str, Any]) -> Dict[str, Any]:
    """Invitation without its secret token"""
    return {k: v for k, v in invitation.items() if k != 'token'}


class InvitationService:

    def __init__(self, db, notifier: Notifier = None, frontend_url: str = 'http://localhost:5173',
                 ttl_hours: int = 24, clock: Callable[[], datetime] = None):
        self.db = db
        self.notifier = notifier or Notifier(db)
        self.frontend_url = (frontend_url or '').rstrip('/')
        self.ttl_hours = ttl_hours
        self.clock = clock or Helpers.utc_now
        self.users = UserModel(db)
        self.organizations = OrganizationModel(db)

    def invite_link(self, token: str) -> str:
        return f"{self.frontend_url}/join/{token}"

    def _is_past_expiry(self, invitation: Dict[str, Any]) -> bool:
        expires_at = Helpers.parse_datetime(invitation.get('expires_at'))
        return expires_at is None or expires_at <= self.clock()

    def _expire_if_stale(self, model: InvitationModel, invitation: Dict[str, Any]) -> bool:
        """Mark a pending invitation expired once its expiry has passed"""
        if invitation.get('status') == PENDING and self._is_past_expiry(invitation):
            model.set_status(invitation['invitation_id'], EXPIRED)
            invitation['status'] = EXPIRED
            return True
        return False

    def _pending_by_token(self, token: str) -> Dict[str, Any]:
        model = InvitationModel.system(self.db)
        invitation = model.find_by_token(token)
        if not invitation or invitation.get('status') != PENDING or self._expire_if_stale(model, invitation):
            raise InvalidOrExpiredInvitation()
        return invitation

    def invite(self, email: str, role: str, organization_id: str, actor: Dict[str, Any]) -> Dict[str, Any]:
        """Create a pending invitation and email its join link.

        Returns the invitation, the join link and whether the email went
        out. The invitation is persisted even when the email fails.
        """
        policy.require(policy.can_invite(actor), 'Only admins and managers can invite members')
        if not Validators.validate_email(email):
            raise ValidationError('Invalid email format')
        email = email.lower().strip()
        role = role or 'member'
        if not policy.can_grant_role(role):
            raise ValidationError('Role must be member or manager', {'role': role})

        organization = self.organizations.get_organization(organization_id)
        if not organization:
            raise NotFound('Organization')

        existing_user = self.users.get_user_by_email(email)
        if (existing_user and existing_user.get('is_active', True)
                and existing_user.get('organization_id') == organization_id):
            raise UserAlreadyMember()

        model = InvitationModel(self.db, organization_id)
        for pending in model.find_pending(email):
            if not self._expire_if_stale(model, pending):
                raise DuplicateInvitation()

        invitation = model.create_invitation({
            'token': generate_token(),
            'email': email,
            'role': role,
            'expires_at': Helpers.to_iso(self.clock() + timedelta(hours=self.ttl_hours)),
            'created_by': actor.get('user_id'),
        })
        link = self.invite_link(invitation['token'])
        logger.info("Invitation %s created for %s in organization %s",
                    invitation['invitation_id'], email, organization_id)

        email_sent = self.notifier.send_invitation(email, organization.get('name'), link, self.ttl_hours)
        if not email_sent:
            logger.warning("Invitation email to %s was not sent", email)
        return {'invitation': to_public(invitation), 'invite_link': link, 'email_sent': email_sent}

    def verify(self, token: str) -> Dict[str, Any]:
        invitation = self._pending_by_token(token)
        organization = self.organizations.get_organization(invitation.get('organization_id'))
        if not organization or not organization.get('is_active', True):
            raise InvalidOrExpiredInvitation()
        return {
            'email': invitation.get('email'),
            'organization_name': organization.get('name'),
            'role': invitation.get('role'),
        }

    def accept(self, token: str, user: Dict[str, Any]) -> Dict[str, Any]:
        """Join the invitation's organization with the invited role"""
        invitation = self._pending_by_token(token)
        if user.get('organization_id'):
            raise AlreadyInOrganization()
        organization = self.organizations.get_organization(invitation.get('organization_id'))
        if not organization or not organization.get('is_active', True):
            raise InvalidOrExpiredInvitation()

        updated_user = self.users.update_user(user['user_id'], {
            'organization_id': invitation['organization_id'],
            'role': invitation['role'],
        })
        InvitationModel.system(self.db).set_status(
            invitation['invitation_id'], ACCEPTED,
            accepted_at=Helpers.to_iso(self.clock()),
            accepted_by=user['user_id'],
        )
        logger.info("User %s joined organization %s", user['user_id'], invitation['organization_id'])
        return {
            'user': UserModel.to_public(updated_user),
            'organization': OrganizationModel.to_summary(organization),
        }

    def list_pending(self, organization_id: str, actor: Dict[str, Any]) -> List[Dict[str, Any]]:
        policy.require(policy.can_invite(actor), 'Only admins and managers can view invitations')
        model = InvitationModel(self.db, organization_id)
        pending = [inv for inv in model.find_pending() if not self._expire_if_stale(model, inv)]
        pending.sort(key=lambda inv: inv.get('created_at') or '', reverse=True)
        return [to_public(inv) for inv in pending]

    def cancel(self, invitation_id: str, organization_id: str, actor: Dict[str, Any]) -> None:
        policy.require(policy.can_invite(actor), 'Only admins and managers can cancel invitations')
        model = InvitationModel(self.db, organization_id)
        invitation = model.get_invitation(invitation_id)
        if not invitation:
            raise NotFound('Invitation')
        if invitation.get('status') != PENDING:
            raise ValidationError('Only pending invitations can be cancelled')
        model.set_status(invitation_id, EXPIRED)
        logger.info("Invitation %s cancelled by %s", invitation_id, actor.get('user_id'))
