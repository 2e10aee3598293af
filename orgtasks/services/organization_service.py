import logging
from typing import Dict, Any, List

from orgtasks.errors import ValidationError, NotFound, Conflict
from orgtasks.models.organization_model import OrganizationModel
from orgtasks.models.user_model import UserModel
from orgtasks.services import policy
from orgtasks.utils.validators import Validators, Helpers, ROLES, THEMES

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ('name', 'description', 'website', 'settings')
NOTIFICATION_TOGGLES = ('email_notifications', 'task_reminders')


def validate_settings(settings: Dict[str, Any]) -> None:
    """Validate a fully merged settings document"""
    if settings.get('theme') not in THEMES:
        raise ValidationError(f"Theme must be one of: {', '.join(THEMES)}")

    categories = settings.get('task_categories')
    if not isinstance(categories, list) or not all(isinstance(c, str) and c.strip() for c in categories):
        raise ValidationError('task_categories must be a list of non-empty strings')

    due_days = settings.get('default_task_due_days')
    if isinstance(due_days, bool) or not isinstance(due_days, int) or due_days < 1:
        raise ValidationError('default_task_due_days must be a positive integer')

    notification = settings.get('notification_settings')
    if not isinstance(notification, dict):
        raise ValidationError('notification_settings must be an object')
    for toggle in NOTIFICATION_TOGGLES:
        if not isinstance(notification.get(toggle), bool):
            raise ValidationError(f'notification_settings.{toggle} must be a boolean')
    hours = notification.get('reminder_hours')
    if isinstance(hours, bool) or not isinstance(hours, int) or hours < 1:
        raise ValidationError('notification_settings.reminder_hours must be a positive integer')


class OrganizationService:
    """Organization profile, settings and membership management"""

    def __init__(self, db):
        self.db = db
        self.organizations = OrganizationModel(db)
        self.users = UserModel(db)

    def get(self, organization_id: str) -> Dict[str, Any]:
        organization = self.organizations.get_organization(organization_id)
        if not organization:
            raise NotFound('Organization')
        return OrganizationModel.to_public(organization)

    def update(self, organization_id: str, actor: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
        policy.require(policy.can_update_organization(actor), 'Only admins can update the organization')
        changes = changes or {}
        invalid = sorted(k for k in changes if k not in UPDATABLE_FIELDS)
        if invalid or not changes:
            raise ValidationError('Invalid updates', {'invalid_fields': invalid, 'allowed': list(UPDATABLE_FIELDS)})

        organization = self.organizations.get_organization(organization_id)
        if not organization:
            raise NotFound('Organization')

        updates = {}
        if 'name' in changes:
            name = (changes['name'] or '').strip() if isinstance(changes['name'], str) else changes['name']
            if not Validators.validate_organization_name(name):
                raise ValidationError('Organization name must be 2-100 characters')
            existing = self.organizations.get_by_name(name)
            if existing and existing['organization_id'] != organization_id:
                raise Conflict('Organization name already exists')
            updates['name'] = name
        if 'description' in changes:
            updates['description'] = Helpers.sanitize_string(changes['description'])
        if 'website' in changes:
            updates['website'] = Helpers.sanitize_string(changes['website'])
        if 'settings' in changes:
            if not isinstance(changes['settings'], dict):
                raise ValidationError('settings must be an object')
            merged = OrganizationModel.merge_settings(organization.get('settings'), changes['settings'])
            validate_settings(merged)
            updates['settings'] = merged

        updated = self.organizations.update_organization(organization_id, updates)
        logger.info("Organization %s updated by %s", organization_id, actor.get('user_id'))
        return OrganizationModel.to_public(updated)

    def deactivate(self, organization_id: str, actor: Dict[str, Any]) -> Dict[str, Any]:
        policy.require(policy.can_update_organization(actor), 'Only admins can deactivate the organization')
        if not self.organizations.get_organization(organization_id):
            raise NotFound('Organization')
        updated = self.organizations.update_organization(organization_id, {'is_active': False})
        logger.info("Organization %s deactivated by %s", organization_id, actor.get('user_id'))
        return OrganizationModel.to_public(updated)

    def list_members(self, organization_id: str) -> List[Dict[str, Any]]:
        return [UserModel.to_public(u) for u in self.users.list_organization_members(organization_id)]

    def _member(self, organization_id: str, user_id: str) -> Dict[str, Any]:
        user = self.users.get_user(user_id)
        if not user or user.get('organization_id') != organization_id:
            raise NotFound('User')
        return user

    def change_member_role(self, organization_id: str, actor: Dict[str, Any], user_id: str,
                           role: str) -> Dict[str, Any]:
        policy.require(policy.has_role(actor, policy.Role.ADMIN), 'Only admins can change roles')
        if not Validators.validate_role(role):
            raise ValidationError(f"Role must be one of: {', '.join(ROLES)}", {'role': role})
        target = self._member(organization_id, user_id)
        policy.require(policy.can_change_role(actor, target), 'You cannot change your own role')
        updated = self.users.update_user(user_id, {'role': role})
        logger.info("User %s role changed to %s by %s", user_id, role, actor.get('user_id'))
        return UserModel.to_public(updated)

    def remove_member(self, organization_id: str, actor: Dict[str, Any], user_id: str) -> None:
        policy.require(policy.has_role(actor, policy.Role.ADMIN), 'Only admins can remove members')
        target = self._member(organization_id, user_id)
        policy.require(policy.can_remove_member(actor, target), 'You cannot remove yourself')
        self.users.update_user(user_id, {'organization_id': None, 'role': 'member'})
        logger.info("User %s removed from organization %s", user_id, organization_id)
