import copy
from typing import Dict, Any, Optional

from google.cloud.firestore_v1.base_query import FieldFilter

from orgtasks.models.base_model import BaseModel
from orgtasks.utils.validators import Helpers

DEFAULT_TASK_CATEGORIES = ['General', 'Development', 'Design', 'Marketing']

DEFAULT_SETTINGS = {
    'theme': 'light',
    'task_categories': DEFAULT_TASK_CATEGORIES,
    'default_task_due_days': 7,
    'notification_settings': {
        'email_notifications': True,
        'task_reminders': True,
        'reminder_hours': 24,
    },
}


class OrganizationModel(BaseModel):
    """Organization data model for Firestore operations"""

    collection_name = 'organizations'
    id_field = 'organization_id'

    @staticmethod
    def default_settings() -> Dict[str, Any]:
        return copy.deepcopy(DEFAULT_SETTINGS)

    @staticmethod
    def merge_settings(current: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
        """Shallow-merge settings; notification_settings is merged one level deeper"""
        merged = OrganizationModel.default_settings()
        merged.update(copy.deepcopy(current or {}))
        for key, value in (changes or {}).items():
            if key == 'notification_settings' and isinstance(value, dict):
                notification = dict(merged.get('notification_settings') or {})
                notification.update(value)
                merged['notification_settings'] = notification
            else:
                merged[key] = value
        if not merged.get('task_categories'):
            merged['task_categories'] = list(DEFAULT_TASK_CATEGORIES)
        return merged

    def create_organization(self, name: str, slug: str, settings: Dict[str, Any] = None,
                            description: str = None, website: str = None) -> Dict[str, Any]:
        organization_id = Helpers.generate_id()
        now = Helpers.now_iso()
        org_doc = {
            'organization_id': organization_id,
            'name': name,
            'name_lower': name.lower(),
            'slug': slug,
            'description': description,
            'website': website,
            'settings': self.merge_settings({}, settings or {}),
            'is_active': True,
            'created_at': now,
            'updated_at': now,
        }
        self.collection.document(organization_id).set(org_doc)
        return org_doc

    def get_organization(self, organization_id: str) -> Optional[Dict[str, Any]]:
        """Get organization by id"""
        return self._get_document(organization_id)

    def _find_one(self, field: str, value: str) -> Optional[Dict[str, Any]]:
        docs = list(self.collection.where(filter=FieldFilter(field, "==", value)).limit(1).stream())
        return self._to_dict(docs[0]) if docs else None

    def get_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        """Case-insensitive lookup by organization name"""
        return self._find_one('name_lower', (name or '').strip().lower())

    def get_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        return self._find_one('slug', slug)

    def update_organization(self, organization_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        updates = dict(updates)
        if 'name' in updates:
            updates['name_lower'] = updates['name'].lower()
        updates['updated_at'] = Helpers.now_iso()
        self.collection.document(organization_id).update(updates)
        return self.get_organization(organization_id)

    @staticmethod
    def to_summary(org: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if not org:
            return None
        return {
            'id': org.get('organization_id'),
            'name': org.get('name'),
            'slug': org.get('slug'),
        }

    @staticmethod
    def to_public(org: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(org)
        data.pop('name_lower', None)
        return data
