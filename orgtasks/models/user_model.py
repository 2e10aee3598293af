from typing import Dict, Any, Optional, List

from google.cloud.firestore_v1.base_query import FieldFilter

from orgtasks.models.base_model import BaseModel
from orgtasks.utils.validators import Helpers

PRIVATE_FIELDS = ('password_hash',)


class UserModel(BaseModel):
    """User data model for Firestore operations"""

    collection_name = 'users'
    id_field = 'user_id'

    def create_user(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a new user; password must already be hashed"""
        user_id = Helpers.generate_id()
        now = Helpers.now_iso()
        user_doc = {
            'user_id': user_id,
            'email': user_data['email'].lower().strip(),
            'password_hash': user_data['password_hash'],
            'first_name': Helpers.sanitize_string(user_data.get('first_name')),
            'last_name': Helpers.sanitize_string(user_data.get('last_name')),
            'role': user_data.get('role', 'member'),
            'organization_id': user_data.get('organization_id'),
            'is_active': True,
            'last_login': None,
            'created_at': now,
            'updated_at': now,
        }
        self.collection.document(user_id).set(user_doc)
        return user_doc

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Get user by user_id"""
        return self._get_document(user_id)

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """Get user by email"""
        query = self.collection.where(filter=FieldFilter('email', '==', (email or '').lower().strip())).limit(1)
        docs = list(query.stream())
        return self._to_dict(docs[0]) if docs else None

    def update_user(self, user_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        updates = dict(updates)
        updates['updated_at'] = Helpers.now_iso()
        self.collection.document(user_id).update(updates)
        return self.get_user(user_id)

    def list_organization_members(self, organization_id: str) -> List[Dict[str, Any]]:
        query = self.collection.where(filter=FieldFilter('organization_id', '==', organization_id))
        members = [self._to_dict(doc) for doc in query.stream()]
        role_order = {'admin': 0, 'manager': 1, 'member': 2}
        members.sort(key=lambda u: (role_order.get(u.get('role'), 3), (u.get('first_name') or '').lower()))
        return members

    def find_members(self, organization_id: str, user_ids: List[str]) -> List[Dict[str, Any]]:
        """Return the users among user_ids that belong to the organization"""
        members = []
        for user_id in user_ids:
            user = self.get_user(user_id)
            if user and user.get('organization_id') == organization_id:
                members.append(user)
        return members

    @staticmethod
    def to_public(user: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """Strip fields that must never leave the API"""
        if user is None:
            return None
        return {k: v for k, v in user.items() if k not in PRIVATE_FIELDS}
