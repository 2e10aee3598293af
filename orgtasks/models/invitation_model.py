from typing import Dict, Any, Optional, List

from google.cloud.firestore_v1.base_query import FieldFilter

from orgtasks.models.base_model import TenantScopedModel
from orgtasks.utils.validators import Helpers


class InvitationModel(TenantScopedModel):
    """Invitation data model for Firestore operations"""

    collection_name = 'invitations'
    id_field = 'invitation_id'

    def create_invitation(self, invitation_data: Dict[str, Any]) -> Dict[str, Any]:
        invitation_id = Helpers.generate_id()
        invitation_doc = self._stamp_tenant({
            'invitation_id': invitation_id,
            'token': invitation_data['token'],
            'email': invitation_data['email'].lower().strip(),
            'role': invitation_data['role'],
            'status': 'pending',
            'expires_at': invitation_data['expires_at'],
            'created_by': invitation_data['created_by'],
            'created_at': Helpers.now_iso(),
            'accepted_at': None,
            'accepted_by': None,
        })
        self.collection.document(invitation_id).set(invitation_doc)
        return invitation_doc

    def get_invitation(self, invitation_id: str) -> Optional[Dict[str, Any]]:
        return self._get_scoped(invitation_id)

    def find_by_token(self, token: str) -> Optional[Dict[str, Any]]:
        if not token:
            return None
        query = self._query().where(filter=FieldFilter('token', '==', token)).limit(1)
        docs = list(query.stream())
        return self._to_dict(docs[0]) if docs else None

    def find_pending(self, email: str = None) -> List[Dict[str, Any]]:
        query = self._query().where(filter=FieldFilter('status', '==', 'pending'))
        if email:
            query = query.where(filter=FieldFilter('email', '==', email.lower().strip()))
        return [self._to_dict(doc) for doc in query.stream()]

    def set_status(self, invitation_id: str, status: str, **extra) -> None:
        updates = {'status': status}
        updates.update(extra)
        self.collection.document(invitation_id).update(updates)
