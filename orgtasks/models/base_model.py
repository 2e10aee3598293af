from typing import Dict, Any, Optional

from google.cloud.firestore_v1.base_query import FieldFilter


class BaseModel:
    """Shared Firestore document helpers"""

    collection_name: str = None
    id_field: str = None

    def __init__(self, db):
        self.db = db
        self.collection = db.collection(self.collection_name)

    def _to_dict(self, doc) -> Dict[str, Any]:
        data = doc.to_dict() or {}
        data[self.id_field] = data.get(self.id_field) or doc.id
        return data

    def _get_document(self, doc_id: str) -> Optional[Dict[str, Any]]:
        if not doc_id:
            return None
        doc = self.collection.document(doc_id).get()
        if not doc.exists:
            return None
        return self._to_dict(doc)


class TenantScopedModel(BaseModel):
    """Model whose every read and write is confined to one organization.

    Queries always carry an ``organization_id`` equality filter and single
    document reads from another organization behave as if the document did
    not exist. ``system()`` builds the one cross-tenant instance, used by
    background jobs running with system authority.
    """

    def __init__(self, db, organization_id: str):
        if not organization_id:
            raise ValueError("organization_id is required for tenant-scoped access")
        super().__init__(db)
        self.organization_id = organization_id

    @classmethod
    def system(cls, db):
        instance = cls.__new__(cls)
        BaseModel.__init__(instance, db)
        instance.organization_id = None
        return instance

    @property
    def is_system(self) -> bool:
        return self.organization_id is None

    def _query(self):
        if self.is_system:
            return self.collection
        return self.collection.where(filter=FieldFilter("organization_id", "==", self.organization_id))

    def _get_scoped(self, doc_id: str) -> Optional[Dict[str, Any]]:
        data = self._get_document(doc_id)
        if data is None:
            return None
        if not self.is_system and data.get("organization_id") != self.organization_id:
            return None
        return data

    def _stamp_tenant(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        if self.is_system:
            raise ValueError("Documents must be created inside an organization scope")
        doc = dict(doc)
        doc["organization_id"] = self.organization_id
        return doc
