from typing import Dict, Any, Optional, List

from google.cloud.firestore_v1.base_query import FieldFilter

from orgtasks.models.base_model import TenantScopedModel
from orgtasks.utils.validators import Helpers

EQUALITY_FILTERS = ('status', 'category', 'priority')


class TaskModel(TenantScopedModel):
    """Task data model for Firestore operations"""

    collection_name = 'tasks'
    id_field = 'task_id'

    def create_task(self, task_doc: Dict[str, Any]) -> Dict[str, Any]:
        task_id = Helpers.generate_id()
        now = Helpers.now_iso()
        task_doc = self._stamp_tenant(task_doc)
        task_doc.update({'task_id': task_id, 'created_at': now, 'updated_at': now})
        self.collection.document(task_id).set(task_doc)
        return task_doc

    def get_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        """Get task by task_id within the current organization"""
        return self._get_scoped(task_id)

    def update_task(self, task_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Apply a single-document update; organization_id is immutable"""
        updates = {k: v for k, v in updates.items() if k not in ('organization_id', 'task_id')}
        updates['updated_at'] = Helpers.now_iso()
        self.collection.document(task_id).update(updates)
        return self.get_task(task_id)

    def delete_task(self, task_id: str) -> None:
        self.collection.document(task_id).delete()

    def list_tasks(self, filters: Dict[str, Any] = None, assigned_user: str = None) -> List[Dict[str, Any]]:
        """List tasks matching exact-value filters, newest first"""
        query = self._query()
        for field in EQUALITY_FILTERS:
            value = (filters or {}).get(field)
            if value:
                query = query.where(filter=FieldFilter(field, '==', value))
        if assigned_user:
            query = query.where(filter=FieldFilter('assigned_to', 'array_contains', assigned_user))
        tasks = [self._to_dict(doc) for doc in query.stream()]
        tasks.sort(key=lambda t: t.get('created_at') or '', reverse=True)
        return tasks

    def find_open_tasks_due(self, due_after: str = None, due_before: str = None) -> List[Dict[str, Any]]:
        """Open (todo/in_progress) tasks with due_date strictly inside the bounds"""
        query = self._query().where(filter=FieldFilter('status', 'in', ['todo', 'in_progress']))
        if due_after:
            query = query.where(filter=FieldFilter('due_date', '>', due_after))
        if due_before:
            query = query.where(filter=FieldFilter('due_date', '<', due_before))
        return [self._to_dict(doc) for doc in query.stream()]
