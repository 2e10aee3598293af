"""
Task lifecycle engine.

Owns the status transition table and every task mutation. The acting user
is passed explicitly to each operation; nothing here reads request state.
Notifications are sent after the write has succeeded and never fail the
operation.
"""
import logging
import math
from enum import Enum
from typing import Dict, Any, Optional, List, Callable
from datetime import datetime, timedelta

from orgtasks.errors import (
    ValidationError, InvalidCategory, InvalidAssignee, InvalidUpdate,
    InvalidTransition, NotFound,
)
from orgtasks.models.organization_model import OrganizationModel, DEFAULT_TASK_CATEGORIES
from orgtasks.models.task_model import TaskModel
from orgtasks.models.user_model import UserModel
from orgtasks.services import policy
from orgtasks.services.notification_service import Notifier
from orgtasks.utils.validators import Validators, Helpers, TASK_PRIORITIES

logger = logging.getLogger(__name__)


class TaskStatus(str, Enum):
    TODO = 'todo'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    EXPIRED = 'expired'


STATUS_TRANSITIONS = {
    TaskStatus.TODO: {TaskStatus.IN_PROGRESS},
    TaskStatus.IN_PROGRESS: {TaskStatus.COMPLETED, TaskStatus.TODO},
    TaskStatus.COMPLETED: {TaskStatus.IN_PROGRESS},
    TaskStatus.EXPIRED: {TaskStatus.IN_PROGRESS},
}

# expired is only ever entered by the expiry sweep
USER_TARGET_STATUSES = (TaskStatus.TODO, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED)
OPEN_STATUSES = (TaskStatus.TODO, TaskStatus.IN_PROGRESS)

SYSTEM_ACTOR = 'system'
EXPIRED_COMMENT = 'Task automatically marked as expired due to passing due date'

EDITABLE_FIELDS = ('title', 'description', 'category', 'priority', 'due_date', 'assigned_to')

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def can_transition(from_status: str, to_status: str) -> bool:
    try:
        return TaskStatus(to_status) in STATUS_TRANSITIONS[TaskStatus(from_status)]
    except (ValueError, KeyError):
        return False


def status_entry(status: str, changed_by: str, changed_at: str, comment: str = None) -> Dict[str, Any]:
    return {
        'status': status,
        'changed_at': changed_at,
        'changed_by': changed_by,
        'comment': comment or f'Status changed to {status}',
    }


def assignment_entry(user_id: str, assigned_by: str, assigned_at: str) -> Dict[str, Any]:
    return {'user_id': user_id, 'assigned_at': assigned_at, 'assigned_by': assigned_by}


def append_entry(history: Optional[List[Dict[str, Any]]], *entries) -> List[Dict[str, Any]]:
    """Return a new history list; the stored one is never edited in place"""
    return list(history or []) + list(entries)


def is_expired(task: Dict[str, Any], now: datetime) -> bool:
    """Past due and not completed"""
    due = Helpers.parse_datetime(task.get('due_date'))
    return due is not None and due < now and task.get('status') != TaskStatus.COMPLETED.value


def _actor_id(actor: Dict[str, Any]) -> str:
    return actor.get('user_id')


def _as_bool(value: Any) -> Optional[bool]:
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('true', '1', 'yes')


def _as_positive_int(value: Any, name: str, default: int) -> int:
    if value is None or value == '':
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{name} must be an integer')
    if number < 1:
        raise ValidationError(f'{name} must be at least 1')
    return number


class TaskService:
    """Task lifecycle operations for one Firestore client"""

    def __init__(self, db, notifier: Notifier = None, clock: Callable[[], datetime] = None):
        self.db = db
        self.notifier = notifier or Notifier(db)
        self.clock = clock or Helpers.utc_now
        self.users = UserModel(db)
        self.organizations = OrganizationModel(db)

    # Internal helpers

    def _tasks(self, organization_id: str) -> TaskModel:
        return TaskModel(self.db, organization_id)

    def _organization(self, organization_id: str) -> Dict[str, Any]:
        organization = self.organizations.get_organization(organization_id)
        if not organization:
            raise NotFound('Organization')
        return organization

    def _load_task(self, task_id: str, organization_id: str) -> Dict[str, Any]:
        task = self._tasks(organization_id).get_task(task_id)
        if not task:
            logger.info("Task %s not found in organization %s", task_id, organization_id)
            raise NotFound('Task')
        return task

    @staticmethod
    def _categories(organization: Dict[str, Any]) -> List[str]:
        return (organization.get('settings') or {}).get('task_categories') or list(DEFAULT_TASK_CATEGORIES)

    def _validate_category(self, category: Any, organization: Dict[str, Any]) -> str:
        if category not in self._categories(organization):
            raise InvalidCategory(details={'category': category,
                                           'allowed': self._categories(organization)})
        return category

    def _validate_assignees(self, assigned_to: Any, organization_id: str) -> List[str]:
        if assigned_to is None:
            return []
        if isinstance(assigned_to, str):
            assigned_to = [assigned_to]
        if not isinstance(assigned_to, list):
            raise InvalidAssignee('assigned_to must be a list of user ids')
        user_ids = Helpers.unique_ordered(assigned_to)
        # a '/' would address a subcollection path, not a user document
        malformed = [uid for uid in user_ids if '/' in uid]
        if malformed:
            raise InvalidAssignee(details={'invalid_users': malformed})
        members = self.users.find_members(organization_id, user_ids)
        found = {m['user_id'] for m in members}
        missing = [uid for uid in user_ids if uid not in found]
        if missing:
            raise InvalidAssignee(details={'invalid_users': missing})
        return user_ids

    @staticmethod
    def _validate_due_date(value: Any) -> str:
        parsed = Helpers.parse_datetime(value)
        if parsed is None:
            raise ValidationError('Invalid due_date', {'due_date': value})
        return Helpers.to_iso(parsed)

    @staticmethod
    def _validate_title(title: Any) -> str:
        if not Validators.validate_task_title(title):
            raise ValidationError('Title is required and must be at most 200 characters')
        return Helpers.sanitize_string(title)

    @staticmethod
    def _validate_description(description: Any) -> str:
        if description is None:
            return ''
        if not Validators.validate_task_description(description):
            raise ValidationError('Description must be at most 5000 characters')
        return description.strip()

    @staticmethod
    def _validate_priority(priority: Any) -> str:
        if not Validators.validate_priority(priority):
            raise ValidationError(f"Priority must be one of: {', '.join(TASK_PRIORITIES)}")
        return priority

    def _notify(self, user_ids: List[str], template: str, task: Dict[str, Any],
                organization: Optional[Dict[str, Any]] = None, **extra) -> int:
        if not user_ids:
            return 0
        data = {
            'task_id': task.get('task_id'),
            'title': task.get('title'),
            'description': task.get('description'),
            'category': task.get('category'),
            'priority': task.get('priority'),
            'status': task.get('status'),
            'due_date': task.get('due_date'),
        }
        data.update(extra)
        try:
            return self.notifier.notify_users(user_ids, template, data, organization)
        except Exception:
            logger.exception("Notification %s for task %s failed", template, task.get('task_id'))
            return 0

    # Mutations

    def create_task(self, fields: Dict[str, Any], organization_id: str, actor: Dict[str, Any]) -> Dict[str, Any]:
        policy.require(policy.can_manage_tasks(actor), 'Only admins and managers can create tasks')
        fields = fields or {}
        organization = self._organization(organization_id)
        now = self.clock()
        now_iso = Helpers.to_iso(now)

        title = self._validate_title(fields.get('title'))
        description = self._validate_description(fields.get('description'))
        category = fields.get('category')
        if category in (None, ''):
            category = self._categories(organization)[0]
        category = self._validate_category(category, organization)
        priority = self._validate_priority(fields.get('priority') or 'medium')

        if fields.get('due_date'):
            due_date = self._validate_due_date(fields['due_date'])
        else:
            due_days = (organization.get('settings') or {}).get('default_task_due_days') or 7
            due_date = Helpers.add_days_iso(due_days, start=now)

        assigned_to = self._validate_assignees(fields.get('assigned_to'), organization_id)

        task_doc = {
            'title': title,
            'description': description,
            'assigned_to': assigned_to,
            'created_by': _actor_id(actor),
            'status': TaskStatus.TODO.value,
            'category': category,
            'priority': priority,
            'due_date': due_date,
            'completed_at': None,
            'completed_by': None,
            'status_history': [],
            'assignment_history': [assignment_entry(uid, _actor_id(actor), now_iso) for uid in assigned_to],
        }
        task = self._tasks(organization_id).create_task(task_doc)
        logger.info("Task %s created in organization %s by %s", task['task_id'], organization_id, _actor_id(actor))

        self._notify(assigned_to, 'task_assigned', task, organization)
        return task

    def update_task_status(self, task_id: str, organization_id: str, actor: Dict[str, Any],
                           new_status: str, comment: str = None) -> Dict[str, Any]:
        if new_status not in [s.value for s in USER_TARGET_STATUSES]:
            raise ValidationError(
                f"Status must be one of: {', '.join(s.value for s in USER_TARGET_STATUSES)}",
                {'status': new_status},
            )
        task = self._load_task(task_id, organization_id)
        policy.require(policy.can_modify(actor, task), 'You do not have permission to update this task')

        current = task.get('status')
        if not can_transition(current, new_status):
            logger.warning("Rejected transition %s -> %s on task %s", current, new_status, task_id)
            raise InvalidTransition(current, new_status)

        now_iso = Helpers.to_iso(self.clock())
        updates = {
            'status': new_status,
            'status_history': append_entry(
                task.get('status_history'),
                status_entry(new_status, _actor_id(actor), now_iso, comment),
            ),
        }
        if new_status == TaskStatus.COMPLETED.value:
            updates['completed_at'] = now_iso
            updates['completed_by'] = _actor_id(actor)

        updated = self._tasks(organization_id).update_task(task_id, updates)

        others = [uid for uid in updated.get('assigned_to') or [] if uid != _actor_id(actor)]
        actor_name = ' '.join(filter(None, [actor.get('first_name'), actor.get('last_name')])) or _actor_id(actor)
        self._notify(others, 'task_status_changed', updated,
                     self.organizations.get_organization(organization_id),
                     updated_by=actor_name, comment=comment or '')
        return updated

    def update_task_details(self, task_id: str, organization_id: str, actor: Dict[str, Any],
                            patch: Dict[str, Any]) -> Dict[str, Any]:
        policy.require(policy.can_manage_tasks(actor), 'Only admins and managers can edit tasks')
        if not patch:
            raise InvalidUpdate('No updates provided')
        rejected = sorted(k for k in patch if k not in EDITABLE_FIELDS)
        if rejected:
            message = 'Invalid updates'
            if 'status' in rejected:
                message = 'Status must be changed through the status endpoint'
            raise InvalidUpdate(message, {'invalid_fields': rejected, 'allowed': list(EDITABLE_FIELDS)})

        task = self._load_task(task_id, organization_id)
        organization = self._organization(organization_id)

        updates = {}
        if 'title' in patch:
            updates['title'] = self._validate_title(patch['title'])
        if 'description' in patch:
            updates['description'] = self._validate_description(patch['description'])
        if 'category' in patch:
            updates['category'] = self._validate_category(patch['category'], organization)
        if 'priority' in patch:
            updates['priority'] = self._validate_priority(patch['priority'])
        if 'due_date' in patch:
            updates['due_date'] = self._validate_due_date(patch['due_date'])

        added = []
        if 'assigned_to' in patch:
            assigned_to = self._validate_assignees(patch['assigned_to'], organization_id)
            current = task.get('assigned_to') or []
            added = [uid for uid in assigned_to if uid not in current]
            updates['assigned_to'] = assigned_to
            if added:
                now_iso = Helpers.to_iso(self.clock())
                updates['assignment_history'] = append_entry(
                    task.get('assignment_history'),
                    *[assignment_entry(uid, _actor_id(actor), now_iso) for uid in added]
                )

        updated = self._tasks(organization_id).update_task(task_id, updates)
        self._notify(added, 'task_assigned', updated, organization)
        return updated

    def delete_task(self, task_id: str, organization_id: str, actor: Dict[str, Any]) -> None:
        policy.require(policy.can_manage_tasks(actor), 'Only admins and managers can delete tasks')
        self._load_task(task_id, organization_id)
        self._tasks(organization_id).delete_task(task_id)
        logger.info("Task %s deleted by %s", task_id, _actor_id(actor))

    def mark_expired(self, task: Dict[str, Any]) -> Dict[str, Any]:
        """Force an open task into expired on behalf of the system"""
        current = task.get('status')
        if current not in [s.value for s in OPEN_STATUSES]:
            raise InvalidTransition(current, TaskStatus.EXPIRED.value)
        now_iso = Helpers.to_iso(self.clock())
        updates = {
            'status': TaskStatus.EXPIRED.value,
            'status_history': append_entry(
                task.get('status_history'),
                status_entry(TaskStatus.EXPIRED.value, SYSTEM_ACTOR, now_iso, EXPIRED_COMMENT),
            ),
        }
        tasks = TaskModel.system(self.db)
        return tasks.update_task(task['task_id'], updates)

    # Queries

    def get_task(self, task_id: str, organization_id: str, actor: Dict[str, Any]) -> Dict[str, Any]:
        task = self._load_task(task_id, organization_id)
        policy.require(policy.can_view_task(actor, task), 'You do not have permission to view this task')
        return task

    def _visible_tasks(self, organization_id: str, actor: Dict[str, Any],
                       filters: Dict[str, Any] = None) -> List[Dict[str, Any]]:
        filters = filters or {}
        tasks_model = self._tasks(organization_id)
        if policy.can_manage_tasks(actor):
            return tasks_model.list_tasks(filters, assigned_user=filters.get('assigned_to'))
        tasks = tasks_model.list_tasks(filters, assigned_user=_actor_id(actor))
        if filters.get('assigned_to'):
            tasks = [t for t in tasks if filters['assigned_to'] in (t.get('assigned_to') or [])]
        return tasks

    @staticmethod
    def _parse_date_range(value: str):
        parts = [p.strip() for p in str(value).split(',')]
        if len(parts) != 2:
            raise ValidationError('date_range must be "start,end"')
        start = Helpers.parse_datetime(parts[0])
        end = Helpers.parse_datetime(parts[1])
        if start is None or end is None:
            raise ValidationError('Invalid date_range', {'date_range': value})
        if len(parts[1]) == 10:
            # date-only end bound covers the whole day
            end = end + timedelta(days=1) - timedelta(seconds=1)
        return start, end

    def list_tasks(self, organization_id: str, actor: Dict[str, Any], filters: Dict[str, Any] = None,
                   page: Any = 1, limit: Any = DEFAULT_PAGE_SIZE) -> Dict[str, Any]:
        filters = filters or {}
        page = _as_positive_int(page, 'page', 1)
        limit = min(_as_positive_int(limit, 'limit', DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE)

        tasks = self._visible_tasks(organization_id, actor, filters)

        search = (filters.get('search') or '').strip().lower()
        if search:
            tasks = [t for t in tasks
                     if search in (t.get('title') or '').lower()
                     or search in (t.get('description') or '').lower()]

        if filters.get('date_range'):
            start, end = self._parse_date_range(filters['date_range'])
            in_range = []
            for task in tasks:
                due = Helpers.parse_datetime(task.get('due_date'))
                if due is not None and start <= due <= end:
                    in_range.append(task)
            tasks = in_range

        expired_filter = _as_bool(filters.get('is_expired'))
        if expired_filter is not None:
            now = self.clock()
            tasks = [t for t in tasks if is_expired(t, now) == expired_filter]

        total = len(tasks)
        offset = (page - 1) * limit
        return {
            'tasks': tasks[offset:offset + limit],
            'pagination': {
                'total': total,
                'page': page,
                'pages': math.ceil(total / limit),
                'limit': limit,
            },
        }

    def get_stats(self, organization_id: str, actor: Dict[str, Any]) -> Dict[str, Any]:
        tasks = self._visible_tasks(organization_id, actor)
        now = self.clock()

        status_stats = {status.value: 0 for status in TaskStatus}
        category_counts = {}
        priority_counts = {}
        for task in tasks:
            status_stats[task.get('status')] = status_stats.get(task.get('status'), 0) + 1
            category_counts[task.get('category')] = category_counts.get(task.get('category'), 0) + 1
            priority_counts[task.get('priority')] = priority_counts.get(task.get('priority'), 0) + 1

        members = [m for m in self.users.list_organization_members(organization_id) if m.get('is_active', True)]
        return {
            'total_tasks': len(tasks),
            'completed_tasks': status_stats.get(TaskStatus.COMPLETED.value, 0),
            'overdue_tasks': sum(1 for t in tasks if is_expired(t, now)),
            'team_members': len(members),
            'status_stats': status_stats,
            'category_stats': [{'category': k, 'count': v} for k, v in category_counts.items()],
            'priority_stats': [{'priority': k, 'count': v} for k, v in priority_counts.items()],
        }

    def get_recent_tasks(self, organization_id: str, actor: Dict[str, Any], limit: int = 5) -> List[Dict[str, Any]]:
        limit = min(_as_positive_int(limit, 'limit', 5), MAX_PAGE_SIZE)
        tasks = self._visible_tasks(organization_id, actor)
        tasks.sort(key=lambda t: t.get('updated_at') or '', reverse=True)
        return tasks[:limit]
