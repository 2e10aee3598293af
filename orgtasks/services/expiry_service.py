"""Expiry and reminder sweeps over every organization's open tasks."""
import logging
from datetime import datetime, timedelta
from typing import Dict, Any, Optional, List

from orgtasks.models.organization_model import OrganizationModel
from orgtasks.models.task_model import TaskModel
from orgtasks.services.notification_service import Notifier, emails_enabled
from orgtasks.services.task_service import TaskService
from orgtasks.utils.validators import Helpers

logger = logging.getLogger(__name__)

DEFAULT_REMINDER_WINDOW_HOURS = 24


class TaskExpiryService:
    """Runs with system authority across all tenants"""

    def __init__(self, db, notifier: Notifier = None, reminder_window_hours: int = DEFAULT_REMINDER_WINDOW_HOURS):
        self.db = db
        self.notifier = notifier or Notifier(db)
        self.tasks = TaskModel.system(db)
        self.organizations = OrganizationModel(db)
        self.reminder_window_hours = reminder_window_hours

    def find_expired_tasks(self, now: datetime) -> List[Dict[str, Any]]:
        return self.tasks.find_open_tasks_due(due_before=Helpers.to_iso(now))

    def find_tasks_due_soon(self, now: datetime) -> List[Dict[str, Any]]:
        window_end = now + timedelta(hours=self.reminder_window_hours)
        return self.tasks.find_open_tasks_due(due_after=Helpers.to_iso(now), due_before=Helpers.to_iso(window_end))

    def _organization(self, organization_id: str, cache: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if organization_id not in cache:
            cache[organization_id] = self.organizations.get_organization(organization_id)
        return cache[organization_id]

    def run_expiry_sweep(self, now: datetime = None, dry_run: bool = False) -> int:
        """Mark every overdue open task expired and notify its assignees.

        Returns the number of tasks processed. A failure on one task is
        logged and the sweep moves on to the next.
        """
        now = now or Helpers.utc_now()
        engine = TaskService(self.db, notifier=self.notifier, clock=lambda: now)
        organizations = {}
        processed = 0

        tasks = self.find_expired_tasks(now)
        logger.info("Expiry sweep found %d overdue task(s)", len(tasks))
        for task in tasks:
            task_id = task.get('task_id')
            try:
                if dry_run:
                    logger.info("[dry-run] would expire task %s (%s)", task_id, task.get('title'))
                    processed += 1
                    continue
                expired = engine.mark_expired(task)
            except Exception:
                logger.exception("Failed to expire task %s", task_id)
                continue
            processed += 1
            try:
                organization = self._organization(task.get('organization_id'), organizations)
                self.notifier.notify_users(expired.get('assigned_to') or [], 'task_expired', {
                    'task_id': task_id,
                    'title': expired.get('title'),
                    'due_date': expired.get('due_date'),
                    'status': expired.get('status'),
                }, organization)
            except Exception:
                logger.exception("Expired task %s but failed to notify its assignees", task_id)

        logger.info("Expiry sweep processed %d task(s)", processed)
        return processed

    def run_reminder_sweep(self, now: datetime = None, dry_run: bool = False) -> int:
        """Remind assignees of open tasks due within the reminder window.

        Tasks are not modified. Returns the number of tasks reminded about.
        """
        now = now or Helpers.utc_now()
        organizations = {}
        processed = 0

        tasks = self.find_tasks_due_soon(now)
        logger.info("Reminder sweep found %d task(s) due soon", len(tasks))
        for task in tasks:
            task_id = task.get('task_id')
            try:
                organization = self._organization(task.get('organization_id'), organizations)
                if not emails_enabled(organization, 'task_reminders'):
                    continue
                if dry_run:
                    logger.info("[dry-run] would remind assignees of task %s", task_id)
                    processed += 1
                    continue
                self.notifier.notify_users(task.get('assigned_to') or [], 'task_reminder', {
                    'task_id': task_id,
                    'title': task.get('title'),
                    'due_date': task.get('due_date'),
                    'status': task.get('status'),
                }, organization)
                processed += 1
            except Exception:
                logger.exception("Failed to send reminder for task %s", task_id)

        logger.info("Reminder sweep processed %d task(s)", processed)
        return processed
