"""Best-effort email notifications for task and invitation events."""
import logging
from typing import Dict, Any, Iterable, Optional

from orgtasks.email_utils import send_email as send_email_util
from orgtasks.models.user_model import UserModel

logger = logging.getLogger(__name__)

TEMPLATES = {
    "task_assigned": (
        "New task assigned: {title}",
        "You have been assigned to the task '{title}'.\n\n"
        "{description}\n\nCategory: {category}\nPriority: {priority}\nDue: {due_date}",
    ),
    "task_status_changed": (
        "Task status updated: {title}",
        "{updated_by} changed the status of '{title}' to {status}.\n\n{comment}\n\nDue: {due_date}",
    ),
    "task_expired": (
        "Task expired: {title}",
        "The task '{title}' passed its due date ({due_date}) and has been marked as expired.",
    ),
    "task_reminder": (
        "Task reminder: {title}",
        "The task '{title}' is due on {due_date}. Current status: {status}.\n"
        "Please complete it before the deadline.",
    ),
    "invitation": (
        "Invitation to join {organization_name}",
        "You have been invited to join {organization_name} on the task management platform.\n\n"
        "Accept the invitation here: {invite_link}\n\nThis link will expire in {ttl_hours} hours.",
    ),
}


class _SafeDict(dict):
    def __missing__(self, key):
        return ""


def render(template: str, data: Dict[str, Any]):
    subject, body = TEMPLATES[template]
    values = _SafeDict({k: ("" if v is None else v) for k, v in (data or {}).items()})
    return subject.format_map(values), body.format_map(values)


def emails_enabled(organization: Optional[Dict[str, Any]], toggle: str = "email_notifications") -> bool:
    if not organization:
        return True
    settings = (organization.get("settings") or {}).get("notification_settings") or {}
    return settings.get(toggle, True) is not False


class Notifier:
    """Sends templated emails to users; failures are logged, never raised"""

    def __init__(self, db):
        self.users = UserModel(db)

    def notify_users(self, user_ids: Iterable[str], template: str, data: Dict[str, Any],
                     organization: Optional[Dict[str, Any]] = None) -> int:
        """Email every active user in user_ids. Returns the number of emails sent."""
        if not emails_enabled(organization):
            logger.info("Email notifications disabled for organization %s; skipping %s",
                        organization.get("organization_id"), template)
            return 0

        subject, body = render(template, data)
        sent = 0
        for user_id in user_ids:
            try:
                user = self.users.get_user(user_id)
                if not user or not user.get("is_active", True) or not user.get("email"):
                    continue
                if send_email_util(user["email"], subject, body):
                    sent += 1
                else:
                    logger.warning("Notification %s not delivered to user %s", template, user_id)
            except Exception:
                logger.exception("Failed to notify user %s (%s)", user_id, template)
        return sent

    def send_invitation(self, email: str, organization_name: str, invite_link: str,
                        ttl_hours: int = 24) -> bool:
        subject, body = render("invitation", {
            "organization_name": organization_name,
            "invite_link": invite_link,
            "ttl_hours": ttl_hours,
        })
        try:
            return send_email_util(email, subject, body)
        except Exception:
            logger.exception("Failed to send invitation email to %s", email)
            return False
