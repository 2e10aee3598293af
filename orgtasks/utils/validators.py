from datetime import datetime, timezone, timedelta
from typing import Dict, Any, Optional, List
import re
import uuid

ROLES = ['admin', 'manager', 'member']
TASK_PRIORITIES = ['low', 'medium', 'high']
THEMES = ['light', 'dark']


class Validators:
    """Input validation utilities"""

    @staticmethod
    def validate_email(email: str) -> bool:
        """Validate email format"""
        if not isinstance(email, str):
            return False
        pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        return bool(re.match(pattern, email.strip()))

    @staticmethod
    def validate_name(name: str) -> bool:
        """Validate a person's name (1-50 chars)"""
        return isinstance(name, str) and 1 <= len(name.strip()) <= 50

    @staticmethod
    def validate_password(password: str) -> bool:
        """Validate password length (8-128 chars)"""
        return isinstance(password, str) and 8 <= len(password) <= 128

    @staticmethod
    def validate_task_title(title: str) -> bool:
        """Validate task title (1-200 chars)"""
        return isinstance(title, str) and 1 <= len(title.strip()) <= 200

    @staticmethod
    def validate_task_description(description: str) -> bool:
        """Validate task description (0-5000 chars)"""
        return isinstance(description, str) and len(description) <= 5000

    @staticmethod
    def validate_priority(priority: str) -> bool:
        return priority in TASK_PRIORITIES

    @staticmethod
    def validate_role(role: str) -> bool:
        """Validate user role"""
        return role in ROLES

    @staticmethod
    def validate_organization_name(name: str) -> bool:
        """Validate organization name (2-100 chars)"""
        return isinstance(name, str) and 2 <= len(name.strip()) <= 100


class Helpers:
    """Utility helper functions"""

    @staticmethod
    def generate_id() -> str:
        """Generate a unique ID"""
        return uuid.uuid4().hex

    @staticmethod
    def utc_now() -> datetime:
        return datetime.now(timezone.utc)

    @staticmethod
    def to_iso(value: datetime) -> str:
        """Format a datetime as a UTC ISO string with second precision.

        Stored timestamps must share one format so that Firestore range
        filters on the string values order chronologically.
        """
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat(timespec='seconds')

    @staticmethod
    def now_iso() -> str:
        return Helpers.to_iso(Helpers.utc_now())

    @staticmethod
    def parse_datetime(value: Any) -> Optional[datetime]:
        """Parse a datetime or ISO string into an aware UTC datetime"""
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, str) and value.strip():
            text = value.strip()
            if text.endswith('Z'):
                text = text[:-1] + '+00:00'
            try:
                parsed = datetime.fromisoformat(text)
            except ValueError:
                return None
        else:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    @staticmethod
    def add_days_iso(days: int, start: datetime = None) -> str:
        start = start or Helpers.utc_now()
        return Helpers.to_iso(start + timedelta(days=days))

    @staticmethod
    def sanitize_string(text: str) -> str:
        """Sanitize string input"""
        if not text:
            return ""
        return str(text).strip()

    @staticmethod
    def slugify(name: str) -> str:
        """Derive an organization slug: 'My Org!!' -> 'my-org'"""
        slug = re.sub(r'[^a-z0-9]+', '-', (name or '').lower())
        return slug.strip('-')

    @staticmethod
    def unique_ordered(values: List[str]) -> List[str]:
        """Drop duplicates and blanks while keeping first-seen order"""
        seen = set()
        result = []
        for value in values or []:
            value = str(value).strip()
            if value and value not in seen:
                seen.add(value)
                result.append(value)
        return result

    @staticmethod
    def build_error_response(message: str, code: str = "BAD_REQUEST",
                             details: Any = None) -> Dict[str, Any]:
        """Build standardized error response"""
        response = {
            'error': message,
            'code': code,
            'timestamp': Helpers.now_iso()
        }
        if details is not None:
            response['details'] = details
        return response
