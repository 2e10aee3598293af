"""
Authorization policy.

Pure, stateless predicates over (user, resource). Users and tasks are the
plain dicts the models return. Routes and services call ``require`` to turn
a denied predicate into a Forbidden error before anything is mutated.
"""
from enum import Enum
from typing import Dict, Any, Optional

from orgtasks.errors import Forbidden


class Role(str, Enum):
    MEMBER = 'member'
    MANAGER = 'manager'
    ADMIN = 'admin'

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def permits(self, required: 'Role') -> bool:
        """True when this role is at least as privileged as ``required``"""
        return self.rank >= Role(required).rank

    @classmethod
    def of(cls, user: Optional[Dict[str, Any]]) -> Optional['Role']:
        try:
            return cls((user or {}).get('role'))
        except ValueError:
            return None


_ROLE_RANK = {Role.MEMBER: 1, Role.MANAGER: 2, Role.ADMIN: 3}

INVITABLE_ROLES = (Role.MEMBER, Role.MANAGER)


def has_role(user: Optional[Dict[str, Any]], required: Role) -> bool:
    role = Role.of(user)
    return role is not None and role.permits(required)


def is_self(actor: Dict[str, Any], target: Dict[str, Any]) -> bool:
    return bool(actor.get('user_id')) and actor.get('user_id') == target.get('user_id')


def is_assigned(user: Dict[str, Any], task: Dict[str, Any]) -> bool:
    return user.get('user_id') in (task.get('assigned_to') or [])


# Organization

def can_update_organization(user) -> bool:
    return has_role(user, Role.ADMIN)


def can_invite(user) -> bool:
    return has_role(user, Role.MANAGER)


def can_grant_role(role: str) -> bool:
    """Roles an invitation may carry; admin is never granted by invite"""
    return role in [r.value for r in INVITABLE_ROLES]


def can_change_role(actor, target) -> bool:
    return has_role(actor, Role.ADMIN) and not is_self(actor, target)


def can_remove_member(actor, target) -> bool:
    return has_role(actor, Role.ADMIN) and not is_self(actor, target)


# Tasks

def can_manage_tasks(user) -> bool:
    """Create, delete, edit details and reassign"""
    return has_role(user, Role.MANAGER)


def can_modify(user, task) -> bool:
    """Status updates: admin/manager, or an assignee of this task"""
    return can_manage_tasks(user) or is_assigned(user, task)


def can_view_task(user, task) -> bool:
    return can_modify(user, task)


def require(allowed: bool, message: str = "Access denied") -> None:
    if not allowed:
        raise Forbidden(message)
