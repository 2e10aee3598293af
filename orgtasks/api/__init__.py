from flask import Blueprint, request

from orgtasks.errors import ValidationError

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")
organizations_bp = Blueprint("organizations", __name__, url_prefix="/api/organizations")
tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/tasks")


def json_body():
    """Return the request's JSON object; a missing body reads as empty"""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


# Import modules so routes attach
from . import auth  # noqa
from . import organizations  # noqa
from . import tasks  # noqa

__all__ = [
    "auth_bp",
    "organizations_bp",
    "tasks_bp",
    "json_body",
]
