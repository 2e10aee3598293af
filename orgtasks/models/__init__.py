from orgtasks.models.organization_model import OrganizationModel
from orgtasks.models.user_model import UserModel
from orgtasks.models.invitation_model import InvitationModel
from orgtasks.models.task_model import TaskModel

__all__ = [
    "OrganizationModel",
    "UserModel",
    "InvitationModel",
    "TaskModel",
]
