# services/authorization.py
"""
Who may do what to a defect.

The rules only look at the caller's identity and, for per-defect actions,
at who owns the defect. Existence checks (404) happen before these rules are
consulted, so a denial never says more than "not authorized".
"""
from dataclasses import dataclass
import enum
import logging

from model import Role
from services.errors import Forbidden

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    user_id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin


class Action(str, enum.Enum):
    create = "create"
    read = "read"
    update = "update"
    delete = "delete"
    set_status = "set_status"
    comment = "comment"
    mark_read = "mark_read"


STATUS_ROLES = {Role.admin, Role.moderator}


def _owns(identity, defect):
    return defect is not None and defect.owner_id == identity.user_id


def authorize(identity: Identity, action: Action, defect=None) -> bool:
    if action == Action.create:
        return True
    if action in (Action.read, Action.update, Action.delete):
        return identity.is_admin or _owns(identity, defect)
    if action == Action.set_status:
        return identity.role in STATUS_ROLES
    if action == Action.comment:
        return identity.is_admin
    if action == Action.mark_read:
        return _owns(identity, defect)
    return False


def require(identity: Identity, action: Action, defect=None, message="Not authorized"):
    """Raise Forbidden unless ``authorize`` allows the action"""
    if not authorize(identity, action, defect):
        logger.info(
            f"Denied {action.value} for user {identity.user_id} ({identity.role.value})"
            + (f" on defect {defect.id}" if defect is not None else "")
        )
        raise Forbidden(message)
