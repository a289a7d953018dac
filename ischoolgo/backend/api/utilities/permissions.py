# ischoolgo/backend/api/utilities/permissions.py
import logging

from ...errors import AuthorizationError
from ...models.db_models import User

logger = logging.getLogger(__name__)

ALL_ROLES = ("admin", "director", "head_trainer", "teacher", "agent", "marketer")

# Which roles may use each functional area of the API.
AREA_ROLES = {
    "dashboard": ALL_ROLES,
    "students": ("admin", "director", "head_trainer", "teacher", "agent"),
    "groups": ("admin", "director", "head_trainer", "teacher"),
    "attendance": ("admin", "director", "head_trainer", "teacher"),
    "payments": ("admin", "director", "agent"),
    "marketing": ("admin", "director", "marketer"),
    "analytics": ("admin", "director", "head_trainer"),
    "settings": ("admin", "director"),
}


def can_access(role: str, area: str) -> bool:
    return role in AREA_ROLES.get(area, ())


def ensure_allowed(user: User, area: str):
    if not can_access(user.role, area):
        logger.warning(f"User {user.id} ({user.role}) denied access to '{area}'.")
        raise AuthorizationError(f"The '{user.role}' role may not access {area}.")
