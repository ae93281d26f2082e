"""Session user lookup and role guards.

Sign-in itself belongs to the external auth provider, which stores the
signed-in user's id in the Flask session under ``user_id``. Everything here
only reads that id and the ``user_roles`` table.
"""
import logging
from flask import session
from storefront.extensions import db
from storefront.models.user import User, UserRole
from storefront.schemas import RoleUpdate

logger = logging.getLogger(__name__)

ROLE_RANK = {role: rank for rank, role in enumerate(UserRole.ROLES, start=1)}


class AuthorizationError(Exception):
    """Base class for guard failures; handled at the app level."""


class Unauthenticated(AuthorizationError):
    pass


class Forbidden(AuthorizationError):
    pass


def get_current_user():
    user_id = session.get("user_id")
    if not user_id:
        return None
    return db.session.get(User, user_id)


def login_user(user):
    """Record the signed-in user. Called by the auth provider callback."""
    session["user_id"] = user.id


def logout_user():
    session.pop("user_id", None)


def get_user_role(user_id):
    row = UserRole.query.filter_by(user_id=user_id).first()
    return row.role if row else "viewer"


def has_permission(user_id, required_role):
    return ROLE_RANK[get_user_role(user_id)] >= ROLE_RANK[required_role]


def require_auth():
    user = get_current_user()
    if not user:
        raise Unauthenticated("Sign-in required")
    return user


def require_admin():
    user = require_auth()
    role = get_user_role(user.id)
    if role != "admin":
        raise Forbidden("Admin role required")
    return user, role


def require_editor():
    """Allow editors and admins; everyone else is refused."""
    user = require_auth()
    role = get_user_role(user.id)
    if role not in ("admin", "editor"):
        raise Forbidden("Editor role required")
    return user, role


def set_user_role(user_id, role):
    require_admin()
    data = RoleUpdate.model_validate({"user_id": user_id, "role": role})
    if not db.session.get(User, data.user_id):
        return None

    row = UserRole.query.filter_by(user_id=data.user_id).first()
    if row:
        row.role = data.role
    else:
        row = UserRole(user_id=data.user_id, role=data.role)
        db.session.add(row)
    db.session.commit()
    logger.info("Role of user %s set to %s", data.user_id, data.role)
    return row
