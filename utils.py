import re
from functools import wraps

from flask import abort
from flask_login import current_user


def validate_email(email):
    return re.match(r'^[\w\.\+-]+@[\w\.-]+\.\w+$', email or "")


def admin_required(f):
    """
    Restrict a route to admins.
    - 401 when nobody is logged in.
    - 403 when the logged in user is not an admin.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            abort(401)

        if not current_user.is_admin:
            abort(403)

        return f(*args, **kwargs)

    return decorated_function


def creator_required(f):
    """Restrict a route to users flagged as creators (admins pass too)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            abort(401)

        if not (current_user.is_creator or current_user.is_admin):
            abort(403)

        return f(*args, **kwargs)

    return decorated_function


def parse_int(value):
    """int(value) for ids coming from JSON bodies; None when it is not an integer."""
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
