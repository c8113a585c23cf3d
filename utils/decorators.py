"""
Request-scoped user resolution
"""
from functools import wraps

from flask import g, request

from errors import NotAuthenticated

USER_HEADER = "X-User-Id"


def _get_current_user_id():
    """User id supplied by the upstream auth layer, or None"""
    return (request.headers.get(USER_HEADER) or "").strip() or None


def user_required(f):
    """Fail closed when no user context is present"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.user_id = _get_current_user_id()
        if not g.user_id:
            raise NotAuthenticated()
        return f(*args, **kwargs)

    return decorated_function
