# Overview: Permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, current_app

from .permissions import has_permission


def require_permission(permission_code: str):
    """
    Require a specific permission.

    The check is delegated to the upstream auth layer through
    permissions.has_permission; services never re-check.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not has_permission(permission_code):
                current_app.logger.warning(
                    "Permission denied: %s %s requires %s",
                    request.method,
                    request.path,
                    permission_code,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
