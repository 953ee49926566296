from functools import wraps
from flask import jsonify
from flask_jwt_extended import get_jwt_identity, get_jwt


def get_current_user_id():
    """Caller's user id from the verified JWT identity, or None."""
    identity = get_jwt_identity()
    try:
        return int(identity) if identity is not None else None
    except (TypeError, ValueError):
        return None


def require_role(*roles):
    """
    Decorator to require specific roles
    Usage: @require_role('dentist', 'receptionist')

    Roles come from the token's "role" claim; the token itself is issued and
    verified upstream, so this only checks the claim.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            """
            Require that the current JWT-authenticated user has one of the given roles.
            Must be used together with @jwt_required() on the route.
            """
            if get_jwt().get('role') not in roles:
                return jsonify({
                    'success': False,
                    'error': f'Permission denied. Required roles: {", ".join(roles)}'
                }), 403

            return f(*args, **kwargs)
        return decorated_function
    return decorator
