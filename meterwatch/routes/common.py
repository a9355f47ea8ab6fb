"""
Request helpers shared by the blueprints.
"""
from functools import wraps

from flask import current_app, g, jsonify, session

from meterwatch.errors import StaleSessionError
from meterwatch.services import Services, resolve_identity


def get_services() -> Services:
    return current_app.extensions['meterwatch']


def current_snapshot():
    return get_services().engine.current_snapshot()


def current_user():
    """
    Resolve the signed-in user against the latest snapshot.

    Returns None when nobody is signed in; raises StaleSessionError when
    the stored id no longer exists (the account was deleted).
    """
    if 'current_user' in g:
        return g.current_user
    user_id = session.get('user_id')
    if not user_id:
        return None
    user = resolve_identity(current_snapshot().users, user_id)
    if user is None:
        raise StaleSessionError("Your account no longer exists; please sign in again")
    g.current_user = user
    return user


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if current_user() is None:
            return jsonify({'error': 'Authentication required'}), 401
        return view(*args, **kwargs)
    return wrapper


def capability_required(check):
    """Reject the request with 403 unless ``check(user)`` holds."""
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            user = current_user()
            if user is None:
                return jsonify({'error': 'Authentication required'}), 401
            if not check(user):
                return jsonify({'error': 'Not allowed'}), 403
            return view(*args, **kwargs)
        return wrapper
    return decorator


def refresh_after_write():
    """Pull a fresh snapshot so the writer sees its own change."""
    get_services().engine.refresh_now()
