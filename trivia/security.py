from functools import wraps

from flask import jsonify
from flask_login import current_user, login_required

from trivia import login_manager


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'error': 'Login required'}), 401


def admin_required(view):
    """Only the admin account may issue game transitions."""
    @wraps(view)
    @login_required
    def wrapper(*args, **kwargs):
        if not current_user.is_admin:
            return jsonify({'error': 'Admin access required'}), 403
        return view(*args, **kwargs)
    return wrapper


def participant_required(view):
    @wraps(view)
    @login_required
    def wrapper(*args, **kwargs):
        if current_user.is_admin:
            return jsonify({'error': 'Admins do not take part in the game'}), 403
        return view(*args, **kwargs)
    return wrapper
