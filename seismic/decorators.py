# File: seismic/decorators.py
from functools import wraps
from flask import jsonify
from flask_login import current_user


def admin_required(f):
    """
    Restrict an endpoint of the administrative channel to admin accounts.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({'success': False, 'error': 'Unauthorized', 'message': 'Login required'}), 401
        if not current_user.is_admin():
            return jsonify({'success': False, 'error': 'Forbidden', 'message': 'Admin access required'}), 403
        return f(*args, **kwargs)
    return decorated_function
