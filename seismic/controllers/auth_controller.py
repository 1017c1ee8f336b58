# File: seismic/controllers/auth_controller.py
from flask import Blueprint, jsonify
from flask_login import login_user, logout_user, current_user, login_required

from seismic import db
from seismic.models.user_model import Users
from seismic.forms import LoginForm

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Open an administrator session for the configuration endpoints.
    """
    if current_user.is_authenticated:
        return jsonify({'success': True, 'user': current_user.to_dict()})

    form = LoginForm()
    if not form.validate_on_submit():
        return jsonify({'success': False, 'error': 'Invalid input', 'details': form.error_messages()}), 400

    user = Users.query.filter_by(username=form.username.data).first()
    if user is None or not user.check_password(form.password.data):
        return jsonify({'success': False, 'error': 'Unauthorized',
                        'message': 'Check your username and password.'}), 401

    login_user(user, remember=form.remember.data)
    user.record_login()
    db.session.commit()
    return jsonify({'success': True, 'user': user.to_dict()})


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({'success': True, 'user': current_user.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True, 'message': 'Logged out.'})
