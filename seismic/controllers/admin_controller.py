# File: seismic/controllers/admin_controller.py
from flask import Blueprint, jsonify
from flask_login import login_required

from seismic.decorators import admin_required
from seismic.errors import InvalidInput
from seismic.forms import SettingsForm
from seismic.services.config_service import get_provider

admin_bp = Blueprint('admin', __name__)


@admin_bp.route('', methods=['GET'])
@login_required
@admin_required
def show_config():
    return jsonify({'success': True, 'config': get_provider().snapshot().to_dict()})


@admin_bp.route('', methods=['PUT'])
@login_required
@admin_required
def update_config():
    """
    Administrative channel: the only place thresholds and cooldown change.
    """
    form = SettingsForm()
    if not form.validate_on_submit():
        raise InvalidInput('invalid configuration', details=form.error_messages())

    snapshot = get_provider().update_settings(**form.settings())
    return jsonify({'success': True, 'config': snapshot.to_dict()})
