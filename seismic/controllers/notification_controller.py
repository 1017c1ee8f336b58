# File: seismic/controllers/notification_controller.py
from flask import Blueprint, jsonify, request
from flask_login import login_required

from seismic.decorators import admin_required
from seismic.errors import InvalidInput
from seismic.forms import ManualNotificationForm, TestNotificationForm
from seismic.models import Channel, NotificationStatus
from seismic.services import stats
from seismic.services.config_service import get_provider
from seismic.services.notifications import get_dispatcher
from seismic.store import EventStore

notification_bp = Blueprint('notifications', __name__)

_STATUSES = (NotificationStatus.PENDING, NotificationStatus.SENT, NotificationStatus.FAILED)


@notification_bp.route('/history', methods=['GET'])
def history():
    limit = request.args.get('limit', 50, type=int)
    offset = request.args.get('offset', 0, type=int)
    status = request.args.get('status')
    channel = request.args.get('notification_type') or request.args.get('channel')

    if status and status not in _STATUSES:
        raise InvalidInput(f'status must be one of {", ".join(_STATUSES)}')
    if limit < 1 or limit > 500 or offset < 0:
        raise InvalidInput('limit must be 1-500 and offset >= 0')

    records = EventStore().query_notifications(status=status, channel=channel, limit=limit, offset=offset)
    notifications = []
    for record in records:
        item = record.to_dict()
        item.update({
            'event_type': record.event.event_type,
            'magnitude': record.event.magnitude,
            'total_acceleration': record.event.total_acceleration,
        })
        notifications.append(item)

    return jsonify({
        'success': True,
        'notifications': notifications,
        'pagination': {'limit': limit, 'offset': offset, 'total': len(notifications)},
    })


@notification_bp.route('/stats', methods=['GET'])
def notification_stats():
    days = request.args.get('days', 30, type=int)
    if days < 1 or days > 365:
        raise InvalidInput('days must be between 1 and 365')
    body = stats.notification_stats(EventStore(), days=days)
    return jsonify(dict(success=True, **body))


@notification_bp.route('/send', methods=['POST'])
@login_required
@admin_required
def send_manual():
    form = ManualNotificationForm()
    if not form.validate_on_submit():
        raise InvalidInput('invalid notification request', details=form.error_messages())

    store = EventStore()
    record = get_dispatcher(store).send_manual(form.event_id.data, form.phone_number.data, form.message.data)
    sent = record.status == NotificationStatus.SENT
    return jsonify({
        'success': sent,
        'notification_id': record.id,
        'notification_type': Channel.WHATSAPP,
        'message': 'notification sent' if sent else 'notification failed',
        'error': record.error,
    })


@notification_bp.route('/test', methods=['POST'])
@login_required
@admin_required
def send_test():
    form = TestNotificationForm()
    if not form.validate_on_submit():
        raise InvalidInput('invalid test request', details=form.error_messages())

    result = get_dispatcher(EventStore()).send_test(form.phone_number.data)
    return jsonify({'success': result.success, 'message_id': result.message_id, 'error': result.error})


@notification_bp.route('/contacts', methods=['GET'])
@login_required
@admin_required
def get_contacts():
    contacts = get_provider().get_contacts()
    return jsonify({'success': True, 'contacts': [c.to_dict() for c in contacts]})


@notification_bp.route('/contacts', methods=['POST'])
@login_required
@admin_required
def set_contacts():
    payload = request.get_json(silent=True) or {}
    contacts = get_provider().set_contacts(payload.get('contacts'))
    return jsonify({
        'success': True,
        'message': 'emergency contacts updated',
        'contacts': [c.to_dict() for c in contacts],
    })
