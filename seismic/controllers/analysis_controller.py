# File: seismic/controllers/analysis_controller.py
from flask import Blueprint, jsonify, request
from flask_login import login_required

from seismic.decorators import admin_required
from seismic.errors import InvalidInput, NotFound
from seismic.services import aftershock, stats
from seismic.services.config_service import get_provider
from seismic.store import EventStore

analysis_bp = Blueprint('analysis', __name__)


def _positive_arg(name, default, maximum):
    value = request.args.get(name, default, type=int)
    if value < 1 or value > maximum:
        raise InvalidInput(f'{name} must be between 1 and {maximum}')
    return value


@analysis_bp.route('/aftershocks/<int:event_id>', methods=['GET'])
def get_aftershock_analysis(event_id):
    store = EventStore()
    event = store.get_by_id(event_id)
    if event is None:
        raise NotFound(f'no event with id {event_id}')

    analysis = store.current_analysis(event_id)
    if analysis is not None:
        message = 'analysis found'
    elif event.is_earthquake:
        message = 'no analysis available for this event'
    else:
        message = 'not applicable to vibration events'
    return jsonify({
        'success': True,
        'main_event': event.to_dict(),
        'aftershock_analysis': analysis.to_dict() if analysis else None,
        'history': [a.to_dict() for a in store.analyses_for(event_id)],
        'message': message,
    })


@analysis_bp.route('/aftershocks/<int:event_id>', methods=['POST'])
@login_required
@admin_required
def reanalyse(event_id):
    """Append a fresh analysis, the previous ones are kept."""
    store = EventStore()
    event = store.get_by_id(event_id)
    if event is None:
        raise NotFound(f'no event with id {event_id}')
    if not event.is_earthquake:
        raise InvalidInput('aftershock analysis only applies to earthquake events')

    analysis = aftershock.estimate(event, get_provider().snapshot(), store)
    return jsonify({'success': True, 'aftershock_analysis': analysis.to_dict()}), 201


@analysis_bp.route('/stats/general', methods=['GET'])
def general_stats():
    days = _positive_arg('days', 30, 365)
    body = stats.general_stats(EventStore(), days=days)
    return jsonify(dict(success=True, **body))


@analysis_bp.route('/trends/activity', methods=['GET'])
def activity_trend():
    hours = _positive_arg('hours', 24, 24 * 31)
    body = stats.activity_trend(EventStore(), hours=hours)
    return jsonify(dict(success=True, **body))


@analysis_bp.route('/trends/summary', methods=['GET'])
def trend_summary():
    days = _positive_arg('days', 30, 365)
    body = stats.analyze_trends(EventStore(), days=days)
    return jsonify(dict(success=True, **body))


@analysis_bp.route('/prediction/simple', methods=['GET'])
def simple_prediction():
    body = stats.simple_prediction(EventStore())
    return jsonify(dict(success=True, **body))
