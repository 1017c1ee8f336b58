# File: seismic/controllers/event_controller.py
import time

from flask import Blueprint, jsonify, request

from seismic.clock import isoformat, utcnow
from seismic.errors import InvalidInput, NotFound
from seismic.models import EventType
from seismic.services import pipeline
from seismic.store import EventStore

event_bp = Blueprint('events', __name__)

_started = time.monotonic()


@event_bp.route('/earthquakes/event', methods=['POST'])
def receive_event():
    """
    Sample pushed by a sensor: classify, store and (per PIPELINE_MODE) analyse and notify.
    """
    payload = request.get_json(silent=True)
    if payload is None:
        raise InvalidInput('expected a JSON body',
                           details={'required': ['device_id', 'acceleration_x', 'acceleration_y', 'acceleration_z']})

    result = pipeline.ingest(payload)
    event = result.event
    body = result.to_dict()
    body.update({
        'success': True,
        'event_id': event.id,
        'event_type': event.event_type,
        'message': f'{event.event_type} event recorded',
    })
    return jsonify(body), 201


@event_bp.route('/earthquakes', methods=['GET'])
def list_events():
    limit = request.args.get('limit', 50, type=int)
    offset = request.args.get('offset', 0, type=int)
    event_type = request.args.get('event_type')
    device_id = request.args.get('device_id')

    if event_type and event_type not in EventType.ALL:
        raise InvalidInput(f'event_type must be one of {", ".join(EventType.ALL)}')
    if limit < 1 or limit > 500 or offset < 0:
        raise InvalidInput('limit must be 1-500 and offset >= 0')

    store = EventStore()
    events = store.query(event_type=event_type, device_id=device_id, limit=limit, offset=offset)
    total = store.count_where(event_type=event_type, device_id=device_id)

    return jsonify({
        'success': True,
        'events': [e.to_dict() for e in events],
        'pagination': {'limit': limit, 'offset': offset, 'total': total},
    })


@event_bp.route('/earthquakes/<int:event_id>', methods=['GET'])
def get_event(event_id):
    store = EventStore()
    event = store.get_by_id(event_id)
    if event is None:
        raise NotFound(f'no event with id {event_id}')

    analysis = store.current_analysis(event_id)
    return jsonify({
        'success': True,
        'event': event.to_dict(),
        'aftershock_analysis': analysis.to_dict() if analysis else None,
    })


@event_bp.route('/health', methods=['GET'])
def health():
    return jsonify({
        'status': 'OK',
        'timestamp': isoformat(utcnow()),
        'uptime': round(time.monotonic() - _started, 1),
        'message': 'Seismic detection server running',
    })
