# File: seismic/events.py
from flask import current_app
from flask_socketio import emit
from seismic import socketio


@socketio.on('connect')
def handle_connect():
    current_app.logger.info('Dashboard client connected to Socket.IO')


@socketio.on('seismic_event_update')
def handle_seismic_update(data):
    """
    Sent by connectMQTT.py after it stored a sample.
    Rebroadcast to every connected dashboard.
    """
    if not isinstance(data, dict):
        current_app.logger.warning('Ignored malformed collector update: %r', data)
        return
    current_app.logger.info(
        'Collector update from %s: %s %s m/s²',
        data.get('device_id'), data.get('event_type'), data.get('total_acceleration')
    )
    emit('update_monitor', data, broadcast=True)
