# File: connectMQTT.py
import json
import sys
import time

import paho.mqtt.client as mqtt
import socketio
from socketio.exceptions import ConnectionError as SocketIOConnectionError

# ============================
# 1. LOAD FLASK + DATABASE
# ============================
from seismic import create_app, db
from seismic.errors import InvalidInput, SeismicError
from seismic.services.pipeline import ingest

app = create_app()
app.app_context().push()

print("✅ Flask app & DB context loaded")

# ============================
# 2. CONFIGURATION
# ============================
MQTT_BROKER = app.config['MQTT_BROKER']
MQTT_PORT = app.config['MQTT_PORT']
MQTT_KEEPALIVE = app.config['MQTT_KEEPALIVE']
MQTT_TOPIC = app.config['MQTT_TOPIC']
WEB_SERVER_URL = app.config['WEB_SERVER_URL']

# ============================
# 3. SOCKETIO LINK TO THE WEB SERVER
# ============================
sio = socketio.Client(logger=False, engineio_logger=False)


def connect_socketio():
    try:
        if not sio.connected:
            sio.connect(WEB_SERVER_URL, transports=['websocket', 'polling'], wait_timeout=10)
            print(f"✅ [SocketIO] Connected to web server: {WEB_SERVER_URL}")
    except SocketIOConnectionError as e:
        app.logger.warning('[SocketIO] Web server %s not reachable: %s', WEB_SERVER_URL, e)


connect_socketio()


def device_from_topic(topic):
    """seismic/<device_id>/samples -> device_id"""
    parts = topic.split('/')
    return parts[1] if len(parts) >= 3 else None


# ============================
# 4. MQTT CALLBACKS
# ============================
def on_connect(client, userdata, flags, reason_code, properties=None):
    if reason_code.is_failure:
        print(f"❌ MQTT connect failed: {reason_code}")
        return
    print("✅ [MQTT] Connected to broker")
    client.subscribe(MQTT_TOPIC)
    print(f"📡 Subscribed: {MQTT_TOPIC}")


def on_message(client, userdata, msg):
    try:
        payload = json.loads(msg.payload.decode('utf-8'))
    except (UnicodeDecodeError, ValueError):
        app.logger.warning('Dropped non-JSON payload on %s', msg.topic)
        return

    if isinstance(payload, dict) and not payload.get('device_id'):
        payload['device_id'] = device_from_topic(msg.topic)

    try:
        result = ingest(payload)
    except InvalidInput as e:
        app.logger.warning('Rejected sample on %s: %s', msg.topic, e.message)
        return
    except SeismicError as e:
        db.session.rollback()
        app.logger.error('Sample on %s not stored: %s', msg.topic, e.message)
        return
    except Exception:
        # paho re-raises callback errors out of loop_forever, one sample must not stop the collector
        db.session.rollback()
        app.logger.exception('Unexpected error handling sample on %s', msg.topic)
        return

    event = result.event
    print(f" {event.device_id} | {event.event_type} | {event.total_acceleration:.2f} m/s² | id={event.id}")

    # Forward to the web server for live dashboards
    if not sio.connected:
        connect_socketio()
    if sio.connected:
        sio.emit('seismic_event_update', {
            'event_id': event.id,
            'device_id': event.device_id,
            'event_type': event.event_type,
            'total_acceleration': event.total_acceleration,
            'magnitude': event.magnitude,
            'time': event.timestamp.strftime('%d/%m/%Y %H:%M:%S'),
            'analysis_status': result.analysis_status,
        })


# ============================
# 5. MAIN LOOP
# ============================
client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)
client.on_connect = on_connect
client.on_message = on_message

if __name__ == "__main__":
    print("\n🚀 MQTT COLLECTOR RUNNING...")
    while True:
        try:
            client.connect(MQTT_BROKER, MQTT_PORT, MQTT_KEEPALIVE)
            client.loop_forever()
        except KeyboardInterrupt:
            print("\n🛑 Stopped.")
            sys.exit(0)
        except OSError as e:
            print(f"⚠️ Connection lost: {e}. Retrying in 5s...")
            time.sleep(5)
