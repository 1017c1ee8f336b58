# File: config.py
import os

# Absolute path of the directory holding this file
basedir = os.path.abspath(os.path.dirname(__file__))


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """
    Base configuration for the seismic monitoring service.
    """
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'change-this-secret-key'

    # SQLite by default, any SQLAlchemy URL through DATABASE_URL
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'seismic.db')

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Documented defaults, used while system_config has no value for a key
    DEFAULT_EARTHQUAKE_THRESHOLD = 15.0      # m/s²
    DEFAULT_VIBRATION_THRESHOLD = 5.0        # m/s²
    DEFAULT_AFTERSHOCK_WINDOW_HOURS = 72
    DEFAULT_NOTIFICATION_COOLDOWN_MINUTES = 15

    # Fallback contact list when no contacts were configured by an admin
    ADMIN_PHONE = os.environ.get('ADMIN_PHONE')
    EMERGENCY_CONTACTS = os.environ.get('EMERGENCY_CONTACTS')

    # Seconds a configuration snapshot stays cached
    CONFIG_REFRESH_SECONDS = int(os.environ.get('CONFIG_REFRESH_SECONDS', 30))

    # WhatsApp delivery, simulated when url or token is missing
    WHATSAPP_API_URL = os.environ.get('WHATSAPP_API_URL')
    WHATSAPP_TOKEN = os.environ.get('WHATSAPP_TOKEN')
    WHATSAPP_TIMEOUT_SECONDS = float(os.environ.get('WHATSAPP_TIMEOUT_SECONDS', 10))
    DISPATCH_MAX_WORKERS = int(os.environ.get('DISPATCH_MAX_WORKERS', 4))

    # inline | background | worker
    PIPELINE_MODE = os.environ.get('PIPELINE_MODE') or 'background'
    NOTIFY_VIBRATIONS = _env_bool('NOTIFY_VIBRATIONS')

    SOCKETIO_ASYNC_MODE = os.environ.get('SOCKETIO_ASYNC_MODE') or 'threading'

    # Collector / worker scripts
    MQTT_BROKER = os.environ.get('MQTT_BROKER') or 'broker.hivemq.com'
    MQTT_PORT = int(os.environ.get('MQTT_PORT', 1883))
    MQTT_KEEPALIVE = 60
    MQTT_TOPIC = os.environ.get('MQTT_TOPIC') or 'seismic/+/samples'
    WEB_SERVER_URL = os.environ.get('WEB_SERVER_URL') or 'http://127.0.0.1:1404'
    WORKER_POLL_SECONDS = int(os.environ.get('WORKER_POLL_SECONDS', 10))

    # run.py
    SERVER_PORT = int(os.environ.get('SERVER_PORT', 1404))
    SERVER_DEBUG = _env_bool('SERVER_DEBUG', True)
