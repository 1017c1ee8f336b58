# File: tests/conftest.py
import threading
from datetime import datetime

import pytest

from config import Config
from seismic import create_app, db
from seismic.models import EventType, SeismicEvent, Users
from seismic.services.config_service import ConfigSnapshot, Contact
from seismic.services.transport import DeliveryResult
from seismic.store import EventStore

NOW = datetime(2026, 1, 15, 12, 0, 0)


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SECRET_KEY = 'testing'
    BCRYPT_LOG_ROUNDS = 4
    PIPELINE_MODE = 'inline'
    CONFIG_REFRESH_SECONDS = 0
    NOTIFY_VIBRATIONS = False
    ADMIN_PHONE = None
    EMERGENCY_CONTACTS = None
    WHATSAPP_API_URL = None
    WHATSAPP_TOKEN = None


class FakeTransport:
    """Records every send. Recipients in `failing` get a failure, in `raising` an exception."""
    channel = 'whatsapp'

    def __init__(self):
        self.sent = []
        self.failing = set()
        self.raising = set()
        self._lock = threading.Lock()

    def send(self, recipient, message):
        with self._lock:
            self.sent.append((recipient, message))
        if recipient in self.raising:
            raise ConnectionError('connection reset')
        if recipient in self.failing:
            return DeliveryResult(success=False, error='recipient unreachable')
        return DeliveryResult(success=True, message_id=f'fake_{recipient}')


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    app.extensions['delivery_transport'] = FakeTransport()
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def transport(app):
    return app.extensions['delivery_transport']


@pytest.fixture
def store(app):
    return EventStore()


@pytest.fixture
def contacts():
    return (
        Contact(name='Ana', phone='+5491100000001'),
        Contact(name='Bruno', phone='+5491100000002'),
        Contact(name='Carla', phone='+5491100000003'),
    )


@pytest.fixture
def snapshot(contacts):
    return ConfigSnapshot(emergency_contacts=contacts)


@pytest.fixture
def make_event(store):
    def _make(total, timestamp=NOW, event_type=None, device_id='pico-01', magnitude=None):
        if event_type is None:
            event_type = EventType.EARTHQUAKE if total >= 15.0 else EventType.VIBRATION
        event = SeismicEvent(
            device_id=device_id,
            timestamp=timestamp,
            acceleration_x=total,
            acceleration_y=0.0,
            acceleration_z=0.0,
            total_acceleration=total,
            event_type=event_type,
            magnitude=magnitude if magnitude is not None else total,
        )
        store.insert(event)
        return event
    return _make


@pytest.fixture
def admin_client(app, client):
    admin = Users(username='admin', email='admin@example.com', fullname='Admin', role='admin')
    admin.set_password('secret-pass')
    db.session.add(admin)
    db.session.commit()
    response = client.post('/auth/login', json={'username': 'admin', 'password': 'secret-pass'})
    assert response.status_code == 200
    return client
