# File: seismic/services/config_service.py
import json
import threading
import time
from dataclasses import dataclass, field
from typing import Tuple

from flask import current_app

from seismic.errors import ConfigurationError, InvalidInput
from seismic.store import EventStore

EARTHQUAKE_THRESHOLD = 'earthquake_threshold'
VIBRATION_THRESHOLD = 'vibration_threshold'
AFTERSHOCK_WINDOW_HOURS = 'aftershock_window_hours'
NOTIFICATION_COOLDOWN_MINUTES = 'notification_cooldown_minutes'
EMERGENCY_CONTACTS = 'emergency_contacts'

DESCRIPTIONS = {
    EARTHQUAKE_THRESHOLD: 'Acceleration at or above which a sample is an earthquake (m/s²)',
    VIBRATION_THRESHOLD: 'Informational vibration floor (m/s²)',
    AFTERSHOCK_WINDOW_HOURS: 'Validity window of an aftershock analysis (hours)',
    NOTIFICATION_COOLDOWN_MINUTES: 'Minimum time between notifications of the same event type',
    EMERGENCY_CONTACTS: 'Emergency contacts as a JSON list of {name, phone}',
}

# key -> (parser, app.config default)
_SETTINGS = {
    EARTHQUAKE_THRESHOLD: (float, 'DEFAULT_EARTHQUAKE_THRESHOLD'),
    VIBRATION_THRESHOLD: (float, 'DEFAULT_VIBRATION_THRESHOLD'),
    AFTERSHOCK_WINDOW_HOURS: (int, 'DEFAULT_AFTERSHOCK_WINDOW_HOURS'),
    NOTIFICATION_COOLDOWN_MINUTES: (int, 'DEFAULT_NOTIFICATION_COOLDOWN_MINUTES'),
}


@dataclass(frozen=True)
class Contact:
    name: str
    phone: str

    def to_dict(self):
        return {'name': self.name, 'phone': self.phone}


@dataclass(frozen=True)
class ConfigSnapshot:
    """Immutable view of the configuration, taken once per pipeline invocation."""
    earthquake_threshold: float = 15.0
    vibration_threshold: float = 5.0
    aftershock_window_hours: int = 72
    notification_cooldown_minutes: int = 15
    emergency_contacts: Tuple[Contact, ...] = field(default_factory=tuple)

    def to_dict(self):
        return {
            EARTHQUAKE_THRESHOLD: self.earthquake_threshold,
            VIBRATION_THRESHOLD: self.vibration_threshold,
            AFTERSHOCK_WINDOW_HOURS: self.aftershock_window_hours,
            NOTIFICATION_COOLDOWN_MINUTES: self.notification_cooldown_minutes,
            EMERGENCY_CONTACTS: [c.to_dict() for c in self.emergency_contacts],
        }


def parse_contacts(raw):
    """Validate a list of {name, phone} mappings into Contact objects."""
    if not isinstance(raw, (list, tuple)):
        raise InvalidInput('contacts must be a list of objects with name and phone')
    contacts = []
    for item in raw:
        if not isinstance(item, dict):
            raise InvalidInput('each contact must be an object with name and phone')
        name = str(item.get('name') or '').strip()
        phone = str(item.get('phone') or '').strip()
        if not name or not phone:
            raise InvalidInput('each contact must have name and phone')
        contacts.append(Contact(name=name, phone=phone))
    return tuple(contacts)


class ConfigProvider:
    """
    Reads thresholds and contacts from system_config, falling back to the
    documented defaults in app.config. Snapshots are cached for
    CONFIG_REFRESH_SECONDS and dropped on every administrative write.
    """

    def __init__(self, store=None, refresh_seconds=None):
        self.store = store or EventStore()
        self.refresh_seconds = refresh_seconds
        self._lock = threading.Lock()
        self._cached = None
        self._loaded_at = 0.0

    def _refresh_seconds(self):
        if self.refresh_seconds is not None:
            return self.refresh_seconds
        return current_app.config.get('CONFIG_REFRESH_SECONDS', 30)

    def _parse(self, key, raw):
        parser, default_name = _SETTINGS[key]
        if raw is None:
            return parser(current_app.config[default_name])
        try:
            return parser(raw)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f'invalid value for {key}: {raw!r}') from e

    def _fallback_contacts(self):
        contacts = []
        admin_phone = current_app.config.get('ADMIN_PHONE')
        if admin_phone:
            contacts.append(Contact(name='Administrator', phone=admin_phone.strip()))
        extra = current_app.config.get('EMERGENCY_CONTACTS')
        if extra:
            phones = [p.strip() for p in extra.split(',') if p.strip()]
            for i, phone in enumerate(phones, start=1):
                contacts.append(Contact(name=f'Contact {i}', phone=phone))
        return tuple(contacts)

    def _load(self):
        values = self.store.config_values()
        raw_contacts = values.get(EMERGENCY_CONTACTS)
        if raw_contacts:
            try:
                contacts = parse_contacts(json.loads(raw_contacts))
            except (ValueError, InvalidInput) as e:
                raise ConfigurationError(f'invalid stored emergency contacts: {e}') from e
        else:
            contacts = self._fallback_contacts()

        return ConfigSnapshot(
            earthquake_threshold=self._parse(EARTHQUAKE_THRESHOLD, values.get(EARTHQUAKE_THRESHOLD)),
            vibration_threshold=self._parse(VIBRATION_THRESHOLD, values.get(VIBRATION_THRESHOLD)),
            aftershock_window_hours=self._parse(AFTERSHOCK_WINDOW_HOURS, values.get(AFTERSHOCK_WINDOW_HOURS)),
            notification_cooldown_minutes=self._parse(
                NOTIFICATION_COOLDOWN_MINUTES, values.get(NOTIFICATION_COOLDOWN_MINUTES)
            ),
            emergency_contacts=contacts,
        )

    def snapshot(self):
        with self._lock:
            expired = time.monotonic() - self._loaded_at >= self._refresh_seconds()
            if self._cached is None or expired:
                self._cached = self._load()
                self._loaded_at = time.monotonic()
            return self._cached

    def invalidate(self):
        with self._lock:
            self._cached = None

    def get_threshold(self, name):
        snap = self.snapshot()
        if name in ('earthquake', EARTHQUAKE_THRESHOLD):
            return snap.earthquake_threshold
        if name in ('vibration', VIBRATION_THRESHOLD):
            return snap.vibration_threshold
        raise ConfigurationError(f'unknown threshold: {name}')

    def get_contacts(self):
        return self.snapshot().emergency_contacts

    def get_cooldown_minutes(self):
        return self.snapshot().notification_cooldown_minutes

    def get_aftershock_window_hours(self):
        return self.snapshot().aftershock_window_hours

    # --- administrative writes ---

    def update_settings(self, **values):
        """Persist any of the numeric settings. Unknown keys are rejected."""
        unknown = set(values) - set(_SETTINGS)
        if unknown:
            raise InvalidInput(f'unknown settings: {", ".join(sorted(unknown))}')
        to_store = {}
        for key, value in values.items():
            if value is None:
                continue
            parser = _SETTINGS[key][0]
            to_store[key] = str(parser(value))
        if to_store:
            self.store.set_config_values(to_store, DESCRIPTIONS)
            current_app.logger.info('Configuration updated: %s', to_store)
        self.invalidate()
        return self.snapshot()

    def set_contacts(self, raw_contacts):
        contacts = parse_contacts(raw_contacts)
        payload = json.dumps([c.to_dict() for c in contacts])
        self.store.set_config_values({EMERGENCY_CONTACTS: payload}, DESCRIPTIONS)
        current_app.logger.info('Emergency contacts updated (%d contacts)', len(contacts))
        self.invalidate()
        return contacts


def get_provider():
    """The application's shared provider, created by create_app."""
    return current_app.extensions['seismic_config']
