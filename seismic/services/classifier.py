# File: seismic/services/classifier.py
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from dateutil import parser as dateparser
from flask import current_app

from seismic.clock import to_naive_utc, utcnow
from seismic.errors import InvalidInput
from seismic.models import EventType, SeismicEvent

# Payload keys accepted for each axis, the device sends acceleration_*
_AXIS_KEYS = {
    'x': ('acceleration_x', 'x'),
    'y': ('acceleration_y', 'y'),
    'z': ('acceleration_z', 'z'),
}


def _number(name, value, required=True):
    if value is None or value == '':
        if required:
            raise InvalidInput(f'missing required field: {name}')
        return None
    if isinstance(value, bool):
        raise InvalidInput(f'{name} must be a number')
    try:
        number = float(value)
    except OverflowError:
        # repr() of a huge int can itself fail, keep it out of the message
        raise InvalidInput(f'{name} is out of range')
    except (TypeError, ValueError):
        raise InvalidInput(f'{name} must be a number, got {value!r}')
    if not math.isfinite(number):
        raise InvalidInput(f'{name} must be finite, got {value!r}')
    return number


def _timestamp(value):
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    try:
        return to_naive_utc(dateparser.isoparse(str(value)))
    except (TypeError, ValueError, OverflowError):
        raise InvalidInput(f'timestamp is not ISO-8601: {value!r}')


@dataclass(frozen=True)
class Sample:
    """One tri-axis accelerometer reading as received from a device."""
    device_id: str
    x: float
    y: float
    z: float
    magnitude: Optional[float] = None
    timestamp: Optional[datetime] = None

    @classmethod
    def from_payload(cls, payload):
        if not isinstance(payload, dict):
            raise InvalidInput('sample payload must be a JSON object')

        axes = {}
        for axis, keys in _AXIS_KEYS.items():
            raw = next((payload[k] for k in keys if k in payload), None)
            axes[axis] = _number(keys[0], raw)

        return cls(
            device_id=str(payload.get('device_id') or '').strip(),
            x=axes['x'],
            y=axes['y'],
            z=axes['z'],
            magnitude=_number('magnitude', payload.get('magnitude'), required=False),
            timestamp=_timestamp(payload.get('timestamp')),
        )

    def validate(self):
        if not self.device_id or not str(self.device_id).strip():
            raise InvalidInput('device_id must not be empty')
        for name in ('x', 'y', 'z'):
            _number(f'acceleration_{name}', getattr(self, name))
        _number('magnitude', self.magnitude, required=False)


def total_acceleration(x, y, z):
    # hypot scales internally, squaring large components would overflow
    return math.hypot(x, y, z)


def event_type_for(total, earthquake_threshold):
    # Anything under the earthquake threshold is a vibration, whatever the vibration floor
    if total >= earthquake_threshold:
        return EventType.EARTHQUAKE
    return EventType.VIBRATION


def classify(sample, snapshot, store):
    """
    Classify a sample against the snapshot's earthquake threshold and append
    the resulting event to the store. Store failures propagate unchanged.
    """
    sample.validate()

    try:
        total = total_acceleration(sample.x, sample.y, sample.z)
    except OverflowError:
        total = math.inf
    if not math.isfinite(total):
        raise InvalidInput('acceleration vector is too large to measure')
    event_type = event_type_for(total, snapshot.earthquake_threshold)

    event = SeismicEvent(
        device_id=str(sample.device_id).strip(),
        timestamp=sample.timestamp or utcnow(),
        acceleration_x=float(sample.x),
        acceleration_y=float(sample.y),
        acceleration_z=float(sample.z),
        total_acceleration=total,
        event_type=event_type,
        magnitude=sample.magnitude if sample.magnitude is not None else total,
        processed=False,
        notification_sent=False,
    )
    store.insert(event)

    current_app.logger.info(
        'New %s event #%s from %s: %.2f m/s² (magnitude %.2f)',
        event.event_type, event.id, event.device_id, total, event.magnitude
    )
    return event
