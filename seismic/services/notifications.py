# File: seismic/services/notifications.py
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

from flask import current_app

from seismic.clock import utcnow
from seismic.errors import DeliveryFailed, InvalidInput, NotFound, StoreUnavailable
from seismic.models import Channel, EventType, NotificationRecord, NotificationStatus
from seismic.services.transport import get_transport

SKIPPED = 'skipped'
DISPATCHED = 'dispatched'

NO_CONTACTS = 'no contacts'
COOLDOWN_ACTIVE = 'cooldown active'


@dataclass
class DispatchOutcome:
    status: str
    reason: Optional[str] = None
    total: int = 0
    sent: int = 0
    failed: int = 0
    record_ids: List[int] = field(default_factory=list)

    @classmethod
    def skipped(cls, reason):
        return cls(status=SKIPPED, reason=reason)

    @property
    def was_skipped(self):
        return self.status == SKIPPED

    def to_dict(self):
        return {
            'status': self.status,
            'reason': self.reason,
            'total': self.total,
            'sent': self.sent,
            'failed': self.failed,
            'record_ids': list(self.record_ids),
        }


def render_message(event, aftershock_probability, window_hours=72):
    """Alert text for one event. Aftershock lines only for earthquakes with probability > 0."""
    when = event.timestamp.strftime('%Y-%m-%d %H:%M:%S UTC')
    lines = ['🚨 SEISMIC ALERT 🚨', '']

    if event.event_type == EventType.EARTHQUAKE:
        lines += [
            '🌍 EARTHQUAKE DETECTED',
            f'📊 Magnitude: {event.magnitude:.2f}',
            f'⚡ Acceleration: {event.total_acceleration:.2f} m/s²',
            f'⏰ Time: {when}',
            '',
        ]
        if aftershock_probability:
            lines += [
                f'⚠️ Aftershock probability: {aftershock_probability:.1f}%',
                f'🕐 Stay alert for the next {window_hours} hours',
                '',
            ]
        lines += [
            '🛡️ RECOMMENDATIONS:',
            '• Stay in a safe place',
            '• Check your emergency kit',
            '• Watch out for aftershocks',
            '• Follow safety protocols',
            '',
        ]
    else:
        lines += [
            '📳 VIBRATION DETECTED',
            f'📊 Intensity: {event.total_acceleration:.2f} m/s²',
            f'⏰ Time: {when}',
            '',
            'ℹ️ Vibration below the earthquake threshold',
            '👁️ Continuous monitoring active',
            '',
        ]

    lines += ['🔗 IoT Seismic Detection System', '📱 Open the dashboard for details']
    return '\n'.join(lines)


TEST_MESSAGE = (
    '🔧 SYSTEM TEST 🔧\n\n'
    '✅ The seismic alert system is working.\n\n'
    '📱 This is a test message to verify connectivity.\n\n'
    '🔗 IoT Seismic Detection System'
)


def _deliver(app, transport, recipient, message):
    with app.app_context():
        try:
            result = transport.send(recipient, message)
        except Exception as e:
            # One recipient's transport error never reaches its siblings
            return DeliveryFailed(recipient, str(e))
    if not result.success:
        return DeliveryFailed(recipient, result.error or 'delivery failed')
    return None


class NotificationDispatcher:
    """
    Decides whether an alert fires for an event and fans it out to every
    emergency contact, one NotificationRecord per recipient.
    """

    def __init__(self, store, transport, max_workers=4):
        self.store = store
        self.transport = transport
        self.max_workers = max(1, max_workers)

    def _deliver_all(self, records):
        """One entry per record: None when delivered, else the DeliveryFailed."""
        # Worker threads only see plain strings, the session stays on this thread
        app = current_app._get_current_object()
        jobs = [(r.recipient, r.message) for r in records]
        workers = min(self.max_workers, len(jobs))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(lambda job: _deliver(app, self.transport, *job), jobs))

    def _record_outcomes(self, records, record_ids, failures, now):
        """Move every record out of pending. Returns (sent, failed)."""
        outcomes = []
        for record_id, failure in zip(record_ids, failures):
            if failure is None:
                outcomes.append((record_id, NotificationStatus.SENT, now, None))
            else:
                outcomes.append((record_id, NotificationStatus.FAILED, None, failure.message or 'unknown error'))
                current_app.logger.warning('Delivery to %s failed: %s', failure.recipient, failure.message)

        try:
            for record, (_, status, _, error) in zip(records, outcomes):
                if status == NotificationStatus.SENT:
                    record.mark_sent(now)
                else:
                    record.mark_failed(error)
            self.store.save()
        except StoreUnavailable as e:
            # Messages already went out, the rows must not stay pending
            current_app.logger.error('Saving delivery outcomes failed, settling %d records: %s', len(records), e)
            self.store.settle_notifications(outcomes)

        sent = sum(1 for failure in failures if failure is None)
        return sent, len(failures) - sent

    def _records_for(self, event, recipients, message):
        return [
            NotificationRecord(
                event_id=event.id,
                channel=Channel.WHATSAPP,
                recipient=recipient,
                message=message,
            )
            for recipient in recipients
        ]

    def maybe_notify(self, event, aftershock_probability, snapshot, now=None):
        contacts = snapshot.emergency_contacts
        if not contacts:
            current_app.logger.warning('No emergency contacts configured, event %s not notified', event.id)
            return DispatchOutcome.skipped(NO_CONTACTS)

        now = now or utcnow()
        cutoff = now - timedelta(minutes=snapshot.notification_cooldown_minutes)

        if self.store.has_recent_sent(event.event_type, cutoff):
            current_app.logger.info('Cooldown active for %s notifications', event.event_type)
            return DispatchOutcome.skipped(COOLDOWN_ACTIVE)

        claimed, previous = self.store.claim_cooldown(event.event_type, now, cutoff)
        if not claimed:
            current_app.logger.info('Cooldown claimed concurrently for %s notifications', event.event_type)
            return DispatchOutcome.skipped(COOLDOWN_ACTIVE)

        message = render_message(event, aftershock_probability, snapshot.aftershock_window_hours)
        records = self._records_for(event, [c.phone for c in contacts], message)
        try:
            record_ids = self.store.add_notifications(records)
        except Exception:
            self.store.release_cooldown(event.event_type, now, previous)
            raise

        failures = self._deliver_all(records)
        delivered = any(failure is None for failure in failures)
        try:
            sent, failed = self._record_outcomes(records, record_ids, failures, now)
        finally:
            if not delivered:
                # Nothing reached anyone, the next event of this type may try again
                self.store.release_cooldown(event.event_type, now, previous)

        self.store.mark_notification_sent(event)
        current_app.logger.info(
            'Notifications for event %s: %d sent, %d failed of %d', event.id, sent, failed, len(records)
        )
        return DispatchOutcome(
            status=DISPATCHED, total=len(records), sent=sent, failed=failed, record_ids=record_ids
        )

    def send_manual(self, event_id, recipient, message, now=None):
        """One-off delivery for an existing event. Recorded, cooldown not applied."""
        recipient = (recipient or '').strip()
        if not recipient or not (message or '').strip():
            raise InvalidInput('recipient and message are required')
        event = self.store.get_by_id(event_id)
        if event is None:
            raise NotFound(f'no event with id {event_id}')

        records = self._records_for(event, [recipient], message)
        record_ids = self.store.add_notifications(records)
        self._record_outcomes(records, record_ids, self._deliver_all(records), now or utcnow())
        return records[0]

    def send_test(self, recipient):
        recipient = (recipient or '').strip()
        if not recipient:
            raise InvalidInput('phone_number is required')
        try:
            return self.transport.send(recipient, TEST_MESSAGE)
        except Exception as e:
            raise DeliveryFailed(recipient, str(e)) from e


def get_dispatcher(store):
    return NotificationDispatcher(
        store,
        get_transport(),
        max_workers=current_app.config.get('DISPATCH_MAX_WORKERS', 4),
    )
