# File: seismic/store.py
import functools

from flask import current_app
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from seismic import db
from seismic.errors import StoreUnavailable
from seismic.models import (
    AftershockAnalysis, NotificationCooldown, NotificationRecord, NotificationStatus,
    SeismicEvent, SystemConfig
)


def _guarded(fn):
    """Roll back and surface any database failure as StoreUnavailable."""
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error('Store operation %s failed: %s', fn.__name__, e)
            raise StoreUnavailable(f'{fn.__name__} failed: {e}') from e
    return wrapper


class EventStore:
    """
    Append-only log of classified events and everything derived from them.
    Every write commits before returning.
    """

    def __init__(self, session=None):
        self.session = session or db.session

    # --- events ---

    @_guarded
    def insert(self, event):
        self.session.add(event)
        self.session.commit()
        return event.id

    @_guarded
    def get_by_id(self, event_id):
        return self.session.get(SeismicEvent, event_id)

    def _event_filters(self, stmt, event_type=None, device_id=None, since=None, until=None,
                       exclude_id=None, min_total=None, max_total=None, processed=None,
                       notification_sent=None):
        if event_type:
            stmt = stmt.where(SeismicEvent.event_type == event_type)
        if device_id:
            stmt = stmt.where(SeismicEvent.device_id == device_id)
        if since is not None:
            stmt = stmt.where(SeismicEvent.timestamp >= since)
        if until is not None:
            # Upper bound is exclusive
            stmt = stmt.where(SeismicEvent.timestamp < until)
        if exclude_id is not None:
            stmt = stmt.where(SeismicEvent.id != exclude_id)
        if min_total is not None:
            stmt = stmt.where(SeismicEvent.total_acceleration >= min_total)
        if max_total is not None:
            stmt = stmt.where(SeismicEvent.total_acceleration <= max_total)
        if processed is not None:
            stmt = stmt.where(SeismicEvent.processed == processed)
        if notification_sent is not None:
            stmt = stmt.where(SeismicEvent.notification_sent == notification_sent)
        return stmt

    @_guarded
    def query(self, limit=None, offset=0, oldest_first=False, **filters):
        stmt = self._event_filters(select(SeismicEvent), **filters)
        if oldest_first:
            stmt = stmt.order_by(SeismicEvent.timestamp.asc(), SeismicEvent.id.asc())
        else:
            stmt = stmt.order_by(SeismicEvent.timestamp.desc(), SeismicEvent.id.desc())
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.scalars(stmt))

    @_guarded
    def count_where(self, **filters):
        stmt = self._event_filters(select(func.count(SeismicEvent.id)), **filters)
        return self.session.scalar(stmt)

    @_guarded
    def mark_processed(self, event):
        if not event.processed:
            event.processed = True
            self.session.commit()

    @_guarded
    def mark_notification_sent(self, event):
        if not event.notification_sent:
            event.notification_sent = True
            self.session.commit()

    # --- aftershock analyses ---

    @_guarded
    def next_analysis_sequence(self, event_id):
        current = self.session.scalar(
            select(func.max(AftershockAnalysis.sequence))
            .where(AftershockAnalysis.main_event_id == event_id)
        )
        return (current or 0) + 1

    @_guarded
    def add_analysis(self, analysis):
        self.session.add(analysis)
        self.session.commit()
        return analysis.id

    @_guarded
    def current_analysis(self, event_id):
        stmt = (
            select(AftershockAnalysis)
            .where(AftershockAnalysis.main_event_id == event_id)
            .order_by(AftershockAnalysis.sequence.desc())
            .limit(1)
        )
        return self.session.scalars(stmt).first()

    @_guarded
    def analyses_for(self, event_id):
        stmt = (
            select(AftershockAnalysis)
            .where(AftershockAnalysis.main_event_id == event_id)
            .order_by(AftershockAnalysis.sequence.asc())
        )
        return list(self.session.scalars(stmt))

    # --- notifications ---

    @_guarded
    def add_notifications(self, records):
        self.session.add_all(records)
        self.session.commit()
        return [r.id for r in records]

    @_guarded
    def save(self):
        self.session.commit()

    @_guarded
    def settle_notifications(self, outcomes):
        """
        Write final (id, status, sent_at, error) outcomes for records that are
        still pending, after a failed save. Records already settled are left alone.
        """
        # Discard whatever the failed save left in the session
        self.session.rollback()
        for record_id, status, sent_at, error in outcomes:
            self.session.execute(
                update(NotificationRecord)
                .where(NotificationRecord.id == record_id)
                .where(NotificationRecord.status == NotificationStatus.PENDING)
                .values(status=status, sent_at=sent_at, error=error)
                .execution_options(synchronize_session=False)
            )
        self.session.commit()

    @_guarded
    def query_notifications(self, status=None, channel=None, event_id=None, since=None,
                            limit=None, offset=0):
        stmt = select(NotificationRecord)
        if status:
            stmt = stmt.where(NotificationRecord.status == status)
        if channel:
            stmt = stmt.where(NotificationRecord.channel == channel)
        if event_id is not None:
            stmt = stmt.where(NotificationRecord.event_id == event_id)
        if since is not None:
            stmt = stmt.where(NotificationRecord.created_at >= since)
        stmt = stmt.order_by(NotificationRecord.created_at.desc(), NotificationRecord.id.desc())
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.scalars(stmt))

    @_guarded
    def has_recent_sent(self, event_type, since):
        """True when a sent notification for an event of this type exists at or after `since`."""
        stmt = (
            select(NotificationRecord.id)
            .join(SeismicEvent, NotificationRecord.event_id == SeismicEvent.id)
            .where(SeismicEvent.event_type == event_type)
            .where(NotificationRecord.status == NotificationStatus.SENT)
            .where(NotificationRecord.sent_at >= since)
            .limit(1)
        )
        return self.session.scalar(stmt) is not None

    # --- cooldown check-and-mark ---

    def _ensure_cooldown_row(self, event_type):
        if self.session.get(NotificationCooldown, event_type) is not None:
            return
        try:
            self.session.add(NotificationCooldown(event_type=event_type, last_sent_at=None))
            self.session.commit()
        except IntegrityError:
            # Created concurrently by another dispatcher
            self.session.rollback()

    @_guarded
    def claim_cooldown(self, event_type, now, cutoff):
        """
        Atomically mark `event_type` as sent at `now` unless it was already
        marked after `cutoff`. Returns (claimed, previous_last_sent_at).
        """
        self._ensure_cooldown_row(event_type)
        previous = self.session.scalar(
            select(NotificationCooldown.last_sent_at)
            .where(NotificationCooldown.event_type == event_type)
        )
        result = self.session.execute(
            update(NotificationCooldown)
            .where(NotificationCooldown.event_type == event_type)
            .where(or_(NotificationCooldown.last_sent_at.is_(None),
                       NotificationCooldown.last_sent_at < cutoff))
            .values(last_sent_at=now)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return result.rowcount == 1, previous

    @_guarded
    def release_cooldown(self, event_type, claimed_at, previous):
        """Undo a claim, only if nobody has claimed the type since."""
        self.session.execute(
            update(NotificationCooldown)
            .where(NotificationCooldown.event_type == event_type)
            .where(NotificationCooldown.last_sent_at == claimed_at)
            .values(last_sent_at=previous)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()

    # --- system configuration ---

    @_guarded
    def config_values(self):
        rows = self.session.scalars(select(SystemConfig))
        return {row.config_key: row.config_value for row in rows}

    @_guarded
    def set_config_values(self, values, descriptions=None):
        descriptions = descriptions or {}
        for key, value in values.items():
            row = self.session.scalars(
                select(SystemConfig).where(SystemConfig.config_key == key)
            ).first()
            if row is None:
                row = SystemConfig(config_key=key, description=descriptions.get(key))
                self.session.add(row)
            row.config_value = value
        self.session.commit()
