# File: seismic/services/aftershock.py
"""
Aftershock probability heuristic.

The score adds four independent factors and clamps the sum to 100:
magnitude tier of the main event, earthquakes in the previous 7 days,
recurrence interval of similar past earthquakes, and time elapsed since
the main event. It is a weighted estimate, not a seismological model.
"""
from datetime import timedelta

from flask import current_app

from seismic.clock import utcnow
from seismic.errors import AnalysisUnavailable, StoreUnavailable
from seismic.models import AftershockAnalysis, EventType

HIGH_MAGNITUDE = 20.0
MODERATE_MAGNITUDE = 15.0

RECENT_ACTIVITY_DAYS = 7
HISTORY_LIMIT = 20
HISTORY_TOLERANCE = 0.2


def magnitude_factor(total):
    if total > HIGH_MAGNITUDE:
        return 40, 'high magnitude main event'
    if total > MODERATE_MAGNITUDE:
        return 25, 'moderate magnitude main event'
    return 10, 'low magnitude main event'


def recent_activity_factor(count):
    if count > 2:
        return 30, f'high recent seismic activity: {count} earthquakes in {RECENT_ACTIVITY_DAYS} days'
    if count > 0:
        return 15, f'moderate recent seismic activity: {count} earthquakes in {RECENT_ACTIVITY_DAYS} days'
    return 0, None


def average_interval_days(timestamps):
    """Mean gap in days between consecutive timestamps, None for fewer than two."""
    if len(timestamps) < 2:
        return None
    ordered = sorted(timestamps, reverse=True)
    gaps = [
        abs((newer - older).total_seconds()) / 86400.0
        for newer, older in zip(ordered, ordered[1:])
    ]
    return sum(gaps) / len(gaps)


def history_factor(interval_days):
    if interval_days is None:
        return 0, None
    if interval_days < 30:
        return 20, 'historical pattern indicates high frequency'
    if interval_days < 90:
        return 10, 'historical pattern indicates moderate frequency'
    return 0, None


def recency_factor(hours_elapsed):
    if hours_elapsed < 24:
        return 15, 'event very recent (< 24 hours)'
    if hours_elapsed < 72:
        return 8, 'recent event (< 72 hours)'
    return 0, None


def score(event, recent_count, similar_timestamps, now):
    """Return (probability, factors) for an earthquake and its history."""
    hours_elapsed = (now - event.timestamp).total_seconds() / 3600.0
    contributions = [
        magnitude_factor(event.total_acceleration),
        recent_activity_factor(recent_count),
        history_factor(average_interval_days(similar_timestamps)),
        recency_factor(hours_elapsed),
    ]
    total = sum(points for points, _ in contributions)
    factors = [reason for points, reason in contributions if points > 0]
    return min(total, 100), factors


def _history(event, store):
    try:
        recent_count = store.count_where(
            event_type=EventType.EARTHQUAKE,
            since=event.timestamp - timedelta(days=RECENT_ACTIVITY_DAYS),
            until=event.timestamp,
            exclude_id=event.id,
        )
        similar = store.query(
            event_type=EventType.EARTHQUAKE,
            min_total=event.total_acceleration * (1 - HISTORY_TOLERANCE),
            max_total=event.total_acceleration * (1 + HISTORY_TOLERANCE),
            until=event.timestamp,
            exclude_id=event.id,
            limit=HISTORY_LIMIT,
        )
    except StoreUnavailable as e:
        raise AnalysisUnavailable(f'history unavailable for event {event.id}: {e.message}') from e
    return recent_count, [ev.timestamp for ev in similar]


def estimate(event, snapshot, store, now=None):
    """
    Compute and append an aftershock analysis for an earthquake event.
    Vibration events are not analysed and yield None.
    """
    if event.event_type != EventType.EARTHQUAKE:
        return None

    now = now or utcnow()
    recent_count, similar_timestamps = _history(event, store)
    probability, factors = score(event, recent_count, similar_timestamps, now)

    try:
        sequence = store.next_analysis_sequence(event.id)
    except StoreUnavailable as e:
        raise AnalysisUnavailable(f'could not number analysis for event {event.id}') from e

    analysis = AftershockAnalysis(
        main_event_id=event.id,
        sequence=sequence,
        probability_percentage=float(probability),
        factors=factors,
        computed_at=now,
        expires_at=event.timestamp + timedelta(hours=snapshot.aftershock_window_hours),
    )
    store.add_analysis(analysis)

    current_app.logger.info(
        'Aftershock analysis #%s for event %s: %s%% (%s)',
        analysis.sequence, event.id, probability, '; '.join(factors)
    )
    return analysis
