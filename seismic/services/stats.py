# File: seismic/services/stats.py
"""Read-only summaries over stored events and notifications."""
from collections import defaultdict
from datetime import timedelta

from seismic.clock import isoformat, utcnow
from seismic.models import EventType

LOW = 'low'
MEDIUM = 'medium'
HIGH = 'high'

RECOMMENDATIONS = {
    HIGH: 'Elevated risk of seismic activity. Stay alert and review emergency plans.',
    MEDIUM: 'Moderate seismic activity detected. Continuous monitoring recommended.',
    LOW: 'Normal seismic activity. Continue routine monitoring.',
}


def _intensity_summary(values):
    return {
        'count': len(values),
        'avg_acceleration': sum(values) / len(values) if values else 0.0,
        'max_acceleration': max(values) if values else 0.0,
        'min_acceleration': min(values) if values else 0.0,
    }


def general_stats(store, days=30, now=None):
    """Per type and per calendar day intensity summaries over the trailing window."""
    now = now or utcnow()
    events = store.query(since=now - timedelta(days=days))

    per_type = defaultdict(list)
    per_day = defaultdict(list)
    for event in events:
        per_type[event.event_type].append(event.total_acceleration)
        per_day[(event.timestamp.date().isoformat(), event.event_type)].append(event.total_acceleration)

    summary = []
    for event_type in EventType.ALL:
        values = per_type.get(event_type)
        if not values:
            continue
        item = _intensity_summary(values)
        item['total_events'] = item.pop('count')
        summary.append(dict(event_type=event_type, **item))

    daily_stats = [
        dict(date=date, event_type=event_type, **_intensity_summary(values))
        for (date, event_type), values in sorted(per_day.items(), reverse=True)
    ]

    return {
        'period_days': days,
        'summary': summary,
        'daily_stats': daily_stats,
        'generated_at': isoformat(now),
    }


def activity_trend(store, hours=24, now=None):
    """Hourly event counts and average intensity per type, newest hour first."""
    now = now or utcnow()
    events = store.query(since=now - timedelta(hours=hours))

    buckets = defaultdict(list)
    for event in events:
        hour = event.timestamp.strftime('%Y-%m-%d %H:00:00')
        buckets[(hour, event.event_type)].append(event.total_acceleration)

    trends = [
        {
            'hour_group': hour,
            'event_type': event_type,
            'event_count': len(values),
            'avg_intensity': sum(values) / len(values),
        }
        for (hour, event_type), values in sorted(buckets.items(), reverse=True)
    ]
    return {'period_hours': hours, 'trends': trends, 'generated_at': isoformat(now)}


def simple_prediction(store, now=None):
    """
    Coarse risk level over the last 7 days.

    A recent earthquake (< 72 h) adds 30 and lifts the risk to medium,
    more than 10 vibrations adds 20 and lifts it to at least medium,
    more than 2 earthquakes adds 25 and forces high.
    """
    now = now or utcnow()
    events = store.query(since=now - timedelta(days=7))
    earthquakes = [e for e in events if e.event_type == EventType.EARTHQUAKE]
    vibrations = [e for e in events if e.event_type == EventType.VIBRATION]

    risk_level = LOW
    probability = 0
    factors = []

    if earthquakes:
        # Events come newest first
        hours_since = (now - earthquakes[0].timestamp).total_seconds() / 3600.0
        if hours_since < 72:
            probability += 30
            factors.append(f'recent earthquake {hours_since:.1f} hours ago')
            risk_level = MEDIUM

    if len(vibrations) > 10:
        probability += 20
        factors.append(f'high vibration activity: {len(vibrations)} events in 7 days')
        if risk_level == LOW:
            risk_level = MEDIUM

    if len(earthquakes) > 2:
        probability += 25
        factors.append(f'multiple recent earthquakes: {len(earthquakes)} events')
        risk_level = HIGH

    probability = min(probability, 100)
    return {
        'prediction': {
            'risk_level': risk_level,
            'probability_percentage': probability,
            'factors': factors,
            'confidence': MEDIUM if probability > 50 else LOW,
            'recommendation': RECOMMENDATIONS[risk_level],
        },
        'analysis_period': '7 days',
        'generated_at': isoformat(now),
    }


def trend_direction(events):
    """Compare mean intensity of the older half of the window against the newer half."""
    if len(events) < 10:
        return 'insufficient_data'
    ordered = sorted(events, key=lambda e: e.timestamp)
    midpoint = len(ordered) // 2
    older, newer = ordered[:midpoint], ordered[midpoint:]
    older_avg = sum(e.total_acceleration for e in older) / len(older)
    newer_avg = sum(e.total_acceleration for e in newer) / len(newer)
    difference = newer_avg - older_avg
    if abs(difference) < 1:
        return 'stable'
    return 'increasing' if difference > 0 else 'decreasing'


def assess_risk_level(earthquakes, vibrations, days):
    earthquake_rate = len(earthquakes) / days
    vibration_rate = len(vibrations) / days
    strong = [e for e in earthquakes if e.total_acceleration > 20]

    if earthquake_rate > 0.3 or strong:
        return HIGH
    if earthquake_rate > 0.1 or vibration_rate > 2:
        return MEDIUM
    return LOW


def analyze_trends(store, days=30, now=None):
    now = now or utcnow()
    events = store.query(since=now - timedelta(days=days))
    earthquakes = [e for e in events if e.event_type == EventType.EARTHQUAKE]
    vibrations = [e for e in events if e.event_type == EventType.VIBRATION]

    return {
        'period_days': days,
        'total_events': len(events),
        'earthquakes_count': len(earthquakes),
        'vibrations_count': len(vibrations),
        'earthquake_frequency': len(earthquakes) / days,
        'vibration_frequency': len(vibrations) / days,
        'average_earthquake_intensity': (
            sum(e.total_acceleration for e in earthquakes) / len(earthquakes) if earthquakes else 0.0
        ),
        'trend_direction': trend_direction(events),
        'risk_assessment': assess_risk_level(earthquakes, vibrations, days),
        'generated_at': isoformat(now),
    }


def notification_stats(store, days=30, now=None):
    now = now or utcnow()
    records = store.query_notifications(since=now - timedelta(days=days))

    summary = defaultdict(int)
    daily = defaultdict(int)
    for record in records:
        summary[(record.channel, record.status)] += 1
        daily[(record.created_at.date().isoformat(), record.channel, record.status)] += 1

    return {
        'period_days': days,
        'summary': [
            {'channel': channel, 'status': status, 'total': total}
            for (channel, status), total in sorted(summary.items())
        ],
        'daily_stats': [
            {'date': date, 'channel': channel, 'status': status, 'count': count}
            for (date, channel, status), count in sorted(daily.items(), reverse=True)
        ],
        'generated_at': isoformat(now),
    }
