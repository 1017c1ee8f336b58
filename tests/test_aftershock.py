# File: tests/test_aftershock.py
from datetime import timedelta

import pytest

from seismic.errors import AnalysisUnavailable, StoreUnavailable
from seismic.models import EventType
from seismic.services import aftershock
from seismic.services.config_service import ConfigSnapshot

from conftest import NOW


def test_strong_isolated_recent_event_scores_55(app, store, make_event):
    event = make_event(25.0, timestamp=NOW - timedelta(hours=1))

    analysis = aftershock.estimate(event, ConfigSnapshot(), store, now=NOW)

    assert analysis.probability_percentage == 55
    assert len(analysis.factors) == 2
    assert analysis.factors[0].startswith('high magnitude')
    assert analysis.factors[1].startswith('event very recent')


def test_first_low_tier_event_only_counts_magnitude(app, store, make_event):
    event = make_event(10.0, timestamp=NOW - timedelta(hours=100), event_type=EventType.EARTHQUAKE)

    analysis = aftershock.estimate(event, ConfigSnapshot(), store, now=NOW)

    assert analysis.probability_percentage == 10
    assert analysis.factors == ['low magnitude main event']


def test_low_tier_with_recency(app, store, make_event):
    event = make_event(10.0, timestamp=NOW - timedelta(hours=30), event_type=EventType.EARTHQUAKE)

    analysis = aftershock.estimate(event, ConfigSnapshot(), store, now=NOW)

    assert analysis.probability_percentage == 18
    assert analysis.factors == ['low magnitude main event', 'recent event (< 72 hours)']


def test_moderate_tier():
    assert aftershock.magnitude_factor(20.0)[0] == 25
    assert aftershock.magnitude_factor(15.0)[0] == 10
    assert aftershock.magnitude_factor(20.01)[0] == 40


def test_recent_activity_counts_only_prior_earthquakes_within_seven_days(app, store, make_event):
    main_ts = NOW - timedelta(hours=100)
    for days_before in (1, 2, 6):
        make_event(60.0, timestamp=main_ts - timedelta(days=days_before))
    make_event(60.0, timestamp=main_ts - timedelta(days=8))
    make_event(3.0, timestamp=main_ts - timedelta(days=1))
    make_event(60.0, timestamp=main_ts + timedelta(hours=1))
    event = make_event(25.0, timestamp=main_ts)

    analysis = aftershock.estimate(event, ConfigSnapshot(), store, now=NOW)

    # 40 high magnitude + 30 for three prior earthquakes, 60 m/s² is outside ±20%
    assert analysis.probability_percentage == 70
    assert analysis.factors[1].startswith('high recent seismic activity: 3')


def test_one_or_two_recent_earthquakes_are_moderate(app, store, make_event):
    main_ts = NOW - timedelta(hours=100)
    make_event(60.0, timestamp=main_ts - timedelta(days=3))
    event = make_event(25.0, timestamp=main_ts)

    analysis = aftershock.estimate(event, ConfigSnapshot(), store, now=NOW)

    assert analysis.probability_percentage == 55
    assert analysis.factors[1].startswith('moderate recent seismic activity: 1')


@pytest.mark.parametrize('gap_days,points', [(20, 20), (60, 10), (100, 0)])
def test_history_interval_of_similar_events(app, store, make_event, gap_days, points):
    main_ts = NOW - timedelta(hours=100)
    for i in range(1, 4):
        make_event(18.0 + i * 0.5, timestamp=main_ts - timedelta(days=10 + gap_days * i))
    # dissimilar intensity, ignored by the history factor
    make_event(40.0, timestamp=main_ts - timedelta(days=12))
    event = make_event(18.0, timestamp=main_ts)

    analysis = aftershock.estimate(event, ConfigSnapshot(), store, now=NOW)

    assert analysis.probability_percentage == 25 + points


def test_single_similar_event_gives_no_history_points(app, store, make_event):
    main_ts = NOW - timedelta(hours=100)
    make_event(18.0, timestamp=main_ts - timedelta(days=20))
    event = make_event(18.0, timestamp=main_ts)

    analysis = aftershock.estimate(event, ConfigSnapshot(), store, now=NOW)

    assert analysis.probability_percentage == 25


def test_average_interval_days():
    stamps = [NOW, NOW - timedelta(days=10), NOW - timedelta(days=30)]
    assert aftershock.average_interval_days(stamps) == pytest.approx(15.0)
    assert aftershock.average_interval_days(stamps[:1]) is None
    assert aftershock.average_interval_days([]) is None


def test_probability_is_clamped_to_100(app, store, make_event):
    main_ts = NOW - timedelta(hours=1)
    for hours_before in range(1, 6):
        make_event(29.0, timestamp=main_ts - timedelta(hours=hours_before * 12))
    event = make_event(30.0, timestamp=main_ts)

    analysis = aftershock.estimate(event, ConfigSnapshot(), store, now=NOW)

    # 40 + 30 + 20 + 15
    assert analysis.probability_percentage == 100
    assert len(analysis.factors) == 4


def test_expiry_follows_the_aftershock_window(app, store, make_event):
    event = make_event(25.0, timestamp=NOW)

    default = aftershock.estimate(event, ConfigSnapshot(), store, now=NOW)
    short = aftershock.estimate(event, ConfigSnapshot(aftershock_window_hours=48), store, now=NOW)

    assert default.expires_at == NOW + timedelta(hours=72)
    assert short.expires_at == NOW + timedelta(hours=48)
    assert default.is_active(NOW + timedelta(hours=71))
    assert not default.is_active(NOW + timedelta(hours=73))


def test_vibration_is_not_analysed(app, store, make_event):
    event = make_event(8.0, timestamp=NOW)

    assert aftershock.estimate(event, ConfigSnapshot(), store, now=NOW) is None
    assert store.analyses_for(event.id) == []


def test_reanalysis_appends_identical_result(app, store, make_event):
    event = make_event(22.0, timestamp=NOW - timedelta(hours=2))

    first = aftershock.estimate(event, ConfigSnapshot(), store, now=NOW)
    second = aftershock.estimate(event, ConfigSnapshot(), store, now=NOW)

    assert (first.sequence, second.sequence) == (1, 2)
    assert first.probability_percentage == second.probability_percentage
    assert first.factors == second.factors
    assert len(store.analyses_for(event.id)) == 2
    assert store.current_analysis(event.id).id == second.id


def test_history_failure_is_analysis_unavailable_without_write(app, store, make_event, monkeypatch):
    event = make_event(25.0, timestamp=NOW)

    def broken_count(**filters):
        raise StoreUnavailable('count failed')

    monkeypatch.setattr(store, 'count_where', broken_count)
    with pytest.raises(AnalysisUnavailable):
        aftershock.estimate(event, ConfigSnapshot(), store, now=NOW)

    monkeypatch.undo()
    assert store.analyses_for(event.id) == []
