"""Session aggregation: timeline, location, activity and finalisation."""

import math

import pytest

from skate_system.models import ConditionedSample, EventKind, LocationFix, MotionEvent
from skate_system.processing import TrackerConfig
from skate_system.session import SessionAggregator, classify_activity, haversine_distance

EARTH_RADIUS = 6371e3


def _north_of(fix, meters, t, speed=None):
    return LocationFix(lat=fix.lat + math.degrees(meters / EARTH_RADIUS), lon=fix.lon, t=t,
                       speed_meters_per_sec=speed)


@pytest.fixture
def aggregator():
    return SessionAggregator(TrackerConfig())


@pytest.fixture
def origin():
    return LocationFix(lat=52.0, lon=4.0, t=0.0)


def test_haversine_one_millidegree_of_latitude():
    a = LocationFix(0.0, 0.0, 0.0)
    b = LocationFix(0.001, 0.0, 1.0)
    assert haversine_distance(a, b) == pytest.approx(111.19, abs=0.05)


def test_labelled_event_updates_summary(aggregator):
    aggregator.add_event(MotionEvent(EventKind.TURN, 1.0, 1.0, label='FS Turn', is_group_start=True))
    aggregator.add_event(MotionEvent(EventKind.TURN, 2.0, 1.0))

    session = aggregator.session
    assert session.trick_summary == {'FS Turn': 1}
    assert session.total_tricks == 1
    assert sum(session.trick_summary.values()) == session.total_tricks


def test_timeline_stays_ordered(aggregator):
    aggregator.add_event(MotionEvent(EventKind.IMPACT, 2.0, 3.0))
    aggregator.add_event(MotionEvent(EventKind.TURN, 1.5, 1.0))

    times = [e.t for e in aggregator.session.events]
    assert times == sorted(times)


def test_speed_from_distance_when_not_reported(aggregator, origin):
    aggregator.add_fix(origin)
    assert aggregator.add_fix(_north_of(origin, 5.0, t=2.0))

    assert aggregator.current_speed == pytest.approx(2.5, rel=1e-3)
    assert aggregator.session.total_distance == pytest.approx(5.0, rel=1e-3)


def test_reported_speed_is_preferred(aggregator, origin):
    aggregator.add_fix(origin)
    aggregator.add_fix(_north_of(origin, 5.0, t=1.0, speed=4.2))
    assert aggregator.current_speed == pytest.approx(4.2)


def test_gps_glitch_is_rejected(aggregator, origin):
    aggregator.add_fix(origin)
    assert not aggregator.add_fix(_north_of(origin, 1000.0, t=1.0))
    assert aggregator.add_fix(_north_of(origin, 6.0, t=2.0))

    session = aggregator.session
    assert len(session.path) == 2
    assert aggregator.rejected_fixes == 1
    assert session.max_speed < 30


def test_jump_inside_glitch_window_is_rejected(aggregator, origin):
    aggregator.add_fix(origin)
    # 25 m in 4 s is plausible speed but an implausible jump
    assert not aggregator.add_fix(_north_of(origin, 25.0, t=4.0, speed=6.0))


def test_standing_still_adds_no_distance(aggregator, origin):
    aggregator.add_fix(origin)
    assert aggregator.add_fix(_north_of(origin, 0.1, t=1.0))

    assert aggregator.session.total_distance == 0.0
    assert len(aggregator.session.path) == 2


def test_late_fix_is_merged_in_order(aggregator, origin):
    aggregator.add_fix(origin)
    aggregator.add_fix(_north_of(origin, 4.0, t=2.0))
    distance = aggregator.session.total_distance

    assert aggregator.add_fix(_north_of(origin, 2.0, t=1.0))
    assert [p.t for p in aggregator.session.path] == [0.0, 1.0, 2.0]
    assert aggregator.session.total_distance == distance


def test_late_glitch_is_rejected(aggregator, origin):
    aggregator.add_fix(origin)
    aggregator.add_fix(_north_of(origin, 4.0, t=2.0))

    assert not aggregator.add_fix(LocationFix(lat=53.0, lon=4.0, t=1.0))
    assert [p.t for p in aggregator.session.path] == [0.0, 2.0]
    assert aggregator.rejected_fixes == 1


def test_haversine_antipodal_fixes():
    a = LocationFix(lat=0.0, lon=0.0, t=0.0)
    b = LocationFix(lat=0.0, lon=180.0, t=1.0)
    assert haversine_distance(a, b) == pytest.approx(math.pi * EARTH_RADIUS)


def test_avg_and_max_speed(aggregator, origin):
    aggregator.add_fix(origin)
    aggregator.add_fix(_north_of(origin, 2.0, t=1.0, speed=2.0))
    aggregator.add_fix(_north_of(origin, 6.0, t=2.0, speed=4.0))

    assert aggregator.session.max_speed == pytest.approx(4.0)
    assert aggregator.session.avg_speed == pytest.approx(3.0)


@pytest.mark.parametrize("speed, std_dev, rolling", [
    (2.0, 0.0, True),
    (0.1, 0.05, False),
    (1.0, 1.0, False),
    (1.0, 0.2, True),
    (1.0, 0.05, False),
])
def test_classify_activity(speed, std_dev, rolling):
    assert classify_activity(speed, std_dev) is rolling


def test_activity_time_accumulates(aggregator):
    for i in range(100):
        aggregator.update_activity(ConditionedSample(1.0, 0.0, 0.0, 0.0, 0.01, i / 100))

    session = aggregator.session
    assert session.time_off_board == pytest.approx(1.0)
    assert session.time_on_board == 0.0


def test_finalize_labels_and_recounts(aggregator):
    history = [MotionEvent(EventKind.AIRTIME, 0.0, 2.0, rotation=50.0, label='Ollie')]
    aggregator.add_event(MotionEvent(EventKind.AIRTIME, 1.0, 2.05, rotation=55.0, variant='ollie',
                                     duration=0.2))
    aggregator.add_event(MotionEvent(EventKind.IMPACT, 2.0, 1.3))

    session = aggregator.finalize(12.7, history)

    assert session.events[0].label == 'Ollie'
    assert session.events[1].label is None
    assert session.trick_summary == {'Ollie': 1}
    assert session.total_tricks == 1
    assert session.duration == 12
    assert session.best_trick == session.events[0]


def test_longest_grind_becomes_best_trick(aggregator):
    aggregator.add_event(MotionEvent(EventKind.AIRTIME, 1.0, 1.5, variant='ollie', duration=0.2))
    aggregator.add_event(MotionEvent(EventKind.GRIND, 3.0, 1.1, rotation=260.0, variant='fs_grind',
                                     duration=1.6))

    session = aggregator.finalize(5.0)
    assert session.longest_grind == pytest.approx(1.6)
    assert session.best_trick.kind == EventKind.GRIND


def test_finalize_is_idempotent(aggregator):
    aggregator.add_event(MotionEvent(EventKind.TURN, 1.0, 1.0, turn_angle=90.0))
    first = aggregator.finalize(3.0)
    second = aggregator.finalize(10.0)

    assert first is second
    assert second.duration == 3
