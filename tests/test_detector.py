"""Event detection: turns and impacts, airtime, grinds and pumps."""

import pytest

from skate_system.models import EventKind, GravityVector, Stance
from skate_system.processing import EventDetector, SignalConditioner, TrackerConfig


def _run_turns(samples, config=None):
    config = config if config else TrackerConfig.for_turns()
    conditioner = SignalConditioner(GravityVector(0.0, 9.81, 0.0), config)
    detector = EventDetector(config)
    events = []
    for sample in samples:
        events.extend(detector.update(conditioner.process(sample), sample.t))
    return events, detector


def _run_board(conditioned, speed=0.0, stance=Stance.REGULAR, rolling=True):
    detector = EventDetector(TrackerConfig.for_board(), stance)
    events = []
    for cs in conditioned:
        events.extend(detector.update(cs, cs.t, speed, rolling))
    return events, detector


# ----------------------------------------------------------------------
# Turns
# ----------------------------------------------------------------------

def test_one_second_turn_commits_one_event(make_samples):
    samples = make_samples(1.0, gamma=90.0) + make_samples(1.0, start=1.0)
    events, _ = _run_turns(samples)

    turns = [e for e in events if e.kind == EventKind.TURN]
    assert len(turns) == 1
    assert turns[0].turn_angle == pytest.approx(90.0, abs=2.0)


def test_turn_commits_after_stillness_window(make_samples):
    samples = make_samples(1.0, gamma=90.0) + make_samples(1.0, start=1.0)
    events, _ = _run_turns(samples)

    # last moving sample at 0.99 s, committed 0.4 s later
    assert events[0].t == pytest.approx(1.39, abs=0.011)


def test_negative_turn_angle_is_signed(make_samples):
    samples = make_samples(1.0, gamma=-45.0) + make_samples(1.0, start=1.0)
    events, _ = _run_turns(samples)
    assert events[0].turn_angle == pytest.approx(-45.0, abs=2.0)


def test_small_rotation_is_not_a_turn(make_samples):
    samples = make_samples(0.1, gamma=90.0) + make_samples(1.0, start=0.1)
    events, detector = _run_turns(samples)

    assert events == []
    assert detector.turns.last_committed_yaw == pytest.approx(8.1, abs=0.5)


def test_turn_records_peak_rotation(make_samples):
    samples = make_samples(0.5, gamma=60.0) + make_samples(0.5, start=0.5, gamma=120.0) + \
        make_samples(1.0, start=1.0)
    events, _ = _run_turns(samples)
    assert events[0].rotation == pytest.approx(120.0)


def test_unsettled_turn_is_discarded(make_samples):
    events, detector = _run_turns(make_samples(1.0, gamma=90.0))
    assert events == []

    detector.discard_pending()
    assert not detector.turns.moving
    assert detector.turns.discarded_count == 1


def test_impact_fires_once_per_spike(make_samples):
    samples = make_samples(0.5) + make_samples(0.05, start=0.5, g_force=3.0) + make_samples(0.5, start=0.55)
    events, _ = _run_turns(samples)

    impacts = [e for e in events if e.kind == EventKind.IMPACT]
    assert len(impacts) == 1
    assert impacts[0].intensity == pytest.approx(3.0)
    assert impacts[0].t == pytest.approx(0.5)


def test_unknown_taxonomy_is_rejected():
    with pytest.raises(ValueError):
        EventDetector(TrackerConfig(taxonomy='ballet'))


# ----------------------------------------------------------------------
# Airtime
# ----------------------------------------------------------------------

def _airtime_sequence(hold_seconds, landing_g):
    return [1.0] * 10 + [0.3] * int(round(hold_seconds * 100)) + [landing_g] + [1.0] * 10


def test_short_airtime_is_ollie(make_conditioned):
    events, _ = _run_board(make_conditioned(_airtime_sequence(0.15, 1.5)))

    assert [(e.kind, e.variant) for e in events] == [(EventKind.AIRTIME, 'ollie')]
    assert events[0].duration == pytest.approx(0.15)


def test_long_airtime_is_air(make_conditioned):
    events, _ = _run_board(make_conditioned(_airtime_sequence(0.5, 1.5)))
    assert [e.variant for e in events] == ['air']


def test_hard_landing_is_slam(make_conditioned):
    events, _ = _run_board(make_conditioned(_airtime_sequence(0.15, 6.0)))
    assert [e.variant for e in events] == ['slam']


def test_very_short_airtime_is_noise(make_conditioned):
    events, detector = _run_board(make_conditioned(_airtime_sequence(0.05, 1.5)))
    assert events == []
    assert not detector.board.airborne


def test_airborne_at_stop_is_discarded(make_conditioned):
    events, detector = _run_board(make_conditioned([1.0] * 5 + [0.2] * 20))
    assert events == []
    assert detector.board.airborne

    detector.discard_pending()
    assert not detector.board.airborne


# ----------------------------------------------------------------------
# Grinds
# ----------------------------------------------------------------------

def _grind_samples(make_conditioned, yaw_rate):
    start = make_conditioned([1.0] * 10)
    grinding = make_conditioned([1.1] * 80, start=0.1, rotation=260.0, yaw_rate=yaw_rate)
    release = make_conditioned([1.0] * 10, start=0.9, rotation=10.0)
    return start + grinding + release


def test_grind_typed_by_stance_and_direction(make_conditioned):
    events, _ = _run_board(_grind_samples(make_conditioned, yaw_rate=30.0), speed=3.0)

    grinds = [e for e in events if e.kind == EventKind.GRIND]
    assert len(grinds) == 1
    assert grinds[0].variant == 'fs_grind'
    assert grinds[0].duration == pytest.approx(0.8)


def test_goofy_stance_flips_grind_side(make_conditioned):
    events, _ = _run_board(_grind_samples(make_conditioned, yaw_rate=30.0), speed=3.0, stance=Stance.GOOFY)
    assert [e.variant for e in events] == ['bs_grind']


def test_slow_grind_is_stall(make_conditioned):
    events, _ = _run_board(_grind_samples(make_conditioned, yaw_rate=30.0), speed=0.5)
    assert [e.variant for e in events] == ['stall']


def test_grind_needs_stable_g(make_conditioned):
    samples = make_conditioned([3.0] * 10) + make_conditioned([3.0] * 20, start=0.1, rotation=260.0)
    events, detector = _run_board(samples, speed=3.0)
    assert not detector.board.grinding


# ----------------------------------------------------------------------
# Pumps and dedupe
# ----------------------------------------------------------------------

def _pump_cycles(cycles, period_samples=100):
    g = []
    for _ in range(cycles):
        half = period_samples // 2
        g += [2.7] * 5 + [1.6] * (half - 5) + [1.1] * 5 + [1.6] * (half - 5)
    return g + [2.7] * 5 + [1.0] * 10


def test_pump_cycles_are_counted(make_conditioned):
    events, _ = _run_board(make_conditioned(_pump_cycles(3)))

    pumps = [e for e in events if e.kind == EventKind.PUMP]
    assert len(pumps) == 3


def test_pumps_need_rolling(make_conditioned):
    events, _ = _run_board(make_conditioned(_pump_cycles(3)), rolling=False)
    assert [e for e in events if e.kind == EventKind.PUMP] == []


def test_pump_phase_resets_when_idle(make_conditioned):
    g = [2.7] * 5 + [1.6] * 250 + [1.1] * 5 + [2.7] * 5
    events, detector = _run_board(make_conditioned(g))
    # the compression went stale, so the later spike only starts a new cycle
    assert events == []
    assert detector.board.pump_phase == 'compress'


def test_repeated_variant_within_dedupe_window_is_merged(make_conditioned):
    # two slams 0.21 s apart
    g = [1.0] * 5 + [0.2] * 15 + [6.0] + [1.0] * 5 + [0.2] * 15 + [6.0] + [1.0] * 5
    events, detector = _run_board(make_conditioned(g))

    assert [e.variant for e in events if e.kind == EventKind.AIRTIME] == ['slam']
    assert detector.merged_count == 1
