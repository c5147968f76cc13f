"""Session pipeline state machine, end to end on hand-built and synthetic samples."""

import pytest

from skate_system.errors import SensorUnavailable
from skate_system.models import EventKind, MotionEvent
from skate_system.pipeline import SessionPipeline, TrackerState
from skate_system.processing import TrackerConfig
from skate_system.sensors import IMUConfig, SyntheticMotionSource


def _push_all(pipeline, samples):
    events = []
    for sample in samples:
        events.extend(pipeline.push_sample(sample))
    return events


def _gesture_session(make_samples):
    """3 s still, double slap at 3.5 s / 4.0 s, a 90° turn at 5 s, then still."""
    return (
        make_samples(3.5)
        + make_samples(0.01, start=3.5, g_force=2.5)
        + make_samples(0.49, start=3.51)
        + make_samples(0.01, start=4.0, g_force=2.3)
        + make_samples(0.99, start=4.01)
        + make_samples(1.0, start=5.0, gamma=90.0)
        + make_samples(1.0, start=6.0)
    )


def test_idle_pipeline_ignores_samples(make_samples):
    pipeline = SessionPipeline(TrackerConfig.for_turns())
    assert _push_all(pipeline, make_samples(1.0)) == []
    assert pipeline.state == TrackerState.IDLE


def test_manual_start_tracks_after_calibration(make_samples):
    pipeline = SessionPipeline(TrackerConfig.for_turns())
    pipeline.begin(manual=True)
    _push_all(pipeline, make_samples(2.0))
    assert pipeline.state == TrackerState.CALIBRATING

    _push_all(pipeline, make_samples(1.01, start=2.0))
    assert pipeline.state == TrackerState.TRACKING


def test_armed_pipeline_waits_for_double_slap(make_samples):
    pipeline = SessionPipeline(TrackerConfig.for_turns())
    pipeline.begin(manual=False)
    _push_all(pipeline, make_samples(3.2))
    assert pipeline.state == TrackerState.ARMED

    _push_all(pipeline, make_samples(0.01, start=3.2, g_force=2.5) + make_samples(1.0, start=3.21))
    assert pipeline.state == TrackerState.ARMED


def test_double_slap_starts_tracking_with_marker(make_samples):
    pipeline = SessionPipeline(TrackerConfig.for_turns())
    pipeline.begin(manual=False)
    _push_all(pipeline, _gesture_session(make_samples))

    assert pipeline.state == TrackerState.TRACKING
    assert pipeline.track_start_t == pytest.approx(4.0)

    session = pipeline.stop()
    assert pipeline.state == TrackerState.IDLE
    assert session.events[0].kind == EventKind.SLAP
    assert session.events[0].t == 0.0

    turns = [e for e in session.events if e.kind == EventKind.TURN]
    assert len(turns) == 1
    assert turns[0].turn_angle == pytest.approx(90.0, abs=2.0)
    assert session.duration == 2


def test_armed_slaps_are_not_events(make_samples):
    pipeline = SessionPipeline(TrackerConfig.for_turns())
    pipeline.begin(manual=False)
    _push_all(pipeline, _gesture_session(make_samples))
    session = pipeline.stop()

    # both spikes exceed the impact threshold but happened before tracking
    assert not [e for e in session.events if e.kind == EventKind.IMPACT]


def test_online_classification_uses_history(make_samples):
    history = [MotionEvent(EventKind.TURN, 1.0, 1.0, rotation=90.0, turn_angle=90.0,
                           label='FS Turn', is_group_start=True, group_id='g')]
    pipeline = SessionPipeline(TrackerConfig.for_turns(), history=history)
    pipeline.begin(manual=False)

    committed = _push_all(pipeline, _gesture_session(make_samples))
    assert [e.label for e in committed] == ['FS Turn']

    session = pipeline.stop()
    assert session.trick_summary == {'FS Turn': 1}
    assert session.total_tricks == sum(session.trick_summary.values())


def test_stop_discards_unsettled_turn(make_samples):
    pipeline = SessionPipeline(TrackerConfig.for_turns())
    pipeline.begin(manual=True)
    _push_all(pipeline, make_samples(3.01) + make_samples(1.0, start=3.01, gamma=90.0))

    session = pipeline.stop()
    assert [e for e in session.events if e.kind == EventKind.TURN] == []


def test_stop_before_tracking_records_nothing(make_samples):
    pipeline = SessionPipeline(TrackerConfig.for_turns())
    pipeline.begin(manual=False)
    _push_all(pipeline, make_samples(1.0))

    assert pipeline.stop() is None
    assert pipeline.state == TrackerState.IDLE


def test_start_while_armed(make_samples):
    pipeline = SessionPipeline(TrackerConfig.for_turns())
    pipeline.begin(manual=False)
    _push_all(pipeline, make_samples(3.5))
    pipeline.start()

    assert pipeline.state == TrackerState.TRACKING
    assert pipeline.track_start_t == pytest.approx(3.49)


def test_silent_sensor_times_out_calibration():
    pipeline = SessionPipeline(TrackerConfig())
    pipeline.begin(t=100.0)

    pipeline.check_calibration_timeout(102.0)
    with pytest.raises(SensorUnavailable):
        pipeline.check_calibration_timeout(103.5)


def test_location_outside_tracking_is_dropped(make_samples):
    from skate_system.models import LocationFix

    pipeline = SessionPipeline(TrackerConfig())
    pipeline.begin()
    assert not pipeline.push_location(LocationFix(52.0, 4.0, 1.0))

    _push_all(pipeline, make_samples(3.01))
    assert pipeline.push_location(LocationFix(52.0, 4.0, 4.0))
    assert pipeline.aggregator.session.path[0].t == pytest.approx(1.0)


def test_snapshot_reflects_live_state(make_samples):
    pipeline = SessionPipeline(TrackerConfig.for_turns())
    pipeline.begin(manual=False)
    _push_all(pipeline, _gesture_session(make_samples))

    snap = pipeline.snapshot()
    assert snap.state == 'tracking'
    assert snap.event_count == 2
    assert snap.yaw == pytest.approx(90.0, abs=1.0)
    assert snap.counts == {'slap': 1, 'turn': 1}


def _synthetic_session(seed, taxonomy_config):
    source = SyntheticMotionSource(config=IMUConfig.for_synthetic(seed=seed, realtime=False))
    pipeline = SessionPipeline(taxonomy_config)
    pipeline.begin(0.0, manual=False)
    for sample in source.generate(40.0):
        pipeline.push_sample(sample)
    return pipeline.stop()


def test_synthetic_session_is_deterministic():
    first = _synthetic_session(42, TrackerConfig.for_turns())
    second = _synthetic_session(42, TrackerConfig.for_turns())

    assert first.events == second.events
    assert first.duration == second.duration


def test_synthetic_script_produces_turns_and_impacts():
    session = _synthetic_session(3, TrackerConfig.for_turns())
    kinds = [e.kind for e in session.events]

    assert kinds[0] == EventKind.SLAP
    assert EventKind.TURN in kinds
    assert EventKind.IMPACT in kinds

    first_turn = next(e for e in session.events if e.kind == EventKind.TURN)
    assert first_turn.turn_angle == pytest.approx(90.0, abs=3.0)


def test_synthetic_script_on_board_taxonomy():
    session = _synthetic_session(3, TrackerConfig.for_board())
    variants = [e.variant for e in session.events if e.kind == EventKind.AIRTIME]

    assert 'ollie' in variants
    assert 'air' in variants
