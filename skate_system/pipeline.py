"""
Skate System - Session Pipeline
===============================
Owns calibration, conditioning, gesture, detection, classification and
aggregation state for one session. Everything here runs on a single
context (the tracker worker), so none of it is locked.

States:
    Idle        : nothing consumed
    Calibrating : samples feed the gravity estimate
    Armed       : only the gesture trigger runs, waiting for a double slap
    Tracking    : full detector, classifier and aggregator

Usage:
    pipeline = SessionPipeline(TrackerConfig.for_turns(), history=history)
    pipeline.begin(manual=False)
    for sample in samples:
        pipeline.push_sample(sample)
    session = pipeline.stop()
"""

import logging
from enum import Enum
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from skate_system.errors import SensorUnavailable
from skate_system.messages import Snapshot
from skate_system.models import (
    ConditionedSample, EventKind, LocationFix, MotionEvent, SensorSample, Session, Stance,
)
from skate_system.processing import (
    CalibrationUnit, EventDetector, GestureTrigger, SignalConditioner, TrackerConfig, TrickClassifier,
    auto_group_id,
)
from skate_system.session import SessionAggregator

logger = logging.getLogger(__name__)


class TrackerState(str, Enum):
    IDLE = 'idle'
    CALIBRATING = 'calibrating'
    ARMED = 'armed'
    TRACKING = 'tracking'


class SessionPipeline:
    """
    Single-session state machine from raw samples to a finished Session.

    ``begin()`` starts calibration. With ``manual=True`` tracking starts as
    soon as calibration completes; otherwise the pipeline arms and waits
    for the double-slap gesture (or an explicit ``start()``).
    """

    def __init__(
        self,
        config: Optional[TrackerConfig] = None,
        stance: Stance = Stance.REGULAR,
        history: Sequence[MotionEvent] = (),
        classifier: Optional[TrickClassifier] = None,
    ):
        self.config = config if config else TrackerConfig()
        self.stance = stance
        self.history = list(history)
        self.classifier = classifier if classifier else TrickClassifier(self.config)

        self.state = TrackerState.IDLE
        self.calibration = CalibrationUnit(self.config)
        self.conditioner: Optional[SignalConditioner] = None
        self.gesture = GestureTrigger(self.config)
        self.detector: Optional[EventDetector] = None
        self.aggregator: Optional[SessionAggregator] = None

        self._begin_t: Optional[float] = None
        self._start_pending = False
        self._started_by_gesture = False
        self.track_start_t: Optional[float] = None
        self.last_t: Optional[float] = None
        self.last_sample: Optional[ConditionedSample] = None
        self.last_event: Optional[MotionEvent] = None

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def begin(self, t: Optional[float] = None, manual: bool = True, stance: Optional[Stance] = None,
              history: Optional[Sequence[MotionEvent]] = None):
        """
        Idle -> Calibrating.

        Args:
            t: Clock reading when calibration was requested (for the timeout check)
            manual: Start tracking right after calibration instead of arming
            stance: Rider stance for this session
            history: Labelled events from earlier sessions
        """
        if self.state != TrackerState.IDLE:
            logger.warning(f"begin() ignored in state {self.state.value}")
            return

        if stance is not None:
            self.stance = stance
        if history is not None:
            self.history = list(history)

        self.calibration.reset()
        self.gesture.reset()
        self.conditioner = None
        self._begin_t = t
        self._start_pending = manual
        self._started_by_gesture = False
        self.state = TrackerState.CALIBRATING
        logger.info(f"Calibrating for {self.config.calibration_seconds:.1f}s "
                    f"({'manual start' if manual else 'gesture start'}, {self.stance.value})")

    def start(self, t: Optional[float] = None):
        """Manual start: Armed -> Tracking, or as soon as calibration completes."""
        if self.state == TrackerState.IDLE:
            self.begin(t, manual=True)
        elif self.state == TrackerState.CALIBRATING:
            self._start_pending = True
        elif self.state == TrackerState.ARMED:
            self._start_tracking(t if t is not None else self.last_t)
        else:
            logger.warning("start() ignored, already tracking")

    def stop(self, t: Optional[float] = None) -> Optional[Session]:
        """
        Stop immediately and finalize.

        An event still waiting on a settling decision is discarded.

        Returns:
            The finished Session, or None if tracking never started
        """
        if self.state != TrackerState.TRACKING:
            logger.info(f"Stopped from state {self.state.value}, no session recorded")
            self._reset()
            return None

        self.detector.discard_pending()
        end_t = t if t is not None else self.last_t
        duration = end_t - self.track_start_t if end_t is not None else 0.0

        session = self.aggregator.finalize(duration, self.history, self.classifier)
        self._reset()
        return session

    def _reset(self):
        self.state = TrackerState.IDLE
        self._start_pending = False
        self.detector = None
        self.aggregator = None
        self.track_start_t = None

    def check_calibration_timeout(self, now: float):
        """
        Raises:
            SensorUnavailable: if calibration saw no sample for its whole window
        """
        if self.state != TrackerState.CALIBRATING or self._begin_t is None:
            return
        if self.calibration.sample_count == 0 and now - self._begin_t > self.config.calibration_seconds:
            raise SensorUnavailable(
                f"no motion samples within {self.config.calibration_seconds:.1f}s of calibration"
            )

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def push_sample(self, sample: SensorSample) -> List[MotionEvent]:
        """
        Consume one raw sample.

        Returns:
            Events committed to the session by this sample
        """
        self.last_t = sample.t

        if self.state == TrackerState.IDLE:
            return []

        if self.state == TrackerState.CALIBRATING:
            self.calibration.feed(sample)
            if self.calibration.is_complete():
                self._finish_calibration(sample.t)
            return []

        cs = self.conditioner.process(sample)
        self.last_sample = cs

        if self.state == TrackerState.ARMED:
            if self.gesture.update(cs):
                self._started_by_gesture = True
                self._start_tracking(sample.t, trigger=cs)
            return []

        return self._track(cs)

    def push_location(self, fix: LocationFix) -> bool:
        """Merge a location fix; fixes outside tracking are dropped."""
        if self.state != TrackerState.TRACKING:
            logger.debug(f"Location fix dropped in state {self.state.value}")
            return False

        rebased = LocationFix(
            lat=fix.lat,
            lon=fix.lon,
            t=fix.t - self.track_start_t,
            speed_meters_per_sec=fix.speed_meters_per_sec,
            accuracy=fix.accuracy,
        )
        return self.aggregator.add_fix(rebased)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _finish_calibration(self, t: float):
        gravity = self.calibration.freeze()
        self.conditioner = SignalConditioner(gravity, self.config)
        self.state = TrackerState.ARMED
        logger.info(f"✓ Calibration complete after {self.calibration.sample_count} samples, armed")

        if self._start_pending:
            self._start_tracking(t)

    def _start_tracking(self, t: float, trigger: Optional[ConditionedSample] = None):
        self.track_start_t = t
        self.detector = EventDetector(self.config, self.stance)
        self.aggregator = SessionAggregator(
            self.config,
            stance=self.stance,
            start_time=datetime.now(timezone.utc),
        )
        self.conditioner.reset_yaw()
        self.state = TrackerState.TRACKING

        if trigger is not None:
            self.aggregator.add_event(MotionEvent(
                kind=EventKind.SLAP,
                t=0.0,
                intensity=trigger.g_force,
                rotation=trigger.rotation_magnitude,
            ))
            logger.info("✓ Double slap detected, tracking started")
        else:
            logger.info("✓ Tracking started")

    def _track(self, cs: ConditionedSample) -> List[MotionEvent]:
        self.aggregator.update_activity(cs)

        t_rel = cs.t - self.track_start_t
        committed = []
        for event in self.detector.update(cs, t_rel, self.aggregator.current_speed,
                                          self.aggregator.is_rolling):
            label = self.classifier.classify(event, self.history)
            if label:
                event = event.with_label(label, group_id=auto_group_id(), is_group_start=True)
            self.aggregator.add_event(event)
            self.last_event = event
            committed.append(event)
        return committed

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def elapsed(self) -> float:
        if self.state != TrackerState.TRACKING or self.last_t is None:
            return 0.0
        return max(self.last_t - self.track_start_t, 0.0)

    def snapshot(self) -> Snapshot:
        cs = self.last_sample
        agg = self.aggregator
        session = agg.session if agg else None
        return Snapshot(
            state=self.state.value,
            elapsed=self.elapsed,
            g_force=cs.g_force if cs else 0.0,
            yaw=self.conditioner.accumulated_yaw if self.conditioner else 0.0,
            event_count=len(session.events) if session else 0,
            current_speed=agg.current_speed if agg else 0.0,
            max_speed=session.max_speed if session else 0.0,
            distance=session.total_distance if session else 0.0,
            is_rolling=agg.is_rolling if agg else False,
            counts=agg.counts() if agg else {},
            last_event=self.last_event if agg else None,
        )

    def get_status(self) -> dict:
        status = {
            'state': self.state.value,
            'taxonomy': self.config.taxonomy,
            'stance': self.stance.value,
            'history_size': len(self.history),
            'calibration_samples': self.calibration.sample_count,
            'started_by_gesture': self._started_by_gesture,
        }
        if self.conditioner:
            status['conditioner'] = self.conditioner.get_diagnostics()
        if self.detector:
            status['detector'] = self.detector.get_status()
        return status

    def __repr__(self):
        return f"<SessionPipeline(state={self.state.value}, taxonomy={self.config.taxonomy})>"
