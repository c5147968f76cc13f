"""
Session Aggregator
Owns the in-progress timeline and location path; finalises the Session
"""

import bisect
import logging
import math
from collections import deque
from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

import numpy as np

from skate_system.models import (
    ConditionedSample, EventKind, LocationFix, MotionEvent, Session, Stance,
)
from skate_system.processing.classifier import TrickClassifier
from skate_system.processing.config import TrackerConfig

from .labels import recompute_summary

logger = logging.getLogger(__name__)

EARTH_RADIUS = 6371e3  # meters

MAX_PLAUSIBLE_SPEED = 30.0   # m/s
GLITCH_DISTANCE = 20.0       # m
GLITCH_WINDOW = 5.0          # s
MIN_MOVING_SPEED = 0.2       # m/s


def haversine_distance(a: LocationFix, b: LocationFix) -> float:
    """Great-circle distance between two fixes in meters."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    d_phi = math.radians(b.lat - a.lat)
    d_lambda = math.radians(b.lon - a.lon)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    h = min(1.0, h)
    return 2 * EARTH_RADIUS * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def _is_implausible_jump(a: LocationFix, b: LocationFix) -> bool:
    """Distance-derived glitch check between two fixes, in either time order."""
    dt = abs(b.t - a.t)
    dist = haversine_distance(a, b)
    if dist > GLITCH_DISTANCE and dt < GLITCH_WINDOW:
        return True
    return dt > 0 and dist / dt > MAX_PLAUSIBLE_SPEED


def classify_activity(speed: float, std_dev: float) -> bool:
    """Rolling-on-board heuristic from ground speed and G-magnitude jitter."""
    if speed > 1.8:
        return True
    if speed < 0.3 and std_dev < 0.1:
        return False
    if std_dev > 0.8:
        return False  # walking or running
    if std_dev > 0.08:
        return True   # micro-vibration of wheels
    return False


class SessionAggregator:
    """
    Append-only timeline plus location-derived speed and distance.

    Events must arrive in commit order; location fixes may arrive late,
    out of order or not at all.
    """

    def __init__(
        self,
        config: Optional[TrackerConfig] = None,
        stance: Stance = Stance.REGULAR,
        start_time: Optional[datetime] = None,
        session_id: Optional[str] = None,
    ):
        self.config = config if config else TrackerConfig()
        self.session = Session(stance=stance)
        if start_time:
            self.session.start_time = start_time
        if session_id:
            self.session.id = session_id

        self._last_fix: Optional[LocationFix] = None
        self._speed_readings = []
        self.current_speed = 0.0
        self.rejected_fixes = 0

        self._g_window = deque(maxlen=self.config.activity_window)
        self.is_rolling = False

        self.finalized = False

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def add_event(self, event: MotionEvent):
        """Append one committed event, keeping timestamps non-decreasing."""
        events = self.session.events
        if events and event.t < events[-1].t:
            logger.warning(f"⚠ Event at t={event.t:.3f}s older than timeline tail, clamped")
            event = replace(event, t=events[-1].t)

        events.append(event)
        if event.label and event.is_group_start:
            summary = self.session.trick_summary
            summary[event.label] = summary.get(event.label, 0) + 1
            self.session.total_tricks += 1

    # ------------------------------------------------------------------
    # Location
    # ------------------------------------------------------------------

    def add_fix(self, fix: LocationFix) -> bool:
        """
        Merge one location fix.

        Returns:
            True if the fix was accepted into the path
        """
        path = self.session.path

        if self._last_fix is None:
            path.append(fix)
            self._last_fix = fix
            if fix.speed_meters_per_sec is not None and 0 <= fix.speed_meters_per_sec <= MAX_PLAUSIBLE_SPEED:
                self._record_speed(fix.speed_meters_per_sec)
            return True

        if fix.t <= self._last_fix.t:
            # Late fix: keep the path ordered but do not derive speed from it
            idx = bisect.bisect_right(path, fix.t, key=lambda p: p.t)
            neighbours = path[max(idx - 1, 0):idx + 1]
            if any(_is_implausible_jump(n, fix) for n in neighbours):
                self.rejected_fixes += 1
                logger.debug(f"Rejected out-of-order GPS glitch at t={fix.t:.2f}s")
                return False
            path.insert(idx, fix)
            logger.debug(f"Out-of-order fix at t={fix.t:.2f}s merged into path")
            return True

        dt = fix.t - self._last_fix.t
        dist = haversine_distance(self._last_fix, fix)

        reported = fix.speed_meters_per_sec
        if reported is not None and 0 <= reported <= MAX_PLAUSIBLE_SPEED:
            speed = reported
        else:
            speed = dist / dt

        if speed > MAX_PLAUSIBLE_SPEED or (dist > GLITCH_DISTANCE and dt < GLITCH_WINDOW):
            self.rejected_fixes += 1
            logger.debug(f"Rejected GPS glitch: {dist:.1f}m in {dt:.2f}s ({speed:.1f} m/s)")
            return False

        path.append(fix)
        self._last_fix = fix

        if speed < MIN_MOVING_SPEED:
            self.current_speed = 0.0
            return True

        self.session.total_distance += dist
        self._record_speed(speed)
        return True

    def _record_speed(self, speed: float):
        self.current_speed = speed
        self._speed_readings.append(speed)
        if speed > self.session.max_speed:
            self.session.max_speed = speed
        self.session.avg_speed = float(np.mean(self._speed_readings))

    # ------------------------------------------------------------------
    # Activity
    # ------------------------------------------------------------------

    def update_activity(self, sample: ConditionedSample):
        """Track rolling vs. off-board time from the G-magnitude jitter."""
        self._g_window.append(sample.g_force)
        std_dev = float(np.std(self._g_window)) if len(self._g_window) > 5 else 0.0

        self.is_rolling = classify_activity(self.current_speed, std_dev)
        if self.is_rolling:
            self.session.time_on_board += sample.dt
        else:
            self.session.time_off_board += sample.dt

    # ------------------------------------------------------------------
    # Finalisation
    # ------------------------------------------------------------------

    def counts(self) -> dict:
        counts = {}
        for e in self.session.events:
            key = e.variant or e.kind.value
            counts[key] = counts.get(key, 0) + 1
        return counts

    def finalize(
        self,
        duration: float,
        history: Sequence[MotionEvent] = (),
        classifier: Optional[TrickClassifier] = None,
    ) -> Session:
        """
        Freeze the session.

        Labels remaining unlabeled significant events against ``history``,
        rebuilds the trick summary from the labelled timeline and fills in
        the highlight fields.

        Args:
            duration: Tracked time in seconds
            history: Labelled events from earlier sessions
            classifier: Classifier to use (a default one if omitted)
        """
        session = self.session
        if self.finalized:
            return session

        classifier = classifier if classifier else TrickClassifier(self.config)
        session.events = classifier.label_timeline(session.events, history)
        recompute_summary(session)

        session.duration = int(max(duration, 0.0))
        session.max_speed = round(session.max_speed, 2)
        session.avg_speed = round(session.avg_speed, 2)

        self._pick_highlights(session)
        self.finalized = True

        logger.info(
            f"✓ Session {session.id} finalized: {len(session.events)} events, "
            f"{session.total_tricks} labelled tricks, {session.total_distance:.0f} m, "
            f"top speed {session.max_speed:.1f} m/s"
        )
        return session

    @staticmethod
    def _pick_highlights(session: Session):
        best = None
        max_airtime = 0.0
        longest = None

        for e in session.events:
            if e.kind == EventKind.GRIND and e.duration > session.longest_grind:
                session.longest_grind = e.duration
                longest = e
            if e.kind == EventKind.AIRTIME and e.variant in ('air', 'ollie') and e.duration > max_airtime:
                max_airtime = e.duration
                best = e

        if longest is not None and session.longest_grind > max_airtime and session.longest_grind > 1.0:
            best = longest

        session.best_trick = best
