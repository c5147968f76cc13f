"""
Event Detector
Turns the conditioned sample stream into discrete motion events

Two taxonomies share the same pattern and a pipeline runs exactly one:
- 'turns': gravity-projected Turn events committed after settling, plus
  instantaneous Impact events
- 'board': airtime (ollie / air / slam), grind / stall and pump cycles
"""

import logging
from collections import deque
from typing import List, Optional

from skate_system.models import ConditionedSample, EventKind, MotionEvent, Stance

from .config import TrackerConfig, TAXONOMY_BOARD, TAXONOMY_TURNS

logger = logging.getLogger(__name__)

_EPSILON = 1e-9


class TurnDetector:
    """
    Move-then-settle turn commit.

    Nothing is committed while the yaw rate stays above the moving
    threshold. Once it has stayed below it for the stillness window, the
    yaw accumulated since the last commit becomes one Turn event (if it
    is large enough), so one continuous rotation yields one event.
    """

    def __init__(self, config: TrackerConfig):
        self.config = config
        self.last_committed_yaw = 0.0
        self.moving = False
        self._last_moving_t: Optional[float] = None
        self._peak_rotation = 0.0
        self._peak_g = 0.0
        self.discarded_count = 0

    def update(self, sample: ConditionedSample, t_rel: float) -> Optional[MotionEvent]:
        cfg = self.config

        if abs(sample.yaw_rate) >= cfg.turn_moving_threshold:
            if not self.moving:
                logger.debug(f"Turn started at t={t_rel:.2f}s (yaw={sample.accumulated_yaw:.1f}°)")
            self.moving = True
            self._last_moving_t = sample.t
            self._peak_rotation = max(self._peak_rotation, sample.rotation_magnitude)
            self._peak_g = max(self._peak_g, sample.g_force)
            return None

        if not self.moving:
            return None

        if sample.t - self._last_moving_t + _EPSILON < cfg.turn_stillness_seconds:
            return None

        delta = sample.accumulated_yaw - self.last_committed_yaw
        event = None
        if abs(delta) >= cfg.turn_min_angle:
            event = MotionEvent(
                kind=EventKind.TURN,
                t=t_rel,
                intensity=self._peak_g,
                rotation=self._peak_rotation,
                turn_angle=float(round(delta)),
            )
            logger.debug(f"Turn committed: {event.turn_angle:+.0f}° at t={t_rel:.2f}s")
        else:
            logger.debug(f"Settled after {delta:+.1f}° (below {cfg.turn_min_angle}°), not committed")

        # The baseline moves on every settle so small wiggles never add up into a turn
        self.last_committed_yaw = sample.accumulated_yaw
        self._reset_move()
        return event

    def discard_pending(self) -> bool:
        """Drop an in-progress turn whose angle is not yet known."""
        if not self.moving:
            return False
        self.discarded_count += 1
        self._reset_move()
        return True

    def _reset_move(self):
        self.moving = False
        self._last_moving_t = None
        self._peak_rotation = 0.0
        self._peak_g = 0.0


class ImpactDetector:
    """Emits an Impact on each rising crossing of the impact threshold"""

    def __init__(self, config: TrackerConfig):
        self.config = config
        self._above = False

    def update(self, sample: ConditionedSample, t_rel: float) -> Optional[MotionEvent]:
        if sample.g_force <= self.config.impact_threshold:
            self._above = False
            return None
        if self._above:
            return None

        self._above = True
        return MotionEvent(
            kind=EventKind.IMPACT,
            t=t_rel,
            intensity=sample.g_force,
            rotation=sample.rotation_magnitude,
        )


class BoardTrickDetector:
    """
    Airtime, grind and pump detection for the skateboard taxonomy.

    Freefall below ``freefall_threshold`` starts an airtime; the landing
    spike classifies it as slam, air or ollie. A grind starts on a strong
    rotation while grounded with stable G and closes when airborne, on a
    slam-level spike, or once rotation fell by ``grind_release_fraction``.
    Pumps are full compress/decompress cycles in the pump G band, counted
    only while rolling.
    """

    def __init__(self, config: TrackerConfig, stance: Stance = Stance.REGULAR):
        self.config = config
        self.stance = stance

        self.airborne = False
        self._freefall_t = 0.0

        self.grinding = False
        self._grind_start_t = 0.0
        self._grind_start_rotation = 0.0
        self._grind_variant = ''

        self.pump_phase = 'none'  # 'compress' or 'decompress'
        self._last_pump_t: Optional[float] = None
        self._last_phase_t = 0.0

        self._recent_g = deque(maxlen=config.stable_window)

    def update(self, sample: ConditionedSample, t_rel: float, speed: float = 0.0,
               rolling: bool = True) -> List[MotionEvent]:
        cfg = self.config
        g = sample.g_force
        rotation = sample.rotation_magnitude
        events: List[MotionEvent] = []
        self._recent_g.append(g)

        # Grind close
        if self.grinding:
            released = rotation < self._grind_start_rotation * (1.0 - cfg.grind_release_fraction)
            if self.airborne or g > cfg.slam_threshold or released:
                events.append(MotionEvent(
                    kind=EventKind.GRIND,
                    t=t_rel,
                    intensity=g,
                    rotation=self._grind_start_rotation,
                    variant=self._grind_variant,
                    duration=t_rel - self._grind_start_t,
                ))
                self.grinding = False

        # Freefall / landing
        if g < cfg.freefall_threshold and not self.airborne and not self.grinding:
            self.airborne = True
            self._freefall_t = t_rel
        elif g > cfg.landing_threshold and self.airborne:
            self.airborne = False
            airtime = t_rel - self._freefall_t
            variant = None
            if g > cfg.slam_threshold:
                variant = 'slam'
            elif airtime > cfg.air_min_seconds:
                variant = 'air'
            elif airtime > cfg.ollie_min_seconds:
                variant = 'ollie'
            else:
                logger.debug(f"Airtime {airtime * 1000:.0f}ms below ollie minimum, ignored")

            if variant:
                events.append(MotionEvent(
                    kind=EventKind.AIRTIME,
                    t=t_rel,
                    intensity=g,
                    rotation=rotation,
                    variant=variant,
                    duration=airtime,
                ))

        # Grind start
        if rotation > cfg.grind_rotation_threshold and not self.airborne and not self.grinding:
            avg_g = sum(self._recent_g) / len(self._recent_g)
            if avg_g < cfg.grind_stable_g:
                self.grinding = True
                self._grind_start_t = t_rel
                self._grind_start_rotation = rotation
                self._grind_variant = self._grind_type(sample.yaw_rate, speed)
                logger.debug(f"Grind started ({self._grind_variant}) at t={t_rel:.2f}s")

        # Pump cycle
        if rolling and not self.airborne and not self.grinding:
            pump = self._update_pump(g, rotation, t_rel)
            if pump:
                events.append(pump)

        return events

    def _grind_type(self, yaw_rate: float, speed: float) -> str:
        if speed < self.config.grind_stall_speed:
            return 'stall'
        frontside = (
            (self.stance == Stance.REGULAR and yaw_rate > 0) or
            (self.stance == Stance.GOOFY and yaw_rate < 0)
        )
        return 'fs_grind' if frontside else 'bs_grind'

    def _update_pump(self, g: float, rotation: float, t_rel: float) -> Optional[MotionEvent]:
        cfg = self.config
        event = None

        if self.pump_phase == 'none' and g > cfg.pump_max_g:
            self.pump_phase = 'compress'
            self._last_phase_t = t_rel
        elif self.pump_phase == 'compress' and g < cfg.pump_min_g:
            self.pump_phase = 'decompress'
            self._last_phase_t = t_rel
        elif self.pump_phase == 'decompress' and g > cfg.pump_max_g:
            if self._last_pump_t is None or t_rel - self._last_pump_t > cfg.pump_debounce_seconds:
                event = MotionEvent(kind=EventKind.PUMP, t=t_rel, intensity=g, rotation=rotation)
                self._last_pump_t = t_rel
            self.pump_phase = 'compress'
            self._last_phase_t = t_rel

        if self.pump_phase != 'none' and t_rel - self._last_phase_t > cfg.pump_idle_reset_seconds:
            self.pump_phase = 'none'

        return event

    def discard_pending(self) -> List[str]:
        """Drop airtime and grinds that never closed."""
        dropped = []
        if self.airborne:
            dropped.append('airtime')
            self.airborne = False
        if self.grinding:
            dropped.append(self._grind_variant)
            self.grinding = False
        self.pump_phase = 'none'
        return dropped


class EventDetector:
    """
    Runs the sub-detectors of the configured taxonomy against each
    conditioned sample and returns the committed events in order.

    Board events of the same kind and variant closer together than
    ``dedupe_seconds`` are merged into the first one.
    """

    def __init__(self, config: Optional[TrackerConfig] = None, stance: Stance = Stance.REGULAR):
        self.config = config if config else TrackerConfig()
        if self.config.taxonomy not in (TAXONOMY_TURNS, TAXONOMY_BOARD):
            raise ValueError(f"Unknown taxonomy: {self.config.taxonomy}")

        self.taxonomy = self.config.taxonomy
        self.turns = TurnDetector(self.config)
        self.impacts = ImpactDetector(self.config)
        self.board = BoardTrickDetector(self.config, stance)

        self._last_by_kind = {}
        self.event_count = 0
        self.merged_count = 0

    def update(self, sample: ConditionedSample, t_rel: float, speed: float = 0.0,
               rolling: bool = True) -> List[MotionEvent]:
        """
        Feed one conditioned sample.

        Args:
            sample: Conditioned sample
            t_rel: Seconds since tracking started
            speed: Current ground speed in m/s (used to tell stalls from grinds)
            rolling: Whether the rider is rolling on the board (pumps only count then)

        Returns:
            Events committed by this sample (usually empty)
        """
        candidates: List[MotionEvent] = []

        if self.taxonomy == TAXONOMY_TURNS:
            for detector in (self.impacts, self.turns):
                event = detector.update(sample, t_rel)
                if event:
                    candidates.append(event)
        else:
            candidates.extend(self.board.update(sample, t_rel, speed, rolling))

        committed = []
        for event in candidates:
            if self._is_duplicate(event):
                self.merged_count += 1
                logger.debug(f"Merged duplicate {event.kind.value} at t={event.t:.2f}s")
                continue
            committed.append(event)
            self.event_count += 1
            logger.info(f"Event: {event.kind.value}"
                        f"{'/' + event.variant if event.variant else ''} at t={event.t:.2f}s "
                        f"(G={event.intensity:.2f})")
        return committed

    def _is_duplicate(self, event: MotionEvent) -> bool:
        if self.taxonomy != TAXONOMY_BOARD:
            return False
        key = (event.kind, event.variant)
        previous = self._last_by_kind.get(key)
        if previous is not None and event.t - previous < self.config.dedupe_seconds:
            return True
        self._last_by_kind[key] = event.t
        return False

    def discard_pending(self):
        """Discard any event still waiting on a settling decision."""
        if self.turns.discard_pending():
            logger.info("Discarded unsettled turn on stop")
        for name in self.board.discard_pending():
            logger.info(f"Discarded unfinished {name} on stop")

    def get_status(self) -> dict:
        return {
            'taxonomy': self.taxonomy,
            'turning': self.turns.moving,
            'airborne': self.board.airborne,
            'grinding': self.board.grinding,
            'pump_phase': self.board.pump_phase,
            'event_count': self.event_count,
            'merged_count': self.merged_count,
        }
