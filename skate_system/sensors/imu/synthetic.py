"""
Synthetic Motion Source
Seeded, scripted IMU samples for development and testing without hardware
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Sequence, TYPE_CHECKING

import numpy as np

from skate_system.models import SensorSample

from .config import IMUConfig

if TYPE_CHECKING:
    from skate_system.coordinator import CentralClock

logger = logging.getLogger(__name__)

LANDING_SECONDS = 0.03


@dataclass(frozen=True)
class Maneuver:
    """
    One scripted movement.

    ``magnitude`` depends on the kind: total angle in degrees for 'turn',
    landing G for 'ollie', spike G for 'slap', rotation rate in °/s for
    'grind' and peak G for 'pump'.
    """
    kind: str
    start: float
    duration: float
    magnitude: float

    @property
    def end(self) -> float:
        if self.kind == 'ollie':
            return self.start + self.duration + LANDING_SECONDS
        return self.start + self.duration


# Still for calibration, then a double slap to start tracking
INTRO = (
    Maneuver('slap', 3.5, 0.02, 2.6),
    Maneuver('slap', 4.0, 0.02, 2.4),
)

# Repeats every LOOP_PERIOD seconds after LOOP_START
LOOP_START = 5.0
LOOP_PERIOD = 16.0
LOOP = (
    Maneuver('turn', 1.0, 1.0, 90.0),
    Maneuver('turn', 4.0, 1.5, -120.0),
    Maneuver('ollie', 7.0, 0.25, 2.8),
    Maneuver('turn', 9.5, 0.8, 45.0),
    Maneuver('ollie', 12.0, 0.5, 3.2),
)


class SyntheticMotionSource:
    """
    Deterministic stand-in for the MPU6050.

    The device is held with +y up, so gravity reads (0, g, 0) and a turn
    on flat ground is a rotation about y (the gamma rate). Rolling
    vibration and gyro noise come from a numpy Generator seeded by the
    config, so the same seed always yields the same samples.
    """

    def __init__(
            self,
            clock: Optional['CentralClock'] = None,
            sink: Optional[Callable[[SensorSample], None]] = None,
            config: Optional[IMUConfig] = None,
            intro: Sequence[Maneuver] = INTRO,
            loop: Sequence[Maneuver] = LOOP,
    ):
        self.clock = clock
        self.sink = sink
        self.config = config if config else IMUConfig.for_synthetic()
        self.intro = tuple(intro)
        self.loop = tuple(loop)

        self.is_running = False
        self.collection_thread = None
        self.stop_event = threading.Event()
        self.sample_count = 0

        logger.info(f"Synthetic motion source initialized (seed={self.config.seed})")

    def maneuver_at(self, t_rel: float) -> Optional[Maneuver]:
        """Scripted maneuver active at ``t_rel`` seconds after the source started."""
        for m in self.intro:
            if m.start <= t_rel < m.end:
                return m

        if t_rel < LOOP_START or not self.loop:
            return None

        local = (t_rel - LOOP_START) % LOOP_PERIOD
        for m in self.loop:
            if m.start <= local < m.end:
                return Maneuver(m.kind, t_rel - (local - m.start), m.duration, m.magnitude)
        return None

    def generate(self, duration: Optional[float] = None, start_t: float = 0.0) -> Iterator[SensorSample]:
        """
        Yield samples at the configured rate.

        Args:
            duration: Seconds to generate, or None for an endless stream
            start_t: Timestamp of the first sample
        """
        cfg = self.config
        rng = np.random.default_rng(cfg.seed)
        dt = 1.0 / cfg.sample_rate
        count = None if duration is None else int(round(duration * cfg.sample_rate))

        i = 0
        while count is None or i < count:
            t_rel = i * dt
            noise = rng.normal(0.0, 1.0, 6)

            accel = np.array([0.0, cfg.gravity, 0.0]) + noise[:3] * cfg.accel_noise
            rot = noise[3:] * cfg.gyro_noise  # beta (x), gamma (y), alpha (z)

            maneuver = self.maneuver_at(t_rel)
            if maneuver:
                accel, rot = self._apply(maneuver, t_rel, accel, rot)

            yield SensorSample(
                ax=float(accel[0]), ay=float(accel[1]), az=float(accel[2]),
                rot_alpha=float(rot[2]), rot_beta=float(rot[0]), rot_gamma=float(rot[1]),
                t=start_t + t_rel,
            )
            i += 1

    def _apply(self, m: Maneuver, t_rel: float, accel: np.ndarray, rot: np.ndarray):
        g = self.config.gravity
        direction = accel / np.linalg.norm(accel)

        if m.kind == 'turn':
            rot = rot + np.array([0.0, m.magnitude / m.duration, 0.0])
        elif m.kind == 'grind':
            rot = rot + np.array([m.magnitude, 0.0, 0.0])
        elif m.kind == 'slap':
            accel = direction * m.magnitude * g
        elif m.kind == 'ollie':
            if t_rel < m.start + m.duration:
                accel = direction * 0.2 * g
            else:
                accel = direction * m.magnitude * g
        elif m.kind == 'pump':
            phase = math.sin(2 * math.pi * (t_rel - m.start))
            accel = direction * (1.0 + (m.magnitude - 1.0) * (0.5 + 0.5 * phase)) * g
        else:
            logger.warning(f"Unknown maneuver kind: {m.kind}")
        return accel, rot

    def start(self):
        if self.is_running:
            logger.warning("Synthetic motion source already running")
            return
        if self.sink is None:
            raise ValueError("Synthetic motion source needs a sink to start")

        self.is_running = True
        self.stop_event.clear()
        self.sample_count = 0

        self.collection_thread = threading.Thread(
            target=self._collection_loop,
            name="Synthetic-IMU-Thread",
            daemon=True
        )
        self.collection_thread.start()
        logger.info("✓ Synthetic motion source started")

    def stop(self):
        if not self.is_running:
            logger.warning("Synthetic motion source not running")
            return

        self.stop_event.set()
        if self.collection_thread and self.collection_thread.is_alive():
            self.collection_thread.join(timeout=5)

        self.is_running = False
        logger.info(f"✓ Synthetic motion source stopped after {self.sample_count} samples")

    def _collection_loop(self):
        interval = 1.0 / self.config.sample_rate
        start_t = self.clock.now() if self.clock else 0.0
        next_due = time.monotonic()

        for sample in self.generate(start_t=start_t):
            if self.stop_event.is_set():
                break
            self.sink(sample)
            self.sample_count += 1

            if self.config.realtime:
                next_due += interval
                delay = next_due - time.monotonic()
                if delay > 0:
                    self.stop_event.wait(delay)

    def get_status(self) -> dict:
        return {
            'sensor_type': 'synthetic',
            'seed': self.config.seed,
            'is_running': self.is_running,
            'samples_collected': self.sample_count,
        }

    def __repr__(self):
        status = "running" if self.is_running else "stopped"
        return f"<SyntheticMotionSource(seed={self.config.seed}, status={status})>"
