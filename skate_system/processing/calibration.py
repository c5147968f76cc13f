"""
Gravity Calibration
Establishes the device's gravity reference before tracking begins
"""

import logging
from typing import Iterable, Optional

from skate_system.errors import SensorUnavailable
from skate_system.models import GravityVector, SensorSample

from .config import TrackerConfig

logger = logging.getLogger(__name__)


class CalibrationUnit:
    """
    Exponentially smoothed gravity estimate over a fixed time window.

    Each sample updates ``g <- g * 0.8 + sample * 0.2`` per axis, seeded
    from the first sample. The window is measured on sample timestamps,
    so replayed data calibrates the same way as live data.

    Usage:
        unit = CalibrationUnit(config)
        for sample in stream:
            unit.feed(sample)
            if unit.is_complete():
                gravity = unit.freeze()
                break
    """

    def __init__(self, config: Optional[TrackerConfig] = None):
        self.config = config if config else TrackerConfig()
        self.duration = self.config.calibration_seconds
        self.smoothing = self.config.calibration_smoothing

        self._estimate: Optional[list] = None
        self._first_t: Optional[float] = None
        self._last_t: Optional[float] = None
        self.sample_count = 0
        self.frozen: Optional[GravityVector] = None

    def feed(self, sample: SensorSample):
        """Fold one sample into the running estimate."""
        if self.frozen is not None:
            return

        reading = [sample.ax, sample.ay, sample.az]
        if self._estimate is None:
            self._estimate = reading
            self._first_t = sample.t
        else:
            keep = self.smoothing
            self._estimate = [g * keep + s * (1.0 - keep) for g, s in zip(self._estimate, reading)]

        self._last_t = sample.t
        self.sample_count += 1

    def elapsed(self) -> float:
        """Seconds of sample time covered so far."""
        if self._first_t is None:
            return 0.0
        return self._last_t - self._first_t

    def is_complete(self) -> bool:
        return self._estimate is not None and self.elapsed() >= self.duration

    def estimate(self) -> Optional[GravityVector]:
        if self._estimate is None:
            return None
        return GravityVector(*self._estimate)

    def freeze(self) -> GravityVector:
        """
        Finish calibration and return the frozen gravity vector.

        Raises:
            SensorUnavailable: if not a single sample was received.
        """
        if self.frozen is not None:
            return self.frozen

        if self._estimate is None:
            raise SensorUnavailable("No inertial samples received during calibration")

        self.frozen = GravityVector(*self._estimate)
        logger.info(
            f"✓ Calibration complete: g=({self.frozen.x:.2f}, {self.frozen.y:.2f}, {self.frozen.z:.2f}) "
            f"|g|={self.frozen.magnitude:.2f} m/s² from {self.sample_count} samples"
        )
        return self.frozen

    def reset(self):
        self._estimate = None
        self._first_t = None
        self._last_t = None
        self.sample_count = 0
        self.frozen = None


def calibrate(samples: Iterable[SensorSample], duration: Optional[float] = None,
              config: Optional[TrackerConfig] = None) -> GravityVector:
    """
    Consume samples until the calibration window has elapsed.

    Args:
        samples: Stream of sensor samples (consumed lazily)
        duration: Window length in seconds (defaults to config.calibration_seconds)
        config: Tracker configuration

    Returns:
        The frozen GravityVector

    Raises:
        SensorUnavailable: if the stream delivered no samples
    """
    unit = CalibrationUnit(config)
    if duration is not None:
        unit.duration = duration

    for sample in samples:
        unit.feed(sample)
        if unit.is_complete():
            break

    if unit.sample_count and not unit.is_complete():
        logger.warning(
            f"⚠ Sample stream ended after {unit.elapsed():.2f}s of a {unit.duration:.2f}s calibration window"
        )

    return unit.freeze()
