"""
Signal Conditioner
Per-sample G-force, rotation magnitude and gravity-projected yaw integration
"""

import logging
import math
from typing import Optional

from skate_system.errors import ClockAnomaly
from skate_system.models import ConditionedSample, GravityVector, SensorSample

from .config import TrackerConfig

logger = logging.getLogger(__name__)


class SignalConditioner:
    """
    Turns raw samples into conditioned samples.

    The yaw rate is the rotation-rate vector projected onto the vertical:
        yaw = (beta*ax + gamma*ay + alpha*az) / |a|
    which isolates rotation about gravity whatever the pocket orientation.
    While the measured acceleration is far from 1 G (impacts, landings)
    it does not point along gravity, so the frozen calibration vector is
    used as the projection axis instead.

    Rates below the noise floor are clamped to zero before integration,
    and implausible time steps (negative or > max_dt) integrate as dt = 0.
    """

    def __init__(self, gravity: GravityVector, config: Optional[TrackerConfig] = None):
        self.config = config if config else TrackerConfig()
        self.gravity = gravity

        self.accumulated_yaw = 0.0
        self._last_t: Optional[float] = None

        self.sample_count = 0
        self.clock_anomalies = 0
        self.skipped_projections = 0

    def process(self, sample: SensorSample) -> ConditionedSample:
        """
        Condition one sample and advance the yaw integrator.

        Args:
            sample: Raw sensor sample

        Returns:
            ConditionedSample with the noise-gated yaw rate and running yaw
        """
        cfg = self.config
        accel = sample.accel_magnitude
        g_force = accel / cfg.gravity
        rotation = math.sqrt(sample.rot_alpha ** 2 + sample.rot_beta ** 2 + sample.rot_gamma ** 2)

        yaw_rate = self._project_yaw(sample, accel, g_force)
        if abs(yaw_rate) < cfg.yaw_noise_floor:
            yaw_rate = 0.0

        try:
            dt = self._step(sample.t)
        except ClockAnomaly as e:
            self.clock_anomalies += 1
            logger.debug(f"{e}, integrated as 0 (count: {self.clock_anomalies})")
            dt = 0.0
        self.accumulated_yaw += yaw_rate * dt
        self.sample_count += 1

        return ConditionedSample(
            g_force=g_force,
            rotation_magnitude=rotation,
            yaw_rate=yaw_rate,
            accumulated_yaw=self.accumulated_yaw,
            dt=dt,
            t=sample.t,
        )

    def _project_yaw(self, sample: SensorSample, accel: float, g_force: float) -> float:
        if accel < self.config.min_projection_accel:
            self.skipped_projections += 1
            return 0.0

        if abs(g_force - 1.0) > self.config.projection_tolerance and self.gravity.magnitude > 0:
            ax, ay, az, norm = self.gravity.x, self.gravity.y, self.gravity.z, self.gravity.magnitude
        else:
            ax, ay, az, norm = sample.ax, sample.ay, sample.az, accel

        return (sample.rot_beta * ax + sample.rot_gamma * ay + sample.rot_alpha * az) / norm

    def _step(self, t: float) -> float:
        """
        Raises:
            ClockAnomaly: if the step since the previous sample is negative or too long
        """
        if self._last_t is None:
            self._last_t = t
            return 0.0

        dt = t - self._last_t
        self._last_t = t

        if dt < 0 or dt > self.config.max_dt:
            raise ClockAnomaly(dt)

        return dt

    def reset_yaw(self):
        self.accumulated_yaw = 0.0

    def get_diagnostics(self) -> dict:
        return {
            'sample_count': self.sample_count,
            'clock_anomalies': self.clock_anomalies,
            'skipped_projections': self.skipped_projections,
            'accumulated_yaw': self.accumulated_yaw,
        }
