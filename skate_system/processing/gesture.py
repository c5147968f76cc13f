"""
Gesture Trigger
Double-slap recognition that starts tracking hands-free once armed
"""

import logging
from typing import Optional

from skate_system.models import ConditionedSample

from .config import TrackerConfig

logger = logging.getLogger(__name__)


class GestureTrigger:
    """
    Two-state debounced matcher for a double slap on the device.

    A slap is a G-force spike above ``slap_threshold``. One physical slap
    usually spans several samples, so a new slap only counts once the
    signal dropped back below the threshold (or has not been above it for
    ``slap_min_gap_seconds``). The first slap opens a window; a second slap
    inside the window fires the trigger, a slap outside it becomes the new
    first slap.
    """

    def __init__(self, config: Optional[TrackerConfig] = None):
        self.config = config if config else TrackerConfig()

        self.first_slap_t: Optional[float] = None
        self._last_slap_t: Optional[float] = None
        self._last_above_t: Optional[float] = None
        self._rearmed = True
        self.slap_count = 0

    def update(self, sample: ConditionedSample) -> bool:
        """
        Feed one conditioned sample.

        Returns:
            True exactly when the second slap of a double slap lands
        """
        cfg = self.config
        t = sample.t

        if sample.g_force <= cfg.slap_threshold:
            self._rearmed = True
            return False

        is_new_spike = self._rearmed or (
            self._last_above_t is not None and t - self._last_above_t > cfg.slap_min_gap_seconds
        )
        self._last_above_t = t
        self._rearmed = False

        if not is_new_spike:
            return False
        if self._last_slap_t is not None and t - self._last_slap_t < cfg.slap_min_gap_seconds:
            return False

        self._last_slap_t = t
        self.slap_count += 1

        if self.first_slap_t is not None and t - self.first_slap_t <= cfg.slap_window_seconds:
            logger.info(f"✓ Double slap detected ({t - self.first_slap_t:.2f}s apart)")
            self.first_slap_t = None
            return True

        self.first_slap_t = t
        logger.debug(f"First slap at t={t:.2f}s (G={sample.g_force:.2f})")
        return False

    def reset(self):
        self.first_slap_t = None
        self._last_slap_t = None
        self._last_above_t = None
        self._rearmed = True
