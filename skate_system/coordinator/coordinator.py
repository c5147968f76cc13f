"""
Source Coordinator
Manages the lifecycle of the motion and location sources for one session
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from skate_system.errors import (
    LocationUnavailable, PermissionDenied, SensorUnavailable, TrackerError,
)

from .clock import CentralClock

logger = logging.getLogger(__name__)


class SourceCoordinator:
    """
    Coordinates sample sources with a shared clock.

    Responsibilities:
    - Register sources and start/stop them
    - Keep going when a source fails (the session continues with the rest)
    - Swap in a fallback source when a motion sensor is unavailable
    - Report which sources are active or failed
    """

    def __init__(self, clock: Optional[CentralClock] = None):
        self.clock = clock if clock else CentralClock()

        self.sources: Dict[str, Any] = {}
        self.active: List[str] = []
        self.failed: Dict[str, str] = {}

        logger.info("Source Coordinator initialized")

    def register_source(self, name: str, source: Any):
        """
        Register a source under a unique name.

        Args:
            name: Source identifier (e.g. 'imu', 'location')
            source: Object with start(), stop() and optionally get_status()
        """
        if name in self.sources:
            logger.warning(f"Source '{name}' already registered, replacing")
            self.stop_source(name)

        self.sources[name] = source
        self.failed.pop(name, None)
        logger.info(f"✓ Registered source: {name}")

    def start_source(self, name: str):
        """
        Start a registered source.

        Raises:
            ValueError: if the source is unknown
            TrackerError: whatever the source raised while starting
        """
        if name not in self.sources:
            logger.error(f"Source '{name}' not registered")
            raise ValueError(f"Unknown source: {name}")

        try:
            self.sources[name].start()
        except TrackerError as e:
            self.failed[name] = f"{type(e).__name__}: {e}"
            logger.error(f"✗ Failed to start source '{name}': {e}")
            raise

        if name not in self.active:
            self.active.append(name)
        logger.info(f"✓ Started source: {name}")

    def start_with_fallback(self, name: str, fallback_factory: Callable[[], Any]) -> Any:
        """
        Start a motion source, replacing it with a fallback if the sensor is unavailable.

        PermissionDenied is not recovered here: it must reach the user.

        Returns:
            The source that is now running under ``name``
        """
        try:
            self.start_source(name)
            return self.sources[name]
        except PermissionDenied:
            raise
        except SensorUnavailable as e:
            logger.warning(f"⚠ {name} unavailable ({e}), falling back to synthetic source")

        self.register_source(name, fallback_factory())
        self.start_source(name)
        return self.sources[name]

    def start_optional(self, name: str) -> bool:
        """Start a source whose absence must not stop the session (e.g. location)."""
        try:
            self.start_source(name)
            return True
        except (LocationUnavailable, SensorUnavailable) as e:
            logger.warning(f"⚠ Continuing without '{name}': {e}")
            return False

    def stop_source(self, name: str):
        if name not in self.sources:
            logger.warning(f"Source '{name}' not registered")
            return

        try:
            self.sources[name].stop()
            logger.info(f"✓ Stopped source: {name}")
        except Exception as e:
            logger.error(f"✗ Error stopping source '{name}': {e}", exc_info=True)
        finally:
            if name in self.active:
                self.active.remove(name)

    def stop_all_sources(self):
        logger.info(f"Stopping {len(self.active)} sources...")
        for name in list(self.active):
            self.stop_source(name)
        logger.info("✓ All sources stopped")

    def get_source_status(self, name: str) -> Optional[dict]:
        if name not in self.sources:
            return None

        source = self.sources[name]
        if hasattr(source, 'get_status'):
            return source.get_status()

        return {'source_name': name, 'registered': True}

    def get_status(self) -> dict:
        return {
            'registered_sources': list(self.sources.keys()),
            'active_sources': list(self.active),
            'failed_sources': dict(self.failed),
            'clock_stats': self.clock.get_stats(),
            'sources': {name: self.get_source_status(name) for name in self.sources},
        }

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop_all_sources()

    def __repr__(self):
        return f"<SourceCoordinator(sources={len(self.sources)}, active={len(self.active)})>"
