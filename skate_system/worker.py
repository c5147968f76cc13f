"""
Tracker Worker
Background thread that exclusively owns a SessionPipeline

Sources post Sample/Location messages from their own threads; the owner
posts Start/Stop. Snapshots (throttled), SessionEnd and Fault messages
come back on the outbox. Nothing is shared with the owner except the
two queues.
"""

import logging
import queue
import threading
from typing import List, Optional

from skate_system.errors import SensorUnavailable, TrackerError
from skate_system.messages import Fault, Location, Sample, SessionEnd, Start, Stop
from skate_system.models import LocationFix, SensorSample, Session
from skate_system.pipeline import SessionPipeline, TrackerState
from skate_system.processing import TrackerConfig

logger = logging.getLogger(__name__)

_SHUTDOWN = object()


class TrackerWorker(threading.Thread):
    """
    Pipeline owner running on its own thread.

    ``submit_sample`` and ``submit_fix`` are safe to call from source
    threads: they never block, and a full inbox drops the sample.
    """

    def __init__(
        self,
        config: Optional[TrackerConfig] = None,
        clock=None,
        inbox_size: int = 2048,
    ):
        super().__init__(name="Tracker-Worker", daemon=True)
        self.config = config if config else TrackerConfig()
        self.clock = clock
        self.pipeline = SessionPipeline(self.config)

        self.inbox: queue.Queue = queue.Queue(maxsize=inbox_size)
        self.outbox: queue.Queue = queue.Queue()

        self._last_snapshot_t: Optional[float] = None
        self._timeout_reported = False
        self.dropped_messages = 0
        self.processed_samples = 0

    # ------------------------------------------------------------------
    # Owner / source side
    # ------------------------------------------------------------------

    def post(self, message) -> bool:
        try:
            self.inbox.put_nowait(message)
            return True
        except queue.Full:
            self.dropped_messages += 1
            return False

    def submit_sample(self, sample: SensorSample):
        """Sink for motion sources."""
        self.post(Sample(sample))

    def submit_fix(self, fix: LocationFix):
        """Sink for location sources."""
        self.post(Location(fix))

    def shutdown(self, timeout: float = 5.0):
        self.inbox.put(_SHUTDOWN)
        if self.is_alive():
            self.join(timeout=timeout)

    def wait_session_end(self, timeout: float = 5.0) -> Optional[Session]:
        """
        Drain the outbox until a SessionEnd arrives.

        Returns:
            The finished session (None if tracking never started)

        Raises:
            queue.Empty: if nothing ends the session within ``timeout``
        """
        while True:
            message = self.outbox.get(timeout=timeout)
            if isinstance(message, SessionEnd):
                return message.session

    def drain(self) -> List[object]:
        messages = []
        while True:
            try:
                messages.append(self.outbox.get_nowait())
            except queue.Empty:
                return messages

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------

    def run(self):
        logger.info("Tracker worker started")

        while True:
            try:
                message = self.inbox.get(timeout=0.1)
            except queue.Empty:
                self._check_sources()
                continue

            if message is _SHUTDOWN:
                break

            try:
                self._dispatch(message)
            except TrackerError as e:
                logger.warning(f"⚠ {type(e).__name__}: {e}")
                self.outbox.put(Fault(type(e).__name__, str(e)))
            except Exception as e:
                logger.error(f"✗ Error handling {type(message).__name__}: {e}", exc_info=True)
                self.outbox.put(Fault(type(e).__name__, str(e)))

        logger.info(f"Tracker worker stopped ({self.processed_samples} samples, "
                    f"{self.dropped_messages} dropped)")

    def _dispatch(self, message):
        pipeline = self.pipeline

        if isinstance(message, Sample):
            pipeline.push_sample(message.sample)
            self.processed_samples += 1
            self._maybe_snapshot(message.sample.t)

        elif isinstance(message, Location):
            pipeline.push_location(message.fix)

        elif isinstance(message, Start):
            if pipeline.state == TrackerState.IDLE:
                self._timeout_reported = False
                self._last_snapshot_t = None
                now = self.clock.now() if self.clock else None
                pipeline.begin(now, manual=message.manual, stance=message.stance, history=message.history)
            else:
                pipeline.start()

        elif isinstance(message, Stop):
            session = pipeline.stop()
            self.outbox.put(SessionEnd(session))

        else:
            logger.warning(f"Unknown message type: {type(message).__name__}")

    def _maybe_snapshot(self, t: float):
        if self.pipeline.state == TrackerState.IDLE:
            return
        if self._last_snapshot_t is not None and t - self._last_snapshot_t < self.config.snapshot_interval:
            return
        self._last_snapshot_t = t
        self.outbox.put(self.pipeline.snapshot())

    def _check_sources(self):
        if self.clock is None or self._timeout_reported:
            return
        try:
            self.pipeline.check_calibration_timeout(self.clock.now())
        except SensorUnavailable as e:
            self._timeout_reported = True
            logger.warning(f"⚠ {e}")
            self.outbox.put(Fault('SensorUnavailable', str(e)))

    def __repr__(self):
        return f"<TrackerWorker(state={self.pipeline.state.value}, alive={self.is_alive()})>"
