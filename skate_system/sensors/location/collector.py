"""
Location Sources
termux-location poller and a replay source, both pushing LocationFix to a sink
"""

import json
import logging
import math
import shutil
import subprocess
import threading
import time
from typing import Callable, Iterable, List, Optional, TYPE_CHECKING

import numpy as np

from skate_system.errors import LocationUnavailable
from skate_system.models import LocationFix

from .config import LocationConfig

if TYPE_CHECKING:
    from skate_system.coordinator import CentralClock

logger = logging.getLogger(__name__)

EARTH_RADIUS = 6371e3


class TermuxLocationCollector:
    """
    Non-blocking location poller around the termux-location command.

    Each request runs as a subprocess that is polled rather than waited
    on, so a stalled location API never blocks the thread. Requests that
    run past ``max_request_duration`` are killed. After a long stretch
    without a fix the network provider is tried instead of GPS.
    """

    def __init__(
            self,
            clock: 'CentralClock',
            sink: Callable[[LocationFix], None],
            config: Optional[LocationConfig] = None
    ):
        self.clock = clock
        self.sink = sink
        self.config = config if config else LocationConfig.for_termux()

        self.current_process = None
        self.request_start_time = None
        self.last_success_time = None
        self.current_provider = self.config.provider

        self.is_running = False
        self.poll_thread = None
        self.stop_event = threading.Event()

        self.requests_sent = 0
        self.requests_completed = 0
        self.requests_timeout = 0
        self.low_quality_rejections = 0

    def start(self):
        """
        Start polling.

        Raises:
            LocationUnavailable: if the termux-location command is not installed
        """
        if self.is_running:
            logger.warning("Location collector already running")
            return

        if shutil.which(self.config.command) is None:
            raise LocationUnavailable(f"'{self.config.command}' not found on PATH")

        self.is_running = True
        self.stop_event.clear()
        self.last_success_time = time.monotonic()

        self.poll_thread = threading.Thread(
            target=self._poll_loop,
            name="Location-Poll-Thread",
            daemon=True
        )
        self.poll_thread.start()
        logger.info(f"✓ Location polling started ({self.config.provider})")

    def stop(self):
        if not self.is_running:
            logger.warning("Location collector not running")
            return

        self.stop_event.set()
        if self.poll_thread and self.poll_thread.is_alive():
            self.poll_thread.join(timeout=self.config.max_request_duration + 1)

        self._kill_request()
        self.is_running = False
        logger.info(f"✓ Location polling stopped "
                    f"({self.requests_completed}/{self.requests_sent} requests completed)")

    def _poll_loop(self):
        while not self.stop_event.is_set():
            if self.current_process is None:
                self._start_request()

            fix = self._check_request()
            if fix:
                self.sink(fix)
                self.stop_event.wait(self.config.poll_interval)
            else:
                self.stop_event.wait(0.1)

    def _start_request(self):
        starved_for = time.monotonic() - self.last_success_time
        if starved_for > self.config.provider_fallback_seconds:
            self.current_provider = self.config.fallback_provider
        else:
            self.current_provider = self.config.provider

        try:
            self.current_process = subprocess.Popen(
                [self.config.command, '-p', self.current_provider],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True
            )
        except OSError as e:
            logger.warning(f"⚠ Failed to start {self.current_provider} request: {e}")
            return

        self.request_start_time = time.monotonic()
        self.requests_sent += 1

    def _check_request(self) -> Optional[LocationFix]:
        if self.current_process is None:
            return None

        returncode = self.current_process.poll()
        if returncode is None:
            if time.monotonic() - self.request_start_time > self.config.max_request_duration:
                logger.warning(f"⚠ Location request exceeded {self.config.max_request_duration}s, killing")
                self._kill_request()
                self.requests_timeout += 1
            return None

        stdout, _ = self.current_process.communicate()
        self.current_process = None

        if returncode != 0 or not stdout:
            return None

        try:
            fix = parse_fix(stdout, self.clock.now())
        except ValueError as e:
            logger.warning(f"⚠ Could not parse location output: {e}")
            return None

        if fix is None:
            return None
        if fix.accuracy is not None and fix.accuracy > self.config.quality_threshold:
            self.low_quality_rejections += 1
            logger.debug(f"Rejected low-quality fix (accuracy {fix.accuracy:.1f}m)")
            return None

        self.last_success_time = time.monotonic()
        self.requests_completed += 1
        return fix

    def _kill_request(self):
        if self.current_process is None:
            return
        try:
            self.current_process.kill()
            self.current_process.wait(timeout=1)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"Error killing location request: {e}")
        self.current_process = None

    def get_status(self) -> dict:
        return {
            'source': 'termux',
            'provider': self.current_provider,
            'is_running': self.is_running,
            'requests_sent': self.requests_sent,
            'requests_completed': self.requests_completed,
            'requests_timeout': self.requests_timeout,
            'low_quality_rejections': self.low_quality_rejections,
        }


def parse_fix(output: str, t: float) -> Optional[LocationFix]:
    """
    Parse one termux-location JSON document.

    Returns:
        LocationFix, or None when the output carries no coordinates

    Raises:
        ValueError: if the output is not JSON
    """
    data = json.loads(output)
    if not isinstance(data, dict):
        raise ValueError("location output is not an object")

    lat, lon = data.get('latitude'), data.get('longitude')
    if lat is None or lon is None:
        return None

    speed = data.get('speed')
    accuracy = data.get('accuracy')
    return LocationFix(
        lat=float(lat),
        lon=float(lon),
        t=t,
        speed_meters_per_sec=float(speed) if speed is not None else None,
        accuracy=float(accuracy) if accuracy is not None else None,
    )


def synthetic_route(duration: float, config: Optional[LocationConfig] = None,
                    start_t: float = 0.0, interval: float = 1.0) -> List[LocationFix]:
    """
    Straight ride at constant speed with seeded position jitter, one fix per interval.
    """
    config = config if config else LocationConfig.for_replay()
    rng = np.random.default_rng(config.seed)
    lat0, lon0 = config.route_origin
    heading = math.radians(config.route_heading)

    fixes = []
    for i in range(int(duration / interval) + 1):
        travelled = config.route_speed * i * interval
        north = travelled * math.cos(heading) + rng.normal(0.0, 0.5)
        east = travelled * math.sin(heading) + rng.normal(0.0, 0.5)
        fixes.append(LocationFix(
            lat=lat0 + math.degrees(north / EARTH_RADIUS),
            lon=lon0 + math.degrees(east / (EARTH_RADIUS * math.cos(math.radians(lat0)))),
            t=start_t + i * interval,
            speed_meters_per_sec=config.route_speed,
            accuracy=5.0,
        ))
    return fixes


class ReplayLocationSource:
    """
    Replays a list of fixes in a background thread.

    Fix timestamps are taken as offsets and re-based onto the clock, so a
    recorded route lines up with live motion samples.
    """

    def __init__(
            self,
            clock: Optional['CentralClock'],
            sink: Callable[[LocationFix], None],
            fixes: Optional[Iterable[LocationFix]] = None,
            config: Optional[LocationConfig] = None
    ):
        self.clock = clock
        self.sink = sink
        self.config = config if config else LocationConfig.for_replay()
        self.fixes = list(fixes) if fixes is not None else None

        self.is_running = False
        self.replay_thread = None
        self.stop_event = threading.Event()
        self.fix_count = 0

    def start(self):
        if self.is_running:
            logger.warning("Location replay already running")
            return

        self.is_running = True
        self.stop_event.clear()
        self.fix_count = 0
        self.replay_thread = threading.Thread(
            target=self._replay_loop,
            name="Location-Replay-Thread",
            daemon=True
        )
        self.replay_thread.start()
        logger.info("✓ Location replay started")

    def stop(self):
        if not self.is_running:
            return
        self.stop_event.set()
        if self.replay_thread and self.replay_thread.is_alive():
            self.replay_thread.join(timeout=5)
        self.is_running = False
        logger.info(f"✓ Location replay stopped after {self.fix_count} fixes")

    def _replay_loop(self):
        base = self.clock.now() if self.clock else 0.0
        fixes = self.fixes if self.fixes is not None else synthetic_route(3600.0, self.config)
        if not fixes:
            return

        first_t = fixes[0].t
        for fix in fixes:
            offset = fix.t - first_t
            if self.config.realtime and self.clock:
                delay = base + offset - self.clock.now()
                if delay > 0 and self.stop_event.wait(delay):
                    break
            if self.stop_event.is_set():
                break
            self.sink(LocationFix(
                lat=fix.lat,
                lon=fix.lon,
                t=base + offset,
                speed_meters_per_sec=fix.speed_meters_per_sec,
                accuracy=fix.accuracy,
            ))
            self.fix_count += 1

    def get_status(self) -> dict:
        return {
            'source': 'replay',
            'is_running': self.is_running,
            'fixes_replayed': self.fix_count,
        }
