"""
Skate System - Main Entry Point
Records one skate session end to end:
  1. Open the session store and load history
  2. Start the central clock and the tracker worker
  3. Start the motion source (MPU6050, falling back to synthetic)
  4. Start the location source (optional)
  5. Calibrate, then track until --duration elapses or Ctrl+C
  6. Stop, finalize and persist the session
  7. Print the summary

Usage:
    # Synthetic 30 s session, started by the scripted double slap:
    python run.py --source synthetic --gesture --duration 30

    # Hardware IMU + termux-location, board taxonomy, goofy stance:
    python run.py --taxonomy board --stance goofy --location termux

    # Replay the synthetic script as fast as possible (no threads):
    python run.py --source synthetic --fast --duration 60 --no-save
"""

import argparse
import logging
import queue
import signal
import sys
import time

from skate_system.coordinator import SourceCoordinator
from skate_system.errors import PermissionDenied, TrackerError
from skate_system.messages import Fault, Snapshot, Start, Stop
from skate_system.models import Stance
from skate_system.pipeline import SessionPipeline
from skate_system.processing import TrackerConfig, TAXONOMY_BOARD, TAXONOMY_TURNS
from skate_system.sensors import (
    IMUConfig, LocationConfig, SyntheticMotionSource, create_location_source, create_motion_source,
    synthetic_route,
)
from skate_system.session import SessionStore, StoreConfig
from skate_system.worker import TrackerWorker

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)
logger = logging.getLogger('skate')


# ------------------------------------------------------------------
# Session runners
# ------------------------------------------------------------------

def run_fast(config: TrackerConfig, args, history) -> object:
    """Feed the synthetic script straight into a pipeline on this thread."""
    pipeline = SessionPipeline(config)
    pipeline.begin(0.0, manual=not args.gesture, stance=Stance(args.stance), history=history)

    source = SyntheticMotionSource(config=IMUConfig.for_synthetic(seed=args.seed, realtime=False))
    fixes = iter(synthetic_route(args.duration, LocationConfig.for_replay(seed=args.seed)))
    next_fix = next(fixes, None)

    for sample in source.generate(args.duration):
        while next_fix is not None and next_fix.t <= sample.t:
            pipeline.push_location(next_fix)
            next_fix = next(fixes, None)
        pipeline.push_sample(sample)

    return pipeline.stop()


def run_live(config: TrackerConfig, args, history) -> object:
    """Run sources and the tracker worker on their own threads."""
    coordinator = SourceCoordinator()
    worker = TrackerWorker(config, clock=coordinator.clock)
    worker.start()

    imu_config = (IMUConfig.for_synthetic(seed=args.seed) if args.source == 'synthetic'
                  else IMUConfig.for_hardware())
    coordinator.register_source('imu', create_motion_source(imu_config, coordinator.clock, worker.submit_sample))

    if args.location != 'none':
        location_config = (LocationConfig.for_termux() if args.location == 'termux'
                           else LocationConfig.for_replay(seed=args.seed))
        coordinator.register_source(
            'location', create_location_source(location_config, coordinator.clock, worker.submit_fix)
        )

    def make_fallback():
        return SyntheticMotionSource(coordinator.clock, worker.submit_sample,
                                     IMUConfig.for_synthetic(seed=args.seed))

    stopping = False

    def _request_stop(sig, frame):
        nonlocal stopping
        logger.info("Stop requested")
        stopping = True

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    with coordinator:
        worker.post(Start(stance=Stance(args.stance), history=history, manual=not args.gesture))

        if imu_config.allow_synthetic_fallback:
            coordinator.start_with_fallback('imu', make_fallback)
        else:
            coordinator.start_source('imu')

        if 'location' in coordinator.sources:
            coordinator.start_optional('location')

        deadline = time.monotonic() + args.duration
        last_print = 0.0
        while not stopping and time.monotonic() < deadline:
            try:
                message = worker.outbox.get(timeout=0.2)
            except queue.Empty:
                continue
            if isinstance(message, Fault):
                logger.warning(f"⚠ {message.error}: {message.message}")
                silent = message.error == 'SensorUnavailable'
                if silent and imu_config.allow_synthetic_fallback and \
                        not isinstance(coordinator.sources['imu'], SyntheticMotionSource):
                    # Hardware answered but never delivered samples
                    coordinator.stop_source('imu')
                    coordinator.register_source('imu', make_fallback())
                    coordinator.start_source('imu')
            elif isinstance(message, Snapshot) and time.monotonic() - last_print >= 1.0:
                last_print = time.monotonic()
                _print_snapshot(message)

        worker.post(Stop())
        session = worker.wait_session_end(timeout=10.0)

    worker.shutdown()
    return session


# ------------------------------------------------------------------
# Output
# ------------------------------------------------------------------

def _print_snapshot(snap: Snapshot):
    print(f"  [{snap.state:<11}] t={snap.elapsed:6.1f}s  G={snap.g_force:4.2f}  "
          f"yaw={snap.yaw:+7.1f}°  events={snap.event_count:3d}  "
          f"speed={snap.current_speed:4.1f} m/s  {'rolling' if snap.is_rolling else 'off board'}")


def _print_summary(session):
    print()
    print("=" * 50)
    print(f"  Session {session.id}")
    print("=" * 50)
    print(f"  Duration      : {session.duration} s")
    print(f"  Events        : {len(session.events)}")
    print(f"  Labelled      : {session.total_tricks}")
    for label, count in sorted(session.trick_summary.items()):
        print(f"    {label:<20} x{count}")
    print(f"  Distance      : {session.total_distance:.0f} m")
    print(f"  Speed         : avg {session.avg_speed:.1f} / max {session.max_speed:.1f} m/s")
    print(f"  On board      : {session.time_on_board:.0f} s (off {session.time_off_board:.0f} s)")
    if session.best_trick:
        best = session.best_trick
        print(f"  Best trick    : {best.label or best.variant or best.kind.value} ({best.duration:.2f} s)")
    for e in session.events:
        angle = f" {e.turn_angle:+.0f}°" if e.turn_angle is not None else ''
        kind = e.variant or e.kind.value
        print(f"    {e.t:7.2f}s  {kind:<9}{angle:<7} G={e.intensity:4.2f}  {e.label or ''}")
    print()


# ------------------------------------------------------------------
# Main
# ------------------------------------------------------------------

def main():
    parser = argparse.ArgumentParser(
        description="Record a skate session from an IMU and location fixes.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--duration", type=float, default=30.0,
                        help="Seconds to record (default: 30).")
    parser.add_argument("--source", choices=("hardware", "synthetic"), default="hardware",
                        help="Motion source (default: hardware, synthetic if unavailable).")
    parser.add_argument("--location", choices=("termux", "replay", "none"), default="replay",
                        help="Location source (default: replay).")
    parser.add_argument("--taxonomy", choices=(TAXONOMY_TURNS, TAXONOMY_BOARD), default=TAXONOMY_TURNS,
                        help="Event taxonomy (default: turns).")
    parser.add_argument("--stance", choices=[s.value for s in Stance], default=Stance.REGULAR.value)
    parser.add_argument("--gesture", action="store_true",
                        help="Arm after calibration and wait for a double slap.")
    parser.add_argument("--seed", type=int, default=0, help="Synthetic source seed.")
    parser.add_argument("--fast", action="store_true",
                        help="Synthetic only: process the script without real-time pacing.")
    parser.add_argument("--db", default=StoreConfig.database_url,
                        help="SQLAlchemy database URL for session history.")
    parser.add_argument("--no-save", action="store_true", help="Do not persist the session.")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = TrackerConfig.for_board() if args.taxonomy == TAXONOMY_BOARD else TrackerConfig.for_turns()

    with SessionStore(StoreConfig(database_url=args.db)) as store:
        history = store.labeled_history()
        logger.info(f"Loaded {len(history)} labelled events from history")

        try:
            if args.fast:
                session = run_fast(config, args, history)
            else:
                session = run_live(config, args, history)
        except PermissionDenied as e:
            logger.error(f"✗ {e}")
            print("\n✗ No permission to read the motion sensor.")
            print("  Add your user to the i2c group or run with --source synthetic.")
            sys.exit(1)
        except TrackerError as e:
            logger.error(f"✗ Session failed: {e}")
            sys.exit(1)

        if session is None:
            print("\n✗ Tracking never started, nothing recorded.")
            sys.exit(1)

        if not args.no_save:
            store.append_session(session)
            logger.info(f"✓ Saved session {session.id}")

    _print_summary(session)


if __name__ == '__main__':
    main()
