"""
Skate System
Skateboard session tracking from a handheld IMU and location fixes

Layers:
- sensors: MPU6050 / synthetic motion and termux / replay location sources
- coordinator: shared monotonic clock and source lifecycle
- processing: calibration, conditioning, gesture, event detection, classification
- session: aggregation, label editing, trick library and persistence
- pipeline / worker: the per-session state machine and the thread that owns it
"""

from .errors import (
    TrackerError, PermissionDenied, SensorUnavailable, ClockAnomaly,
    LocationUnavailable, PersistenceCorrupt,
)
from .models import (
    EventKind, Stance, SensorSample, GravityVector, ConditionedSample,
    MotionEvent, LocationFix, Session,
)
from .pipeline import SessionPipeline, TrackerState
from .worker import TrackerWorker

__all__ = [
    # Errors
    'TrackerError',
    'PermissionDenied',
    'SensorUnavailable',
    'ClockAnomaly',
    'LocationUnavailable',
    'PersistenceCorrupt',

    # Data model
    'EventKind',
    'Stance',
    'SensorSample',
    'GravityVector',
    'ConditionedSample',
    'MotionEvent',
    'LocationFix',
    'Session',

    # Runtime
    'SessionPipeline',
    'TrackerState',
    'TrackerWorker',
]

__version__ = '1.0.0'
