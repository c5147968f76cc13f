"""
Worker Messages
The closed vocabulary exchanged between the tracker worker and its owner

Inbound:  Start, Stop, Sample, Location
Outbound: Snapshot, SessionEnd, Fault
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from skate_system.models import LocationFix, MotionEvent, SensorSample, Session, Stance


@dataclass(frozen=True)
class Start:
    """Begin calibration; tracking starts manually or on the double-slap gesture."""
    stance: Stance = Stance.REGULAR
    history: List[MotionEvent] = field(default_factory=list)
    manual: bool = True  # False waits for the double slap once armed


@dataclass(frozen=True)
class Stop:
    pass


@dataclass(frozen=True)
class Sample:
    sample: SensorSample


@dataclass(frozen=True)
class Location:
    fix: LocationFix


@dataclass(frozen=True)
class Snapshot:
    """Throttled live view of a running pipeline"""
    state: str
    elapsed: float
    g_force: float
    yaw: float
    event_count: int
    current_speed: float
    max_speed: float
    distance: float
    is_rolling: bool
    counts: Dict[str, int] = field(default_factory=dict)
    last_event: Optional[MotionEvent] = None


@dataclass(frozen=True)
class SessionEnd:
    session: Optional[Session]


@dataclass(frozen=True)
class Fault:
    """A data source degraded; the pipeline keeps running."""
    error: str
    message: str
