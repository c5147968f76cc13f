"""
Skate System Data Model
Samples, events, location fixes and the finished Session record
"""

import math
import uuid
from dataclasses import dataclass, field, asdict, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

STANDARD_GRAVITY = 9.81  # m/s²


class EventKind(str, Enum):
    """Kinds of motion event the detector can emit"""
    TURN = 'turn'
    IMPACT = 'impact'
    AIRTIME = 'airtime'
    GRIND = 'grind'
    PUMP = 'pump'
    SLAP = 'slap'


class Stance(str, Enum):
    REGULAR = 'regular'
    GOOFY = 'goofy'


@dataclass(frozen=True)
class SensorSample:
    """
    One raw inertial reading.

    Acceleration includes gravity (m/s²). Rotation rates follow the
    DeviceMotion convention (deg/s): alpha about Z, beta about X,
    gamma about Y. ``t`` is a monotonic instant in seconds.
    """
    ax: float
    ay: float
    az: float
    rot_alpha: float
    rot_beta: float
    rot_gamma: float
    t: float

    @property
    def accel_magnitude(self) -> float:
        return math.sqrt(self.ax ** 2 + self.ay ** 2 + self.az ** 2)


@dataclass(frozen=True)
class GravityVector:
    """Calibrated gravity reference (m/s²), frozen once calibration ends"""
    x: float
    y: float
    z: float

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.x ** 2 + self.y ** 2 + self.z ** 2)


@dataclass(frozen=True)
class ConditionedSample:
    g_force: float
    rotation_magnitude: float
    yaw_rate: float           # deg/s about the vertical, after the noise floor
    accumulated_yaw: float    # degrees
    dt: float
    t: float


@dataclass(frozen=True)
class MotionEvent:
    """
    A discrete motion event on the session timeline.

    ``t`` is seconds since tracking started. ``variant`` refines the kind
    (e.g. 'ollie', 'air', 'slam' for airtime; 'fs_grind', 'bs_grind',
    'stall' for grinds) and ``duration`` carries airtime / grind length.
    Instances are only ever replaced, never mutated.
    """
    kind: EventKind
    t: float
    intensity: float
    rotation: float = 0.0
    turn_angle: Optional[float] = None
    label: Optional[str] = None
    is_group_start: bool = False
    group_id: Optional[str] = None
    variant: Optional[str] = None
    duration: float = 0.0

    def with_label(self, label: Optional[str], group_id: Optional[str] = None,
                   is_group_start: bool = True) -> 'MotionEvent':
        return replace(self, label=label, group_id=group_id, is_group_start=is_group_start)

    def to_dict(self) -> dict:
        data = asdict(self)
        data['kind'] = self.kind.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'MotionEvent':
        return cls(
            kind=EventKind(data['kind']),
            t=float(data['t']),
            intensity=float(data['intensity']),
            rotation=float(data.get('rotation', 0.0)),
            turn_angle=data.get('turn_angle'),
            label=data.get('label'),
            is_group_start=bool(data.get('is_group_start', False)),
            group_id=data.get('group_id'),
            variant=data.get('variant'),
            duration=float(data.get('duration', 0.0)),
        )


@dataclass(frozen=True)
class LocationFix:
    lat: float
    lon: float
    t: float                                   # seconds, same clock as samples
    speed_meters_per_sec: Optional[float] = None
    accuracy: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'LocationFix':
        return cls(
            lat=float(data['lat']),
            lon=float(data['lon']),
            t=float(data['t']),
            speed_meters_per_sec=data.get('speed_meters_per_sec'),
            accuracy=data.get('accuracy'),
        )


@dataclass
class Session:
    """
    Record of one tracked skate session.

    Mutated only by the SessionAggregator while tracking (and by the label
    editor afterwards); serialised with ``to_dict`` for persistence.
    """
    id: str = field(default_factory=lambda: f"session-{uuid.uuid4()}")
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration: int = 0
    events: List[MotionEvent] = field(default_factory=list)
    trick_summary: Dict[str, int] = field(default_factory=dict)
    total_tricks: int = 0
    max_speed: float = 0.0
    avg_speed: float = 0.0
    path: List[LocationFix] = field(default_factory=list)

    stance: Stance = Stance.REGULAR
    total_distance: float = 0.0
    time_on_board: float = 0.0
    time_off_board: float = 0.0
    best_trick: Optional[MotionEvent] = None
    longest_grind: float = 0.0

    def labeled_events(self) -> List[MotionEvent]:
        return [e for e in self.events if e.label]

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'start_time': self.start_time.isoformat(),
            'duration': self.duration,
            'events': [e.to_dict() for e in self.events],
            'trick_summary': dict(self.trick_summary),
            'total_tricks': self.total_tricks,
            'max_speed': self.max_speed,
            'avg_speed': self.avg_speed,
            'path': [p.to_dict() for p in self.path],
            'stance': self.stance.value,
            'total_distance': self.total_distance,
            'time_on_board': self.time_on_board,
            'time_off_board': self.time_off_board,
            'best_trick': self.best_trick.to_dict() if self.best_trick else None,
            'longest_grind': self.longest_grind,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Session':
        best = data.get('best_trick')
        return cls(
            id=data['id'],
            start_time=datetime.fromisoformat(data['start_time']),
            duration=int(data.get('duration', 0)),
            events=[MotionEvent.from_dict(e) for e in data.get('events', [])],
            trick_summary={k: int(v) for k, v in data.get('trick_summary', {}).items()},
            total_tricks=int(data.get('total_tricks', 0)),
            max_speed=float(data.get('max_speed', 0.0)),
            avg_speed=float(data.get('avg_speed', 0.0)),
            path=[LocationFix.from_dict(p) for p in data.get('path', [])],
            stance=Stance(data.get('stance', Stance.REGULAR.value)),
            total_distance=float(data.get('total_distance', 0.0)),
            time_on_board=float(data.get('time_on_board', 0.0)),
            time_off_board=float(data.get('time_off_board', 0.0)),
            best_trick=MotionEvent.from_dict(best) if best else None,
            longest_grind=float(data.get('longest_grind', 0.0)),
        )
