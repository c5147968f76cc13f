"""
Skate System Sample Sources

Available Sources:
- MPU6050: 3-axis accelerometer and gyroscope over I2C (100 Hz)
- Synthetic: seeded, scripted motion for development without hardware
- termux-location: phone GPS / network fixes (~1 Hz)
- Replay: recorded or generated location fixes

All sources:
- Push samples to a non-blocking sink callback from their own thread
- Stamp samples from the coordinator's central clock
- Map hardware failures onto the tracker error types
"""

from .imu import (
    IMUConfig, MPU6050Collector, SyntheticMotionSource, Maneuver, create_motion_source,
)
from .location import (
    LocationConfig, ReplayLocationSource, TermuxLocationCollector,
    create_location_source, synthetic_route,
)

__all__ = [
    # Motion
    'IMUConfig',
    'MPU6050Collector',
    'SyntheticMotionSource',
    'Maneuver',
    'create_motion_source',

    # Location
    'LocationConfig',
    'ReplayLocationSource',
    'TermuxLocationCollector',
    'create_location_source',
    'synthetic_route',
]
