"""
IMU Motion Sources
MPU6050 over I2C, plus a seeded synthetic source
"""

from .config import IMUConfig, SOURCE_HARDWARE, SOURCE_SYNTHETIC
from .collector import MPU6050Collector
from .synthetic import Maneuver, SyntheticMotionSource


def create_motion_source(config: IMUConfig, clock, sink):
    """Build the motion source the config selects."""
    if config.source == SOURCE_SYNTHETIC:
        return SyntheticMotionSource(clock, sink, config)
    if config.source == SOURCE_HARDWARE:
        return MPU6050Collector(clock, sink, config)
    raise ValueError(f"Unknown motion source: {config.source}")


__all__ = [
    'IMUConfig',
    'SOURCE_HARDWARE',
    'SOURCE_SYNTHETIC',
    'MPU6050Collector',
    'Maneuver',
    'SyntheticMotionSource',
    'create_motion_source',
]
