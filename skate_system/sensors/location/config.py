"""
Location Source Configuration
"""

from dataclasses import dataclass
from typing import Optional

SOURCE_TERMUX = 'termux'
SOURCE_REPLAY = 'replay'


@dataclass
class LocationConfig:
    """Location source configuration parameters"""

    source: str = SOURCE_TERMUX  # 'termux' or 'replay'

    # termux-location polling
    command: str = 'termux-location'
    provider: str = 'gps'
    fallback_provider: str = 'network'
    poll_interval: float = 1.0  # seconds between requests
    max_request_duration: float = 5.0  # kill requests that stall longer
    provider_fallback_seconds: float = 60.0  # switch provider after this long without a fix
    quality_threshold: float = 100.0  # reject fixes with accuracy worse than this (m)

    # Replay / synthetic route
    realtime: bool = True
    route_speed: float = 4.0  # m/s
    route_heading: float = 45.0  # degrees from north
    route_origin: tuple = (52.3676, 4.9041)
    seed: Optional[int] = None

    @classmethod
    def for_termux(cls) -> 'LocationConfig':
        return cls(source=SOURCE_TERMUX)

    @classmethod
    def for_replay(cls, seed: Optional[int] = 0, realtime: bool = True) -> 'LocationConfig':
        """
        Create a configuration for replaying fixes instead of polling a device.

        Returns:
            LocationConfig with source='replay'.
        """
        return cls(source=SOURCE_REPLAY, seed=seed, realtime=realtime)
