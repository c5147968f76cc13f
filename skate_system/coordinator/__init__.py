"""
Skate System Source Coordinator
Lifecycle management of sample sources on a shared monotonic clock
"""

from .clock import CentralClock
from .coordinator import SourceCoordinator

__all__ = [
    'CentralClock',
    'SourceCoordinator',
]
