"""
Location Sources
"""

from .config import LocationConfig, SOURCE_REPLAY, SOURCE_TERMUX
from .collector import ReplayLocationSource, TermuxLocationCollector, parse_fix, synthetic_route


def create_location_source(config: LocationConfig, clock, sink):
    """Build the location source the config selects."""
    if config.source == SOURCE_TERMUX:
        return TermuxLocationCollector(clock, sink, config)
    if config.source == SOURCE_REPLAY:
        return ReplayLocationSource(clock, sink, config=config)
    raise ValueError(f"Unknown location source: {config.source}")


__all__ = [
    'LocationConfig',
    'SOURCE_REPLAY',
    'SOURCE_TERMUX',
    'ReplayLocationSource',
    'TermuxLocationCollector',
    'create_location_source',
    'parse_fix',
    'synthetic_route',
]
