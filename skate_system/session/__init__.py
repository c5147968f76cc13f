"""
Skate System Session Layer
Aggregation, label editing and persistence of session records
"""

from .aggregator import SessionAggregator, haversine_distance, classify_activity
from .config import StoreConfig, APP_NAMESPACE
from .labels import apply_label, remove_label, relabel, recompute_summary
from .library import TrickLibrary, Motion, DEFAULT_MOTIONS
from .store import SessionStore, decode_history, encode_history

__all__ = [
    'SessionAggregator',
    'haversine_distance',
    'classify_activity',
    'StoreConfig',
    'APP_NAMESPACE',
    'apply_label',
    'remove_label',
    'relabel',
    'recompute_summary',
    'TrickLibrary',
    'Motion',
    'DEFAULT_MOTIONS',
    'SessionStore',
    'decode_history',
    'encode_history',
]
