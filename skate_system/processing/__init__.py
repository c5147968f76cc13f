"""
Skate System Processing
Signal processing chain for one tracking session

Components (leaves first):
- CalibrationUnit: gravity reference from a short still window
- SignalConditioner: G-force, rotation magnitude, gravity-projected yaw
- GestureTrigger: double-slap hands-free start
- EventDetector: turn / impact or airtime / grind / pump events
- TrickClassifier: nearest-neighbour labelling from labelled history

Usage:
    config = TrackerConfig.for_turns()
    gravity = calibrate(samples, config=config)
    conditioner = SignalConditioner(gravity, config)
    detector = EventDetector(config)
    for sample in samples:
        events = detector.update(conditioner.process(sample), t_rel)
"""

from .config import TrackerConfig, TAXONOMY_TURNS, TAXONOMY_BOARD
from .calibration import CalibrationUnit, calibrate
from .conditioner import SignalConditioner
from .gesture import GestureTrigger
from .detector import EventDetector, TurnDetector, ImpactDetector, BoardTrickDetector
from .classifier import TrickClassifier, auto_group_id, labeled_history

__all__ = [
    'TrackerConfig',
    'TAXONOMY_TURNS',
    'TAXONOMY_BOARD',
    'CalibrationUnit',
    'calibrate',
    'SignalConditioner',
    'GestureTrigger',
    'EventDetector',
    'TurnDetector',
    'ImpactDetector',
    'BoardTrickDetector',
    'TrickClassifier',
    'labeled_history',
    'auto_group_id',
]
