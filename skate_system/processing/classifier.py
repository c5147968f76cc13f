"""
Trick Classifier
Nearest-neighbour labelling of new events against previously labelled ones

This is an illustrative heuristic, not a trained model: there is no
training phase, the "model" is simply the set of events the user has
labelled by hand in earlier sessions, and it only gets better as more
events are labelled.
"""

import logging
import uuid
from typing import Iterable, List, Optional, Sequence, Tuple

from skate_system.models import EventKind, MotionEvent, Session

from .config import TrackerConfig

logger = logging.getLogger(__name__)


def auto_group_id() -> str:
    """Fresh group id for an automatically labelled event."""
    return f"auto-{uuid.uuid4().hex[:8]}"


class TrickClassifier:
    """
    Labels significant events with the label of the closest historical event.

    Distance between two events:
        score = |intensity_a - intensity_b| + |rotation_a - rotation_b| / 100
    Rotation is down-weighted because its scale (deg/s) dwarfs G-force.
    The best match is accepted only if its score is below
    ``classifier_acceptance``. The history is read, never modified.
    """

    def __init__(self, config: Optional[TrackerConfig] = None):
        self.config = config if config else TrackerConfig()

    def is_significant(self, event: MotionEvent) -> bool:
        cfg = self.config
        if event.kind == EventKind.SLAP:
            return False
        if event.intensity > cfg.significant_intensity:
            return True
        if event.rotation > cfg.significant_rotation:
            return True
        return event.turn_angle is not None and abs(event.turn_angle) >= cfg.significant_turn_angle

    def score(self, event: MotionEvent, reference: MotionEvent) -> float:
        return (abs(event.intensity - reference.intensity) +
                abs(event.rotation - reference.rotation) / self.config.rotation_weight)

    def best_match(self, event: MotionEvent,
                   history: Sequence[MotionEvent]) -> Optional[Tuple[MotionEvent, float]]:
        best = None
        best_score = float('inf')
        for reference in history:
            if not reference.label:
                continue
            s = self.score(event, reference)
            if s < best_score:
                best, best_score = reference, s
        if best is None:
            return None
        return best, best_score

    def classify(self, event: MotionEvent, history: Sequence[MotionEvent]) -> Optional[str]:
        """
        Args:
            event: Newly detected event
            history: Previously labelled events

        Returns:
            The matched label, or None when the event is not significant,
            the history is empty, or no match is close enough
        """
        if not self.is_significant(event):
            return None

        match = self.best_match(event, history)
        if match is None:
            return None

        reference, s = match
        if s < self.config.classifier_acceptance:
            logger.debug(f"Classified {event.kind.value} at t={event.t:.2f}s as '{reference.label}' (score={s:.2f})")
            return reference.label

        logger.debug(f"No label for {event.kind.value} at t={event.t:.2f}s (best score={s:.2f})")
        return None

    def label_timeline(self, events: Iterable[MotionEvent],
                       history: Sequence[MotionEvent]) -> List[MotionEvent]:
        """
        Return a copy of the timeline with unlabeled significant events labelled.

        Each newly labelled event becomes its own group.
        """
        labelled = []
        for event in events:
            if not event.label:
                label = self.classify(event, history)
                if label:
                    event = event.with_label(label, group_id=auto_group_id(), is_group_start=True)
            labelled.append(event)
        return labelled


def labeled_history(sessions: Iterable[Session]) -> List[MotionEvent]:
    """Collect every labelled event from a list of sessions."""
    history = []
    for session in sessions:
        history.extend(session.labeled_events())
    return history
