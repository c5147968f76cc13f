"""
Label Editing
The one permitted post-hoc mutation of a finished session

Every edit rebuilds the trick summary from the timeline, so
sum(trick_summary.values()) == total_tricks holds after any sequence of
edits. A summary entry counts labelled group-start events.
"""

import logging
import uuid
from collections import Counter
from typing import Iterable, List

from skate_system.models import Session

logger = logging.getLogger(__name__)


def recompute_summary(session: Session) -> Session:
    """Rebuild trick_summary and total_tricks from the timeline."""
    counts = Counter(e.label for e in session.events if e.label and e.is_group_start)
    session.trick_summary = dict(counts)
    session.total_tricks = sum(counts.values())
    return session


def _checked_indices(session: Session, indices: Iterable[int]) -> List[int]:
    ordered = sorted(set(indices))
    for idx in ordered:
        if idx < 0 or idx >= len(session.events):
            raise IndexError(f"Event index {idx} out of range (timeline has {len(session.events)} events)")
    return ordered


def apply_label(session: Session, indices: Iterable[int], label: str) -> Session:
    """
    Label the selected events as one trick.

    The earliest selected event becomes the group start; all selected
    events share a new group id.

    Args:
        session: Session to edit (modified in place)
        indices: Timeline indices of the events forming the trick
        label: Trick name

    Returns:
        The edited session
    """
    label = label.strip()
    if not label:
        raise ValueError("Label must not be empty")

    ordered = _checked_indices(session, indices)
    if not ordered:
        return session

    group_id = f"group-{uuid.uuid4().hex[:8]}"
    touched_groups = set()
    for position, idx in enumerate(ordered):
        old = session.events[idx]
        if old.group_id:
            touched_groups.add(old.group_id)
        session.events[idx] = old.with_label(label, group_id=group_id, is_group_start=(position == 0))

    for old_group in touched_groups:
        _repair_group(session, old_group)

    logger.info(f"Labelled {len(ordered)} event(s) as '{label}' in {session.id}")
    return recompute_summary(session)


def remove_label(session: Session, indices: Iterable[int]) -> Session:
    """Clear the label of the selected events."""
    ordered = _checked_indices(session, indices)
    touched_groups = set()
    for idx in ordered:
        old = session.events[idx]
        if old.group_id:
            touched_groups.add(old.group_id)
        session.events[idx] = old.with_label(None, group_id=None, is_group_start=False)

    for group_id in touched_groups:
        _repair_group(session, group_id)

    logger.info(f"Removed labels from {len(ordered)} event(s) in {session.id}")
    return recompute_summary(session)


def relabel(session: Session, index: int, label: str) -> Session:
    """Rename the trick the event at ``index`` belongs to (its whole group)."""
    label = label.strip()
    if not label:
        raise ValueError("Label must not be empty")

    (idx,) = _checked_indices(session, [index])
    target = session.events[idx]
    if not target.label:
        return apply_label(session, [idx], label)

    members = [i for i, e in enumerate(session.events)
               if target.group_id and e.group_id == target.group_id] or [idx]
    for i in members:
        e = session.events[i]
        session.events[i] = e.with_label(label, group_id=e.group_id, is_group_start=e.is_group_start)

    logger.info(f"Relabelled '{target.label}' -> '{label}' ({len(members)} event(s)) in {session.id}")
    return recompute_summary(session)


def _repair_group(session: Session, group_id: str):
    """Make sure a surviving group still has exactly one group start."""
    members = [i for i, e in enumerate(session.events) if e.group_id == group_id and e.label]
    if not members:
        return
    for position, i in enumerate(members):
        e = session.events[i]
        session.events[i] = e.with_label(e.label, group_id=group_id, is_group_start=(position == 0))
