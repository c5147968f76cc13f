"""
Trick Library
Ordered trick-name vocabulary offered by the label editor

Only the human-facing label editor reads this list; the automatic
classifier matches against labelled events, never against names.
"""

import logging
import re
from dataclasses import dataclass, asdict
from typing import List, Optional

logger = logging.getLogger(__name__)


@dataclass
class Motion:
    id: str
    name: str


DEFAULT_MOTIONS = [
    Motion('push', 'Push'),
    Motion('drop-in', 'Drop In'),
    Motion('pump', 'Pump'),
    Motion('bs-turn', 'BS Turn'),
    Motion('fs-turn', 'FS Turn'),
    Motion('bs-ollie-180', 'BS Ollie 180'),
    Motion('fs-ollie-180', 'FS Ollie 180'),
    Motion('bs-50-50', 'BS 50/50'),
    Motion('fs-50-50', 'FS 50/50'),
    Motion('tail-tap', 'Tail Tap'),
    Motion('fakie-rock', 'Fakie Rock'),
    Motion('rock-n-roll', 'Rock n Roll'),
    Motion('bs-grind', 'BS Grind'),
    Motion('fs-grind', 'FS Grind'),
    Motion('ollie-to-fakie', 'Ollie to Fakie'),
    Motion('fakie-ollie', 'Fakie Ollie'),
    Motion('fakie-disaster', 'Fakie Disaster'),
    Motion('fs-disaster', 'FS Disaster'),
    Motion('bs-disaster', 'BS Disaster'),
    Motion('nollie-bs-180', 'Nollie BS 180'),
]


def slugify(name: str) -> str:
    return re.sub(r'\s+', '-', name.strip().lower())


class TrickLibrary:
    """Ordered set of known trick names (newest first)"""

    def __init__(self, motions: Optional[List[Motion]] = None):
        source = DEFAULT_MOTIONS if motions is None else motions
        self.motions: List[Motion] = [Motion(m.id, m.name) for m in source]

    def add(self, name: str) -> Optional[Motion]:
        """
        Add a trick name.

        Returns:
            The new Motion, or None if the name is blank or already present
        """
        name = name.strip()
        if not name:
            return None
        motion = Motion(slugify(name), name)
        if any(m.id == motion.id for m in self.motions):
            return None
        self.motions.insert(0, motion)
        logger.info(f"Added trick '{name}' to library")
        return motion

    def remove(self, motion_id: str) -> bool:
        before = len(self.motions)
        self.motions = [m for m in self.motions if m.id != motion_id]
        return len(self.motions) != before

    def names(self) -> List[str]:
        return [m.name for m in self.motions]

    def __contains__(self, name: str) -> bool:
        return any(m.id == slugify(name) for m in self.motions)

    def __len__(self):
        return len(self.motions)

    def to_list(self) -> List[dict]:
        return [asdict(m) for m in self.motions]

    @classmethod
    def from_list(cls, data: List[dict]) -> 'TrickLibrary':
        return cls([Motion(d['id'], d['name']) for d in data])
