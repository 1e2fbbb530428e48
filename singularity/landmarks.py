# singularity/landmarks.py
"""
Landmark instances and their classification into stable class names.
"""
from __future__ import annotations
import math
import re
import logging
from typing import Any, Dict, Iterable, Optional, Tuple

from .transform import Frame, Vector3
from .definitions import landmarks as landmark_defs

log = logging.getLogger(__name__)

_SUFFIX_RE = re.compile(landmark_defs.INSTANCE_SUFFIX_PATTERN)


class Landmark:
    """A live landmark (monument) in the current world."""
    def __init__(self, name: str, position: Vector3, yaw: float = 0.0,
                 display_name: Optional[str] = None, dbid: Optional[int] = None):
        self.dbid = dbid
        self.name = name
        self.display_name = display_name
        self.position = position
        self.yaw = yaw
        self.class_name: str = classify_landmark(name, display_name)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Landmark":
        """Creates a landmark from a `landmarks` table row."""
        return cls(
            name=row['name'],
            position=Vector3(row.get('pos_x', 0.0), row.get('pos_y', 0.0), row.get('pos_z', 0.0)),
            yaw=row.get('yaw', 0.0) or 0.0,
            display_name=row.get('display_name'),
            dbid=row.get('id'),
        )

    @property
    def frame(self) -> Frame:
        return Frame(self.position, self.yaw)

    def __repr__(self) -> str:
        return f"<Landmark '{self.class_name}' at {self.position}>"


def classify_landmark(raw_name: str, display_name: Optional[str] = None) -> str:
    """Maps a raw landmark name to its canonical class name."""
    lowered = (raw_name or "").lower()
    for canonical, any_of, all_of in landmark_defs.CLASSIFICATION_RULES:
        if any(part in lowered for part in any_of) and all(part in lowered for part in all_of):
            return canonical

    fallback = display_name or raw_name or ""
    return _SUFFIX_RE.sub("", fallback)


def nearest_landmark(position: Vector3, candidates: Iterable[Landmark]) -> Tuple[Optional[Landmark], float]:
    """
    Finds the landmark closest to a position.
    Ties keep the first one encountered. Returns (None, inf) when there are no candidates.
    """
    nearest: Optional[Landmark] = None
    nearest_distance = math.inf
    for landmark in candidates:
        distance = position.distance_to(landmark.position)
        if distance < nearest_distance:
            nearest = landmark
            nearest_distance = distance
    return nearest, nearest_distance
