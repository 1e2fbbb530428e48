# singularity/placement.py
"""
Terminal placement registry.

Saved placements are keyed by landmark class name and stored relative to
the landmark's frame, so they can be rebuilt after a wipe when the same
landmarks come back at different absolute positions. Only one placement
is kept per class: when several live terminals resolve to the same class
on capture, the one nearest its landmark wins and the rest are reported.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, TYPE_CHECKING

import config
from . import transform
from .errors import PlacementError
from .landmarks import Landmark, nearest_landmark
from .records import TerminalLocation
from .transform import Vector3
from .definitions import landmarks as landmark_defs

if TYPE_CHECKING:
    from .store import DurableStore
    from .world import World

log = logging.getLogger(__name__)

TerminalListener = Callable[["TerminalInstance"], None]


class TerminalInstance:
    """A live terminal entity. Never persisted."""
    def __init__(self, entity_id: int, class_name: str, position: Vector3, yaw: float,
                 landmark: Optional[Landmark] = None):
        self.entity_id = entity_id
        self.class_name = class_name
        self.position = position
        self.yaw = yaw
        self.landmark = landmark

    def __repr__(self) -> str:
        return f"<Terminal {self.entity_id} '{self.class_name}' at {self.position}>"


@dataclass
class CaptureReport:
    saved: Dict[str, TerminalLocation] = field(default_factory=dict)
    merged: Dict[str, int] = field(default_factory=dict)   # class name -> terminals discarded
    unresolved: int = 0                                     # terminals with no landmark in the world

    @property
    def warnings(self) -> List[str]:
        return [f"Found {count + 1} terminals at {name}, saved only the closest one."
                for name, count in sorted(self.merged.items())]


class PlacementRegistry:
    def __init__(self, host: "World", store: Optional["DurableStore"] = None,
                 landmarks: Iterable[Landmark] = ()):
        self.host = host
        self.store = store
        self.landmarks: List[Landmark] = list(landmarks)
        self.records: Dict[str, List[TerminalLocation]] = {}
        self.terminals: Dict[int, TerminalInstance] = {}
        self.removal_listeners: List[TerminalListener] = []
        self._restoring = False

    # --- Loading & Persistence ---
    def load(self, documents: Dict[str, List[Dict[str, Any]]]) -> int:
        records: Dict[str, List[TerminalLocation]] = {}
        for class_name, locations in (documents or {}).items():
            parsed = []
            for location in locations or []:
                try:
                    parsed.append(TerminalLocation.from_dict(location))
                except (TypeError, ValueError):
                    log.warning("Skipping malformed placement for %s: %r", class_name, location)
            records[class_name] = parsed
        self.records = records
        log.info("Loaded saved terminal placements for %d landmark classes.", len(records))
        return sum(len(v) for v in records.values())

    def set_landmarks(self, landmarks: Iterable[Landmark]):
        self.landmarks = list(landmarks)

    def to_documents(self) -> Dict[str, List[Dict[str, Any]]]:
        return {name: [loc.to_dict() for loc in locations] for name, locations in self.records.items()}

    def persist(self):
        if self.store is not None:
            self.store.save_placements(self.to_documents())

    @property
    def has_records(self) -> bool:
        return any(self.records.values())

    # --- Capture / Restore / Clear ---
    def capture_layout(self) -> CaptureReport:
        """Replaces saved placements with the current live layout."""
        report = CaptureReport()
        candidates: Dict[str, List[Tuple[float, TerminalInstance, Landmark]]] = {}

        for terminal in self.terminals.values():
            landmark, distance = nearest_landmark(terminal.position, self.landmarks)
            if landmark is None:
                report.unresolved += 1
                continue
            candidates.setdefault(landmark.class_name, []).append((distance, terminal, landmark))

        records: Dict[str, List[TerminalLocation]] = {}
        for class_name, entries in candidates.items():
            # min() keeps the first of equal distances
            distance, terminal, landmark = min(entries, key=lambda entry: entry[0])
            if len(entries) > 1:
                report.merged[class_name] = len(entries) - 1
                log.warning("Found %d terminals at %s, saving only the closest one.", len(entries), class_name)
            location = TerminalLocation(
                relative_position=transform.to_relative(landmark.frame, terminal.position),
                relative_yaw=transform.yaw_to_relative(landmark.frame, terminal.yaw),
            )
            records[class_name] = [location]
            report.saved[class_name] = location

        self.records = records
        self.persist()
        log.info("Captured %d terminal placement(s); %d merged, %d without a landmark.",
                 len(report.saved), sum(report.merged.values()), report.unresolved)
        return report

    def restore_all(self) -> int:
        """Spawns a terminal for every saved placement at every matching live landmark."""
        if self._restoring:
            raise PlacementError("Placement restore is already running.")
        if not self.has_records:
            log.info("No saved terminal placements to restore.")
            return 0

        self._restoring = True
        spawned = 0
        try:
            live_classes = {landmark.class_name for landmark in self.landmarks}
            for class_name in sorted(set(self.records) - live_classes):
                log.info("No live landmark for saved class '%s', skipping its placements.", class_name)

            for landmark in self.landmarks:
                for location in self.records.get(landmark.class_name, []):
                    if location.relative_position.is_zero():
                        log.info("Skipping unset placement for %s.", landmark.class_name)
                        continue
                    position = transform.to_world(landmark.frame, location.relative_position)
                    yaw = transform.yaw_to_world(landmark.frame, location.relative_yaw)
                    rel_y = location.relative_position.y
                    if rel_y < config.SANE_HEIGHT_MIN or rel_y > config.SANE_HEIGHT_MAX:
                        position = self.host.snap_to_ground(position)
                    self.spawn_terminal(position, yaw, landmark.class_name, landmark)
                    spawned += 1
        finally:
            self._restoring = False

        log.info("Restored %d terminal(s) from saved placements.", spawned)
        return spawned

    def clear_all(self):
        """Forgets every saved placement. Live terminals stay where they are."""
        self.records = {}
        self.persist()
        log.info("Cleared all saved terminal placements.")

    # --- Live Terminals ---
    def spawn_terminal(self, position: Vector3, yaw: float, class_name: str,
                       landmark: Optional[Landmark] = None) -> TerminalInstance:
        entity_id = self.host.spawn_entity(config.TERMINAL_PREFAB, position, yaw)
        terminal = TerminalInstance(entity_id, class_name, position, transform.normalize_yaw(yaw), landmark)
        self.terminals[entity_id] = terminal
        log.debug("Spawned terminal %s.", terminal)
        return terminal

    def place_at(self, position: Vector3, facing_yaw: float, snap_to_ground: bool = True) -> Tuple[TerminalInstance, str]:
        """
        Places a terminal by hand. Facing snaps to a cardinal relative to a
        landmark within range, or to a world cardinal otherwise.
        Returns the terminal and a description of its facing.
        """
        landmark, distance = nearest_landmark(position, self.landmarks)
        if landmark is not None and distance < config.LANDMARK_SNAP_RADIUS:
            relative = transform.snap_yaw_to_cardinal(transform.yaw_to_relative(landmark.frame, facing_yaw))
            yaw = transform.yaw_to_world(landmark.frame, relative)
            facing = f"{transform.cardinal_name(relative)} (relative to {landmark.class_name})"
        else:
            yaw = transform.snap_yaw_to_cardinal(facing_yaw)
            facing = f"{transform.cardinal_name(yaw)} (world direction)"

        class_name = landmark.class_name if landmark is not None else landmark_defs.CUSTOM_CLASS
        if snap_to_ground:
            position = self.host.snap_to_ground(position)
        terminal = self.spawn_terminal(position, yaw, class_name, landmark)
        log.info("Terminal placed at %s facing %s.", class_name, facing)
        return terminal, facing

    def get_terminal(self, entity_id: int) -> Optional[TerminalInstance]:
        return self.terminals.get(entity_id)

    def nearest_terminal(self, position: Vector3) -> Tuple[Optional[TerminalInstance], float]:
        nearest, nearest_distance = None, float('inf')
        for terminal in self.terminals.values():
            distance = position.distance_to(terminal.position)
            if distance < nearest_distance:
                nearest, nearest_distance = terminal, distance
        return nearest, nearest_distance

    def remove_terminal(self, entity_id: int) -> bool:
        terminal = self.terminals.pop(entity_id, None)
        if terminal is None:
            return False
        for listener in list(self.removal_listeners):
            try:
                listener(terminal)
            except Exception:
                log.exception("Terminal removal listener failed for %s.", terminal)
        self.host.kill_entity(entity_id)
        return True

    def remove_nearest(self, position: Vector3, max_distance: float = config.TERMINAL_REMOVE_RADIUS) -> Optional[TerminalInstance]:
        terminal, distance = self.nearest_terminal(position)
        if terminal is None or distance >= max_distance:
            return None
        self.remove_terminal(terminal.entity_id)
        return terminal

    def remove_all(self) -> int:
        """Kills every live terminal. Saved placements are untouched."""
        entity_ids = list(self.terminals)
        for entity_id in entity_ids:
            self.remove_terminal(entity_id)
        if entity_ids:
            log.info("Removed %d live terminal(s).", len(entity_ids))
        return len(entity_ids)

    def respawn_saved(self) -> Tuple[int, int]:
        """Removes every live terminal, then rebuilds the saved ones. Returns (removed, spawned)."""
        removed = self.remove_all()
        return removed, self.restore_all()

    def summary(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for terminal in self.terminals.values():
            counts[terminal.class_name] = counts.get(terminal.class_name, 0) + 1
        return dict(sorted(counts.items()))
