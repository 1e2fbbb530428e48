# singularity/records.py
"""
Durable record types. Each converts to and from the plain JSON document
stored in the database.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from . import utils
from .definitions import tiers as tier_defs
from .transform import Vector3, normalize_yaw


@dataclass
class ItemRecord:
    """A stored item stack and, recursively, what it holds."""
    item_id: int
    amount: int
    skin: int = 0
    condition: float = 1.0
    position: int = 0
    text: Optional[str] = None
    name: Optional[str] = None
    ammo: int = 0
    ammo_type: Optional[str] = None
    contents: List["ItemRecord"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_id": self.item_id,
            "amount": self.amount,
            "skin": self.skin,
            "condition": self.condition,
            "position": self.position,
            "text": self.text,
            "name": self.name,
            "ammo": self.ammo,
            "ammo_type": self.ammo_type,
            "contents": [child.to_dict() for child in self.contents],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ItemRecord":
        return cls(
            item_id=int(data["item_id"]),
            amount=int(data.get("amount", 1)),
            skin=int(data.get("skin", 0) or 0),
            condition=float(data.get("condition", 1.0)),
            position=int(data.get("position", 0)),
            text=data.get("text"),
            name=data.get("name"),
            ammo=int(data.get("ammo", 0) or 0),
            ammo_type=data.get("ammo_type"),
            contents=[cls.from_dict(child) for child in data.get("contents") or []],
        )

    def total_items(self) -> int:
        return 1 + sum(child.total_items() for child in self.contents)


@dataclass
class PlayerStorageRecord:
    """One player's stored items, tier and wipe history."""
    player_id: int
    items: List[ItemRecord] = field(default_factory=list)
    storage_tier: int = tier_defs.MIN_TIER
    wipes_survived_total: int = 0
    wipes_at_current_tier: int = 0
    first_created: Optional[datetime] = None
    last_accessed: Optional[datetime] = None
    tier_changed_at: Optional[datetime] = None
    last_wipe_counted_at: Optional[datetime] = None

    @classmethod
    def new(cls, player_id: int, now: Optional[datetime] = None) -> "PlayerStorageRecord":
        now = now or utils.utc_now()
        return cls(player_id=player_id, first_created=now, last_accessed=now)

    def set_tier(self, tier: int, now: Optional[datetime] = None):
        """Moves to a new tier. Any tier change restarts the unpaid wipe count."""
        self.storage_tier = tier_defs.clamp_tier(tier)
        self.wipes_at_current_tier = 0
        self.tier_changed_at = now or utils.utc_now()

    def total_items(self) -> int:
        return sum(record.total_items() for record in self.items)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player_id": self.player_id,
            "items": [record.to_dict() for record in self.items],
            "storage_tier": self.storage_tier,
            "wipes_survived_total": self.wipes_survived_total,
            "wipes_at_current_tier": self.wipes_at_current_tier,
            "first_created": utils.to_iso(self.first_created),
            "last_accessed": utils.to_iso(self.last_accessed),
            "tier_changed_at": utils.to_iso(self.tier_changed_at),
            "last_wipe_counted_at": utils.to_iso(self.last_wipe_counted_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlayerStorageRecord":
        return cls(
            player_id=int(data["player_id"]),
            items=[ItemRecord.from_dict(item) for item in data.get("items") or []],
            storage_tier=tier_defs.clamp_tier(data.get("storage_tier", tier_defs.MIN_TIER)),
            wipes_survived_total=max(0, int(data.get("wipes_survived_total", 0))),
            wipes_at_current_tier=max(0, int(data.get("wipes_at_current_tier", 0))),
            first_created=utils.from_iso(data.get("first_created")),
            last_accessed=utils.from_iso(data.get("last_accessed")),
            tier_changed_at=utils.from_iso(data.get("tier_changed_at")),
            last_wipe_counted_at=utils.from_iso(data.get("last_wipe_counted_at")),
        )


@dataclass
class TerminalLocation:
    """A terminal placement relative to a landmark frame."""
    relative_position: Vector3
    relative_yaw: float = 0.0

    def __post_init__(self):
        self.relative_yaw = normalize_yaw(self.relative_yaw)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "relative_position": self.relative_position.to_dict(),
            "relative_yaw": self.relative_yaw,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TerminalLocation":
        return cls(
            relative_position=Vector3.from_any(data.get("relative_position") or (0.0, 0.0, 0.0)),
            relative_yaw=float(data.get("relative_yaw", 0.0)),
        )
