# singularity/economy.py
"""
The tier economy: per-player storage records, scrap-paid upgrades and upkeep,
and the wipe-driven decay that downgrades unpaid tiers.
"""
from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, TYPE_CHECKING

import config
from . import utils
from .records import PlayerStorageRecord
from .definitions import tiers as tier_defs

if TYPE_CHECKING:
    from .catalog import ItemCatalog
    from .player import Player
    from .store import DurableStore

log = logging.getLogger(__name__)

# Called with (player_id, old_tier, new_tier) after every tier change.
TierChangedHook = Callable[[int, int, int], None]


@dataclass
class EconomyResult:
    """Outcome of an upgrade or upkeep attempt. Failed attempts change nothing."""
    success: bool
    message: str
    tier: int = 0
    cost: int = 0


class TierEconomy:
    """Owns every PlayerStorageRecord and all tier transitions."""

    def __init__(self, store: Optional["DurableStore"] = None,
                 on_tier_changed: Optional[TierChangedHook] = None,
                 scrap_shortname: str = config.SCRAP_SHORTNAME):
        self.store = store
        self.on_tier_changed = on_tier_changed
        self.scrap_shortname = scrap_shortname
        self.records: Dict[int, PlayerStorageRecord] = {}
        self.last_save_id: Optional[str] = None

    # --- Records ---
    def load(self, documents: Iterable[Dict[str, Any]], last_save_id: Optional[str] = None) -> int:
        """Replaces in-memory records with stored documents. Malformed documents are skipped."""
        records: Dict[int, PlayerStorageRecord] = {}
        for document in documents:
            try:
                record = PlayerStorageRecord.from_dict(document)
            except (KeyError, TypeError, ValueError):
                log.exception("Skipping malformed storage record for player %s.", document.get('player_id'))
                continue
            records[record.player_id] = record
        self.records = records
        self.last_save_id = last_save_id
        log.info("Loaded %d player storage records (last save id: %s).", len(records), last_save_id)
        return len(records)

    def get_record(self, player_id: int, create: bool = True) -> Optional[PlayerStorageRecord]:
        record = self.records.get(player_id)
        if record is None and create:
            record = PlayerStorageRecord.new(player_id)
            self.records[player_id] = record
        return record

    def tier_of(self, player_id: int) -> int:
        record = self.records.get(player_id)
        return record.storage_tier if record else tier_defs.MIN_TIER

    def persist(self, record: PlayerStorageRecord):
        if self.store is not None:
            self.store.save_record(record)

    # --- Transitions ---
    def upgrade(self, player: "Player", now: Optional[datetime] = None) -> EconomyResult:
        record = self.get_record(player.player_id, create=False)
        current = record.storage_tier if record else tier_defs.MIN_TIER
        if current >= tier_defs.MAX_TIER:
            return EconomyResult(False, "Your storage is already at the maximum tier.", current)

        target = current + 1
        cost = tier_defs.upgrade_cost_to(target)
        held = player.inventory.count(self.scrap_shortname)
        if held < cost:
            return EconomyResult(False, f"Upgrading to tier {target} costs {utils.format_scrap(cost)}. "
                                        f"You have {utils.format_scrap(held)}.", current, cost)
        if not player.inventory.take(self.scrap_shortname, cost):
            return EconomyResult(False, "Could not collect the scrap for the upgrade.", current, cost)

        if record is None:
            record = self.get_record(player.player_id)
        self._change_tier(record, target, now)
        self.persist(record)
        log.info("Player %s upgraded storage to tier %d for %d scrap.", player.player_id, target, cost)
        return EconomyResult(True, f"Storage upgraded to tier {target} ({tier_defs.slots_for(target)} slots).",
                             target, cost)

    def pay_upkeep(self, player: "Player", now: Optional[datetime] = None) -> EconomyResult:
        record = self.get_record(player.player_id, create=False)
        tier = record.storage_tier if record else tier_defs.MIN_TIER
        if record is None or tier <= tier_defs.MIN_TIER:
            return EconomyResult(False, "Tier 1 storage has no upkeep.", tier)
        if record.wipes_at_current_tier < 1:
            return EconomyResult(False, "Your upkeep is already paid for this wipe.", tier)

        cost = tier_defs.upkeep_cost_for(tier)
        held = player.inventory.count(self.scrap_shortname)
        if held < cost:
            return EconomyResult(False, f"Upkeep for tier {tier} costs {utils.format_scrap(cost)}. "
                                        f"You have {utils.format_scrap(held)}.", tier, cost)
        if not player.inventory.take(self.scrap_shortname, cost):
            return EconomyResult(False, "Could not collect the scrap for upkeep.", tier, cost)

        record.wipes_at_current_tier = 0
        self.persist(record)
        log.info("Player %s paid %d scrap upkeep for tier %d.", player.player_id, cost, tier)
        return EconomyResult(True, f"Upkeep paid. Tier {tier} is safe for this wipe.", tier, cost)

    def _change_tier(self, record: PlayerStorageRecord, new_tier: int, now: Optional[datetime] = None):
        old_tier = record.storage_tier
        record.set_tier(new_tier, now)
        if self.on_tier_changed is not None and old_tier != record.storage_tier:
            try:
                self.on_tier_changed(record.player_id, old_tier, record.storage_tier)
            except Exception:
                log.exception("Tier change hook failed for player %s.", record.player_id)

    # --- Wipes ---
    def on_world_initialized(self, save_id: str, now: Optional[datetime] = None) -> bool:
        """
        Consumes the world save id reported at startup.
        Returns True when the id changed and a wipe was applied.
        """
        previous = self.last_save_id
        if previous == save_id:
            log.info("World save id unchanged (%s), treating startup as a restart.", save_id)
            return False

        self.last_save_id = save_id
        if self.store is not None:
            self.store.save_last_save_id(save_id)

        if previous is None:
            log.info("First world save id observed (%s), initializing without a wipe.", save_id)
            return False

        log.info("World save id changed (%s -> %s), applying wipe.", previous, save_id)
        self.apply_wipe(now)
        return True

    def apply_wipe(self, now: Optional[datetime] = None) -> List[int]:
        """Counts a wipe against every record. Returns the ids of players who were downgraded."""
        now = now or utils.utc_now()
        debounce = timedelta(hours=tier_defs.WIPE_DEBOUNCE_HOURS)
        downgraded: List[int] = []
        counted = 0

        for record in self.records.values():
            if record.last_wipe_counted_at is not None and now - record.last_wipe_counted_at < debounce:
                log.debug("Wipe for player %s ignored, last counted at %s.", record.player_id, record.last_wipe_counted_at)
                continue

            record.last_wipe_counted_at = now
            record.wipes_survived_total += 1
            counted += 1
            if record.storage_tier > tier_defs.MIN_TIER:
                record.wipes_at_current_tier += 1
                if record.wipes_at_current_tier >= tier_defs.WIPES_BEFORE_DOWNGRADE:
                    old_tier = record.storage_tier
                    self._change_tier(record, tier_defs.MIN_TIER, now)
                    downgraded.append(record.player_id)
                    log.info("Player %s fell from tier %d to tier 1 after %d unpaid wipes.",
                             record.player_id, old_tier, tier_defs.WIPES_BEFORE_DOWNGRADE)
            self.persist(record)

        log.info("Wipe counted for %d of %d records, %d downgraded.", counted, len(self.records), len(downgraded))
        return downgraded

    # --- Scrap Cap ---
    @staticmethod
    def scrap_room(tier: int, stored: int, allowance: Optional[float] = None) -> float:
        """
        How much more scrap fits at a tier. Infinite at the top tier.
        An allowance above the tier cap (scrap kept over a downgrade) replaces the cap.
        """
        cap = tier_defs.scrap_cap_for(tier)
        if allowance is not None:
            cap = max(cap, allowance)
        return max(cap - stored, 0)

    @staticmethod
    def split_scrap_deposit(tier: int, stored: int, incoming: int,
                            allowance: Optional[float] = None) -> Tuple[int, int]:
        """Splits an incoming scrap amount into (kept, returned)."""
        room = TierEconomy.scrap_room(tier, stored, allowance)
        if math.isinf(room):
            return incoming, 0
        kept = int(min(incoming, room))
        return kept, incoming - kept

    # --- Admin ---
    def force_wipe_counter(self, player_id: int, value: int) -> Optional[PlayerStorageRecord]:
        """Sets wipes_at_current_tier directly. Does not trigger a downgrade."""
        record = self.records.get(player_id)
        if record is None:
            return None
        record.wipes_at_current_tier = max(0, int(value))
        self.persist(record)
        log.info("Wipe counter for player %s forced to %d.", player_id, record.wipes_at_current_tier)
        return record

    def wipe_player(self, player_id: int) -> Optional[int]:
        """Deletes a player's record. Returns how many top-level items it held, or None if there was none."""
        record = self.records.pop(player_id, None)
        if record is None:
            return None
        if record.storage_tier > tier_defs.MIN_TIER and self.on_tier_changed is not None:
            try:
                self.on_tier_changed(player_id, record.storage_tier, tier_defs.MIN_TIER)
            except Exception:
                log.exception("Tier change hook failed for player %s.", player_id)
        if self.store is not None:
            self.store.delete_record(player_id)
        log.info("Storage record for player %s wiped (%d items).", player_id, len(record.items))
        return len(record.items)

    def global_stats(self, top: int = 5) -> Dict[str, Any]:
        ranked = sorted(self.records.values(), key=lambda r: len(r.items), reverse=True)
        tiers = {tier: 0 for tier in tier_defs.TIER_SLOTS}
        for record in self.records.values():
            tiers[record.storage_tier] += 1
        return {
            "total_users": len(self.records),
            "total_items": sum(len(r.items) for r in self.records.values()),
            "players_per_tier": tiers,
            "top_users": [
                {"player_id": r.player_id, "items": len(r.items), "last_accessed": r.last_accessed}
                for r in ranked[:top]
            ],
        }

    def player_stats(self, player_id: int, catalog: Optional["ItemCatalog"] = None) -> Optional[Dict[str, Any]]:
        record = self.records.get(player_id)
        if record is None:
            return None
        slots = tier_defs.slots_for(record.storage_tier)
        categories: Dict[str, int] = {}
        if catalog is not None:
            for item in record.items:
                template = catalog.find(item.item_id)
                if template is None:
                    continue
                category = template.get('category') or 'Misc'
                categories[category] = categories.get(category, 0) + item.amount
        return {
            "player_id": player_id,
            "items": len(record.items),
            "slots": slots,
            "usage_percent": round(len(record.items) * 100.0 / slots, 1),
            "storage_tier": record.storage_tier,
            "wipes_survived_total": record.wipes_survived_total,
            "wipes_at_current_tier": record.wipes_at_current_tier,
            "last_accessed": record.last_accessed,
            "categories": dict(sorted(categories.items(), key=lambda kv: kv[1], reverse=True)),
        }
