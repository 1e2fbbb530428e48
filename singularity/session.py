# singularity/session.py
"""
Storage sessions: the window during which a player's stored items live in
a scratch container sized by their tier.

Opening a session loads the player's record into the container. Every
transfer goes through the intake policy, and a change listener re-checks
the scrap cap after any mutation of the container. Closing serializes the
container back into the record, returns anything that may not be stored,
persists, and tears the container down. Every forced close path runs the
same sequence.
"""
from __future__ import annotations
import enum
import logging
from dataclasses import dataclass
from functools import partial
from typing import Dict, List, Optional, TYPE_CHECKING, Union

import config
from . import codec
from . import utils
from .errors import SessionError
from .item import Item, ItemContainer
from .records import ItemRecord
from .transform import Vector3
from .definitions import tiers as tier_defs

if TYPE_CHECKING:
    from .catalog import ItemCatalog
    from .economy import TierEconomy
    from .placement import TerminalInstance
    from .player import Player
    from .policy import IntakePolicy
    from .world import World

log = logging.getLogger(__name__)

SCRATCH_OFFSET = Vector3(0.0, -5.0, 0.0)


class TransferStatus(enum.Enum):
    ACCEPTED = "accepted"
    PARTIAL = "partial"
    REJECTED = "rejected"


@dataclass
class TransferOutcome:
    """Result of a deposit. Anything not accepted is back with the player."""
    status: TransferStatus
    accepted: int = 0
    refunded: int = 0
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is not TransferStatus.REJECTED


@dataclass
class CloseReport:
    player_id: int
    reason: str
    stored: int
    rejected: int
    held: int


class StorageSession:
    def __init__(self, player: "Player", terminal: "TerminalInstance", container: ItemContainer,
                 tier: int, held_records: List[ItemRecord], entity_id: Optional[int] = None):
        self.player = player
        self.terminal = terminal
        self.container = container
        self.tier = tier
        self.held_records = held_records
        self.entity_id = entity_id
        self.opened_at = utils.utc_now()
        self.closed = False
        # Scrap already stored above the cap (after a downgrade) may stay until withdrawn
        self.scrap_allowance: float = tier_defs.scrap_cap_for(tier)
        self.listener = None

    @property
    def player_id(self) -> int:
        return self.player.player_id

    def __repr__(self) -> str:
        return f"<StorageSession player={self.player_id} tier={self.tier} items={len(self.container)}>"


class SessionManager:
    """Owns the active session of every player. At most one per player."""

    def __init__(self, economy: "TierEconomy", catalog: "ItemCatalog", policy: "IntakePolicy",
                 host: Optional["World"] = None, scrap_shortname: str = config.SCRAP_SHORTNAME):
        self.economy = economy
        self.catalog = catalog
        self.policy = policy
        self.host = host
        self.scrap_shortname = scrap_shortname
        self.sessions: Dict[int, StorageSession] = {}

    def get(self, player_id: int) -> Optional[StorageSession]:
        return self.sessions.get(player_id)

    def __len__(self) -> int:
        return len(self.sessions)

    def _require(self, player: "Player") -> StorageSession:
        session = self.sessions.get(player.player_id)
        if session is None:
            raise SessionError(f"Player {player.player_id} has no open storage session.")
        return session

    # --- Open ---
    def open(self, player: "Player", terminal: "TerminalInstance") -> StorageSession:
        if player.player_id in self.sessions:
            self.close(player.player_id, reason="reopened")

        record = self.economy.get_record(player.player_id)
        tier = record.storage_tier
        container = ItemContainer(tier_defs.slots_for(tier))
        held = codec.deserialize(record.items, container, self.catalog)
        if held:
            player.notify(f"{len(held)} stored item(s) do not fit at tier {tier} and are kept safe until you upgrade.")

        entity_id = None
        if self.host is not None:
            entity_id = self.host.spawn_entity(config.STORAGE_PREFAB, player.position + SCRATCH_OFFSET, 0.0)

        session = StorageSession(player, terminal, container, tier, held, entity_id)
        stored_scrap = container.count(self.scrap_shortname)
        session.scrap_allowance = max(session.scrap_allowance, stored_scrap)
        session.listener = partial(self._on_container_changed, session)
        container.add_listener(session.listener)
        self.sessions[player.player_id] = session

        log.info("Storage opened for %s at %s (tier %d, %d/%d slots, %d held).", player.display_name,
                 terminal.class_name, tier, len(container), container.capacity, len(held))
        return session

    # --- Transfers ---
    def deposit(self, player: "Player", item: Item, position: Optional[int] = None) -> TransferOutcome:
        """
        Moves an item from the player into storage. Checks run in order:
        blacklist, category allow-list, scrap cap, free space.
        """
        session = self._require(player)
        container = session.container
        incoming = item.amount

        reason = self.policy.rejection_reason(item)
        if reason:
            player.notify(reason)
            return TransferOutcome(TransferStatus.REJECTED, refunded=incoming, reason=reason)

        kept = incoming
        if item.shortname == self.scrap_shortname:
            stored = container.count(self.scrap_shortname)
            kept, _returned = self.economy.split_scrap_deposit(session.tier, stored, incoming,
                                                               session.scrap_allowance)
            if kept <= 0:
                reason = (f"Your storage already holds its limit of {tier_defs.format_cap(session.tier)} scrap "
                          f"at tier {session.tier}.")
                player.notify(reason)
                return TransferOutcome(TransferStatus.REJECTED, refunded=incoming, reason=reason)

        if not self._has_room_for(container, item):
            reason = "Your storage is full."
            player.notify(reason)
            return TransferOutcome(TransferStatus.REJECTED, refunded=incoming, reason=reason)

        moving = item.split(kept) if kept < incoming else item

        placed = moving.amount
        if position is not None and container.insert(moving, position):
            leftover = 0
        else:
            leftover = container.give(moving)
        placed -= leftover

        refunded = incoming - placed
        if leftover > 0:
            player.give_item(moving)
        if item is not moving and item.parent is None and item.amount > 0:
            player.give_item(item)

        if refunded == 0:
            return TransferOutcome(TransferStatus.ACCEPTED, accepted=placed)

        if item.shortname == self.scrap_shortname and leftover == 0:
            reason = (f"Tier {session.tier} storage holds at most {tier_defs.format_cap(session.tier)} scrap. "
                      f"{refunded} scrap was returned to you.")
        else:
            reason = f"Your storage is full. {refunded} x {item.display_name} was returned to you."
        player.notify(reason)
        log.info("Deposit by %s partially accepted: kept %d, returned %d.", player.display_name, placed, refunded)
        return TransferOutcome(TransferStatus.PARTIAL, accepted=placed, refunded=refunded, reason=reason)

    def _has_room_for(self, container: ItemContainer, item: Item) -> bool:
        if not container.is_full:
            return True
        return any(existing.can_stack_with(item) and existing.amount < existing.max_stack
                   for existing in container.items)

    def withdraw(self, player: "Player", position: int) -> Optional[Item]:
        """Moves the item in a storage slot back to the player."""
        session = self._require(player)
        item = session.container.take_slot(position)
        if item is None:
            return None
        player.give_item(item)
        return item

    def _on_container_changed(self, session: StorageSession, container: ItemContainer):
        """Post-condition run after every mutation: stored scrap never exceeds the allowance."""
        if session.closed:
            return
        cap = tier_defs.scrap_cap_for(session.tier)
        total = container.count(self.scrap_shortname)
        if total <= session.scrap_allowance:
            session.scrap_allowance = max(cap, min(session.scrap_allowance, total))
            return

        excess = int(total - session.scrap_allowance)
        removed = container.take(self.scrap_shortname, excess)
        for stack in removed:
            session.player.give_item(stack)
        returned = sum(stack.amount for stack in removed)
        session.player.notify(f"Tier {session.tier} storage holds at most {tier_defs.format_cap(session.tier)} "
                              f"scrap. {returned} scrap was returned to you.")
        log.info("Returned %d excess scrap to %s.", returned, session.player.display_name)

    # --- Close ---
    def close(self, player: Union["Player", int], reason: str = "closed") -> Optional[CloseReport]:
        player_id = player if isinstance(player, int) else player.player_id
        session = self.sessions.pop(player_id, None)
        if session is None:
            return None

        session.closed = True
        if session.listener is not None:
            session.container.remove_listener(session.listener)

        record = self.economy.get_record(player_id, create=False)
        if record is None:
            # Record was wiped while open, its contents go with it
            discarded = len(session.container)
            session.container.clear()
            if self.host is not None and session.entity_id is not None:
                self.host.kill_entity(session.entity_id)
            log.info("Storage closed for %s (%s) after its record was wiped, %d item(s) discarded.",
                     session.player.display_name, reason, discarded)
            return CloseReport(player_id, reason, 0, 0, 0)

        # 1. Serialize and persist
        records, rejected = codec.serialize(session.container, self.policy.can_store)
        record.items = records + session.held_records
        record.last_accessed = utils.utc_now()
        self.economy.persist(record)

        # 2. Return what may not be stored
        for item in rejected:
            item.remove_from_parent()
            session.player.give_item(item)
        if rejected:
            session.player.notify(f"{len(rejected)} item(s) cannot be stored and were returned to you.")

        # 3. Tear down the scratch container
        session.container.clear()
        if self.host is not None and session.entity_id is not None:
            self.host.kill_entity(session.entity_id)

        log.info("Storage closed for %s (%s): %d stored, %d returned, %d held.", session.player.display_name,
                 reason, len(records), len(rejected), len(session.held_records))
        return CloseReport(player_id, reason, len(records), len(rejected), len(session.held_records))

    def close_for_terminal(self, terminal: "TerminalInstance", reason: str = "terminal destroyed") -> int:
        player_ids = [pid for pid, s in self.sessions.items() if s.terminal.entity_id == terminal.entity_id]
        for player_id in player_ids:
            session = self.sessions[player_id]
            session.player.notify("The storage terminal you were using is gone.")
            self.close(player_id, reason)
        return len(player_ids)

    def close_all(self, reason: str = "shutdown") -> int:
        player_ids = list(self.sessions)
        for player_id in player_ids:
            self.close(player_id, reason)
        return len(player_ids)
