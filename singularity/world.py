# singularity/world.py
"""
Holds the loaded storage state and stands in for the host engine: entity
spawn/kill, ground snapping, connected players and permissions.
"""
from __future__ import annotations
import asyncio
import itertools
import logging
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

import config
from . import codec
from .catalog import ItemCatalog
from .economy import TierEconomy
from .landmarks import Landmark
from .placement import PlacementRegistry, TerminalInstance
from .player import Player
from .policy import IntakePolicy
from .session import SessionManager, StorageSession
from .store import DurableStore
from .ticker import Ticker
from .transform import Vector3
from .database import META_LAST_SAVE_ID
from .definitions import tiers as tier_defs

if TYPE_CHECKING:
    from .database import DatabaseManager

log = logging.getLogger(__name__)

# Returns the ground height at (x, z), or None where there is no ground.
TerrainHeight = Callable[[float, float], Optional[float]]


class World:
    """
    Owns every storage component and wires them together.
    """
    def __init__(self, db_manager: "DatabaseManager", terrain_height: Optional[TerrainHeight] = None):
        self.db_manager = db_manager
        self.terrain_height = terrain_height
        self.store = DurableStore(db_manager)
        self.catalog = ItemCatalog()
        self.policy = IntakePolicy()
        self.economy = TierEconomy(self.store, on_tier_changed=self._on_tier_changed)
        self.placements = PlacementRegistry(self, self.store)
        self.placements.removal_listeners.append(self._on_terminal_removed)
        self.sessions = SessionManager(self.economy, self.catalog, self.policy, host=self)
        self.ticker = Ticker(config.TICKER_INTERVAL_SECONDS)
        self.active_players: Dict[int, Player] = {}
        self.entities: Dict[int, Dict[str, Any]] = {}
        self._entity_ids = itertools.count(1)

    async def build(self) -> bool:
        """Loads the catalog, landmarks, player records and saved placements."""
        log.info("Building storage state from PostgreSQL database...")
        try:
            templates, landmark_rows, documents, placements, last_save_id = await asyncio.gather(
                self.db_manager.load_item_templates(),
                self.db_manager.load_landmarks(),
                self.db_manager.load_storage_records(),
                self.db_manager.load_placements(),
                self.db_manager.get_meta(META_LAST_SAVE_ID),
            )
        except Exception:
            log.exception("Failed to load storage state from the database.")
            return False

        self.catalog.load(templates)
        self.placements.set_landmarks(Landmark.from_row(row) for row in landmark_rows)
        self.economy.load(documents, last_save_id)
        self.placements.load(placements)
        log.info("Storage state built: %d item templates, %d landmarks, %d records.",
                 len(self.catalog), len(self.placements.landmarks), len(self.economy.records))
        return True

    async def reload(self) -> bool:
        """Closes every session, waits for pending writes, then reloads persisted data."""
        closed = self.sessions.close_all("reload")
        await self.store.flush()
        log.info("Reloading persisted data (%d sessions closed).", closed)
        return await self.build()

    def on_world_initialized(self, save_id: str) -> bool:
        """
        Called once per world start with the host's save id. Counts a wipe
        when the id changed, then rebuilds saved terminals.
        """
        wiped = self.economy.on_world_initialized(save_id)
        if config.AUTO_SPAWN_TERMINALS:
            self.placements.restore_all()
        return wiped

    # --- Host Services ---
    def spawn_entity(self, prefab: str, position: Vector3, yaw: float) -> int:
        entity_id = next(self._entity_ids)
        self.entities[entity_id] = {"prefab": prefab, "position": position, "yaw": yaw}
        return entity_id

    def kill_entity(self, entity_id: int) -> bool:
        return self.entities.pop(entity_id, None) is not None

    def snap_to_ground(self, position: Vector3) -> Vector3:
        if self.terrain_height is None:
            return position
        height = self.terrain_height(position.x, position.z)
        if height is None:
            log.debug("No ground below %s, keeping position.", position)
            return position
        return Vector3(position.x, height + config.GROUND_OFFSET, position.z)

    # --- Players ---
    def add_player(self, player: Player):
        self.active_players[player.player_id] = player
        self._sync_entitlements(player, self.economy.tier_of(player.player_id))

    def remove_player(self, player_id: int) -> Optional[Player]:
        """Disconnects a player. An open session is saved and closed first."""
        player = self.active_players.pop(player_id, None)
        if player is not None:
            player.is_connected = False
        self.sessions.close(player_id, reason="disconnected")
        return player

    def get_player(self, player_id: int) -> Optional[Player]:
        return self.active_players.get(player_id)

    def find_player(self, name_or_id: str) -> Optional[Player]:
        """Matches an exact player id first, then a case-insensitive name fragment."""
        for player in self.active_players.values():
            if str(player.player_id) == name_or_id:
                return player
        lowered = name_or_id.lower()
        for player in self.active_players.values():
            if lowered in player.display_name.lower():
                return player
        return None

    def get_active_players_list(self) -> List[Player]:
        return list(self.active_players.values())

    # --- Terminal Use ---
    def use_terminal(self, player: Player, entity_id: int) -> Optional[StorageSession]:
        terminal = self.placements.get_terminal(entity_id)
        if terminal is None:
            return None
        if not player.has_permission(config.PERMISSION_USE):
            player.notify("You don't have permission to access the Singularity Storage.")
            return None
        if player.position.distance_to(terminal.position) > config.INTERACTION_DISTANCE:
            player.notify("You are too far away from the terminal.")
            return None
        return self.sessions.open(player, terminal)

    def on_loot_end(self, player: Player):
        self.sessions.close(player, reason="closed")

    def wipe_player(self, player_id: int) -> Optional[int]:
        """Closes any open session, then deletes the player's record. Returns the removed item count."""
        self.sessions.close(player_id, reason="admin wipe")
        return self.economy.wipe_player(player_id)

    # --- Hooks ---
    def _on_terminal_removed(self, terminal: TerminalInstance):
        self.sessions.close_for_terminal(terminal)

    def _on_tier_changed(self, player_id: int, old_tier: int, new_tier: int):
        player = self.active_players.get(player_id)
        if player is None:
            return
        self._sync_entitlements(player, new_tier)
        if self.sessions.get(player_id) is not None:
            self.sessions.close(player_id, reason="tier changed")
            player.notify(f"Your storage tier changed from {old_tier} to {new_tier}. Reopen the terminal to continue.")

    def _sync_entitlements(self, player: Player, tier: int):
        for granted_tier in range(tier_defs.MIN_TIER + 1, tier_defs.MAX_TIER + 1):
            permission = tier_defs.TIER_PERMISSION_FORMAT.format(tier=granted_tier)
            if granted_tier <= tier:
                player.grant_permission(permission)
            else:
                player.revoke_permission(permission)

    # --- Ticker ---
    def subscribe_to_ticker(self):
        self.ticker.subscribe(self.update_sessions)
        log.info("World update methods subscribed to ticker.")

    async def update_sessions(self, dt: float):
        """Force-closes sessions whose player left, whose terminal is gone, or who walked away."""
        for session in list(self.sessions.sessions.values()):
            player = session.player
            if not player.is_connected:
                self.sessions.close(player, reason="disconnected")
            elif self.placements.get_terminal(session.terminal.entity_id) is None:
                self.sessions.close(player, reason="terminal destroyed")
            elif player.position.distance_to(session.terminal.position) > config.INTERACTION_DISTANCE:
                player.notify("You moved away from the terminal. Storage closed.")
                self.sessions.close(player, reason="out of range")

    # --- Saving ---
    async def save_state(self):
        """Writes open sessions back to their records without closing them, then flushes."""
        for session in list(self.sessions.sessions.values()):
            record = self.economy.get_record(session.player_id, create=False)
            if record is None:
                continue
            records, _rejected = codec.serialize(session.container, self.policy.can_store)
            record.items = records + session.held_records
            self.economy.persist(record)
        await self.store.flush()
        log.debug("World state saved (%d open sessions).", len(self.sessions))

    async def shutdown(self):
        await self.ticker.stop()
        closed = self.sessions.close_all("shutdown")
        removed = self.placements.remove_all()
        await self.store.flush()
        log.info("Storage shut down: %d sessions closed, %d terminals removed.", closed, removed)
