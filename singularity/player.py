# singularity/player.py
"""
Represents a connected player: identity, position, permissions, carried
inventory and the stream used to talk to their client.
"""
from __future__ import annotations
import asyncio
import logging
from collections import deque
from typing import Deque, Iterable, Optional, Set

import config
from .item import Item
from .inventory import PlayerInventory
from .transform import Vector3, ZERO

log = logging.getLogger(__name__)


class Player:
    def __init__(self, player_id: int, display_name: str,
                 writer: Optional[asyncio.StreamWriter] = None,
                 is_admin: bool = False,
                 permissions: Optional[Iterable[str]] = None,
                 position: Vector3 = ZERO,
                 yaw: float = 0.0):
        self.player_id: int = player_id
        self.display_name: str = display_name
        self.writer = writer
        self.is_admin: bool = bool(is_admin)
        self.permissions: Set[str] = set(permissions or ())
        self.position: Vector3 = position
        self.yaw: float = yaw
        self.is_connected: bool = True
        self.inventory = PlayerInventory()

        # Messages raised by synchronous game logic, most recent last
        self.notifications: Deque[str] = deque(maxlen=50)
        self._pending_sends: Set[asyncio.Task] = set()

    def has_permission(self, permission: str) -> bool:
        return self.is_admin or permission in self.permissions

    def grant_permission(self, permission: str):
        self.permissions.add(permission)

    def revoke_permission(self, permission: str):
        self.permissions.discard(permission)

    async def send(self, message: str, add_newline: bool = True):
        """
        Sends a message to the player's client.
        Players without a connected stream (tests, console) only record notifications.
        """
        if self.writer is None or self.writer.is_closing():
            return

        message_to_send = message
        if add_newline and not message_to_send.endswith('\r\n'):
            message_to_send += '\r\n'

        try:
            self.writer.write(message_to_send.encode(config.ENCODING))
            await self.writer.drain()
        except (ConnectionResetError, BrokenPipeError) as e:
            log.warning("Failed to send to %s: %s", self.display_name, e)
        except Exception as e:
            log.exception("Unexpected error while sending to %s:", self.display_name, exc_info=e)

    def notify(self, message: str):
        """
        Queues a message from synchronous code. The message is recorded and,
        when an event loop is running, sent in the background.
        """
        self.notifications.append(message)
        if self.writer is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self.send(message))
        self._pending_sends.add(task)
        task.add_done_callback(self._pending_sends.discard)

    def give_item(self, item: Item) -> bool:
        """Returns an item to the player's inventory. Whatever does not fit is dropped."""
        if self.inventory.give_item(item):
            return True
        log.warning("Inventory of %s is full, dropped %d x %s.", self.display_name, item.amount, item.shortname)
        self.notify(f"Your inventory is full. {item.amount} x {item.display_name} was dropped.")
        return False

    def __repr__(self) -> str:
        return f"<Player {self.player_id}: '{self.display_name}'>"
