# singularity/handlers/connection.py
"""
Handles the lifecycle of a single console connection: identifying the
player, passing commands to the command handler, and closing any open
storage session on disconnect.
"""
import asyncio
import logging
from enum import Enum, auto
from typing import Optional

import config
from ..player import Player
from ..world import World
from ..commands import handler as command_handler

log = logging.getLogger(__name__)

BANNER = """
 ___ _                _           _ _
/ __(_)_ _  __ _ _  _| |__ _ _ _ (_) |_ _  _
\\__ \\ | ' \\/ _` | || | / _` | '_|| |  _| || |
|___/_|_||_\\__, |\\_,_|_\\__,_|_|  |_|\\__|\\_, |
           |___/      Storage           |__/
"""


class ConnectionState(Enum):
    GETTING_PLAYER_ID = auto()
    GETTING_NAME = auto()
    PLAYING = auto()
    DISCONNECTED = auto()


class ConnectionHandler:
    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, world: World):
        self.reader = reader
        self.writer = writer
        self.world = world
        self.state = ConnectionState.GETTING_PLAYER_ID
        self.addr = writer.get_extra_info('peername', 'Unknown Address')
        self.player_id: Optional[int] = None
        self.player: Optional[Player] = None
        log.info("ConnectionHandler initialized for %s", self.addr)

    async def _prompt(self, message: str):
        if not message.endswith(("\n\r", "\r\n")):
            message += ": "
        self.writer.write(message.encode(config.ENCODING))
        await self.writer.drain()

    async def _read_line(self) -> Optional[str]:
        try:
            data = await self.reader.readuntil(b'\n')
            decoded_data = data.decode(config.ENCODING, errors='ignore').strip()
            if decoded_data.lower() == 'quit':
                self.state = ConnectionState.DISCONNECTED
                return None
            return decoded_data
        except (ConnectionResetError, asyncio.IncompleteReadError, BrokenPipeError):
            self.state = ConnectionState.DISCONNECTED
            return None

    async def send(self, message: str):
        if self.writer.is_closing():
            log.warning("Attempted to send to a closing writer for %s.", self.addr)
            return
        try:
            self.writer.write(f"{message}\r\n".encode(config.ENCODING))
            await self.writer.drain()
        except (ConnectionResetError, BrokenPipeError):
            log.warning("Connection closed for %s while sending.", self.addr)
            self.state = ConnectionState.DISCONNECTED

    async def _handle_get_player_id(self):
        await self._prompt("Enter your player id")
        raw = await self._read_line()
        if raw is None:
            return
        if not raw.isdigit():
            await self.send("Player ids are numeric.")
            return
        player_id = int(raw)
        if self.world.get_player(player_id) is not None:
            await self.send("That player is already connected.")
            return
        self.player_id = player_id
        self.state = ConnectionState.GETTING_NAME

    async def _handle_get_name(self):
        await self._prompt("Enter your display name")
        raw = await self._read_line()
        if raw is None:
            return
        name = "".join(char for char in raw if char.isprintable()).strip()
        if not name:
            await self.send("Invalid name.")
            return

        self.player = Player(self.player_id, name, self.writer,
                             is_admin=self.player_id in config.ADMIN_PLAYER_IDS,
                             permissions=config.DEFAULT_PERMISSIONS)
        self.world.add_player(self.player)
        log.info("Player %s (%d) connected from %s.", name, self.player_id, self.addr)
        await self.send(BANNER)
        await self.send(f"Welcome, {name}.")
        await command_handler.process_command(self.player, self.world, "storage")
        self.state = ConnectionState.PLAYING

    async def _handle_playing(self):
        while self.state == ConnectionState.PLAYING:
            await self.player.send("> ", add_newline=False)
            line = await self._read_line()
            if line is None:
                return
            if not await command_handler.process_command(self.player, self.world, line):
                self.state = ConnectionState.DISCONNECTED

    async def handle(self):
        """Main connection state machine loop."""
        handler_map = {
            ConnectionState.GETTING_PLAYER_ID: self._handle_get_player_id,
            ConnectionState.GETTING_NAME: self._handle_get_name,
            ConnectionState.PLAYING: self._handle_playing,
        }
        try:
            while self.state != ConnectionState.DISCONNECTED:
                handler_method = handler_map.get(self.state)
                if handler_method:
                    await handler_method()
                else:
                    log.error("Unhandled connection state: %s", self.state.name)
                    self.state = ConnectionState.DISCONNECTED
        except Exception:
            log.exception("Unexpected error in ConnectionHandler for %s:", self.addr)
        finally:
            await self.cleanup()

    async def cleanup(self):
        """Removes the player from the world, which saves and closes any open storage."""
        log.info("Cleaning up connection for %s.", self.addr)
        try:
            if self.player is not None:
                self.world.remove_player(self.player.player_id)
        except Exception:
            log.exception("Failed to close storage for %s during cleanup.", self.addr)
        finally:
            if self.writer and not self.writer.is_closing():
                self.writer.close()
                await self.writer.wait_closed()
        log.info("Connection handler finished for %s.", self.addr)
