# singularity/commands/handler.py
"""
Handles parsing player input and dispatching commands.
"""
import logging
from typing import Dict, Callable, Awaitable, Tuple

import config
from ..player import Player
from ..world import World

from . import storage as storage_cmds
from . import admin as admin_cmds

log = logging.getLogger(__name__)

CommandHandlerFunc = Callable[[Player, World, str], Awaitable[bool]]

# --- Command Map ---
COMMAND_MAP: Dict[str, CommandHandlerFunc] = {
    # Player Commands
    "storage": storage_cmds.cmd_storage, "singularity": storage_cmds.cmd_storage,
    "open": storage_cmds.cmd_open,
    "close": storage_cmds.cmd_close,
    "contents": storage_cmds.cmd_contents, "stored": storage_cmds.cmd_contents,
    "inventory": storage_cmds.cmd_inventory, "inv": storage_cmds.cmd_inventory, "i": storage_cmds.cmd_inventory,
    "deposit": storage_cmds.cmd_deposit, "put": storage_cmds.cmd_deposit,
    "withdraw": storage_cmds.cmd_withdraw, "take": storage_cmds.cmd_withdraw,
    "goto": storage_cmds.cmd_goto,

    # Admin Commands
    "@spawn": admin_cmds.cmd_spawn,
    "@remove": admin_cmds.cmd_remove,
    "@list": admin_cmds.cmd_list,
    "@savepos": admin_cmds.cmd_savepos,
    "@wipeterminals": admin_cmds.cmd_wipeterminals,
    "@wipeall": admin_cmds.cmd_wipeall,
    "@wipe": admin_cmds.cmd_wipe,
    "@setwipes": admin_cmds.cmd_setwipes,
    "@stats": admin_cmds.cmd_stats,
    "@reload": admin_cmds.cmd_reload,
    "@give": admin_cmds.cmd_give,
}


def _parse_input(raw_input: str) -> Tuple[str, str]:
    """Splits raw input into a command verb and arguments string."""
    stripped_input = raw_input.strip()
    if not stripped_input:
        return "", ""
    parts = stripped_input.split(" ", 1)
    return parts[0].lower(), parts[1] if len(parts) > 1 else ""


async def process_command(player: Player, world: World, raw_input: str) -> bool:
    """Parses raw player input and executes the corresponding command function."""
    command_verb, args_str = _parse_input(raw_input)
    if not command_verb:
        return True

    command_func = COMMAND_MAP.get(command_verb)
    if not command_func:
        await player.send("Huh? (Type 'storage help' for available commands).")
        return True

    if command_verb.startswith('@') and not player.has_permission(config.PERMISSION_ADMIN):
        await player.send("Huh? (Unknown command).")
        return True

    try:
        log.info("Executing command '%s' for %s (args: '%s')", command_verb, player.display_name, args_str)
        return await command_func(player, world, args_str)
    except Exception:
        log.exception("Error executing command '%s' for %s:", command_verb, player.display_name)
        await player.send("Ope! Something went wrong with your command.")
        return True
