# singularity/commands/admin.py
"""
Admin-only commands for terminal placement and storage data management.
"""
import logging
from typing import TYPE_CHECKING, Optional, Tuple

from .. import transform
from .. import utils
from ..transform import Vector3
from ..definitions import tiers as tier_defs

if TYPE_CHECKING:
    from ..player import Player
    from ..world import World

log = logging.getLogger(__name__)

SPAWN_DISTANCE = 2.0


def _resolve_target(world: 'World', token: str) -> Tuple[Optional[int], str]:
    """Finds an online player by id or name, or accepts a raw numeric id for offline players."""
    target = world.find_player(token)
    if target is not None:
        return target.player_id, target.display_name
    if token.isdigit():
        return int(token), token
    return None, token


async def cmd_spawn(player: 'Player', world: 'World', args_str: str) -> bool:
    """Admin: Deploys a terminal in front of you. Usage: @spawn [nosnap]"""
    snap_to_ground = args_str.strip().lower() != "nosnap"

    forward = transform.forward_vector(player.yaw)
    ahead = player.position + forward.scaled(SPAWN_DISTANCE)
    position = Vector3(ahead.x, player.position.y, ahead.z)
    facing = transform.horizontal_yaw(position, player.position)

    terminal, facing_desc = world.placements.place_at(position, facing, snap_to_ground)
    await player.send("Singularity terminal deployed successfully!")
    await player.send(f"Location: {terminal.class_name}{'' if snap_to_ground else ' (exact position)'}. "
                      f"Terminal facing: {facing_desc}. [ID: {terminal.entity_id}]")
    return True


async def cmd_remove(player: 'Player', world: 'World', args_str: str) -> bool:
    """Admin: Removes the nearest terminal within range. Usage: @remove"""
    terminal = world.placements.remove_nearest(player.position)
    if terminal is None:
        await player.send("No terminal found within range.")
    else:
        await player.send(f"Terminal at {terminal.class_name} deactivated and removed.")
    return True


async def cmd_list(player: 'Player', world: 'World', args_str: str) -> bool:
    """Admin: Lists all active terminals with positions. Usage: @list"""
    terminals = sorted(world.placements.terminals.values(), key=lambda t: (t.class_name, t.entity_id))
    output = [f"--- Active Singularity Terminals: {len(terminals)} ---"]
    if not terminals:
        output.append("No terminals currently deployed.")
    current_class = None
    for terminal in terminals:
        if terminal.class_name != current_class:
            current_class = terminal.class_name
            output.append(f"{current_class}:")
        distance = player.position.distance_to(terminal.position)
        output.append(f"  - [ID: {terminal.entity_id}] Position: {terminal.position} (Distance: {distance:.1f}m)")
    await player.send("\r\n".join(output))
    return True


async def cmd_savepos(player: 'Player', world: 'World', args_str: str) -> bool:
    """Admin: Saves live terminal positions for rebuilding after wipes. Usage: @savepos"""
    report = world.placements.capture_layout()
    output = list(report.warnings)
    for class_name, location in sorted(report.saved.items()):
        output.append(f"Saved terminal at {class_name}:")
        output.append(f"  Relative position: {location.relative_position}")
        output.append(f"  Relative rotation: {location.relative_yaw:.0f} degrees")
    if report.unresolved:
        output.append(f"{report.unresolved} terminal(s) had no landmark nearby and were not saved.")
    output.append(f"Saved {len(report.saved)} terminal position(s). These positions will be restored after wipes.")
    await player.send("\r\n".join(output))
    return True


async def cmd_wipeterminals(player: 'Player', world: 'World', args_str: str) -> bool:
    """Admin: Removes every live terminal and respawns only the saved ones. Usage: @wipeterminals"""
    removed, spawned = world.placements.respawn_saved()
    await player.send(f"Removed {removed} terminals.")
    if world.placements.has_records:
        await player.send(f"Respawned {spawned} saved terminals.")
    else:
        await player.send("No saved terminal positions found.")
    return True


async def cmd_wipeall(player: 'Player', world: 'World', args_str: str) -> bool:
    """Admin: Removes ALL terminals and saved positions. Usage: @wipeall"""
    removed = world.placements.remove_all()
    world.placements.clear_all()
    log.warning("Admin %s removed all terminals and saved positions.", player.display_name)
    await player.send(f"Removed {removed} terminals.")
    await player.send("Cleared all saved terminal positions. Use @spawn to create new terminals.")
    return True


async def cmd_wipe(player: 'Player', world: 'World', args_str: str) -> bool:
    """Admin: Clears a player's storage record. Usage: @wipe <player>"""
    token = args_str.strip()
    if not token:
        await player.send("Usage: @wipe <player>")
        return True
    player_id, name = _resolve_target(world, token)
    if player_id is None:
        await player.send("Player not found.")
        return True

    removed = world.wipe_player(player_id)
    log.info("Admin %s wiped storage for player %s.", player.display_name, player_id)
    if removed is None:
        await player.send(f"{name} has no stored items.")
    else:
        await player.send(f"Wiped singularity storage for {name}. Removed {removed} quantum items.")
    return True


async def cmd_setwipes(player: 'Player', world: 'World', args_str: str) -> bool:
    """Admin: Forces a player's unpaid wipe counter. Usage: @setwipes <player> <count>"""
    args = utils.split_args(args_str)
    if len(args) != 2 or not args[1].isdigit():
        await player.send("Usage: @setwipes <player> <count>")
        return True
    player_id, name = _resolve_target(world, args[0])
    if player_id is None:
        await player.send("Player not found.")
        return True
    record = world.economy.force_wipe_counter(player_id, int(args[1]))
    if record is None:
        await player.send(f"{name} has no storage record.")
    else:
        await player.send(f"Set {name}'s unpaid wipes at tier {record.storage_tier} to {record.wipes_at_current_tier}.")
    return True


async def cmd_stats(player: 'Player', world: 'World', args_str: str) -> bool:
    """Admin: Shows global or per-player storage statistics. Usage: @stats [player]"""
    token = args_str.strip()
    if not token:
        stats = world.economy.global_stats()
        output = [
            "--- Singularity Storage - Global Statistics ---",
            f"Total users: {stats['total_users']}",
            f"Total quantum items stored: {stats['total_items']}",
            "Players per tier: " + ", ".join(f"T{tier}={count}" for tier, count in stats['players_per_tier'].items()),
            "Top 5 Users by Item Count:",
        ]
        for entry in stats['top_users']:
            online = world.get_player(entry['player_id'])
            name = online.display_name if online else str(entry['player_id'])
            output.append(f"- {name}: {entry['items']} items (last sync: {utils.format_since(entry['last_accessed'])})")
        await player.send("\r\n".join(output))
        return True

    player_id, name = _resolve_target(world, token)
    if player_id is None:
        await player.send("Player not found.")
        return True
    stats = world.economy.player_stats(player_id, world.catalog)
    if stats is None:
        await player.send(f"{name} has no stored items.")
        return True
    output = [
        f"--- Storage Stats for {name} ---",
        f"Tier: {stats['storage_tier']} (unpaid wipes: {stats['wipes_at_current_tier']}/{tier_defs.WIPES_BEFORE_DOWNGRADE})",
        f"Items stored: {stats['items']}/{stats['slots']}",
        f"Storage usage: {stats['usage_percent']:.1f}%",
        f"Last accessed: {utils.format_since(stats['last_accessed'])}",
        f"Wipes survived: {stats['wipes_survived_total']}",
    ]
    if stats['categories']:
        output.append("Items by Category:")
        output.extend(f"- {category}: {amount} items" for category, amount in stats['categories'].items())
    await player.send("\r\n".join(output))
    return True


async def cmd_reload(player: 'Player', world: 'World', args_str: str) -> bool:
    """Admin: Reloads persisted storage data. Usage: @reload"""
    if await world.reload():
        await player.send(f"Reloaded {len(world.economy.records)} storage records and "
                          f"{sum(len(v) for v in world.placements.records.values())} saved placements.")
    else:
        await player.send("Reload failed. Check the server log.")
    return True


async def cmd_give(player: 'Player', world: 'World', args_str: str) -> bool:
    """Admin: Creates an item for a player. Usage: @give <player> <item> [amount]"""
    args = utils.split_args(args_str)
    if len(args) < 2:
        await player.send("Usage: @give <player> <item> [amount]")
        return True
    target = world.find_player(args[0])
    if target is None:
        await player.send("Player not found.")
        return True
    amount = int(args[2]) if len(args) > 2 and args[2].isdigit() else 1
    item = world.catalog.create_item(args[1], amount)
    if item is None:
        await player.send(f"Unknown item '{args[1]}'.")
        return True
    target.give_item(item)
    await player.send(f"Gave {amount} x {item.display_name} to {target.display_name}.")
    return True
