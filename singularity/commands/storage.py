# singularity/commands/storage.py
"""
Player-facing storage commands.
"""
import logging
from typing import TYPE_CHECKING, Optional

import config
from .. import utils
from ..item import Item
from ..transform import Vector3
from ..definitions import tiers as tier_defs

if TYPE_CHECKING:
    from ..player import Player
    from ..world import World

log = logging.getLogger(__name__)


async def cmd_storage(player: 'Player', world: 'World', args_str: str) -> bool:
    """Usage: storage [info|terminals|help|tiers|upgrade|upkeep]"""
    if not player.has_permission(config.PERMISSION_USE):
        await player.send("You don't have permission to use the Singularity Storage.")
        return True

    args = utils.split_args(args_str)
    subcommand = args[0].lower() if args else ""

    if not subcommand:
        output = [
            "--- Singularity Storage System ---",
            "Your items exist in a quantum state, transcending time and server wipes.",
            "Commands:",
            "  storage info      - Display quantum storage metrics",
            "  storage terminals - List active singularity terminals",
            "  storage tiers     - Show storage tiers and costs",
            "  storage upgrade   - Upgrade to the next tier",
            "  storage upkeep    - Pay upkeep to keep your tier",
            "  storage help      - Show detailed help",
        ]
        await player.send("\r\n".join(output))
    elif subcommand == "info":
        await _send_info(player, world)
    elif subcommand == "terminals":
        summary = world.placements.summary()
        if not summary:
            await player.send("No terminals currently active. Contact an admin.")
        else:
            lines = ["--- Active Singularity Terminals ---"]
            lines.extend(f"- {name}: {count} terminal(s)" for name, count in summary.items())
            await player.send("\r\n".join(lines))
    elif subcommand == "help":
        tier = world.economy.tier_of(player.player_id)
        output = [
            "--- Singularity Storage - Help ---",
            "Access terminals at major monuments to store items.",
            "Items persist through server wipes and map changes.",
            f"Current capacity: {tier_defs.slots_for(tier)} slots (tier {tier}).",
            "Tiers above 1 need upkeep once per wipe or they fall back to tier 1 after "
            f"{tier_defs.WIPES_BEFORE_DOWNGRADE} unpaid wipes.",
            world.policy.describe(),
        ]
        await player.send("\r\n".join(output))
    elif subcommand == "tiers":
        lines = ["--- Storage Tiers ---", "Tier | Slots | Scrap cap | Upgrade | Upkeep"]
        for tier in range(tier_defs.MIN_TIER, tier_defs.MAX_TIER + 1):
            upgrade = tier_defs.upgrade_cost_to(tier)
            lines.append(f"{tier:>4} | {tier_defs.slots_for(tier):>5} | {tier_defs.format_cap(tier):>9} | "
                         f"{upgrade if upgrade else '-':>7} | {tier_defs.upkeep_cost_for(tier):>6}")
        await player.send("\r\n".join(lines))
    elif subcommand == "upgrade":
        result = world.economy.upgrade(player)
        await player.send(result.message)
    elif subcommand == "upkeep":
        result = world.economy.pay_upkeep(player)
        await player.send(result.message)
    else:
        await player.send("Unknown command. Use: storage info, terminals, tiers, upgrade, upkeep or help")
    return True


async def _send_info(player: 'Player', world: 'World'):
    record = world.economy.get_record(player.player_id, create=False)
    tier = record.storage_tier if record else tier_defs.MIN_TIER
    slots = tier_defs.slots_for(tier)
    count = len(record.items) if record else 0
    output = [
        "--- Singularity Storage Metrics ---",
        f"Storage tier: {tier}",
        f"Quantum items stored: {count}/{slots}",
        f"Storage capacity: {count * 100.0 / slots:.1f}%",
        f"Scrap limit: {tier_defs.format_cap(tier)}",
        f"Last quantum sync: {utils.format_since(record.last_accessed) if record else 'never'}",
    ]
    if record and tier > tier_defs.MIN_TIER:
        if record.wipes_at_current_tier >= 1:
            output.append(f"Upkeep due: {utils.format_scrap(tier_defs.upkeep_cost_for(tier))} "
                          f"({record.wipes_at_current_tier}/{tier_defs.WIPES_BEFORE_DOWNGRADE} unpaid wipes)")
        else:
            output.append("Upkeep: paid")
    if record:
        output.append(f"Wipes survived: {record.wipes_survived_total}")
    await player.send("\r\n".join(output))


async def cmd_open(player: 'Player', world: 'World', args_str: str) -> bool:
    """Opens storage at the nearest terminal within reach."""
    terminal, distance = world.placements.nearest_terminal(player.position)
    if terminal is None or distance > config.INTERACTION_DISTANCE:
        await player.send("There is no storage terminal within reach.")
        return True
    session = world.use_terminal(player, terminal.entity_id)
    if session is None:
        return True
    await player.send(f"You access the {config.TERMINAL_DISPLAY_NAME} at {terminal.class_name}.")
    return await cmd_contents(player, world, "")


async def cmd_close(player: 'Player', world: 'World', args_str: str) -> bool:
    report = world.sessions.close(player, reason="closed")
    if report is None:
        await player.send("You don't have your storage open.")
    else:
        await player.send(f"Storage closed. {report.stored} item(s) synchronized.")
    return True


async def cmd_contents(player: 'Player', world: 'World', args_str: str) -> bool:
    session = world.sessions.get(player.player_id)
    if session is None:
        await player.send("You don't have your storage open.")
        return True
    container = session.container
    lines = [f"--- Storage (tier {session.tier}, {len(container)}/{container.capacity} slots) ---"]
    if not len(container):
        lines.append("  (empty)")
    for item in container.items:
        lines.append(f"  [{item.position}] {_describe(item)}")
    await player.send("\r\n".join(lines))
    return True


async def cmd_inventory(player: 'Player', world: 'World', args_str: str) -> bool:
    lines = ["--- Inventory ---"]
    for label, container in (("Main", player.inventory.main), ("Belt", player.inventory.belt)):
        lines.append(f"{label}:")
        if not len(container):
            lines.append("  (empty)")
        for item in container.items:
            lines.append(f"  [{item.position}] {_describe(item)}")
    await player.send("\r\n".join(lines))
    return True


async def cmd_deposit(player: 'Player', world: 'World', args_str: str) -> bool:
    """Usage: deposit <item> [amount]"""
    args = utils.split_args(args_str)
    if not args:
        await player.send("Usage: deposit <item> [amount]")
        return True
    if world.sessions.get(player.player_id) is None:
        await player.send("You don't have your storage open.")
        return True

    amount: Optional[int] = None
    if len(args) > 1 and args[-1].isdigit():
        amount = int(args[-1])
        args = args[:-1]
    item = _find_carried_item(player, " ".join(args))
    if item is None:
        await player.send("You aren't carrying that.")
        return True

    moving = item
    if amount is not None and 0 < amount < item.amount:
        moving = item.split(amount)
    outcome = world.sessions.deposit(player, moving)
    log.debug("Deposit of %s by %s: %s", moving.shortname, player.display_name, outcome)
    if not outcome.ok and moving is not item:
        player.give_item(moving)
    if outcome.accepted:
        await player.send(f"Stored {outcome.accepted} x {item.display_name}.")
    return True


async def cmd_withdraw(player: 'Player', world: 'World', args_str: str) -> bool:
    """Usage: withdraw <slot>"""
    if world.sessions.get(player.player_id) is None:
        await player.send("You don't have your storage open.")
        return True
    if not args_str.strip().isdigit():
        await player.send("Usage: withdraw <slot>")
        return True
    item = world.sessions.withdraw(player, int(args_str.strip()))
    if item is None:
        await player.send("That storage slot is empty.")
    else:
        await player.send(f"You take {_describe(item)}.")
    return True


async def cmd_goto(player: 'Player', world: 'World', args_str: str) -> bool:
    """Moves a console player. Usage: goto <terminal id> | goto <x> <y> <z>"""
    args = utils.split_args(args_str)
    if len(args) == 1 and args[0].isdigit():
        terminal = world.placements.get_terminal(int(args[0]))
        if terminal is None:
            await player.send("No such terminal.")
            return True
        player.position = terminal.position
    elif len(args) == 3:
        try:
            player.position = Vector3(float(args[0]), float(args[1]), float(args[2]))
        except ValueError:
            await player.send("Usage: goto <terminal id> | goto <x> <y> <z>")
            return True
    else:
        await player.send("Usage: goto <terminal id> | goto <x> <y> <z>")
        return True
    await player.send(f"You are now at {player.position}.")
    return True


def _find_carried_item(player: 'Player', name: str) -> Optional[Item]:
    lowered = name.lower()
    carried = player.inventory.main.items + player.inventory.belt.items
    for item in carried:
        if item.shortname == lowered:
            return item
    for item in carried:
        if lowered in item.display_name.lower():
            return item
    return None


def _describe(item: Item) -> str:
    text = f"{item.display_name} x{item.amount}" if item.amount > 1 else item.display_name
    if item.magazine is not None and item.magazine.contents:
        text += f" ({item.magazine.contents} {item.magazine.ammo_shortname})"
    if item.contents is not None and len(item.contents):
        text += f" [{len(item.contents)} inside]"
    return text
