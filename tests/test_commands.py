# tests/test_commands.py
import unittest
from unittest.mock import AsyncMock, MagicMock, patch
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import config
from singularity.commands import handler
from singularity.landmarks import Landmark
from singularity.player import Player
from singularity.transform import Vector3
from singularity.world import World
from singularity.definitions import item_defs


class TestCommands(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.mock_db_manager = AsyncMock()
        self.world = World(self.mock_db_manager)
        self.world.catalog.load(item_defs.DEFAULT_ITEM_TEMPLATES)

        self.player = self._connect(1, "Rustacean")
        self.admin = self._connect(2, "Overseer", is_admin=True)

    def _connect(self, player_id, name, is_admin=False):
        mock_writer = MagicMock()
        mock_writer.is_closing.return_value = False
        mock_writer.drain = AsyncMock()
        player = Player(player_id, name, mock_writer, is_admin=is_admin, permissions=[config.PERMISSION_USE])
        self.world.add_player(player)
        return player

    def _output(self, player) -> str:
        return "".join(call.args[0].decode(config.ENCODING) for call in player.writer.write.call_args_list)

    async def run_command(self, player, raw):
        player.writer.write.reset_mock()
        self.assertTrue(await handler.process_command(player, self.world, raw))
        return self._output(player)

    async def test_unknown_command(self):
        self.assertIn("Huh?", await self.run_command(self.player, "dance"))

    async def test_admin_commands_are_hidden_from_players(self):
        output = await self.run_command(self.player, "@wipeall")
        self.assertIn("Unknown command", output)

    async def test_command_errors_are_reported(self):
        with patch.dict(handler.COMMAND_MAP, {"boom": AsyncMock(side_effect=RuntimeError("bad"))}):
            with self.assertLogs('singularity.commands.handler', level='ERROR'):
                output = await self.run_command(self.player, "boom")
        self.assertIn("Ope! Something went wrong", output)

    async def test_storage_requires_permission(self):
        self.player.revoke_permission(config.PERMISSION_USE)
        self.assertIn("don't have permission", await self.run_command(self.player, "storage info"))

    async def test_storage_info_for_new_player(self):
        output = await self.run_command(self.player, "storage info")
        self.assertIn("Storage tier: 1", output)
        self.assertIn("Quantum items stored: 0/6", output)

    async def test_storage_tiers_table(self):
        output = await self.run_command(self.player, "storage tiers")
        self.assertIn("unlimited", output)
        self.assertIn("16000", output)

    async def test_storage_upgrade(self):
        self.assertIn("costs 2,000 scrap", await self.run_command(self.player, "storage upgrade"))
        self.player.give_item(self.world.catalog.create_item("scrap", 2000))
        self.assertIn("upgraded to tier 2", await self.run_command(self.player, "storage upgrade"))
        self.assertIn("singularitystorage.tier2", self.player.permissions)

    async def test_open_without_terminal(self):
        self.assertIn("no storage terminal within reach", await self.run_command(self.player, "open"))

    async def test_spawn_open_deposit_close(self):
        output = await self.run_command(self.admin, "@spawn")
        self.assertIn("South (world direction)", output)
        terminal = next(iter(self.world.placements.terminals.values()))
        self.assertEqual(terminal.position, Vector3(0.0, 0.0, 2.0))
        self.assertEqual(terminal.class_name, "Custom")

        self.player.give_item(self.world.catalog.create_item("scrap", 1000))
        self.assertIn("You access the", await self.run_command(self.player, "open"))

        self.assertIn("Stored 300 x Scrap.", await self.run_command(self.player, "deposit scrap 300"))
        self.assertEqual(self.player.inventory.count("scrap"), 700)
        self.assertIn("[0] Scrap x300", await self.run_command(self.player, "contents"))

        self.assertIn("1 item(s) synchronized", await self.run_command(self.player, "close"))
        record = self.world.economy.get_record(1)
        self.assertEqual(record.items[0].amount, 300)

    async def test_deposit_rejected_part_goes_back(self):
        self.world.placements.spawn_terminal(Vector3(0, 0, 1), 0.0, "Custom")
        self.player.give_item(self.world.catalog.create_item("explosive.timed", 5))
        await self.run_command(self.player, "open")

        await self.run_command(self.player, "deposit explosive.timed 2")

        self.assertEqual(self.player.inventory.count("explosive.timed"), 5)
        self.assertIn("blacklisted", self.player.notifications[-1])

    async def test_withdraw(self):
        self.world.placements.spawn_terminal(Vector3(0, 0, 1), 0.0, "Custom")
        await self.run_command(self.player, "open")
        self.world.sessions.deposit(self.player, self.world.catalog.create_item("wood", 40))

        self.assertIn("You take Wood x40.", await self.run_command(self.player, "withdraw 0"))
        self.assertIn("empty", await self.run_command(self.player, "withdraw 0"))
        self.assertEqual(self.player.inventory.count("wood"), 40)

    async def test_goto_moves_player(self):
        terminal = self.world.placements.spawn_terminal(Vector3(50, 0, 50), 0.0, "Custom")
        await self.run_command(self.player, f"goto {terminal.entity_id}")
        self.assertEqual(self.player.position, terminal.position)
        await self.run_command(self.player, "goto 1 2 3")
        self.assertEqual(self.player.position, Vector3(1.0, 2.0, 3.0))

    async def test_savepos_and_wipeterminals(self):
        self.world.placements.set_landmarks([Landmark("lighthouse", Vector3(10, 0, 0))])
        self.world.placements.spawn_terminal(Vector3(10, 0, 5), 0.0, "Lighthouse")

        output = await self.run_command(self.admin, "@savepos")
        self.assertIn("Saved terminal at Lighthouse", output)
        self.assertIn("Saved 1 terminal position(s)", output)

        output = await self.run_command(self.admin, "@wipeterminals")
        self.assertIn("Removed 1 terminals.", output)
        self.assertIn("Respawned 1 saved terminals.", output)

        output = await self.run_command(self.admin, "@wipeall")
        self.assertIn("Removed 1 terminals.", output)
        self.assertFalse(self.world.placements.has_records)

    async def test_remove_and_list(self):
        self.world.placements.spawn_terminal(Vector3(0, 0, 4), 0.0, "Custom")
        self.assertIn("Active Singularity Terminals: 1", await self.run_command(self.admin, "@list"))
        self.assertIn("deactivated and removed", await self.run_command(self.admin, "@remove"))
        self.assertIn("No terminal found", await self.run_command(self.admin, "@remove"))

    async def test_wipe_closes_session_and_deletes_record(self):
        self.world.placements.spawn_terminal(Vector3(0, 0, 1), 0.0, "Custom")
        await self.run_command(self.player, "open")
        self.world.sessions.deposit(self.player, self.world.catalog.create_item("wood", 40))

        output = await self.run_command(self.admin, "@wipe Rustacean")

        self.assertIn("Removed 1 quantum items", output)
        self.assertIsNone(self.world.sessions.get(1))
        self.assertNotIn(1, self.world.economy.records)
        self.assertIn("has no stored items", await self.run_command(self.admin, "@wipe 1"))

    async def test_setwipes_and_stats(self):
        self.world.economy.get_record(1).storage_tier = 2
        self.assertIn("to 1", await self.run_command(self.admin, "@setwipes 1 1"))
        self.assertIn("no storage record", await self.run_command(self.admin, "@setwipes 555 1"))

        output = await self.run_command(self.admin, "@stats")
        self.assertIn("Total users: 1", output)
        self.assertIn("- Rustacean: 0 items", output)

        output = await self.run_command(self.admin, "@stats Rustacean")
        self.assertIn("unpaid wipes: 1/2", output)

    async def test_give_and_reload(self):
        self.assertIn("Gave 5 x Bandage to Rustacean", await self.run_command(self.admin, "@give Rustacean bandage 5"))
        self.assertEqual(self.player.inventory.count("bandage"), 5)

        self.mock_db_manager.load_item_templates.return_value = item_defs.DEFAULT_ITEM_TEMPLATES
        self.mock_db_manager.load_landmarks.return_value = []
        self.mock_db_manager.load_storage_records.return_value = []
        self.mock_db_manager.load_placements.return_value = {}
        self.mock_db_manager.get_meta.return_value = None
        self.assertIn("Reloaded 0 storage records", await self.run_command(self.admin, "@reload"))


if __name__ == '__main__':
    unittest.main()
