# tests/test_session.py
import unittest
from unittest.mock import MagicMock
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from singularity.catalog import ItemCatalog
from singularity.economy import TierEconomy
from singularity.errors import SessionError
from singularity.placement import TerminalInstance
from singularity.player import Player
from singularity.policy import IntakePolicy
from singularity.records import ItemRecord, PlayerStorageRecord
from singularity.session import SessionManager, TransferStatus
from singularity.transform import Vector3
from singularity.definitions import item_defs

SCRAP_ID = -932201673
WOOD_ID = -151838493


class TestStorageSessions(unittest.TestCase):
    def setUp(self):
        self.catalog = ItemCatalog(item_defs.DEFAULT_ITEM_TEMPLATES)
        self.store = MagicMock()
        self.economy = TierEconomy(self.store)
        self.policy = IntakePolicy(blacklist=["explosive.timed"], allow_blacklisted=False)
        self.host = MagicMock()
        self.host.spawn_entity.return_value = 99
        self.sessions = SessionManager(self.economy, self.catalog, self.policy, host=self.host)
        self.player = Player(1, "Depositor")
        self.terminal = TerminalInstance(10, "Outpost", Vector3(), 0.0)

    def _set_record(self, tier=1, items=()):
        record = PlayerStorageRecord(self.player.player_id, items=list(items), storage_tier=tier)
        self.economy.records[self.player.player_id] = record
        return record

    # --- Open ---
    def test_open_sizes_container_by_tier(self):
        self._set_record(tier=3)
        session = self.sessions.open(self.player, self.terminal)
        self.assertEqual(session.container.capacity, 24)
        self.assertEqual(session.entity_id, 99)
        self.assertIs(self.sessions.get(1), session)

    def test_reopen_closes_previous_session(self):
        self._set_record()
        first = self.sessions.open(self.player, self.terminal)
        second = self.sessions.open(self.player, self.terminal)
        self.assertTrue(first.closed)
        self.assertIsNot(first, second)
        self.assertEqual(len(self.sessions), 1)

    def test_records_that_do_not_fit_are_held_and_written_back(self):
        records = [ItemRecord(item_id=WOOD_ID, amount=i + 1, position=i) for i in range(8)]
        self._set_record(tier=1, items=records)

        session = self.sessions.open(self.player, self.terminal)
        self.assertEqual(len(session.container), 6)
        self.assertEqual(len(session.held_records), 2)
        self.assertIn("kept safe", self.player.notifications[-1])

        report = self.sessions.close(self.player)
        record = self.economy.get_record(1)
        self.assertEqual(report.held, 2)
        self.assertEqual(len(record.items), 8)
        self.assertEqual(sorted(r.amount for r in record.items), list(range(1, 9)))

    # --- Deposits ---
    def test_scrap_over_tier_one_cap_is_split(self):
        self._set_record(tier=1)
        session = self.sessions.open(self.player, self.terminal)

        outcome = self.sessions.deposit(self.player, self.catalog.create_item("scrap", 1200))

        self.assertEqual(outcome.status, TransferStatus.PARTIAL)
        self.assertEqual(outcome.accepted, 1000)
        self.assertEqual(outcome.refunded, 200)
        self.assertEqual(session.container.count("scrap"), 1000)
        self.assertEqual(self.player.inventory.count("scrap"), 200)

    def test_scrap_partial_fill_at_tier_two(self):
        stacks = [ItemRecord(item_id=SCRAP_ID, amount=amount, position=i)
                  for i, amount in enumerate((1000, 1000, 1000, 1000, 800))]
        self._set_record(tier=2, items=stacks)
        session = self.sessions.open(self.player, self.terminal)

        outcome = self.sessions.deposit(self.player, self.catalog.create_item("scrap", 300))

        self.assertEqual(outcome.status, TransferStatus.PARTIAL)
        self.assertEqual(outcome.accepted, 200)
        self.assertEqual(session.container.count("scrap"), 5000)
        self.assertEqual(self.player.inventory.count("scrap"), 100)
        self.assertIn("5,000", self.player.notifications[-1])

    def test_scrap_at_cap_is_rejected_untouched(self):
        self._set_record(tier=1, items=[ItemRecord(item_id=SCRAP_ID, amount=1000, position=0)])
        self.sessions.open(self.player, self.terminal)
        scrap = self.catalog.create_item("scrap", 50)

        outcome = self.sessions.deposit(self.player, scrap)

        self.assertEqual(outcome.status, TransferStatus.REJECTED)
        self.assertEqual(scrap.amount, 50)
        self.assertIsNone(scrap.parent)

    def test_scrap_in_a_nested_container_counts_against_the_cap(self):
        self._set_record(tier=1, items=[ItemRecord(item_id=SCRAP_ID, amount=900, position=0)])
        session = self.sessions.open(self.player, self.terminal)
        backpack = self.catalog.create_item("smallbackpack")
        backpack.contents.insert(self.catalog.create_item("scrap", 300))

        outcome = self.sessions.deposit(self.player, backpack)

        self.assertTrue(outcome.ok)
        self.assertEqual(session.container.count("scrap"), 1000)
        self.assertEqual(self.player.inventory.count("scrap"), 200)

    def test_blacklisted_item_is_rejected(self):
        self._set_record()
        self.sessions.open(self.player, self.terminal)
        outcome = self.sessions.deposit(self.player, self.catalog.create_item("explosive.timed", 2))
        self.assertEqual(outcome.status, TransferStatus.REJECTED)
        self.assertEqual(outcome.reason, "Timed Explosive Charge cannot be stored (blacklisted).")

    def test_full_storage_rejects(self):
        self._set_record(items=[ItemRecord(item_id=1545779598, amount=1, position=i) for i in range(6)])
        self.sessions.open(self.player, self.terminal)
        outcome = self.sessions.deposit(self.player, self.catalog.create_item("wood", 10))
        self.assertEqual(outcome.status, TransferStatus.REJECTED)
        self.assertEqual(outcome.reason, "Your storage is full.")

    def test_full_storage_at_scrap_cap_reports_the_cap(self):
        records = [ItemRecord(item_id=SCRAP_ID, amount=1000, position=0)]
        records += [ItemRecord(item_id=1545779598, amount=1, position=i) for i in range(1, 6)]
        self._set_record(items=records)
        self.sessions.open(self.player, self.terminal)

        outcome = self.sessions.deposit(self.player, self.catalog.create_item("scrap", 50))

        self.assertEqual(outcome.status, TransferStatus.REJECTED)
        self.assertEqual(outcome.reason, "Your storage already holds its limit of 1,000 scrap at tier 1.")

    def test_deposit_without_session_raises(self):
        with self.assertRaises(SessionError):
            self.sessions.deposit(self.player, self.catalog.create_item("wood", 1))

    def test_grandfathered_scrap_shrinks_as_it_is_withdrawn(self):
        stacks = [ItemRecord(item_id=SCRAP_ID, amount=1000, position=i) for i in range(3)]
        self._set_record(tier=1, items=stacks)
        session = self.sessions.open(self.player, self.terminal)
        self.assertEqual(session.scrap_allowance, 3000)

        self.assertEqual(self.sessions.deposit(self.player, self.catalog.create_item("scrap", 10)).status,
                         TransferStatus.REJECTED)
        withdrawn = self.sessions.withdraw(self.player, 2)
        self.assertEqual(withdrawn.amount, 1000)
        self.assertEqual(session.scrap_allowance, 2000)
        self.assertEqual(self.sessions.deposit(self.player, self.catalog.create_item("scrap", 10)).status,
                         TransferStatus.REJECTED)

    def test_direct_container_changes_are_capped(self):
        self._set_record(tier=1)
        session = self.sessions.open(self.player, self.terminal)

        # Bypasses deposit(), as a drag-and-drop in the host would
        session.container.insert(self.catalog.create_item("scrap", 1000))
        session.container.insert(self.catalog.create_item("scrap", 500))

        self.assertEqual(session.container.count("scrap"), 1000)
        self.assertEqual(self.player.inventory.count("scrap"), 500)

    # --- Close ---
    def test_close_persists_and_returns_nested_blacklisted_items(self):
        self._set_record()
        session = self.sessions.open(self.player, self.terminal)
        backpack = self.catalog.create_item("smallbackpack")
        backpack.contents.insert(self.catalog.create_item("explosive.timed", 1))
        backpack.contents.insert(self.catalog.create_item("wood", 40))
        self.assertTrue(self.sessions.deposit(self.player, backpack).ok)

        report = self.sessions.close(self.player)

        self.assertEqual((report.stored, report.rejected), (1, 1))
        record = self.economy.get_record(1)
        self.assertEqual(len(record.items[0].contents), 1)
        self.assertEqual(self.player.inventory.count("explosive.timed"), 1)
        self.assertEqual(len(session.container), 0)
        self.store.save_record.assert_called_with(record)
        self.host.kill_entity.assert_called_once_with(99)
        self.assertIsNone(self.sessions.get(1))

    def test_close_after_record_wiped_does_not_bring_it_back(self):
        self._set_record(tier=1, items=[ItemRecord(item_id=WOOD_ID, amount=5, position=0)])
        session = self.sessions.open(self.player, self.terminal)

        self.economy.wipe_player(self.player.player_id)
        report = self.sessions.close(self.player)

        self.assertTrue(session.closed)
        self.assertEqual(report.stored, 0)
        self.assertEqual(len(session.container), 0)
        self.assertNotIn(self.player.player_id, self.economy.records)
        self.store.save_record.assert_not_called()
        self.host.kill_entity.assert_called_once_with(99)

    def test_close_without_session(self):
        self.assertIsNone(self.sessions.close(self.player))

    def test_close_for_terminal_only_closes_its_users(self):
        other = Player(2, "Other")
        other_terminal = TerminalInstance(11, "Harbor", Vector3(), 0.0)
        self._set_record()
        self.sessions.open(self.player, self.terminal)
        self.sessions.open(other, other_terminal)

        self.assertEqual(self.sessions.close_for_terminal(self.terminal), 1)
        self.assertIsNone(self.sessions.get(1))
        self.assertIsNotNone(self.sessions.get(2))
        self.assertEqual(self.sessions.close_all(), 1)


if __name__ == '__main__':
    unittest.main()
