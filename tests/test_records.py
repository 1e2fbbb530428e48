# tests/test_records.py
import unittest
from datetime import datetime, timezone
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from singularity import utils
from singularity.records import ItemRecord, PlayerStorageRecord, TerminalLocation
from singularity.transform import Vector3
from singularity.definitions import tiers as tier_defs


class TestRecords(unittest.TestCase):
    def test_player_record_round_trip(self):
        moment = datetime(2026, 3, 4, 5, 6, 7, tzinfo=timezone.utc)
        record = PlayerStorageRecord(
            9, items=[ItemRecord(item_id=1, amount=3)], storage_tier=4,
            wipes_survived_total=6, wipes_at_current_tier=1,
            first_created=moment, last_accessed=moment, tier_changed_at=moment, last_wipe_counted_at=moment,
        )
        document = record.to_dict()
        self.assertEqual(document["last_accessed"], "2026-03-04T05:06:07+00:00")
        self.assertEqual(PlayerStorageRecord.from_dict(document), record)

    def test_from_dict_clamps_and_defaults(self):
        record = PlayerStorageRecord.from_dict({"player_id": "12", "storage_tier": 0, "wipes_at_current_tier": -3})
        self.assertEqual(record.player_id, 12)
        self.assertEqual(record.storage_tier, 1)
        self.assertEqual(record.wipes_at_current_tier, 0)
        self.assertEqual(record.items, [])
        self.assertIsNone(record.first_created)

    def test_set_tier_resets_counter(self):
        record = PlayerStorageRecord(1, storage_tier=2, wipes_at_current_tier=1)
        record.set_tier(3)
        self.assertEqual(record.wipes_at_current_tier, 0)
        self.assertIsNotNone(record.tier_changed_at)

    def test_terminal_location_normalizes_yaw(self):
        location = TerminalLocation(Vector3(1, 2, 3), -45.0)
        self.assertEqual(location.relative_yaw, 315.0)
        self.assertEqual(TerminalLocation.from_dict(location.to_dict()), location)


class TestTierTables(unittest.TestCase):
    def test_tier_lookups(self):
        self.assertEqual([tier_defs.slots_for(t) for t in range(1, 6)], [6, 12, 24, 48, 96])
        self.assertEqual(tier_defs.slots_for(9), 96)
        self.assertEqual(tier_defs.upgrade_cost_to(1), 0)
        self.assertEqual(tier_defs.upkeep_cost_for(3), 6000)
        self.assertEqual(tier_defs.format_cap(1), "1,000")
        self.assertEqual(tier_defs.format_cap(5), "unlimited")


class TestUtils(unittest.TestCase):
    def test_format_elapsed(self):
        self.assertEqual(utils.format_elapsed(30), "30s")
        self.assertEqual(utils.format_elapsed(3660), "1h 1m")
        self.assertEqual(utils.format_elapsed(90000), "1d 1h")

    def test_from_iso_handles_naive_and_bad_values(self):
        self.assertEqual(utils.from_iso("2026-01-01T00:00:00").tzinfo, timezone.utc)
        with self.assertLogs('singularity.utils', level='WARNING'):
            self.assertIsNone(utils.from_iso("yesterday"))
        self.assertIsNone(utils.from_iso(None))

    def test_format_scrap_and_split_args(self):
        self.assertEqual(utils.format_scrap(12345), "12,345 scrap")
        self.assertEqual(utils.split_args("  a  b "), ["a", "b"])
        self.assertEqual(utils.split_args(""), [])


if __name__ == '__main__':
    unittest.main()
