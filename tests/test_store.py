# tests/test_store.py
import asyncio
import unittest
from unittest.mock import AsyncMock
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from singularity.database import META_LAST_SAVE_ID
from singularity.records import PlayerStorageRecord
from singularity.store import DurableStore


class TestDurableStore(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.mock_db_manager = AsyncMock()
        self.store = DurableStore(self.mock_db_manager)

    async def test_save_record_writes_a_snapshot(self):
        record = PlayerStorageRecord(7, storage_tier=3)
        self.store.save_record(record)
        record.storage_tier = 1  # later changes do not leak into the scheduled write
        await self.store.flush()

        self.mock_db_manager.save_storage_record.assert_awaited_once()
        player_id, data = self.mock_db_manager.save_storage_record.call_args[0]
        self.assertEqual(player_id, 7)
        self.assertEqual(data['storage_tier'], 3)
        self.assertEqual(self.store.pending_count, 0)

    async def test_writes_for_the_same_key_keep_their_order(self):
        order = []

        async def slow_save(player_id, data):
            await asyncio.sleep(0.05)
            order.append(("save", data['storage_tier']))

        async def fast_delete(player_id):
            order.append(("delete", player_id))

        self.mock_db_manager.save_storage_record.side_effect = slow_save
        self.mock_db_manager.delete_storage_record.side_effect = fast_delete

        self.store.save_record(PlayerStorageRecord(7, storage_tier=2))
        self.store.delete_record(7)
        await self.store.flush()

        self.assertEqual(order, [("save", 2), ("delete", 7)])

    async def test_failed_write_is_logged_not_raised(self):
        self.mock_db_manager.replace_placements.side_effect = RuntimeError("db down")
        with self.assertLogs('singularity.store', level='ERROR'):
            self.store.save_placements({"Outpost": []})
            await self.store.flush()
        self.assertEqual(self.store.pending_count, 0)

    async def test_last_save_id_goes_to_meta(self):
        self.store.save_last_save_id("save-b")
        await self.store.flush()
        self.mock_db_manager.set_meta.assert_awaited_once_with(META_LAST_SAVE_ID, "save-b")


class TestDurableStoreWithoutLoop(unittest.TestCase):
    def test_write_without_running_loop_is_skipped(self):
        store = DurableStore(AsyncMock())
        with self.assertLogs('singularity.store', level='WARNING'):
            self.assertIsNone(store.save_record(PlayerStorageRecord(1)))


if __name__ == '__main__':
    unittest.main()
