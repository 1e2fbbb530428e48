# tests/test_admin_portal.py
import json
import unittest
from unittest.mock import AsyncMock, MagicMock, patch
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from fastapi.testclient import TestClient

from admin_portal.backend.config import settings
from admin_portal.backend.main import app


def _mock_db(rows=None, row=None):
    db = MagicMock()
    db.fetch_all = AsyncMock(return_value=rows or [])
    db.fetch_one = AsyncMock(return_value=row)
    return db


class TestAdminPortal(unittest.TestCase):
    def setUp(self):
        # Without a context manager the startup hook (and its pool) never runs
        self.client = TestClient(app)
        self.rows = [
            {"player_id": 1, "data": json.dumps({
                "player_id": 1, "storage_tier": 2, "wipes_at_current_tier": 1,
                "last_accessed": "2026-01-02T03:04:05+00:00",
                "items": [{"item_id": -151838493, "amount": 100, "position": 0},
                          {"item_id": 2068884361, "amount": 1, "position": 1,
                           "contents": [{"item_id": -932201673, "amount": 5, "position": 0}]}],
            })},
            {"player_id": 2, "data": {"storage_tier": 1, "items": []}},
        ]

    def test_health(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["service"], "Singularity Storage Admin API")
        self.assertEqual(response.json()["database"], "disconnected")
        self.assertTrue(response.json()["read_only"])

    def test_global_stats(self):
        db = _mock_db(rows=self.rows, row={"value": "save-b"})
        with patch("admin_portal.backend.routers.storage.db", db):
            response = self.client.get("/storage/stats")
        body = response.json()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(body["total_users"], 2)
        self.assertEqual(body["total_items"], 2)
        self.assertEqual(body["players_per_tier"]["2"], 1)
        self.assertEqual(body["last_world_save_id"], "save-b")

    def test_player_list(self):
        db = _mock_db(rows=self.rows)
        with patch("admin_portal.backend.routers.storage.db", db):
            response = self.client.get("/storage/players?limit=10")
        body = response.json()
        self.assertEqual([entry["player_id"] for entry in body], [1, 2])
        self.assertEqual(body[0]["slots"], 12)
        self.assertEqual(body[0]["items"], 2)
        db.fetch_all.assert_awaited_once()
        self.assertEqual(db.fetch_all.call_args[0][1:], (10, 0))

    def test_player_list_page_size_is_capped(self):
        db = _mock_db(rows=[])
        with patch("admin_portal.backend.routers.storage.db", db):
            response = self.client.get("/storage/players?skip=5&limit=100000")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(db.fetch_all.call_args[0][1:], (settings.max_page_size, 5))

    def test_player_record_includes_nested_contents(self):
        row = dict(self.rows[0], updated_at=None)
        with patch("admin_portal.backend.routers.storage.db", _mock_db(row=row)):
            response = self.client.get("/storage/players/1")
        body = response.json()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(body["storage_tier"], 2)
        self.assertEqual(body["items"][1]["contents"][0]["amount"], 5)

    def test_missing_player_record(self):
        with patch("admin_portal.backend.routers.storage.db", _mock_db(row=None)):
            response = self.client.get("/storage/players/404")
        self.assertEqual(response.status_code, 404)

    def test_placements(self):
        rows = [{"landmark_class": "Outpost",
                 "locations": json.dumps([{"relative_position": {"x": 1, "y": 0, "z": 2}, "relative_yaw": 90}])}]
        with patch("admin_portal.backend.routers.placements.db", _mock_db(rows=rows)):
            response = self.client.get("/placements/")
        body = response.json()
        self.assertEqual(body[0]["landmark_class"], "Outpost")
        self.assertEqual(body[0]["locations"][0]["relative_yaw"], 90.0)

    def test_landmarks_are_classified(self):
        rows = [{"id": 1, "name": "assets/bundled/prefabs/autospawn/monument/small/satellite_dish.prefab",
                 "display_name": None, "pos_x": 0.0, "pos_y": 0.0, "pos_z": 0.0, "yaw": 0.0}]
        with patch("admin_portal.backend.routers.placements.db", _mock_db(rows=rows)):
            response = self.client.get("/placements/landmarks")
        self.assertEqual(response.json()[0]["landmark_class"], "Satellite Dish")

    def test_missing_placement(self):
        with patch("admin_portal.backend.routers.placements.db", _mock_db(row=None)):
            response = self.client.get("/placements/Harbor")
        self.assertEqual(response.status_code, 404)


if __name__ == '__main__':
    unittest.main()
