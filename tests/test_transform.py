# tests/test_transform.py
import unittest
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from singularity import transform
from singularity.transform import Frame, Vector3


class TestTransform(unittest.TestCase):
    """Test suite for landmark-relative coordinate math."""

    def assertVectorAlmostEqual(self, actual, expected, places=5):
        self.assertAlmostEqual(actual.x, expected.x, places=places)
        self.assertAlmostEqual(actual.y, expected.y, places=places)
        self.assertAlmostEqual(actual.z, expected.z, places=places)

    def test_normalize_yaw(self):
        self.assertEqual(transform.normalize_yaw(0), 0.0)
        self.assertEqual(transform.normalize_yaw(360), 0.0)
        self.assertEqual(transform.normalize_yaw(-90), 270.0)
        self.assertEqual(transform.normalize_yaw(450), 90.0)
        self.assertEqual(transform.normalize_yaw(-720), 0.0)

    def test_yaw_90_turns_forward_onto_positive_x(self):
        frame = Frame(Vector3(100, 5, 200), 90.0)
        world = transform.to_world(frame, Vector3(0, 0, 10))
        self.assertVectorAlmostEqual(world, Vector3(110, 5, 200))

    def test_to_relative_inverts_to_world(self):
        frame = Frame(Vector3(-250.5, 12.0, 731.25), 137.0)
        relative = Vector3(3.5, 1.0, -7.25)
        world = transform.to_world(frame, relative)
        self.assertVectorAlmostEqual(transform.to_relative(frame, world), relative)

    def test_relative_placement_follows_a_moved_landmark(self):
        """A terminal saved next to one landmark lands in the same spot next to its replacement."""
        old_frame = Frame(Vector3(0, 0, 0), 0.0)
        new_frame = Frame(Vector3(500, 10, -300), 180.0)
        relative = transform.to_relative(old_frame, Vector3(4, 0, 6))
        self.assertVectorAlmostEqual(transform.to_world(new_frame, relative), Vector3(496, 10, -306))

    def test_yaw_round_trip(self):
        frame = Frame(Vector3(), 300.0)
        relative = transform.yaw_to_relative(frame, 45.0)
        self.assertAlmostEqual(relative, 105.0)
        self.assertAlmostEqual(transform.yaw_to_world(frame, relative), 45.0)

    def test_snap_yaw_to_cardinal_boundaries(self):
        self.assertEqual(transform.snap_yaw_to_cardinal(0), 0.0)
        self.assertEqual(transform.snap_yaw_to_cardinal(44.9), 0.0)
        self.assertEqual(transform.snap_yaw_to_cardinal(45.0), 90.0)
        self.assertEqual(transform.snap_yaw_to_cardinal(134.9), 90.0)
        self.assertEqual(transform.snap_yaw_to_cardinal(135.0), 180.0)
        self.assertEqual(transform.snap_yaw_to_cardinal(225.0), 270.0)
        self.assertEqual(transform.snap_yaw_to_cardinal(315.0), 0.0)
        self.assertEqual(transform.snap_yaw_to_cardinal(-30), 0.0)

    def test_cardinal_name_matches_snap(self):
        for yaw, name in ((10, "North"), (90, "East"), (200, "South"), (260, "West"), (350, "North")):
            self.assertEqual(transform.cardinal_name(yaw), name)

    def test_horizontal_yaw(self):
        origin = Vector3()
        self.assertAlmostEqual(transform.horizontal_yaw(origin, Vector3(0, 5, 10)), 0.0)
        self.assertAlmostEqual(transform.horizontal_yaw(origin, Vector3(10, 0, 0)), 90.0)
        self.assertAlmostEqual(transform.horizontal_yaw(origin, Vector3(-10, 0, 0)), 270.0)
        self.assertEqual(transform.horizontal_yaw(origin, Vector3(0, 7, 0)), 0.0)

    def test_forward_vector(self):
        self.assertVectorAlmostEqual(transform.forward_vector(0), Vector3(0, 0, 1))
        self.assertVectorAlmostEqual(transform.forward_vector(90), Vector3(1, 0, 0))

    def test_vector_from_any(self):
        self.assertEqual(Vector3.from_any({"x": 1, "y": 2, "z": 3}), Vector3(1.0, 2.0, 3.0))
        self.assertEqual(Vector3.from_any([4, 5, 6]), Vector3(4.0, 5.0, 6.0))
        self.assertTrue(Vector3.from_any({}).is_zero())


if __name__ == '__main__':
    unittest.main()
