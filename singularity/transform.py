# singularity/transform.py
"""
Coordinate math for landmark-relative placement.

Landmarks are described by a frame: an absolute position plus a yaw
(rotation about the vertical axis, in degrees). Scale is ignored. Rotation
follows the host engine convention: a yaw of 90 turns the forward axis
(+Z) onto +X.
"""
from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Any, Dict, Sequence, Union


@dataclass(frozen=True)
class Vector3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def scaled(self, factor: float) -> "Vector3":
        return Vector3(self.x * factor, self.y * factor, self.z * factor)

    def distance_to(self, other: "Vector3") -> float:
        return math.sqrt((self.x - other.x) ** 2 + (self.y - other.y) ** 2 + (self.z - other.z) ** 2)

    def is_zero(self) -> bool:
        return self.x == 0.0 and self.y == 0.0 and self.z == 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}

    @classmethod
    def from_any(cls, data: Union["Vector3", Dict[str, Any], Sequence[float]]) -> "Vector3":
        """Builds a vector from a dict ({'x':..}), a 3-sequence or another vector."""
        if isinstance(data, Vector3):
            return data
        if isinstance(data, dict):
            return cls(float(data.get("x", 0.0)), float(data.get("y", 0.0)), float(data.get("z", 0.0)))
        x, y, z = data
        return cls(float(x), float(y), float(z))

    def __str__(self) -> str:
        return f"({self.x:.2f}, {self.y:.2f}, {self.z:.2f})"


ZERO = Vector3()


@dataclass(frozen=True)
class Frame:
    """A landmark reference frame."""
    position: Vector3
    yaw: float = 0.0


def normalize_yaw(yaw: float) -> float:
    """Wraps an angle in degrees into [0, 360)."""
    yaw = math.fmod(yaw, 360.0)
    if yaw < 0:
        yaw += 360.0
    # fmod of a tiny negative number can land exactly on 360 after the add
    if yaw >= 360.0:
        yaw -= 360.0
    return yaw


def _rotate(vec: Vector3, yaw: float) -> Vector3:
    rad = math.radians(yaw)
    cos_a = math.cos(rad)
    sin_a = math.sin(rad)
    return Vector3(
        vec.x * cos_a + vec.z * sin_a,
        vec.y,
        -vec.x * sin_a + vec.z * cos_a,
    )


def to_world(frame: Frame, relative: Vector3) -> Vector3:
    """Transforms a frame-local point into world space."""
    return frame.position + _rotate(relative, frame.yaw)


def to_relative(frame: Frame, world_pos: Vector3) -> Vector3:
    """Transforms a world point into the frame's local space. Inverse of to_world."""
    return _rotate(world_pos - frame.position, -frame.yaw)


def yaw_to_relative(frame: Frame, world_yaw: float) -> float:
    return normalize_yaw(world_yaw - frame.yaw)


def yaw_to_world(frame: Frame, relative_yaw: float) -> float:
    return normalize_yaw(relative_yaw + frame.yaw)


# Bucket boundaries are inclusive on the upper cardinal: 45.0 is East, 315.0 is North.
_CARDINALS = ((45.0, 0.0, "North"), (135.0, 90.0, "East"), (225.0, 180.0, "South"), (315.0, 270.0, "West"))


def _bucket(yaw: float):
    yaw = normalize_yaw(yaw)
    for upper, snapped, name in _CARDINALS:
        if yaw < upper:
            return snapped, name
    return 0.0, "North"


def snap_yaw_to_cardinal(yaw: float) -> float:
    """Snaps an angle to the nearest of 0/90/180/270 degrees."""
    return _bucket(yaw)[0]


def cardinal_name(yaw: float) -> str:
    """Returns North/East/South/West for an angle, using the same buckets as snap_yaw_to_cardinal."""
    return _bucket(yaw)[1]


def horizontal_yaw(from_pos: Vector3, to_pos: Vector3) -> float:
    """Yaw (degrees) of the horizontal direction from one point towards another."""
    dx = to_pos.x - from_pos.x
    dz = to_pos.z - from_pos.z
    if dx == 0.0 and dz == 0.0:
        return 0.0
    return normalize_yaw(math.degrees(math.atan2(dx, dz)))


def forward_vector(yaw: float) -> Vector3:
    """Horizontal unit vector for a yaw."""
    return _rotate(Vector3(0.0, 0.0, 1.0), yaw)
