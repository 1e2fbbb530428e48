from fastapi import APIRouter, HTTPException
from typing import List
import json
from ..database import db
from ..models.placement import Landmark, Placement
from singularity.landmarks import classify_landmark

router = APIRouter(prefix="/placements", tags=["placements"])

def _locations(raw):
    if isinstance(raw, str):
        return json.loads(raw)
    return raw or []

@router.get("/", response_model=List[Placement])
async def get_placements():
    """Get every saved terminal placement grouped by landmark class"""
    rows = await db.fetch_all(
        "SELECT landmark_class, locations FROM terminal_placements ORDER BY landmark_class"
    )
    return [
        {"landmark_class": row['landmark_class'], "locations": _locations(row['locations'])}
        for row in rows
    ]

@router.get("/landmarks", response_model=List[Landmark])
async def get_landmarks():
    """Get the world's landmarks and the class each one resolves to"""
    rows = await db.fetch_all(
        "SELECT id, name, display_name, pos_x, pos_y, pos_z, yaw FROM landmarks ORDER BY id"
    )
    landmarks = []
    for row in rows:
        data = dict(row)
        data["landmark_class"] = classify_landmark(data["name"], data.get("display_name"))
        landmarks.append(data)
    return landmarks

@router.get("/{landmark_class}", response_model=Placement)
async def get_placement(landmark_class: str):
    """Get the saved placements for one landmark class"""
    row = await db.fetch_one(
        "SELECT landmark_class, locations FROM terminal_placements WHERE landmark_class = $1",
        landmark_class
    )
    if not row:
        raise HTTPException(status_code=404, detail="No saved placements for that landmark class")
    return {"landmark_class": row['landmark_class'], "locations": _locations(row['locations'])}
