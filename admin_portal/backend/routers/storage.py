from fastapi import APIRouter, HTTPException
from typing import List, Dict, Any
import json
from ..config import settings
from ..database import db
from ..models.storage import GlobalStats, StorageRecord, StorageSummary
from singularity.database import META_LAST_SAVE_ID
from singularity.records import PlayerStorageRecord
from singularity.definitions import tiers as tier_defs

router = APIRouter(prefix="/storage", tags=["storage"])

def _to_record(row) -> PlayerStorageRecord:
    data = row['data']
    if isinstance(data, str):
        data = json.loads(data)
    data = dict(data or {})
    data.setdefault('player_id', row['player_id'])
    return PlayerStorageRecord.from_dict(data)

def _summary(record: PlayerStorageRecord) -> Dict[str, Any]:
    return {
        "player_id": record.player_id,
        "storage_tier": record.storage_tier,
        "items": len(record.items),
        "slots": tier_defs.slots_for(record.storage_tier),
        "wipes_at_current_tier": record.wipes_at_current_tier,
        "last_accessed": record.last_accessed,
    }

@router.get("/stats", response_model=GlobalStats)
async def get_stats():
    """Totals across every stored record."""
    rows = await db.fetch_all("SELECT player_id, data FROM storage_records")
    meta = await db.fetch_one("SELECT value FROM storage_meta WHERE key = $1", META_LAST_SAVE_ID)
    records = [_to_record(row) for row in rows]
    per_tier = {tier: 0 for tier in tier_defs.TIER_SLOTS}
    for record in records:
        per_tier[record.storage_tier] += 1
    return {
        "total_users": len(records),
        "total_items": sum(len(record.items) for record in records),
        "players_per_tier": per_tier,
        "last_world_save_id": meta['value'] if meta else None,
    }

@router.get("/players", response_model=List[StorageSummary])
async def get_players(skip: int = 0, limit: int = 100):
    """Get stored players with pagination. Page size is capped by max_page_size."""
    limit = max(0, min(limit, settings.max_page_size))
    query = """
        SELECT player_id, data
        FROM storage_records
        ORDER BY player_id
        LIMIT $1 OFFSET $2
    """
    rows = await db.fetch_all(query, limit, skip)
    return [_summary(_to_record(row)) for row in rows]

@router.get("/players/{player_id}", response_model=StorageRecord)
async def get_player_record(player_id: int):
    """Get one player's full storage record, nested contents included"""
    row = await db.fetch_one(
        "SELECT player_id, data, updated_at FROM storage_records WHERE player_id = $1", player_id
    )
    if not row:
        raise HTTPException(status_code=404, detail="Storage record not found")
    document = _to_record(row).to_dict()
    document["updated_at"] = row['updated_at']
    return document
