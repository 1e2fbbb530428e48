from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict
from datetime import datetime

class StoredItem(BaseModel):
    item_id: int
    amount: int = 1
    skin: int = 0
    condition: float = 1.0
    position: int = 0
    text: Optional[str] = None
    name: Optional[str] = None
    ammo: int = 0
    ammo_type: Optional[str] = None
    contents: List["StoredItem"] = Field(default_factory=list)

class StorageSummary(BaseModel):
    player_id: int
    storage_tier: int = 1
    items: int = 0
    slots: int = 0
    wipes_at_current_tier: int = 0
    last_accessed: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class StorageRecord(BaseModel):
    player_id: int
    storage_tier: int = 1
    wipes_survived_total: int = 0
    wipes_at_current_tier: int = 0
    first_created: Optional[datetime] = None
    last_accessed: Optional[datetime] = None
    tier_changed_at: Optional[datetime] = None
    last_wipe_counted_at: Optional[datetime] = None
    items: List[StoredItem] = Field(default_factory=list)
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class GlobalStats(BaseModel):
    total_users: int = 0
    total_items: int = 0
    players_per_tier: Dict[int, int] = Field(default_factory=dict)
    last_world_save_id: Optional[str] = None
