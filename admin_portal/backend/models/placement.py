from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional

class RelativePosition(BaseModel):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

class SavedLocation(BaseModel):
    relative_position: RelativePosition = Field(default_factory=RelativePosition)
    relative_yaw: float = 0.0

class Placement(BaseModel):
    landmark_class: str
    locations: List[SavedLocation] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

class Landmark(BaseModel):
    id: int
    name: str
    display_name: Optional[str] = None
    pos_x: float = 0.0
    pos_y: float = 0.0
    pos_z: float = 0.0
    yaw: float = 0.0
    landmark_class: str

    model_config = ConfigDict(from_attributes=True)
