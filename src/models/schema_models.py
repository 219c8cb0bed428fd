from pydantic import BaseModel
from typing import Any, Dict
from datetime import datetime


class UserStatsSchema(BaseModel):
    user_id: str
    stats: Dict[str, Any]
    version: int
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
