from pydantic import BaseModel
from typing import Any, Dict, Union

Scalar = Union[bool, int, float, str]


class StatsResponseModel(BaseModel):
    """Full stats document of a user, sent back after a read or an update."""
    user_id: str
    version: Any
    stats: Dict[str, Dict[str, Dict[str, Scalar]]]
