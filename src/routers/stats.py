import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status

from src.exceptions import (
    ConcurrentUpdateExceededError,
    MalformedPatchError,
    StatsUpdateTimeoutError,
)
from src.models.dc_models import StatsResponseModel
from src.services import stats_service
from src.stats_sync_manager import StatsSyncManager

stats_router = APIRouter()

PATCH_EXAMPLE = {
    "health": {"date": "2024-01-01", "weight": 152, "steps": 8000},
}


def get_stats_manager(request: Request) -> StatsSyncManager:
    return request.app.state.stats_manager


class StatsAPI:
    @staticmethod
    @stats_router.get("/stats/{user_id}", response_model=StatsResponseModel)
    async def get_stats(user_id: str, manager: StatsSyncManager = Depends(get_stats_manager)):
        versioned = await stats_service.read_stats(manager, user_id)
        return StatsResponseModel(user_id=user_id, version=versioned.version, stats=versioned.stats)

    @staticmethod
    @stats_router.post("/stats/{user_id}", response_model=StatsResponseModel)
    async def set_stats(
        user_id: str,
        stat_map: Dict[str, Any] = Body(..., examples=[PATCH_EXAMPLE]),
        manager: StatsSyncManager = Depends(get_stats_manager),
    ):
        """Merge a stats patch into the stats of the user

        Args:
            user_id (str): To identify the user
            stat_map (Dict[str, Any]): category -> {"date": "YYYY-MM-DD", <attribute>: <scalar>, ...}

        Raises:
            HTTPException: 422 for a malformed patch, 409 when concurrent writers won every attempt,
                504 when an attempt timed out
        """
        try:
            versioned = await stats_service.apply_stats_versioned(manager, user_id, stat_map)
        except MalformedPatchError as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
            )
        except ConcurrentUpdateExceededError as e:
            logging.warning(f"Rejected stats update: {e}")
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
        except StatsUpdateTimeoutError as e:
            logging.warning(f"Rejected stats update: {e}")
            raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(e))

        return StatsResponseModel(user_id=user_id, version=versioned.version, stats=versioned.stats)
