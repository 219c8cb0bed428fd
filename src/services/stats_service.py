"""Stats use cases called by the HTTP layer.

Patches are validated before any gateway call, so a malformed body never
causes a read or a write.
"""

from typing import Any

from src.domain.stats_document import StatsDocument, VersionedDocument, parse_patch
from src.stats_sync_manager import StatsSyncManager


async def apply_stats_versioned(
    manager: StatsSyncManager, user_id: str, raw_patch: Any, timeout: float | None = None
) -> VersionedDocument:
    patch = parse_patch(raw_patch)
    return await manager.apply_patch(user_id, patch, timeout=timeout)


async def apply_stats(
    manager: StatsSyncManager, user_id: str, raw_patch: Any, timeout: float | None = None
) -> StatsDocument:
    """Merge a raw stats patch into the document of user_id

    Args:
        manager (StatsSyncManager): Controller bound to a gateway
        user_id (str): To identify the user
        raw_patch (Any): Decoded JSON body, category -> {"date": ..., <attr>: <scalar>}

    Raises:
        MalformedPatchError: raw_patch does not have the patch shape
        ConcurrentUpdateExceededError: Too many conflicting writers
        StatsUpdateTimeoutError: An attempt ran past its deadline

    Returns:
        StatsDocument: Full merged document
    """
    versioned = await apply_stats_versioned(manager, user_id, raw_patch, timeout=timeout)
    return versioned.stats


async def read_stats(manager: StatsSyncManager, user_id: str) -> VersionedDocument:
    return await manager.read(user_id)
