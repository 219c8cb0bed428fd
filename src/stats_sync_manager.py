import asyncio
import logging
import random

from src.domain.stats_document import Patch, VersionedDocument
from src.domain.stats_merge import merge_stats
from src.exceptions import (
    ConcurrentUpdateExceededError,
    ConflictError,
    StatsUpdateTimeoutError,
)
from src.services.stats_gateway import StatsGateway

DEFAULT_RETRY_CEILING = 5
DEFAULT_ATTEMPT_TIMEOUT = 5.0
DEFAULT_RETRY_BACKOFF = 0.01


class StatsSyncManager:
    """Applies stats patches with optimistic concurrency control.

    Each attempt loads the current document, merges the patch and writes the
    result back only if nobody stored a newer version in between. A conflict
    discards the attempt and starts over from a fresh load. The manager keeps
    no per-user state, so updates for different users never wait on each other.
    """

    def __init__(
        self,
        gateway: StatsGateway,
        retry_ceiling: int = DEFAULT_RETRY_CEILING,
        attempt_timeout: float | None = DEFAULT_ATTEMPT_TIMEOUT,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
    ):
        if retry_ceiling < 1:
            raise ValueError("retry_ceiling must be at least 1")
        self.gateway = gateway
        self.retry_ceiling = retry_ceiling
        self.attempt_timeout = attempt_timeout
        self.retry_backoff = retry_backoff

    async def _attempt(self, user_id: str, patch: Patch) -> VersionedDocument:
        current: VersionedDocument = await self.gateway.load(user_id)
        candidate = merge_stats(current.stats, patch)
        new_version = await self.gateway.compare_and_store(user_id, current.version, candidate)
        return VersionedDocument(stats=candidate, version=new_version)

    async def _backoff(self, attempt: int):
        if self.retry_backoff > 0:
            await asyncio.sleep(random.uniform(0.5, 1.0) * self.retry_backoff * attempt)
        else:
            await asyncio.sleep(0)

    async def apply_patch(
        self, user_id: str, patch: Patch, timeout: float | None = None
    ) -> VersionedDocument:
        """Merge patch into the stored stats of user_id

        Args:
            user_id (str): To identify the user
            patch (Patch): Parsed patch
            timeout (float | None, optional): Deadline of each attempt in seconds. Defaults to attempt_timeout.

        Raises:
            ConcurrentUpdateExceededError: Every attempt up to retry_ceiling hit a conflict
            StatsUpdateTimeoutError: One attempt ran past its deadline

        Returns:
            VersionedDocument: The merged document as stored, with its new version
        """
        deadline = self.attempt_timeout if timeout is None else timeout
        for attempt in range(1, self.retry_ceiling + 1):
            scope = asyncio.timeout(deadline)
            try:
                async with scope:
                    return await self._attempt(user_id, patch)
            except ConflictError as e:
                logging.info(f"Stats conflict for user {user_id} on attempt {attempt}: {e}")
            except TimeoutError:
                # A TimeoutError raised by the gateway itself is an infrastructure error.
                if not scope.expired():
                    raise
                logging.warning(f"Stats update for user {user_id} timed out on attempt {attempt}")
                raise StatsUpdateTimeoutError(user_id, deadline) from None

            if attempt < self.retry_ceiling:
                await self._backoff(attempt)

        logging.warning(
            f"Stats update for user {user_id} gave up after {self.retry_ceiling} attempts"
        )
        raise ConcurrentUpdateExceededError(user_id, self.retry_ceiling)

    async def read(self, user_id: str) -> VersionedDocument:
        return await self.gateway.load(user_id)
