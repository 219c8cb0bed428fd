import asyncio

import pytest

from src.domain.stats_document import parse_patch
from src.domain.stats_merge import merge_stats
from src.services.stats_gateway import InMemoryStatsGateway


class SlowLoadGateway(InMemoryStatsGateway):
    """Yields to the event loop after every read so concurrent writers interleave."""

    def __init__(self):
        super().__init__()
        self.loads = 0
        self.stores = 0

    async def load(self, user_id):
        self.loads += 1
        versioned = await super().load(user_id)
        await asyncio.sleep(0)
        return versioned

    async def compare_and_store(self, user_id, expected_version, stats):
        self.stores += 1
        return await super().compare_and_store(user_id, expected_version, stats)


class RivalWritesGateway(InMemoryStatsGateway):
    """Lets one rival writer commit right before each store of the caller under test."""

    def __init__(self, rival_patches):
        super().__init__()
        self.rival_patches = list(rival_patches)

    async def compare_and_store(self, user_id, expected_version, stats):
        if self.rival_patches:
            rival = parse_patch(self.rival_patches.pop(0))
            current = await super().load(user_id)
            await super().compare_and_store(
                user_id, current.version, merge_stats(current.stats, rival)
            )
        return await super().compare_and_store(user_id, expected_version, stats)


class HangingGateway(InMemoryStatsGateway):
    def __init__(self):
        super().__init__()
        self.stores = 0

    async def load(self, user_id):
        await asyncio.sleep(10)
        return await super().load(user_id)

    async def compare_and_store(self, user_id, expected_version, stats):
        self.stores += 1
        return await super().compare_and_store(user_id, expected_version, stats)


class PoolTimeoutGateway(InMemoryStatsGateway):
    """Fails every read the way a driver does when its connection pool runs dry."""

    def __init__(self):
        super().__init__()
        self.stores = 0

    async def load(self, user_id):
        raise TimeoutError("connection pool timed out")

    async def compare_and_store(self, user_id, expected_version, stats):
        self.stores += 1
        return await super().compare_and_store(user_id, expected_version, stats)


@pytest.fixture
def memory_gateway():
    return InMemoryStatsGateway()


@pytest.fixture
def slow_gateway():
    return SlowLoadGateway()


@pytest.fixture
def hanging_gateway():
    return HangingGateway()


@pytest.fixture
def rival_gateway_factory():
    return RivalWritesGateway


@pytest.fixture
def pool_timeout_gateway():
    return PoolTimeoutGateway()
