"""Persistence contract for per-user stats documents.

The update path depends on exactly two operations, ``load`` and
``compare_and_store``. ``create`` and ``delete`` follow the owning user's
lifecycle and are called by whoever creates or removes users.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, Hashable, Set

from src.domain.stats_document import (
    INITIAL_VERSION,
    StatsDocument,
    VersionedDocument,
    clone_document,
)
from src.exceptions import ConflictError


class StatsGateway(ABC):
    """Storage of one versioned stats document per user."""

    @abstractmethod
    async def load(self, user_id: str) -> VersionedDocument:
        """Return the stored document, or an empty one at ``INITIAL_VERSION``."""

    @abstractmethod
    async def compare_and_store(
        self, user_id: str, expected_version: Hashable, stats: StatsDocument
    ) -> Hashable:
        """Store ``stats`` if the stored version equals ``expected_version``.

        Raises:
            ConflictError: Another writer stored a newer version first

        Returns:
            Hashable: Version of the stored document
        """

    @abstractmethod
    async def create(self, user_id: str) -> VersionedDocument:
        """Create an empty document for a new user; existing documents are kept."""

    @abstractmethod
    async def delete(self, user_id: str) -> bool:
        """Empty the document of a deleted user, keeping its version counting up."""


class InMemoryStatsGateway(StatsGateway):
    """Process-local gateway keyed by user id.

    Documents are copied on the way in and out so no caller can mutate the
    stored state.
    """

    def __init__(self):
        self._documents: Dict[str, VersionedDocument] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._tombstones: Set[str] = set()

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        return self._locks.setdefault(user_id, asyncio.Lock())

    async def load(self, user_id: str) -> VersionedDocument:
        stored = self._documents.get(user_id)
        if stored is None:
            return VersionedDocument(stats={}, version=INITIAL_VERSION)
        return VersionedDocument(stats=clone_document(stored.stats), version=stored.version)

    async def compare_and_store(
        self, user_id: str, expected_version: Hashable, stats: StatsDocument
    ) -> Hashable:
        async with self._lock_for(user_id):
            stored = self._documents.get(user_id)
            current_version = INITIAL_VERSION if stored is None else stored.version
            if current_version != expected_version:
                raise ConflictError(user_id, expected_version, current_version)
            new_version = current_version + 1
            self._tombstones.discard(user_id)
            self._documents[user_id] = VersionedDocument(
                stats=clone_document(stats), version=new_version
            )
            return new_version

    async def create(self, user_id: str) -> VersionedDocument:
        async with self._lock_for(user_id):
            if user_id not in self._documents:
                self._documents[user_id] = VersionedDocument(stats={}, version=INITIAL_VERSION + 1)
        return await self.load(user_id)

    async def delete(self, user_id: str) -> bool:
        # Keep an empty tombstone at the next version instead of forgetting the user.
        async with self._lock_for(user_id):
            stored = self._documents.get(user_id)
            if stored is None or user_id in self._tombstones:
                logging.info(f"No stats to delete for user {user_id}")
                return False
            self._documents[user_id] = VersionedDocument(stats={}, version=stored.version + 1)
            self._tombstones.add(user_id)
            return True
