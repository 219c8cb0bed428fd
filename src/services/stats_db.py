"""DB-backed stats gateway.

- This layer owns session/transaction boundaries.
- Use CRUD helpers that do NOT commit inside session.begin().
- Infrastructure errors are logged and re-raised unchanged.
"""

import logging
from typing import Hashable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from src.crud import CreateData, DeleteData, ReadData, UpdateData
from src.domain.stats_document import (
    INITIAL_VERSION,
    StatsDocument,
    VersionedDocument,
    validate_document,
)
from src.exceptions import ConflictError
from src.services.stats_gateway import StatsGateway


class SqlAlchemyStatsGateway(StatsGateway):
    def __init__(self, Session: async_sessionmaker):
        self.Session: async_sessionmaker = Session

    async def load(self, user_id: str) -> VersionedDocument:
        try:
            async with self.Session() as session:
                row = await ReadData.read_user_stats(user_id, session)
        except SQLAlchemyError as e:
            logging.error(f"Failed to read stats of user {user_id}: {e}")
            raise

        if row is None:
            return VersionedDocument(stats={}, version=INITIAL_VERSION)
        return VersionedDocument(stats=validate_document(row.stats), version=row.version)

    async def compare_and_store(
        self, user_id: str, expected_version: Hashable, stats: StatsDocument
    ) -> Hashable:
        try:
            async with self.Session() as session:
                async with session.begin():
                    if expected_version == INITIAL_VERSION:
                        new_version = await CreateData.add_user_stats(user_id, stats, session)
                    else:
                        new_version = await UpdateData.update_user_stats_if_version(
                            user_id, expected_version, stats, session
                        )
                        if new_version is None:
                            current_version = await ReadData.read_user_stats_version(
                                user_id, session
                            )
                            raise ConflictError(user_id, expected_version, current_version)
        except IntegrityError:
            # Another writer inserted the first row for this user.
            raise ConflictError(user_id, expected_version) from None
        except SQLAlchemyError as e:
            logging.error(f"Failed to store stats of user {user_id}: {e}")
            raise
        return new_version

    async def create(self, user_id: str) -> VersionedDocument:
        try:
            await self.compare_and_store(user_id, INITIAL_VERSION, {})
        except ConflictError:
            logging.info(f"Stats for user {user_id} already exist")
        return await self.load(user_id)

    async def delete(self, user_id: str) -> bool:
        try:
            async with self.Session() as session:
                async with session.begin():
                    return await DeleteData.delete_user_stats(user_id, session)
        except SQLAlchemyError as e:
            logging.error(f"Failed to delete stats of user {user_id}: {e}")
            raise
