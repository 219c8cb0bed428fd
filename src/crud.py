from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from datetime import datetime
import logging

from src.models.schema_models import UserStatsSchema
from src.models.schemas import Base, UserStats


class CreateData:
    @staticmethod
    async def create_table(engine) -> None:
        """Create table if not exists"""
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @staticmethod
    async def add_user_stats(user_id: str, stats: dict, session: AsyncSession) -> int:
        """Insert the first stats row of a user. Does not commit.

        Args:
            user_id (str): To identify the user
            stats (dict): Initial stats document
            session (AsyncSession): Session with an open transaction

        Raises:
            IntegrityError: A row for this user already exists

        Returns:
            int: Version of the new row
        """
        new_stats = UserStats(user_id=user_id, stats=stats, version=1)
        session.add(new_stats)
        await session.flush()
        return new_stats.version


class ReadData:
    @staticmethod
    async def read_user_stats(user_id: str, session: AsyncSession) -> UserStatsSchema | None:
        """Read the stats row of a user

        Args:
            user_id (str): To identify the user

        Returns:
            UserStatsSchema: Stats document and version, None if the user has no row yet
        """
        stmt = select(UserStats).where(UserStats.user_id == user_id)
        result = await session.execute(stmt)
        result = result.scalars().first()

        if result is None:
            return None

        return UserStatsSchema.model_validate(result)

    @staticmethod
    async def read_user_stats_version(user_id: str, session: AsyncSession) -> int | None:
        stmt = select(UserStats.version).where(UserStats.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalars().first()


class UpdateData:
    @staticmethod
    async def update_user_stats_if_version(
        user_id: str, expected_version: int, stats: dict, session: AsyncSession
    ) -> int | None:
        """Write stats only if the stored version still equals expected_version. Does not commit.

        Args:
            user_id (str): To identify the user
            expected_version (int): Version read before the merge
            stats (dict): Merged stats document

        Returns:
            int: New version, None if the row is missing or its version moved on
        """
        new_version = expected_version + 1
        stmt = (
            update(UserStats)
            .where(UserStats.user_id == user_id)
            .where(UserStats.version == expected_version)
            .values(stats=stats, version=new_version, deleted_at=None)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount != 1:
            return None
        return new_version


class DeleteData:
    @staticmethod
    async def delete_user_stats(user_id: str, session: AsyncSession) -> bool:
        """Empty the stats of a deleted user and leave a tombstone row. Does not commit.

        The version keeps counting up, so a writer that loaded before the delete
        can never match the version of a document stored after it.

        Returns:
            bool: True if live stats were deleted
        """
        stmt = (
            update(UserStats)
            .where(UserStats.user_id == user_id)
            .where(UserStats.deleted_at.is_(None))
            .values(stats={}, version=UserStats.version + 1, deleted_at=datetime.now())
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount == 0:
            logging.info(f"No stats to delete for user {user_id}")
            return False
        return True
