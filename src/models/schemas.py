from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.schema import Column
from sqlalchemy.types import JSON, Integer, String, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from datetime import datetime


class Base(DeclarativeBase):
    pass


class UserStats(Base):
    """Stats document of one user, versioned for conditional writes.

    Example of stats data:
        {"health": {"2022-11-13": {"calories": 2200, "steps": 8000}}}
    """
    __tablename__ = "user_stats"
    user_id = Column(String, primary_key=True)
    stats = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict)
    version = Column(Integer, nullable=False, default=1)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
    # Set when the owning user is deleted; the row stays so the version never goes back.
    deleted_at = Column(DateTime, nullable=True)
