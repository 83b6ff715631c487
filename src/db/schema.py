"""Database tables / schema"""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import JSON, DateTime, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class DBGame(Base):
    """
    One row per game record.

    `version` doubles as SQLAlchemy's version counter: every UPDATE is issued as
    `... WHERE id = :id AND version = :version_as_read`, so of two sessions writing on top of the same read,
    only the first one succeeds (the other gets a StaleDataError).
    The new value is assigned by the repository (version_id_generator=False).
    """

    __tablename__ = "games"
    id: Mapped[UUID] = mapped_column(primary_key=True)
    board: Mapped[str] = mapped_column(Text)
    turn: Mapped[str]
    players: Mapped[dict[str, Optional[str]]] = mapped_column(JSON)
    status: Mapped[str]
    winner: Mapped[Optional[str]]
    version: Mapped[int] = mapped_column()
    half_move_clock: Mapped[int] = mapped_column(default=0)
    is_random_color: Mapped[bool] = mapped_column(default=False)
    last_move: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON(none_as_null=True)
    )
    previous_state: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON(none_as_null=True)
    )
    takeback_request: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON(none_as_null=True)
    )
    rematch_id: Mapped[Optional[UUID]]
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    expire_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __mapper_args__ = {
        "version_id_col": version,
        "version_id_generator": False,
    }
