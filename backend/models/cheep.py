"""Cheep (short post) model."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String
from sqlmodel import Field, SQLModel

_version_column = Column("version_id", Integer, nullable=False)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Cheep(SQLModel, table=True):
    """A post of at most 160 characters authored by one Author."""

    __tablename__ = "cheeps"
    __table_args__ = (
        Index("ix_cheeps_timestamp_cheep_id", "timestamp", "cheep_id"),
    )
    __mapper_args__ = {"version_id_col": _version_column}

    cheep_id: int = Field(
        sa_column=Column(Integer, primary_key=True, autoincrement=False)
    )
    text: str = Field(sa_column=Column(String(160), nullable=False))
    # Stored in UTC; converted to local time only when rendered.
    timestamp: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    author_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("authors.author_id"),
            nullable=False,
            index=True,
        )
    )
    # Mirror of Author.liked_cheep_ids for every liking author.
    liked_by_author_ids: list[int] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    version_id: int | None = Field(default=None, sa_column=_version_column)
