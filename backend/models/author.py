"""Author domain model."""

from __future__ import annotations

from sqlalchemy import JSON, Column, Integer, String
from sqlmodel import Field, SQLModel

# Bumped on every UPDATE; a write against an outdated version raises StaleDataError.
_version_column = Column("version_id", Integer, nullable=False)


class Author(SQLModel, table=True):
    """Registered poster, keyed to the external identity by email."""

    __tablename__ = "authors"
    __mapper_args__ = {"version_id_col": _version_column}

    # Ids come from the smallest-free-id allocator, never from the database.
    author_id: int = Field(
        sa_column=Column(Integer, primary_key=True, autoincrement=False)
    )
    name: str = Field(sa_column=Column(String(200), nullable=False, index=True))
    email: str = Field(sa_column=Column(String(200), nullable=False, index=True))
    # Followed author ids in follow order; duplicates are not rejected.
    following: list[int] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    liked_cheep_ids: list[int] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    version_id: int | None = Field(default=None, sa_column=_version_column)
