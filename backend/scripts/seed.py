"""Database seed script for local development.

Usage:
    uv run python scripts/seed.py

Loads the reference data set: two authors, four cheeps, and the follows
and likes between them. Authors that already exist are left untouched.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from core import configure_logging  # noqa: E402
from db.session import AsyncSessionMaker  # noqa: E402
from models import Author, Cheep  # noqa: E402
from services.authors import is_author_id_available  # noqa: E402

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeedAuthor:
    author_id: int
    name: str
    email: str
    following: list[int] = field(default_factory=list)
    liked_cheep_ids: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class SeedCheep:
    cheep_id: int
    author_id: int
    text: str
    timestamp: datetime
    liked_by_author_ids: list[int] = field(default_factory=list)


SEED_AUTHORS: Sequence[SeedAuthor] = [
    # Helge follows Adrian and likes her own cheeps.
    SeedAuthor(
        author_id=1,
        name="Helge",
        email="ropf@itu.dk",
        following=[2],
        liked_cheep_ids=[4, 1, 3],
    ),
    SeedAuthor(
        author_id=2,
        name="Adrian",
        email="adho@itu.dk",
        following=[],
        liked_cheep_ids=[1],
    ),
]

SEED_CHEEPS: Sequence[SeedCheep] = [
    SeedCheep(
        cheep_id=1,
        author_id=1,
        text="Join itu lan now",
        timestamp=datetime(2023, 8, 1, 13, 14, 37, tzinfo=timezone.utc),
        liked_by_author_ids=[1, 2],
    ),
    SeedCheep(
        cheep_id=2,
        author_id=2,
        text="test answer",
        timestamp=datetime(2023, 8, 1, 13, 15, 21, tzinfo=timezone.utc),
    ),
    SeedCheep(
        cheep_id=3,
        author_id=1,
        text="Madeleine says i make propaganda",
        timestamp=datetime(2023, 8, 1, 13, 14, 58, tzinfo=timezone.utc),
        liked_by_author_ids=[1],
    ),
    SeedCheep(
        cheep_id=4,
        author_id=1,
        text="Vee says i make propaganda",
        timestamp=datetime(2023, 8, 1, 13, 14, 58, tzinfo=timezone.utc),
        liked_by_author_ids=[1],
    ),
]


async def seed_database(session: AsyncSession) -> int:
    """Insert the seed data set; returns the number of authors inserted."""
    inserted_author_ids: set[int] = set()
    for seed_author in SEED_AUTHORS:
        if not await is_author_id_available(session, seed_author.author_id):
            continue
        session.add(
            Author(
                author_id=seed_author.author_id,
                name=seed_author.name,
                email=seed_author.email,
                following=list(seed_author.following),
                liked_cheep_ids=list(seed_author.liked_cheep_ids),
            )
        )
        inserted_author_ids.add(seed_author.author_id)
    await session.flush()

    for seed_cheep in SEED_CHEEPS:
        if seed_cheep.author_id not in inserted_author_ids:
            continue
        session.add(
            Cheep(
                cheep_id=seed_cheep.cheep_id,
                author_id=seed_cheep.author_id,
                text=seed_cheep.text,
                timestamp=seed_cheep.timestamp,
                liked_by_author_ids=list(seed_cheep.liked_by_author_ids),
            )
        )
    await session.commit()
    return len(inserted_author_ids)


async def main() -> None:
    configure_logging()
    async with AsyncSessionMaker() as session:
        inserted = await seed_database(session)
    logger.info("Seed complete", extra={"authors_inserted": inserted})


if __name__ == "__main__":
    asyncio.run(main())
