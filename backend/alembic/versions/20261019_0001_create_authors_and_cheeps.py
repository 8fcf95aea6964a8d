"""Create authors and cheeps tables."""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

revision: str = "20261019_0001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "authors",
        sa.Column("author_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=200), nullable=False),
        sa.Column("following", sa.JSON(), nullable=False),
        sa.Column("liked_cheep_ids", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("author_id"),
    )
    op.create_index("ix_authors_name", "authors", ["name"], unique=False)
    op.create_index("ix_authors_email", "authors", ["email"], unique=False)

    op.create_table(
        "cheeps",
        sa.Column("cheep_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("text", sa.String(length=160), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=False),
        sa.Column("liked_by_author_ids", sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(["author_id"], ["authors.author_id"]),
        sa.PrimaryKeyConstraint("cheep_id"),
    )
    op.create_index("ix_cheeps_author_id", "cheeps", ["author_id"], unique=False)
    op.create_index(
        "ix_cheeps_timestamp_cheep_id",
        "cheeps",
        ["timestamp", "cheep_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_cheeps_timestamp_cheep_id", table_name="cheeps")
    op.drop_index("ix_cheeps_author_id", table_name="cheeps")
    op.drop_table("cheeps")
    op.drop_index("ix_authors_email", table_name="authors")
    op.drop_index("ix_authors_name", table_name="authors")
    op.drop_table("authors")
