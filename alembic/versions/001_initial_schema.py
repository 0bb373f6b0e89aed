"""Create articles, tags and book recommendation tables.

Revision ID: 001_initial_schema
Revises:
Create Date: 2025-12-06

Articles and tags are linked through ``article_tags``, which also stores each
tag's position so the order given by the user survives a round trip. The
``book_recommendations`` table holds the current recommendation set as a JSON
array.
"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

# SQLite only auto-increments INTEGER PRIMARY KEY columns
BigIntPK = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create the initial schema."""
    op.create_table(
        "articles",
        sa.Column("id", BigIntPK, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("url", sa.String(2048), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("memo", sa.Text(), nullable=False, server_default=""),
        *_timestamps(),
    )
    op.create_index("ix_articles_created_at", "articles", ["created_at"])

    op.create_table(
        "tags",
        sa.Column("id", BigIntPK, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        *_timestamps(),
    )

    op.create_table(
        "article_tags",
        sa.Column(
            "article_id",
            BigIntPK,
            sa.ForeignKey("articles.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "tag_id",
            BigIntPK,
            sa.ForeignKey("tags.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_article_tags_tag_id", "article_tags", ["tag_id"])

    op.create_table(
        "book_recommendations",
        sa.Column("id", BigIntPK, primary_key=True, autoincrement=True),
        sa.Column("recommendations_json", sa.JSON(), nullable=False),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "ix_book_recommendations_expires_at", "book_recommendations", ["expires_at"]
    )
    op.create_index(
        "ix_book_recommendations_created_at", "book_recommendations", ["created_at"]
    )


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_index("ix_book_recommendations_created_at", table_name="book_recommendations")
    op.drop_index("ix_book_recommendations_expires_at", table_name="book_recommendations")
    op.drop_table("book_recommendations")
    op.drop_index("ix_article_tags_tag_id", table_name="article_tags")
    op.drop_table("article_tags")
    op.drop_table("tags")
    op.drop_index("ix_articles_created_at", table_name="articles")
    op.drop_table("articles")
