"""create_publication_tables

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19

Creates publications with per-language translations, multilingual
categories, the publication/category link table and the guestbook.
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a1b2c3d4e5f6"
down_revision: str | None = None
branch_labels = None
depends_on = None

publication_type = sa.Enum("NEWS", "ARTICLE", name="publication_type")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "categories",
        sa.Column("id", sa.String(36), primary_key=True),
        *_timestamps(),
    )

    op.create_table(
        "category_translations",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "category_id",
            sa.String(36),
            sa.ForeignKey("categories.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("language_code", sa.String(10), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.UniqueConstraint("category_id", "language_code", name="uq_category_translation_language"),
    )
    op.create_index("ix_category_translations_category_id", "category_translations", ["category_id"])

    op.create_table(
        "publications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("type", publication_type, nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("banner_image", sa.String, nullable=True),
        sa.Column("og_image", sa.String, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_publications_date", "publications", ["date"])

    op.create_table(
        "publication_translations",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "publication_id",
            sa.String(36),
            sa.ForeignKey("publications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("language_code", sa.String(10), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("slug", sa.String(300), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("publication_id", "language_code", name="uq_publication_translation_language"),
        sa.UniqueConstraint("language_code", "slug", name="uq_publication_translation_slug"),
    )
    op.create_index("ix_publication_translations_publication_id", "publication_translations", ["publication_id"])
    op.create_index("idx_pt_language_title", "publication_translations", ["language_code", "title"])

    op.create_table(
        "publication_categories",
        sa.Column(
            "publication_id",
            sa.String(36),
            sa.ForeignKey("publications.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "category_id",
            sa.String(36),
            sa.ForeignKey("categories.id", ondelete="RESTRICT"),
            primary_key=True,
        ),
    )
    op.create_index("ix_publication_categories_category_id", "publication_categories", ["category_id"])

    op.create_table(
        "guestbooks",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("origin", sa.String(150), nullable=False),
        sa.Column("purpose", sa.String(200), nullable=False),
        sa.Column("selfie_image", sa.String, nullable=False),
        sa.Column("signature_image", sa.String, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_guestbooks_created_at", "guestbooks", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_guestbooks_created_at", table_name="guestbooks")
    op.drop_table("guestbooks")
    op.drop_index("ix_publication_categories_category_id", table_name="publication_categories")
    op.drop_table("publication_categories")
    op.drop_index("idx_pt_language_title", table_name="publication_translations")
    op.drop_index("ix_publication_translations_publication_id", table_name="publication_translations")
    op.drop_table("publication_translations")
    op.drop_index("ix_publications_date", table_name="publications")
    op.drop_table("publications")
    publication_type.drop(op.get_bind(), checkfirst=True)
    op.drop_index("ix_category_translations_category_id", table_name="category_translations")
    op.drop_table("category_translations")
    op.drop_table("categories")
