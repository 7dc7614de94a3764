"""Add bill, bill_clause and clause_analytics tables.

Revision ID: 3f8a1c2d9b47
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f8a1c2d9b47"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False
        ),
    ]


def upgrade() -> None:
    op.execute(
        "CREATE TYPE clause_type AS ENUM "
        "('section', 'subsection', 'paragraph', 'subparagraph')"
    )
    clause_type = postgresql.ENUM(
        "section",
        "subsection",
        "paragraph",
        "subparagraph",
        name="clause_type",
        create_type=False,
    )

    op.create_table(
        "bill",
        sa.Column("bill_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("bill_number", sa.String(50), nullable=True),
        sa.Column("pdf_path", sa.String(500), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("bill_id", name=op.f("pk_bill")),
    )

    op.create_table(
        "bill_clause",
        sa.Column("clause_id", sa.Integer(), nullable=False),
        sa.Column(
            "bill_id",
            sa.Integer(),
            sa.ForeignKey(
                "bill.bill_id",
                ondelete="CASCADE",
                name=op.f("fk_bill_clause_bill_id_bill"),
            ),
            nullable=False,
        ),
        sa.Column("clause_number", sa.String(255), nullable=False),
        sa.Column(
            "clause_type", clause_type, server_default="section", nullable=False
        ),
        sa.Column(
            "parent_clause_id",
            sa.Integer(),
            sa.ForeignKey(
                "bill_clause.clause_id",
                ondelete="SET NULL",
                name=op.f("fk_bill_clause_parent_clause_id_bill_clause"),
            ),
            nullable=True,
        ),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "metadata",
            postgresql.JSONB(),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column("display_order", sa.Integer(), server_default="0", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("clause_id", name=op.f("pk_bill_clause")),
        sa.UniqueConstraint(
            "bill_id", "display_order", name="uq_bill_clause_bill_display_order"
        ),
    )
    op.create_index(
        "idx_bill_clause_bill_number", "bill_clause", ["bill_id", "clause_number"]
    )
    op.create_index("idx_bill_clause_parent", "bill_clause", ["parent_clause_id"])

    op.create_table(
        "clause_analytics",
        sa.Column("analytics_id", sa.Integer(), nullable=False),
        sa.Column(
            "clause_id",
            sa.Integer(),
            sa.ForeignKey(
                "bill_clause.clause_id",
                ondelete="CASCADE",
                name=op.f("fk_clause_analytics_clause_id_bill_clause"),
            ),
            nullable=False,
        ),
        sa.Column("submissions_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("support_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("oppose_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("neutral_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("sentiment_scores", postgresql.JSONB(), nullable=True),
        sa.Column("top_keywords", postgresql.JSONB(), nullable=True),
        sa.Column("last_analyzed_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("analytics_id", name=op.f("pk_clause_analytics")),
        sa.UniqueConstraint("clause_id", name="uq_clause_analytics_clause"),
    )


def downgrade() -> None:
    op.drop_table("clause_analytics")

    op.drop_index("idx_bill_clause_parent", table_name="bill_clause")
    op.drop_index("idx_bill_clause_bill_number", table_name="bill_clause")
    op.drop_table("bill_clause")

    op.drop_table("bill")

    sa.Enum(name="clause_type").drop(op.get_bind(), checkfirst=True)
