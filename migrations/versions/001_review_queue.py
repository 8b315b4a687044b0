"""Create tables for the manual review queue.

Revision ID: 001_review_queue
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy import inspect

# revision identifiers
revision = "001_review_queue"
down_revision = None
branch_labels = None
depends_on = None


def table_exists(table_name: str) -> bool:
    """Check if a table exists in the database."""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    # Calculation records - normally created by the parsing pipeline
    if not table_exists("calculation_records"):
        op.create_table(
            "calculation_records",
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
            sa.Column(
                "status",
                sa.String(20),
                nullable=False,
                server_default="pending",
                comment="pending, approved, rejected",
            ),
            sa.Column("confidence_score", sa.Float, nullable=True),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            ),
        )

    if not table_exists("review_items"):
        op.create_table(
            "review_items",
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
            sa.Column(
                "calculation_id",
                postgresql.UUID(as_uuid=True),
                sa.ForeignKey("calculation_records.id"),
                nullable=False,
            ),
            sa.Column(
                "priority",
                sa.String(10),
                nullable=False,
                server_default="medium",
                comment="low, medium, high",
            ),
            sa.Column(
                "status",
                sa.String(20),
                nullable=False,
                server_default="pending",
                comment="pending, in_review, completed",
            ),
            sa.Column("assigned_to", sa.String(255), nullable=True),
            sa.Column("notes", sa.Text, nullable=False, server_default=""),
            sa.Column("reviewed_by", sa.String(255), nullable=True),
            sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            ),
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            ),
            sa.CheckConstraint(
                "status IN ('pending', 'in_review', 'completed')",
                name="ck_review_items_status",
            ),
            sa.CheckConstraint(
                "priority IN ('low', 'medium', 'high')",
                name="ck_review_items_priority",
            ),
            sa.CheckConstraint(
                "status <> 'in_review' OR assigned_to IS NOT NULL",
                name="ck_review_items_in_review_assigned",
            ),
        )

    if not table_exists("review_audit_log"):
        op.create_table(
            "review_audit_log",
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
            sa.Column(
                "timestamp",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            ),
            sa.Column("event_type", sa.String(50), nullable=False),
            sa.Column("review_item_id", postgresql.UUID(as_uuid=True), nullable=False),
            sa.Column("metadata", postgresql.JSONB, nullable=False, server_default="{}"),
        )

    def create_index_safe(name, table, columns, **kwargs):
        try:
            op.create_index(name, table, columns, **kwargs)
        except Exception:
            pass  # Index already exists

    # At most one open review item per calculation
    create_index_safe(
        "uq_review_items_open_calculation",
        "review_items",
        ["calculation_id"],
        unique=True,
        postgresql_where=sa.text("status <> 'completed'"),
    )
    create_index_safe("idx_review_items_status", "review_items", ["status"])
    create_index_safe("idx_review_items_priority", "review_items", ["priority"])
    create_index_safe("idx_review_items_assigned_to", "review_items", ["assigned_to"])
    create_index_safe(
        "idx_review_items_unassigned_pending",
        "review_items",
        ["priority", "created_at"],
        postgresql_where=sa.text("status = 'pending' AND assigned_to IS NULL"),
    )
    create_index_safe("idx_review_audit_log_item", "review_audit_log", ["review_item_id"])
    create_index_safe("idx_review_audit_log_timestamp", "review_audit_log", ["timestamp"])


def downgrade() -> None:
    def drop_index_safe(name, table_name=None):
        try:
            op.drop_index(name, table_name=table_name)
        except Exception:
            pass

    def drop_table_safe(name):
        if table_exists(name):
            op.drop_table(name)

    drop_index_safe("idx_review_audit_log_timestamp", "review_audit_log")
    drop_index_safe("idx_review_audit_log_item", "review_audit_log")
    drop_index_safe("idx_review_items_unassigned_pending", "review_items")
    drop_index_safe("idx_review_items_assigned_to", "review_items")
    drop_index_safe("idx_review_items_priority", "review_items")
    drop_index_safe("idx_review_items_status", "review_items")
    drop_index_safe("uq_review_items_open_calculation", "review_items")
    drop_table_safe("review_audit_log")
    drop_table_safe("review_items")
    drop_table_safe("calculation_records")
