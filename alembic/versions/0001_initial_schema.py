"""Initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "storage_entries",
        sa.Column("key", sa.String(255), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "response_tokens",
        sa.Column("token", sa.String(128), primary_key=True),
        sa.Column("request_id", sa.String(64), nullable=False),
        sa.Column("company_id", sa.String(64), nullable=False),
        sa.Column("respondent_email", sa.String(255), nullable=False),
        sa.Column("respondent_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reminders_sent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_reminder_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_response_tokens_request_id", "response_tokens", ["request_id"])

    op.create_table(
        "rejection_records",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("token", sa.String(128), nullable=False),
        sa.Column("request_id", sa.String(64), nullable=False),
        sa.Column("respondent_email", sa.String(255), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False, server_default=""),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ip_address", sa.String(64), nullable=False, server_default=""),
    )
    op.create_index("ix_rejection_records_token", "rejection_records", ["token"])
    op.create_index("ix_rejection_records_request_id", "rejection_records", ["request_id"])

    op.create_table(
        "reference_requests",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("talent_name", sa.String(255), nullable=False),
        sa.Column("talent_email", sa.String(255), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="pending"),
        sa.Column("form_json", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "reference_responses",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("request_id", sa.String(64), nullable=False),
        sa.Column("company_id", sa.String(64), nullable=False),
        sa.Column("respondent_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("respondent_email", sa.String(255), nullable=False),
        sa.Column("answers_json", sa.JSON(), nullable=False),
        sa.Column("additional_comments", sa.Text(), nullable=False, server_default=""),
        sa.Column("is_anonymous", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_reference_responses_request_id", "reference_responses", ["request_id"])


def downgrade() -> None:
    op.drop_index("ix_reference_responses_request_id", table_name="reference_responses")
    op.drop_table("reference_responses")
    op.drop_table("reference_requests")
    op.drop_index("ix_rejection_records_request_id", table_name="rejection_records")
    op.drop_index("ix_rejection_records_token", table_name="rejection_records")
    op.drop_table("rejection_records")
    op.drop_index("ix_response_tokens_request_id", table_name="response_tokens")
    op.drop_table("response_tokens")
    op.drop_table("storage_entries")
