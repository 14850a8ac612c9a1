"""Create proposal and vote tables.

Revision ID: 0001_contribution_ledger
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_contribution_ledger"
down_revision = None
branch_labels = None
depends_on = None

PENDING_PREDICATE = "status = 'pending'"


def upgrade() -> None:
    op.create_table(
        "proposal",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("target_id", sa.String(length=255), nullable=False),
        sa.Column("proposer_user_id", sa.String(length=100), nullable=False),
        sa.Column("fingerprint", sa.String(length=32), nullable=False),
        sa.Column("proposed_fields", sa.JSON(), nullable=False),
        sa.Column("report_reference", sa.String(length=64), nullable=False),
        sa.Column("threshold", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("upvotes", sa.Integer(), nullable=False),
        sa.Column("downvotes", sa.Integer(), nullable=False),
        sa.Column("auto_merged", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_proposal"),
        sa.UniqueConstraint("report_reference", name="uq_proposal_report_reference"),
    )
    op.create_index("ix_proposal_target_status", "proposal", ["target_id", "status"])
    op.create_index("ix_proposal_status_created_at", "proposal", ["status", "created_at"])
    op.create_index(
        "uq_proposal_pending_fingerprint",
        "proposal",
        ["target_id", "fingerprint"],
        unique=True,
        sqlite_where=sa.text(PENDING_PREDICATE),
        postgresql_where=sa.text(PENDING_PREDICATE),
    )

    op.create_table(
        "vote",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("proposal_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(length=100), nullable=False),
        sa.Column("vote_type", sa.String(length=8), nullable=False),
        sa.Column("voter_ip", sa.String(length=45), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["proposal_id"],
            ["proposal.id"],
            name="fk_vote_proposal_id_proposal",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_vote"),
        sa.UniqueConstraint("proposal_id", "user_id", name="uq_vote_proposal_user"),
    )
    op.create_index("ix_vote_user_id", "vote", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_vote_user_id", table_name="vote")
    op.drop_table("vote")
    op.drop_index("uq_proposal_pending_fingerprint", table_name="proposal")
    op.drop_index("ix_proposal_status_created_at", table_name="proposal")
    op.drop_index("ix_proposal_target_status", table_name="proposal")
    op.drop_table("proposal")
