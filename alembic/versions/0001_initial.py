"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "batches",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("employer_name", sa.String(length=255), nullable=False),
        sa.Column("employer_tax_id", sa.String(length=32), nullable=True),
        sa.Column("label", sa.String(length=255), nullable=True),
        sa.Column("released_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "subjects",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("external_ref", sa.String(length=64), nullable=True),
        sa.Column("role_level", sa.String(length=16), nullable=False),
        sa.Column("sector", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("role_level IN ('operational', 'management')", name="ck_subject_role"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_subjects_external_ref", "subjects", ["external_ref"], unique=False)
    op.create_index("ix_subjects_sector", "subjects", ["sector"], unique=False)

    op.create_table(
        "assessments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("batch_id", sa.Integer(), nullable=False),
        sa.Column("subject_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("current_dimension", sa.Integer(), nullable=False),
        sa.Column("resume_anchor", sa.Integer(), nullable=True),
        sa.Column("resume_session_key", sa.String(length=64), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), nullable=True),
        sa.Column("deactivated_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "status IN ('not_started', 'in_progress', 'completed', 'deactivated')",
            name="ck_assessment_status",
        ),
        sa.CheckConstraint("current_dimension >= 1", name="ck_assessment_current_dimension"),
        sa.ForeignKeyConstraint(["batch_id"], ["batches.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["subject_id"], ["subjects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("batch_id", "subject_id", name="uq_assessment_batch_subject"),
    )
    op.create_index("ix_assessments_batch_id", "assessments", ["batch_id"], unique=False)
    op.create_index("ix_assessments_subject_id", "assessments", ["subject_id"], unique=False)

    op.create_table(
        "responses",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("assessment_id", sa.Integer(), nullable=False),
        sa.Column("dimension_id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.String(length=16), nullable=False),
        sa.Column("value", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("value IN (0, 25, 50, 75, 100)", name="ck_response_value"),
        sa.ForeignKeyConstraint(["assessment_id"], ["assessments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("assessment_id", "item_id", name="uq_response_assessment_item"),
    )
    op.create_index("ix_responses_assessment_id", "responses", ["assessment_id"], unique=False)

    op.create_table(
        "reports",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("batch_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("observations", sa.Text(), nullable=True),
        sa.Column("sections", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("issued_at", sa.DateTime(), nullable=True),
        sa.Column("sent_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("status IN ('draft', 'issued', 'sent')", name="ck_report_status"),
        sa.ForeignKeyConstraint(["batch_id"], ["batches.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("batch_id"),
    )


def downgrade() -> None:
    op.drop_table("reports")
    op.drop_index("ix_responses_assessment_id", table_name="responses")
    op.drop_table("responses")
    op.drop_index("ix_assessments_subject_id", table_name="assessments")
    op.drop_index("ix_assessments_batch_id", table_name="assessments")
    op.drop_table("assessments")
    op.drop_index("ix_subjects_sector", table_name="subjects")
    op.drop_index("ix_subjects_external_ref", table_name="subjects")
    op.drop_table("subjects")
    op.drop_table("batches")
