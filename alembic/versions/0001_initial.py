"""initial schema

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("first_name", sa.String(length=120), nullable=True),
        sa.Column("last_name", sa.String(length=120), nullable=True),
        sa.Column("student_number", sa.String(length=40), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("role in ('student', 'teacher', 'examiner', 'administrator')", name="ck_users_role"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sa.UniqueConstraint("student_number"),
    )

    op.create_table(
        "scholarship_criteria",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("scholarship_name", sa.String(length=255), nullable=False),
        sa.Column("provider_name", sa.String(length=255), nullable=False),
        sa.Column("provider_type", sa.String(length=40), nullable=True),
        sa.Column("scholarship_type", sa.String(length=40), nullable=False),
        sa.Column("level", sa.String(length=40), nullable=False),
        sa.Column("value_json", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("minimum_gpa", sa.Float(), nullable=True),
        sa.Column("minimum_percentage", sa.Float(), nullable=True),
        sa.Column("academic_extras_json", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("eligibility_criteria_json", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("open_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("close_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_open", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("last_updated_by", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "minimum_gpa is null or (minimum_gpa >= 0 and minimum_gpa <= 4)", name="ck_scholarship_criteria_gpa"
        ),
        sa.CheckConstraint(
            "minimum_percentage is null or (minimum_percentage >= 0 and minimum_percentage <= 100)",
            name="ck_scholarship_criteria_percentage",
        ),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["last_updated_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("scholarship_name"),
    )
    op.create_index("ix_scholarship_criteria_active_open", "scholarship_criteria", ["is_active", "is_open"])

    op.create_table(
        "assessments",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("academic_year", sa.String(length=20), nullable=False),
        sa.Column("assessment_type", sa.String(length=20), nullable=False),
        sa.Column("student_track", sa.String(length=20), nullable=False),
        sa.Column("subjects_enrolled", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("french_score", sa.Float(), nullable=True),
        sa.Column("mathematics_score", sa.Float(), nullable=True),
        sa.Column("total_points", sa.Float(), nullable=True),
        sa.Column("total_coefficients", sa.Float(), nullable=True),
        sa.Column("average_score", sa.Float(), nullable=True),
        sa.Column("weighted_average", sa.Float(), nullable=True),
        sa.Column("meets_average_requirement", sa.Boolean(), nullable=False),
        sa.Column("meets_french_requirement", sa.Boolean(), nullable=False),
        sa.Column("meets_math_requirement", sa.Boolean(), nullable=False),
        sa.Column("meets_minimum_criteria", sa.Boolean(), nullable=False),
        sa.Column("is_exceptional_case", sa.Boolean(), nullable=False),
        sa.Column("eligible_for_scholarship", sa.Boolean(), nullable=False),
        sa.Column("is_priority", sa.Boolean(), nullable=False),
        sa.Column("programme_type", sa.String(length=10), nullable=False),
        sa.Column("acceptance_details", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("has_exceptional_case", sa.Boolean(), nullable=False),
        sa.Column("exceptional_average_score", sa.Float(), nullable=True),
        sa.Column("exceptional_french_score", sa.Float(), nullable=True),
        sa.Column("justification", sa.Text(), nullable=True),
        sa.Column("reviewed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("review_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("nstb_approval", sa.String(length=10), nullable=False),
        sa.Column("approval_notes", sa.Text(), nullable=True),
        sa.Column("institution_name", sa.String(length=255), nullable=True),
        sa.Column("institution_country", sa.String(length=40), nullable=False),
        sa.Column("institution_location", sa.String(length=255), nullable=True),
        sa.Column("certificate_details", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("assessed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("assessment_date", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("remarks", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "assessment_type in ('DAEU', 'Baccalaureat', 'BTS', 'DUT', 'CPGE')", name="ck_assessments_type"
        ),
        sa.CheckConstraint(
            "student_track in ('Science', 'Arts', 'Technical', 'General')", name="ck_assessments_track"
        ),
        sa.CheckConstraint(
            "nstb_approval in ('Pending', 'Approved', 'Rejected', 'N/A')", name="ck_assessments_nstb_approval"
        ),
        sa.ForeignKeyConstraint(["student_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["reviewed_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["assessed_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("student_id", "academic_year", name="uq_assessments_student_year"),
    )
    op.create_index("ix_assessments_academic_year", "assessments", ["academic_year"])
    op.create_index("ix_assessments_weighted_average", "assessments", ["weighted_average"])
    op.create_index("ix_assessments_exceptional", "assessments", ["has_exceptional_case", "nstb_approval"])

    op.create_table(
        "spfsc_assessments",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("academic_year", sa.String(length=20), nullable=False),
        sa.Column("certificate_number", sa.String(length=80), nullable=True),
        sa.Column("subjects", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("highest_four_subjects", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("has_english", sa.Boolean(), nullable=False),
        sa.Column("english_grade", sa.String(length=20), nullable=False),
        sa.Column("merit_count", sa.Integer(), nullable=False),
        sa.Column("distinction_count", sa.Integer(), nullable=False),
        sa.Column("meets_minimum_criteria", sa.Boolean(), nullable=False),
        sa.Column("eligible_for_tertiary", sa.Boolean(), nullable=False),
        sa.Column("eligible_for_scholarship", sa.Boolean(), nullable=False),
        sa.Column("average_percentage", sa.Float(), nullable=False),
        sa.Column("grade_point_average", sa.Float(), nullable=False),
        sa.Column("rank", sa.String(length=20), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["student_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("certificate_number"),
    )
    op.create_index("ix_spfsc_assessments_student_year", "spfsc_assessments", ["student_id", "academic_year"])

    op.create_table(
        "overseas_students",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("academic_year", sa.String(length=20), nullable=False),
        sa.Column("personal_details", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("contact_details", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("current_study", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("examination_info", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("documents", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("results_received", sa.Boolean(), nullable=False),
        sa.Column("results_received_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("result_subjects", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("certificate_number", sa.String(length=80), nullable=True),
        sa.Column("linked_assessment_type", sa.String(length=20), nullable=True),
        sa.Column("linked_assessment_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("eligibility_status", sa.String(length=20), nullable=False),
        sa.Column("eligibility_checked", sa.Boolean(), nullable=False),
        sa.Column("eligibility_check_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("eligibility_notes", sa.Text(), nullable=True),
        sa.Column("scholarship_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("is_complete", sa.Boolean(), nullable=False),
        sa.Column("missing_items", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "eligibility_status in ('Pending Results', 'Eligible', 'Not Eligible', 'Conditional')",
            name="ck_overseas_students_eligibility_status",
        ),
        sa.ForeignKeyConstraint(["student_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["scholarship_id"], ["scholarship_criteria.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_overseas_students_academic_year", "overseas_students", ["academic_year"])
    op.create_index("ix_overseas_students_eligibility_status", "overseas_students", ["eligibility_status"])

    op.create_table(
        "grade_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("subject_code", sa.String(length=40), nullable=False),
        sa.Column("subject_name", sa.String(length=255), nullable=False),
        sa.Column("academic_year", sa.String(length=20), nullable=False),
        sa.Column("term", sa.String(length=20), nullable=False),
        sa.Column("percentage", sa.Float(), nullable=True),
        sa.Column("grade_point", sa.Float(), nullable=True),
        sa.Column("letter_grade", sa.String(length=4), nullable=True),
        sa.ForeignKeyConstraint(["student_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "student_id", "subject_code", "academic_year", "term", name="uq_grade_records_student_subject_term"
        ),
    )
    op.create_index("ix_grade_records_student_id", "grade_records", ["student_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("action", sa.String(length=120), nullable=False),
        sa.Column("details_json", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_index("ix_grade_records_student_id", table_name="grade_records")
    op.drop_table("grade_records")
    op.drop_index("ix_overseas_students_eligibility_status", table_name="overseas_students")
    op.drop_index("ix_overseas_students_academic_year", table_name="overseas_students")
    op.drop_table("overseas_students")
    op.drop_index("ix_spfsc_assessments_student_year", table_name="spfsc_assessments")
    op.drop_table("spfsc_assessments")
    op.drop_index("ix_assessments_exceptional", table_name="assessments")
    op.drop_index("ix_assessments_weighted_average", table_name="assessments")
    op.drop_index("ix_assessments_academic_year", table_name="assessments")
    op.drop_table("assessments")
    op.drop_index("ix_scholarship_criteria_active_open", table_name="scholarship_criteria")
    op.drop_table("scholarship_criteria")
    op.drop_table("users")
