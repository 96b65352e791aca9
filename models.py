from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    role: Mapped[str] = mapped_column(String(20), nullable=False)  # student | teacher | examiner | administrator
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, unique=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    student_number: Mapped[Optional[str]] = mapped_column(String(40), nullable=True, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "role in ('student', 'teacher', 'examiner', 'administrator')",
            name="ck_users_role",
        ),
    )


class Assessment(Base):
    __tablename__ = "assessments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)
    assessment_type: Mapped[str] = mapped_column(String(20), nullable=False)  # DAEU | Baccalaureat | BTS | DUT | CPGE
    student_track: Mapped[str] = mapped_column(String(20), nullable=False)  # Science | Arts | Technical | General
    subjects_enrolled: Mapped[list[dict]] = mapped_column(JSONType, nullable=False, default=list)

    french_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    mathematics_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    total_points: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    total_coefficients: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    average_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    weighted_average: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    meets_average_requirement: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    meets_french_requirement: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    meets_math_requirement: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    meets_minimum_criteria: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_exceptional_case: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    eligible_for_scholarship: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_priority: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    programme_type: Mapped[str] = mapped_column(String(10), nullable=False, default="N/A")
    acceptance_details: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    has_exceptional_case: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    exceptional_average_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    exceptional_french_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    justification: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    review_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    nstb_approval: Mapped[str] = mapped_column(String(10), nullable=False, default="N/A")
    approval_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    institution_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    institution_country: Mapped[str] = mapped_column(String(40), nullable=False, default="Vanuatu")
    institution_location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    certificate_details: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    assessed_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    assessment_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("student_id", "academic_year", name="uq_assessments_student_year"),
        CheckConstraint(
            "assessment_type in ('DAEU', 'Baccalaureat', 'BTS', 'DUT', 'CPGE')",
            name="ck_assessments_type",
        ),
        CheckConstraint(
            "student_track in ('Science', 'Arts', 'Technical', 'General')",
            name="ck_assessments_track",
        ),
        CheckConstraint(
            "nstb_approval in ('Pending', 'Approved', 'Rejected', 'N/A')",
            name="ck_assessments_nstb_approval",
        ),
        Index("ix_assessments_academic_year", "academic_year"),
        Index("ix_assessments_weighted_average", "weighted_average"),
        Index("ix_assessments_exceptional", "has_exceptional_case", "nstb_approval"),
    )


class SPFSCAssessment(Base):
    __tablename__ = "spfsc_assessments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)
    certificate_number: Mapped[Optional[str]] = mapped_column(String(80), nullable=True, unique=True)
    subjects: Mapped[list[dict]] = mapped_column(JSONType, nullable=False, default=list)
    highest_four_subjects: Mapped[list[dict]] = mapped_column(JSONType, nullable=False, default=list)
    has_english: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    english_grade: Mapped[str] = mapped_column(String(20), nullable=False, default="Not Found")
    merit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    distinction_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    meets_minimum_criteria: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    eligible_for_tertiary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    eligible_for_scholarship: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    average_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    grade_point_average: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    rank: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (Index("ix_spfsc_assessments_student_year", "student_id", "academic_year"),)


class OverseasStudent(Base):
    __tablename__ = "overseas_students"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)
    personal_details: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    contact_details: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    current_study: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    examination_info: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    documents: Mapped[list[dict]] = mapped_column(JSONType, nullable=False, default=list)

    results_received: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    results_received_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    result_subjects: Mapped[list[dict]] = mapped_column(JSONType, nullable=False, default=list)
    certificate_number: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    linked_assessment_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # SPFSC | DAEU | Baccalaureat | NCEA | VCE | Other
    linked_assessment_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    eligibility_status: Mapped[str] = mapped_column(String(20), nullable=False, default="Pending Results")
    eligibility_checked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    eligibility_check_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    eligibility_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    scholarship_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("scholarship_criteria.id"), nullable=True)

    is_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    missing_items: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Active")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "eligibility_status in ('Pending Results', 'Eligible', 'Not Eligible', 'Conditional')",
            name="ck_overseas_students_eligibility_status",
        ),
        Index("ix_overseas_students_academic_year", "academic_year"),
        Index("ix_overseas_students_eligibility_status", "eligibility_status"),
    )


class ScholarshipCriteria(Base):
    __tablename__ = "scholarship_criteria"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    scholarship_name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    provider_name: Mapped[str] = mapped_column(String(255), nullable=False)
    provider_type: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    scholarship_type: Mapped[str] = mapped_column(String(40), nullable=False)
    level: Mapped[str] = mapped_column(String(40), nullable=False)
    value_json: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    minimum_gpa: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    minimum_percentage: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    academic_extras_json: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    eligibility_criteria_json: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    open_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    close_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    is_open: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    last_updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("minimum_gpa is null or (minimum_gpa >= 0 and minimum_gpa <= 4)", name="ck_scholarship_criteria_gpa"),
        CheckConstraint(
            "minimum_percentage is null or (minimum_percentage >= 0 and minimum_percentage <= 100)",
            name="ck_scholarship_criteria_percentage",
        ),
        Index("ix_scholarship_criteria_active_open", "is_active", "is_open"),
    )


class GradeRecord(Base):
    __tablename__ = "grade_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    subject_code: Mapped[str] = mapped_column(String(40), nullable=False)
    subject_name: Mapped[str] = mapped_column(String(255), nullable=False)
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)
    term: Mapped[str] = mapped_column(String(20), nullable=False, default="Annual")
    percentage: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    grade_point: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    letter_grade: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)

    __table_args__ = (
        UniqueConstraint("student_id", "subject_code", "academic_year", "term", name="uq_grade_records_student_subject_term"),
        Index("ix_grade_records_student_id", "student_id"),
    )


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    action: Mapped[str] = mapped_column(String(120), nullable=False)
    details_json: Mapped[dict] = mapped_column(JSONType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
