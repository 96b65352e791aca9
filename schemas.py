"""
Write-boundary schemas.

Every mutating use case validates its payload here before any record is
touched. The evaluation engine itself never clamps or sanitises scores, so
range checks (scores on 0-20, GPA on 0-4, percentages on 0-100) live only in
these models.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from errors import ValidationError

AssessmentType = Literal["DAEU", "Baccalaureat", "BTS", "DUT", "CPGE"]
StudentTrack = Literal["Science", "Arts", "Technical", "General"]
InstitutionCountry = Literal["Vanuatu", "France", "New Caledonia", "Other"]
ReviewDecision = Literal["Approved", "Rejected"]
NstbStatus = Literal["Pending", "Approved", "Rejected", "N/A"]
LinkedAssessmentType = Literal["SPFSC", "DAEU", "Baccalaureat", "NCEA", "VCE", "Other"]
SPFSCGrade = Literal["Distinction", "Merit", "Pass", "Fail"]


class SubjectScore(BaseModel):
    subject_name: str = Field(..., min_length=1, description="Subject name e.g., Français")
    subject_code: Optional[str] = None
    score: float = Field(..., ge=0, le=20, description="Score on the 0-20 scale")
    coefficient: float = Field(1, gt=0, description="Weight in the weighted average")
    is_mandatory: bool = False


class AcceptanceDetails(BaseModel):
    institution_name: Optional[str] = None
    programme_name: Optional[str] = None
    acceptance_date: Optional[date] = None
    start_date: Optional[date] = None


class AssessmentCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    student_id: uuid.UUID
    academic_year: str = Field(..., min_length=4, description="Academic year label e.g., 2024")
    assessment_type: AssessmentType
    student_track: StudentTrack
    subjects_enrolled: list[SubjectScore] = Field(..., min_length=1)
    institution_name: Optional[str] = None
    institution_country: InstitutionCountry = "Vanuatu"
    institution_location: Optional[str] = None
    acceptance_details: Optional[AcceptanceDetails] = None
    certificate_details: dict[str, Any] = Field(default_factory=dict)
    justification: Optional[str] = None
    remarks: Optional[str] = None


class AssessmentUpdate(BaseModel):
    """Partial update; derived fields (averages, results, NSTB approval) are not accepted."""

    model_config = ConfigDict(extra="forbid")

    academic_year: Optional[str] = Field(None, min_length=4)
    assessment_type: Optional[AssessmentType] = None
    student_track: Optional[StudentTrack] = None
    subjects_enrolled: Optional[list[SubjectScore]] = Field(None, min_length=1)
    institution_name: Optional[str] = None
    institution_country: Optional[InstitutionCountry] = None
    institution_location: Optional[str] = None
    acceptance_details: Optional[AcceptanceDetails] = None
    certificate_details: Optional[dict[str, Any]] = None
    justification: Optional[str] = None
    remarks: Optional[str] = None


class ExceptionalReview(BaseModel):
    model_config = ConfigDict(extra="forbid")

    approval: ReviewDecision
    notes: Optional[str] = None


class AssessmentFilter(BaseModel):
    min_average: Optional[float] = Field(None, ge=0, le=20)
    assessment_type: Optional[AssessmentType] = None
    student_track: Optional[StudentTrack] = None
    academic_year: Optional[str] = None
    eligible_only: bool = False
    priority_only: bool = False
    exceptional_only: bool = False


class SPFSCSubject(BaseModel):
    subject_name: str = Field(..., min_length=1)
    subject_code: Optional[str] = None
    grade: SPFSCGrade
    marks: Optional[float] = Field(None, ge=0)
    percentage: Optional[float] = Field(None, ge=0, le=100)


class SPFSCAssessmentCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    student_id: uuid.UUID
    academic_year: str = Field(..., min_length=4)
    certificate_number: Optional[str] = None
    subjects: list[SPFSCSubject] = Field(..., min_length=1)


class OverseasDocument(BaseModel):
    document_type: Literal[
        "Information Form",
        "Transcript",
        "Student ID",
        "Passport Copy",
        "Enrollment Certificate",
        "Exam Registration",
        "Results Certificate",
        "Other",
    ]
    document_name: Optional[str] = None
    verification_status: Literal["Pending", "Verified", "Rejected"] = "Pending"


class OverseasStudentCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    student_id: uuid.UUID
    academic_year: str = Field(..., min_length=4)
    personal_details: dict[str, Any]
    contact_details: dict[str, Any]
    current_study: dict[str, Any]
    examination_info: dict[str, Any]
    documents: list[OverseasDocument] = Field(default_factory=list)


class OverseasResults(BaseModel):
    model_config = ConfigDict(extra="forbid")

    results_received: bool = True
    linked_assessment_type: Optional[LinkedAssessmentType] = None
    linked_assessment_id: Optional[uuid.UUID] = None
    certificate_number: Optional[str] = None
    subjects: list[dict[str, Any]] = Field(default_factory=list)


class ScholarshipCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    scholarship_name: str = Field(..., min_length=1)
    provider_name: str = Field(..., min_length=1)
    provider_type: Optional[Literal["Government", "Private", "NGO", "University", "Corporate", "International", "Other"]] = None
    scholarship_type: Literal["Merit-Based", "Need-Based", "Sports", "Arts", "STEM", "Mixed", "Other"]
    level: Literal["Secondary", "Tertiary", "Undergraduate", "Postgraduate", "Vocational", "All Levels"]
    value_json: dict[str, Any] = Field(default_factory=dict)
    minimum_gpa: Optional[float] = Field(None, ge=0, le=4.0)
    minimum_percentage: Optional[float] = Field(None, ge=0, le=100)
    academic_extras_json: dict[str, Any] = Field(default_factory=dict)
    eligibility_criteria_json: dict[str, Any] = Field(default_factory=dict)
    open_date: Optional[datetime] = None
    close_date: Optional[datetime] = None
    is_open: bool = True
    is_active: bool = True
    description: Optional[str] = None


class ScholarshipUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    scholarship_name: Optional[str] = Field(None, min_length=1)
    provider_name: Optional[str] = Field(None, min_length=1)
    minimum_gpa: Optional[float] = Field(None, ge=0, le=4.0)
    minimum_percentage: Optional[float] = Field(None, ge=0, le=100)
    eligibility_criteria_json: Optional[dict[str, Any]] = None
    value_json: Optional[dict[str, Any]] = None
    open_date: Optional[datetime] = None
    close_date: Optional[datetime] = None
    is_open: Optional[bool] = None
    is_active: Optional[bool] = None
    description: Optional[str] = None


def parse_payload(schema: type[BaseModel], payload: Any) -> Any:
    """Validate ``payload`` against ``schema``, raising the project's ValidationError."""
    if isinstance(payload, schema):
        return payload
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as exc:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        summary = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
        raise ValidationError(f"Invalid {schema.__name__} payload: {summary}", details=errors) from exc
