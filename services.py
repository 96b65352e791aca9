from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from auth import ADMINISTRATOR, ASSESSMENT_EDITORS, ASSESSMENT_REVIEWERS, Actor, require_role
from errors import DuplicateRecord, NotFound, ValidationError
from logic import (
    ASSESSMENT_TYPES,
    ELIGIBILITY_PENDING_RESULTS,
    NSTB_NOT_APPLICABLE,
    NSTB_PENDING,
    NSTB_STATUSES,
    LinkedAssessment,
    apply_review_decision,
    check_overseas_completeness as completeness_check,
    evaluate_assessment,
    evaluate_spfsc,
    match_scholarship_criteria,
    resolve_overseas_eligibility,
    scholarship_summary,
)
from models import (
    Assessment,
    AuditLog,
    GradeRecord,
    OverseasStudent,
    ScholarshipCriteria,
    SPFSCAssessment,
    User,
)
from schemas import (
    AssessmentCreate,
    AssessmentFilter,
    AssessmentUpdate,
    ExceptionalReview,
    OverseasResults,
    OverseasStudentCreate,
    ScholarshipCreate,
    ScholarshipUpdate,
    SPFSCAssessmentCreate,
    parse_payload,
)

logger = logging.getLogger(__name__)

NON_NULLABLE_ASSESSMENT_FIELDS = {
    "academic_year",
    "assessment_type",
    "student_track",
    "subjects_enrolled",
    "institution_country",
    "certificate_details",
    "acceptance_details",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_uuid(value: Any, label: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise NotFound(f"{label} not found") from None


def _get_or_raise(db: Session, model: type, record_id: Any, label: str) -> Any:
    row = db.get(model, _as_uuid(record_id, label))
    if row is None:
        raise NotFound(f"{label} not found")
    return row


def _audit(db: Session, actor: Actor | None, action: str, details: dict[str, Any]) -> None:
    db.add(AuditLog(user_id=actor.id if actor else None, action=action, details_json=details))
    # Sessions run with autoflush off; later queries in the same unit must see the change.
    db.flush()


# ---------------------------------------------------------------------------
# Assessment records
# ---------------------------------------------------------------------------


def assessment_to_record(row: Assessment) -> dict[str, Any]:
    performance = None
    if row.total_coefficients is not None:
        performance = {
            "total_points": row.total_points,
            "total_coefficients": row.total_coefficients,
            "average_score": row.average_score,
            "weighted_average": row.weighted_average,
        }
    return {
        "id": row.id,
        "student_id": row.student_id,
        "academic_year": row.academic_year,
        "assessment_type": row.assessment_type,
        "student_track": row.student_track,
        "subjects_enrolled": [dict(s) for s in row.subjects_enrolled or []],
        "french_score": row.french_score,
        "mathematics_score": row.mathematics_score,
        "overall_performance": performance,
        "assessment_results": {
            "meets_average_requirement": bool(row.meets_average_requirement),
            "meets_french_requirement": bool(row.meets_french_requirement),
            "meets_math_requirement": bool(row.meets_math_requirement),
            "meets_minimum_criteria": bool(row.meets_minimum_criteria),
            "is_exceptional_case": bool(row.is_exceptional_case),
            "eligible_for_scholarship": bool(row.eligible_for_scholarship),
        },
        "advanced_programme": {
            "is_priority": bool(row.is_priority),
            "programme_type": row.programme_type or "N/A",
            "acceptance_details": dict(row.acceptance_details or {}),
        },
        "exceptional_circumstances": {
            "has_exceptional_case": bool(row.has_exceptional_case),
            "average_score": row.exceptional_average_score,
            "french_score": row.exceptional_french_score,
            "justification": row.justification,
            "reviewed_by": row.reviewed_by,
            "review_date": row.review_date,
            "nstb_approval": row.nstb_approval or NSTB_NOT_APPLICABLE,
            "approval_notes": row.approval_notes,
        },
        "institution_details": {
            "name": row.institution_name,
            "country": row.institution_country,
            "location": row.institution_location,
        },
        "certificate_details": dict(row.certificate_details or {}),
        "assessed_by": row.assessed_by,
        "assessment_date": row.assessment_date,
        "remarks": row.remarks,
    }


def _apply_evaluation(row: Assessment, record: dict[str, Any]) -> None:
    performance = record.get("overall_performance") or {}
    row.total_points = performance.get("total_points")
    row.total_coefficients = performance.get("total_coefficients")
    row.average_score = performance.get("average_score")
    row.weighted_average = performance.get("weighted_average")
    row.french_score = record.get("french_score")
    row.mathematics_score = record.get("mathematics_score")

    results = record["assessment_results"]
    row.meets_average_requirement = results["meets_average_requirement"]
    row.meets_french_requirement = results["meets_french_requirement"]
    row.meets_math_requirement = results["meets_math_requirement"]
    row.meets_minimum_criteria = results["meets_minimum_criteria"]
    row.is_exceptional_case = results["is_exceptional_case"]
    row.eligible_for_scholarship = results["eligible_for_scholarship"]

    programme = record["advanced_programme"]
    row.is_priority = programme["is_priority"]
    row.programme_type = programme["programme_type"]
    row.acceptance_details = dict(programme.get("acceptance_details") or {})

    circumstances = record["exceptional_circumstances"]
    row.has_exceptional_case = circumstances["has_exceptional_case"]
    row.exceptional_average_score = circumstances.get("average_score")
    row.exceptional_french_score = circumstances.get("french_score")
    row.justification = circumstances.get("justification")
    row.reviewed_by = circumstances.get("reviewed_by")
    row.review_date = circumstances.get("review_date")
    row.nstb_approval = circumstances["nstb_approval"]
    row.approval_notes = circumstances.get("approval_notes")


def _reevaluate(row: Assessment, record: dict[str, Any] | None = None) -> dict[str, Any]:
    evaluated = evaluate_assessment(record if record is not None else assessment_to_record(row))
    _apply_evaluation(row, evaluated)
    return evaluated


def _find_student_year(db: Session, student_id: uuid.UUID, academic_year: str) -> Assessment | None:
    return db.scalar(
        select(Assessment).where(Assessment.student_id == student_id, Assessment.academic_year == academic_year)
    )


def create_assessment(db: Session, actor: Actor, payload: Any) -> dict[str, Any]:
    require_role(actor, *ASSESSMENT_EDITORS)
    data = parse_payload(AssessmentCreate, payload)

    if _find_student_year(db, data.student_id, data.academic_year) is not None:
        raise DuplicateRecord(
            "Assessment already exists for this student and academic year",
            details={"student_id": str(data.student_id), "academic_year": data.academic_year},
        )
    if db.get(User, data.student_id) is None:
        raise NotFound("Student not found")

    row = Assessment(
        student_id=data.student_id,
        academic_year=data.academic_year,
        assessment_type=data.assessment_type,
        student_track=data.student_track,
        subjects_enrolled=[s.model_dump(mode="json") for s in data.subjects_enrolled],
        acceptance_details=data.acceptance_details.model_dump(mode="json") if data.acceptance_details else {},
        institution_name=data.institution_name,
        institution_country=data.institution_country,
        institution_location=data.institution_location,
        certificate_details=dict(data.certificate_details),
        justification=data.justification,
        remarks=data.remarks,
        assessed_by=actor.id,
        nstb_approval=NSTB_NOT_APPLICABLE,
        programme_type="N/A",
    )
    record = _reevaluate(row)
    db.add(row)
    db.flush()
    record["id"] = row.id

    _audit(
        db,
        actor,
        "assessment_created",
        {
            "assessment_id": str(row.id),
            "student_id": str(row.student_id),
            "academic_year": row.academic_year,
            "eligible_for_scholarship": row.eligible_for_scholarship,
        },
    )
    logger.info(
        "Created %s assessment %s for student %s (%s): eligible=%s exceptional=%s",
        row.assessment_type,
        row.id,
        row.student_id,
        row.academic_year,
        row.eligible_for_scholarship,
        row.is_exceptional_case,
    )
    return record


def update_assessment(db: Session, actor: Actor, assessment_id: Any, payload: Any) -> dict[str, Any]:
    require_role(actor, *ASSESSMENT_EDITORS)
    data = parse_payload(AssessmentUpdate, payload)
    row = _get_or_raise(db, Assessment, assessment_id, "Assessment")

    changes = data.model_dump(exclude_unset=True, mode="json")
    new_year = changes.get("academic_year")
    if new_year and new_year != row.academic_year:
        clash = _find_student_year(db, row.student_id, new_year)
        if clash is not None and clash.id != row.id:
            raise DuplicateRecord(
                "Assessment already exists for this student and academic year",
                details={"student_id": str(row.student_id), "academic_year": new_year},
            )

    for key, value in changes.items():
        if value is None and key in NON_NULLABLE_ASSESSMENT_FIELDS:
            continue
        setattr(row, key, value)

    record = _reevaluate(row)
    _audit(db, actor, "assessment_updated", {"assessment_id": str(row.id), "fields": sorted(changes)})
    logger.info("Updated assessment %s (%s): eligible=%s", row.id, ", ".join(sorted(changes)), row.eligible_for_scholarship)
    return record


def delete_assessment(db: Session, actor: Actor, assessment_id: Any) -> None:
    require_role(actor, ADMINISTRATOR)
    row = _get_or_raise(db, Assessment, assessment_id, "Assessment")
    details = {"assessment_id": str(row.id), "student_id": str(row.student_id), "academic_year": row.academic_year}
    db.delete(row)
    _audit(db, actor, "assessment_deleted", details)
    logger.info("Deleted assessment %s", details["assessment_id"])


def review_exceptional_case(
    db: Session,
    actor: Actor,
    assessment_id: Any,
    approval: str,
    notes: str | None = None,
) -> dict[str, Any]:
    """Record the NSTB decision on an exceptional case and re-run the evaluation."""
    require_role(actor, ADMINISTRATOR)
    decision = parse_payload(ExceptionalReview, {"approval": approval, "notes": notes})
    row = _get_or_raise(db, Assessment, assessment_id, "Assessment")

    record = assessment_to_record(row)
    record["exceptional_circumstances"] = apply_review_decision(
        record["exceptional_circumstances"],
        decision.approval,
        actor.id,
        decision.notes,
    )
    evaluated = _reevaluate(row, record)

    _audit(
        db,
        actor,
        "exceptional_case_reviewed",
        {
            "assessment_id": str(row.id),
            "decision": decision.approval,
            "eligible_for_scholarship": row.eligible_for_scholarship,
        },
    )
    logger.info("Exceptional case %s %s by NSTB reviewer %s", row.id, decision.approval.lower(), actor.id)
    return evaluated


def get_assessment(db: Session, actor: Actor, assessment_id: Any) -> dict[str, Any]:
    require_role(actor)
    return assessment_to_record(_get_or_raise(db, Assessment, assessment_id, "Assessment"))


def find_assessments(db: Session, actor: Actor, criteria: Any = None) -> list[dict[str, Any]]:
    require_role(actor, *ASSESSMENT_EDITORS)
    filters = parse_payload(AssessmentFilter, criteria or {})

    stmt = select(Assessment)
    if filters.min_average is not None:
        stmt = stmt.where(Assessment.weighted_average >= filters.min_average)
    if filters.assessment_type:
        stmt = stmt.where(Assessment.assessment_type == filters.assessment_type)
    if filters.student_track:
        stmt = stmt.where(Assessment.student_track == filters.student_track)
    if filters.academic_year:
        stmt = stmt.where(Assessment.academic_year == filters.academic_year)
    if filters.eligible_only:
        stmt = stmt.where(Assessment.eligible_for_scholarship.is_(True))
    if filters.priority_only:
        stmt = stmt.where(Assessment.is_priority.is_(True))
    if filters.exceptional_only:
        stmt = stmt.where(Assessment.has_exceptional_case.is_(True))

    rows = db.scalars(stmt.order_by(Assessment.weighted_average.desc())).all()
    return [assessment_to_record(row) for row in rows]


def get_priority_students(db: Session, actor: Actor, academic_year: str | None = None) -> list[dict[str, Any]]:
    require_role(actor, *ASSESSMENT_REVIEWERS)
    stmt = select(Assessment).where(
        Assessment.is_priority.is_(True),
        Assessment.eligible_for_scholarship.is_(True),
    )
    if academic_year:
        stmt = stmt.where(Assessment.academic_year == academic_year)
    rows = db.scalars(stmt.order_by(Assessment.weighted_average.desc())).all()
    return [assessment_to_record(row) for row in rows]


def get_exceptional_cases(db: Session, actor: Actor, status: str = NSTB_PENDING) -> list[dict[str, Any]]:
    require_role(actor, *ASSESSMENT_REVIEWERS)
    if status not in NSTB_STATUSES:
        raise ValidationError(f"Unknown NSTB approval status: {status!r}")
    rows = db.scalars(
        select(Assessment)
        .where(Assessment.has_exceptional_case.is_(True), Assessment.nstb_approval == status)
        .order_by(Assessment.exceptional_average_score.desc())
    ).all()
    return [assessment_to_record(row) for row in rows]


def check_assessment_scholarship_eligibility(db: Session, actor: Actor, assessment_id: Any) -> dict[str, Any]:
    require_role(actor)
    return scholarship_summary(assessment_to_record(_get_or_raise(db, Assessment, assessment_id, "Assessment")))


def _mean(values: list[float]) -> float:
    return sum(values) / (len(values) or 1)


def assessment_statistics(
    db: Session,
    actor: Actor,
    academic_year: str | None = None,
    assessment_type: str | None = None,
) -> dict[str, Any]:
    require_role(actor, *ASSESSMENT_EDITORS)
    stmt = select(Assessment)
    if academic_year:
        stmt = stmt.where(Assessment.academic_year == academic_year)
    if assessment_type:
        stmt = stmt.where(Assessment.assessment_type == assessment_type)
    rows = db.scalars(stmt.order_by(Assessment.weighted_average.desc())).all()

    science = [r for r in rows if r.student_track == "Science"]
    return {
        "academic_year": academic_year or "All Years",
        "assessment_type": assessment_type or "All Types",
        "total": len(rows),
        "eligible": sum(1 for r in rows if r.eligible_for_scholarship),
        "not_eligible": sum(1 for r in rows if not r.eligible_for_scholarship),
        "type_breakdown": {t: sum(1 for r in rows if r.assessment_type == t) for t in ASSESSMENT_TYPES},
        "priority_students": {
            "total": sum(1 for r in rows if r.is_priority),
            **{t: sum(1 for r in rows if r.assessment_type == t and r.is_priority) for t in ("BTS", "DUT", "CPGE")},
        },
        "requirements": {
            "meets_average": sum(1 for r in rows if r.meets_average_requirement),
            "meets_french": sum(1 for r in rows if r.meets_french_requirement),
            "meets_math": sum(1 for r in rows if r.meets_math_requirement),
        },
        "exceptional_cases": {
            "total": sum(1 for r in rows if r.has_exceptional_case),
            "pending": sum(1 for r in rows if r.nstb_approval == "Pending"),
            "approved": sum(1 for r in rows if r.nstb_approval == "Approved"),
            "rejected": sum(1 for r in rows if r.nstb_approval == "Rejected"),
        },
        "averages": {
            "overall_average": _mean([r.weighted_average or 0.0 for r in rows]),
            "french_average": _mean([r.french_score or 0.0 for r in rows]),
            "math_average": _mean([r.mathematics_score or 0.0 for r in science]),
        },
        "top_performers": [
            {
                "assessment_id": r.id,
                "student_id": r.student_id,
                "assessment_type": r.assessment_type,
                "weighted_average": r.weighted_average,
                "eligible_for_scholarship": r.eligible_for_scholarship,
            }
            for r in rows[:10]
        ],
    }


# ---------------------------------------------------------------------------
# SPFSC certificates
# ---------------------------------------------------------------------------


def create_spfsc_assessment(db: Session, actor: Actor, payload: Any) -> SPFSCAssessment:
    require_role(actor, *ASSESSMENT_EDITORS)
    data = parse_payload(SPFSCAssessmentCreate, payload)
    if data.certificate_number and db.scalar(
        select(SPFSCAssessment).where(SPFSCAssessment.certificate_number == data.certificate_number)
    ):
        raise DuplicateRecord(f"SPFSC certificate {data.certificate_number} is already recorded")
    if db.get(User, data.student_id) is None:
        raise NotFound("Student not found")

    subjects = [s.model_dump(mode="json") for s in data.subjects]
    summary = evaluate_spfsc(subjects)
    row = SPFSCAssessment(
        student_id=data.student_id,
        academic_year=data.academic_year,
        certificate_number=data.certificate_number,
        subjects=subjects,
        **summary,
    )
    db.add(row)
    db.flush()
    _audit(
        db,
        actor,
        "spfsc_assessment_created",
        {"assessment_id": str(row.id), "meets_minimum_criteria": row.meets_minimum_criteria},
    )
    logger.info("Created SPFSC assessment %s: meets_minimum=%s", row.id, row.meets_minimum_criteria)
    return row


# ---------------------------------------------------------------------------
# Overseas applications
# ---------------------------------------------------------------------------


def _load_assessment(db: Session, assessment_id: uuid.UUID) -> Assessment | None:
    return db.get(Assessment, assessment_id)


def _load_spfsc_assessment(db: Session, assessment_id: uuid.UUID) -> SPFSCAssessment | None:
    return db.get(SPFSCAssessment, assessment_id)


# NCEA/VCE/Other results have no assessment record kind here and never resolve.
LINKED_ASSESSMENT_LOADERS: dict[str, Callable[[Session, uuid.UUID], Any]] = {
    "DAEU": _load_assessment,
    "Baccalaureat": _load_assessment,
    "SPFSC": _load_spfsc_assessment,
}


def resolve_linked_assessment(db: Session, link: LinkedAssessment | None) -> Any | None:
    if link is None:
        return None
    loader = LINKED_ASSESSMENT_LOADERS.get(link.kind)
    if loader is None:
        logger.info("No assessment loader registered for linked kind %s", link.kind)
        return None
    return loader(db, link.assessment_id)


def create_overseas_student(db: Session, actor: Actor, payload: Any) -> OverseasStudent:
    require_role(actor)
    data = parse_payload(OverseasStudentCreate, payload)
    if db.get(User, data.student_id) is None:
        raise NotFound("Student not found")

    row = OverseasStudent(
        student_id=data.student_id,
        academic_year=data.academic_year,
        personal_details=dict(data.personal_details),
        contact_details=dict(data.contact_details),
        current_study=dict(data.current_study),
        examination_info=dict(data.examination_info),
        documents=[d.model_dump(mode="json") for d in data.documents],
        results_received=False,
        eligibility_status=ELIGIBILITY_PENDING_RESULTS,
        eligibility_checked=False,
        status="Active",
    )
    completeness = completeness_check(row)
    row.is_complete = completeness["is_complete"]
    row.missing_items = completeness["missing_items"]
    db.add(row)
    db.flush()
    _audit(db, actor, "overseas_student_created", {"application_id": str(row.id)})
    return row


def record_overseas_results(db: Session, actor: Actor, application_id: Any, payload: Any) -> OverseasStudent:
    require_role(actor, *ASSESSMENT_EDITORS)
    data = parse_payload(OverseasResults, payload)
    row = _get_or_raise(db, OverseasStudent, application_id, "Overseas student")

    row.results_received = data.results_received
    row.results_received_date = _utcnow() if data.results_received else None
    row.linked_assessment_type = data.linked_assessment_type
    row.linked_assessment_id = data.linked_assessment_id
    row.certificate_number = data.certificate_number
    row.result_subjects = list(data.subjects)
    _audit(
        db,
        actor,
        "overseas_results_recorded",
        {
            "application_id": str(row.id),
            "results_received": row.results_received,
            "linked_assessment_type": row.linked_assessment_type,
        },
    )
    return row


def check_overseas_completeness(db: Session, actor: Actor, application_id: Any) -> dict[str, Any]:
    require_role(actor)
    row = _get_or_raise(db, OverseasStudent, application_id, "Overseas student")
    result = completeness_check(row)
    row.is_complete = result["is_complete"]
    row.missing_items = list(result["missing_items"])
    return result


def assess_overseas_eligibility(db: Session, actor: Actor, application_id: Any) -> dict[str, Any]:
    require_role(actor, *ASSESSMENT_REVIEWERS)
    row = _get_or_raise(db, OverseasStudent, application_id, "Overseas student")

    linked = None
    if row.results_received:
        link = LinkedAssessment.from_fields(row.linked_assessment_type, row.linked_assessment_id)
        linked = resolve_linked_assessment(db, link)

    outcome = resolve_overseas_eligibility(row.results_received, linked)
    row.eligibility_status = outcome["eligibility_status"]
    row.eligibility_checked = bool(outcome.get("eligibility_checked"))
    row.eligibility_check_date = outcome.get("eligibility_check_date")
    row.eligibility_notes = outcome.get("reason")

    _audit(
        db,
        actor,
        "overseas_eligibility_assessed",
        {"application_id": str(row.id), "eligibility_status": row.eligibility_status},
    )
    logger.info("Overseas application %s assessed: %s", row.id, row.eligibility_status)
    return {"application_id": row.id, **outcome}


# ---------------------------------------------------------------------------
# Scholarship criteria
# ---------------------------------------------------------------------------


def _scholarship_name_taken(db: Session, name: str, exclude_id: uuid.UUID | None = None) -> bool:
    existing = db.scalar(select(ScholarshipCriteria).where(ScholarshipCriteria.scholarship_name == name))
    return existing is not None and existing.id != exclude_id


def create_scholarship(db: Session, actor: Actor, payload: Any) -> ScholarshipCriteria:
    require_role(actor, ADMINISTRATOR)
    data = parse_payload(ScholarshipCreate, payload)
    if _scholarship_name_taken(db, data.scholarship_name):
        raise DuplicateRecord(f"Scholarship '{data.scholarship_name}' already exists")

    row = ScholarshipCriteria(**data.model_dump(), created_by=actor.id)
    db.add(row)
    db.flush()
    _audit(db, actor, "scholarship_created", {"scholarship_id": str(row.id), "name": row.scholarship_name})
    return row


def update_scholarship(db: Session, actor: Actor, scholarship_id: Any, payload: Any) -> ScholarshipCriteria:
    require_role(actor, ADMINISTRATOR)
    data = parse_payload(ScholarshipUpdate, payload)
    row = _get_or_raise(db, ScholarshipCriteria, scholarship_id, "Scholarship")

    changes = data.model_dump(exclude_unset=True)
    name = changes.get("scholarship_name")
    if name and _scholarship_name_taken(db, name, exclude_id=row.id):
        raise DuplicateRecord(f"Scholarship '{name}' already exists")
    for key, value in changes.items():
        setattr(row, key, value)
    row.last_updated_by = actor.id
    _audit(db, actor, "scholarship_updated", {"scholarship_id": str(row.id), "fields": sorted(changes)})
    return row


def delete_scholarship(db: Session, actor: Actor, scholarship_id: Any) -> None:
    require_role(actor, ADMINISTRATOR)
    row = _get_or_raise(db, ScholarshipCriteria, scholarship_id, "Scholarship")
    db.delete(row)
    _audit(db, actor, "scholarship_deleted", {"scholarship_id": str(row.id)})


def list_scholarships(db: Session, open_only: bool = False) -> list[ScholarshipCriteria]:
    stmt = select(ScholarshipCriteria)
    if open_only:
        stmt = stmt.where(ScholarshipCriteria.is_active.is_(True), ScholarshipCriteria.is_open.is_(True))
    return list(db.scalars(stmt.order_by(ScholarshipCriteria.scholarship_name)).all())


def _student_grades(db: Session, student_id: uuid.UUID) -> list[GradeRecord]:
    return list(db.scalars(select(GradeRecord).where(GradeRecord.student_id == student_id)).all())


def check_scholarship_eligibility(
    db: Session,
    actor: Actor,
    scholarship_id: Any,
    student_id: Any = None,
) -> dict[str, Any]:
    require_role(actor)
    scholarship = _get_or_raise(db, ScholarshipCriteria, scholarship_id, "Scholarship")
    target = _as_uuid(student_id, "Student") if student_id else actor.id

    base = {"scholarship_id": scholarship.id, "scholarship_name": scholarship.scholarship_name}
    if db.get(User, target) is None:
        return {**base, "eligible": False, "reasons": ["Student not found"]}

    result = match_scholarship_criteria(scholarship, _student_grades(db, target))
    logger.info("Scholarship %s check for student %s: eligible=%s", scholarship.id, target, result["eligible"])
    return {**base, **result}


def get_eligible_scholarships(db: Session, actor: Actor, student_id: Any = None) -> list[dict[str, Any]]:
    require_role(actor)
    target = _as_uuid(student_id, "Student") if student_id else actor.id
    if db.get(User, target) is None:
        return []

    grades = _student_grades(db, target)
    eligible: list[dict[str, Any]] = []
    for scholarship in list_scholarships(db, open_only=True):
        result = match_scholarship_criteria(scholarship, grades)
        if result["eligible"]:
            eligible.append(
                {
                    "scholarship_id": scholarship.id,
                    "scholarship_name": scholarship.scholarship_name,
                    "provider_name": scholarship.provider_name,
                    "eligibility": result,
                }
            )
    return eligible
