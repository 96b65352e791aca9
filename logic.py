from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from errors import InvalidState, ValidationError


AVERAGE_THRESHOLD = 12.0
FRENCH_THRESHOLD = 10.0
MATH_THRESHOLD = 10.0
EXCEPTIONAL_AVERAGE_THRESHOLD = 14.0

FRENCH_KEYWORDS = ("french", "français")
MATH_KEYWORDS = ("math", "mathématiques")

ASSESSMENT_TYPES = ("DAEU", "Baccalaureat", "BTS", "DUT", "CPGE")
PRIORITY_PROGRAMMES = {"BTS", "DUT", "CPGE"}
STUDENT_TRACKS = ("Science", "Arts", "Technical", "General")

NSTB_NOT_APPLICABLE = "N/A"
NSTB_PENDING = "Pending"
NSTB_APPROVED = "Approved"
NSTB_REJECTED = "Rejected"
NSTB_STATUSES = (NSTB_PENDING, NSTB_APPROVED, NSTB_REJECTED, NSTB_NOT_APPLICABLE)
NSTB_DECISIONS = (NSTB_APPROVED, NSTB_REJECTED)

ELIGIBILITY_PENDING_RESULTS = "Pending Results"
ELIGIBILITY_ELIGIBLE = "Eligible"
ELIGIBILITY_NOT_ELIGIBLE = "Not Eligible"
ELIGIBILITY_CONDITIONAL = "Conditional"

SPFSC_GRADE_POINTS = {"Distinction": 4.0, "Merit": 3.0, "Pass": 2.0, "Fail": 0.0}
SPFSC_RANKS = [(85.0, "Top 5%"), (75.0, "Top 10%"), (65.0, "Top 25%"), (50.0, "Top 50%")]

REQUIRED_OVERSEAS_DOCUMENTS = ("Information Form", "Enrollment Certificate")


@dataclass(frozen=True)
class OverallPerformance:
    total_points: float
    total_coefficients: float
    average_score: float
    weighted_average: float

    def as_dict(self) -> dict[str, float]:
        return {
            "total_points": self.total_points,
            "total_coefficients": self.total_coefficients,
            "average_score": self.average_score,
            "weighted_average": self.weighted_average,
        }


@dataclass(frozen=True)
class CriteriaResult:
    meets_average_requirement: bool
    meets_french_requirement: bool
    meets_math_requirement: bool
    meets_minimum_criteria: bool
    is_exceptional_case: bool
    eligible_for_scholarship: bool

    def as_dict(self) -> dict[str, bool]:
        return {
            "meets_average_requirement": self.meets_average_requirement,
            "meets_french_requirement": self.meets_french_requirement,
            "meets_math_requirement": self.meets_math_requirement,
            "meets_minimum_criteria": self.meets_minimum_criteria,
            "is_exceptional_case": self.is_exceptional_case,
            "eligible_for_scholarship": self.eligible_for_scholarship,
        }


@dataclass(frozen=True)
class LinkedAssessment:
    """Reference from an overseas application to one assessment record of a given kind."""

    kind: str
    assessment_id: uuid.UUID

    @classmethod
    def from_fields(cls, kind: str | None, assessment_id: Any) -> LinkedAssessment | None:
        if not kind or not assessment_id:
            return None
        try:
            return cls(kind=str(kind), assessment_id=uuid.UUID(str(assessment_id)))
        except ValueError:
            return None


def _field(record: Any, name: str, default: Any = None) -> Any:
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def _to_float(value: Any, default: float | None = 0.0) -> float | None:
    if value is None:
        return default
    return float(value)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _format_threshold(value: float) -> str:
    return f"{value:g}"


# ---------------------------------------------------------------------------
# Score aggregation and subject extraction
# ---------------------------------------------------------------------------


def subject_coefficient(subject: Any) -> float:
    # Missing or zero coefficients count once.
    return _to_float(_field(subject, "coefficient"), 0.0) or 1.0


def aggregate_scores(subjects: list[Any]) -> OverallPerformance:
    if not subjects:
        raise ValueError("Cannot aggregate an empty subject list")

    total_points = 0.0
    total_coefficients = 0.0
    simple_total = 0.0
    for subject in subjects:
        score = _to_float(_field(subject, "score"))
        coefficient = subject_coefficient(subject)
        total_points += score * coefficient
        total_coefficients += coefficient
        simple_total += score

    return OverallPerformance(
        total_points=total_points,
        total_coefficients=total_coefficients,
        average_score=simple_total / len(subjects),
        weighted_average=total_points / total_coefficients,
    )


def find_subject_score(subjects: list[Any], keywords: tuple[str, ...]) -> float | None:
    """Score of the first subject whose name contains one of ``keywords``, or None."""
    for subject in subjects or []:
        name = str(_field(subject, "subject_name") or "").lower()
        if any(keyword in name for keyword in keywords):
            return _to_float(_field(subject, "score"))
    return None


def evaluation_average(performance: OverallPerformance | dict[str, Any] | None) -> float:
    if not performance:
        return 0.0
    weighted = _to_float(_field(performance, "weighted_average"), None)
    if weighted:
        return weighted
    return _to_float(_field(performance, "average_score"), None) or 0.0


# ---------------------------------------------------------------------------
# Criteria, priority programmes and the exceptional case workflow
# ---------------------------------------------------------------------------


def is_exceptional(average: float, french_score: float | None) -> bool:
    return average >= EXCEPTIONAL_AVERAGE_THRESHOLD and french_score is not None and french_score < FRENCH_THRESHOLD


def evaluate_criteria(
    average: float,
    french_score: float | None,
    mathematics_score: float | None,
    student_track: str,
    nstb_approval: str = NSTB_NOT_APPLICABLE,
) -> CriteriaResult:
    meets_average = average >= AVERAGE_THRESHOLD
    meets_french = french_score is not None and french_score >= FRENCH_THRESHOLD
    if student_track == "Science":
        meets_math = mathematics_score is not None and mathematics_score >= MATH_THRESHOLD
    else:
        meets_math = True

    exceptional = is_exceptional(average, french_score)
    approved = nstb_approval == NSTB_APPROVED
    if exceptional:
        meets_minimum = approved
    else:
        meets_minimum = meets_average and meets_french and meets_math

    return CriteriaResult(
        meets_average_requirement=meets_average,
        meets_french_requirement=meets_french,
        meets_math_requirement=meets_math,
        meets_minimum_criteria=meets_minimum,
        is_exceptional_case=exceptional,
        eligible_for_scholarship=meets_minimum or (exceptional and approved),
    )


def classify_programme(assessment_type: str, meets_minimum_criteria: bool, current: dict[str, Any] | None = None) -> dict[str, Any]:
    programme = dict(current or {})
    if assessment_type in PRIORITY_PROGRAMMES:
        programme["is_priority"] = bool(meets_minimum_criteria)
        programme["programme_type"] = assessment_type
    else:
        programme["is_priority"] = False
        programme["programme_type"] = "N/A"
    programme.setdefault("acceptance_details", {})
    return programme


def empty_exceptional_circumstances() -> dict[str, Any]:
    return {
        "has_exceptional_case": False,
        "average_score": None,
        "french_score": None,
        "justification": None,
        "reviewed_by": None,
        "review_date": None,
        "nstb_approval": NSTB_NOT_APPLICABLE,
        "approval_notes": None,
    }


def sync_exceptional_case(
    circumstances: dict[str, Any] | None,
    average: float,
    french_score: float | None,
) -> dict[str, Any]:
    """Flag (or unflag) the record for NSTB review from the current scores.

    A newly flagged case moves from N/A to Pending. A record that is no longer
    exceptional drops its flag and an undecided Pending returns to N/A; board
    decisions already taken are kept.
    """
    synced = {**empty_exceptional_circumstances(), **(circumstances or {})}
    if is_exceptional(average, french_score):
        synced["has_exceptional_case"] = True
        synced["average_score"] = average
        synced["french_score"] = french_score
        if synced["nstb_approval"] == NSTB_NOT_APPLICABLE:
            synced["nstb_approval"] = NSTB_PENDING
    else:
        synced["has_exceptional_case"] = False
        if synced["nstb_approval"] == NSTB_PENDING:
            synced["nstb_approval"] = NSTB_NOT_APPLICABLE
    return synced


def apply_review_decision(
    circumstances: dict[str, Any],
    decision: str,
    reviewer_id: Any,
    notes: str | None = None,
    reviewed_at: datetime | None = None,
) -> dict[str, Any]:
    if decision not in NSTB_DECISIONS:
        raise ValidationError(f"Review decision must be one of {', '.join(NSTB_DECISIONS)}, got {decision!r}")
    if not circumstances.get("has_exceptional_case"):
        raise InvalidState("This is not an exceptional case")
    if circumstances.get("nstb_approval") in NSTB_DECISIONS:
        raise InvalidState(f"Exceptional case already {str(circumstances['nstb_approval']).lower()} by NSTB")

    reviewed = dict(circumstances)
    reviewed["nstb_approval"] = decision
    reviewed["approval_notes"] = notes
    reviewed["reviewed_by"] = reviewer_id
    reviewed["review_date"] = reviewed_at or _utcnow()
    return reviewed


def evaluate_assessment(record: dict[str, Any]) -> dict[str, Any]:
    """Recompute every derived field of an assessment record.

    Returns a new record; the input is left untouched. Order matters: scores,
    then the exceptional case flag, then the criteria (which read the board
    decision), then the priority programme classification.
    """
    evaluated = copy.deepcopy(record)
    subjects = list(evaluated.get("subjects_enrolled") or [])

    performance = aggregate_scores(subjects).as_dict() if subjects else None
    evaluated["overall_performance"] = performance
    evaluated["french_score"] = find_subject_score(subjects, FRENCH_KEYWORDS)
    evaluated["mathematics_score"] = find_subject_score(subjects, MATH_KEYWORDS)

    average = evaluation_average(performance)
    circumstances = sync_exceptional_case(
        evaluated.get("exceptional_circumstances"),
        average,
        evaluated["french_score"],
    )
    evaluated["exceptional_circumstances"] = circumstances

    results = evaluate_criteria(
        average,
        evaluated["french_score"],
        evaluated["mathematics_score"],
        str(evaluated.get("student_track") or ""),
        circumstances["nstb_approval"],
    )
    evaluated["assessment_results"] = results.as_dict()
    evaluated["advanced_programme"] = classify_programme(
        str(evaluated.get("assessment_type") or ""),
        results.meets_minimum_criteria,
        evaluated.get("advanced_programme"),
    )
    return evaluated


def scholarship_summary(record: dict[str, Any]) -> dict[str, Any]:
    results = record.get("assessment_results") or {}
    circumstances = record.get("exceptional_circumstances") or {}
    return {
        "eligible": bool(results.get("eligible_for_scholarship")),
        "is_priority": bool((record.get("advanced_programme") or {}).get("is_priority")),
        "average_score": evaluation_average(record.get("overall_performance")) if record.get("overall_performance") else None,
        "french_score": record.get("french_score"),
        "math_score": record.get("mathematics_score"),
        "meets_standard_criteria": bool(results.get("meets_minimum_criteria")),
        "is_exceptional_case": bool(results.get("is_exceptional_case")),
        "requires_nstb_approval": bool(results.get("is_exceptional_case")) and circumstances.get("nstb_approval") == NSTB_PENDING,
    }


# ---------------------------------------------------------------------------
# SPFSC certificates (second linkable assessment kind)
# ---------------------------------------------------------------------------


def _spfsc_mark(subject: Any) -> float:
    return _to_float(_field(subject, "percentage"), None) or _to_float(_field(subject, "marks"), None) or 0.0


def spfsc_rank(average_percentage: float) -> str:
    for threshold, label in SPFSC_RANKS:
        if average_percentage >= threshold:
            return label
    return "Below 50%"


def evaluate_spfsc(subjects: list[Any]) -> dict[str, Any]:
    highest_four = sorted(subjects, key=_spfsc_mark, reverse=True)[:4]
    english = next((s for s in highest_four if "english" in str(_field(s, "subject_name") or "").lower()), None)

    merit_count = 0
    distinction_count = 0
    for subject in highest_four:
        grade = _field(subject, "grade")
        if grade == "Merit":
            merit_count += 1
        elif grade == "Distinction":
            distinction_count += 1
            merit_count += 1

    has_three_merits = merit_count >= 3
    includes_english_merit = english is not None and _field(english, "grade") in {"Merit", "Distinction"}
    meets_minimum = has_three_merits and includes_english_merit

    total = len(subjects)
    average_percentage = sum(_to_float(_field(s, "percentage")) or 0.0 for s in subjects) / total if total else 0.0
    gpa = sum(SPFSC_GRADE_POINTS.get(_field(s, "grade"), 0.0) for s in subjects) / total if total else 0.0

    return {
        "highest_four_subjects": [
            {
                "subject_name": _field(s, "subject_name"),
                "grade": _field(s, "grade"),
                "marks": _field(s, "marks"),
                "percentage": _field(s, "percentage"),
            }
            for s in highest_four
        ],
        "has_english": english is not None,
        "english_grade": _field(english, "grade") if english is not None else "Not Found",
        "merit_count": merit_count,
        "distinction_count": distinction_count,
        "meets_minimum_criteria": meets_minimum,
        "eligible_for_tertiary": meets_minimum,
        "eligible_for_scholarship": meets_minimum and distinction_count >= 2,
        "average_percentage": round(average_percentage, 1),
        "grade_point_average": round(gpa, 2),
        "rank": spfsc_rank(average_percentage),
    }


# ---------------------------------------------------------------------------
# Overseas applications
# ---------------------------------------------------------------------------


def resolve_overseas_eligibility(
    results_received: bool,
    linked_assessment: Any | None,
    checked_at: datetime | None = None,
) -> dict[str, Any]:
    """Eligibility of an overseas application.

    ``linked_assessment`` is the already dereferenced assessment (dict or row)
    or None when the link is missing or does not resolve. Missing results win
    over a broken link, which wins over a resolved one.
    """
    if not results_received:
        return {
            "eligible": False,
            "eligibility_status": ELIGIBILITY_PENDING_RESULTS,
            "reason": "Results not yet received",
        }

    if linked_assessment is None:
        return {
            "eligible": False,
            "eligibility_status": ELIGIBILITY_CONDITIONAL,
            "reason": "Assessment pending review",
        }

    eligible = _field(linked_assessment, "eligible_for_scholarship")
    if eligible is None:
        eligible = _field(linked_assessment, "meets_minimum_criteria", False)
    eligible = bool(eligible)
    return {
        "eligible": eligible,
        "eligibility_status": ELIGIBILITY_ELIGIBLE if eligible else ELIGIBILITY_NOT_ELIGIBLE,
        "eligibility_checked": True,
        "eligibility_check_date": checked_at or _utcnow(),
    }


def check_overseas_completeness(application: Any) -> dict[str, Any]:
    personal = _field(application, "personal_details") or {}
    contact = _field(application, "contact_details") or {}
    study = _field(application, "current_study") or {}
    exam = _field(application, "examination_info") or {}
    documents = _field(application, "documents") or []

    checks = [
        (personal.get("first_name"), "First Name"),
        (personal.get("last_name"), "Last Name"),
        (personal.get("date_of_birth"), "Date of Birth"),
        (contact.get("email"), "Email"),
        (contact.get("phone"), "Phone Number"),
        (study.get("year_level"), "Year Level"),
        (study.get("study_country"), "Study Country"),
        (study.get("institution_name"), "Institution Name"),
        (exam.get("examination_body"), "Examination Body"),
        (exam.get("examination_type"), "Examination Type"),
        (exam.get("exam_year"), "Examination Year"),
        (exam.get("subjects_enrolled"), "Subjects Enrolled"),
    ]
    missing = [label for value, label in checks if not value]

    document_types = {d.get("document_type") for d in documents}
    missing.extend(doc for doc in REQUIRED_OVERSEAS_DOCUMENTS if doc not in document_types)
    return {"is_complete": not missing, "missing_items": missing}


# ---------------------------------------------------------------------------
# Scholarship criteria
# ---------------------------------------------------------------------------


def _grade_average(grades: list[Any], name: str) -> float:
    if not grades:
        return 0.0
    return sum(_to_float(_field(g, name)) or 0.0 for g in grades) / len(grades)


def match_scholarship_criteria(criteria: Any, grades: list[Any]) -> dict[str, Any]:
    """Match a student's grade history against a scholarship's numeric criteria.

    Only the GPA and percentage minimums are checked; qualitative criteria
    such as age range are declared on the scholarship but not evaluated here.
    """
    reasons: list[str] = []
    min_gpa = _to_float(_field(criteria, "minimum_gpa"), None)
    min_percentage = _to_float(_field(criteria, "minimum_percentage"), None)

    if min_gpa:
        gpa = _grade_average(grades, "grade_point")
        if gpa < min_gpa:
            reasons.append(f"Minimum GPA required: {_format_threshold(min_gpa)}, Student GPA: {gpa:.2f}")

    if min_percentage:
        percentage = _grade_average(grades, "percentage")
        if percentage < min_percentage:
            reasons.append(
                f"Minimum percentage required: {_format_threshold(min_percentage)}%, Student average: {percentage:.2f}%"
            )

    return {"eligible": not reasons, "reasons": reasons}
