import uuid

import pytest
from sqlalchemy import select

import services
from errors import DuplicateRecord, InvalidState, NotFound, Unauthorized, ValidationError
from models import Assessment, AuditLog


def assessment_payload(student_id, **overrides) -> dict:
    payload = {
        "student_id": str(student_id),
        "academic_year": "2024",
        "assessment_type": "DAEU",
        "student_track": "Science",
        "subjects_enrolled": [
            {"subject_name": "French", "score": 12, "coefficient": 1},
            {"subject_name": "Mathematics", "score": 15, "coefficient": 1},
            {"subject_name": "History", "score": 13, "coefficient": 1},
        ],
    }
    payload.update(overrides)
    return payload


EXCEPTIONAL_SUBJECTS = [
    {"subject_name": "French", "score": 8, "coefficient": 1},
    {"subject_name": "Mathematics", "score": 18, "coefficient": 2},
    {"subject_name": "Physics", "score": 16, "coefficient": 1},
]


def test_create_assessment_persists_derived_fields(db, examiner, student) -> None:
    record = services.create_assessment(db, examiner, assessment_payload(student.id))

    row = db.get(Assessment, record["id"])
    assert row.weighted_average == pytest.approx(13.333, abs=1e-3)
    assert row.french_score == 12
    assert row.mathematics_score == 15
    assert row.eligible_for_scholarship is True
    assert row.assessed_by == examiner.id
    assert record["assessment_results"]["eligible_for_scholarship"] is True

    audit = db.scalar(select(AuditLog).where(AuditLog.action == "assessment_created"))
    assert audit.details_json["assessment_id"] == str(row.id)


def test_scenario_e_duplicate_student_year_is_rejected(db, examiner, student) -> None:
    services.create_assessment(db, examiner, assessment_payload(student.id))

    with pytest.raises(DuplicateRecord) as exc:
        services.create_assessment(db, examiner, assessment_payload(student.id, assessment_type="BTS"))

    assert exc.value.kind == "duplicate_record"
    assert len(db.scalars(select(Assessment)).all()) == 1


def test_create_assessment_validates_payload(db, examiner, student) -> None:
    with pytest.raises(ValidationError) as exc:
        services.create_assessment(
            db,
            examiner,
            assessment_payload(student.id, subjects_enrolled=[{"subject_name": "French", "score": 21}]),
        )

    assert any("score" in err["field"] for err in exc.value.details)


def test_create_assessment_rejects_unknown_student(db, examiner) -> None:
    with pytest.raises(NotFound):
        services.create_assessment(db, examiner, assessment_payload(uuid.uuid4()))


def test_students_cannot_create_assessments(db, student, student_actor) -> None:
    with pytest.raises(Unauthorized):
        services.create_assessment(db, student_actor, assessment_payload(student.id))
    with pytest.raises(Unauthorized):
        services.create_assessment(db, None, assessment_payload(student.id))


def test_update_assessment_reevaluates(db, teacher, student) -> None:
    record = services.create_assessment(db, teacher, assessment_payload(student.id))

    updated = services.update_assessment(db, teacher, record["id"], {"subjects_enrolled": EXCEPTIONAL_SUBJECTS})

    row = db.get(Assessment, record["id"])
    assert updated["assessment_results"]["is_exceptional_case"] is True
    assert row.has_exceptional_case is True
    assert row.nstb_approval == "Pending"
    assert row.eligible_for_scholarship is False
    assert row.weighted_average == 15.0


def test_update_assessment_rejects_derived_fields(db, teacher, student) -> None:
    record = services.create_assessment(db, teacher, assessment_payload(student.id))

    with pytest.raises(ValidationError):
        services.update_assessment(db, teacher, record["id"], {"eligible_for_scholarship": True})


def test_delete_assessment_is_admin_only(db, admin, examiner, student) -> None:
    record = services.create_assessment(db, examiner, assessment_payload(student.id))

    with pytest.raises(Unauthorized):
        services.delete_assessment(db, examiner, record["id"])
    services.delete_assessment(db, admin, record["id"])

    assert db.get(Assessment, record["id"]) is None
    with pytest.raises(NotFound):
        services.get_assessment(db, admin, record["id"])


def test_review_workflow_approves_exceptional_case(db, admin, examiner, student) -> None:
    record = services.create_assessment(
        db, examiner, assessment_payload(student.id, subjects_enrolled=EXCEPTIONAL_SUBJECTS, justification="Illness")
    )
    pending = services.get_exceptional_cases(db, examiner)
    assert [r["id"] for r in pending] == [record["id"]]

    with pytest.raises(Unauthorized):
        services.review_exceptional_case(db, examiner, record["id"], "Approved")

    reviewed = services.review_exceptional_case(db, admin, record["id"], "Approved", notes="Strong science results")

    row = db.get(Assessment, record["id"])
    assert reviewed["assessment_results"]["eligible_for_scholarship"] is True
    assert row.nstb_approval == "Approved"
    assert row.reviewed_by == admin.id
    assert row.review_date is not None
    assert row.approval_notes == "Strong science results"
    assert row.justification == "Illness"
    assert services.get_exceptional_cases(db, examiner) == []
    assert [r["id"] for r in services.get_exceptional_cases(db, examiner, status="Approved")] == [record["id"]]


def test_approval_promotes_priority_programme(db, admin, examiner, student) -> None:
    record = services.create_assessment(
        db,
        examiner,
        assessment_payload(
            student.id, assessment_type="BTS", student_track="Technical", subjects_enrolled=EXCEPTIONAL_SUBJECTS
        ),
    )
    assert record["advanced_programme"]["is_priority"] is False
    assert services.get_priority_students(db, examiner) == []

    reviewed = services.review_exceptional_case(db, admin, record["id"], "Approved")

    assert reviewed["advanced_programme"]["is_priority"] is True
    assert reviewed["advanced_programme"]["programme_type"] == "BTS"
    assert db.get(Assessment, record["id"]).is_priority is True
    assert [r["id"] for r in services.get_priority_students(db, examiner)] == [record["id"]]


def test_review_rejects_non_exceptional_and_decided_cases(db, admin, examiner, student) -> None:
    plain = services.create_assessment(db, examiner, assessment_payload(student.id))
    with pytest.raises(InvalidState):
        services.review_exceptional_case(db, admin, plain["id"], "Approved")

    exceptional = services.create_assessment(
        db, examiner, assessment_payload(student.id, academic_year="2025", subjects_enrolled=EXCEPTIONAL_SUBJECTS)
    )
    services.review_exceptional_case(db, admin, exceptional["id"], "Rejected")
    with pytest.raises(InvalidState):
        services.review_exceptional_case(db, admin, exceptional["id"], "Approved")
    with pytest.raises(ValidationError):
        services.review_exceptional_case(db, admin, exceptional["id"], "Pending")

    assert db.get(Assessment, exceptional["id"]).nstb_approval == "Rejected"


def test_get_exceptional_cases_validates_status(db, examiner) -> None:
    with pytest.raises(ValidationError):
        services.get_exceptional_cases(db, examiner, status="Unknown")


def test_find_assessments_filters_and_sorts(db, examiner, student) -> None:
    other = services.create_assessment(
        db,
        examiner,
        assessment_payload(
            student.id,
            academic_year="2023",
            assessment_type="BTS",
            student_track="Technical",
            subjects_enrolled=[{"subject_name": "Français", "score": 16}, {"subject_name": "Gestion", "score": 17}],
        ),
    )
    first = services.create_assessment(db, examiner, assessment_payload(student.id))

    everything = services.find_assessments(db, examiner)
    assert [r["id"] for r in everything] == [other["id"], first["id"]]

    assert [r["id"] for r in services.find_assessments(db, examiner, {"min_average": 14})] == [other["id"]]
    assert [r["id"] for r in services.find_assessments(db, examiner, {"priority_only": True})] == [other["id"]]
    assert [r["id"] for r in services.find_assessments(db, examiner, {"academic_year": "2024"})] == [first["id"]]
    assert services.find_assessments(db, examiner, {"exceptional_only": True}) == []

    with pytest.raises(ValidationError):
        services.find_assessments(db, examiner, {"assessment_type": "GCSE"})


def test_priority_students_and_statistics(db, admin, examiner, student) -> None:
    services.create_assessment(
        db,
        examiner,
        assessment_payload(student.id, assessment_type="DUT", student_track="Technical"),
    )
    services.create_assessment(
        db, examiner, assessment_payload(student.id, academic_year="2025", subjects_enrolled=EXCEPTIONAL_SUBJECTS)
    )

    priority = services.get_priority_students(db, examiner)
    assert [r["advanced_programme"]["programme_type"] for r in priority] == ["DUT"]
    assert services.get_priority_students(db, examiner, academic_year="2025") == []

    stats = services.assessment_statistics(db, admin)
    assert stats["total"] == 2
    assert stats["eligible"] == 1
    assert stats["priority_students"]["DUT"] == 1
    assert stats["exceptional_cases"] == {"total": 1, "pending": 1, "approved": 0, "rejected": 0}
    assert stats["type_breakdown"]["DAEU"] == 1


def test_check_assessment_scholarship_eligibility(db, examiner, student, student_actor) -> None:
    record = services.create_assessment(
        db, examiner, assessment_payload(student.id, subjects_enrolled=EXCEPTIONAL_SUBJECTS)
    )

    summary = services.check_assessment_scholarship_eligibility(db, student_actor, record["id"])

    assert summary["eligible"] is False
    assert summary["requires_nstb_approval"] is True


def test_spfsc_certificate_numbers_are_unique(db, examiner, student) -> None:
    payload = {
        "student_id": str(student.id),
        "academic_year": "2024",
        "certificate_number": "SPFSC-2024-0001",
        "subjects": [
            {"subject_name": "English", "grade": "Distinction", "percentage": 86},
            {"subject_name": "Mathematics", "grade": "Distinction", "percentage": 90},
            {"subject_name": "Biology", "grade": "Merit", "percentage": 76},
            {"subject_name": "Chemistry", "grade": "Pass", "percentage": 62},
        ],
    }
    row = services.create_spfsc_assessment(db, examiner, payload)

    assert row.meets_minimum_criteria is True
    assert row.eligible_for_scholarship is True
    assert row.rank == "Top 10%"
    with pytest.raises(DuplicateRecord):
        services.create_spfsc_assessment(db, examiner, payload)


def overseas_payload(student_id) -> dict:
    return {
        "student_id": str(student_id),
        "academic_year": "2024",
        "personal_details": {"first_name": "Marie", "last_name": "Kalo", "date_of_birth": "2006-05-14"},
        "contact_details": {"email": "marie@example.com", "phone": "+679 555 0101"},
        "current_study": {"year_level": "Year 13", "study_country": "Fiji", "institution_name": "Suva Grammar"},
        "examination_info": {
            "examination_body": "EQAP",
            "examination_type": "SPFSC",
            "exam_year": 2024,
            "subjects_enrolled": ["English", "Mathematics"],
        },
        "documents": [{"document_type": "Information Form"}, {"document_type": "Enrollment Certificate"}],
    }


def test_overseas_application_starts_pending_results(db, examiner, student, student_actor) -> None:
    application = services.create_overseas_student(db, student_actor, overseas_payload(student.id))

    assert application.eligibility_status == "Pending Results"
    assert application.is_complete is True
    assert services.check_overseas_completeness(db, student_actor, application.id) == {
        "is_complete": True,
        "missing_items": [],
    }

    outcome = services.assess_overseas_eligibility(db, examiner, application.id)
    assert outcome["eligibility_status"] == "Pending Results"
    assert outcome["reason"] == "Results not yet received"
    assert application.eligibility_checked is False


def test_overseas_eligibility_follows_linked_assessment(db, examiner, student, student_actor) -> None:
    assessment = services.create_assessment(db, examiner, assessment_payload(student.id))
    application = services.create_overseas_student(db, student_actor, overseas_payload(student.id))
    services.record_overseas_results(
        db,
        examiner,
        application.id,
        {"linked_assessment_type": "DAEU", "linked_assessment_id": str(assessment["id"])},
    )

    outcome = services.assess_overseas_eligibility(db, examiner, application.id)

    assert outcome["eligible"] is True
    assert outcome["eligibility_status"] == "Eligible"
    assert application.eligibility_status == "Eligible"
    assert application.eligibility_checked is True
    assert application.eligibility_check_date is not None
    assert application.results_received_date is not None


def test_overseas_reassessment_clears_stale_check(db, examiner, student, student_actor) -> None:
    assessment = services.create_assessment(db, examiner, assessment_payload(student.id))
    application = services.create_overseas_student(db, student_actor, overseas_payload(student.id))
    services.record_overseas_results(
        db,
        examiner,
        application.id,
        {"linked_assessment_type": "DAEU", "linked_assessment_id": str(assessment["id"])},
    )
    services.assess_overseas_eligibility(db, examiner, application.id)
    assert application.eligibility_checked is True

    services.record_overseas_results(db, examiner, application.id, {})
    outcome = services.assess_overseas_eligibility(db, examiner, application.id)

    assert outcome["eligibility_status"] == "Conditional"
    assert application.eligibility_checked is False
    assert application.eligibility_check_date is None


def test_overseas_eligibility_with_spfsc_link(db, examiner, student, student_actor) -> None:
    spfsc = services.create_spfsc_assessment(
        db,
        examiner,
        {
            "student_id": str(student.id),
            "academic_year": "2024",
            "subjects": [
                {"subject_name": "English", "grade": "Merit", "percentage": 70},
                {"subject_name": "Mathematics", "grade": "Merit", "percentage": 71},
                {"subject_name": "Physics", "grade": "Merit", "percentage": 72},
            ],
        },
    )
    application = services.create_overseas_student(db, student_actor, overseas_payload(student.id))
    services.record_overseas_results(
        db, examiner, application.id, {"linked_assessment_type": "SPFSC", "linked_assessment_id": str(spfsc.id)}
    )

    outcome = services.assess_overseas_eligibility(db, examiner, application.id)

    assert outcome["eligibility_status"] == "Not Eligible"


@pytest.mark.parametrize(
    "results",
    [
        {},
        {"linked_assessment_type": "NCEA", "linked_assessment_id": str(uuid.uuid4())},
        {"linked_assessment_type": "DAEU", "linked_assessment_id": str(uuid.uuid4())},
    ],
)
def test_overseas_unresolved_link_is_conditional(db, examiner, student, student_actor, results) -> None:
    application = services.create_overseas_student(db, student_actor, overseas_payload(student.id))
    services.record_overseas_results(db, examiner, application.id, results)

    outcome = services.assess_overseas_eligibility(db, examiner, application.id)

    assert outcome["eligibility_status"] == "Conditional"
    assert outcome["reason"] == "Assessment pending review"
    assert application.eligibility_notes == "Assessment pending review"


def test_overseas_eligibility_requires_reviewer(db, teacher, student, student_actor) -> None:
    application = services.create_overseas_student(db, student_actor, overseas_payload(student.id))

    with pytest.raises(Unauthorized):
        services.assess_overseas_eligibility(db, teacher, application.id)
    with pytest.raises(NotFound):
        services.record_overseas_results(db, teacher, uuid.uuid4(), {})
