import uuid
from datetime import datetime, timezone

import pytest

from errors import InvalidState, ValidationError
from logic import (
    FRENCH_KEYWORDS,
    MATH_KEYWORDS,
    LinkedAssessment,
    aggregate_scores,
    apply_review_decision,
    check_overseas_completeness,
    classify_programme,
    evaluate_assessment,
    evaluate_criteria,
    evaluate_spfsc,
    find_subject_score,
    resolve_overseas_eligibility,
    scholarship_summary,
    sync_exceptional_case,
)


def subject(name: str, score: float, coefficient: float = 1) -> dict:
    return {"subject_name": name, "score": score, "coefficient": coefficient}


def base_record(**overrides) -> dict:
    record = {
        "student_id": "S1",
        "academic_year": "2024",
        "assessment_type": "DAEU",
        "student_track": "Science",
        "subjects_enrolled": [subject("French", 12), subject("Mathematics", 15), subject("History", 13)],
    }
    record.update(overrides)
    return record


def test_aggregate_scores_weights_by_coefficient() -> None:
    performance = aggregate_scores([subject("French", 8), subject("Mathematics", 18, 2), subject("Physics", 16)])

    assert performance.total_points == 60
    assert performance.total_coefficients == 4
    assert performance.weighted_average == 15.0
    assert performance.average_score == 14.0


def test_aggregate_scores_unit_coefficients_match_simple_average() -> None:
    performance = aggregate_scores([subject("A", 7.5), subject("B", 12.25), subject("C", 19)])

    assert performance.weighted_average == pytest.approx(performance.average_score)


def test_aggregate_scores_missing_or_zero_coefficient_counts_once() -> None:
    performance = aggregate_scores([{"subject_name": "A", "score": 10}, {"subject_name": "B", "score": 20, "coefficient": 0}])

    assert performance.total_coefficients == 2
    assert performance.weighted_average == 15.0


def test_aggregate_scores_stays_on_twenty_point_scale() -> None:
    performance = aggregate_scores([subject("A", 0, 3), subject("B", 20, 0.5), subject("C", 20, 7)])

    assert 0 <= performance.weighted_average <= 20


def test_aggregate_scores_rejects_empty_list() -> None:
    with pytest.raises(ValueError):
        aggregate_scores([])


def test_find_subject_score_matches_case_insensitive_substring() -> None:
    subjects = [subject("Histoire", 11), subject("Langue FRANÇAISE", 9.5), subject("Mathématiques appliquées", 14)]

    assert find_subject_score(subjects, FRENCH_KEYWORDS) == 9.5
    assert find_subject_score(subjects, MATH_KEYWORDS) == 14


def test_find_subject_score_first_match_wins_and_absent_is_none() -> None:
    subjects = [subject("French Literature", 11), subject("French Oral", 16)]

    assert find_subject_score(subjects, FRENCH_KEYWORDS) == 11
    assert find_subject_score(subjects, MATH_KEYWORDS) is None


def test_scenario_a_science_student_meets_every_requirement() -> None:
    record = evaluate_assessment(base_record())
    results = record["assessment_results"]

    assert record["overall_performance"]["average_score"] == pytest.approx(13.333, abs=1e-3)
    assert results == {
        "meets_average_requirement": True,
        "meets_french_requirement": True,
        "meets_math_requirement": True,
        "meets_minimum_criteria": True,
        "is_exceptional_case": False,
        "eligible_for_scholarship": True,
    }
    assert record["exceptional_circumstances"]["nstb_approval"] == "N/A"


def test_scenario_b_exceptional_case_waits_for_nstb_approval() -> None:
    record = evaluate_assessment(
        base_record(subjects_enrolled=[subject("French", 8), subject("Mathematics", 18, 2), subject("Physics", 16)])
    )

    assert record["assessment_results"]["is_exceptional_case"] is True
    assert record["assessment_results"]["meets_minimum_criteria"] is False
    assert record["assessment_results"]["eligible_for_scholarship"] is False
    circumstances = record["exceptional_circumstances"]
    assert circumstances["has_exceptional_case"] is True
    assert circumstances["nstb_approval"] == "Pending"
    assert circumstances["average_score"] == 15.0
    assert circumstances["french_score"] == 8

    reviewer = uuid.uuid4()
    record["exceptional_circumstances"] = apply_review_decision(circumstances, "Approved", reviewer, notes="Board OK")
    approved = evaluate_assessment(record)

    assert approved["assessment_results"]["meets_minimum_criteria"] is True
    assert approved["assessment_results"]["eligible_for_scholarship"] is True
    assert approved["exceptional_circumstances"]["reviewed_by"] == reviewer
    assert approved["exceptional_circumstances"]["approval_notes"] == "Board OK"


def test_scenario_c_priority_follows_programme_type() -> None:
    subjects = [subject("Français", 13), subject("Économie", 14)]
    bts = evaluate_assessment(base_record(assessment_type="BTS", student_track="Technical", subjects_enrolled=subjects))
    daeu = evaluate_assessment(base_record(assessment_type="DAEU", student_track="Technical", subjects_enrolled=subjects))

    assert bts["advanced_programme"]["is_priority"] is True
    assert bts["advanced_programme"]["programme_type"] == "BTS"
    assert daeu["advanced_programme"]["is_priority"] is False
    assert daeu["advanced_programme"]["programme_type"] == "N/A"


def test_priority_programme_requires_minimum_criteria() -> None:
    record = evaluate_assessment(
        base_record(assessment_type="CPGE", subjects_enrolled=[subject("French", 9), subject("Mathematics", 11)])
    )

    assert record["advanced_programme"] == {"is_priority": False, "programme_type": "CPGE", "acceptance_details": {}}


def test_classify_programme_keeps_acceptance_details() -> None:
    programme = classify_programme("DUT", True, {"acceptance_details": {"institution_name": "IUT Nouméa"}})

    assert programme["is_priority"] is True
    assert programme["acceptance_details"] == {"institution_name": "IUT Nouméa"}


def test_average_threshold_boundary() -> None:
    assert evaluate_criteria(12.0, 12, 12, "Science").meets_average_requirement is True
    assert evaluate_criteria(11.999, 12, 12, "Science").meets_average_requirement is False


def test_french_threshold_boundary_for_exceptional_case() -> None:
    assert evaluate_criteria(15.0, 9.99, 15, "Science").is_exceptional_case is True
    assert evaluate_criteria(15.0, 10.0, 15, "Science").is_exceptional_case is False


def test_non_science_tracks_always_meet_math_requirement() -> None:
    for track in ("Arts", "Technical", "General"):
        assert evaluate_criteria(13, 12, None, track).meets_math_requirement is True
        assert evaluate_criteria(13, 12, 2, track).meets_math_requirement is True
    assert evaluate_criteria(13, 12, None, "Science").meets_math_requirement is False


def test_missing_french_fails_requirement_without_exceptional_flag() -> None:
    result = evaluate_criteria(16, None, 15, "Science")

    assert result.meets_french_requirement is False
    assert result.is_exceptional_case is False
    assert result.eligible_for_scholarship is False


def test_evaluation_is_idempotent() -> None:
    once = evaluate_assessment(
        base_record(subjects_enrolled=[subject("French", 8), subject("Mathematics", 18, 2), subject("Physics", 16)])
    )
    twice = evaluate_assessment(once)

    assert twice == once


def test_evaluation_does_not_mutate_input() -> None:
    record = base_record()
    evaluate_assessment(record)

    assert "assessment_results" not in record


def test_record_without_subjects_has_no_performance_and_fails() -> None:
    record = evaluate_assessment(base_record(subjects_enrolled=[]))

    assert record["overall_performance"] is None
    assert record["assessment_results"]["meets_average_requirement"] is False
    assert record["assessment_results"]["eligible_for_scholarship"] is False


def test_sync_exceptional_case_unflags_and_resets_pending() -> None:
    flagged = sync_exceptional_case(None, 15.0, 8)
    cleared = sync_exceptional_case(flagged, 15.0, 11)

    assert flagged["nstb_approval"] == "Pending"
    assert cleared["has_exceptional_case"] is False
    assert cleared["nstb_approval"] == "N/A"


def test_sync_exceptional_case_keeps_board_decision() -> None:
    rejected = {**sync_exceptional_case(None, 15.0, 8), "nstb_approval": "Rejected"}

    assert sync_exceptional_case(rejected, 15.0, 8)["nstb_approval"] == "Rejected"
    assert sync_exceptional_case(rejected, 13.0, 12)["nstb_approval"] == "Rejected"


def test_rejected_exceptional_case_stays_ineligible() -> None:
    record = evaluate_assessment(
        base_record(subjects_enrolled=[subject("French", 8), subject("Mathematics", 18, 2), subject("Physics", 16)])
    )
    record["exceptional_circumstances"] = apply_review_decision(record["exceptional_circumstances"], "Rejected", "u1")
    rejected = evaluate_assessment(record)

    assert rejected["assessment_results"]["eligible_for_scholarship"] is False
    assert rejected["exceptional_circumstances"]["nstb_approval"] == "Rejected"


def test_review_decision_rules() -> None:
    pending = sync_exceptional_case(None, 15.0, 8)

    with pytest.raises(ValidationError):
        apply_review_decision(pending, "Maybe", "u1")
    with pytest.raises(InvalidState):
        apply_review_decision(sync_exceptional_case(None, 13.0, 12), "Approved", "u1")

    reviewed_at = datetime(2024, 7, 1, tzinfo=timezone.utc)
    approved = apply_review_decision(pending, "Approved", "u1", reviewed_at=reviewed_at)
    assert approved["review_date"] == reviewed_at
    assert pending["nstb_approval"] == "Pending"

    with pytest.raises(InvalidState):
        apply_review_decision(approved, "Rejected", "u2")


def test_scholarship_summary_flags_pending_board_review() -> None:
    record = evaluate_assessment(
        base_record(subjects_enrolled=[subject("French", 8), subject("Mathematics", 18, 2), subject("Physics", 16)])
    )
    summary = scholarship_summary(record)

    assert summary["eligible"] is False
    assert summary["requires_nstb_approval"] is True
    assert summary["average_score"] == 15.0


def test_spfsc_evaluation_counts_merits_in_best_four() -> None:
    subjects = [
        {"subject_name": "English", "grade": "Merit", "percentage": 72},
        {"subject_name": "Mathematics", "grade": "Distinction", "percentage": 88},
        {"subject_name": "Physics", "grade": "Distinction", "percentage": 85},
        {"subject_name": "Chemistry", "grade": "Pass", "percentage": 60},
        {"subject_name": "Geography", "grade": "Fail", "percentage": 30},
    ]
    summary = evaluate_spfsc(subjects)

    assert [s["subject_name"] for s in summary["highest_four_subjects"]] == ["Mathematics", "Physics", "English", "Chemistry"]
    assert summary["merit_count"] == 3
    assert summary["distinction_count"] == 2
    assert summary["meets_minimum_criteria"] is True
    assert summary["eligible_for_scholarship"] is True
    assert summary["average_percentage"] == 67.0
    assert summary["grade_point_average"] == 2.6
    assert summary["rank"] == "Top 25%"


def test_spfsc_without_english_merit_misses_minimum() -> None:
    subjects = [
        {"subject_name": "English", "grade": "Pass", "percentage": 55},
        {"subject_name": "Mathematics", "grade": "Merit", "percentage": 75},
        {"subject_name": "Physics", "grade": "Merit", "percentage": 74},
        {"subject_name": "Biology", "grade": "Merit", "percentage": 73},
    ]
    summary = evaluate_spfsc(subjects)

    assert summary["has_english"] is True
    assert summary["english_grade"] == "Pass"
    assert summary["meets_minimum_criteria"] is False


def test_scenario_d_results_not_received_wins_over_linked_assessment() -> None:
    outcome = resolve_overseas_eligibility(False, {"eligible_for_scholarship": True})

    assert outcome == {
        "eligible": False,
        "eligibility_status": "Pending Results",
        "reason": "Results not yet received",
    }


def test_overseas_missing_link_is_conditional() -> None:
    outcome = resolve_overseas_eligibility(True, None)

    assert outcome["eligibility_status"] == "Conditional"
    assert outcome["reason"] == "Assessment pending review"
    assert "eligibility_checked" not in outcome


def test_overseas_linked_assessment_decides() -> None:
    checked_at = datetime(2024, 12, 1, tzinfo=timezone.utc)
    eligible = resolve_overseas_eligibility(True, {"eligible_for_scholarship": True}, checked_at)
    not_eligible = resolve_overseas_eligibility(True, {"eligible_for_scholarship": False, "meets_minimum_criteria": True})
    fallback = resolve_overseas_eligibility(True, {"meets_minimum_criteria": True})

    assert eligible["eligibility_status"] == "Eligible"
    assert eligible["eligibility_checked"] is True
    assert eligible["eligibility_check_date"] == checked_at
    assert not_eligible["eligibility_status"] == "Not Eligible"
    assert fallback["eligible"] is True


def test_linked_assessment_from_fields() -> None:
    assessment_id = uuid.uuid4()

    assert LinkedAssessment.from_fields("SPFSC", str(assessment_id)) == LinkedAssessment("SPFSC", assessment_id)
    assert LinkedAssessment.from_fields(None, assessment_id) is None
    assert LinkedAssessment.from_fields("DAEU", None) is None
    assert LinkedAssessment.from_fields("DAEU", "not-a-uuid") is None


def test_overseas_completeness_lists_missing_items() -> None:
    application = {
        "personal_details": {"first_name": "Jean", "last_name": "Tari", "date_of_birth": "2006-03-02"},
        "contact_details": {"email": "jean@example.com"},
        "current_study": {"year_level": "Year 13", "study_country": "Fiji", "institution_name": "Suva Grammar"},
        "examination_info": {"examination_body": "EQAP", "examination_type": "SPFSC", "exam_year": 2024, "subjects_enrolled": ["English"]},
        "documents": [{"document_type": "Information Form"}],
    }
    result = check_overseas_completeness(application)

    assert result == {"is_complete": False, "missing_items": ["Phone Number", "Enrollment Certificate"]}
