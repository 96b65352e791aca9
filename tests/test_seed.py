import pytest
from sqlalchemy import func, select

from logic import match_scholarship_criteria
from models import Assessment, GradeRecord, OverseasStudent, ScholarshipCriteria
from seed import import_grade_records, load_grades_from_csv, seed_all, validate_csv_columns

CSV_HEADER = "student_number,subject_code,subject_name,academic_year,term,percentage,grade_point"


def test_validate_csv_columns_reports_missing() -> None:
    valid, missing = validate_csv_columns(["student_number", "subject_code"])

    assert valid is False
    assert "percentage" in missing


def test_load_grades_from_csv_parses_blank_values() -> None:
    rows = load_grades_from_csv(f"{CSV_HEADER}\nS1,MAT301,Mathématiques,2024,,71.5,\n")

    assert rows == [
        {
            "student_number": "S1",
            "subject_code": "MAT301",
            "subject_name": "Mathématiques",
            "academic_year": "2024",
            "term": "Annual",
            "percentage": 71.5,
            "grade_point": None,
            "letter_grade": None,
        }
    ]


def test_load_grades_from_csv_rejects_missing_columns() -> None:
    with pytest.raises(ValueError):
        load_grades_from_csv("student_number,subject_code\nS1,MAT301\n")


def test_import_grade_records_upserts_and_skips_unknown(db, student) -> None:
    rows = load_grades_from_csv(f"{CSV_HEADER}\nS1,MAT301,Maths,2024,Annual,60,2.4\nS9,MAT301,Maths,2024,Annual,80,3.5\n")
    first = import_grade_records(db, rows)

    rows[0]["percentage"] = 65
    second = import_grade_records(db, rows[:1])

    assert first == {"inserted": 1, "updated": 0, "skipped": 1}
    assert second == {"inserted": 0, "updated": 1, "skipped": 0}
    assert db.scalar(select(GradeRecord.percentage)) == 65


def test_seed_all_is_idempotent(db) -> None:
    seed_all(db)
    seed_all(db)

    assert db.scalar(select(func.count()).select_from(ScholarshipCriteria)) == 3
    assert db.scalar(select(func.count()).select_from(Assessment)) == 4
    assert db.scalar(select(func.count()).select_from(GradeRecord)) == 10
    linked = db.scalar(select(OverseasStudent).where(OverseasStudent.linked_assessment_type == "SPFSC"))
    assert linked.results_received is True


def test_import_grade_records_merges_repeated_rows_without_autoflush(db, student) -> None:
    db.autoflush = False
    rows = load_grades_from_csv(
        f"{CSV_HEADER}\n"
        "S1,MATH,Maths,2024,T1,40,2.0\n"
        "S1,MATH,Maths,2024,T1,40,2.0\n"
        "S1,ENG,English,2024,T1,90,3.8\n"
    )

    result = import_grade_records(db, rows)
    db.flush()

    assert result == {"inserted": 2, "updated": 1, "skipped": 0}
    grades = db.scalars(select(GradeRecord).where(GradeRecord.student_id == student.id)).all()
    assert sorted(g.subject_code for g in grades) == ["ENG", "MATH"]
    assert match_scholarship_criteria({"minimum_percentage": 65}, grades) == {"eligible": True, "reasons": []}
