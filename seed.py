from __future__ import annotations

import csv
import logging
import os
import uuid
from pathlib import Path
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

import services
from auth import ADMINISTRATOR, EXAMINER, STUDENT, Actor, hash_password
from models import Assessment, AuditLog, GradeRecord, OverseasStudent, ScholarshipCriteria, User

logger = logging.getLogger(__name__)

REQUIRED_GRADE_COLUMNS = {
    "student_number",
    "subject_code",
    "subject_name",
    "academic_year",
    "term",
    "percentage",
    "grade_point",
}


def _parse_float(value: str) -> float | None:
    value = (value or "").strip()
    return float(value) if value else None


def validate_csv_columns(columns: list[str]) -> tuple[bool, list[str]]:
    missing = sorted(REQUIRED_GRADE_COLUMNS - set(columns))
    return len(missing) == 0, missing


def load_grades_from_csv(csv_text: str) -> list[dict[str, Any]]:
    reader = csv.DictReader(csv_text.splitlines())
    valid, missing = validate_csv_columns(reader.fieldnames or [])
    if not valid:
        raise ValueError(f"Missing required columns: {missing}")

    rows: list[dict[str, Any]] = []
    for row in reader:
        rows.append(
            {
                "student_number": row["student_number"].strip(),
                "subject_code": row["subject_code"].strip(),
                "subject_name": row["subject_name"].strip(),
                "academic_year": row["academic_year"].strip(),
                "term": (row["term"] or "").strip() or "Annual",
                "percentage": _parse_float(row["percentage"]),
                "grade_point": _parse_float(row["grade_point"]),
                "letter_grade": (row.get("letter_grade") or "").strip() or None,
            }
        )
    return rows


def import_grade_records(
    db: Session,
    rows: list[dict[str, Any]],
    actor_user_id: str | None = None,
    source: str = "csv",
) -> dict[str, int]:
    """Upsert grade history keyed by student, subject, year and term."""
    numbers = sorted({row["student_number"] for row in rows})
    students = {u.student_number: u for u in db.scalars(select(User).where(User.student_number.in_(numbers))).all()}

    inserted = 0
    updated = 0
    skipped: list[str] = []
    # Rows added in this batch stay invisible to select() until a flush.
    added: dict[tuple[uuid.UUID, str, str, str], GradeRecord] = {}
    for row in rows:
        student = students.get(row["student_number"])
        if student is None:
            skipped.append(row["student_number"])
            continue
        values = {k: v for k, v in row.items() if k != "student_number"}
        key = (student.id, row["subject_code"], row["academic_year"], row["term"])
        existing = added.get(key) or db.scalar(
            select(GradeRecord).where(
                GradeRecord.student_id == student.id,
                GradeRecord.subject_code == row["subject_code"],
                GradeRecord.academic_year == row["academic_year"],
                GradeRecord.term == row["term"],
            )
        )
        if existing:
            for field, value in values.items():
                setattr(existing, field, value)
            updated += 1
        else:
            record = GradeRecord(student_id=student.id, **values)
            db.add(record)
            added[key] = record
            inserted += 1

    if skipped:
        logger.warning("Skipped grade rows for unknown student numbers: %s", ", ".join(sorted(set(skipped))))
    db.add(
        AuditLog(
            user_id=uuid.UUID(actor_user_id) if actor_user_id else None,
            action="grade_records_import",
            details_json={"source": source, "inserted": inserted, "updated": updated, "skipped": len(skipped)},
        )
    )
    return {"inserted": inserted, "updated": updated, "skipped": len(skipped)}


def _ensure_user(db: Session, email: str, role: str, password: str | None = None, **extra: Any) -> User:
    user = db.scalar(select(User).where(User.email == email))
    if not user:
        user = User(
            role=role,
            email=email,
            password_hash=hash_password(password) if password else None,
            **extra,
        )
        db.add(user)
        db.flush()
    return user


def seed_default_users(db: Session) -> dict[str, User]:
    admin_email = os.getenv("NSTB_ADMIN_EMAIL", "admin@nstb.local")
    admin_pass = os.getenv("NSTB_ADMIN_PASSWORD", "Admin123!")
    examiner_email = os.getenv("NSTB_EXAMINER_EMAIL", "examiner@nstb.local")
    examiner_pass = os.getenv("NSTB_EXAMINER_PASSWORD", "Examiner123!")

    users = {
        "admin": _ensure_user(db, admin_email, ADMINISTRATOR, admin_pass, first_name="NSTB", last_name="Administrator"),
        "examiner": _ensure_user(db, examiner_email, EXAMINER, examiner_pass, first_name="NSTB", last_name="Examiner"),
    }
    for number, first, last in [
        ("VU-2024-001", "Marie", "Kalo"),
        ("VU-2024-002", "Jean", "Tari"),
        ("VU-2024-003", "Anna", "Molisa"),
        ("VU-2024-004", "Paul", "Natuman"),
    ]:
        users[number] = _ensure_user(
            db,
            f"{number.lower()}@students.nstb.local",
            STUDENT,
            first_name=first,
            last_name=last,
            student_number=number,
        )
    return users


def seed_scholarships(db: Session, admin: User) -> None:
    scholarships = [
        {
            "scholarship_name": "Vanuatu Government Tertiary Scholarship",
            "provider_name": "National Scholarship and Training Board",
            "provider_type": "Government",
            "scholarship_type": "Merit-Based",
            "level": "Tertiary",
            "value_json": {"amount": 1500000, "currency": "VUV", "coverage": ["Tuition", "Living Allowance"]},
            "minimum_gpa": 2.5,
            "minimum_percentage": 60,
            "eligibility_criteria_json": {"citizenship": "Vanuatu", "age_range": {"min": 17, "max": 30}},
            "description": "Full tertiary award for Francophone and Anglophone graduates.",
        },
        {
            "scholarship_name": "Campus France Excellence Award",
            "provider_name": "Ambassade de France au Vanuatu",
            "provider_type": "International",
            "scholarship_type": "STEM",
            "level": "Undergraduate",
            "value_json": {"amount": 9000, "currency": "EUR", "coverage": ["Tuition", "Travel"]},
            "minimum_gpa": 3.2,
            "minimum_percentage": 75,
            "academic_extras_json": {"required_subjects": ["Mathématiques", "Français"]},
            "description": "Priority intake for BTS, DUT and CPGE admissions in France and New Caledonia.",
        },
        {
            "scholarship_name": "USP Pacific Vocational Grant",
            "provider_name": "University of the South Pacific",
            "provider_type": "University",
            "scholarship_type": "Need-Based",
            "level": "Vocational",
            "value_json": {"amount": 3000, "currency": "FJD"},
            "minimum_percentage": 50,
        },
    ]
    actor = Actor.from_user(admin)
    for payload in scholarships:
        exists = db.scalar(
            select(ScholarshipCriteria).where(ScholarshipCriteria.scholarship_name == payload["scholarship_name"])
        )
        if not exists:
            services.create_scholarship(db, actor, payload)


def seed_grade_history_if_empty(db: Session, sample_csv_path: str = "data/grade_history.sample.csv") -> dict[str, int]:
    total = db.scalar(select(func.count()).select_from(GradeRecord))
    if total and total > 0:
        return {"inserted": 0, "updated": 0, "skipped": 0}

    path = Path(sample_csv_path)
    csv_text = path.read_text(encoding="utf-8") if path.exists() else _default_grades_csv()
    return import_grade_records(db, load_grades_from_csv(csv_text), source="seed")


def seed_sample_assessments(db: Session, examiner: User, students: dict[str, User]) -> None:
    count = db.scalar(select(func.count()).select_from(Assessment)) or 0
    if count > 0:
        return

    actor = Actor.from_user(examiner)
    samples = [
        (
            "VU-2024-001",
            "DAEU",
            "Science",
            [("Français", 12, 1), ("Mathématiques", 15, 1), ("Histoire-Géographie", 13, 1)],
            None,
        ),
        (
            "VU-2024-002",
            "Baccalaureat",
            "Science",
            [("Français", 8, 1), ("Mathématiques", 18, 2), ("Physique-Chimie", 16, 1)],
            "Studied in English-medium school until Year 10.",
        ),
        (
            "VU-2024-003",
            "BTS",
            "Technical",
            [("Français", 13, 2), ("Gestion", 14, 3), ("Anglais", 12, 1)],
            None,
        ),
        (
            "VU-2024-004",
            "CPGE",
            "Science",
            [("Français", 11, 1), ("Mathématiques", 9, 3), ("Physique", 12, 2)],
            None,
        ),
    ]
    for number, assessment_type, track, subjects, justification in samples:
        services.create_assessment(
            db,
            actor,
            {
                "student_id": students[number].id,
                "academic_year": "2024",
                "assessment_type": assessment_type,
                "student_track": track,
                "subjects_enrolled": [
                    {"subject_name": name, "score": score, "coefficient": coefficient}
                    for name, score, coefficient in subjects
                ],
                "justification": justification,
            },
        )


def seed_overseas_students(db: Session, examiner: User, students: dict[str, User]) -> None:
    count = db.scalar(select(func.count()).select_from(OverseasStudent)) or 0
    if count > 0:
        return

    actor = Actor.from_user(examiner)
    for number, country, institution in [
        ("VU-2024-003", "Fiji", "Suva Grammar School"),
        ("VU-2024-004", "New Zealand", "Auckland Grammar School"),
    ]:
        student = students[number]
        application = services.create_overseas_student(
            db,
            actor,
            {
                "student_id": student.id,
                "academic_year": "2024",
                "personal_details": {
                    "first_name": student.first_name,
                    "last_name": student.last_name,
                    "date_of_birth": "2006-04-12",
                },
                "contact_details": {"email": student.email, "phone": "+678 555 0100"},
                "current_study": {"year_level": "Year 13", "study_country": country, "institution_name": institution},
                "examination_info": {
                    "examination_body": "EQAP",
                    "examination_type": "SPFSC",
                    "exam_year": 2024,
                    "subjects_enrolled": ["English", "Mathematics", "Physics", "Chemistry"],
                },
                "documents": [{"document_type": "Information Form"}],
            },
        )
        if number != "VU-2024-003":
            continue
        spfsc = services.create_spfsc_assessment(
            db,
            actor,
            {
                "student_id": student.id,
                "academic_year": "2024",
                "certificate_number": "SPFSC-2024-0001",
                "subjects": [
                    {"subject_name": "English", "grade": "Distinction", "percentage": 86},
                    {"subject_name": "Mathematics", "grade": "Distinction", "percentage": 89},
                    {"subject_name": "Physics", "grade": "Merit", "percentage": 77},
                    {"subject_name": "Chemistry", "grade": "Pass", "percentage": 63},
                ],
            },
        )
        services.record_overseas_results(
            db,
            actor,
            application.id,
            {"linked_assessment_type": "SPFSC", "linked_assessment_id": spfsc.id, "certificate_number": "SPFSC-2024-0001"},
        )


def seed_all(db: Session) -> None:
    users = seed_default_users(db)
    seed_scholarships(db, users["admin"])
    result = seed_grade_history_if_empty(db)
    seed_sample_assessments(db, users["examiner"], users)
    seed_overseas_students(db, users["examiner"], users)
    logger.info("Seed complete: %s grade rows inserted", result["inserted"])


def _default_grades_csv() -> str:
    return """student_number,subject_code,subject_name,academic_year,term,percentage,grade_point,letter_grade
VU-2024-001,FRA301,Français,2024,Annual,68,2.9,B
VU-2024-001,MAT301,Mathématiques,2024,Annual,78,3.4,B+
VU-2024-001,HIS301,Histoire-Géographie,2024,Annual,70,3.0,B
VU-2024-002,FRA301,Français,2024,Annual,45,1.8,D
VU-2024-002,MAT301,Mathématiques,2024,Annual,92,4.0,A
VU-2024-002,PHY301,Physique-Chimie,2024,Annual,84,3.7,A-
VU-2024-003,FRA301,Français,2024,Annual,66,2.7,B-
VU-2024-003,GES301,Gestion,2024,Annual,72,3.1,B
VU-2024-004,MAT301,Mathématiques,2024,Annual,48,1.9,D
VU-2024-004,PHY301,Physique,2024,Annual,61,2.4,C
"""
