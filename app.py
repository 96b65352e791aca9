from __future__ import annotations

import logging
import os
import uuid
from typing import Any

import pandas as pd
import streamlit as st
from sqlalchemy import select

import services
from auth import ADMINISTRATOR, ASSESSMENT_EDITORS, ASSESSMENT_REVIEWERS, Actor, authenticate_user, get_user_by_id
from db import db_session, init_schema
from errors import EligibilityError
from logic import ASSESSMENT_TYPES, STUDENT_TRACKS
from models import OverseasStudent, User
from seed import import_grade_records, load_grades_from_csv, seed_all
from ui import (
    inject_console_css,
    render_eligibility_badge,
    render_error,
    render_requirement_checklist,
    t,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

st.set_page_config(page_title="NSTB Eligibility", layout="wide")


@st.cache_resource
def bootstrap() -> bool:
    init_schema()
    with db_session() as db:
        seed_all(db)
    logger.info("Schema ready and demo data seeded")
    return True


def get_current_actor() -> Actor | None:
    auth_payload = st.session_state.get("auth_user")
    if not auth_payload:
        return None
    with db_session() as db:
        user = get_user_by_id(db, auth_payload["id"])
        if not user:
            st.session_state.pop("auth_user", None)
            return None
        return Actor.from_user(user)


def render_login() -> Actor | None:
    actor = get_current_actor()
    if actor and actor.role in ASSESSMENT_EDITORS:
        st.sidebar.success(f"Logged in as {st.session_state['auth_user']['email']} ({actor.role})")
        if st.sidebar.button("Logout"):
            st.session_state.pop("auth_user", None)
            st.rerun()
        return actor

    st.sidebar.subheader("Staff Login")
    with st.sidebar.form("staff_login"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Login")

    if submitted:
        with db_session() as db:
            found = authenticate_user(db, email, password)
            if not found or found.role not in ASSESSMENT_EDITORS:
                st.sidebar.error("Invalid credentials or role")
                logger.warning("Failed staff login for %s", email)
            else:
                st.session_state["auth_user"] = {"id": str(found.id), "role": found.role, "email": found.email}
                st.rerun()
    return None


def _student_options() -> dict[str, uuid.UUID]:
    with db_session() as db:
        students = db.scalars(select(User).where(User.role == "student").order_by(User.student_number)).all()
        return {f"{s.student_number} - {s.first_name} {s.last_name}": s.id for s in students}


def _assessment_frame(records: list[dict[str, Any]]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "assessment_id": str(r["id"]),
                "student_id": str(r["student_id"]),
                "year": r["academic_year"],
                "type": r["assessment_type"],
                "track": r["student_track"],
                "weighted_avg": round((r["overall_performance"] or {}).get("weighted_average") or 0.0, 2),
                "french": r["french_score"],
                "maths": r["mathematics_score"],
                "exceptional": r["exceptional_circumstances"]["has_exceptional_case"],
                "nstb": r["exceptional_circumstances"]["nstb_approval"],
                "priority": r["advanced_programme"]["is_priority"],
                "eligible": r["assessment_results"]["eligible_for_scholarship"],
            }
            for r in records
        ]
    )


def page_assessments(actor: Actor, language: str) -> None:
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        year = st.text_input("Academic year", value="")
    with col2:
        assessment_type = st.selectbox("Type", ["All", *ASSESSMENT_TYPES])
    with col3:
        track = st.selectbox("Track", ["All", *STUDENT_TRACKS])
    with col4:
        min_average = st.number_input("Minimum average", min_value=0.0, max_value=20.0, value=0.0, step=0.5)
    eligible_only = st.checkbox("Eligible only")

    criteria = {
        "academic_year": year or None,
        "assessment_type": None if assessment_type == "All" else assessment_type,
        "student_track": None if track == "All" else track,
        "min_average": min_average or None,
        "eligible_only": eligible_only,
    }
    try:
        with db_session() as db:
            records = services.find_assessments(db, actor, criteria)
            stats = services.assessment_statistics(db, actor, year or None, criteria["assessment_type"])
    except EligibilityError as exc:
        render_error(exc)
        return

    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Assessments", stats["total"])
    m2.metric("Eligible", stats["eligible"])
    m3.metric("Priority", stats["priority_students"]["total"])
    m4.metric("Pending NSTB", stats["exceptional_cases"]["pending"])

    if not records:
        st.info(t(language, "no_records"))
    else:
        st.dataframe(_assessment_frame(records), use_container_width=True)
        selected = st.selectbox("Inspect assessment", [str(r["id"]) for r in records])
        record = next(r for r in records if str(r["id"]) == selected)
        render_eligibility_badge(record, language)
        render_requirement_checklist(record, language)

    st.markdown("### Record Assessment")
    students = _student_options()
    with st.form("create_assessment"):
        student_label = st.selectbox("Student", list(students))
        new_year = st.text_input("Academic year", value="2024", key="new_assessment_year")
        new_type = st.selectbox("Assessment type", ASSESSMENT_TYPES, key="new_assessment_type")
        new_track = st.selectbox("Student track", STUDENT_TRACKS, key="new_assessment_track")
        subjects = st.data_editor(
            pd.DataFrame(
                [
                    {"subject_name": "Français", "score": 10.0, "coefficient": 1.0},
                    {"subject_name": "Mathématiques", "score": 10.0, "coefficient": 1.0},
                ]
            ),
            num_rows="dynamic",
            key="new_assessment_subjects",
        )
        justification = st.text_area("Justification (exceptional cases)")
        submitted = st.form_submit_button("Save assessment")

    if submitted and student_label:
        payload = {
            "student_id": students[student_label],
            "academic_year": new_year,
            "assessment_type": new_type,
            "student_track": new_track,
            "subjects_enrolled": subjects.dropna(subset=["subject_name", "score"]).to_dict("records"),
            "justification": justification or None,
        }
        try:
            with db_session() as db:
                services.create_assessment(db, actor, payload)
        except EligibilityError as exc:
            render_error(exc)
        else:
            st.success("Assessment saved.")
            st.rerun()


def page_priority(actor: Actor, language: str) -> None:
    year = st.text_input("Academic year", value="", key="priority_year")
    try:
        with db_session() as db:
            records = services.get_priority_students(db, actor, year or None)
    except EligibilityError as exc:
        render_error(exc)
        return
    if not records:
        st.info(t(language, "no_records"))
        return
    st.dataframe(_assessment_frame(records), use_container_width=True)


def page_review_queue(actor: Actor, language: str) -> None:
    status = st.selectbox("NSTB status", ["Pending", "Approved", "Rejected"])
    try:
        with db_session() as db:
            records = services.get_exceptional_cases(db, actor, status)
    except EligibilityError as exc:
        render_error(exc)
        return
    if not records:
        st.info(t(language, "no_records"))
        return

    st.dataframe(_assessment_frame(records), use_container_width=True)
    if status != "Pending" or actor.role != ADMINISTRATOR:
        return

    selected = st.selectbox("Case", [str(r["id"]) for r in records], key="review_case")
    record = next(r for r in records if str(r["id"]) == selected)
    st.caption(record["exceptional_circumstances"].get("justification") or "No justification supplied.")
    with st.form("review_case_form"):
        decision = st.radio("Decision", ["Approved", "Rejected"], horizontal=True)
        notes = st.text_area("Notes")
        submitted = st.form_submit_button("Record decision")
    if submitted:
        try:
            with db_session() as db:
                services.review_exceptional_case(db, actor, selected, decision, notes or None)
        except EligibilityError as exc:
            render_error(exc)
        else:
            st.success(f"Case {decision.lower()}.")
            st.rerun()


def page_overseas(actor: Actor, language: str) -> None:
    with db_session() as db:
        applications = db.scalars(select(OverseasStudent).order_by(OverseasStudent.created_at.desc())).all()
    if not applications:
        st.info(t(language, "no_records"))
        return

    st.dataframe(
        pd.DataFrame(
            [
                {
                    "application_id": str(a.id),
                    "student": f"{a.personal_details.get('first_name', '')} {a.personal_details.get('last_name', '')}",
                    "year": a.academic_year,
                    "results_received": a.results_received,
                    "linked": a.linked_assessment_type,
                    "status": a.eligibility_status,
                    "complete": a.is_complete,
                    "missing": ", ".join(a.missing_items or []),
                }
                for a in applications
            ]
        ),
        use_container_width=True,
    )
    selected = st.selectbox("Application", [str(a.id) for a in applications])
    if actor.role in ASSESSMENT_REVIEWERS and st.button("Assess eligibility"):
        try:
            with db_session() as db:
                outcome = services.assess_overseas_eligibility(db, actor, selected)
        except EligibilityError as exc:
            render_error(exc)
        else:
            st.success(f"{outcome['eligibility_status']}: {outcome.get('reason', 'linked assessment evaluated')}")


def page_scholarships(actor: Actor, language: str) -> None:
    with db_session() as db:
        scholarships = services.list_scholarships(db)
    st.dataframe(
        pd.DataFrame(
            [
                {
                    "scholarship": s.scholarship_name,
                    "provider": s.provider_name,
                    "level": s.level,
                    "min_gpa": s.minimum_gpa,
                    "min_percentage": s.minimum_percentage,
                    "open": s.is_open,
                    "active": s.is_active,
                }
                for s in scholarships
            ]
        ),
        use_container_width=True,
    )

    students = _student_options()
    student_label = st.selectbox("Student", list(students), key="scholarship_student")
    if student_label and st.button("Find eligible scholarships"):
        try:
            with db_session() as db:
                matches = services.get_eligible_scholarships(db, actor, students[student_label])
                checks = [services.check_scholarship_eligibility(db, actor, s.id, students[student_label]) for s in scholarships]
        except EligibilityError as exc:
            render_error(exc)
            return
        st.write(f"{len(matches)} open scholarship(s) matched.")
        st.dataframe(
            pd.DataFrame(
                [
                    {"scholarship": c["scholarship_name"], "eligible": c["eligible"], "reasons": "; ".join(c["reasons"])}
                    for c in checks
                ]
            ),
            use_container_width=True,
        )

    if actor.role != ADMINISTRATOR:
        return
    st.markdown("### Import Grade History")
    file = st.file_uploader("Grade history CSV", type=["csv"], key="grade_csv_file")
    if file is not None:
        try:
            rows = load_grades_from_csv(file.getvalue().decode("utf-8"))
        except ValueError as exc:
            st.error(f"CSV validation failed: {exc}")
            return
        st.dataframe(pd.DataFrame(rows).head(20), use_container_width=True)
        if st.button("Import grade records"):
            with db_session() as db:
                result = import_grade_records(db, rows, actor_user_id=str(actor.id), source="admin_csv")
            st.success(
                f"Import complete. Inserted: {result['inserted']}, Updated: {result['updated']}, Skipped: {result['skipped']}"
            )


def main() -> None:
    bootstrap()
    inject_console_css()
    language = st.sidebar.selectbox("Language / Langue", ["en", "fr"])
    st.title(t(language, "app_title"))
    st.caption(t(language, "subtitle"))

    actor = render_login()
    if not actor:
        st.info(t(language, "login_required"))
        return

    pages = {
        t(language, "assessments"): page_assessments,
        t(language, "scholarships"): page_scholarships,
    }
    if actor.role in ASSESSMENT_REVIEWERS:
        pages[t(language, "priority")] = page_priority
        pages[t(language, "review_queue")] = page_review_queue
    pages[t(language, "overseas")] = page_overseas

    tabs = st.tabs(list(pages))
    for tab, render in zip(tabs, pages.values()):
        with tab:
            render(actor, language)


if __name__ == "__main__":
    main()
