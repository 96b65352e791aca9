from __future__ import annotations

from html import escape
from typing import Any

import streamlit as st

from errors import EligibilityError


I18N = {
    "en": {
        "app_title": "NSTB Scholarship Eligibility Console",
        "subtitle": "Francophone assessments, exceptional cases and overseas applications.",
        "language": "Language",
        "assessments": "Assessments",
        "priority": "Priority Students",
        "review_queue": "NSTB Review Queue",
        "overseas": "Overseas Students",
        "scholarships": "Scholarships",
        "eligible": "Eligible for scholarship",
        "not_eligible": "Not eligible",
        "pending_review": "Awaiting NSTB review",
        "meets_average": "Average of at least 12/20",
        "meets_french": "French of at least 10/20",
        "meets_math": "Mathematics of at least 10/20 (Science track)",
        "no_records": "No records match the current filters.",
        "login_required": "Staff login required.",
    },
    "fr": {
        "app_title": "Console d'éligibilité aux bourses NSTB",
        "subtitle": "Évaluations francophones, cas exceptionnels et candidatures à l'étranger.",
        "language": "Langue",
        "assessments": "Évaluations",
        "priority": "Étudiants prioritaires",
        "review_queue": "File d'examen NSTB",
        "overseas": "Étudiants à l'étranger",
        "scholarships": "Bourses",
        "eligible": "Éligible à une bourse",
        "not_eligible": "Non éligible",
        "pending_review": "En attente de l'avis NSTB",
        "meets_average": "Moyenne d'au moins 12/20",
        "meets_french": "Français d'au moins 10/20",
        "meets_math": "Mathématiques d'au moins 10/20 (filière scientifique)",
        "no_records": "Aucun dossier ne correspond aux filtres.",
        "login_required": "Connexion du personnel requise.",
    },
}


@st.cache_data
def get_i18n(language: str) -> dict[str, str]:
    return I18N.get(language, I18N["en"])


def t(language: str, key: str) -> str:
    return get_i18n(language).get(key, key)


def inject_console_css() -> None:
    st.markdown(
        """
        <style>
            .nstb-badge { display: inline-block; padding: 0.15rem 0.6rem; border-radius: 999px; font-weight: 600; }
            .nstb-badge.ok { background: #DCFCE7; color: #166534; }
            .nstb-badge.no { background: #FEE2E2; color: #991B1B; }
            .nstb-badge.wait { background: #FEF3C7; color: #92400E; }
            .nstb-meter-track { background: #E5E7EB; border-radius: 6px; height: 8px; }
            .nstb-meter-fill { background: #0D47A1; border-radius: 6px; height: 8px; }
            .nstb-meter-head { display: flex; justify-content: space-between; font-size: 0.85rem; }
        </style>
        """,
        unsafe_allow_html=True,
    )


def render_meter(label: str, pct: float, value_text: str | None = None) -> None:
    pct = max(0.0, min(1.0, pct))
    pct_text = value_text or f"{int(round(pct * 100))}%"
    st.markdown(
        f"""
        <div class="nstb-meter">
            <div class="nstb-meter-head">
                <span>{escape(label)}</span>
                <span>{escape(pct_text)}</span>
            </div>
            <div class="nstb-meter-track">
                <div class="nstb-meter-fill" style="width: {pct * 100:.1f}%;"></div>
            </div>
        </div>
        """,
        unsafe_allow_html=True,
    )


def render_eligibility_badge(record: dict[str, Any], language: str) -> None:
    results = record["assessment_results"]
    circumstances = record["exceptional_circumstances"]
    if results["eligible_for_scholarship"]:
        klass, label = "ok", t(language, "eligible")
    elif circumstances["nstb_approval"] == "Pending":
        klass, label = "wait", t(language, "pending_review")
    else:
        klass, label = "no", t(language, "not_eligible")
    st.markdown(f"<span class='nstb-badge {klass}'>{escape(label)}</span>", unsafe_allow_html=True)


def render_requirement_checklist(record: dict[str, Any], language: str) -> None:
    results = record["assessment_results"]
    performance = record.get("overall_performance") or {}
    render_meter(
        "Weighted average",
        (performance.get("weighted_average") or 0.0) / 20,
        f"{performance.get('weighted_average') or 0.0:.2f} / 20",
    )
    for key, label_key in [
        ("meets_average_requirement", "meets_average"),
        ("meets_french_requirement", "meets_french"),
        ("meets_math_requirement", "meets_math"),
    ]:
        mark = "✅" if results[key] else "❌"
        st.write(f"{mark} {t(language, label_key)}")


def render_error(exc: EligibilityError) -> None:
    if exc.kind == "unauthorized":
        st.warning(exc.message)
    else:
        st.error(exc.message)
    if exc.details:
        st.json(exc.details)
