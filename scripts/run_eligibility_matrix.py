from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from logic import apply_review_decision, evaluate_assessment, resolve_overseas_eligibility


def _subject(name: str, score: float, coefficient: float = 1) -> dict[str, Any]:
    return {"subject_name": name, "score": score, "coefficient": coefficient}


def scenario_inputs() -> list[dict[str, Any]]:
    return [
        {
            "name": "A: Science track, every requirement met",
            "assessment_type": "DAEU",
            "student_track": "Science",
            "subjects_enrolled": [_subject("French", 12), _subject("Mathematics", 15), _subject("History", 13)],
        },
        {
            "name": "B: strong average, French below 10",
            "assessment_type": "DAEU",
            "student_track": "Science",
            "subjects_enrolled": [_subject("French", 8), _subject("Mathematics", 18, 2), _subject("Physics", 16)],
        },
        {
            "name": "B: same record after NSTB approval",
            "assessment_type": "DAEU",
            "student_track": "Science",
            "subjects_enrolled": [_subject("French", 8), _subject("Mathematics", 18, 2), _subject("Physics", 16)],
            "approve": True,
        },
        {
            "name": "C: BTS admission meeting the criteria",
            "assessment_type": "BTS",
            "student_track": "Technical",
            "subjects_enrolled": [_subject("Français", 13), _subject("Économie", 14)],
        },
        {
            "name": "C: DAEU with identical scores",
            "assessment_type": "DAEU",
            "student_track": "Technical",
            "subjects_enrolled": [_subject("Français", 13), _subject("Économie", 14)],
        },
    ]


def run_scenario(scenario: dict[str, Any]) -> dict[str, Any]:
    record = evaluate_assessment({k: v for k, v in scenario.items() if k not in {"name", "approve"}})
    if scenario.get("approve"):
        record["exceptional_circumstances"] = apply_review_decision(
            record["exceptional_circumstances"], "Approved", reviewer_id="matrix"
        )
        record = evaluate_assessment(record)
    return record


def main() -> None:
    for scenario in scenario_inputs():
        record = run_scenario(scenario)
        results = record["assessment_results"]
        performance = record["overall_performance"] or {}
        circumstances = record["exceptional_circumstances"]
        programme = record["advanced_programme"]

        print(f"\n=== {scenario['name']} ===")
        print(
            f"Weighted average: {performance.get('weighted_average', 0.0):.2f} "
            f"(simple {performance.get('average_score', 0.0):.2f})"
        )
        print(
            "Requirements: average={meets_average_requirement} french={meets_french_requirement} "
            "math={meets_math_requirement}".format(**results)
        )
        print(f"Exceptional: {circumstances['has_exceptional_case']} (NSTB {circumstances['nstb_approval']})")
        print(f"Priority programme: {programme['is_priority']} ({programme['programme_type']})")
        print("Outcome:", "ELIGIBLE" if results["eligible_for_scholarship"] else "NOT ELIGIBLE")

    eligible_link = run_scenario(scenario_inputs()[0])["assessment_results"]
    outcome = resolve_overseas_eligibility(False, eligible_link)
    print("\n=== D: overseas student, results not received ===")
    print(f"Status: {outcome['eligibility_status']} ({outcome['reason']})")


if __name__ == "__main__":
    main()
