import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple, Any

from report_components.base_component import ReportComponent
from utils.consts import (
    MISSING_PENALTY_WEIGHT, MISSING_PENALTY_CAP, DUPLICATE_PENALTY_WEIGHT, DUPLICATE_PENALTY_CAP,
    ERROR_PENALTY_WEIGHT, ERROR_PENALTY_CAP, RECONCILE_LOWER_TOLERANCE, RECONCILE_UPPER_TOLERANCE,
    CRITICAL_MISSING_PERCENTAGE, CRITICAL_DUPLICATE_PERCENTAGE
)


class QualityDimension(Enum):
    COMPLETENESS = "completeness"
    CONSISTENCY = "consistency"
    ACCURACY = "accuracy"
    UNIQUENESS = "uniqueness"
    VALIDITY = "validity"


@dataclass
class ScorePenalties:
    missing: float
    duplicates: float
    errors: float

    @property
    def total(self) -> float:
        return self.missing + self.duplicates + self.errors


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def score_penalties(missing_pct: float, duplicate_pct: float, error_pct: float) -> ScorePenalties:
    return ScorePenalties(
        missing=min(missing_pct * MISSING_PENALTY_WEIGHT, MISSING_PENALTY_CAP),
        duplicates=min(duplicate_pct * DUPLICATE_PENALTY_WEIGHT, DUPLICATE_PENALTY_CAP),
        errors=min(error_pct * ERROR_PENALTY_WEIGHT, ERROR_PENALTY_CAP)
    )


def baseline_score(missing_pct: float, duplicate_pct: float, error_pct: float) -> int:
    """Deterministic 0-100 score from local metrics only."""
    penalties = score_penalties(missing_pct, duplicate_pct, error_pct)
    return round_half_up(max(0.0, min(100.0, 100.0 - penalties.total)))


def score_window(baseline: int) -> Tuple[int, int]:
    return (
        max(0, baseline - RECONCILE_LOWER_TOLERANCE),
        min(100, baseline + RECONCILE_UPPER_TOLERANCE)
    )


def reconcile_score(candidate: float, baseline: int) -> int:
    """Clamp an externally supplied score into the window around the baseline."""
    low, high = score_window(baseline)
    return round_half_up(max(low, min(high, candidate)))


class CompositeQualityScoreComponent(ReportComponent):
    """
    Turns the collected quality metrics into the baseline score.

    Three capped penalties are subtracted from 100: missing cells, duplicate rows
    and error cells. Alongside the score the component lists quality issues and
    the recommendations that follow from them.
    """

    def analyze(self) -> None:
        metrics = self.context.shared_artifacts.get("quality_metrics")
        if metrics is None:
            raise RuntimeError("quality metrics must be collected before scoring")

        if metrics.total_cells == 0:
            self.result = {
                "skipped": True,
                "reason": "Dataset has no cells to score",
                "baseline_score": 0,
                "score_window": score_window(0),
                "penalties": ScorePenalties(0.0, 0.0, 0.0),
                "quality_issues": [],
                "recommendations": []
            }
            self.context.shared_artifacts["baseline_score"] = 0
            return

        penalties = score_penalties(
            metrics.missing_percentage, metrics.duplicate_percentage, metrics.error_percentage
        )
        baseline = baseline_score(
            metrics.missing_percentage, metrics.duplicate_percentage, metrics.error_percentage
        )
        issues = self._identify_quality_issues(metrics)

        self.result = {
            "skipped": False,
            "baseline_score": baseline,
            "score_window": score_window(baseline),
            "penalties": penalties,
            "quality_issues": issues,
            "recommendations": self._generate_recommendations(issues)
        }
        self.context.shared_artifacts["baseline_score"] = baseline

    @staticmethod
    def _identify_quality_issues(metrics) -> List[Dict[str, Any]]:
        issues = []

        missing_pct = metrics.missing_percentage
        if missing_pct > 0:
            issues.append({
                "dimension": QualityDimension.COMPLETENESS.value,
                "severity": "critical" if missing_pct > CRITICAL_MISSING_PERCENTAGE else "warning",
                "description": f"Missing values: {metrics.total_missing_cells} cells ({missing_pct:.1f}%)",
                "metric": missing_pct
            })

        duplicate_pct = metrics.duplicate_percentage
        if duplicate_pct > 0:
            issues.append({
                "dimension": QualityDimension.UNIQUENESS.value,
                "severity": "critical" if duplicate_pct > CRITICAL_DUPLICATE_PERCENTAGE else "warning",
                "description": f"Duplicate records: {metrics.duplicate_rows} rows ({duplicate_pct:.1f}%)",
                "metric": duplicate_pct
            })

        if metrics.total_error_cells > 0:
            issues.append({
                "dimension": QualityDimension.VALIDITY.value,
                "severity": "warning",
                "description": f"Error values: {metrics.total_error_cells} cells ({metrics.error_percentage:.1f}%)",
                "metric": metrics.error_percentage
            })

        inconsistent = [col for col, stats in metrics.columns.items() if stats.format_issues > 0]
        if inconsistent:
            issues.append({
                "dimension": QualityDimension.CONSISTENCY.value,
                "severity": "warning",
                "description": f"Mixed value formats in: {', '.join(inconsistent)}",
                "metric": len(inconsistent)
            })

        if metrics.empty_rows > 0:
            issues.append({
                "dimension": QualityDimension.COMPLETENESS.value,
                "severity": "suggestion",
                "description": f"Empty rows: {metrics.empty_rows}",
                "metric": metrics.empty_rows
            })

        if metrics.total_outliers > 0:
            issues.append({
                "dimension": QualityDimension.ACCURACY.value,
                "severity": "suggestion",
                "description": f"Numeric outliers: {metrics.total_outliers} values outside the IQR fences",
                "metric": metrics.total_outliers
            })

        severity_order = {"critical": 0, "warning": 1, "suggestion": 2}
        issues.sort(key=lambda x: severity_order.get(x["severity"], 3))
        return issues

    @staticmethod
    def _generate_recommendations(issues: List[Dict[str, Any]]) -> List[str]:
        recommendations = []

        for issue in issues:
            dim = issue["dimension"]

            if dim == QualityDimension.COMPLETENESS.value:
                if issue["description"].startswith("Empty rows"):
                    recommendations.append("Drop rows that contain no values")
                else:
                    recommendations.append(
                        "Impute or backfill missing values, starting with the most incomplete columns"
                    )
            elif dim == QualityDimension.UNIQUENESS.value:
                recommendations.append(
                    "Review and remove duplicate records; investigate the data collection process"
                )
            elif dim == QualityDimension.VALIDITY.value:
                recommendations.append("Trace error values such as #DIV/0! or inf back to their formulas and fix them")
            elif dim == QualityDimension.CONSISTENCY.value:
                recommendations.append("Standardise each column on a single value format")
            elif dim == QualityDimension.ACCURACY.value:
                recommendations.append("Check flagged outliers for entry errors before removing them")

        return list(dict.fromkeys(recommendations))

    def summarize(self) -> dict:
        result = self._require_result()

        if result["skipped"]:
            return {
                "skipped": True,
                "reason": result["reason"],
                "baseline_score": 0
            }

        return {
            "baseline_score": result["baseline_score"],
            "score_window": result["score_window"],
            "penalties": {
                "missing": round(result["penalties"].missing, 2),
                "duplicates": round(result["penalties"].duplicates, 2),
                "errors": round(result["penalties"].errors, 2)
            },
            "n_quality_issues": len(result["quality_issues"]),
            "critical_issues": len([i for i in result["quality_issues"] if i["severity"] == "critical"]),
            "top_recommendations": result["recommendations"][:3]
        }
