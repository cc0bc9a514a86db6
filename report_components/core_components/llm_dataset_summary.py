import logging
import re
from typing import Dict, Any, List, Optional

from report_components.base_component import ReportComponent, AnalysisContext
from report_components.core_components.composite_quality_score import reconcile_score, score_window
from utils.consts import (
    DEFAULT_LLM_TIMEOUT, NARRATIVE_SAMPLE_ROWS, CRITICAL_COLUMN_MISSING_RATIO
)
from utils.llm_service import LLMServiceError, LLMResponseError, NarrativeRequest

logger = logging.getLogger(__name__)

BULLET = "•"

# (key, marker, title) in the order the sections appear in a narrative.
NARRATIVE_SECTIONS = (
    ("analysis", "📊", "DATA QUALITY ANALYSIS"),
    ("issues", "⚠️", "ISSUES IDENTIFIED"),
    ("recommendations", "💡", "RECOMMENDATIONS"),
    ("actions", "🔧", "IMMEDIATE ACTIONS"),
)


def _header_pattern(title: str) -> re.Pattern:
    # A header fills its own line; markers, markdown emphasis and a trailing colon are optional.
    words = r"[ \t]+".join(re.escape(word) for word in title.split())
    return re.compile(rf"^[^\w\n]*{words}[ \t:*\r]*$", re.IGNORECASE | re.MULTILINE)


_SECTION_HEADERS = [(key, _header_pattern(title)) for key, _, title in NARRATIVE_SECTIONS]


def parse_narrative_sections(text: Optional[str]) -> Dict[str, List[str]]:
    """
    Split a narrative into its marked sections and their bullet points.

    Sections that are absent are left out of the result, so an empty dict means
    the text follows none of the expected structure.
    """
    if not text:
        return {}

    headers = []
    for key, pattern in _SECTION_HEADERS:
        match = pattern.search(text)
        if match:
            headers.append((match.start(), match.end(), key))
    headers.sort()

    sections = {}
    for i, (_, body_start, key) in enumerate(headers):
        body_end = headers[i + 1][0] if i + 1 < len(headers) else len(text)
        points = [point.strip() for point in text[body_start:body_end].split(BULLET)]
        sections[key] = [point for point in points if point]
    return sections


def build_narrative_request(metrics, dataset, baseline: int, sample_rows: int) -> NarrativeRequest:
    return NarrativeRequest(
        total_rows=metrics.total_rows,
        total_columns=metrics.total_columns,
        completeness=metrics.completeness,
        duplicate_rows=metrics.duplicate_rows,
        data_types=metrics.data_types,
        missing_values=metrics.missing_values,
        error_values=metrics.error_values,
        sample_rows=dataset.head(sample_rows),
        baseline_score=baseline,
        score_range=score_window(baseline),
        missing_percentage=metrics.missing_percentage,
        duplicate_percentage=metrics.duplicate_percentage,
        error_percentage=metrics.error_percentage
    )


def local_narrative(metrics) -> str:
    """Narrative written from the computed metrics alone, used whenever the LLM is not."""
    rows = metrics.total_rows
    dups = metrics.duplicate_rows
    critical_columns = [
        col for col, count in metrics.missing_values.items()
        if count > rows * CRITICAL_COLUMN_MISSING_RATIO
    ]
    columns_with_missing = sum(1 for count in metrics.missing_values.values() if count > 0)
    columns_with_errors = sum(1 for count in metrics.error_values.values() if count > 0)
    inconsistent = [col for col, stats in metrics.columns.items() if stats.format_issues > 0]
    critical = ", ".join(critical_columns)
    types = ", ".join(f"{col}: {dtype}" for col, dtype in metrics.data_types.items())

    lines = [
        "📊 DATA QUALITY ANALYSIS:",
        f"{BULLET} Dataset contains {rows:,} rows across {metrics.total_columns} columns",
        f"{BULLET} Data completeness: {metrics.completeness:.1f}% with "
        f"{metrics.total_missing_cells:,} missing values ({metrics.missing_percentage:.1f}%)",
        f"{BULLET} Error values detected: {metrics.total_error_cells:,} ({metrics.error_percentage:.1f}%)",
        f"{BULLET} Duplicate records: {dups} ({metrics.duplicate_percentage:.1f}% of total)",
        "",
        "⚠️ ISSUES IDENTIFIED:",
        f"{BULLET} Missing data in {columns_with_missing} columns"
        + (f" - CRITICAL in: {critical}" if critical_columns else ""),
        f"{BULLET} Duplicate records may indicate data collection or import issues "
        f"({metrics.duplicate_percentage:.1f}%)",
        f"{BULLET} Error values detected in {columns_with_errors} columns",
    ]
    if inconsistent:
        lines.append(f"{BULLET} Mixed value formats in: {', '.join(inconsistent)}")
    if metrics.empty_rows:
        lines.append(f"{BULLET} {metrics.empty_rows} rows contain no values at all")

    lines.extend([
        "",
        "💡 RECOMMENDATIONS:",
        f"{BULLET} Implement data imputation for missing values in "
        f"{critical or 'all affected columns'}",
        f"{BULLET} Investigate and remove duplicate records to improve data integrity",
        f"{BULLET} Validate and fix error values detected in the dataset",
        f"{BULLET} Establish data validation rules for future data collection",
        "",
        "🔧 IMMEDIATE ACTIONS:",
        f"{BULLET} Review columns with >20% missing values: {critical or 'None identified'}",
        f"{BULLET} Remove {dups} duplicate record{'' if dups == 1 else 's'}",
        f"{BULLET} Standardize data types across all columns ({types or 'no columns'})",
    ])
    return "\n".join(lines)


class LLMDatasetSummaryComponent(ReportComponent):
    """
    Produces the final score and the narrative that accompanies it.

    When an LLM service is available, it is asked for a score and a narrative with
    four marked sections. Its score is clamped into the window around the baseline.
    A timeout, a failed call or a reply without the expected structure all fall back
    to the baseline score and a narrative built from the metrics alone.
    """

    def __init__(
        self,
        context: AnalysisContext,
        timeout: float = DEFAULT_LLM_TIMEOUT,
        sample_rows: int = NARRATIVE_SAMPLE_ROWS,
        use_llm_explanations: bool = True
    ):
        super().__init__(context, use_llm_explanations)
        self.timeout = timeout
        self.sample_rows = sample_rows

    def analyze(self):
        metrics = self.context.shared_artifacts.get("quality_metrics")
        baseline = self.context.shared_artifacts.get("baseline_score")
        if metrics is None or baseline is None:
            raise RuntimeError("quality metrics and baseline score must be computed before the summary")

        fallback_reason = None
        if metrics.total_cells == 0:
            fallback_reason = "dataset has no cells"
        elif not self.llm or not self.llm.is_available:
            fallback_reason = "LLM service not available"
        else:
            try:
                self.result = self._generate_llm_summary(metrics, baseline)
            except LLMServiceError as e:
                logger.warning("Narrative service failed, using built-in analysis: %s", e)
                fallback_reason = str(e)

        if fallback_reason is not None:
            self.result = self._generate_fallback_summary(metrics, baseline, fallback_reason)

    def _generate_llm_summary(self, metrics, baseline: int) -> Dict[str, Any]:
        request = build_narrative_request(metrics, self.context.dataset, baseline, self.sample_rows)
        response = self.llm.assess_quality(request, timeout=self.timeout)

        sections = parse_narrative_sections(response.insights)
        if not sections:
            raise LLMResponseError("Narrative has none of the expected sections")

        score = reconcile_score(response.score, baseline)
        logger.info(
            "Quality assessment: baseline=%d ai=%d final=%d window=%s",
            baseline, response.score, score, score_window(baseline)
        )
        return {
            "score": score,
            "baseline_score": baseline,
            "candidate_score": response.score,
            "narrative": response.insights,
            "sections": sections,
            "source": "ai",
            "fallback_reason": None
        }

    @staticmethod
    def _generate_fallback_summary(metrics, baseline: int, reason: str) -> Dict[str, Any]:
        narrative = local_narrative(metrics)
        return {
            "score": baseline,
            "baseline_score": baseline,
            "candidate_score": None,
            "narrative": narrative,
            "sections": parse_narrative_sections(narrative),
            "source": "local",
            "fallback_reason": reason
        }

    def summarize(self) -> dict:
        result = self._require_result()

        return {
            "score": result["score"],
            "baseline_score": result["baseline_score"],
            "source": result["source"],
            "fallback_reason": result["fallback_reason"],
            "sections": {key: len(points) for key, points in result["sections"].items()}
        }
