import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, List

from report_components.base_component import ReportComponent

logger = logging.getLogger(__name__)

AI_ANALYSIS_METHOD = "Gemini AI"
LOCAL_ANALYSIS_METHOD = "Built-in Analysis"


class Report:
    """
    Report orchestrator that runs analysis components and collects results.

    After running, component results are stored in the context for use by
    the scoring and summary components.
    """

    def __init__(self):
        self.components: List[ReportComponent] = []

    def add_component(self, component: ReportComponent):
        self.components.append(component)

    def run(self):
        """Run all components and store their results in context."""
        for component in self.components:
            logger.debug("Running component: %s", component.__class__.__name__)
            component.analyze()
            component.context.store_component_result(
                component.__class__.__name__,
                component.summarize()
            )


def quality_label(score: int) -> str:
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 40:
        return "Fair"
    return "Poor"


@dataclass
class QualityAssessment:
    score: int
    baseline_score: int
    narrative: str
    source: str
    metrics: Any
    sections: Dict[str, List[str]] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def label(self) -> str:
        return quality_label(self.score)

    @property
    def analysis_method(self) -> str:
        return AI_ANALYSIS_METHOD if self.source == "ai" else LOCAL_ANALYSIS_METHOD


def build_export_record(assessment: QualityAssessment, file_name: str) -> Dict[str, Any]:
    """JSON-serialisable report of one analysis, keyed the way the web client expects."""
    metrics = assessment.metrics

    return {
        "fileName": file_name,
        "datasetSize": metrics.total_rows,
        "analysisDate": assessment.timestamp.isoformat(),
        "qualityScore": assessment.score,
        "qualityLabel": assessment.label,
        "insights": assessment.narrative,
        "analysisMethod": assessment.analysis_method,
        "summary": {
            "totalRows": metrics.total_rows,
            "totalColumns": metrics.total_columns,
            "completeness": round(metrics.completeness, 2),
            "duplicates": metrics.duplicate_rows,
            "emptyRows": metrics.empty_rows,
            "missingCells": metrics.total_missing_cells,
            "errorCells": metrics.total_error_cells,
            "baselineScore": assessment.baseline_score
        },
        "columnAnalysis": [
            {
                "column": col,
                "dataType": stats.data_type,
                "uniqueValues": stats.unique_values,
                "missingValues": stats.missing,
                "errorValues": stats.errors,
                "formatIssues": stats.format_issues,
                "outliers": stats.outliers
            }
            for col, stats in metrics.columns.items()
        ]
    }


def write_export_record(record: Dict[str, Any], output_path: str) -> str:
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(record, fh, indent=2, ensure_ascii=False)
    logger.info("Report written to %s", output_path)
    return output_path
