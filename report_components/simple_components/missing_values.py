from typing import Dict, Any, List

from preprocessing.cells import Cell, is_missing, is_error, classify_format
from report_components.base_component import ReportComponent, AnalysisContext


class MissingValuesReport(ReportComponent):
    """
    Column-wise scan for missing cells, error cells and mixed value formats.

    Errors and formats are only evaluated on cells that are not missing. A column
    whose valid cells share one format is consistent; every additional distinct
    format counts as one format issue, however many cells carry it.
    """

    def __init__(self, context: AnalysisContext, use_llm_explanations: bool = True):
        super().__init__(context, use_llm_explanations)

    def analyze(self):
        dataset = self.context.dataset
        columns = dataset.columns
        total_rows = len(dataset)

        per_column = {col: self._scan_column(dataset.column(col)) for col in columns}

        total_cells = total_rows * len(columns)
        total_missing = sum(stats["missing"] for stats in per_column.values())
        total_errors = sum(stats["errors"] for stats in per_column.values())

        self.result = {
            "per_column": per_column,
            "total_cells": total_cells,
            "total_missing_cells": total_missing,
            "total_error_cells": total_errors,
            "completeness": self._completeness(total_cells, total_missing, total_errors),
            "columns_with_missing": [col for col, stats in per_column.items() if stats["missing"] > 0],
            "columns_with_errors": [col for col, stats in per_column.items() if stats["errors"] > 0],
        }

    @staticmethod
    def _scan_column(cells: List[Cell]) -> Dict[str, Any]:
        missing = 0
        errors = 0
        formats = set()

        for cell in cells:
            if is_missing(cell):
                missing += 1
                continue
            if is_error(cell):
                errors += 1
            formats.add(classify_format(cell).value)

        return {
            "missing": missing,
            "errors": errors,
            "formats": sorted(formats),
            "format_issues": max(0, len(formats) - 1),
        }

    @staticmethod
    def _completeness(total_cells: int, total_missing: int, total_errors: int) -> float:
        if total_cells == 0:
            return 0.0
        return (total_cells - total_missing - total_errors) / total_cells * 100

    def summarize(self) -> dict:
        result = self._require_result()
        total_rows = len(self.context.dataset)

        missing_ratio = {
            col: (stats["missing"] / total_rows if total_rows else 0.0)
            for col, stats in result["per_column"].items()
        }

        return {
            "num_columns_with_missing": len(result["columns_with_missing"]),
            "num_columns_with_errors": len(result["columns_with_errors"]),
            "missing_cells": result["total_missing_cells"],
            "error_cells": result["total_error_cells"],
            "completeness": round(result["completeness"], 2),
            "worst_columns": sorted(missing_ratio.items(), key=lambda x: x[1], reverse=True)[:3]
        }
