from typing import Dict, Any, Iterable, Optional

import numpy as np

from preprocessing.cells import Cell, is_missing, to_number
from report_components.base_component import ReportComponent, AnalysisContext
from utils.consts import OUTLIER_MIN_VALUES, OUTLIER_IQR_MULTIPLIER


def iqr_bounds(values: Iterable[float]) -> Optional[Dict[str, float]]:
    """
    Nearest-rank quartiles and Tukey fences of a numeric sample.

    Returns ``None`` when the sample is too small or the IQR is zero; neither
    case can produce meaningful outliers.
    """
    arr = np.asarray([v for v in values if np.isfinite(v)], dtype=float)
    n = len(arr)
    if n < OUTLIER_MIN_VALUES:
        return None

    arr.sort()
    q1 = float(arr[int(n * 0.25)])
    q3 = float(arr[int(n * 0.75)])
    iqr = q3 - q1
    if iqr == 0:
        return None

    return {
        "q1": q1,
        "q3": q3,
        "iqr": iqr,
        "lower": q1 - OUTLIER_IQR_MULTIPLIER * iqr,
        "upper": q3 + OUTLIER_IQR_MULTIPLIER * iqr
    }


def iqr_outlier_count(values: Iterable[float]) -> int:
    values = [v for v in values if np.isfinite(v)]
    bounds = iqr_bounds(values)
    if bounds is None:
        return 0
    arr = np.asarray(values, dtype=float)
    return int(np.count_nonzero((arr < bounds["lower"]) | (arr > bounds["upper"])))


class OutlierDetectionComponent(ReportComponent):
    def __init__(self, context: AnalysisContext, use_llm_explanations: bool = True):
        super().__init__(context, use_llm_explanations)

    def analyze(self):
        dataset = self.context.dataset
        numeric_cols = self.context.shared_artifacts.get("numeric_columns")
        if numeric_cols is None:
            raise RuntimeError("DatasetOverviewComponent must run before outlier detection")

        per_column: Dict[str, Dict[str, Any]] = {}
        for col in dataset.columns:
            if col not in numeric_cols:
                per_column[col] = {"outliers": 0, "bounds": None, "values_checked": 0}
                continue

            values = self._numeric_values(dataset.column(col))
            per_column[col] = {
                "outliers": iqr_outlier_count(values),
                "bounds": iqr_bounds(values),
                "values_checked": len(values)
            }

        total_outliers = sum(stats["outliers"] for stats in per_column.values())
        total_rows = len(dataset)

        self.result = {
            "summary": {
                "total_outliers": total_outliers,
                "outlier_ratio": round(total_outliers / total_rows, 5) if total_rows else 0.0,
                "used_numeric_columns": list(numeric_cols)
            },
            "per_column": per_column
        }

    @staticmethod
    def _numeric_values(cells: Iterable[Cell]) -> list:
        values = []
        for cell in cells:
            if is_missing(cell):
                continue
            number = to_number(cell)
            if number is not None and np.isfinite(number):
                values.append(number)
        return values

    def summarize(self) -> dict:
        result = self._require_result()

        return {
            "total_outliers": result["summary"]["total_outliers"],
            "outlier_ratio": result["summary"]["outlier_ratio"],
            "columns_with_outliers": [
                col for col, stats in result["per_column"].items() if stats["outliers"] > 0
            ]
        }
