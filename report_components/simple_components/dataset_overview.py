from typing import Dict, List

from preprocessing.cells import Cell, ColumnType, is_missing, infer_type
from report_components.base_component import ReportComponent, AnalysisContext


class DatasetOverviewComponent(ReportComponent):
    def __init__(self, context: AnalysisContext, use_llm_explanations: bool = True):
        super().__init__(context, use_llm_explanations)

    def analyze(self):
        dataset = self.context.dataset
        columns = dataset.columns

        overview = {
            "shape": {
                "rows": len(dataset),
                "columns": len(columns)
            },
            "data_types": {},
            "unique_values": {},
        }

        for col in columns:
            present = [cell for cell in dataset.column(col) if not is_missing(cell)]
            overview["data_types"][col] = self._dominant_type(present).value
            overview["unique_values"][col] = self._count_unique(present)

        self.result = overview

        self.context.shared_artifacts["numeric_columns"] = [
            col for col, dtype in overview["data_types"].items()
            if dtype == ColumnType.NUMERIC.value
        ]

    @staticmethod
    def _dominant_type(present: List[Cell]) -> ColumnType:
        # First non-missing value decides; no majority vote.
        if not present:
            return ColumnType.UNKNOWN
        return infer_type(present[0])

    @staticmethod
    def _count_unique(present: List[Cell]) -> int:
        return len(set(present))

    def summarize(self) -> dict:
        result = self._require_result()

        type_distribution: Dict[str, int] = {}
        for dtype in result["data_types"].values():
            type_distribution[dtype] = type_distribution.get(dtype, 0) + 1

        return {
            "dataset_shape": result["shape"],
            "type_distribution": type_distribution,
            "numeric_columns": self.context.shared_artifacts.get("numeric_columns", []),
        }
