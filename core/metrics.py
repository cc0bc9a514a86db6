from dataclasses import dataclass, field, asdict
from typing import Dict, Any, Iterable, Mapping, Union

from preprocessing.dataset import Dataset
from report_components.base_component import AnalysisContext, ReportComponent
from report_components.simple_components.dataset_overview import DatasetOverviewComponent
from report_components.simple_components.missing_values import MissingValuesReport
from report_components.simple_components.exact_duplicates import ExactDuplicateDetectionComponent
from report_components.core_components.outlier_detection import OutlierDetectionComponent
from core.report import Report


@dataclass(frozen=True)
class ColumnMetrics:
    missing: int
    errors: int
    format_issues: int
    formats: tuple
    data_type: str
    unique_values: int
    outliers: int


@dataclass(frozen=True)
class QualityMetrics:
    total_rows: int
    total_columns: int
    total_cells: int
    duplicate_rows: int
    empty_rows: int
    total_missing_cells: int
    total_error_cells: int
    completeness: float
    columns: Dict[str, ColumnMetrics] = field(default_factory=dict)

    @property
    def missing_percentage(self) -> float:
        return self.total_missing_cells / self.total_cells * 100 if self.total_cells else 0.0

    @property
    def error_percentage(self) -> float:
        return self.total_error_cells / self.total_cells * 100 if self.total_cells else 0.0

    @property
    def duplicate_percentage(self) -> float:
        return self.duplicate_rows / self.total_rows * 100 if self.total_rows else 0.0

    @property
    def total_outliers(self) -> int:
        return sum(stats.outliers for stats in self.columns.values())

    @property
    def missing_values(self) -> Dict[str, int]:
        return {col: stats.missing for col, stats in self.columns.items()}

    @property
    def error_values(self) -> Dict[str, int]:
        return {col: stats.errors for col, stats in self.columns.items()}

    @property
    def data_types(self) -> Dict[str, str]:
        return {col: stats.data_type for col, stats in self.columns.items()}

    @classmethod
    def from_components(cls, components: Iterable[ReportComponent]) -> "QualityMetrics":
        results = {type(component): component.result for component in components}
        overview = results[DatasetOverviewComponent]
        missing = results[MissingValuesReport]
        duplicates = results[ExactDuplicateDetectionComponent]
        outliers = results[OutlierDetectionComponent]

        columns = {
            col: ColumnMetrics(
                missing=stats["missing"],
                errors=stats["errors"],
                format_issues=stats["format_issues"],
                formats=tuple(stats["formats"]),
                data_type=overview["data_types"][col],
                unique_values=overview["unique_values"][col],
                outliers=outliers["per_column"][col]["outliers"]
            )
            for col, stats in missing["per_column"].items()
        }

        return cls(
            total_rows=overview["shape"]["rows"],
            total_columns=overview["shape"]["columns"],
            total_cells=missing["total_cells"],
            duplicate_rows=duplicates["summary"]["duplicate_rows"],
            empty_rows=duplicates["summary"]["empty_rows"],
            total_missing_cells=missing["total_missing_cells"],
            total_error_cells=missing["total_error_cells"],
            completeness=missing["completeness"],
            columns=columns
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for stats in data["columns"].values():
            stats["formats"] = list(stats["formats"])
        data["missing_percentage"] = self.missing_percentage
        data["duplicate_percentage"] = self.duplicate_percentage
        data["error_percentage"] = self.error_percentage
        data["total_outliers"] = self.total_outliers
        return data


def metric_components(context: AnalysisContext):
    """Metric components in dependency order; outliers need the overview's column types."""
    return [
        DatasetOverviewComponent(context),
        MissingValuesReport(context),
        ExactDuplicateDetectionComponent(context),
        OutlierDetectionComponent(context),
    ]


def compute_metrics(data: Union[Dataset, Iterable[Mapping[str, Any]]]) -> QualityMetrics:
    """Run the metric components over a dataset and collect their results."""
    dataset = data if isinstance(data, Dataset) else Dataset.from_records(data)
    context = AnalysisContext(dataset)

    report = Report()
    for component in metric_components(context):
        report.add_component(component)
    report.run()

    return QualityMetrics.from_components(report.components)
