import threading
from datetime import datetime
from pathlib import Path
from typing import Optional, Union, Dict, Any, Callable, Iterable, Mapping

import pandas as pd

from qualitycheck.config import AnalysisConfig
from preprocessing.dataset import Dataset, DatasetParseError
from report_components.base_component import AnalysisContext, ReportComponent
from report_components.core_components.composite_quality_score import CompositeQualityScoreComponent
from report_components.core_components.llm_dataset_summary import LLMDatasetSummaryComponent
from core.metrics import QualityMetrics, metric_components
from core.report import Report, QualityAssessment, build_export_record, write_export_record
from core.marketplace import build_listing, is_marketplace_eligible
from utils.llm_service import LLMService

DataSource = Union[str, Path, pd.DataFrame, Dataset, Iterable[Mapping[str, Any]]]


class QualityAnalyzer:
    """
    Loads a dataset, measures its quality and produces the scored assessment.

    Loading a new dataset while an analysis is running makes that analysis stale:
    its result is discarded instead of being applied over the newer dataset.
    """

    def __init__(
        self,
        data: DataSource,
        config: Optional[AnalysisConfig] = None,
        llm_service: Optional[LLMService] = None,
        verbose: bool = True,
        log_callback: Optional[Callable[[str], None]] = None
    ):
        self.config = config or AnalysisConfig()
        self._verbose = verbose
        self._log_callback = log_callback
        self._llm_service = llm_service if llm_service is not None else self._build_llm_service()
        self._lock = threading.Lock()
        self._generation = 0
        self._dataset: Optional[Dataset] = None
        self._results: Dict[str, Any] = {}
        self._assessment: Optional[QualityAssessment] = None
        self.load(data)

    def _log(self, message: str):
        if self._verbose:
            timestamp = datetime.now().strftime("%H:%M:%S")
            formatted = f"[{timestamp}] {message}"
            if self._log_callback:
                self._log_callback(formatted)
            else:
                print(formatted)

    def _build_llm_service(self) -> Optional[LLMService]:
        if not self.config.use_llm:
            return None
        try:
            return LLMService.create(self.config.llm_config())
        except ValueError as e:
            self._log(f"LLM disabled: {e}")
            return None

    def _load_dataset(self, data: DataSource) -> Dataset:
        if isinstance(data, Dataset):
            return data
        if isinstance(data, pd.DataFrame):
            self._log("Loading DataFrame directly")
            return Dataset.from_dataframe(data)
        if isinstance(data, (str, Path)):
            engine = None if self.config.engine == "auto" else self.config.engine
            dataset = Dataset.from_file(str(data), engine=engine)
            info = dataset.get_info()
            self._log(f"Dataset: {info['path']}")
            self._log(f"File size: {info['file_size_mb']:.2f} MB | Engine: {str(info['engine']).upper()}")
            return dataset
        return Dataset.from_records(data)

    def load(self, data: DataSource) -> "QualityAnalyzer":
        try:
            dataset = self._load_dataset(data)
        except DatasetParseError:
            self._replace_dataset(Dataset.from_records([]))
            raise
        self._replace_dataset(dataset)
        self._log(f"Loaded {len(dataset)} rows x {len(dataset.columns)} columns")
        return self

    def _replace_dataset(self, dataset: Dataset):
        with self._lock:
            self._generation += 1
            self._dataset = dataset
            self._results = {}
            self._assessment = None

    def analyze(self) -> "QualityAnalyzer":
        with self._lock:
            generation = self._generation
            dataset = self._dataset

        llm_service = self._llm_service if self.config.use_llm else None
        context = AnalysisContext(dataset, llm_service=llm_service)
        report = Report()

        components = metric_components(context)
        total = len(components) + 2
        self._log(f"Starting analysis with {total} components...")

        for step, component in enumerate(components, start=1):
            self._run_component(report, component, step, total)

        metrics = QualityMetrics.from_components(report.components)
        context.shared_artifacts["quality_metrics"] = metrics

        self._run_component(report, CompositeQualityScoreComponent(context), total - 1, total)
        summary = LLMDatasetSummaryComponent(
            context, timeout=self.config.llm_timeout, sample_rows=self.config.sample_rows
        )
        self._run_component(report, summary, total, total)

        assessment = QualityAssessment(
            score=summary.result["score"],
            baseline_score=summary.result["baseline_score"],
            narrative=summary.result["narrative"],
            source=summary.result["source"],
            metrics=metrics,
            sections=summary.result["sections"]
        )

        with self._lock:
            if generation != self._generation:
                self._log("A newer dataset was loaded during analysis; discarding stale result")
                return self
            self._results = dict(context.component_results)
            self._assessment = assessment

        self._log(f"Analysis complete! Score: {assessment.score}/100 ({assessment.label})")
        return self

    def _run_component(self, report: Report, component: ReportComponent, step: int, total: int) -> None:
        name = component.__class__.__name__
        self._log(f"[{step}/{total}] Running: {name}")
        component.analyze()
        report.add_component(component)
        component.context.store_component_result(name, component.summarize())
        self._log(f"[{step}/{total}] ✓ Completed: {name}")

    def _require_assessment(self) -> QualityAssessment:
        if self._assessment is None:
            raise RuntimeError("analyze() must be called before reading results")
        return self._assessment

    @property
    def assessment(self) -> Optional[QualityAssessment]:
        return self._assessment

    @property
    def metrics(self) -> QualityMetrics:
        return self._require_assessment().metrics

    @property
    def score(self) -> int:
        return self._require_assessment().score

    @property
    def is_marketplace_eligible(self) -> bool:
        return is_marketplace_eligible(self.score)

    def get_results(self) -> Dict[str, Any]:
        return self._results

    def get_summary(self, component_name: str) -> Optional[Dict[str, Any]]:
        return self._results.get(component_name)

    def build_report(self, file_name: Optional[str] = None) -> Dict[str, Any]:
        return build_export_record(self._require_assessment(), file_name or self._dataset.name)

    def export_report(self, output_path: Optional[str] = None, file_name: Optional[str] = None) -> str:
        path = output_path or self.config.output_path
        write_export_record(self.build_report(file_name), path)
        self._log(f"✓ Report saved: {Path(path).resolve()}")
        return str(path)

    def marketplace_listing(self, file_name: Optional[str] = None) -> Optional[Dict[str, Any]]:
        assessment = self._require_assessment()
        if not is_marketplace_eligible(assessment.score):
            return None
        return build_listing(
            file_name or self._dataset.name,
            assessment.score,
            assessment.metrics.total_rows,
            timestamp=assessment.timestamp
        )

    @property
    def dataset(self) -> Dataset:
        return self._dataset


def analyze_dataset(
    data: DataSource,
    config: Optional[AnalysisConfig] = None,
    llm_service: Optional[LLMService] = None
) -> QualityAssessment:
    analyzer = QualityAnalyzer(data, config=config, llm_service=llm_service, verbose=False)
    return analyzer.analyze()._require_assessment()
