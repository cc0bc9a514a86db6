from abc import ABC, abstractmethod


class AnalysisContext:
    def __init__(self, dataset, llm_service=None):
        self.dataset = dataset
        self.shared_artifacts = {}
        self.component_results = {}
        # Passed in explicitly; there is no process-wide LLM client.
        self.llm_service = llm_service

    def store_component_result(self, component_name: str, summary: dict):
        self.component_results[component_name] = summary


class ReportComponent(ABC):
    def __init__(self, context: AnalysisContext, use_llm_explanations: bool = True):
        self.context = context
        self.result = None
        self.use_llm_explanations = use_llm_explanations

    @property
    def llm(self):
        """Get the LLM service if explanations are enabled."""
        if not self.use_llm_explanations:
            return None
        return self.context.llm_service

    @abstractmethod
    def analyze(self):
        pass

    @abstractmethod
    def summarize(self) -> dict:
        pass

    def _require_result(self):
        if self.result is None:
            raise RuntimeError("analyze() must be called before summarize()")
        return self.result
