import os
from dataclasses import dataclass
from typing import Optional

from utils.consts import DEFAULT_LLM_PROVIDER, DEFAULT_LLM_TIMEOUT, NARRATIVE_SAMPLE_ROWS
from utils.llm_service import LLMConfig, LLMProvider

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class AnalysisConfig:
    use_llm: bool = True
    llm_provider: str = DEFAULT_LLM_PROVIDER
    llm_model: Optional[str] = None
    llm_api_key: Optional[str] = None
    llm_timeout: float = DEFAULT_LLM_TIMEOUT
    sample_rows: int = NARRATIVE_SAMPLE_ROWS
    engine: str = "auto"
    output_path: str = "quality_report.json"

    @classmethod
    def from_env(cls, **overrides) -> "AnalysisConfig":
        """Build a config from ``DQ_*`` environment variables; keyword overrides win."""
        env = os.environ
        config = cls(
            use_llm=env.get("DQ_USE_LLM", "true").strip().lower() in _TRUE_VALUES,
            llm_provider=env.get("DQ_LLM_PROVIDER", DEFAULT_LLM_PROVIDER),
            llm_model=env.get("DQ_LLM_MODEL") or None,
            llm_api_key=env.get("GEMINI_API_KEY") or None,
            llm_timeout=float(env.get("DQ_LLM_TIMEOUT", DEFAULT_LLM_TIMEOUT)),
            engine=env.get("DQ_ENGINE", "auto"),
            output_path=env.get("DQ_OUTPUT_PATH", "quality_report.json"),
        )
        for key, value in overrides.items():
            if not hasattr(config, key):
                raise TypeError(f"Unknown config option: {key}")
            setattr(config, key, value)
        return config

    def llm_config(self) -> LLMConfig:
        return LLMConfig(
            provider=LLMProvider(self.llm_provider),
            model_name=self.llm_model,
            api_key=self.llm_api_key,
            timeout=self.llm_timeout,
        )
