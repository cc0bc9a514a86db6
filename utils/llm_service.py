import json
import logging
import re
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, List, Tuple

from utils.consts import (
    DEFAULT_GEMINI_MODEL, DEFAULT_LLM_MODEL, DEFAULT_LLM_MAX_TOKENS,
    DEFAULT_LLM_TEMPERATURE, DEFAULT_LLM_TIMEOUT
)

logger = logging.getLogger(__name__)

_SCORE_PATTERN = re.compile(r"SCORE:\s*(\d+)")
_INSIGHTS_PATTERN = re.compile(r"INSIGHTS:\s*(.*)", re.DOTALL)


class LLMServiceError(RuntimeError):
    """Base error for anything that goes wrong talking to a language model."""


class LLMTimeoutError(LLMServiceError):
    pass


class LLMResponseError(LLMServiceError):
    pass


class LLMProvider(Enum):
    GEMINI = "gemini"
    LOCAL_HF = "local_hf"
    NONE = "none"


@dataclass
class LLMConfig:
    provider: LLMProvider
    model_name: Optional[str] = None
    api_key: Optional[str] = None
    max_tokens: int = DEFAULT_LLM_MAX_TOKENS
    temperature: float = DEFAULT_LLM_TEMPERATURE
    timeout: float = DEFAULT_LLM_TIMEOUT


@dataclass
class NarrativeRequest:
    total_rows: int
    total_columns: int
    completeness: float
    duplicate_rows: int
    data_types: Dict[str, str]
    missing_values: Dict[str, int]
    error_values: Dict[str, int]
    sample_rows: List[Dict[str, Any]]
    baseline_score: int
    score_range: Tuple[int, int]
    missing_percentage: float = 0.0
    duplicate_percentage: float = 0.0
    error_percentage: float = 0.0


@dataclass
class NarrativeResponse:
    score: int
    insights: str
    raw_text: str = field(default="", repr=False)


class BaseLLMProvider(ABC):
    def __init__(self, config: LLMConfig):
        self.config = config

    @abstractmethod
    def generate(self, prompt: str, system_prompt: Optional[str] = None, max_tokens: Optional[int] = None) -> str:
        pass

    @abstractmethod
    def is_available(self) -> bool:
        pass


class GeminiProvider(BaseLLMProvider):
    def __init__(self, config: LLMConfig):
        super().__init__(config)
        self._client = None

    def _get_client(self):
        if self._client is None:
            try:
                from google import genai
            except ImportError:
                raise ImportError("google-genai not installed. Run: pip install google-genai")
            from google.genai import types
            self._client = genai.Client(
                api_key=self.config.api_key,
                http_options=types.HttpOptions(timeout=int(self.config.timeout * 1000)),
            )
        return self._client

    def is_available(self) -> bool:
        if not self.config.api_key:
            return False
        try:
            from google import genai  # noqa: F401
            return True
        except ImportError:
            return False

    def generate(self, prompt: str, system_prompt: Optional[str] = None, max_tokens: Optional[int] = None) -> str:
        from google.genai import types

        response = self._get_client().models.generate_content(
            model=self.config.model_name or DEFAULT_GEMINI_MODEL,
            contents=prompt,
            config=types.GenerateContentConfig(
                system_instruction=system_prompt,
                max_output_tokens=max_tokens or self.config.max_tokens,
                temperature=self.config.temperature,
            ),
        )
        text = response.text
        if not text:
            raise LLMResponseError("Gemini returned an empty response")
        return text


class LocalHuggingFaceProvider(BaseLLMProvider):
    def __init__(self, config: LLMConfig):
        super().__init__(config)
        self._pipeline = None

    def _load_model(self):
        if self._pipeline is not None:
            return

        try:
            import torch
            from transformers import pipeline
        except ImportError:
            raise ImportError(
                "transformers and torch not installed. Run: pip install transformers torch accelerate"
            )

        model_name = self.config.model_name or DEFAULT_LLM_MODEL

        if torch.cuda.is_available():
            device = "cuda"
            torch_dtype = torch.float16
        elif hasattr(torch.backends, "mps") and torch.backends.mps.is_available():
            device = "mps"
            torch_dtype = torch.float16
        else:
            device = "cpu"
            torch_dtype = torch.float32

        self._pipeline = pipeline(
            "text-generation",
            model=model_name,
            dtype=torch_dtype,
            device_map="auto" if device != "cpu" else None,
        )

    def is_available(self) -> bool:
        try:
            import torch  # noqa: F401
            from transformers import pipeline  # noqa: F401
            return True
        except ImportError:
            return False

    def generate(self, prompt: str, system_prompt: Optional[str] = None, max_tokens: Optional[int] = None) -> str:
        self._load_model()

        messages = [
            {"role": "system", "content": system_prompt or ""},
            {"role": "user", "content": prompt},
        ]
        outputs = self._pipeline(
            messages,
            max_new_tokens=max_tokens or self.config.max_tokens,
            temperature=self.config.temperature,
            do_sample=True,
            pad_token_id=self._pipeline.tokenizer.eos_token_id,
        )
        return outputs[0]["generated_text"][-1]["content"].strip()


_PROVIDERS = {
    LLMProvider.GEMINI: GeminiProvider,
    LLMProvider.LOCAL_HF: LocalHuggingFaceProvider,
}


def parse_assessment_text(text: str) -> NarrativeResponse:
    """Split a ``SCORE: n`` / ``INSIGHTS: ...`` reply into its two parts."""
    score_match = _SCORE_PATTERN.search(text or "")
    insights_match = _INSIGHTS_PATTERN.search(text or "")

    if not score_match:
        raise LLMResponseError("Response carries no SCORE line")
    if not insights_match or not insights_match.group(1).strip():
        raise LLMResponseError("Response carries no INSIGHTS block")

    return NarrativeResponse(
        score=int(score_match.group(1)),
        insights=insights_match.group(1).strip(),
        raw_text=text
    )


class LLMService:
    SYSTEM_PROMPT = (
        "You are a data quality expert. Base every statement on the metrics you are given. "
        "Use the actual numbers. No generic advice."
    )

    def __init__(self, provider: BaseLLMProvider):
        self.provider = provider
        self._enabled = True

    @classmethod
    def create(cls, config: LLMConfig) -> "LLMService":
        provider_cls = _PROVIDERS.get(config.provider)
        if provider_cls is None:
            raise ValueError(f"No LLM provider registered for {config.provider.value!r}")
        return cls(provider_cls(config))

    @property
    def is_available(self) -> bool:
        return self._enabled and self.provider.is_available()

    def disable(self):
        self._enabled = False

    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> str:
        if not self._enabled:
            raise LLMServiceError("LLM service is disabled")

        timeout = self.provider.config.timeout if timeout is None else timeout
        outcome: Dict[str, Any] = {}

        def request():
            try:
                outcome["text"] = self.provider.generate(prompt, system_prompt or self.SYSTEM_PROMPT, max_tokens)
            except Exception as e:
                outcome["error"] = e

        # Daemon thread: a hung request is abandoned and never holds up interpreter exit.
        worker = threading.Thread(target=request, name="llm-request", daemon=True)
        worker.start()
        worker.join(timeout)

        if worker.is_alive():
            raise LLMTimeoutError(f"LLM request timed out after {timeout}s")
        error = outcome.get("error")
        if isinstance(error, LLMServiceError):
            raise error
        if error is not None:
            raise LLMServiceError(f"LLM request failed: {error}") from error
        return outcome["text"]

    def assess_quality(self, request: NarrativeRequest, timeout: Optional[float] = None) -> NarrativeResponse:
        text = self.generate(self.build_quality_prompt(request), timeout=timeout)
        return parse_assessment_text(text)

    @staticmethod
    def build_quality_prompt(request: NarrativeRequest) -> str:
        low, high = request.score_range
        return f"""Analyze this dataset and provide a precise quality assessment.

DATASET METRICS (CALCULATED):
- Total Rows: {request.total_rows}
- Total Columns: {request.total_columns}
- Data Completeness: {request.completeness:.2f}%
- Missing Values: {request.missing_percentage:.2f}%
- Error Values: {request.error_percentage:.2f}%
- Duplicate Rows: {request.duplicate_rows} ({request.duplicate_percentage:.2f}%)
- Column Types: {json.dumps(request.data_types)}
- Missing by Column: {json.dumps(request.missing_values)}
- Errors by Column: {json.dumps(request.error_values)}

BASELINE CALCULATED SCORE: {request.baseline_score}/100

Sample Data (first {len(request.sample_rows)} rows):
{json.dumps(request.sample_rows, indent=2, default=str)}

The score must be between {low} and {high}.

RESPOND IN THIS EXACT FORMAT:
SCORE: [integer 0-100]
INSIGHTS:

📊 DATA QUALITY ANALYSIS:
• [point]

⚠️ ISSUES IDENTIFIED:
• [point]

💡 RECOMMENDATIONS:
• [point]

🔧 IMMEDIATE ACTIONS:
• [point]"""
