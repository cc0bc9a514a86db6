import subprocess
import sys
import textwrap
import time
from pathlib import Path

import pytest

from core.metrics import compute_metrics
from qualitycheck.analyzer import QualityAnalyzer
from qualitycheck.config import AnalysisConfig
from report_components.core_components.llm_dataset_summary import (
    local_narrative, parse_narrative_sections
)
from utils.llm_service import (
    GeminiProvider, LLMConfig, LLMProvider, LLMResponseError, LLMService, NarrativeRequest,
    parse_assessment_text
)

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def run(records, service, timeout=5.0):
    config = AnalysisConfig(use_llm=True, llm_timeout=timeout)
    return QualityAnalyzer(records, config=config, llm_service=service, verbose=False).analyze()


def test_ai_score_is_clamped_into_window(clean_records, fake_service, good_reply):
    analyzer = run(clean_records, fake_service(reply=good_reply))
    assessment = analyzer.assessment

    assert assessment.baseline_score == 100
    assert assessment.score == 85
    assert assessment.source == "ai"
    assert assessment.analysis_method == "Gemini AI"
    assert assessment.sections["analysis"] == ["10 rows across 2 columns", "Completeness is 100%"]
    assert assessment.sections["actions"] == ["None required"]


def test_ai_score_inside_window_is_kept(clean_records, fake_service, good_reply):
    analyzer = run(clean_records, fake_service(reply=good_reply.replace("SCORE: 40", "SCORE: 93")))
    assert analyzer.assessment.score == 93


def test_prompt_carries_baseline_and_window(clean_records, fake_service, good_reply):
    service = fake_service(reply=good_reply)
    run(clean_records, service)

    prompt = service.provider.prompts[0]
    assert "BASELINE CALCULATED SCORE: 100/100" in prompt
    assert "between 85 and 100" in prompt
    assert '"name": "name0"' in prompt


@pytest.mark.parametrize("reply", [
    "The data looks fine.",
    "SCORE: 90\nINSIGHTS:\nlooks good overall",
    "SCORE: 90",
    "",
])
def test_malformed_reply_falls_back(clean_records, fake_service, reply):
    analyzer = run(clean_records, fake_service(reply=reply))
    assessment = analyzer.assessment

    assert assessment.source == "local"
    assert assessment.score == assessment.baseline_score == 100
    assert assessment.analysis_method == "Built-in Analysis"


def test_timeout_falls_back(clean_records, fake_service, good_reply):
    service = fake_service(reply=good_reply, delay=1.0)
    analyzer = run(clean_records, service, timeout=0.05)

    assert analyzer.assessment.source == "local"
    result = analyzer.get_summary("LLMDatasetSummaryComponent")
    assert "timed out" in result["fallback_reason"]


def test_provider_error_falls_back(clean_records, fake_service):
    analyzer = run(clean_records, fake_service(error=ConnectionError("network down")))

    assert analyzer.assessment.source == "local"
    assert analyzer.assessment.score == 100


def test_unavailable_provider_is_not_called(clean_records, fake_service, good_reply):
    service = fake_service(reply=good_reply, available=False)
    analyzer = run(clean_records, service)

    assert service.provider.calls == 0
    assert analyzer.assessment.source == "local"


def test_disabled_service_is_not_called(clean_records, fake_service, good_reply):
    service = fake_service(reply=good_reply)
    service.disable()
    analyzer = run(clean_records, service)

    assert service.provider.calls == 0
    assert analyzer.assessment.source == "local"


def test_local_narrative_has_all_sections():
    metrics = compute_metrics([
        {"a": "1", "b": ""},
        {"a": "2", "b": ""},
        {"a": "2", "b": ""},
        {"a": "x", "b": "y"},
    ])
    narrative = local_narrative(metrics)
    sections = parse_narrative_sections(narrative)

    assert list(sections) == ["analysis", "issues", "recommendations", "actions"]
    assert "CRITICAL in: b" in narrative
    assert "Mixed value formats in: a" in narrative
    assert "Remove 1 duplicate record" in narrative


def test_parse_sections_without_markers():
    text = "**Data Quality Analysis:**\n• one\n• two\nImmediate Actions\n• act"
    assert parse_narrative_sections(text) == {"analysis": ["one", "two"], "actions": ["act"]}


def test_parse_sections_of_unstructured_text():
    assert parse_narrative_sections("nothing to see here") == {}
    assert parse_narrative_sections(None) == {}


def test_parse_assessment_text():
    response = parse_assessment_text("Sure!\nSCORE: 77\nINSIGHTS:\n📊 DATA QUALITY ANALYSIS:\n• ok")

    assert response.score == 77
    assert response.insights.startswith("📊")


@pytest.mark.parametrize("text", ["INSIGHTS: something", "SCORE: 5\nINSIGHTS:   ", None])
def test_parse_assessment_text_rejects_incomplete_replies(text):
    with pytest.raises(LLMResponseError):
        parse_assessment_text(text)


def test_quality_prompt_lists_sections():
    request = NarrativeRequest(
        total_rows=3, total_columns=1, completeness=100.0, duplicate_rows=0,
        data_types={"a": "numeric"}, missing_values={"a": 0}, error_values={"a": 0},
        sample_rows=[{"a": 1}], baseline_score=100, score_range=(85, 100)
    )
    prompt = LLMService.build_quality_prompt(request)

    for marker in ("📊 DATA QUALITY ANALYSIS", "⚠️ ISSUES IDENTIFIED", "💡 RECOMMENDATIONS", "🔧 IMMEDIATE ACTIONS"):
        assert marker in prompt
    assert "SCORE:" in prompt


def test_gemini_needs_api_key():
    assert not GeminiProvider(LLMConfig(provider=LLMProvider.GEMINI)).is_available()


def test_no_provider_registered_for_none():
    with pytest.raises(ValueError):
        LLMService.create(LLMConfig(provider=LLMProvider.NONE))


def test_section_titles_inside_bullets_are_not_headers():
    text = (
        "📊 DATA QUALITY ANALYSIS:\n"
        "• Recommendations from the last audit were applied\n"
        "• Immediate actions were logged\n"
        "⚠️ ISSUES IDENTIFIED:\n"
        "• x\n"
        "💡 RECOMMENDATIONS:\n"
        "• y\n"
        "🔧 IMMEDIATE ACTIONS:\n"
        "• z\n"
    )
    sections = parse_narrative_sections(text)

    assert sections == {
        "analysis": ["Recommendations from the last audit were applied", "Immediate actions were logged"],
        "issues": ["x"],
        "recommendations": ["y"],
        "actions": ["z"],
    }


def test_section_headers_with_windows_line_endings():
    text = "📊 DATA QUALITY ANALYSIS:\r\n• one\r\n🔧 IMMEDIATE ACTIONS:\r\n• two\r\n"
    assert parse_narrative_sections(text) == {"analysis": ["one"], "actions": ["two"]}


def test_hung_request_does_not_delay_process_exit():
    script = textwrap.dedent("""
        import time
        from qualitycheck.analyzer import QualityAnalyzer
        from qualitycheck.config import AnalysisConfig
        from utils.llm_service import BaseLLMProvider, LLMConfig, LLMProvider, LLMService

        class SlowProvider(BaseLLMProvider):
            def is_available(self):
                return True

            def generate(self, prompt, system_prompt=None, max_tokens=None):
                time.sleep(10)
                return ""

        service = LLMService(SlowProvider(LLMConfig(provider=LLMProvider.NONE)))
        config = AnalysisConfig(use_llm=True, llm_timeout=0.2)
        analyzer = QualityAnalyzer([{"a": "1"}], config=config, llm_service=service, verbose=False)
        print(analyzer.analyze().assessment.source)
    """)
    started = time.monotonic()
    completed = subprocess.run(
        [sys.executable, "-c", script], cwd=PROJECT_ROOT, capture_output=True, text=True, timeout=30
    )
    elapsed = time.monotonic() - started

    assert completed.returncode == 0, completed.stderr
    assert completed.stdout.strip() == "local"
    assert elapsed < 8
