import time

import pytest

from utils.llm_service import BaseLLMProvider, LLMConfig, LLMProvider, LLMService


class FakeProvider(BaseLLMProvider):
    """Scripted stand-in for a remote model."""

    def __init__(self, reply="", delay=0.0, error=None, available=True, on_generate=None):
        super().__init__(LLMConfig(provider=LLMProvider.NONE, timeout=5))
        self.reply = reply
        self.delay = delay
        self.error = error
        self.available = available
        self.on_generate = on_generate
        self.calls = 0
        self.prompts = []

    def is_available(self) -> bool:
        return self.available

    def generate(self, prompt, system_prompt=None, max_tokens=None):
        self.calls += 1
        self.prompts.append(prompt)
        if self.on_generate is not None:
            self.on_generate()
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


GOOD_REPLY = """SCORE: 40
INSIGHTS:

📊 DATA QUALITY ANALYSIS:
• 10 rows across 2 columns
• Completeness is 100%

⚠️ ISSUES IDENTIFIED:
• No missing values

💡 RECOMMENDATIONS:
• Keep validating new rows

🔧 IMMEDIATE ACTIONS:
• None required"""


@pytest.fixture
def clean_records():
    return [{"id": str(i), "name": f"name{i}"} for i in range(10)]


@pytest.fixture
def fake_service():
    def _make(**kwargs):
        return LLMService(FakeProvider(**kwargs))
    return _make


@pytest.fixture
def good_reply():
    return GOOD_REPLY
