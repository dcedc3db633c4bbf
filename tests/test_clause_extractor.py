import asyncio
import json
from types import SimpleNamespace

import pytest

from clausecompare.services.clause_extractor import ClauseExtractor, MalformedExtractionError
from clausecompare.services.errors import ClauseExtractionError
from clausecompare.services.LLM_tracker import LLMUsageTracker
from clausecompare.services.taxonomy import BENEFIT_LIABILITY_LEVER, UNIVERSAL

VALID_ANSWER = json.dumps({
    "categories": {
        "Obligations": ["Provider shall deliver by Dec 31", "  "],
        "Rights": ["Client may audit records annually"],
        "Risks_Liabilities": None,
        "Levers": ["Volume discount above 100 seats"],
    },
    "summary": "A short services agreement.",
})


class FakeModel:
    """Returns canned answers in order, raising any that are exceptions"""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.prompts = []

    def generate_content(self, prompt):
        self.prompts.append(prompt)
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return SimpleNamespace(
            text=answer,
            usage_metadata=SimpleNamespace(prompt_token_count=1000, candidates_token_count=200),
        )


def _extractor(model, max_retries=3):
    return ClauseExtractor(model=model, request_delay=0, max_retries=max_retries, retry_delay=0)


def test_extracts_and_normalizes_categories():
    model = FakeModel(f"```json\n{VALID_ANSWER}\n```")
    extraction = asyncio.run(_extractor(model).extract("contract text", UNIVERSAL))

    assert extraction.categories == {
        "Obligations": ["Provider shall deliver by Dec 31"],
        "Rights": ["Client may audit records annually"],
        "Risks_Liabilities": [],
        "Term_Termination": [],
        "Levers": ["Volume discount above 100 seats"],
    }
    assert extraction.summary == "A short services agreement."
    assert extraction.clause_count == 3
    assert extraction.taxonomy == "universal"


def test_accepts_categories_at_top_level():
    extraction = ClauseExtractor.parse_response(
        json.dumps({"Benefits": ["Free onboarding"], "Levers": []}), BENEFIT_LIABILITY_LEVER
    )
    assert extraction.categories == {"Benefits": ["Free onboarding"], "Liabilities": [], "Levers": []}
    assert extraction.summary == ""


@pytest.mark.parametrize("answer", [
    json.dumps(["not", "an", "object"]),
    json.dumps({"categories": ["Obligations"]}),
    json.dumps({"categories": {"Obligations": "one clause"}}),
    json.dumps({"categories": {"Levers": [7, "Volume discount above 100 seats"]}}),
    json.dumps({"categories": {"Rights": [{"text": "Client may audit records"}]}}),
])
def test_rejects_wrong_json_shape(answer):
    with pytest.raises(MalformedExtractionError):
        ClauseExtractor.parse_response(answer, UNIVERSAL)


def test_retries_malformed_output_then_succeeds():
    model = FakeModel("Sorry, here are the clauses:", VALID_ANSWER)
    extraction = asyncio.run(_extractor(model).extract("contract text", UNIVERSAL))

    assert len(model.prompts) == 2
    assert extraction.clause_count == 3


def test_retries_non_string_clause_items():
    bad_answer = json.dumps({"categories": {"Obligations": [None, "Provider shall deliver"]}})
    model = FakeModel(bad_answer, VALID_ANSWER)
    extraction = asyncio.run(_extractor(model).extract("contract text", UNIVERSAL))

    assert len(model.prompts) == 2
    assert extraction.clause_count == 3


def test_retries_api_errors_then_succeeds():
    model = FakeModel(RuntimeError("429 Resource exhausted"), VALID_ANSWER)
    extraction = asyncio.run(_extractor(model).extract("contract text", UNIVERSAL))
    assert extraction.clause_count == 3


def test_gives_up_after_max_retries():
    model = FakeModel("{", "{", "{")
    with pytest.raises(ClauseExtractionError):
        asyncio.run(_extractor(model, max_retries=3).extract("contract text", UNIVERSAL, document_name="a.pdf"))
    assert len(model.prompts) == 3


def test_prompt_lists_categories_and_instructions():
    model = FakeModel(VALID_ANSWER)
    asyncio.run(_extractor(model).extract("THE CONTRACT", UNIVERSAL, instructions="Focus on liability clauses"))

    prompt = model.prompts[0]
    for key in UNIVERSAL.categories:
        assert f'"{key}"' in prompt
    assert "Focus on liability clauses" in prompt
    assert "THE CONTRACT" in prompt


def test_usage_is_tracked():
    tracker = LLMUsageTracker(label="document_a", model_name="gemini-2.5-flash")
    asyncio.run(_extractor(FakeModel(VALID_ANSWER)).extract("text", UNIVERSAL, usage_tracker=tracker))

    stats = tracker.get_stats()
    assert stats["llm_calls"] == 1
    assert stats["input_tokens"] == 1000
    assert stats["output_tokens"] == 200
    assert stats["cost_in_usd"] > 0


def test_retry_delay_backs_off_and_caps():
    extractor = ClauseExtractor(model=FakeModel(), retry_delay=60, exponential_backoff=True)

    assert extractor._calculate_retry_delay(1) == 60
    assert extractor._calculate_retry_delay(2) == 120
    assert extractor._calculate_retry_delay(1, is_quota_error=True) == 120
    assert extractor._calculate_retry_delay(10) == 600


def test_missing_api_key_is_reported():
    with pytest.raises(ClauseExtractionError):
        ClauseExtractor(api_key=None)
