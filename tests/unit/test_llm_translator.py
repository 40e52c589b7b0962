"""
Unit tests -- LLM translator: prompt, response parsing, allow-list, history.
"""
import json

import pytest
from salesbot.copilot.history import QueryHistory
from salesbot.copilot.llm_translator import (
    LLMTranslator,
    TRANSLATOR_MAX_TOKENS,
    TRANSLATOR_TEMPERATURE,
    build_prompt,
    extract_json_object,
    format_examples,
    parse_response,
)
from salesbot.copilot.translation import (
    MalformedModelOutputError,
    ModelCallError,
    TranslationError,
    UnsafeSQLError,
)

_GOOD_SQL = (
    "SELECT product_name, SUM(quantity_sold) as total_quantity FROM sales_data "
    "WHERE category = 'Electronics' GROUP BY product_name ORDER BY total_quantity DESC LIMIT 5"
)


class FakeLLM:
    """Records calls and returns a canned response (or raises)."""

    def __init__(self, response="", error=None):
        self.response = response
        self.error = error
        self.calls = []

    def __call__(self, prompt, temperature=0.0, max_tokens=512):
        self.calls.append({"prompt": prompt, "temperature": temperature, "max_tokens": max_tokens})
        if self.error:
            raise self.error
        return self.response


def _answer(sql=_GOOD_SQL, chart="bar", explanation="Best sellers"):
    return json.dumps({"sql": sql, "chartType": chart, "explanation": explanation})


# ── Prompt ──────────────────────────────────────────────

def test_prompt_contains_schema_and_question():
    prompt = build_prompt("top 5 best-selling products in electronics", QueryHistory())
    assert "Table: sales_data" in prompt
    assert "'Home & Kitchen'" in prompt
    assert 'User question: "top 5 best-selling products in electronics"' in prompt
    assert '"chartType"' in prompt
    assert "SUCCESSFUL EXAMPLES" not in prompt


def test_prompt_includes_last_five_examples():
    h = QueryHistory()
    for i in range(7):
        h.append(f"question {i}", f"SELECT {i} AS n")
    prompt = build_prompt("anything", h)
    assert "SUCCESSFUL EXAMPLES FROM THIS SESSION" in prompt
    assert 'Q: "question 1"' not in prompt
    assert 'Q: "question 2"' in prompt
    assert 'Q: "question 6"' in prompt


def test_format_examples_empty():
    assert format_examples(QueryHistory()) == ""


# ── Response parsing ────────────────────────────────────

def test_parse_plain_json():
    result = parse_response(_answer())
    assert result.sql == _GOOD_SQL
    assert result.chart_type == "bar"
    assert result.source == "llm"


def test_parse_fenced_json_with_prose():
    text = "Here you go:\n```json\n" + _answer(chart=None) + "\n```"
    result = parse_response(text)
    assert result.chart_type is None


def test_source_cannot_be_spoofed():
    data = json.loads(_answer())
    data["source"] = "heuristic"
    assert parse_response(json.dumps(data)).source == "llm"


@pytest.mark.parametrize("text", [
    "no json here",
    "{not valid json}",
    "[1, 2, 3]",
])
def test_extract_rejects_garbage(text):
    with pytest.raises(MalformedModelOutputError):
        extract_json_object(text)


@pytest.mark.parametrize("payload", [
    {"chartType": "bar"},                       # missing sql
    {"sql": "", "chartType": None},             # empty sql
    {"sql": _GOOD_SQL, "chartType": "radar"},   # unknown chart kind
])
def test_parse_rejects_schema_mismatch(payload):
    with pytest.raises(MalformedModelOutputError):
        parse_response(json.dumps(payload))


# ── Translator ──────────────────────────────────────────

def test_translate_success_appends_history():
    llm = FakeLLM(_answer())
    history = QueryHistory()
    result = LLMTranslator(llm=llm, history=history).translate("top 5 best-selling products in electronics")
    assert result.sql == _GOOD_SQL
    assert [e.question for e in history.entries()] == ["top 5 best-selling products in electronics"]
    assert llm.calls[0]["temperature"] == TRANSLATOR_TEMPERATURE
    assert llm.calls[0]["max_tokens"] == TRANSLATOR_MAX_TOKENS


def test_history_feeds_next_prompt():
    llm = FakeLLM(_answer())
    translator = LLMTranslator(llm=llm, history=QueryHistory())
    translator.translate("first question")
    translator.translate("second question")
    assert 'Q: "first question"' in llm.calls[1]["prompt"]


def test_model_call_error():
    llm = FakeLLM(error=ConnectionError("network down"))
    with pytest.raises(ModelCallError, match="network down"):
        LLMTranslator(llm=llm, history=QueryHistory()).translate("total sales")


def test_malformed_output_not_remembered():
    history = QueryHistory()
    with pytest.raises(MalformedModelOutputError):
        LLMTranslator(llm=FakeLLM("I cannot help"), history=history).translate("total sales")
    assert len(history) == 0


def test_unsafe_sql_rejected_and_not_remembered():
    history = QueryHistory()
    llm = FakeLLM(_answer(sql="DELETE FROM sales_data"))
    with pytest.raises(UnsafeSQLError) as info:
        LLMTranslator(llm=llm, history=history).translate("delete everything")
    assert info.value.kind == "unsafe_sql"
    assert info.value.violations
    assert len(history) == 0


def test_wrong_enumerated_value_is_unsafe():
    llm = FakeLLM(_answer(sql="SELECT revenue FROM sales_data WHERE category = 'electronics'"))
    with pytest.raises(UnsafeSQLError, match="Unknown category value"):
        LLMTranslator(llm=llm, history=QueryHistory()).translate("electronics revenue")


def test_error_kinds_share_a_base():
    for cls in (ModelCallError, MalformedModelOutputError):
        assert issubclass(cls, TranslationError)
    assert issubclass(UnsafeSQLError, TranslationError)
