"""
Unit tests -- conversation handler with fake translator / executor / summarizer.
"""
import json

import pytest
from salesbot.copilot import heuristics
from salesbot.copilot.history import QueryHistory
from salesbot.copilot.insights import summarize_mock
from salesbot.copilot.llm_translator import LLMTranslator
from salesbot.copilot.service import (
    CANT_HELP_TEXT,
    HELP_TEXT,
    REDIRECT_TEXT,
    STATUS_ANSWERED,
    STATUS_EMPTY,
    STATUS_ERROR,
    STATUS_GREETING,
    STATUS_IRRELEVANT,
    STATUS_UNTRANSLATABLE,
    WELCOME_TEXT,
    PipelineOptions,
    SalesAssistant,
    direct_message_options,
)
from salesbot.copilot.translation import TranslationResult
from salesbot.db.executor import DatabaseError

_CATEGORY_ROWS = [
    {"category": "Electronics", "sales_count": 120, "total_revenue": 98000.5},
    {"category": "Clothing", "sales_count": 90, "total_revenue": 45000.0},
    {"category": "Beauty", "sales_count": 40, "total_revenue": 12000.0},
]


class Recorder:
    """Collects every message passed to ``say``."""

    def __init__(self):
        self.messages = []

    def __call__(self, message):
        self.messages.append(message)

    @property
    def texts(self):
        return [m.text for m in self.messages]


class FakeExecutor:
    def __init__(self, rows=None, error=None):
        self.rows = rows or []
        self.error = error
        self.calls = []

    def __call__(self, sql):
        self.calls.append(sql)
        if self.error:
            raise self.error
        return self.rows


class ExplodingTranslator:
    def translate(self, question):
        raise AssertionError("translator must not be called")


def _assistant(executor=None, **kwargs):
    kwargs.setdefault("use_llm", False)
    kwargs.setdefault("summarizer", summarize_mock)
    return SalesAssistant(executor=executor or FakeExecutor(_CATEGORY_ROWS), **kwargs)


@pytest.fixture
def no_heuristics(monkeypatch):
    def boom(question):
        raise AssertionError("heuristics must not be called")

    monkeypatch.setattr(heuristics, "translate", boom)


# ── Short-circuits ──────────────────────────────────────

def test_greeting(no_heuristics):
    say = Recorder()
    result = _assistant(llm_translator=ExplodingTranslator(), use_llm=True).handle("hello", say)
    assert result.status == STATUS_GREETING
    assert say.texts == [WELCOME_TEXT]


def test_off_topic_never_translates(no_heuristics):
    say = Recorder()
    executor = FakeExecutor()
    assistant = _assistant(executor, llm_translator=ExplodingTranslator(), use_llm=True)
    result = assistant.handle("tell me a joke", say)
    assert result.status == STATUS_IRRELEVANT
    assert say.texts == [REDIRECT_TEXT]
    assert executor.calls == []


def test_relevance_filter_can_be_disabled():
    say = Recorder()
    result = _assistant().handle("tell me a joke", say, PipelineOptions(relevance_filter=False))
    assert result.status == STATUS_UNTRANSLATABLE
    assert say.texts == ["🤔 Analyzing your question...", CANT_HELP_TEXT]


def test_empty_mention_gets_help():
    say = Recorder()
    assert _assistant().handle("   ", say).status == STATUS_EMPTY
    assert say.texts == [HELP_TEXT]


def test_empty_direct_message_is_silent():
    say = Recorder()
    options = PipelineOptions(reply_to_empty=False)
    assert _assistant().handle("", say, options).status == STATUS_EMPTY
    assert say.texts == []


def test_direct_message_options():
    options = direct_message_options()
    assert options.reply_to_empty is False
    assert options.thinking_text == "🤔 Let me check that..."


# ── Answered questions ──────────────────────────────────

def test_scalar_answer_without_chart_or_insight():
    say = Recorder()
    executor = FakeExecutor([{"total_revenue": 1234.5, "total_sales": 10}])
    result = _assistant(executor).handle("total sales", say)
    assert result.status == STATUS_ANSWERED
    assert result.chart_url is None
    assert result.summary is None
    assert say.texts == ["🤔 Analyzing your question...", "Query results"]
    assert executor.calls[0].startswith("SELECT ROUND(SUM(revenue), 2) as total_revenue")


def test_chart_results_and_insight_in_order():
    say = Recorder()
    result = _assistant().handle("pie chart of sales by category", say)
    assert result.status == STATUS_ANSWERED
    assert result.translation.chart_type == "pie"
    assert result.chart_url is not None
    assert say.texts[:3] == ["🤔 Analyzing your question...", "Chart generated", "Query results"]
    assert say.texts[3].startswith("Key Insights: 3 rows returned")


def test_single_row_is_not_charted():
    say = Recorder()
    executor = FakeExecutor([{"category": "Beauty", "sales_count": 4, "total_revenue": 10.0}])
    result = _assistant(executor).handle("sales by category chart", say)
    assert result.chart_url is None
    assert "Chart generated" not in say.texts


def test_insights_can_be_disabled():
    say = Recorder()
    _assistant().handle("sales by category", say, PipelineOptions(insights=False))
    assert not any(t.startswith("Key Insights") for t in say.texts)


def test_untranslatable():
    say = Recorder()
    executor = FakeExecutor()
    result = _assistant(executor).handle("purple elephants", say)
    assert result.status == STATUS_UNTRANSLATABLE
    assert say.texts[-1] == CANT_HELP_TEXT
    assert executor.calls == []


# ── Translators ─────────────────────────────────────────

def test_llm_translation_used_when_valid():
    sql = "SELECT category, ROUND(SUM(revenue), 2) as total_revenue FROM sales_data GROUP BY category"
    llm = lambda prompt, **kw: json.dumps({"sql": sql, "chartType": None, "explanation": "x"})
    executor = FakeExecutor(_CATEGORY_ROWS)
    assistant = _assistant(executor, use_llm=True,
                           llm_translator=LLMTranslator(llm=llm, history=QueryHistory()))
    result = assistant.handle("sales by category", Recorder())
    assert result.translation.source == "llm"
    assert executor.calls == [sql]


def test_llm_failure_falls_back_to_heuristics():
    executor = FakeExecutor(_CATEGORY_ROWS)
    translator = LLMTranslator(llm=lambda prompt, **kw: "not json", history=QueryHistory())
    assistant = _assistant(executor, use_llm=True, llm_translator=translator)
    result = assistant.handle("sales by category", Recorder())
    assert result.status == STATUS_ANSWERED
    assert result.translation.source == "heuristic"
    assert "GROUP BY category" in executor.calls[0]


def test_unsafe_sql_never_executes(monkeypatch):
    monkeypatch.setattr(
        heuristics, "translate",
        lambda q: TranslationResult(sql="SELECT * FROM sales_data"),
    )
    say = Recorder()
    executor = FakeExecutor()
    result = _assistant(executor).handle("total sales", say)
    assert result.status == STATUS_ERROR
    assert executor.calls == []
    assert say.texts[-1].startswith("❌ Oops! Something went wrong: SELECT * is not allowed")


# ── Failures ────────────────────────────────────────────

def test_database_error_becomes_reply_and_handler_recovers():
    say = Recorder()
    failing = _assistant(FakeExecutor(error=DatabaseError("Database error: timeout")))
    result = failing.handle("sales by category", say)
    assert result.status == STATUS_ERROR
    assert say.texts[-1] == "❌ Oops! Something went wrong: Database error: timeout"

    ok = _assistant().handle("sales by category", Recorder())
    assert ok.status == STATUS_ANSWERED


def test_latency_recorded():
    result = _assistant().handle("sales by category", Recorder())
    assert result.latency_ms >= 0
