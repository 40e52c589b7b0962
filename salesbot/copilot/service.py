"""
Conversation handler -- one inbound question -> a sequence of chat replies.

Pipeline per message:

  greeting check -> relevance check -> LLM translation -> heuristic fallback
  -> allow-list -> execute -> chart (optional) -> render -> insights (optional)

Replies are handed to ``say`` as they are produced so the user sees the
thinking indicator before the database round trip.  Any exception from
the allow-list, the executor or the renderers ends in an error reply;
the handler itself never raises.

Mentions and direct messages run the same pipeline; ``PipelineOptions``
carries the differences (relevance filter, insights, wording).
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable

from salesbot.copilot import heuristics
from salesbot.copilot.chart_generator import chart_message, chart_url
from salesbot.copilot.insights import insight_message, summarize
from salesbot.copilot.llm_client import current_provider
from salesbot.copilot.llm_translator import LLMTranslator
from salesbot.copilot.renderer import SlackMessage, render_results
from salesbot.copilot.translation import TranslationError, TranslationResult, UnsafeSQLError
from salesbot.db.executor import execute_query
from salesbot.governance.relevance import is_greeting, is_relevant
from salesbot.governance.sql_safety import check_sql_safety
from salesbot.core.config import get_settings
from salesbot.core.utils import timer
from salesbot.core.logging import get_logger

logger = get_logger(__name__)

Say = Callable[[SlackMessage], Any]

# ── Canned replies ──────────────────────────────────────

HELP_TEXT = (
    "👋 Hi! Ask me about the Amazon sales data! Try:\n"
    "• \"What are the total sales?\"\n"
    "• \"Show me top products\"\n"
    "• \"Sales by category\"\n"
    "• \"Average rating\""
)

WELCOME_TEXT = (
    "👋 Hello! I'm your Sales Assistant. I can help you analyze Amazon sales data!\n\n"
    "Try asking me:\n"
    "• \"What are the total sales?\"\n"
    "• \"Show me top products\"\n"
    "• \"Pie chart of sales by category\"\n"
    "• \"Which products have rating above 4.5?\"\n"
    "• \"Compare sales between USA and Canada\""
)

REDIRECT_TEXT = (
    "🤔 I'm specialized in analyzing Amazon sales data. I can't help with that question, "
    "but I'd love to help you with:\n\n"
    "📊 Sales Analysis:\n"
    "• Total sales and revenue\n"
    "• Top products and categories\n"
    "• Sales by country\n"
    "• Product ratings\n\n"
    "📈 Visualizations:\n"
    "• Charts and graphs\n"
    "• Sales comparisons\n"
    "• Performance metrics\n\n"
    "Try asking something like: \"What are the top selling products in electronics?\""
)

CANT_HELP_TEXT = (
    "🤷 I'm not sure how to answer that. Try asking:\n"
    "• Total sales or revenue\n"
    "• Top products/categories\n"
    "• Sales by country\n"
    "• Average ratings\n"
    "• Recent sales\n\n"
    "💡 *Tip:* Add 'chart', 'graph', 'pie chart', or 'line chart' to visualize data!"
)

ERROR_TEMPLATE = "❌ Oops! Something went wrong: {message}"


# ── Options & outcome ───────────────────────────────────

@dataclass(frozen=True)
class PipelineOptions:
    relevance_filter: bool = True
    insights: bool = True
    reply_to_empty: bool = True
    thinking_text: str = "🤔 Analyzing your question..."

    @classmethod
    def from_settings(cls, **overrides: Any) -> "PipelineOptions":
        settings = get_settings()
        base = cls(
            relevance_filter=settings.relevance_filter_enabled,
            insights=settings.insights_enabled,
        )
        return replace(base, **overrides)


def mention_options() -> PipelineOptions:
    return PipelineOptions.from_settings()


def direct_message_options() -> PipelineOptions:
    return PipelineOptions.from_settings(reply_to_empty=False, thinking_text="🤔 Let me check that...")


# Terminal states of one conversation turn
STATUS_EMPTY = "empty"
STATUS_GREETING = "greeting"
STATUS_IRRELEVANT = "irrelevant"
STATUS_UNTRANSLATABLE = "untranslatable"
STATUS_ANSWERED = "answered"
STATUS_ERROR = "error"


@dataclass
class ConversationResult:
    status: str
    translation: TranslationResult | None = None
    rows: list[dict[str, Any]] = field(default_factory=list)
    chart_url: str | None = None
    summary: str | None = None
    error: str | None = None
    latency_ms: int = 0


# ── Handler ─────────────────────────────────────────────

class SalesAssistant:
    """Question -> replies, with every collaborator injectable for tests.

    Parameters
    ----------
    llm_translator : LLMTranslator, optional
        Used when *use_llm* is true; built lazily from settings otherwise.
    use_llm : bool, optional
        Defaults to True unless the configured provider is ``mock``.
    executor : callable
        ``executor(sql) -> rows``.
    summarizer : callable
        ``summarizer(rows, question) -> str | None``.
    """

    def __init__(
        self,
        llm_translator: LLMTranslator | None = None,
        use_llm: bool | None = None,
        executor: Callable[[str], list[dict[str, Any]]] = execute_query,
        summarizer: Callable[[list[dict[str, Any]], str], str | None] = summarize,
    ):
        self._llm_translator = llm_translator
        self._use_llm = use_llm
        self._execute = executor
        self._summarize = summarizer

    @property
    def use_llm(self) -> bool:
        if self._use_llm is None:
            return current_provider() != "mock"
        return self._use_llm

    @property
    def llm_translator(self) -> LLMTranslator:
        if self._llm_translator is None:
            self._llm_translator = LLMTranslator()
        return self._llm_translator

    # ── Translation ─────────────────────────────────────

    def translate(self, question: str) -> TranslationResult | None:
        """LLM first, heuristic rules as fallback; None when both fail."""
        if self.use_llm:
            try:
                return self.llm_translator.translate(question)
            except TranslationError as exc:
                logger.warning("LLM translation failed kind=%s: %s -- falling back", exc.kind, exc)
        return heuristics.translate(question)

    # ── Pipeline ────────────────────────────────────────

    def handle(
        self,
        question: str,
        say: Say,
        options: PipelineOptions | None = None,
    ) -> ConversationResult:
        """Answer *question*, sending each reply through *say*."""
        options = options or PipelineOptions()
        with timer() as t:
            try:
                result = self._run(question.strip(), say, options)
            except Exception as exc:
                logger.exception("Error processing question")
                say(SlackMessage(text=ERROR_TEMPLATE.format(message=exc)))
                result = ConversationResult(status=STATUS_ERROR, error=str(exc))
        result.latency_ms = t["elapsed_ms"]
        logger.info("Conversation status=%s latency_ms=%d", result.status, result.latency_ms)
        return result

    def _run(self, question: str, say: Say, options: PipelineOptions) -> ConversationResult:
        if not question:
            if options.reply_to_empty:
                say(SlackMessage(text=HELP_TEXT))
            return ConversationResult(status=STATUS_EMPTY)

        if is_greeting(question):
            say(SlackMessage(text=WELCOME_TEXT))
            return ConversationResult(status=STATUS_GREETING)

        if options.relevance_filter and not is_relevant(question):
            say(SlackMessage(text=REDIRECT_TEXT))
            return ConversationResult(status=STATUS_IRRELEVANT)

        say(SlackMessage(text=options.thinking_text))

        translation = self.translate(question)
        if translation is None:
            say(SlackMessage(text=CANT_HELP_TEXT))
            return ConversationResult(status=STATUS_UNTRANSLATABLE)

        violations = check_sql_safety(translation.sql)
        if violations:
            raise UnsafeSQLError(translation.sql, violations)

        rows = self._execute(translation.sql)
        result = ConversationResult(status=STATUS_ANSWERED, translation=translation, rows=rows)

        if translation.chart_type and len(rows) > 1:
            result.chart_url = chart_url(rows, translation.chart_type, question)
            say(chart_message(result.chart_url))

        say(render_results(rows, question))

        if options.insights:
            result.summary = self._summarize(rows, question)
            if result.summary:
                say(insight_message(result.summary))

        return result


_assistant: SalesAssistant | None = None


def get_assistant() -> SalesAssistant:
    global _assistant
    if _assistant is None:
        _assistant = SalesAssistant()
    return _assistant


def handle_question(
    question: str,
    say: Say,
    options: PipelineOptions | None = None,
) -> ConversationResult:
    """Module-level entry point using the shared assistant."""
    return get_assistant().handle(question, say, options)
