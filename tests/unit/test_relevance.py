"""
Unit tests -- relevance filter and greeting detection.
"""
import pytest
from salesbot.governance.relevance import (
    has_sales_keyword,
    is_greeting,
    is_off_topic,
    is_relevant,
)


@pytest.mark.parametrize("question", [
    "tell me a joke",
    "what's the weather like",
    "play some music",
    "who won the game last night",
    "what is the capital of France",
])
def test_off_topic_rejected(question):
    assert is_off_topic(question)
    assert not is_relevant(question)


def test_off_topic_beats_keywords():
    # "sales" is a keyword but the joke pattern wins.
    assert not is_relevant("tell me a joke about sales")


@pytest.mark.parametrize("question", [
    "total sales",
    "top products in usa",
    "show me revenue by country",
    "how many items were sold",
])
def test_sales_questions_relevant(question):
    assert has_sales_keyword(question)
    assert is_relevant(question)


def test_unknown_defaults_to_relevant():
    assert not has_sales_keyword("what happened yesterday")
    assert is_relevant("what happened yesterday")


def test_word_boundaries_for_off_topic():
    assert not is_off_topic("display revenue per category")
    assert not is_off_topic("gameplay accessories")


@pytest.mark.parametrize("message", ["hi", "Hello!", "hey there", "good morning team", "how are you?"])
def test_greetings(message):
    assert is_greeting(message)


def test_long_message_is_not_greeting():
    assert not is_greeting("hi can you show me total sales by category please")


def test_greeting_needs_whole_word():
    assert not is_greeting("which category")
    assert not is_greeting("show total sales")
