"""
LLM client abstraction -- provider-agnostic wrapper.

Supported providers:
  mock      -- echo back the prompt (for tests / offline dev)
  openai    -- OpenAI ChatCompletion (model from settings.openai_model)
  anthropic -- Anthropic Messages (model from settings.anthropic_model)

Configuration is read from Settings (env / .env).
"""
from __future__ import annotations

from typing import Any, Callable

from salesbot.core.config import get_settings
from salesbot.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TEMPERATURE = 0.0
DEFAULT_MAX_TOKENS = 512

LLMCall = Callable[..., str]



def _call_mock(prompt: str, temperature: float, max_tokens: int) -> str:
    logger.info("LLM mock mode -- returning echo")
    return f"[MOCK] {prompt[:200]}"



def _call_openai(prompt: str, temperature: float, max_tokens: int) -> str:
    """Call OpenAI ChatCompletion API."""
    settings = get_settings()
    api_key = settings.openai_api_key
    if not api_key:
        raise RuntimeError(
            "openai_api_key is not set.  "
            "Set OPENAI_API_KEY in your .env file or environment."
        )

    import openai

    client = openai.OpenAI(api_key=api_key)
    response = client.chat.completions.create(
        model=settings.openai_model,
        messages=[
            {"role": "system", "content": "You are a helpful sales-data analyst."},
            {"role": "user", "content": prompt},
        ],
        temperature=temperature,
        max_tokens=max_tokens,
    )
    text = response.choices[0].message.content or ""
    logger.info("OpenAI response (%d chars)", len(text))
    return text



def _call_anthropic(prompt: str, temperature: float, max_tokens: int) -> str:
    """Call Anthropic Messages API."""
    settings = get_settings()
    api_key = settings.anthropic_api_key
    if not api_key:
        raise RuntimeError(
            "anthropic_api_key is not set.  "
            "Set ANTHROPIC_API_KEY in your .env file or environment."
        )

    import anthropic

    client = anthropic.Anthropic(api_key=api_key)
    response = client.messages.create(
        model=settings.anthropic_model,
        max_tokens=max_tokens,
        temperature=temperature,
        messages=[{"role": "user", "content": prompt}],
    )
    text = response.content[0].text if response.content else ""
    logger.info("Anthropic response (%d chars)", len(text))
    return text



_PROVIDERS: dict[str, Any] = {
    "mock": _call_mock,
    "openai": _call_openai,
    "anthropic": _call_anthropic,
}


def current_provider() -> str:
    return get_settings().llm_provider.lower()


def call_llm(
    prompt: str,
    provider: str | None = None,
    temperature: float = DEFAULT_TEMPERATURE,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> str:
    """Send *prompt* to the configured (or overridden) LLM provider.

    Parameters
    ----------
    prompt : str
        The full prompt text.
    provider : str, optional
        Override the provider from settings.  One of: mock, openai, anthropic.
    temperature : float
        Sampling temperature; the translator keeps it low, the insight
        summarizer higher.
    max_tokens : int
        Response token ceiling.
    """
    if provider is None:
        provider = current_provider()

    fn = _PROVIDERS.get(provider)
    if fn is None:
        raise NotImplementedError(
            f"LLM provider '{provider}' is not supported.  "
            f"Choose from: {', '.join(_PROVIDERS)}"
        )

    logger.info(
        "Calling LLM provider=%s  prompt_len=%d  temperature=%.1f  max_tokens=%d",
        provider, len(prompt), temperature, max_tokens,
    )
    return fn(prompt, temperature, max_tokens)
