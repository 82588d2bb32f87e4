"""
llm_client.py – One blocking call to the configured LLM provider.

Supported providers:
  • Anthropic Claude (default)
    → routed through the native `anthropic` SDK
  • OpenAI, Groq, DeepSeek, Mistral, Together AI, Google Gemini,
    Ollama, LM Studio, any custom OpenAI-compatible endpoint
    → routed through the `openai` SDK
  • Azure OpenAI
    → routed through the `openai` SDK's AzureOpenAI client

Besides the call itself this module owns the response clean-up shared by
every prompt: picking the text block, stripping one code fence and
decoding the JSON payload.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

import anthropic
import openai
from openai import AzureOpenAI, OpenAI

from config import KEYLESS_PROVIDERS, Settings
from errors import ConfigurationError, ParseError, UpstreamError

logger = logging.getLogger("story2test")

EXCERPT_CHARS = 500

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)


# ── Response clean-up ──────────────────────────────────────────────────

def excerpt(raw: str, limit: int = EXCERPT_CHARS) -> str:
    raw = raw.strip()
    return raw if len(raw) <= limit else raw[:limit] + "…"


def strip_code_fence(raw: str) -> str:
    """Remove one surrounding ``` / ```json fence, if present."""
    return _FENCE_RE.sub("", raw).strip()


def parse_json_payload(raw: str) -> Any:
    """Decode the JSON document inside a model response."""
    cleaned = strip_code_fence(raw)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.error("LLM returned invalid JSON: %s\n---\n%s", exc, excerpt(cleaned))
        raise ParseError(
            f"Failed to parse JSON response from the model ({exc}).",
            raw_excerpt=excerpt(cleaned),
        ) from exc


def _anthropic_text(response: Any) -> str:
    for block in getattr(response, "content", None) or []:
        if getattr(block, "type", None) == "text":
            return block.text or ""
    return ""


def _openai_text(response: Any) -> str:
    choices = getattr(response, "choices", None) or []
    if not choices:
        return ""
    return choices[0].message.content or ""


# ── Client ──────────────────────────────────────────────────────────────

class LLMClient:
    """Thin wrapper that hides which SDK answers the call."""

    def __init__(
        self,
        provider: str,
        api_key: str,
        model: str,
        base_url: str = "",
        max_tokens: int = 4096,
        temperature: float = 0.2,
        azure_endpoint: str = "",
        azure_api_version: str = "",
    ) -> None:
        self.provider = provider.lower().strip()
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.azure_endpoint = azure_endpoint
        self.azure_api_version = azure_api_version
        self._sdk: Any = None

    @classmethod
    def from_settings(cls) -> LLMClient:
        api_key = Settings.LLM_API_KEY
        if Settings.LLM_PROVIDER == "azure_openai":
            api_key = Settings.AZURE_OPENAI_API_KEY
        return cls(
            provider=Settings.LLM_PROVIDER,
            api_key=api_key,
            model=Settings.resolved_model(),
            base_url=Settings.resolved_base_url(),
            max_tokens=Settings.LLM_MAX_TOKENS,
            azure_endpoint=Settings.AZURE_OPENAI_ENDPOINT,
            azure_api_version=Settings.AZURE_OPENAI_API_VERSION,
        )

    @property
    def label(self) -> str:
        return {
            "anthropic": "Anthropic",
            "openai": "OpenAI",
            "azure_openai": "Azure OpenAI",
        }.get(self.provider, self.provider)

    def ensure_configured(self) -> None:
        """Raise `ConfigurationError` when the model credential is absent."""
        if self.provider in KEYLESS_PROVIDERS:
            return
        if not self.api_key:
            raise ConfigurationError(
                f"No API key configured for LLM provider '{self.provider}'. "
                "Set LLM_API_KEY (or ANTHROPIC_API_KEY / OPENAI_API_KEY) in your .env file."
            )
        if self.provider == "azure_openai" and not self.azure_endpoint:
            raise ConfigurationError("AZURE_OPENAI_ENDPOINT is required for azure_openai.")
        if not self.model:
            raise ConfigurationError(f"No model configured for LLM provider '{self.provider}'.")

    def _client(self) -> Any:
        if self._sdk is not None:
            return self._sdk

        if self.provider == "anthropic":
            self._sdk = anthropic.Anthropic(api_key=self.api_key)
        elif self.provider == "azure_openai":
            self._sdk = AzureOpenAI(
                azure_endpoint=self.azure_endpoint,
                api_key=self.api_key,
                api_version=self.azure_api_version,
            )
        else:
            kwargs: dict[str, Any] = {"api_key": self.api_key or "not-needed"}
            if self.base_url:
                kwargs["base_url"] = self.base_url
            self._sdk = OpenAI(**kwargs)

        logger.info(
            "LLM provider: %s  (model=%s%s)",
            self.label,
            self.model,
            f", base_url={self.base_url}" if self.base_url else "",
        )
        return self._sdk

    def complete(self, system: str, user: str, max_tokens: Optional[int] = None) -> str:
        """Send one system + user message pair and return the reply text.

        Returns ``""`` when the provider answered without a text block;
        callers decide whether that is an error.
        """
        self.ensure_configured()
        client = self._client()
        limit = max_tokens or self.max_tokens

        try:
            if self.provider == "anthropic":
                response = client.messages.create(
                    model=self.model,
                    max_tokens=limit,
                    temperature=self.temperature,
                    system=system,
                    messages=[{"role": "user", "content": user}],
                )
                return _anthropic_text(response)

            response = client.chat.completions.create(
                model=self.model,
                max_tokens=limit,
                temperature=self.temperature,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
            )
            return _openai_text(response)
        except (anthropic.APIError, openai.APIError) as exc:
            status = getattr(exc, "status_code", None)
            message = getattr(exc, "message", None) or str(exc)
            logger.error("%s API call failed: %s", self.label, message)
            raise UpstreamError(
                f"{self.label} API Error: {status or 'n/a'} {type(exc).__name__} - {message}",
                status_code=status,
            ) from exc
