"""
config.py – Centralised configuration loaded from environment variables.

Only the CLI reads `Settings` directly.  Library code receives explicit
values (`ADOCredentials`, `LLMClient` arguments) so nothing depends on
process-global state.
"""

import os
import sys
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

VALID_PROVIDERS = {
    "openai", "anthropic", "azure_openai",
    "groq", "deepseek", "mistral", "together",
    "google", "ollama", "lmstudio", "custom",
}

# Providers served by a local process; no API key needed.
KEYLESS_PROVIDERS = {"ollama", "lmstudio"}

PROVIDER_BASE_URLS = {
    "groq": "https://api.groq.com/openai/v1",
    "deepseek": "https://api.deepseek.com",
    "mistral": "https://api.mistral.ai/v1",
    "together": "https://api.together.xyz/v1",
    "google": "https://generativelanguage.googleapis.com/v1beta/openai/",
    "ollama": "http://localhost:11434/v1",
    "lmstudio": "http://localhost:1234/v1",
}

DEFAULT_MODELS = {
    "anthropic": "claude-sonnet-4-20250514",
    "openai": "gpt-4o",
}


@dataclass(frozen=True)
class ADOCredentials:
    """Connection details for one Azure DevOps project."""

    organization_url: str
    project: str
    pat: str

    def __post_init__(self) -> None:
        # "https://dev.azure.com/org/" and "https://dev.azure.com/org" are the same org
        object.__setattr__(self, "organization_url", self.organization_url.rstrip("/"))

    @property
    def is_complete(self) -> bool:
        return bool(self.organization_url and self.project and self.pat)


class Settings:
    """Validated, read-only application settings."""

    # ── Azure DevOps ────────────────────────────────────────
    ADO_ORG_URL: str = os.getenv("ADO_ORG_URL", "")
    ADO_PROJECT: str = os.getenv("ADO_PROJECT", "")
    ADO_PAT: str = os.getenv("ADO_PAT", "")
    ADO_TEST_PLAN_ID: str = os.getenv("ADO_TEST_PLAN_ID", "").strip()
    ADO_TEST_SUITE_ID: str = os.getenv("ADO_TEST_SUITE_ID", "").strip()

    # ── LLM ─────────────────────────────────────────────────
    LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "anthropic").lower().strip()
    LLM_API_KEY: str = (
        os.getenv("LLM_API_KEY", "")
        or os.getenv("ANTHROPIC_API_KEY", "")
        or os.getenv("OPENAI_API_KEY", "")
    )
    LLM_MODEL: str = os.getenv("LLM_MODEL", "")
    LLM_BASE_URL: str = os.getenv("LLM_BASE_URL", "")
    LLM_MAX_TOKENS: int = int(os.getenv("LLM_MAX_TOKENS", "4096"))

    # ── Azure OpenAI (only when LLM_PROVIDER=azure_openai) ──
    AZURE_OPENAI_ENDPOINT: str = os.getenv("AZURE_OPENAI_ENDPOINT", "")
    AZURE_OPENAI_API_KEY: str = os.getenv("AZURE_OPENAI_API_KEY", "")
    AZURE_OPENAI_DEPLOYMENT: str = os.getenv("AZURE_OPENAI_DEPLOYMENT", "")
    AZURE_OPENAI_API_VERSION: str = os.getenv(
        "AZURE_OPENAI_API_VERSION", "2024-02-15-preview"
    )

    @classmethod
    def resolved_base_url(cls) -> str:
        """Return the effective base URL for OpenAI-compatible providers."""
        if cls.LLM_BASE_URL:
            return cls.LLM_BASE_URL
        return PROVIDER_BASE_URLS.get(cls.LLM_PROVIDER, "")

    @classmethod
    def resolved_model(cls) -> str:
        """Return the configured model, or the provider's default."""
        if cls.LLM_PROVIDER == "azure_openai":
            return cls.AZURE_OPENAI_DEPLOYMENT
        return cls.LLM_MODEL or DEFAULT_MODELS.get(cls.LLM_PROVIDER, "gpt-4o")

    @classmethod
    def ado_credentials(cls) -> ADOCredentials:
        return ADOCredentials(
            organization_url=cls.ADO_ORG_URL,
            project=cls.ADO_PROJECT,
            pat=cls.ADO_PAT,
        )

    @classmethod
    def validate(cls) -> None:
        """Halt early if required tracker values are missing.

        The model key is not checked here: generation raises
        `ConfigurationError` when it is absent, so fetch / export / upload
        still work without one.
        """
        missing: list[str] = []
        if not cls.ADO_ORG_URL:
            missing.append("ADO_ORG_URL")
        if not cls.ADO_PROJECT:
            missing.append("ADO_PROJECT")
        if not cls.ADO_PAT:
            missing.append("ADO_PAT")

        if cls.LLM_PROVIDER not in VALID_PROVIDERS:
            sys.exit(
                f"[ERROR] Unknown LLM_PROVIDER='{cls.LLM_PROVIDER}'.\n"
                f"  → Valid options: {', '.join(sorted(VALID_PROVIDERS))}"
            )

        if missing:
            sys.exit(
                f"[ERROR] Missing required environment variables: {', '.join(missing)}\n"
                "  → Copy .env.example to .env and fill in all values."
            )
