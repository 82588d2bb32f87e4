"""
errors.py – Exception taxonomy shared by every pipeline stage.

Nothing here is retried: each error is terminal for the call that raised
it and carries enough detail for the CLI to print a useful message.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Violation:
    """One schema violation: dotted path into the payload + message."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path or '<root>'}: {self.message}"


class Story2TestError(Exception):
    """Base class for all Story2Test errors."""


class AuthenticationError(Story2TestError):
    """Azure DevOps rejected the PAT (HTTP 401)."""

    def __init__(self, message: str, status_code: int = 401) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(Story2TestError):
    """Azure DevOps returned 404; the message hints at the likely bad id."""

    def __init__(self, message: str, status_code: int = 404) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(Story2TestError):
    """A required setting (model key, plan / suite id, …) is missing."""


class ValidationError(Story2TestError):
    """Local input failed schema validation before any network call."""

    def __init__(self, message: str, violations: list[Violation] | None = None) -> None:
        self.violations = list(violations or [])
        if self.violations:
            message = f"{message}: " + "; ".join(str(v) for v in self.violations)
        super().__init__(message)


class UpstreamError(Story2TestError):
    """A network call returned non-2xx, or the model provider raised."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseError(Story2TestError):
    """The model response held no text block or no parseable JSON."""

    def __init__(self, message: str, raw_excerpt: str = "") -> None:
        self.raw_excerpt = raw_excerpt
        if raw_excerpt:
            message = f"{message} Raw response: {raw_excerpt}"
        super().__init__(message)


class SchemaError(Story2TestError):
    """The model returned valid JSON that does not match the contract."""

    def __init__(
        self,
        message: str,
        violations: list[Violation],
        raw_excerpt: str = "",
    ) -> None:
        self.violations = list(violations)
        self.raw_excerpt = raw_excerpt
        details = ", ".join(str(v) for v in self.violations)
        super().__init__(f"{message} Validation issues: {details}")
