"""
upload_summary.py – Ask the model for a short human summary of an upload run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import ValidationError as PydanticValidationError

from errors import ParseError, SchemaError
from llm_client import LLMClient, excerpt, parse_json_payload
from models import UploadSummary
from schemas import validate_upload_summary, violations_from

logger = logging.getLogger("story2test")

SUMMARY_MAX_TOKENS = 1024

SUMMARY_SYSTEM_PROMPT = """\
You are an assistant that summarizes the results of uploading test cases
to Azure DevOps.
Your response MUST be a valid JSON object with exactly this structure and
nothing else, no text before or after it:
{
  "summary": "string (at most two sentences, highlighting successes and failures)",
  "progress": "string (one sentence describing what was uploaded)"
}
"""


@dataclass(frozen=True)
class UploadSummaryText:
    summary: str
    progress: str


def compose_summary_message(summary: UploadSummary) -> str:
    lines = [
        "Here is the result of the test case upload:",
        f"- Successfully uploaded: {summary.success_count}",
        f"- Failed to upload: {summary.failure_count}",
    ]
    if summary.error_messages:
        lines.append("")
        lines.append("The following errors occurred:")
        lines.extend(f"- {message}" for message in summary.error_messages)
    lines.append("")
    lines.append(
        "Provide a concise summary of at most two sentences that highlights any "
        "errors, and a one-sentence description of the progress made."
    )
    return "\n".join(lines)


def summarize_upload(summary: UploadSummary, llm: LLMClient) -> UploadSummaryText:
    """Return the model's `{summary, progress}` text for an upload run."""
    llm.ensure_configured()
    raw = llm.complete(
        SUMMARY_SYSTEM_PROMPT, compose_summary_message(summary), max_tokens=SUMMARY_MAX_TOKENS
    )
    if not raw.strip():
        raise ParseError("The model returned empty or non-text content for the summary.")

    payload = parse_json_payload(raw)
    try:
        parsed = validate_upload_summary(payload)
    except PydanticValidationError as exc:
        raise SchemaError(
            "The model summary does not match the expected schema.",
            violations_from(exc),
            raw_excerpt=excerpt(raw),
        ) from exc

    logger.debug("Upload summary: %s", parsed.summary)
    return UploadSummaryText(summary=parsed.summary, progress=parsed.progress)
