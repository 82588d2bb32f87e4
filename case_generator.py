"""
case_generator.py – Turn a user story into validated test cases.

`CaseGenerator.generate` runs the whole contract in a fixed order:
credential check → input validation → prompt → model call → JSON
extraction → schema validation.  Every failure is terminal for the call.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from errors import ParseError, SchemaError, ValidationError
from llm_client import LLMClient, excerpt, parse_json_payload
from models import GenerationInput, TestCase, TestCaseOrigin, UploadStatus
from prompt_composer import build_request
from schemas import validate_generation_input, validate_test_case_array, violations_from

logger = logging.getLogger("story2test")


class CaseGenerator:
    """Generates test cases by calling the configured LLM provider."""

    def __init__(self, llm: Optional[LLMClient] = None) -> None:
        self._llm = llm or LLMClient.from_settings()

    def generate(self, data: GenerationInput) -> list[TestCase]:
        """Call the model and return the parsed batch, all `pending`."""
        self._llm.ensure_configured()

        try:
            validate_generation_input(asdict(data))
        except PydanticValidationError as exc:
            raise ValidationError(
                "Invalid input for test case generation", violations_from(exc)
            ) from exc

        request = build_request(data)
        logger.info("Sending prompt to LLM (%d chars)…", len(request.user))

        raw = self._llm.complete(request.system, request.user)
        if not raw.strip():
            raise ParseError("The model returned empty or non-text content.")
        logger.debug("LLM response (%d chars):\n%s", len(raw), raw)

        payload = parse_json_payload(raw)
        try:
            items = validate_test_case_array(payload)
        except PydanticValidationError as exc:
            violations = violations_from(exc)
            logger.error(
                "Model response failed schema validation (%d issues)", len(violations)
            )
            raise SchemaError(
                "The model response does not match the expected test case schema.",
                violations,
                raw_excerpt=excerpt(raw),
            ) from exc

        cases = [
            TestCase(
                id=item.id,
                title=item.title,
                priority=item.priority,
                description=item.description,
                expected_result=item.expected_result,
                origin=TestCaseOrigin.GENERATED,
                upload_status=UploadStatus.PENDING,
            )
            for item in items
        ]
        logger.info("Generated %d test cases", len(cases))
        return cases
