"""
prompt_composer.py – Build the system contract and user message sent to
the generation model.

Optional sections (data dictionary, supporting documents) are dropped
entirely, header included, when their source text is blank.
"""

from __future__ import annotations

from dataclasses import dataclass

from models import GenerationInput, SupportingDocument

# ── System prompt that governs the LLM's output ────────────────────────

SYSTEM_PROMPT = """\
You are an expert test case generator for Azure DevOps with a focus on
comprehensive test coverage.

Your response MUST be a valid JSON array of test case objects and nothing
else.  Do not write any text before or after the JSON array and do not wrap
it in markdown.  Every object in the array must have exactly this shape:
{
  "id": "string",
  "title": "string",
  "priority": "High" | "Medium" | "Low",
  "description": "string",
  "expectedResult": "string"
}

"description" is a numbered list of steps separated by newlines.  Any
prerequisite or setup actions are the first numbered steps; there is no
separate prerequisites field.

Follow every guideline in the user message for test content and naming.

Example (illustrative only):
[
  {
    "id": "TC-POS-1",
    "title": "[Positive] Verify user can log in with valid credentials",
    "priority": "High",
    "description": "1. Ensure user account 'testuser' exists and is active.\\n2. Open the login page.\\n3. Enter username 'testuser' and its valid password.\\n4. Click the login button.",
    "expectedResult": "User is logged in and redirected to the dashboard."
  },
  {
    "id": "TC-NEG-USERNAME-1",
    "title": "[Negative] Verify error message for empty username",
    "priority": "High",
    "description": "1. Open the login page.\\n2. Leave the username field empty.\\n3. Enter a valid password.\\n4. Click the login button.",
    "expectedResult": "The message 'Username is required' is shown and the user stays on the login page."
  }
]
"""

COVERAGE_GUIDELINES = """\
Generate test cases following these guidelines:

1. ONE CONDITION PER TEST CASE:
   - Every test case verifies exactly one condition or scenario.
   - Never combine several conditions in a single test case.

2. DATA DICTIONARY COVERAGE (only when a data dictionary is given):
   - Create test cases for EVERY field in the dictionary.
   - For each field verify that: valid input is accepted (positive); a
     required field left empty is rejected (negative); an optional field
     may be left empty; each field-specific validation rule is enforced.

3. POSITIVE TEST CASES:
   - At least 3-5 cases covering the primary user flows under normal
     conditions; every acceptance criterion gets at least one.

4. NEGATIVE TEST CASES:
   - At least 3-5 cases with invalid, missing or unexpected input, one
     invalid-input type per case, checking error handling and messages.

5. EDGE CASES:
   - At least 2-3 cases for boundary conditions (min/max values, empty
     sets, very large data), one boundary per case.

6. DATA FLOW TEST CASES:
   - At least 3-4 cases tracing data from input through storage to
     output, checking integrity, transformations, persistence and
     retrieval.

7. INTEGRATION TEST CASES:
   - 1-2 cases for interactions with other components or systems, when
     applicable.

Each test case has:
- id: category prefix plus a sequence number
- title: clear and descriptive, starting with the test type, e.g. "[Negative]"
- priority: High, Medium or Low
- description: numbered steps, setup / prerequisite steps first
- expectedResult: a specific, verifiable outcome

Id naming convention:
- Positive: TC-POS-<n>
- Negative: TC-NEG-<n>
- Edge: TC-EDGE-<n>
- Data flow: TC-DF-<n>
- Integration: TC-INT-<n>
- Data dictionary fields: TC-<type>-<FIELD>-<n>, e.g. TC-POS-USERNAME-1

Return the complete set as a single valid JSON array."""


@dataclass(frozen=True)
class PromptRequest:
    system: str
    user: str


def _has_text(value: str | None) -> bool:
    return bool(value and value.strip())


def format_documents(documents: list[SupportingDocument]) -> str:
    """Wrap each document in delimiters so the model can attribute content."""
    blocks = [
        f"--- Document: {doc.name} ---\n{doc.text.strip()}\n--- End Document ---"
        for doc in documents
        if _has_text(doc.text)
    ]
    return "\n\n".join(blocks)


def compose_user_message(data: GenerationInput) -> str:
    """Assemble the user-role message for one generation call."""
    parts = [
        "You are generating a thorough set of test cases for the user story "
        "below, covering positive, negative, edge, boundary, data flow and "
        "integration scenarios.",
        f"User Story Title: {data.story_title}",
        f"Acceptance Criteria:\n{data.acceptance_criteria}",
    ]
    if _has_text(data.data_dictionary):
        parts.append(f"Data Dictionary:\n{data.data_dictionary.strip()}")

    documents_text = format_documents(data.documents)
    if documents_text:
        parts.append(f"Supporting Business Documents Content:\n{documents_text}")

    parts.append(COVERAGE_GUIDELINES)
    return "\n\n".join(parts)


def build_request(data: GenerationInput) -> PromptRequest:
    return PromptRequest(system=SYSTEM_PROMPT, user=compose_user_message(data))
