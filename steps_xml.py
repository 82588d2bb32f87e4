"""
steps_xml.py – Serialize a test case into the XML that Azure DevOps stores
in `Microsoft.VSTS.TCM.Steps`.

Each step holds two parameterizedString slots (action, expected result).
Slot content is HTML, so it is escaped once here; the overall expected
result lands on the final step only.
"""

from __future__ import annotations

import re

GENERIC_STEP = "Verify expected result."

_STEP_NUMBER_RE = re.compile(r"^\d+\.\s*")

_HTML_ESCAPES = str.maketrans({
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#039;",
})


def escape_html(text: str | None) -> str:
    if text is None:
        return ""
    return text.translate(_HTML_ESCAPES)


def split_steps(description: str | None) -> list[str]:
    """Split a numbered description into bare step actions."""
    if not description:
        return []
    steps: list[str] = []
    for line in description.split("\n"):
        action = _STEP_NUMBER_RE.sub("", line.strip()).strip()
        if action:
            steps.append(action)
    return steps


def format_step_content(text: str | None) -> str:
    """Prepare slot text: newlines become <br /> and the result is escaped."""
    if text is None:
        return ""
    trimmed = text.strip()
    if not trimmed:
        return ""
    return escape_html(trimmed.replace("\n", "<br />"))


def build_steps_xml(description: str | None, expected_result: str | None) -> str:
    """Return the steps XML, or ``""`` when there is nothing to record."""
    expected = (expected_result or "").strip()
    steps = split_steps(description)

    if not steps and expected:
        steps = [GENERIC_STEP]
    if not steps:
        return ""

    parts: list[str] = []
    last = len(steps)
    for number, action in enumerate(steps, start=1):
        step_expected = expected if number == last else ""
        parts.append(
            f'<step id="{number}" type="ActionStep">'
            f'<parameterizedString isformatted="true">{format_step_content(action)}</parameterizedString>'
            f'<parameterizedString isformatted="true">{format_step_content(step_expected)}</parameterizedString>'
            "</step>"
        )
    return f'<steps id="0" last="{last}">{"".join(parts)}</steps>'
