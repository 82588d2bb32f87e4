"""
rich_text.py – Flatten Azure DevOps rich-text (HTML) fields into plain text.

This is a best-effort converter, not an HTML parser: the substitutions run
in a fixed order and malformed markup simply passes through as text.
"""

from __future__ import annotations

import re

_BREAK_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_BLOCK_CLOSE_RE = re.compile(r"</(?:p|div|h[1-6]|blockquote|pre)\s*>", re.IGNORECASE)
_BLOCK_OPEN_RE = re.compile(r"<(?:p|div|h[1-6]|blockquote|pre)\b[^>]*>", re.IGNORECASE)
_LI_CLOSE_RE = re.compile(r"</li\s*>", re.IGNORECASE)
_LI_OPEN_RE = re.compile(r"<li\b[^>]*>", re.IGNORECASE)
_ANY_TAG_RE = re.compile(r"<[^>]+>")

_BLANK_RUN_RE = re.compile(r"(?:\n\s*){2,}")
_HSPACE_RE = re.compile(r"[ \t]{2,}")

BULLET = "• "

# &amp; goes last so "&amp;lt;" decodes to the literal text "&lt;".
_ENTITIES = (
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&apos;", "'"),
    ("&amp;", "&"),
)


def _decode_entities(text: str) -> str:
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    return text


def html_to_text(html: str | None) -> str:
    """Convert an HTML fragment to plain text, keeping paragraphs and lists.

    Empty or missing input yields ``""``.
    """
    if not html:
        return ""

    text = _BREAK_RE.sub("\n", html)
    text = _BLOCK_CLOSE_RE.sub("\n\n", text)
    text = _BLOCK_OPEN_RE.sub(" ", text)

    text = _LI_CLOSE_RE.sub("\n", text)
    text = _LI_OPEN_RE.sub("\n" + BULLET, text)

    text = _ANY_TAG_RE.sub("", text)
    text = _decode_entities(text)

    text = _BLANK_RUN_RE.sub("\n\n", text)
    text = _HSPACE_RE.sub(" ", text)
    text = text.replace("\n\n" + BULLET, "\n" + BULLET)

    return text.strip()
