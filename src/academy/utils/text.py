"""User-supplied text sanitization."""

import re

_TAG_RE = re.compile(r"<[^>]*>")
_SCRIPT_RE = re.compile(r"<(script|style)[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_MENTION_RE = re.compile(r"@([A-Za-z0-9](?:[A-Za-z0-9]|-(?=[A-Za-z0-9])){0,38})")


def sanitize_text(value: str | None) -> str | None:
    """Strip HTML tags (and script/style bodies) and surrounding whitespace."""
    if value is None:
        return None
    cleaned = _SCRIPT_RE.sub("", value)
    cleaned = _TAG_RE.sub("", cleaned)
    return cleaned.strip()


def extract_mentions(content: str) -> list[str]:
    """Return unique @github-username mentions in order of first appearance."""
    seen: dict[str, None] = {}
    for match in _MENTION_RE.finditer(content):
        seen.setdefault(match.group(1), None)
    return list(seen)
