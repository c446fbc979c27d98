from __future__ import annotations

import re
from typing import Any, Dict, Pattern

_QUOTED_RE = re.compile(r"[\"']([^\"']+)[\"']")
_SAYS_RE = re.compile(r"\bsays?\b\s+[\"']?([^\"',.!?]+)", re.IGNORECASE)
_READS_RE = re.compile(r"\b(?:says?|reads?)\b\s+[\"']?([^\"',.!?]+)", re.IGNORECASE)

DEFAULT_LABELS: Dict[str, str] = {
    "button": "Click Me",
    "header": "Your Header Here",
}
GENERIC_LABEL = "Generated Element"


def _phrase_pattern(kind: str) -> Pattern[str]:
    return _READS_RE if kind == "header" else _SAYS_RE


def default_label(kind: Any) -> str:
    return DEFAULT_LABELS.get(kind if isinstance(kind, str) else "", GENERIC_LABEL)


def extract(kind: Any, prompt: Any) -> str:
    """Pull the visible label out of a free-text prompt.

    Tries the first quoted substring, then the phrase after "says"/"say"
    (headers also accept "reads") up to the next punctuation or quote.
    Falls back to the kind's default label. Never raises.
    """
    text = prompt if isinstance(prompt, str) else ""
    kind = kind.strip().lower() if isinstance(kind, str) else ""
    m = _QUOTED_RE.search(text)
    if m:
        return m.group(1)
    m = _phrase_pattern(kind).search(text)
    if m:
        found = m.group(1).strip()
        if found:
            return found
    return default_label(kind)
