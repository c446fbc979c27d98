from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional

from jsonschema import Draft202012Validator

from element_api.errors import ParseError

ELEMENT_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["html", "css"],
    "properties": {
        "html": {"type": "string", "minLength": 1},
        "css": {"type": "string", "minLength": 1},
        "elementType": {"type": "string"},
    },
}

_validator = Draft202012Validator(ELEMENT_SCHEMA)


def _balanced_json_slice(s: str) -> Optional[str]:
    """Return the first complete {...} block, ignoring braces inside strings."""
    in_str = False
    esc = False
    depth = 0
    start_idx = -1
    for i, ch in enumerate(s):
        if not in_str and ch == "{":
            if depth == 0:
                start_idx = i
            depth += 1
        elif not in_str and ch == "}":
            if depth > 0:
                depth -= 1
                if depth == 0 and start_idx != -1:
                    return s[start_idx : i + 1]
        elif ch == '"':
            if not esc:
                in_str = not in_str
            esc = False
            continue
        esc = (ch == "\\") and not esc
    return None


def json_from_text(text: str) -> Any:
    """Extract a JSON value from completion text; raise ParseError on failure.

    Strategy:
    - Plain json.loads on the whole text.
    - Fenced blocks: ```json ...``` first, then any ``` ... ```.
    - First balanced {...} object (brace-aware in presence of strings).
    - Sanitize: remove trailing commas, normalize smart quotes.
    """
    t = (text or "").strip()
    if not t:
        raise ParseError(error_description="empty completion")
    try:
        return json.loads(t)
    except ValueError:
        pass

    candidate = None
    m = re.search(r"```json\s*([\s\S]*?)```", t, re.IGNORECASE)
    if m:
        candidate = m.group(1)
    else:
        m2 = re.search(r"```\s*([\s\S]*?)```", t)
        if m2:
            candidate = m2.group(1)
    if not candidate:
        candidate = _balanced_json_slice(t)
    if not candidate:
        raise ParseError(error_description="no JSON object found")

    try:
        return json.loads(candidate)
    except ValueError:
        s = re.sub(r",\s*([}\]])", r"\1", candidate)
        s = s.replace("“", '"').replace("”", '"').replace("’", "'")
        try:
            return json.loads(s)
        except ValueError as exc:
            raise ParseError(error_description=str(exc)) from exc


def shape_errors(doc: Any) -> List[Dict[str, str]]:
    """Return [{"path", "message"}] for every way `doc` misses the element shape."""
    errors: List[Dict[str, str]] = []
    for err in _validator.iter_errors(doc):
        loc = ".".join(str(p) for p in err.path) or "(root)"
        errors.append({"path": loc, "message": str(err.message)})
    return errors


def parse_element(text: str) -> Dict[str, Any]:
    """Parse completion text into an element dict or raise ParseError."""
    doc = json_from_text(text)
    errors = shape_errors(doc)
    if errors:
        detail = "; ".join(f"{e['path']}: {e['message']}" for e in errors)
        raise ParseError(error_description=detail)
    return doc
