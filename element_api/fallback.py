from __future__ import annotations

from typing import Any

from element_api.extract import extract
from element_api.models import GeneratedElement, normalize_kind
from element_api.render import render_template


def fallback(prompt: Any, kind: Any = None) -> GeneratedElement:
    """
    Canned HTML + CSS for an element kind, used whenever the AI can't answer.
    Every kind, including unknown or missing ones, maps to exactly one template;
    anything unrecognised gets the generic bordered block.
    """
    k = normalize_kind(kind)
    text = prompt if isinstance(prompt, str) else ""
    html = render_template(f"elements/{k}.html", label=extract(k, text), prompt=text.strip())
    css = render_template(f"elements/{k}.css")
    return GeneratedElement(html=html, css=css, element_type=k)
