from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import requests

from element_api.errors import ConfigurationError, ParseError
from element_api.fallback import fallback
from element_api.llm_parsing import parse_element
from element_api.llm_prompts import build_messages
from element_api.models import GeneratedElement, normalize_kind

log = logging.getLogger(__name__)

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo").strip()
OPENAI_ENDPOINT = os.getenv("OPENAI_ENDPOINT", "https://api.openai.com/v1/chat/completions").strip()

try:
    TEMPERATURE = float(os.getenv("TEMPERATURE", "0.7"))
except ValueError:
    TEMPERATURE = 0.7
try:
    LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "1000"))
except ValueError:
    LLM_MAX_TOKENS = 1000

# No client-side timeout unless configured; the provider's own limits apply
_timeout_raw = os.getenv("LLM_TIMEOUT_SECS", "").strip()
try:
    LLM_TIMEOUT_SECS: Optional[float] = float(_timeout_raw) if _timeout_raw else None
except ValueError:
    LLM_TIMEOUT_SECS = None


def status() -> Dict[str, Any]:
    return {
        "provider": "openai" if OPENAI_API_KEY else None,
        "model": OPENAI_MODEL if OPENAI_API_KEY else None,
        "has_token": bool(OPENAI_API_KEY),
        "using": "openai" if OPENAI_API_KEY else "fallback",
    }


def _requested_type(element_type: Any) -> Optional[str]:
    if isinstance(element_type, str) and element_type.strip():
        return element_type.strip()
    return None


def _completion_text(payload: Any) -> Optional[str]:
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) and content.strip() else None


def _call_openai_for_element(prompt: str, element_type: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Call the chat-completion endpoint once and parse an element dict; None on failure."""
    headers = {
        "Authorization": f"Bearer {OPENAI_API_KEY}",
        "Content-Type": "application/json",
    }
    body = {
        "model": OPENAI_MODEL,
        "messages": build_messages(prompt, element_type),
        "temperature": TEMPERATURE,
        "max_tokens": LLM_MAX_TOKENS,
    }

    try:
        resp = requests.post(OPENAI_ENDPOINT, headers=headers, json=body, timeout=LLM_TIMEOUT_SECS)
    except Exception as e:
        log.warning("Completion request error: %r", e)
        return None

    if not 200 <= resp.status_code < 300:
        try:
            msg = resp.text[:400]
        except Exception:
            msg = str(resp.status_code)
        log.warning("Completion HTTP %s: %s", resp.status_code, msg)
        return None

    try:
        payload = resp.json()
    except ValueError:
        log.warning("Completion body is not JSON")
        return None

    text = _completion_text(payload)
    if text is None:
        log.warning("Completion returned no content")
        return None

    try:
        return parse_element(text)
    except ParseError as e:
        log.warning("Completion content unusable: %s", e.error_description)
        return None


def generate_element(prompt: str, element_type: Optional[str] = None) -> GeneratedElement:
    """Generate an HTML/CSS element for `prompt`.

    Raises ConfigurationError when no completion key is configured. Any other
    failure (transport, non-2xx, bad JSON, missing html/css) resolves to the
    template fallback for the same inputs.
    """
    if not OPENAI_API_KEY:
        raise ConfigurationError("Missing completion API configuration", "OPENAI_API_KEY is not set")

    requested = _requested_type(element_type)
    doc = _call_openai_for_element(prompt, requested)
    if doc is None:
        log.info("generate_element: serving template fallback kind=%s", normalize_kind(requested))
        return fallback(prompt, requested)

    return GeneratedElement(
        html=doc["html"],
        css=doc["css"],
        element_type=doc.get("elementType") or normalize_kind(requested),
    )
