"""Hand a generated element to whatever insertion surface the host offers.

Two surfaces exist. When the host exposes a designer API with
`insert_element`, the HTML is converted to a small attributed tree and the
CSS to selector -> properties rules, and both are handed over natively.
Otherwise a copy-paste preview modal is rendered into the host's container
and dismissed automatically after PREVIEW_TIMEOUT_SECS.
"""
from __future__ import annotations

import logging
import os
import re
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from bs4 import BeautifulSoup
from bs4.element import CData, Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag

from element_api.errors import InsertionFailed
from element_api.models import GeneratedElement
from element_api.render import render_template

log = logging.getLogger(__name__)

try:
    PREVIEW_TIMEOUT_SECS = float(os.getenv("PREVIEW_TIMEOUT_SECS", "10"))
except ValueError:
    PREVIEW_TIMEOUT_SECS = 10.0

_CSS_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_CSS_RULE_RE = re.compile(r"([^{}]+)\{([^{}]*)\}")
_NON_TEXT = (Comment, Declaration, Doctype, ProcessingInstruction, CData)


@dataclass
class ElementNode:
    tag: str
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List[Union["ElementNode", str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tag": self.tag,
            "attributes": dict(self.attributes),
            "children": [c.to_dict() if isinstance(c, ElementNode) else c for c in self.children],
        }


@dataclass
class StyleRule:
    selector: str
    properties: Dict[str, str]

    def to_dict(self) -> Dict[str, Any]:
        return {"selector": self.selector, "properties": dict(self.properties)}


@dataclass
class HostCapabilities:
    """What the hosting page offers: a designer API object and/or a preview container."""

    designer: Any = None
    container: Any = None


@dataclass
class InsertionResult:
    mode: str
    element: Optional[ElementNode] = None
    styles: List[StyleRule] = field(default_factory=list)
    preview_id: Optional[str] = None


def _walk(tag: Tag) -> ElementNode:
    attrs: Dict[str, str] = {}
    for key, value in tag.attrs.items():
        # bs4 keeps multi-valued attributes (class, rel, ...) as lists
        attrs[key] = " ".join(value) if isinstance(value, list) else str(value)
    children: List[Union[ElementNode, str]] = []
    for child in tag.children:
        if isinstance(child, Tag):
            children.append(_walk(child))
        elif isinstance(child, NavigableString) and not isinstance(child, _NON_TEXT):
            text = str(child).strip()
            if text:
                children.append(text)
    return ElementNode(tag=tag.name.lower(), attributes=attrs, children=children)


def html_to_tree(html: str) -> ElementNode:
    """Depth-first conversion of the first element in `html`.

    HTML with no element at all becomes a div wrapping the raw text.
    """
    raw = html or ""
    soup = BeautifulSoup(raw, "html.parser")
    first = soup.find(True)
    if first is None:
        text = raw.strip()
        return ElementNode(tag="div", children=[text] if text else [])
    return _walk(first)


def parse_css_rules(css: str) -> List[StyleRule]:
    rules: List[StyleRule] = []
    text = _CSS_COMMENT_RE.sub("", css or "")
    for m in _CSS_RULE_RE.finditer(text):
        selector = m.group(1).strip()
        props: Dict[str, str] = {}
        for decl in m.group(2).split(";"):
            key, sep, value = decl.partition(":")
            if sep and key.strip() and value.strip():
                props[key.strip()] = value.strip()
        if selector and props:
            rules.append(StyleRule(selector=selector, properties=props))
    return rules


class InsertionSurface(ABC):
    mode = ""

    @abstractmethod
    def insert(self, element: GeneratedElement) -> InsertionResult:
        ...

    def dispose(self) -> None:
        pass


class NativeInsertion(InsertionSurface):
    mode = "native"

    def __init__(self, designer: Any) -> None:
        self.designer = designer

    def _target_parent(self) -> Any:
        get_selected = getattr(self.designer, "get_selected_elements", None)
        if not callable(get_selected):
            return None
        selected = get_selected() or []
        return selected[0] if selected else None

    def insert(self, element: GeneratedElement) -> InsertionResult:
        rules = parse_css_rules(element.css)
        tree = html_to_tree(element.html)
        try:
            add_rule = getattr(self.designer, "add_style_rule", None)
            if callable(add_rule):
                for rule in rules:
                    add_rule(rule.selector, dict(rule.properties))
            self.designer.insert_element(tree.to_dict(), self._target_parent())
        except Exception as e:
            log.error("insertion: designer API rejected element: %r", e)
            raise InsertionFailed(
                "Designer API rejected the element",
                f"{e}. Copy the HTML and CSS manually.",
            ) from e
        log.info("insertion: native insert tag=%s rules=%d", tree.tag, len(rules))
        return InsertionResult(mode=self.mode, element=tree, styles=rules)


class PreviewInsertion(InsertionSurface):
    """Copy-paste modal; owns its dismiss timers until dispose()."""

    mode = "preview"

    def __init__(self, container: Any, timeout_secs: Optional[float] = None) -> None:
        self.container = container
        self.timeout_secs = PREVIEW_TIMEOUT_SECS if timeout_secs is None else timeout_secs
        self._timers: Dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def insert(self, element: GeneratedElement) -> InsertionResult:
        modal_id = f"ai-preview-{uuid.uuid4().hex[:8]}"
        markup = render_template(
            "preview/modal.html",
            modal_id=modal_id,
            html=element.html,
            css=element.css,
            element_type=element.element_type,
            dismiss_after_ms=int(self.timeout_secs * 1000),
        )
        self.container.append(modal_id, markup)
        timer = threading.Timer(self.timeout_secs, self.close, args=(modal_id,))
        timer.daemon = True
        with self._lock:
            self._timers[modal_id] = timer
        timer.start()
        log.info("insertion: preview shown id=%s dismiss_after=%.1fs", modal_id, self.timeout_secs)
        return InsertionResult(mode=self.mode, preview_id=modal_id)

    def close(self, modal_id: str) -> None:
        with self._lock:
            timer = self._timers.pop(modal_id, None)
        if timer is None:
            return
        timer.cancel()
        self.container.remove(modal_id)

    def dispose(self) -> None:
        with self._lock:
            ids = list(self._timers)
        for modal_id in ids:
            self.close(modal_id)


class PreviewContainer:
    """In-memory stand-in for a page region that holds preview modals."""

    def __init__(self) -> None:
        self._nodes: Dict[str, str] = {}
        self._lock = threading.Lock()

    def append(self, node_id: str, markup: str) -> None:
        with self._lock:
            self._nodes[node_id] = markup

    def remove(self, node_id: str) -> None:
        with self._lock:
            self._nodes.pop(node_id, None)

    def __contains__(self, node_id: object) -> bool:
        with self._lock:
            return node_id in self._nodes

    def __len__(self) -> int:
        with self._lock:
            return len(self._nodes)

    def markup(self, node_id: str) -> Optional[str]:
        with self._lock:
            return self._nodes.get(node_id)

    def render(self) -> str:
        with self._lock:
            return "\n".join(self._nodes.values())


def select_surface(host: HostCapabilities) -> InsertionSurface:
    designer = getattr(host, "designer", None)
    if designer is not None and callable(getattr(designer, "insert_element", None)):
        return NativeInsertion(designer)
    container = getattr(host, "container", None)
    if container is not None and callable(getattr(container, "append", None)) and callable(
        getattr(container, "remove", None)
    ):
        return PreviewInsertion(container)
    raise InsertionFailed()


def insert(element: GeneratedElement, host: HostCapabilities) -> InsertionResult:
    return select_surface(host).insert(element)
