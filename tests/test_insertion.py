import threading

import pytest
from fastapi.testclient import TestClient

from element_api import insertion
from element_api.errors import InsertionFailed
from element_api.fallback import fallback
from element_api.insertion import (
    HostCapabilities,
    NativeInsertion,
    PreviewContainer,
    PreviewInsertion,
    html_to_tree,
    parse_css_rules,
    select_surface,
)
from element_api.main import app
from element_api.models import GeneratedElement

client = TestClient(app)


class FakeDesigner:
    def __init__(self, selected=None, fail=False):
        self.inserted = []
        self.rules = []
        self.selected = selected or []
        self.fail = fail

    def insert_element(self, tree, parent=None):
        if self.fail:
            raise RuntimeError("designer offline")
        self.inserted.append((tree, parent))

    def add_style_rule(self, selector, properties):
        self.rules.append((selector, properties))

    def get_selected_elements(self):
        return self.selected


def test_html_to_tree_walks_depth_first():
    html = '<div class="card wide" id="c1"><h3>Title</h3><p>Body <b>bold</b> tail</p></div>'
    tree = html_to_tree(html).to_dict()
    assert tree["tag"] == "div"
    assert tree["attributes"] == {"class": "card wide", "id": "c1"}
    h3, p = tree["children"]
    assert h3 == {"tag": "h3", "attributes": {}, "children": ["Title"]}
    assert p["children"] == ["Body", {"tag": "b", "attributes": {}, "children": ["bold"]}, "tail"]


def test_html_to_tree_takes_first_element_and_skips_comments():
    tree = html_to_tree("\n  <!-- note --><button type='submit'>Go</button><span>x</span>")
    assert tree.tag == "button"
    assert tree.attributes == {"type": "submit"}
    assert tree.children == ["Go"]


def test_html_to_tree_without_elements():
    assert html_to_tree("just text").to_dict() == {"tag": "div", "attributes": {}, "children": ["just text"]}


def test_parse_css_rules():
    css = """
    /* generated */
    .btn { color: white; background: url(https://x.test/a.png); }
    .btn:hover{transform:translateY(-2px)}
    .empty { }
    """
    rules = [r.to_dict() for r in parse_css_rules(css)]
    assert rules == [
        {"selector": ".btn", "properties": {"color": "white", "background": "url(https://x.test/a.png)"}},
        {"selector": ".btn:hover", "properties": {"transform": "translateY(-2px)"}},
    ]


def test_parse_css_rules_flattens_media_queries():
    css = "@media (max-width: 600px) { .a { padding: 4px; } }"
    rules = parse_css_rules(css)
    assert [r.selector for r in rules] == [".a"]


def test_select_surface_prefers_native():
    surface = select_surface(HostCapabilities(designer=FakeDesigner(), container=PreviewContainer()))
    assert isinstance(surface, NativeInsertion)


def test_select_surface_falls_back_to_preview():
    surface = select_surface(HostCapabilities(designer=object(), container=PreviewContainer()))
    assert isinstance(surface, PreviewInsertion)


def test_select_surface_without_anything():
    with pytest.raises(InsertionFailed) as exc:
        select_surface(HostCapabilities())
    assert "copy" in exc.value.error_description.lower()


def test_native_insert_hands_tree_and_rules_to_designer():
    designer = FakeDesigner(selected=["section-1", "section-2"])
    element = fallback('Create a button that says "Go"', "button")
    result = insertion.insert(element, HostCapabilities(designer=designer))
    assert result.mode == "native"
    tree, parent = designer.inserted[0]
    assert parent == "section-1"
    assert tree == {"tag": "button", "attributes": {"class": "ai-generated-button"}, "children": ["Go"]}
    selectors = [s for s, _ in designer.rules]
    assert ".ai-generated-button" in selectors
    assert ".ai-generated-button:hover" in selectors


def test_native_insert_failure_is_insertion_failed():
    element = GeneratedElement(html="<p>x</p>", css="p{color:red}", element_type="generic")
    with pytest.raises(InsertionFailed):
        insertion.insert(element, HostCapabilities(designer=FakeDesigner(fail=True)))


def test_preview_renders_escaped_code_and_can_close():
    container = PreviewContainer()
    surface = PreviewInsertion(container, timeout_secs=60)
    try:
        element = GeneratedElement(html="<h1>Hi</h1>", css="h1{margin:0}", element_type="header")
        result = surface.insert(element)
        assert result.mode == "preview"
        markup = container.markup(result.preview_id)
        assert "&lt;h1&gt;Hi&lt;/h1&gt;" in markup
        assert "h1{margin:0}" in markup
        assert "Copy HTML" in markup and "Copy CSS" in markup
        surface.close(result.preview_id)
        assert result.preview_id not in container
    finally:
        surface.dispose()


def test_preview_auto_dismisses(monkeypatch):
    container = PreviewContainer()
    removed = threading.Event()
    original_remove = container.remove

    def remove(node_id):
        original_remove(node_id)
        removed.set()

    monkeypatch.setattr(container, "remove", remove)
    surface = PreviewInsertion(container, timeout_secs=0.05)
    result = surface.insert(GeneratedElement(html="<p>a</p>", css="p{}"))
    assert removed.wait(2.0)
    assert result.preview_id not in container


def test_dispose_removes_all_previews():
    container = PreviewContainer()
    surface = PreviewInsertion(container, timeout_secs=60)
    surface.insert(GeneratedElement(html="<p>a</p>", css="p{}"))
    surface.insert(GeneratedElement(html="<p>b</p>", css="p{}"))
    assert len(container) == 2
    surface.dispose()
    assert len(container) == 0


def test_element_tree_endpoint():
    r = client.post(
        "/api/element-tree",
        json={"html": "<div class='a'><span>x</span></div>", "css": ".a{color:red}"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["element"]["tag"] == "div"
    assert body["element"]["children"][0]["children"] == ["x"]
    assert body["styles"] == [{"selector": ".a", "properties": {"color": "red"}}]


def test_element_tree_requires_html():
    r = client.post("/api/element-tree", json={"css": ".a{}"})
    assert r.status_code == 400
    assert r.json() == {"error": "HTML is required"}
