import json
import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from wp_directus.parsers.tiptap_schema import doc, image, paragraph, table, table_cell, table_row, text_node
from wp_directus.parsers.url_rewriter import (
    asset_path,
    build_content_envelope,
    rewrite_html_urls,
    rewrite_tiptap_urls,
)

BASE = "https://example.com"
MAPPING = {"https://example.com/wp-content/uploads/a.jpg": "uuid-1"}


def test_mapped_image_source_is_rewritten_and_unmapped_left_verbatim():
    tree = doc(
        [
            image("https://example.com/wp-content/uploads/a.jpg"),
            image("https://example.com/wp-content/uploads/unknown.jpg"),
        ]
    )
    result = rewrite_tiptap_urls(tree, MAPPING, base_url=BASE)
    assert result["content"][0]["attrs"]["src"] == asset_path("uuid-1") == "/assets/uuid-1"
    assert result["content"][1]["attrs"]["src"] == "https://example.com/wp-content/uploads/unknown.jpg"
    # input untouched
    assert tree["content"][0]["attrs"]["src"] == "https://example.com/wp-content/uploads/a.jpg"


def test_relative_sources_and_nested_images_are_resolved():
    tree = doc(
        [
            paragraph([text_node("x")]),
            table([table_row([table_cell([image("/wp-content/uploads/a.jpg")])])]),
        ]
    )
    result = rewrite_tiptap_urls(tree, MAPPING, base_url=BASE)
    cell_image = result["content"][1]["content"][0]["content"][0]["content"][0]
    assert cell_image["attrs"]["src"] == "/assets/uuid-1"


def test_no_tree_or_no_mapping():
    assert rewrite_tiptap_urls(None, MAPPING, base_url=BASE) is None
    tree = doc([image("/wp-content/uploads/a.jpg")])
    assert rewrite_tiptap_urls(tree, {}, base_url=BASE) == tree


def test_html_rewrite_covers_every_spelling():
    html = (
        '<img src="https://example.com/wp-content/uploads/a.jpg">'
        '<a href="/wp-content/uploads/a.jpg">a</a>'
        '<img src="http://localhost:8000/wp-content/uploads/a.jpg">'
        '<img src="/wp-content/uploads/other.jpg">'
    )
    assert rewrite_html_urls(html, MAPPING, base_url=BASE) == (
        '<img src="/assets/uuid-1">'
        '<a href="/assets/uuid-1">a</a>'
        '<img src="/assets/uuid-1">'
        '<img src="/wp-content/uploads/other.jpg">'
    )


def test_html_rewrite_undoes_export_quotes():
    assert rewrite_html_urls('<p class=""x"">y</p>', {}, base_url=BASE) == '<p class="x">y</p>'


def test_html_rewrite_keeps_empty_attributes():
    html = '<img src="/wp-content/uploads/a.jpg" alt=""><p>after</p>'
    assert rewrite_html_urls(html, MAPPING, base_url=BASE) == '<img src="/assets/uuid-1" alt=""><p>after</p>'


def test_content_envelope():
    tree = doc([paragraph([text_node("hé")])])
    envelope = json.loads(build_content_envelope("<p>hé</p>", tree))
    assert set(envelope) == {"json", "html", "lastSaved"}
    assert envelope["json"] == tree
    assert envelope["html"] == "<p>hé</p>"
    assert isinstance(envelope["lastSaved"], int)
