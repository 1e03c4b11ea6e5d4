import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest
pytest.importorskip("bs4")

from wp_directus.parsers.tiptap_local import convert_html_to_tiptap
from wp_directus.parsers.tiptap_schema import nodes_of_type


def top(doc, t):
    return [n for n in doc.get("content", []) if n.get("type") == t]


def test_bold_then_plain_merges_into_two_runs():
    doc = convert_html_to_tiptap("<p><strong>Hi</strong> there</p>")
    assert doc["type"] == "doc"
    assert len(doc["content"]) == 1
    para = doc["content"][0]
    assert para["type"] == "paragraph"
    assert para["content"] == [
        {"type": "text", "text": "Hi", "marks": [{"type": "bold"}]},
        {"type": "text", "text": " there"},
    ]


def test_heading_list_blockquote_rule_and_code():
    html = """
    <h2>Title</h2>
    <ul><li>one</li><li>two</li></ul>
    <ol><li>first</li></ol>
    <blockquote>quote</blockquote>
    <hr/>
    <pre><code>line1\nline2</code></pre>
    """
    doc = convert_html_to_tiptap(html)
    assert [n["type"] for n in doc["content"]] == [
        "heading",
        "bulletList",
        "orderedList",
        "blockquote",
        "horizontalRule",
        "codeBlock",
    ]
    heading = doc["content"][0]
    assert heading["attrs"]["level"] == 2
    assert heading["content"] == [{"type": "text", "text": "Title"}]
    bullets = doc["content"][1]
    assert [item["type"] for item in bullets["content"]] == ["listItem", "listItem"]
    assert bullets["content"][1]["content"][0]["content"][0]["text"] == "two"
    assert doc["content"][5]["content"][0]["text"] == "line1\nline2"


def test_inline_marks_links_and_span_styles():
    html = (
        '<p><a href="https://ex.com">link</a> <em>it</em> <u>u</u> <del>s</del> '
        'x<sup>2</sup> <code>c</code> '
        '<span style="font-weight: bold">B</span><span style="color: red">plain</span></p>'
    )
    runs = convert_html_to_tiptap(html)["content"][0]["content"]
    by_text = {r["text"]: r.get("marks") for r in runs}
    assert by_text["link"] == [{"type": "link", "attrs": {"href": "https://ex.com", "target": "_blank"}}]
    assert by_text["it"] == [{"type": "italic"}]
    assert by_text["u"] == [{"type": "underline"}]
    assert by_text["s"] == [{"type": "strike"}]
    assert by_text["2"] == [{"type": "superscript"}]
    assert by_text["c"] == [{"type": "code"}]
    assert by_text["B"] == [{"type": "bold"}]
    assert any(r["text"].endswith("plain") and "marks" not in r for r in runs)


def test_nested_identical_marks_are_not_repeated():
    runs = convert_html_to_tiptap("<p><strong><b>x</b></strong></p>")["content"][0]["content"]
    assert runs == [{"type": "text", "text": "x", "marks": [{"type": "bold"}]}]


def test_line_breaks_and_nbsp_inside_paragraph():
    runs = convert_html_to_tiptap("<p>a<br>b&nbsp;c</p>")["content"][0]["content"]
    assert runs == [{"type": "text", "text": "a\nb c"}]


def test_div_wrappers_are_flattened_and_loose_text_becomes_paragraph():
    doc = convert_html_to_tiptap("<div><p>a</p><div><p>b</p></div></div>loose text")
    paras = top(doc, "paragraph")
    assert [p["content"][0]["text"] for p in paras] == ["a", "b", "loose text"]


def test_table_rows_and_header_cells():
    html = "<table><tr><th>A</th><td>B</td></tr><tr><td>C</td><td>D</td></tr></table>"
    (tbl,) = top(convert_html_to_tiptap(html), "table")
    assert len(tbl["content"]) == 2
    first_row = tbl["content"][0]["content"]
    assert [c["type"] for c in first_row] == ["tableHeader", "tableCell"]
    assert first_row[0]["content"] == [{"type": "paragraph", "content": [{"type": "text", "text": "A"}]}]


def test_paragraph_with_text_and_image_is_split():
    doc = convert_html_to_tiptap('<p>before <img src="/x.png" width="300px"> after</p>')
    assert [n["type"] for n in doc["content"]] == ["paragraph", "image", "paragraph"]
    assert doc["content"][1]["attrs"]["src"] == "/x.png"
    assert doc["content"][1]["attrs"]["width"] == 300


def test_block_editor_comments_are_removed():
    doc = convert_html_to_tiptap("<!-- wp:paragraph --><p>x</p><!-- /wp:paragraph -->")
    assert doc["content"] == [
        {"type": "paragraph", "attrs": {"textAlign": "left"}, "content": [{"type": "text", "text": "x"}]}
    ]


def test_post_without_media_has_no_images_and_at_least_one_block():
    doc = convert_html_to_tiptap("<h3>No media</h3><p>Just words.</p>")
    assert doc is not None
    assert len(doc["content"]) >= 1
    assert nodes_of_type(doc, "image") == []


def test_empty_input_yields_no_document():
    assert convert_html_to_tiptap("") is None
    assert convert_html_to_tiptap(None) is None
    assert convert_html_to_tiptap("   \n ") is None


def test_markup_without_visible_text_yields_no_document():
    assert convert_html_to_tiptap("<!-- note -->") is None
    assert convert_html_to_tiptap("<br>") is None
    assert convert_html_to_tiptap("<span> </span><br/>") is None
