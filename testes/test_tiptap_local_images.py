import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest
pytest.importorskip("bs4")

from wp_directus.parsers.tiptap_local import convert_html_to_tiptap, preprocess_wordpress_content
from wp_directus.parsers.tiptap_schema import nodes_of_type


def test_caption_shortcode_becomes_captioned_image():
    doc = convert_html_to_tiptap('[caption id="x"]<img src="/a.png">Hello[/caption]')
    images = nodes_of_type(doc, "image")
    assert len(images) == 1
    attrs = images[0]["attrs"]
    assert attrs["src"] == "/a.png"
    assert attrs["subCaption"] == "Hello"
    assert attrs["withCaption"] is True
    assert doc["content"] == images


def test_caption_without_image_is_left_alone():
    assert preprocess_wordpress_content("[caption]only text[/caption]") == "[caption]only text[/caption]"


def test_figure_with_figcaption():
    html = '<figure><img src="/b.jpg" alt="B" height="120"><figcaption> Under </figcaption></figure>'
    (img,) = nodes_of_type(convert_html_to_tiptap(html), "image")
    assert img["attrs"]["alt"] == "B"
    assert img["attrs"]["height"] == 120
    assert img["attrs"]["subCaption"] == "Under"


def test_lone_image_paragraph_is_an_image_block():
    doc = convert_html_to_tiptap('<p> <img src="/c.jpg"> </p>')
    assert [n["type"] for n in doc["content"]] == ["image"]
    assert doc["content"][0]["attrs"]["withCaption"] is False


def test_images_inside_inline_context_are_dropped():
    doc = convert_html_to_tiptap('<h2>Title <img src="/d.jpg"></h2>')
    assert nodes_of_type(doc, "image") == []
    assert doc["content"][0]["content"] == [{"type": "text", "text": "Title "}]


def test_empty_alt_does_not_swallow_following_markup():
    doc = convert_html_to_tiptap('<p><img src="/a.png" alt=""></p><p>after</p>')
    assert [n["type"] for n in doc["content"]] == ["image", "paragraph"]
    assert doc["content"][0]["attrs"]["src"] == "/a.png"
    assert doc["content"][1]["content"] == [{"type": "text", "text": "after"}]


def test_preprocess_keeps_empty_attributes_and_collapses_doubled_quotes():
    assert preprocess_wordpress_content('<img src=""/a.png"" alt="">') == '<img src="/a.png" alt="">'
    assert preprocess_wordpress_content('<img alt="" src="/b.png"/>') == '<img alt="" src="/b.png"/>'
