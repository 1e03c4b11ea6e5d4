from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from wp_directus.extractors.media_extractor import unescape_export_quotes

from .tiptap_schema import (
    blockquote,
    code_block,
    doc,
    heading,
    horizontal_rule,
    image,
    link_mark,
    list_container,
    list_item,
    mark,
    paragraph,
    table,
    table_cell,
    table_row,
    text_node,
)


Node = Dict[str, Any]
Mark = Dict[str, Any]

BLOCK_TAGS = {
    "p", "h1", "h2", "h3", "h4", "h5", "h6",
    "ul", "ol", "blockquote", "figure", "table", "pre", "div", "hr", "br",
}

_SIMPLE_MARKS = {
    "strong": "bold",
    "b": "bold",
    "em": "italic",
    "i": "italic",
    "cite": "italic",
    "u": "underline",
    "s": "strike",
    "strike": "strike",
    "del": "strike",
    "sup": "superscript",
    "sub": "subscript",
    "code": "code",
}

# span style heuristic: plain substring checks, not CSS parsing
_SPAN_STYLE_MARKS = (
    (re.compile(r"font-weight:\s*bold", re.IGNORECASE), "bold"),
    (re.compile(r"font-style:\s*italic", re.IGNORECASE), "italic"),
    (re.compile(r"text-decoration:\s*underline", re.IGNORECASE), "underline"),
)

_CAPTION_RE = re.compile(r"\[caption[^\]]*\](.*?)\[/caption\]", re.IGNORECASE | re.DOTALL)
_IMG_TAG_RE = re.compile(r"<img[^>]+>", re.IGNORECASE)
_WP_OPEN_COMMENT_RE = re.compile(r"<!--\s*wp:[^>]*-->")
_WP_CLOSE_COMMENT_RE = re.compile(r"<!--\s*/wp:[^>]*-->")
_LEADING_INT_RE = re.compile(r"\s*(\d+)")


def _caption_to_figure(match: "re.Match[str]") -> str:
    inner = match.group(1)
    img = _IMG_TAG_RE.search(inner)
    if not img:
        return match.group(0)
    caption = _IMG_TAG_RE.sub("", inner, count=1).strip()
    return f"<figure>{img.group(0)}<figcaption>{caption}</figcaption></figure>"


def preprocess_wordpress_content(html: Optional[str]) -> str:
    """
    Normalize WordPress-specific markup before parsing.

    - ``[caption ...]<img ...> text[/caption]`` becomes
      ``<figure><img ...><figcaption>text</figcaption></figure>``; a caption
      without an image is left as it is.
    - Block editor comments (``<!-- wp:... -->``) are removed.
    - Doubled quotes from the CSV export are collapsed.
    """
    if not html:
        return ""
    processed = _CAPTION_RE.sub(_caption_to_figure, html)
    processed = _WP_OPEN_COMMENT_RE.sub("", processed)
    processed = _WP_CLOSE_COMMENT_RE.sub("", processed)
    processed = unescape_export_quotes(processed)
    return processed.strip()


def _int_attr(value: Any) -> Optional[int]:
    if value is None:
        return None
    m = _LEADING_INT_RE.match(str(value))
    return int(m.group(1)) if m else None


def _str_attr(el: Tag, name: str) -> str:
    value = el.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return value or ""


def _image_from_img(img: Tag, caption: Optional[str] = None) -> Node:
    return image(
        _str_attr(img, "src"),
        alt=_str_attr(img, "alt"),
        caption=caption,
        width=_int_attr(img.get("width")),
        height=_int_attr(img.get("height")),
    )


def _add_mark(active: List[Mark], new: Mark) -> List[Mark]:
    if any(m.get("type") == new.get("type") for m in active):
        return active
    return active + [new]


def _marks_for(el: Tag, active: List[Mark]) -> List[Mark]:
    name = (el.name or "").lower()
    if name == "a":
        href = _str_attr(el, "href")
        return _add_mark(active, link_mark(href)) if href else active
    if name in _SIMPLE_MARKS:
        return _add_mark(active, mark(_SIMPLE_MARKS[name]))
    if name == "span":
        style = _str_attr(el, "style")
        for pattern, mark_type in _SPAN_STYLE_MARKS:
            if pattern.search(style):
                active = _add_mark(active, mark(mark_type))
    return active


def _walk_inline(children: Iterable[Any], active: List[Mark], out: List[Node], keep_images: bool) -> None:
    for child in children:
        if isinstance(child, PreformattedString):
            # comments, doctypes, CDATA
            continue
        if isinstance(child, NavigableString):
            text = str(child).replace("\xa0", " ")
            if text:
                out.append(text_node(text, list(active) or None))
            continue
        if not isinstance(child, Tag):
            continue
        name = (child.name or "").lower()
        if name in ("script", "style"):
            continue
        if name == "br":
            out.append(text_node("\n", list(active) or None))
            continue
        if name == "img":
            if keep_images:
                out.append(_image_from_img(child))
            continue
        _walk_inline(child.children, _marks_for(child, active), out, keep_images)


def _merge_runs(parts: List[Node]) -> List[Node]:
    """Drop empty text runs and join neighbours that carry the same marks."""
    merged: List[Node] = []
    for part in parts:
        if part.get("type") != "text":
            merged.append(part)
            continue
        if not part.get("text"):
            continue
        last = merged[-1] if merged else None
        if last is not None and last.get("type") == "text" and last.get("marks") == part.get("marks"):
            last["text"] += part["text"]
        else:
            merged.append(dict(part))
    return merged


def parse_inline_content(children: Iterable[Any]) -> List[Node]:
    """Text runs for the given nodes; images are ignored in inline context."""
    parts: List[Node] = []
    _walk_inline(children, [], parts, keep_images=False)
    return _merge_runs(parts)


def _has_visible_text(runs: List[Node]) -> bool:
    return any((r.get("text") or "").strip() for r in runs)


def parse_standalone_content(children: Iterable[Any]) -> List[Node]:
    """
    Content that sits outside any recognized block: split into paragraphs
    and image blocks in document order.  Text runs with nothing visible
    are dropped.
    """
    parts: List[Node] = []
    _walk_inline(children, [], parts, keep_images=True)

    blocks: List[Node] = []
    pending: List[Node] = []

    def flush_text():
        runs = _merge_runs(pending)
        if _has_visible_text(runs):
            blocks.append(paragraph(runs))
        pending.clear()

    for part in parts:
        if part.get("type") == "image":
            flush_text()
            blocks.append(part)
        else:
            pending.append(part)
    flush_text()
    return blocks


def _paragraph_block(el: Tag) -> List[Node]:
    images = el.find_all("img")
    if len(images) == 1 and not el.get_text().strip():
        return [_image_from_img(images[0])]
    if images:
        return parse_standalone_content(el.children)
    return [paragraph(parse_inline_content(el.children))]


def _list_block(el: Tag, ordered: bool) -> List[Node]:
    items: List[Node] = []
    for li in el.find_all("li", recursive=False):
        items.append(list_item([paragraph(parse_inline_content(li.children))]))
    return [list_container(ordered, items)]


def _figure_block(el: Tag) -> List[Node]:
    img = el.find("img")
    if not isinstance(img, Tag):
        return []
    figcaption = el.find("figcaption")
    caption = figcaption.get_text().strip() if isinstance(figcaption, Tag) else ""
    return [_image_from_img(img, caption=caption or None)]


def _table_block(el: Tag) -> List[Node]:
    rows: List[Node] = []
    for tr in el.find_all("tr"):
        # rows of nested tables belong to those tables
        if tr.find_parent("table") is not el:
            continue
        cells = [
            table_cell([paragraph(parse_inline_content(cell.children), align=None)], header=cell.name == "th")
            for cell in tr.find_all(["td", "th"], recursive=False)
        ]
        if cells:
            rows.append(table_row(cells))
    return [table(rows)]


def _convert_block(el: Tag) -> List[Node]:
    name = (el.name or "").lower()
    if name == "p":
        return _paragraph_block(el)
    if name in {"h1", "h2", "h3", "h4", "h5", "h6"}:
        return [heading(int(name[1]), parse_inline_content(el.children))]
    if name in {"ul", "ol"}:
        return _list_block(el, ordered=name == "ol")
    if name == "blockquote":
        return [blockquote([paragraph(parse_inline_content(el.children))])]
    if name == "figure":
        return _figure_block(el)
    if name == "table":
        return _table_block(el)
    if name == "pre":
        return [code_block(el.get_text().strip())]
    if name == "div":
        return convert_nodes(el.children)
    if name == "hr":
        return [horizontal_rule()]
    # top-level <br> only separates standalone runs
    return []


def convert_nodes(children: Iterable[Any]) -> List[Node]:
    """Convert a sequence of sibling nodes into block nodes, in order."""
    blocks: List[Node] = []
    run: List[Any] = []

    def flush_run():
        if run:
            blocks.extend(parse_standalone_content(run))
            run.clear()

    for child in list(children):
        if isinstance(child, PreformattedString):
            continue
        if isinstance(child, Tag) and (child.name or "").lower() in BLOCK_TAGS:
            flush_run()
            blocks.extend(_convert_block(child))
            continue
        run.append(child)
    flush_run()
    return blocks


def convert_html_to_tiptap(html: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Convert WordPress post HTML into a TipTap document.

    Covered:
    - Paragraphs, headings, bullet/ordered lists, blockquotes, tables,
      code blocks, horizontal rules and images (bare, in paragraphs or in
      figures/caption shortcodes).
    - Inline marks: link, bold, italic, underline, strike, superscript,
      subscript and code; spans only through their inline style.
    - ``div`` wrappers are flattened into the surrounding block sequence.

    Returns ``None`` when there is no content left after pre-processing
    or the markup holds no visible text (only comments or line breaks).
    Image ``src`` values are kept as written; see
    :func:`wp_directus.parsers.url_rewriter.rewrite_tiptap_urls`.
    """
    cleaned = preprocess_wordpress_content(html)
    if not cleaned:
        return None

    soup = BeautifulSoup(cleaned, "html.parser")
    for bad in soup.find_all(["script", "style"]):
        bad.decompose()

    nodes = convert_nodes(soup.children)
    if not nodes:
        runs = parse_inline_content(soup.children)
        if not _has_visible_text(runs):
            return None
        nodes = [paragraph(runs)]
    return doc(nodes)
