from __future__ import annotations

from typing import Any, Dict, List, Optional


# --- Builders for common TipTap nodes ---

def doc(nodes: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": "doc", "content": nodes or []}


def _with_content(node: Dict[str, Any], content: Optional[List[Dict[str, Any]]]) -> Dict[str, Any]:
    # TipTap omits "content" on empty text blocks
    if content:
        node["content"] = content
    return node


def paragraph(text_nodes: Optional[List[Dict[str, Any]]] = None, *, align: Optional[str] = "left") -> Dict[str, Any]:
    node: Dict[str, Any] = {"type": "paragraph"}
    if align:
        node["attrs"] = {"textAlign": align}
    return _with_content(node, text_nodes)


def heading(level: int, text_nodes: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    lvl = max(1, min(6, int(level or 1)))
    node = {"type": "heading", "attrs": {"textAlign": "left", "id": None, "level": lvl}}
    return _with_content(node, text_nodes)


def blockquote(nodes: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": "blockquote", "content": nodes}


def horizontal_rule() -> Dict[str, Any]:
    return {"type": "horizontalRule"}


def code_block(text: str) -> Dict[str, Any]:
    node = {"type": "codeBlock", "attrs": {"language": None}}
    return _with_content(node, [text_node(text)] if text else None)


def list_container(ordered: bool, items: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "type": "orderedList" if ordered else "bulletList",
        "content": items,
    }


def list_item(nodes: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": "listItem", "content": nodes}


def table(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": "table", "content": rows}


def table_row(cells: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": "tableRow", "content": cells}


def table_cell(nodes: List[Dict[str, Any]], header: bool = False) -> Dict[str, Any]:
    return {"type": "tableHeader" if header else "tableCell", "content": nodes}


def text_node(text: str, marks: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    node: Dict[str, Any] = {"type": "text", "text": text or ""}
    if marks:
        node["marks"] = marks
    return node


def mark(mark_type: str, attrs: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    m: Dict[str, Any] = {"type": mark_type}
    if attrs:
        m["attrs"] = attrs
    return m


def link_mark(href: str) -> Dict[str, Any]:
    return mark("link", {"href": href, "target": "_blank"})


def image(
    src: str,
    alt: str = "",
    caption: Optional[str] = None,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> Dict[str, Any]:
    return {
        "type": "image",
        "attrs": {
            "src": src or "",
            "alt": alt or "",
            "subCaption": caption,
            "withCaption": bool(caption),
            "fixed": False,
            "captionDisplayOption": "inner",
            "width": width,
            "height": height,
        },
    }


# --- Tree helpers ---

def iter_nodes(node: Dict[str, Any]):
    """Depth-first walk over ``node`` and all of its descendants."""
    yield node
    for child in node.get("content") or []:
        if isinstance(child, dict):
            yield from iter_nodes(child)


def nodes_of_type(document: Dict[str, Any], node_type: str) -> List[Dict[str, Any]]:
    return [n for n in iter_nodes(document) if n.get("type") == node_type]
