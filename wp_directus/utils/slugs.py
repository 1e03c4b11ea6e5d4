from __future__ import annotations

import re
import unicodedata


def _strip_accents(text: str) -> str:
    return "".join(
        c for c in unicodedata.normalize("NFD", text) if unicodedata.category(c) != "Mn"
    )


def slugify(name: str) -> str:
    """
    URL slug for a category name: lowercase, accents stripped, ``đ`` as
    ``d``, every other run of non-alphanumerics collapsed to ``-``.

    >>> slugify("Dọn dẹp nhà cửa")
    'don-dep-nha-cua'
    """
    t = _strip_accents((name or "").lower())
    # đ has no combining form in NFD
    t = t.replace("đ", "d")
    t = re.sub(r"[^a-z0-9]+", "-", t)
    return t.strip("-")
