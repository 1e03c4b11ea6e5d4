from __future__ import annotations

import re


class LanguageDetector:
    """Strategy deciding the ``languages_code`` of a translation row."""

    default = "en-VN"

    def detect(self, text: str) -> str:
        raise NotImplementedError


class HeuristicLanguageDetector(LanguageDetector):
    """
    Keyword/Unicode-range guess tuned for a Vietnamese site with some Thai
    content:

    - any Thai character -> ``th-TH``
    - any Vietnamese diacritic -> ``vi-VN``
    - a common Vietnamese word written without diacritics -> ``vi-VN``
    - otherwise ``en-VN``
    """

    THAI_RE = re.compile("[\u0E00-\u0E7F]")
    VIETNAMESE_RE = re.compile(
        r"[àáạảãâầấậẩẫăằắặẳẵèéẹẻẽêềếệểễìíịỉĩòóọỏõôồốộổỗơờớợởỡùúụủũưừứựửữỳýỵỷỹđ]",
        re.IGNORECASE,
    )
    STOP_WORDS = (
        "nha", "cua", "viec", "giup", "don", "dep", "ve", "sinh", "may", "lanh",
        "giat", "ui", "nau", "an", "gia", "dinh", "theo", "gio", "dich", "vu",
        "khach", "hang", "cong", "dong", "btasker", "btaskee", "khuyen", "mai",
        "thong", "cao", "bao", "chi", "tuyen", "dung", "meo", "vat", "thu",
        "cung", "cach", "su", "khac", "van", "chuyen", "ngay", "le", "mon",
        "ngon", "thuc", "phong", "mua", "sam",
    )

    def __init__(self, default: str = "en-VN"):
        self.default = default
        # ASCII word boundaries so slugs like "don-dep-nha" split on "-"
        self._stop_words_re = re.compile(
            r"\b(?:%s)\b" % "|".join(self.STOP_WORDS),
            re.IGNORECASE | re.ASCII,
        )

    def detect(self, text: str) -> str:
        text = text or ""
        if self.THAI_RE.search(text):
            return "th-TH"
        if self.VIETNAMESE_RE.search(text):
            return "vi-VN"
        if self._stop_words_re.search(text):
            return "vi-VN"
        return self.default
