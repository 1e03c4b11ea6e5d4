import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest

from wp_directus.parsers.language import HeuristicLanguageDetector, LanguageDetector
from wp_directus.utils.slugs import slugify


@pytest.mark.parametrize(
    "text, expected",
    [
        ("สวัสดีครับ", "th-TH"),
        ("Dọn dẹp nhà cửa", "vi-VN"),
        ("don-dep-nha", "vi-VN"),
        ("Khuyen mai thang 5", "vi-VN"),
        ("Home cleaning guide", "en-VN"),
        ("", "en-VN"),
    ],
)
def test_heuristic_language_detection(text, expected):
    assert HeuristicLanguageDetector().detect(text) == expected


def test_detector_default_is_configurable():
    assert HeuristicLanguageDetector(default="en-US").detect("Weekly news") == "en-US"


def test_base_detector_is_abstract():
    with pytest.raises(NotImplementedError):
        LanguageDetector().detect("x")


def test_slugify():
    assert slugify("Dọn dẹp nhà cửa") == "don-dep-nha-cua"
    assert slugify("Đà Nẵng") == "da-nang"
    assert slugify("  Hello, World! ") == "hello-world"
    assert slugify("") == ""
