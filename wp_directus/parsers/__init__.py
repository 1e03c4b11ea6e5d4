from .language import HeuristicLanguageDetector, LanguageDetector
from .tiptap_local import convert_html_to_tiptap, preprocess_wordpress_content
from .url_rewriter import build_content_envelope, rewrite_html_urls, rewrite_tiptap_urls

__all__ = [
    "HeuristicLanguageDetector",
    "LanguageDetector",
    "build_content_envelope",
    "convert_html_to_tiptap",
    "preprocess_wordpress_content",
    "rewrite_html_urls",
    "rewrite_tiptap_urls",
]
