"""CSS tokenizing, media query parsing and stylesheet extraction."""

from .query import MediaQuery, MediaQueryList, MediaQuerySyntaxError, parse_media_query_list
from .sources import extract_html_styles, extract_markdown_fragments, load_stylesheet
from .stylesheet import Declaration, MediaBlock, StyleRule, Stylesheet, parse_stylesheet
from .tokenize import tokenize

__all__ = [
    "tokenize",
    "MediaQuery",
    "MediaQueryList",
    "MediaQuerySyntaxError",
    "parse_media_query_list",
    "Declaration",
    "MediaBlock",
    "StyleRule",
    "Stylesheet",
    "parse_stylesheet",
    "extract_html_styles",
    "extract_markdown_fragments",
    "load_stylesheet",
]
