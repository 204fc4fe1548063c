"""Collect CSS from stylesheets, HTML pages and Markdown guides.

HTML is scanned with the standard library parser so that ``<style>`` blocks
and ``<link rel="stylesheet">`` references keep their ``media`` attribute.
Markdown guides contribute their fenced ``css`` and ``html`` code blocks.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from html.parser import HTMLParser
from pathlib import Path
from urllib.parse import unquote, urlsplit

from .stylesheet import Stylesheet, StylesheetBuilder, parse_stylesheet

CSS_SUFFIXES = {".css"}
HTML_SUFFIXES = {".html", ".htm"}
MARKDOWN_SUFFIXES = {".md", ".markdown"}

CSS_LANGS = {"css"}
HTML_LANGS = {"html", "htm", "xhtml"}

# Guard against @import cycles and runaway chains
MAX_IMPORT_DEPTH = 8

_FENCE_RE = re.compile(r"^(?P<indent> {0,3})(?P<fence>`{3,}|~{3,})\s*(?P<info>[^`\n]*)$")


@dataclass(frozen=True)
class Fragment:
    """A fenced code block from a Markdown document."""

    index: int
    language: str
    code: str
    line: int  # line of the first code line


@dataclass(frozen=True)
class StyleSource:
    """A stylesheet reference found in HTML."""

    kind: str  # "style" or "link"
    media: str | None
    line: int
    css: str = ""
    href: str = ""


@dataclass
class HtmlStyles:
    """Everything style-related pulled out of an HTML document."""

    sources: list[StyleSource] = field(default_factory=list)
    viewport_meta: str | None = None
    warnings: list[str] = field(default_factory=list)


def extract_markdown_fragments(markdown: str) -> list[Fragment]:
    """Extract fenced code blocks tagged as CSS or HTML.

    Args:
        markdown: Markdown source

    Returns:
        Fragments in document order. Unclosed fences run to end of document.
    """
    fragments: list[Fragment] = []
    lines = markdown.splitlines()
    i = 0
    while i < len(lines):
        m = _FENCE_RE.match(lines[i])
        if not m:
            i += 1
            continue
        fence = m.group("fence")
        info = m.group("info").strip().split()
        lang = info[0].lower().strip("{}.") if info else ""
        start = i + 1
        j = start
        while j < len(lines):
            close = lines[j].strip()
            if close.startswith(fence[0] * len(fence)) and set(close) == {fence[0]}:
                break
            j += 1
        if lang in CSS_LANGS or lang in HTML_LANGS:
            fragments.append(Fragment(
                index=len(fragments),
                language="css" if lang in CSS_LANGS else "html",
                code="\n".join(lines[start:j]),
                line=start + 1,
            ))
        i = j + 1
    return fragments


class _StyleHTMLParser(HTMLParser):
    """Collects <style>, <link rel=stylesheet> and <meta name=viewport>."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.result = HtmlStyles()
        self._style_media: str | None = None
        self._style_line = 0
        self._style_buf: list[str] | None = None

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        tag_l = tag.lower()
        attr_dict = {k.lower(): (v if v is not None else "") for k, v in attrs}
        line = self.getpos()[0]

        if tag_l == "style":
            self._style_media = attr_dict.get("media")
            self._style_line = line
            self._style_buf = []
            return

        if tag_l == "link":
            rel = {r.lower() for r in attr_dict.get("rel", "").split()}
            if "stylesheet" in rel and "alternate" not in rel:
                href = attr_dict.get("href", "")
                if not href:
                    self.result.warnings.append(f"line {line}: <link rel=stylesheet> without href")
                    return
                self.result.sources.append(StyleSource(
                    kind="link",
                    media=attr_dict.get("media"),
                    line=line,
                    href=href,
                ))
            return

        if tag_l == "meta" and attr_dict.get("name", "").lower() == "viewport":
            self.result.viewport_meta = attr_dict.get("content", "")

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self.handle_starttag(tag, attrs)
        if tag.lower() == "style":
            self.handle_endtag(tag)

    def handle_endtag(self, tag: str) -> None:
        if tag.lower() != "style" or self._style_buf is None:
            return
        self.result.sources.append(StyleSource(
            kind="style",
            media=self._style_media,
            line=self._style_line,
            css="".join(self._style_buf),
        ))
        self._style_buf = None
        self._style_media = None

    def handle_data(self, data: str) -> None:
        if self._style_buf is not None:
            self._style_buf.append(data)


def extract_html_styles(html: str) -> HtmlStyles:
    """Extract style sources from an HTML document."""
    parser = _StyleHTMLParser()
    parser.feed(html)
    parser.close()
    if parser._style_buf is not None:
        parser.result.warnings.append(f"line {parser._style_line}: Unclosed <style> element")
        parser.handle_endtag("style")
    return parser.result


def _is_remote(href: str) -> bool:
    return bool(re.match(r"^(?:[a-z][a-z0-9+.-]*:)?//", href, flags=re.IGNORECASE)) or href.startswith("data:")


def read_source(path: Path) -> str:
    """Read a source file as UTF-8, falling back to Latin-1 for legacy encodings."""
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return path.read_text(encoding="latin-1")


def local_path(href: str, base: Path, root: Path) -> Path:
    """Filesystem path for a local ``href``.

    Query strings and fragments are dropped. Root-relative hrefs (``/css/a.css``)
    resolve against ``root``, the directory of the document being loaded.
    """
    path = unquote(urlsplit(href).path)
    if path.startswith("/"):
        return root / path.lstrip("/")
    return base / path


class _Loader:
    def __init__(self, root: Path) -> None:
        self.root = root
        self.builder = StylesheetBuilder()
        self._stack: list[Path] = []

    def add_css_file(self, path: Path, media: tuple[str, ...] = (), depth: int = 0) -> None:
        resolved = path.resolve()
        if resolved in self._stack:
            self.builder.sheet.warnings.append(f"{path.name}: @import cycle detected; skipped")
            return
        if depth > MAX_IMPORT_DEPTH:
            self.builder.sheet.warnings.append(f"{path.name}: @import chain too deep; skipped")
            return
        text = read_source(path)
        self._stack.append(resolved)
        try:
            self.add_css_text(text, base=path.parent, media=media, origin=path.name, depth=depth)
        finally:
            self._stack.pop()

    def add_css_text(
        self,
        text: str,
        base: Path,
        media: tuple[str, ...],
        origin: str,
        depth: int = 0,
        line_offset: int = 0,
    ) -> None:
        # Imports precede the importing sheet in cascade order.
        for imp in parse_stylesheet(text).imports:
            if _is_remote(imp.url):
                self.builder.sheet.warnings.append(f"{origin}: remote @import not loaded: {imp.url}")
                continue
            target = local_path(imp.url, base, self.root)
            if not target.is_file():
                self.builder.sheet.warnings.append(f"{origin}: @import target not found: {imp.url}")
                continue
            self.add_css_file(target, media=media + (imp.query.text,), depth=depth + 1)
        self.builder.add_css(text, media=media, origin=origin, line_offset=line_offset)

    def add_html_text(self, html: str, base: Path, origin: str, line_offset: int = 0) -> None:
        styles = extract_html_styles(html)
        self.builder.sheet.warnings.extend(f"{origin}: {w}" for w in styles.warnings)
        for src in styles.sources:
            if src.kind == "style":
                self.add_css_text(
                    src.css,
                    base=base,
                    media=(src.media,) if src.media else (),
                    origin=origin,
                    line_offset=line_offset + src.line - 1,
                )
                continue
            if _is_remote(src.href):
                self.builder.sheet.warnings.append(f"{origin}: remote stylesheet not loaded: {src.href}")
                continue
            target = local_path(src.href, base, self.root)
            if not target.is_file():
                self.builder.sheet.warnings.append(f"{origin}: stylesheet not found: {src.href}")
                continue
            self.add_css_file(target, media=(src.media,) if src.media else ())


def load_stylesheet(path: Path) -> Stylesheet:
    """Load all CSS reachable from a file.

    Args:
        path: ``.css``, ``.html``/``.htm`` or ``.md``/``.markdown`` file

    Returns:
        Combined Stylesheet with local ``@import`` and ``<link>`` targets inlined.

    Raises:
        ValueError: For unsupported file types
    """
    suffix = path.suffix.lower()
    loader = _Loader(root=path.parent)

    if suffix in CSS_SUFFIXES:
        loader.add_css_file(path)
    elif suffix in HTML_SUFFIXES:
        loader.add_html_text(read_source(path), base=path.parent, origin=path.name)
    elif suffix in MARKDOWN_SUFFIXES:
        markdown = read_source(path)
        for frag in extract_markdown_fragments(markdown):
            if frag.language == "css":
                loader.add_css_text(frag.code, base=path.parent, media=(), origin=path.name, line_offset=frag.line - 1)
            else:
                loader.add_html_text(frag.code, base=path.parent, origin=path.name, line_offset=frag.line - 1)
    else:
        raise ValueError(f"Unsupported file type: {path.suffix or path.name}")

    return loader.builder.build()
