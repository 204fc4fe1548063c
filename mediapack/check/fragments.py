"""Syntax validation for CSS and HTML fragments embedded in documentation."""

from __future__ import annotations

import re

from pydantic import BaseModel, Field

from ..parse.query import And, Condition, GeneralEnclosed, MediaQuerySyntaxError, Not, Or, parse_media_query_list
from ..parse.sources import extract_html_styles, extract_markdown_fragments
from ..parse.stylesheet import parse_stylesheet
from ..parse.tokenize import LBRACE, RBRACE, line_of, tokenize
from .breakpoints import Finding

_WARNING_LINE_RE = re.compile(r"^(?:line |[^:]*:)(?P<line>\d+): (?P<message>.*)$")
_OFFSET_RE = re.compile(r"at offset (?P<offset>\d+)")


class FragmentReport(BaseModel):
    """Validation result for one code fragment."""

    language: str
    line: int
    findings: list[Finding] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not any(f.severity == "error" for f in self.findings)


class DocumentReport(BaseModel):
    """Validation results for every fragment of a document."""

    fragments: list[FragmentReport] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(f.ok for f in self.fragments)

    @property
    def findings(self) -> list[Finding]:
        return [f for frag in self.fragments for f in frag.findings]


def _general_enclosed(node: Condition) -> list[str]:
    if isinstance(node, GeneralEnclosed):
        return [node.text]
    if isinstance(node, Not):
        return _general_enclosed(node.child)
    if isinstance(node, (And, Or)):
        return [text for child in node.children for text in _general_enclosed(child)]
    return []


def validate_media_prelude(prelude: str, line: int) -> list[Finding]:
    """Strictly validate one media query list."""
    try:
        query_list = parse_media_query_list(prelude, strict=True)
    except MediaQuerySyntaxError as e:
        return [Finding(severity="error", code="invalid-media-query", message=str(e), line=line)]
    findings: list[Finding] = []
    for query in query_list.queries:
        if query.condition is None:
            continue
        for text in _general_enclosed(query.condition):
            findings.append(Finding(
                severity="warning",
                code="unknown-media-feature",
                message=f"{text!r} is not a recognised media feature test and never matches",
                line=line,
            ))
    return findings


def validate_fragment(source: str, line_offset: int = 0) -> list[Finding]:
    """Validate a CSS fragment.

    Args:
        source: CSS text
        line_offset: Added to reported line numbers

    Returns:
        Findings; ``error`` severity means the fragment is not valid CSS.
    """
    findings: list[Finding] = []
    stream = tokenize(source)

    for warning in stream.warnings:
        m = _OFFSET_RE.search(warning)
        line = line_of(source, int(m.group("offset"))) + line_offset if m else None
        findings.append(Finding(severity="error", code="unterminated", message=warning, line=line))

    opened = sum(1 for t in stream.tokens if t.kind == LBRACE)
    closed = sum(1 for t in stream.tokens if t.kind == RBRACE)
    if opened != closed:
        findings.append(Finding(
            severity="error",
            code="unbalanced-braces",
            message=f"{opened} '{{' but {closed} '}}'",
            line=line_offset + 1,
        ))

    sheet = parse_stylesheet(source)
    for warning in sheet.warnings:
        if warning.startswith("Unterminated") or "Invalid media query" in warning:
            continue
        m = _WARNING_LINE_RE.match(warning)
        if m:
            findings.append(Finding(
                severity="error",
                code="syntax",
                message=m.group("message"),
                line=int(m.group("line")) + line_offset,
            ))
        else:
            findings.append(Finding(severity="error", code="syntax", message=warning))

    for block in sheet.media_blocks:
        findings.extend(validate_media_prelude(block.prelude, block.line + line_offset))

    findings.sort(key=lambda f: (f.line or 0, f.code))
    return findings


def validate_html(html: str, line_offset: int = 0) -> list[Finding]:
    """Validate the ``<style>`` blocks and ``media`` attributes of an HTML fragment."""
    styles = extract_html_styles(html)
    findings: list[Finding] = []
    for warning in styles.warnings:
        m = _WARNING_LINE_RE.match(warning)
        findings.append(Finding(
            severity="error",
            code="html",
            message=m.group("message") if m else warning,
            line=int(m.group("line")) + line_offset if m else None,
        ))

    uses_media = False
    for src in styles.sources:
        line = src.line + line_offset
        if src.media:
            uses_media = True
            findings.extend(validate_media_prelude(src.media, line))
        if src.kind == "style":
            if "@media" in src.css:
                uses_media = True
            findings.extend(validate_fragment(src.css, line_offset=line - 1))

    if uses_media and styles.viewport_meta is None and re.search(r"<html|<head", html, re.IGNORECASE):
        findings.append(Finding(
            severity="info",
            code="missing-viewport-meta",
            message='Media queries are used but there is no <meta name="viewport">; '
                    "mobile browsers will evaluate them against a desktop-width layout",
            line=line_offset + 1,
        ))
    return findings


def validate_document(markdown: str) -> DocumentReport:
    """Validate every fenced CSS/HTML block of a Markdown document."""
    report = DocumentReport()
    for frag in extract_markdown_fragments(markdown):
        if frag.language == "css":
            findings = validate_fragment(frag.code, line_offset=frag.line - 1)
        else:
            findings = validate_html(frag.code, line_offset=frag.line - 1)
        report.fragments.append(FragmentReport(language=frag.language, line=frag.line, findings=findings))
    return report
