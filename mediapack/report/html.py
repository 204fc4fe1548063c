"""HTML rendering for width sweeps."""

from __future__ import annotations

from collections.abc import Iterable
from html import escape
from pathlib import Path

from ..check.breakpoints import Finding, Segment
from ..config import SWEEP_MAX_WIDTH, TOOL_VERSION
from .styles import CSS


def html_doc(title: str, header_left: str, header_right: str, body: str) -> str:
    return (
        "<!doctype html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '<meta charset="utf-8">\n'
        '<meta name="viewport" content="width=device-width, initial-scale=1">\n'
        f"<title>{escape(title)}</title>\n"
        f"<style>{CSS}</style>\n"
        "</head>\n"
        "<body>\n"
        "<header>\n"
        f"<div>{header_left}</div>\n"
        f'<div class="muted">{header_right}</div>\n'
        "</header>\n"
        f"{body}\n"
        "</body>\n"
        "</html>\n"
    )


def h1(text: str) -> str:
    return f"<h1>{escape(text)}</h1>"


def h2(text: str) -> str:
    return f"<h2>{escape(text)}</h2>"


def rule() -> str:
    return '<div class="rule"></div>'


def _width_range(seg: Segment) -> str:
    if seg.start == seg.end:
        return f"{seg.start:g}px"
    return f"{seg.start:g}px to {seg.end:g}px"


def segment_bar(segments: list[Segment]) -> str:
    """Proportional strip of the sweep, one span per segment."""
    if not segments:
        return ""
    top = max(seg.end for seg in segments) or SWEEP_MAX_WIDTH
    spans = []
    for i, seg in enumerate(segments):
        end = segments[i + 1].start if i + 1 < len(segments) else seg.end
        share = max((end - seg.start) / top * 100, 0.5)
        cls = ' class="on"' if seg.active else ""
        spans.append(
            f'<span{cls} style="flex: 0 0 {share:.2f}%" title="{escape(_width_range(seg), quote=True)}"></span>'
        )
    return f'<div class="bar">{"".join(spans)}</div>'


def segments_list(segments: Iterable[Segment]) -> str:
    lines = [h2("SEGMENTS")]
    for seg in segments:
        lines.append('<section class="segment">')
        lines.append(f"<div>{escape(_width_range(seg))}</div>")
        lines.append(f'<div class="muted">{seg.rules} rules apply</div>')
        if seg.preludes:
            lines.append("<ul>")
            for prelude in seg.preludes:
                lines.append(f"<li><code>@media {escape(prelude)}</code></li>")
            lines.append("</ul>")
        else:
            lines.append('<div class="muted">no media blocks active</div>')
        lines.append("</section>")
    return "\n".join(lines)


def findings_list(findings: Iterable[Finding]) -> str:
    lines = [h2("FINDINGS"), "<ul>"]
    count = 0
    for f in findings:
        count += 1
        where = f"line {f.line}: " if f.line is not None else ""
        lines.append(
            "<li>"
            f'<span class="sev-{escape(f.severity, quote=True)}">{escape(f.severity)}</span> '
            f'<span class="muted">[{escape(f.code)}]</span> '
            f"{escape(where + f.message)}"
            "</li>"
        )
    if not count:
        lines.append('<li class="muted">none</li>')
    lines.append("</ul>")
    return "\n".join(lines)


def render_sweep(source: str, segments: list[Segment], findings: list[Finding]) -> str:
    """Render a self-contained sweep page.

    Args:
        source: Name of the swept stylesheet
        segments: Output of ``sweep``
        findings: Output of ``analyze_breakpoints``

    Returns:
        HTML document text
    """
    body = "\n".join([
        h1(f"Media sweep: {source}"),
        f'<div class="muted">{len(segments)} segments</div>',
        segment_bar(segments),
        rule(),
        segments_list(segments),
        rule(),
        findings_list(findings),
    ])
    return html_doc(
        title=f"{source} media sweep",
        header_left=escape(source),
        header_right=f"mediapack {escape(TOOL_VERSION)}",
        body=body,
    )


def write_sweep_html(html: str, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(html, encoding="utf-8")
    return output_path
