"""CLI entry point for mediapack.

This CLI intentionally avoids third-party CLI frameworks so the project remains
easy to run in constrained environments.
"""

from __future__ import annotations

import argparse
import math
import sys
from pathlib import Path
from typing import Any

from . import __version__


def app(argv: list[str] | None = None) -> None:
    """Console script entrypoint."""
    raise SystemExit(main(argv))


def _add_viewport_args(p: argparse.ArgumentParser) -> None:
    g = p.add_argument_group("viewport")
    g.add_argument("--preset", "-p", help="Start from a named viewport preset (e.g. mobile, tablet, desktop)")
    g.add_argument("--width", "-W", type=float, help="Viewport width in px")
    g.add_argument("--height", "-H", type=float, help="Viewport height in px")
    g.add_argument("--dpr", type=float, help="Device pixel ratio")
    g.add_argument("--media", choices=["screen", "print", "speech"], help="Media type")
    g.add_argument("--pointer", choices=["none", "coarse", "fine"], help="Primary pointer (also sets any-pointer)")
    g.add_argument("--hover", choices=["none", "hover"], help="Primary hover capability (also sets any-hover)")
    g.add_argument("--color-scheme", choices=["light", "dark"], help="prefers-color-scheme")
    g.add_argument("--reduced-motion", action="store_true", help="prefers-reduced-motion: reduce")


def _viewport_from_args(args: Any) -> Any:
    from .eval.viewport import Viewport

    overrides: dict[str, Any] = {}
    if args.width is not None:
        overrides["width"] = args.width
    if args.height is not None:
        overrides["height"] = args.height
    if args.dpr is not None:
        overrides["device_pixel_ratio"] = args.dpr
    if args.media:
        overrides["media_type"] = args.media
    if args.pointer:
        overrides["pointer"] = overrides["any_pointer"] = args.pointer
    if args.hover:
        overrides["hover"] = overrides["any_hover"] = args.hover
    if args.color_scheme:
        overrides["prefers_color_scheme"] = args.color_scheme
    if args.reduced_motion:
        overrides["prefers_reduced_motion"] = "reduce"

    if args.preset:
        return Viewport.preset(args.preset, **overrides)
    return Viewport(**overrides)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="mediapack",
        description="Evaluate and lint CSS media queries against simulated viewports.",
    )
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version=f"mediapack {__version__}",
    )

    sub = parser.add_subparsers(dest="cmd", required=True)

    p_match = sub.add_parser("match", help="Evaluate a media query list")
    p_match.add_argument("query", help='Media query list, e.g. "screen and (min-width: 768px)"')
    p_match.add_argument("--strict", action="store_true", help="Fail on malformed queries instead of treating them as 'not all'")
    p_match.add_argument("--explain", action="store_true", help="Show the result of every query and feature test")
    _add_viewport_args(p_match)

    p_eval = sub.add_parser("eval", help="Show the media blocks and declarations that apply to a viewport")
    p_eval.add_argument("file", type=Path, help="CSS, HTML or Markdown file")
    p_eval.add_argument("--json", dest="json_out", type=Path, help="Write a JSON report to this file")
    p_eval.add_argument(
        "--element",
        "-e",
        action="append",
        default=[],
        help="Selector the element of interest matches (repeatable); resolves one element instead of every selector",
    )
    p_eval.add_argument("--compare", metavar="PRESET", help="Also list declarations that differ under another preset")
    _add_viewport_args(p_eval)

    p_bp = sub.add_parser("breakpoints", help="List breakpoints and check them for overlaps and gaps")
    p_bp.add_argument("file", type=Path, help="CSS, HTML or Markdown file")

    p_sweep = sub.add_parser("sweep", help="Evaluate across viewport widths")
    p_sweep.add_argument("file", type=Path, help="CSS, HTML or Markdown file")
    p_sweep.add_argument("--widths", help="Comma-separated widths in px (default: around every breakpoint)")
    p_sweep.add_argument("--html", dest="html_out", type=Path, help="Write an HTML sweep report to this file")
    _add_viewport_args(p_sweep)

    p_validate = sub.add_parser("validate", help="Check CSS/HTML syntax, including fenced blocks in Markdown")
    p_validate.add_argument("file", type=Path, help="CSS, HTML or Markdown file")

    args = parser.parse_args(argv)

    if args.cmd == "match":
        return _cmd_match(args)
    if args.cmd == "eval":
        return _cmd_eval(args)
    if args.cmd == "breakpoints":
        return _cmd_breakpoints(args)
    if args.cmd == "sweep":
        return _cmd_sweep(args)
    if args.cmd == "validate":
        return _cmd_validate(args)

    parser.print_help()
    return 2


def _print_warnings(warnings: list[str]) -> None:
    if not warnings:
        return
    print(f"\nWarnings ({len(warnings)}):", file=sys.stderr)
    for w in warnings[:10]:
        print(f"  - {w}", file=sys.stderr)
    if len(warnings) > 10:
        print(f"  ... and {len(warnings) - 10} more", file=sys.stderr)


def _format_finding(f: Any, prefix: str = "") -> str:
    where = f"{prefix}:{f.line}" if f.line is not None else prefix
    head = f"{where}: " if where else ""
    return f"{head}{f.severity} [{f.code}] {f.message}"


def _cmd_match(args: Any) -> int:
    from .eval.evaluate import evaluate, explain
    from .parse.query import MediaQuerySyntaxError, parse_media_query_list

    try:
        viewport = _viewport_from_args(args)
        query_list = parse_media_query_list(args.query, strict=bool(args.strict))
    except MediaQuerySyntaxError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for w in query_list.warnings:
        print(f"Warning: {w}", file=sys.stderr)

    matched = evaluate(query_list, viewport)
    if args.explain:
        print(f"Viewport: {viewport.describe()}")
        for text, result in explain(query_list, viewport):
            label = "unknown" if result is None else str(result).lower()
            print(f"  {label:8} {text}")
    print("true" if matched else "false")
    return 0 if matched else 1


def _cmd_eval(args: Any) -> int:
    from .check.breakpoints import active_blocks, analyze_breakpoints
    from .eval.cascade import diff_resolutions, resolve, resolve_element
    from .eval.viewport import Viewport
    from .parse.sources import load_stylesheet
    from .report.manifest import build_report, write_report

    try:
        viewport = _viewport_from_args(args)
        sheet = load_stylesheet(args.file)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    matched = active_blocks(sheet, viewport)
    resolution = resolve(sheet, viewport)

    print(f"✓ Evaluated {args.file.name}")
    print(f"  Viewport: {viewport.describe()}")
    print(f"  Media blocks: {len(matched)} of {len(sheet.media_blocks)} active")
    for i in matched:
        block = sheet.media_blocks[i]
        print(f"    line {block.line:<5} @media {block.prelude}")

    if args.element:
        winners = resolve_element(sheet, viewport, args.element)
        print(f"\nElement matching {', '.join(args.element)}:")
        for prop, decl in winners.items():
            bang = " !important" if decl.important else ""
            print(f"  {prop}: {decl.value}{bang}  ({decl.selector}, line {decl.line})")
    else:
        print(f"\nResolved selectors: {len(resolution)}")
        for selector, props in resolution.items():
            print(f"  {selector}")
            for prop, decl in props.items():
                bang = " !important" if decl.important else ""
                print(f"    {prop}: {decl.value}{bang}")

    if args.compare:
        try:
            other = Viewport.preset(args.compare)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        changes = diff_resolutions(resolution, resolve(sheet, other))
        print(f"\nChanges under {args.compare} ({other.describe()}): {len(changes)}")
        for c in changes:
            print(f"  {c.selector} {{ {c.property}: {c.before or '-'} -> {c.after or '-'} }}")

    if args.json_out:
        report = build_report(
            source_path=args.file,
            stylesheet=sheet,
            viewport=viewport,
            matched=matched,
            resolution=resolution,
            findings=analyze_breakpoints(sheet),
        )
        path = write_report(report, args.json_out)
        print(f"\n✓ Report written: {path}")

    _print_warnings(sheet.warnings)
    return 0


def _cmd_breakpoints(args: Any) -> int:
    from .check.breakpoints import RANGE_FEATURES, analyze_breakpoints, find_breakpoints
    from .parse.sources import load_stylesheet

    try:
        sheet = load_stylesheet(args.file)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for feature in RANGE_FEATURES:
        values = find_breakpoints(sheet, feature)
        if values:
            print(f"{feature}: {', '.join(f'{v:g}px' for v in values)}")

    findings = analyze_breakpoints(sheet)
    if not findings:
        print("✓ No breakpoint problems found")
    for f in findings:
        print(_format_finding(f, args.file.name))

    _print_warnings(sheet.warnings)
    return 1 if any(f.severity == "error" for f in findings) else 0


def _cmd_sweep(args: Any) -> int:
    from .check.breakpoints import analyze_breakpoints, sweep
    from .parse.sources import load_stylesheet
    from .report.html import render_sweep, write_sweep_html

    try:
        viewport = _viewport_from_args(args)
        widths = [float(w) for w in args.widths.split(",") if w.strip()] if args.widths else None
        sheet = load_stylesheet(args.file)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if widths is not None and any(not math.isfinite(w) or w <= 0 for w in widths):
        print("Error: widths must be positive finite numbers", file=sys.stderr)
        return 2

    segments = sweep(sheet, widths=widths, base=viewport)
    for seg in segments:
        span = f"{seg.start:g}" if seg.start == seg.end else f"{seg.start:g}-{seg.end:g}"
        active = "; ".join(seg.preludes) if seg.preludes else "(none)"
        print(f"  {span:>12}px  {seg.rules:>4} rules  {active}")

    if args.html_out:
        html = render_sweep(args.file.name, segments, analyze_breakpoints(sheet))
        path = write_sweep_html(html, args.html_out)
        print(f"✓ Sweep page written: {path}")

    _print_warnings(sheet.warnings)
    return 0


def _cmd_validate(args: Any) -> int:
    from .check.fragments import validate_document, validate_fragment, validate_html
    from .parse.sources import CSS_SUFFIXES, HTML_SUFFIXES, MARKDOWN_SUFFIXES, read_source

    suffix = args.file.suffix.lower()
    try:
        text = read_source(args.file)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if suffix in MARKDOWN_SUFFIXES:
        report = validate_document(text)
        findings = report.findings
        print(f"Checked {len(report.fragments)} fenced blocks")
    elif suffix in HTML_SUFFIXES:
        findings = validate_html(text)
    elif suffix in CSS_SUFFIXES:
        findings = validate_fragment(text)
    else:
        print(f"Error: Unsupported file type: {args.file.suffix or args.file.name}", file=sys.stderr)
        return 1

    for f in findings:
        print(_format_finding(f, args.file.name))
    errors = sum(1 for f in findings if f.severity == "error")
    if errors:
        print(f"✗ {errors} error(s)")
        return 1
    print("✓ Valid")
    return 0


if __name__ == "__main__":
    app()
