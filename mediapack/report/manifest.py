"""Evaluation report model and generation."""

import hashlib
import json
from pathlib import Path

from pydantic import BaseModel

from ..check.breakpoints import Finding, Segment
from ..config import SCHEMA_VERSION, TOOL_VERSION
from ..eval.cascade import Resolution
from ..eval.viewport import Viewport
from ..parse.stylesheet import Stylesheet


class SourceInfo(BaseModel):
    """The file a report was produced from."""

    path: str
    sha256: str


class BlockInfo(BaseModel):
    """A media block that matched the viewport."""

    index: int
    prelude: str
    line: int
    origin: str
    rules: int


class DeclarationInfo(BaseModel):
    """A winning declaration in the resolved cascade."""

    value: str
    important: bool
    specificity: str
    line: int
    media: list[str]


class EvaluationReport(BaseModel):
    """Everything one evaluation of a stylesheet against a viewport produced."""

    schema_version: int = SCHEMA_VERSION
    tool_version: str = TOOL_VERSION
    source: SourceInfo
    viewport: Viewport
    matched_blocks: list[BlockInfo]
    resolved: dict[str, dict[str, DeclarationInfo]]
    findings: list[Finding]
    segments: list[Segment] = []
    warnings: list[str]


def compute_sha256(content: bytes | str) -> str:
    """Compute SHA256 hash of content.

    Args:
        content: Bytes or string to hash

    Returns:
        Hex-encoded SHA256 hash
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def build_report(
    source_path: Path,
    stylesheet: Stylesheet,
    viewport: Viewport,
    matched: list[int],
    resolution: Resolution,
    findings: list[Finding],
    segments: list[Segment] | None = None,
) -> EvaluationReport:
    """Create a report for one evaluation.

    Args:
        source_path: File the stylesheet was loaded from
        stylesheet: Loaded stylesheet (for block details and warnings)
        viewport: Viewport the stylesheet was evaluated against
        matched: Indices of active media blocks
        resolution: Output of ``resolve``
        findings: Breakpoint findings
        segments: Optional sweep segments

    Returns:
        Populated EvaluationReport
    """
    blocks = [stylesheet.media_blocks[i] for i in matched]
    resolved = {
        selector: {
            prop: DeclarationInfo(
                value=decl.value,
                important=decl.important,
                specificity=str(decl.specificity),
                line=decl.line,
                media=list(decl.media),
            )
            for prop, decl in props.items()
        }
        for selector, props in resolution.items()
    }
    return EvaluationReport(
        source=SourceInfo(
            path=source_path.name,
            sha256=compute_sha256(source_path.read_bytes()),
        ),
        viewport=viewport,
        matched_blocks=[
            BlockInfo(index=b.index, prelude=b.prelude, line=b.line, origin=b.origin, rules=len(b.rules))
            for b in blocks
        ],
        resolved=resolved,
        findings=findings,
        segments=segments or [],
        warnings=list(stylesheet.warnings),
    )


def report_json(report: EvaluationReport) -> str:
    payload = report.model_dump(mode="json")
    return json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def write_report(report: EvaluationReport, output_path: Path) -> Path:
    """Write a report to a JSON file.

    Args:
        report: EvaluationReport object
        output_path: File to write

    Returns:
        Path to the written file
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(report_json(report), encoding="utf-8")
    return output_path
