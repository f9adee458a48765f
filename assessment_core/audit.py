from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Iterable

from .codec import decode_assessment
from .types import (
    KINDS,
    DragWordsItem,
    ImageDragDropItem,
    ImageHotspotItem,
    Item,
    MarkWordsItem,
    MultiSelectFeedbackItem,
    SingleChoiceItem,
)


def ungradable_reason(item: Item) -> str | None:
    """Why no response could ever be graded as intended, or None."""

    if isinstance(item, SingleChoiceItem):
        if not item.options:
            return "has no options"
        if item.correct_option not in item.options:
            return "correct option is not among the options"
    elif isinstance(item, MarkWordsItem):
        if not item.words:
            return "has no words to mark"
    elif isinstance(item, ImageHotspotItem):
        if not item.correct_ids:
            return "has no labelled hotspot"
    elif isinstance(item, DragWordsItem):
        if not item.targets:
            return "has no drop targets"
    elif isinstance(item, MultiSelectFeedbackItem):
        n = len(item.correct_texts)
        if n == 0:
            return "has no correct option"
        if n > 1 and not item.allow_multiple:
            return "has several correct options in single mode"
    elif isinstance(item, ImageDragDropItem):
        if not item.draggables:
            return "has no draggables"
        zones = {z.id for z in item.drop_zones}
        if any(d.correct_zone_id not in zones for d in item.draggables):
            return "has a draggable pointing at a missing zone"
    return None


def audit_items(items: Iterable[Item]) -> dict[str, object]:
    counts = {kind: 0 for kind in KINDS}
    total_points = 0.0
    warnings: list[str] = []
    n = 0
    for item in items:
        n += 1
        counts[item.kind] += 1
        total_points += float(item.points)
        reason = ungradable_reason(item)
        if reason:
            warnings.append(f"{item.kind} item {item.id!r} {reason}")
    return {"counts": counts, "items": n, "total_points": total_points, "warnings": warnings}


def audit_assessment(raw: object) -> dict[str, object]:
    report = decode_assessment(raw)
    if report.assessment is None:
        return {
            "readable": False,
            "counts": {kind: 0 for kind in KINDS},
            "items": 0,
            "total_points": 0.0,
            "warnings": [e.message for e in report.errors],
            "dropped": 0,
            "repaired": 0,
        }
    summary = audit_items(report.assessment.items)
    warnings: list[str] = summary["warnings"]  # type: ignore[assignment]
    warnings[:0] = [e.message for e in report.errors] + [w.message for w in report.warnings]
    if not report.assessment.items:
        warnings.append("assessment has no gradable items")
    summary.update(
        {
            "readable": True,
            "dropped": len(report.errors),
            "repaired": len(report.warnings),
            "passing_score_percent": report.assessment.passing_score_percent,
            "time_limit_seconds": report.assessment.time_limit_seconds,
        }
    )
    return summary


def print_report(summary: dict[str, object]) -> None:
    print("=== Assessment Audit ===")
    if not summary.get("readable"):
        print("Document could not be read.")
    counts: dict[str, int] = summary["counts"]  # type: ignore[assignment]
    for kind in KINDS:
        print(f"  {kind:<22} {counts.get(kind, 0):3d}")
    print(f"\nItems: {summary['items']}  Points: {summary['total_points']:g}")
    print(f"Dropped: {summary.get('dropped', 0)}  Repaired: {summary.get('repaired', 0)}")

    warnings: list[str] = summary["warnings"]  # type: ignore[assignment]
    if warnings:
        print("\nWarnings:")
        for msg in warnings:
            print(f" - {msg}")
    else:
        print("\nNo warnings.")


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if args:
        raw = Path(args[0]).read_text(encoding="utf-8")
    else:
        raw = sys.stdin.read()
    summary = audit_assessment(raw)
    print_report(summary)
    if len(args) > 1:
        Path(args[1]).write_text(json.dumps(summary, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    if not summary["readable"]:
        return 1
    return 2 if summary["warnings"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
