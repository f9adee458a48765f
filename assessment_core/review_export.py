"""Per-item review rows of a session in JSON/CSV form."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Union
import csv
import io

from .types import ItemReview

Row = Union[ItemReview, Mapping[str, Any]]

COLUMNS: tuple[str, ...] = ("position", "item_id", "kind", "points", "answered", "correct")


def _as_review(row: Row) -> ItemReview:
    if isinstance(row, ItemReview):
        return row
    # rows that come back from a client or a stored payload are loosely typed
    try:
        position = int(row.get("position") or 0)
    except (TypeError, ValueError):
        position = 0
    try:
        points = float(row.get("points") or 0)
    except (TypeError, ValueError):
        points = 0.0
    item_id, kind = row.get("item_id"), row.get("kind")
    return ItemReview(
        position=position,
        item_id="" if item_id is None else str(item_id),
        kind="" if kind is None else str(kind),
        points=points,
        answered=bool(row.get("answered")),
        correct=bool(row.get("correct")),
    )


def _reviews(rows: Iterable[Row]) -> List[ItemReview]:
    return sorted((_as_review(r) for r in rows), key=lambda rv: rv.position)


def to_json(rows: Iterable[Row]) -> Dict[str, Any]:
    reviews = _reviews(rows)
    payload = []
    for rv in reviews:
        data = rv.to_dict()
        data["points"] = float(rv.points)
        payload.append(data)
    return {"items": payload}


def to_csv(rows: Iterable[Row]) -> str:
    """One line per item, ordered by position, under a fixed header."""

    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(COLUMNS)
    for rv in _reviews(rows):
        writer.writerow(
            [rv.position, rv.item_id, rv.kind, float(rv.points), rv.answered, rv.correct]
        )
    return buf.getvalue()


__all__ = ["COLUMNS", "to_json", "to_csv"]
