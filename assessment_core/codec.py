"""Persisted JSON <-> Item/Assessment/Result.

Stored content comes from several editor generations: the current envelope
(``kind`` + ``answerSpec``), the older flat question shape (``type``,
``correctAnswer``, ``correctWords`` ...) and slide content kept as a JSON
string inside another document. All of it is read here, so fallback rules
live in one place. Anything repairable is repaired and reported as a
``MissingAnswerSpecField`` warning; an unreadable document yields
``MalformedJson`` and an unknown kind tag yields ``UnknownItemKind``.
"""
from __future__ import annotations

import json
import math
from dataclasses import replace
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from . import config
from .errors import MalformedJson, MissingAnswerSpecField, UnknownItemKind
from .types import (
    ITEM_CLASSES,
    KINDS,
    Assessment,
    DecodeReport,
    Draggable,
    DragTarget,
    DragWordsItem,
    DropZone,
    FeedbackOption,
    FreeTextItem,
    Hotspot,
    ImageDragDropItem,
    ImageHotspotItem,
    Item,
    MarkWordsItem,
    MultiSelectFeedbackItem,
    Result,
    SingleChoiceItem,
    TrueFalseItem,
)

log = logging.getLogger(__name__)

_MISSING = object()

# slide-content envelopes that carry a single question under one key
_SLIDE_KEYS: Dict[str, str] = {
    "quiz": "single-choice",
    "trueFalse": "true-false",
    "imageDragDrop": "image-drag-drop",
}


def _load(raw: Any, what: str) -> Tuple[Any, Optional[MalformedJson]]:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        try:
            return json.loads(raw), None
        except json.JSONDecodeError as exc:
            return None, MalformedJson(
                f"{what} is not valid JSON: {exc.msg}", line=exc.lineno, column=exc.colno
            )
    return raw, None


def _num(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        # 1e999 parses to inf; nothing downstream can use it
        return value if math.isfinite(value) else None
    if isinstance(value, str) and value.strip():
        try:
            f = float(value.strip())
        except ValueError:
            return None
        if not math.isfinite(f):
            return None
        return int(f) if f.is_integer() else f
    return None


def _flag(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return None


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [s for s in (_text(v) for v in value) if s is not None]


def normalize_kind(tag: Any) -> Optional[str]:
    if not isinstance(tag, str):
        return None
    key = tag.strip().lower()
    if key in KINDS:
        return key
    return config.LEGACY_KIND_ALIASES.get(key)


class _SpecReader:
    """Looks fields up in the answer spec first, then in the flat envelope."""

    def __init__(
        self,
        item_id: str,
        kind: str,
        sources: List[Dict[str, Any]],
        warnings: List[MissingAnswerSpecField],
    ):
        self.item_id = item_id
        self.kind = kind
        self.sources = [s for s in sources if isinstance(s, dict)]
        self.warnings = warnings

    def get(self, *keys: str) -> Any:
        for src in self.sources:
            for k in keys:
                val = src.get(k)
                if val is not None:
                    return val
        return _MISSING

    def missing(self, field: str, default: Any) -> Any:
        w = MissingAnswerSpecField(
            f"{self.kind} item {self.item_id!r}: '{field}' missing or invalid, using default",
            item_id=self.item_id,
            field=field,
        )
        self.warnings.append(w)
        log.warning("codec repair item=%s kind=%s field=%s", self.item_id, self.kind, field)
        return default

    def text(self, field: str, *keys: str, required: bool = True) -> str:
        raw = self.get(field, *keys)
        val = _text(raw) if raw is not _MISSING else None
        if val is None:
            return self.missing(field, "") if required else ""
        return val

    def flag(self, field: str, *keys: str, default: bool = False, required: bool = True) -> bool:
        raw = self.get(field, *keys)
        val = _flag(raw) if raw is not _MISSING else None
        if val is None:
            return self.missing(field, default) if required else default
        return val

    def seq(self, field: str, *keys: str, required: bool = True) -> list:
        raw = self.get(field, *keys)
        if not isinstance(raw, (list, tuple)):
            return self.missing(field, []) if required else []
        return list(raw)


# ---- per-kind decoders ----

def _decode_single_choice(r: _SpecReader) -> Dict[str, Any]:
    options = _str_list(r.seq("options"))
    raw = r.get("correctOption", "correctAnswer", "answerKey")
    correct: Optional[str] = None
    if isinstance(raw, int) and not isinstance(raw, bool):
        # slide quizzes stored the index of the correct option
        if 0 <= raw < len(options):
            correct = options[raw]
    elif isinstance(raw, str):
        correct = raw
    elif isinstance(raw, list) and len(raw) == 1:
        correct = _text(raw[0])
    if correct is None:
        correct = r.missing("correctOption", "")
    return {"options": tuple(options), "correct_option": correct}


def _decode_true_false(r: _SpecReader) -> Dict[str, Any]:
    return {"answer": r.flag("answer", "correctAnswer", "answerKey")}


def _decode_free_text(r: _SpecReader) -> Dict[str, Any]:
    raw = r.get("accepted", "correctAnswer", "answerKey")
    if isinstance(raw, list) and raw:
        raw = raw[0]
    accepted = _text(raw) if raw is not _MISSING else None
    if accepted is None:
        accepted = r.missing("accepted", "")
    case = r.get("caseSensitive")
    return {"accepted": accepted, "case_sensitive": _flag(case) if case is not _MISSING else None}


def _decode_mark_words(r: _SpecReader) -> Dict[str, Any]:
    return {
        "text": r.text("text", required=False),
        "words": tuple(_str_list(r.seq("words", "correctWords", "correctAnswer"))),
    }


def _decode_image_hotspot(r: _SpecReader) -> Dict[str, Any]:
    hotspots = []
    for idx, raw in enumerate(r.seq("hotspots")):
        if not isinstance(raw, dict):
            r.missing(f"hotspots[{idx}]", None)
            continue
        hid = _text(raw.get("id"))
        if hid is None:
            hid = r.missing(f"hotspots[{idx}].id", f"hotspot-{idx + 1}")
        hotspots.append(
            Hotspot(
                id=hid,
                x=_num(raw.get("x")) or 0,
                y=_num(raw.get("y")) or 0,
                radius=_num(raw.get("radius")) or 0,
                label=_text(raw.get("label")) or "",
            )
        )
    return {"image_url": r.text("imageUrl", required=False), "hotspots": tuple(hotspots)}


def _placeholder(value: Any) -> str:
    text = _text(value)
    return "___" if text is None else text


def _decode_drag_words(r: _SpecReader) -> Dict[str, Any]:
    targets = []
    for idx, raw in enumerate(r.seq("targets", "dragTargets")):
        if not isinstance(raw, dict):
            r.missing(f"targets[{idx}]", None)
            continue
        tid = _text(raw.get("targetId", raw.get("id")))
        if tid is None:
            tid = r.missing(f"targets[{idx}].targetId", f"target-{idx + 1}")
        word = _text(raw.get("correctWord"))
        if word is None:
            word = r.missing(f"targets[{idx}].correctWord", "")
        targets.append(
            DragTarget(
                target_id=tid,
                correct_word=word,
                placeholder=_placeholder(raw.get("placeholder")),
            )
        )
    return {
        "text": r.text("text", "dragText", required=False),
        "word_bank": tuple(_str_list(r.seq("wordBank", "dragWords", required=False))),
        "targets": tuple(targets),
    }


def _decode_multi_select(r: _SpecReader) -> Dict[str, Any]:
    options = []
    for idx, raw in enumerate(r.seq("options", "answers")):
        if isinstance(raw, str):
            options.append(FeedbackOption(option_text=raw))
            continue
        if not isinstance(raw, dict):
            r.missing(f"options[{idx}]", None)
            continue
        text = _text(raw.get("optionText", raw.get("text")))
        if text is None:
            text = r.missing(f"options[{idx}].optionText", "")
        options.append(
            FeedbackOption(
                option_text=text,
                is_correct=bool(_flag(raw.get("isCorrect", raw.get("correct")))),
                feedback=_text(raw.get("feedback")) or "",
            )
        )
    legacy = r.get("feedback")
    legacy = legacy if isinstance(legacy, dict) else {}
    return {
        "options": tuple(options),
        "allow_multiple": r.flag("allowMultiple", "multiple", required=False),
        "feedback_correct": _text(r.get("feedbackCorrect")) or _text(legacy.get("correct")) or "",
        "feedback_incorrect": _text(r.get("feedbackIncorrect")) or _text(legacy.get("incorrect")) or "",
    }


def _decode_image_drag_drop(r: _SpecReader) -> Dict[str, Any]:
    nested = r.get("imageDragDrop")
    if isinstance(nested, dict):
        r.sources.insert(0, nested)

    zones = []
    # older editors kept the answer on the zone side as correctItems
    zone_of: Dict[str, str] = {}
    for idx, raw in enumerate(r.seq("dropZones")):
        if not isinstance(raw, dict):
            r.missing(f"dropZones[{idx}]", None)
            continue
        zid = _text(raw.get("id"))
        if zid is None:
            zid = r.missing(f"dropZones[{idx}].id", f"zone-{idx + 1}")
        for did in _str_list(raw.get("correctItems")):
            zone_of.setdefault(did, zid)
        zones.append(
            DropZone(
                id=zid,
                x=_num(raw.get("x")) or 0,
                y=_num(raw.get("y")) or 0,
                width=_num(raw.get("width")) or 0,
                height=_num(raw.get("height")) or 0,
                label=_text(raw.get("label")) or "",
            )
        )

    draggables = []
    for idx, raw in enumerate(r.seq("draggables", "draggableItems")):
        if not isinstance(raw, dict):
            r.missing(f"draggables[{idx}]", None)
            continue
        did = _text(raw.get("draggableId", raw.get("id")))
        if did is None:
            did = r.missing(f"draggables[{idx}].draggableId", f"draggable-{idx + 1}")
        zone = _text(raw.get("correctZoneId"))
        if zone is None:
            zone = zone_of.get(did)
        if zone is None:
            zone = r.missing(f"draggables[{idx}].correctZoneId", "")
        draggables.append(
            Draggable(draggable_id=did, correct_zone_id=zone, text=_text(raw.get("text")) or "")
        )
    return {
        "image_url": r.text("imageUrl", required=False),
        "drop_zones": tuple(zones),
        "draggables": tuple(draggables),
    }


_DECODERS = {
    "single-choice": _decode_single_choice,
    "true-false": _decode_true_false,
    "free-text": _decode_free_text,
    "mark-words": _decode_mark_words,
    "image-hotspot": _decode_image_hotspot,
    "drag-words": _decode_drag_words,
    "multi-select-feedback": _decode_multi_select,
    "image-drag-drop": _decode_image_drag_drop,
}


def _unwrap_slide(doc: Dict[str, Any]) -> Tuple[Dict[str, Any], Optional[str]]:
    for key, kind in _SLIDE_KEYS.items():
        inner = doc.get(key)
        if isinstance(inner, dict):
            merged = dict(doc)
            merged.update(inner)
            return merged, kind
    return doc, None


def decode_item(
    raw: Any,
    *,
    default_id: str = "item-1",
    warnings: Optional[List[MissingAnswerSpecField]] = None,
) -> Union[Item, MalformedJson, UnknownItemKind]:
    """
    Decode one persisted item.
    Returns the Item, or an error value when the text cannot be read at all
    or its kind tag is outside the closed set. Repairs go to ``warnings``.
    """
    if warnings is None:
        warnings = []
    doc, err = _load(raw, "item")
    if err is not None:
        return err
    if not isinstance(doc, dict):
        return MalformedJson(f"item must be a JSON object, got {type(doc).__name__}")

    tag = doc.get("kind", doc.get("type"))
    kind = normalize_kind(tag)
    if kind is None and tag is None:
        doc, kind = _unwrap_slide(doc)
    if kind is None:
        return UnknownItemKind(f"unknown item kind {tag!r}", kind=tag, item_id=doc.get("id"))

    item_id = _text(doc.get("id")) or ""
    spec_raw = doc.get("answerSpec", doc.get("content"))
    spec: Dict[str, Any] = {}
    if isinstance(spec_raw, (str, bytes, bytearray)):
        parsed, spec_err = _load(spec_raw, "answerSpec")
        if spec_err is None and isinstance(parsed, dict):
            spec = parsed
        else:
            _SpecReader(item_id or default_id, kind, [], warnings).missing("answerSpec", None)
    elif isinstance(spec_raw, dict):
        spec = spec_raw

    reader = _SpecReader(item_id or default_id, kind, [spec, doc], warnings)
    if not item_id:
        item_id = reader.missing("id", default_id)

    points = _num(doc.get("points"))
    if points is None or points <= 0:
        points = reader.missing("points", config.MIN_POINTS)

    prompt = _text(doc.get("prompt", doc.get("question"))) or ""
    explanation = _text(doc.get("explanation"))
    if explanation is None:
        explanation = _text(spec.get("explanation"))

    fields = _DECODERS[kind](reader)
    return ITEM_CLASSES[kind](
        id=item_id, prompt=prompt, points=points, explanation=explanation, **fields
    )


# ---- per-kind encoders ----

def _encode_spec(item: Item) -> Dict[str, Any]:
    if isinstance(item, SingleChoiceItem):
        return {"options": list(item.options), "correctOption": item.correct_option}
    if isinstance(item, TrueFalseItem):
        return {"answer": bool(item.answer)}
    if isinstance(item, FreeTextItem):
        out: Dict[str, Any] = {"accepted": item.accepted}
        if item.case_sensitive is not None:
            out["caseSensitive"] = bool(item.case_sensitive)
        return out
    if isinstance(item, MarkWordsItem):
        return {"text": item.text, "words": list(item.words)}
    if isinstance(item, ImageHotspotItem):
        return {
            "imageUrl": item.image_url,
            "hotspots": [
                {"id": h.id, "x": h.x, "y": h.y, "radius": h.radius, "label": h.label}
                for h in item.hotspots
            ],
        }
    if isinstance(item, DragWordsItem):
        return {
            "text": item.text,
            "wordBank": list(item.word_bank),
            "targets": [
                {"targetId": t.target_id, "correctWord": t.correct_word, "placeholder": t.placeholder}
                for t in item.targets
            ],
        }
    if isinstance(item, MultiSelectFeedbackItem):
        return {
            "allowMultiple": bool(item.allow_multiple),
            "options": [
                {"optionText": o.option_text, "isCorrect": bool(o.is_correct), "feedback": o.feedback}
                for o in item.options
            ],
            "feedbackCorrect": item.feedback_correct,
            "feedbackIncorrect": item.feedback_incorrect,
        }
    if isinstance(item, ImageDragDropItem):
        return {
            "imageUrl": item.image_url,
            "dropZones": [
                {"id": z.id, "x": z.x, "y": z.y, "width": z.width, "height": z.height, "label": z.label}
                for z in item.drop_zones
            ],
            "draggables": [
                {"draggableId": d.draggable_id, "correctZoneId": d.correct_zone_id, "text": d.text}
                for d in item.draggables
            ],
        }
    raise TypeError(f"not an assessment item: {type(item).__name__}")


def encode_item(item: Item) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "id": item.id,
        "kind": item.kind,
        "prompt": item.prompt,
        "points": item.points,
        "answerSpec": _encode_spec(item),
    }
    if item.explanation is not None:
        out["explanation"] = item.explanation
    return out


# ---- assessments ----

def _dedupe_ids(items: List[Item], warnings: List[MissingAnswerSpecField]) -> List[Item]:
    seen: set[str] = set()
    out: List[Item] = []
    for it in items:
        new_id = it.id
        n = 2
        while new_id in seen:
            new_id = f"{it.id}-{n}"
            n += 1
        if new_id != it.id:
            w = MissingAnswerSpecField(
                f"duplicate item id {it.id!r} renamed to {new_id!r}", item_id=it.id, field="id"
            )
            warnings.append(w)
            log.warning("codec duplicate id=%s renamed=%s", it.id, new_id)
            it = replace(it, id=new_id)
        seen.add(new_id)
        out.append(it)
    return out


def _setting(doc: Dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if doc.get(k) is not None:
            return doc[k]
    return _MISSING


def _setting_warning(report: DecodeReport, field: str, raw: Any) -> None:
    report.warnings.append(
        MissingAnswerSpecField(f"assessment setting {field!r} invalid ({raw!r}), using default", field=field)
    )
    log.warning("codec repair assessment field=%s value=%r", field, raw)


def decode_assessment(raw: Any) -> DecodeReport:
    """
    Decode a persisted assessment. Items with an unknown kind or unreadable
    text are dropped and listed in ``errors``; the rest of the assessment
    still loads. Only an unreadable document leaves ``assessment`` as None.
    """
    report = DecodeReport()
    doc, err = _load(raw, "assessment")
    if err is None and not isinstance(doc, dict):
        err = MalformedJson(f"assessment must be a JSON object, got {type(doc).__name__}")
    if err is not None:
        log.warning("codec assessment unreadable: %s", err.message)
        report.errors.append(err)
        return report

    raw_items = _setting(doc, "items", "questions")
    if raw_items is _MISSING:
        raw_items = []
    elif not isinstance(raw_items, list):
        _setting_warning(report, "items", raw_items)
        raw_items = []

    items: List[Item] = []
    for idx, raw_item in enumerate(raw_items):
        decoded = decode_item(raw_item, default_id=f"item-{idx + 1}", warnings=report.warnings)
        if isinstance(decoded, (MalformedJson, UnknownItemKind)):
            decoded.context.setdefault("index", idx)
            log.warning("codec dropped item index=%d reason=%s", idx, decoded.message)
            report.errors.append(decoded)
            continue
        items.append(decoded)
    items = _dedupe_ids(items, report.warnings)

    passing = 0
    raw_pass = _setting(doc, "passingScorePercent", "passingScore")
    if raw_pass is not _MISSING:
        val = _num(raw_pass)
        if val is None:
            _setting_warning(report, "passingScorePercent", raw_pass)
        else:
            passing = min(max(val, config.MIN_PASSING_SCORE), config.MAX_PASSING_SCORE)
            if passing != val:
                _setting_warning(report, "passingScorePercent", raw_pass)

    time_limit = None
    raw_limit = _setting(doc, "timeLimitSeconds", "timeLimit")
    if raw_limit is not _MISSING:
        val = _num(raw_limit)
        if val is None or val <= 0:
            _setting_warning(report, "timeLimitSeconds", raw_limit)
        else:
            time_limit = val

    max_attempts = None
    raw_max = _setting(doc, "maxAttempts")
    if raw_max is not _MISSING:
        val = _num(raw_max)
        if val is None or val < 1 or not float(val).is_integer():
            _setting_warning(report, "maxAttempts", raw_max)
        else:
            max_attempts = int(val)

    def _bool_setting(field: str, *keys: str, default: bool) -> bool:
        raw_val = _setting(doc, field, *keys)
        if raw_val is _MISSING:
            return default
        val = _flag(raw_val)
        if val is None:
            _setting_warning(report, field, raw_val)
            return default
        return val

    report.assessment = Assessment(
        items=tuple(items),
        time_limit_seconds=time_limit,
        passing_score_percent=passing,
        shuffle=_bool_setting("shuffle", "shuffleQuestions", default=False),
        allow_retry=_bool_setting("allowRetry", "allowRetake", default=False),
        max_attempts=max_attempts,
        id=_text(doc.get("id")),
        title=_text(doc.get("title")) or "",
        description=_text(doc.get("description")) or "",
        show_results=_bool_setting("showResults", default=True),
    )
    log.debug(
        "codec assessment decoded items=%d dropped=%d repairs=%d",
        len(items),
        len(report.errors),
        len(report.warnings),
    )
    return report


def encode_assessment(assessment: Assessment) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "items": [encode_item(it) for it in assessment.items],
        "passingScorePercent": assessment.passing_score_percent,
        "shuffle": bool(assessment.shuffle),
        "allowRetry": bool(assessment.allow_retry),
        "showResults": bool(assessment.show_results),
    }
    if assessment.time_limit_seconds is not None:
        out["timeLimitSeconds"] = assessment.time_limit_seconds
    if assessment.max_attempts is not None:
        out["maxAttempts"] = assessment.max_attempts
    if assessment.id is not None:
        out["id"] = assessment.id
    if assessment.title:
        out["title"] = assessment.title
    if assessment.description:
        out["description"] = assessment.description
    return out


# ---- results ----

def encode_result(result: Result) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "scorePercent": result.score_percent,
        "correctCount": result.correct_count,
        "totalCount": result.total_count,
        "elapsedSeconds": result.elapsed_seconds,
        "passed": result.passed,
        "attemptNumber": result.attempt_number,
        "completedAt": result.completed_at,
    }
    if result.assessment_id is not None:
        out["assessmentId"] = result.assessment_id
    return out


def decode_result(raw: Any) -> Union[Result, MalformedJson]:
    doc, err = _load(raw, "result")
    if err is not None:
        return err
    if not isinstance(doc, dict):
        return MalformedJson(f"result must be a JSON object, got {type(doc).__name__}")
    missing = [
        k
        for k in ("scorePercent", "correctCount", "totalCount", "elapsedSeconds", "attemptNumber")
        if _num(doc.get(k)) is None
    ]
    passed = _flag(doc.get("passed"))
    completed_at = _text(doc.get("completedAt"))
    if missing or passed is None or completed_at is None:
        return MalformedJson("result is missing required fields", fields=missing)
    return Result(
        score_percent=int(_num(doc["scorePercent"])),
        correct_count=int(_num(doc["correctCount"])),
        total_count=int(_num(doc["totalCount"])),
        elapsed_seconds=int(_num(doc["elapsedSeconds"])),
        passed=passed,
        attempt_number=int(_num(doc["attemptNumber"])),
        completed_at=completed_at,
        assessment_id=_text(doc.get("assessmentId")),
    )


def dumps(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True)


__all__ = [
    "decode_item",
    "encode_item",
    "decode_assessment",
    "encode_assessment",
    "encode_result",
    "decode_result",
    "normalize_kind",
    "dumps",
]
