from __future__ import annotations
from collections.abc import Mapping
from typing import Any, Callable, Dict, FrozenSet, Optional

from . import config
from .types import (
    DragWordsItem,
    FreeTextItem,
    ImageDragDropItem,
    ImageHotspotItem,
    Item,
    MarkWordsItem,
    MultiSelectFeedbackItem,
    SingleChoiceItem,
    TrueFalseItem,
)

_COLLECTION_TYPES = (list, tuple, set, frozenset)


def normalize_word(word: str) -> str:
    """Drop the configured punctuation and surrounding whitespace."""

    table = str.maketrans("", "", config.WORD_STRIP_CHARS)
    return word.translate(table).strip()


def _as_str_set(value: Any, normalize: Callable[[str], str]) -> Optional[FrozenSet[str]]:
    # a bare string is not a set of words
    if not isinstance(value, _COLLECTION_TYPES):
        return None
    out = set()
    for v in value:
        if not isinstance(v, str):
            return None
        out.add(normalize(v))
    return frozenset(out)


def _as_str_map(value: Any) -> Optional[Dict[str, str]]:
    if not isinstance(value, Mapping):
        return None
    return {str(k): v for k, v in value.items() if isinstance(v, str)}


def _check_single_choice(item: SingleChoiceItem, response: Any) -> bool:
    if not isinstance(response, str) or not item.correct_option:
        return False
    return normalize_word(response) == normalize_word(item.correct_option)


def _check_true_false(item: TrueFalseItem, response: Any) -> bool:
    if isinstance(response, bool):
        return response == bool(item.answer)
    # the legacy player stored radio values as "true"/"false"
    if isinstance(response, str):
        raw = response.strip().lower()
        if raw in ("true", "false"):
            return (raw == "true") == bool(item.answer)
    return False


def _check_free_text(item: FreeTextItem, response: Any) -> bool:
    if not isinstance(response, str):
        return False
    case_sensitive = item.case_sensitive
    if case_sensitive is None:
        case_sensitive = config.FREE_TEXT_CASE_SENSITIVE
    given, accepted = response.strip(), item.accepted.strip()
    if not case_sensitive:
        given, accepted = given.casefold(), accepted.casefold()
    return given == accepted


def _check_mark_words(item: MarkWordsItem, response: Any) -> bool:
    chosen = _as_str_set(response, normalize_word)
    if chosen is None:
        return False
    return chosen == frozenset(normalize_word(w) for w in item.words)


def _check_image_hotspot(item: ImageHotspotItem, response: Any) -> bool:
    clicked = _as_str_set(response, str.strip)
    if clicked is None:
        return False
    return clicked == frozenset(i.strip() for i in item.correct_ids)


def _check_drag_words(item: DragWordsItem, response: Any) -> bool:
    placed = _as_str_map(response)
    if placed is None:
        return False
    for target in item.targets:
        word = placed.get(target.target_id)
        if word is None or normalize_word(word) != normalize_word(target.correct_word):
            return False
    return True


def _check_multi_select(item: MultiSelectFeedbackItem, response: Any) -> bool:
    if isinstance(response, str):
        response = [response]
    chosen = _as_str_set(response, normalize_word)
    if chosen is None:
        return False
    correct = frozenset(normalize_word(t) for t in item.correct_texts)
    if item.allow_multiple:
        return chosen == correct
    # single mode: exactly one selection, and it must be a correct option
    if isinstance(response, (list, tuple)) and len(response) != 1:
        return False
    return len(chosen) == 1 and next(iter(chosen)) in correct


def _check_image_drag_drop(item: ImageDragDropItem, response: Any) -> bool:
    placed = _as_str_map(response)
    if placed is None:
        return False
    for d in item.draggables:
        zone = placed.get(d.draggable_id)
        if zone is None or zone.strip() != d.correct_zone_id.strip():
            return False
    return True


_RULES: Dict[str, Callable[[Any, Any], bool]] = {
    SingleChoiceItem.kind: _check_single_choice,
    TrueFalseItem.kind: _check_true_false,
    FreeTextItem.kind: _check_free_text,
    MarkWordsItem.kind: _check_mark_words,
    ImageHotspotItem.kind: _check_image_hotspot,
    DragWordsItem.kind: _check_drag_words,
    MultiSelectFeedbackItem.kind: _check_multi_select,
    ImageDragDropItem.kind: _check_image_drag_drop,
}


def is_correct(item: Item, response: Any = None) -> bool:
    """
    Grade one response against one item. Always returns a bool.
    An absent response (None) is never correct; any response whose shape
    does not fit the item kind is simply incorrect.
    """
    if response is None:
        return False
    rule = _RULES.get(getattr(item, "kind", ""))
    if rule is None:
        return False
    return bool(rule(item, response))


def feedback_for(item: Item, response: Any = None) -> str:
    """Text a renderer shows once the item has been graded."""

    ok = is_correct(item, response)
    parts = []
    if isinstance(item, MultiSelectFeedbackItem):
        chosen = [response] if isinstance(response, str) else response
        if isinstance(chosen, _COLLECTION_TYPES):
            picked = {normalize_word(c) for c in chosen if isinstance(c, str)}
            for opt in item.options:
                if opt.feedback and normalize_word(opt.option_text) in picked:
                    parts.append(opt.feedback)
        summary = item.feedback_correct if ok else item.feedback_incorrect
        if summary:
            parts.append(summary)
    if item.explanation:
        parts.append(item.explanation)
    return "\n".join(parts)


__all__ = ["is_correct", "feedback_for", "normalize_word"]
