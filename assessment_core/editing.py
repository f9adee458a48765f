"""Editor operations on items and assessments.

Every function returns a new value; the input is never modified, so an
assessment already handed to a running session stays as it was.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Optional, Sequence, Tuple, TypeVar

from .types import (
    Assessment,
    Draggable,
    DragTarget,
    DragWordsItem,
    DropZone,
    FeedbackOption,
    Hotspot,
    ImageDragDropItem,
    ImageHotspotItem,
    Item,
    MultiSelectFeedbackItem,
    SingleChoiceItem,
)

T = TypeVar("T")


def _insert(seq: Sequence[T], value: T, index: Optional[int] = None) -> Tuple[T, ...]:
    out = list(seq)
    if index is None:
        out.append(value)
    else:
        out.insert(index, value)
    return tuple(out)


def _remove_at(seq: Sequence[T], index: int) -> Tuple[T, ...]:
    if not -len(seq) <= index < len(seq):
        raise IndexError(f"index {index} out of range for {len(seq)} entries")
    out = list(seq)
    del out[index]
    return tuple(out)


def _move(seq: Sequence[T], src: int, dst: int) -> Tuple[T, ...]:
    out = list(seq)
    value = out.pop(src)
    out.insert(dst, value)
    return tuple(out)


def _set_at(seq: Sequence[T], index: int, value: T) -> Tuple[T, ...]:
    out = list(seq)
    out[index] = value
    return tuple(out)


def with_points(item: Item, points: float) -> Item:
    return replace(item, points=points)


# ---- single-choice ----

def add_option(item: SingleChoiceItem, text: str, index: Optional[int] = None) -> SingleChoiceItem:
    return replace(item, options=_insert(item.options, text, index))


def set_option(item: SingleChoiceItem, index: int, text: str) -> SingleChoiceItem:
    old = item.options[index]
    correct = text if item.correct_option == old else item.correct_option
    return replace(item, options=_set_at(item.options, index, text), correct_option=correct)


def remove_option(item: SingleChoiceItem, index: int) -> SingleChoiceItem:
    removed = item.options[index]
    options = _remove_at(item.options, index)
    correct = item.correct_option
    if correct == removed and correct not in options:
        correct = ""
    return replace(item, options=options, correct_option=correct)


def set_correct_option(item: SingleChoiceItem, text: str) -> SingleChoiceItem:
    if text not in item.options:
        raise ValueError(f"{text!r} is not one of the options")
    return replace(item, correct_option=text)


def move_option(item: SingleChoiceItem, src: int, dst: int) -> SingleChoiceItem:
    return replace(item, options=_move(item.options, src, dst))


# ---- image-hotspot ----

def _hotspot_index(item: ImageHotspotItem, hotspot_id: str) -> int:
    for idx, h in enumerate(item.hotspots):
        if h.id == hotspot_id:
            return idx
    raise KeyError(hotspot_id)


def add_hotspot(item: ImageHotspotItem, hotspot: Hotspot) -> ImageHotspotItem:
    if any(h.id == hotspot.id for h in item.hotspots):
        raise ValueError(f"hotspot {hotspot.id!r} already exists")
    return replace(item, hotspots=_insert(item.hotspots, hotspot))


def update_hotspot(item: ImageHotspotItem, hotspot_id: str, **changes: object) -> ImageHotspotItem:
    idx = _hotspot_index(item, hotspot_id)
    return replace(item, hotspots=_set_at(item.hotspots, idx, replace(item.hotspots[idx], **changes)))


def remove_hotspot(item: ImageHotspotItem, hotspot_id: str) -> ImageHotspotItem:
    return replace(item, hotspots=_remove_at(item.hotspots, _hotspot_index(item, hotspot_id)))


def move_hotspot(item: ImageHotspotItem, hotspot_id: str, new_index: int) -> ImageHotspotItem:
    return replace(item, hotspots=_move(item.hotspots, _hotspot_index(item, hotspot_id), new_index))


# ---- drag-words ----

def add_target(item: DragWordsItem, target: DragTarget) -> DragWordsItem:
    if any(t.target_id == target.target_id for t in item.targets):
        raise ValueError(f"target {target.target_id!r} already exists")
    bank = item.word_bank
    if target.correct_word and target.correct_word not in bank:
        bank = _insert(bank, target.correct_word)
    return replace(item, targets=_insert(item.targets, target), word_bank=bank)


def remove_target(item: DragWordsItem, target_id: str) -> DragWordsItem:
    targets = tuple(t for t in item.targets if t.target_id != target_id)
    if len(targets) == len(item.targets):
        raise KeyError(target_id)
    return replace(item, targets=targets)


def _target_index(item: DragWordsItem, target_id: str) -> int:
    for idx, t in enumerate(item.targets):
        if t.target_id == target_id:
            return idx
    raise KeyError(target_id)


def update_target(item: DragWordsItem, target_id: str, /, **changes: object) -> DragWordsItem:
    idx = _target_index(item, target_id)
    target = replace(item.targets[idx], **changes)
    if target.target_id != target_id and any(t.target_id == target.target_id for t in item.targets):
        raise ValueError(f"target {target.target_id!r} already exists")
    bank = item.word_bank
    if target.correct_word and target.correct_word not in bank:
        bank = _insert(bank, target.correct_word)
    return replace(item, targets=_set_at(item.targets, idx, target), word_bank=bank)


def move_target(item: DragWordsItem, target_id: str, new_index: int) -> DragWordsItem:
    return replace(item, targets=_move(item.targets, _target_index(item, target_id), new_index))


# ---- multi-select-feedback ----

def add_feedback_option(
    item: MultiSelectFeedbackItem, option: FeedbackOption, index: Optional[int] = None
) -> MultiSelectFeedbackItem:
    return replace(item, options=_insert(item.options, option, index))


def remove_feedback_option(item: MultiSelectFeedbackItem, index: int) -> MultiSelectFeedbackItem:
    return replace(item, options=_remove_at(item.options, index))


def toggle_correct(item: MultiSelectFeedbackItem, index: int) -> MultiSelectFeedbackItem:
    """Flip one option; in single mode the other options are cleared."""

    options = list(item.options)
    target = options[index]
    flipped = not target.is_correct
    if flipped and not item.allow_multiple:
        options = [replace(o, is_correct=False) for o in options]
    options[index] = replace(target, is_correct=flipped)
    return replace(item, options=tuple(options))


def update_feedback_option(
    item: MultiSelectFeedbackItem, index: int, **changes: object
) -> MultiSelectFeedbackItem:
    # correctness goes through toggle_correct so single mode stays consistent
    if "is_correct" in changes:
        raise ValueError("use toggle_correct to change which options are correct")
    return replace(item, options=_set_at(item.options, index, replace(item.options[index], **changes)))


def move_feedback_option(item: MultiSelectFeedbackItem, src: int, dst: int) -> MultiSelectFeedbackItem:
    return replace(item, options=_move(item.options, src, dst))


# ---- image-drag-drop ----

def add_drop_zone(item: ImageDragDropItem, zone: DropZone) -> ImageDragDropItem:
    if any(z.id == zone.id for z in item.drop_zones):
        raise ValueError(f"drop zone {zone.id!r} already exists")
    return replace(item, drop_zones=_insert(item.drop_zones, zone))


def remove_drop_zone(item: ImageDragDropItem, zone_id: str) -> ImageDragDropItem:
    zones = tuple(z for z in item.drop_zones if z.id != zone_id)
    if len(zones) == len(item.drop_zones):
        raise KeyError(zone_id)
    # a draggable whose answer zone is gone can no longer be graded
    draggables = tuple(d for d in item.draggables if d.correct_zone_id != zone_id)
    return replace(item, drop_zones=zones, draggables=draggables)


def add_draggable(item: ImageDragDropItem, draggable: Draggable) -> ImageDragDropItem:
    if not any(z.id == draggable.correct_zone_id for z in item.drop_zones):
        raise ValueError(f"unknown drop zone {draggable.correct_zone_id!r}")
    if any(d.draggable_id == draggable.draggable_id for d in item.draggables):
        raise ValueError(f"draggable {draggable.draggable_id!r} already exists")
    return replace(item, draggables=_insert(item.draggables, draggable))


def remove_draggable(item: ImageDragDropItem, draggable_id: str) -> ImageDragDropItem:
    draggables = tuple(d for d in item.draggables if d.draggable_id != draggable_id)
    if len(draggables) == len(item.draggables):
        raise KeyError(draggable_id)
    return replace(item, draggables=draggables)


def _zone_index(item: ImageDragDropItem, zone_id: str) -> int:
    for idx, z in enumerate(item.drop_zones):
        if z.id == zone_id:
            return idx
    raise KeyError(zone_id)


def _draggable_index(item: ImageDragDropItem, draggable_id: str) -> int:
    for idx, d in enumerate(item.draggables):
        if d.draggable_id == draggable_id:
            return idx
    raise KeyError(draggable_id)


def update_drop_zone(item: ImageDragDropItem, zone_id: str, **changes: object) -> ImageDragDropItem:
    """Change a zone in place; renaming it re-points the draggables that answer to it."""

    idx = _zone_index(item, zone_id)
    zone = replace(item.drop_zones[idx], **changes)
    draggables = item.draggables
    if zone.id != zone_id:
        if any(z.id == zone.id for z in item.drop_zones):
            raise ValueError(f"drop zone {zone.id!r} already exists")
        draggables = tuple(
            replace(d, correct_zone_id=zone.id) if d.correct_zone_id == zone_id else d
            for d in draggables
        )
    return replace(item, drop_zones=_set_at(item.drop_zones, idx, zone), draggables=draggables)


def move_drop_zone(item: ImageDragDropItem, zone_id: str, new_index: int) -> ImageDragDropItem:
    return replace(item, drop_zones=_move(item.drop_zones, _zone_index(item, zone_id), new_index))


def update_draggable(item: ImageDragDropItem, draggable_id: str, **changes: object) -> ImageDragDropItem:
    idx = _draggable_index(item, draggable_id)
    draggable = replace(item.draggables[idx], **changes)
    if not any(z.id == draggable.correct_zone_id for z in item.drop_zones):
        raise ValueError(f"unknown drop zone {draggable.correct_zone_id!r}")
    if draggable.draggable_id != draggable_id and any(
        d.draggable_id == draggable.draggable_id for d in item.draggables
    ):
        raise ValueError(f"draggable {draggable.draggable_id!r} already exists")
    return replace(item, draggables=_set_at(item.draggables, idx, draggable))


def move_draggable(item: ImageDragDropItem, draggable_id: str, new_index: int) -> ImageDragDropItem:
    return replace(item, draggables=_move(item.draggables, _draggable_index(item, draggable_id), new_index))


# ---- assessment ----

def _item_index(assessment: Assessment, item_id: str) -> int:
    for idx, it in enumerate(assessment.items):
        if it.id == item_id:
            return idx
    raise KeyError(item_id)


def add_item(assessment: Assessment, item: Item, index: Optional[int] = None) -> Assessment:
    return replace(assessment, items=_insert(assessment.items, item, index))


def replace_item(assessment: Assessment, item: Item) -> Assessment:
    idx = _item_index(assessment, item.id)
    return replace(assessment, items=_set_at(assessment.items, idx, item))


def remove_item(assessment: Assessment, item_id: str) -> Assessment:
    return replace(assessment, items=_remove_at(assessment.items, _item_index(assessment, item_id)))


def move_item(assessment: Assessment, item_id: str, new_index: int) -> Assessment:
    return replace(assessment, items=_move(assessment.items, _item_index(assessment, item_id), new_index))
