from __future__ import annotations
from dataclasses import dataclass, field
import math
from typing import Any, ClassVar, Dict, FrozenSet, List, Literal, Mapping, Optional, Tuple, Union

Kind = Literal[
    "single-choice",
    "true-false",
    "free-text",
    "mark-words",
    "image-hotspot",
    "drag-words",
    "multi-select-feedback",
    "image-drag-drop",
]
KINDS: Tuple[str, ...] = (
    "single-choice",
    "true-false",
    "free-text",
    "mark-words",
    "image-hotspot",
    "drag-words",
    "multi-select-feedback",
    "image-drag-drop",
)

# str | bool | collection of str | mapping of sub-target id -> str
Response = Any


def _check_points(points: object) -> None:
    if (
        isinstance(points, bool)
        or not isinstance(points, (int, float))
        or not math.isfinite(points)
        or points <= 0
    ):
        raise ValueError(f"points must be a positive finite number, got {points!r}")


@dataclass(frozen=True)
class Hotspot:
    id: str
    x: float = 0.0
    y: float = 0.0
    radius: float = 0.0
    label: str = ""

    @property
    def is_correct(self) -> bool:
        return bool(self.label and self.label.strip())


@dataclass(frozen=True)
class DragTarget:
    target_id: str
    correct_word: str
    placeholder: str = "___"


@dataclass(frozen=True)
class FeedbackOption:
    option_text: str
    is_correct: bool = False
    feedback: str = ""


@dataclass(frozen=True)
class DropZone:
    id: str
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    label: str = ""


@dataclass(frozen=True)
class Draggable:
    draggable_id: str
    correct_zone_id: str
    text: str = ""


@dataclass(frozen=True)
class _ItemBase:
    id: str
    prompt: str = ""
    points: float = 1
    explanation: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise ValueError("item id must be a non-empty string")
        _check_points(self.points)


@dataclass(frozen=True)
class SingleChoiceItem(_ItemBase):
    kind: ClassVar[str] = "single-choice"
    options: Tuple[str, ...] = ()
    correct_option: str = ""


@dataclass(frozen=True)
class TrueFalseItem(_ItemBase):
    kind: ClassVar[str] = "true-false"
    answer: bool = False


@dataclass(frozen=True)
class FreeTextItem(_ItemBase):
    kind: ClassVar[str] = "free-text"
    accepted: str = ""
    # None defers to config.FREE_TEXT_CASE_SENSITIVE
    case_sensitive: Optional[bool] = None


@dataclass(frozen=True)
class MarkWordsItem(_ItemBase):
    kind: ClassVar[str] = "mark-words"
    text: str = ""
    words: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ImageHotspotItem(_ItemBase):
    kind: ClassVar[str] = "image-hotspot"
    image_url: str = ""
    hotspots: Tuple[Hotspot, ...] = ()

    @property
    def correct_ids(self) -> FrozenSet[str]:
        return frozenset(h.id for h in self.hotspots if h.is_correct)


@dataclass(frozen=True)
class DragWordsItem(_ItemBase):
    kind: ClassVar[str] = "drag-words"
    text: str = ""
    word_bank: Tuple[str, ...] = ()
    targets: Tuple[DragTarget, ...] = ()


@dataclass(frozen=True)
class MultiSelectFeedbackItem(_ItemBase):
    kind: ClassVar[str] = "multi-select-feedback"
    options: Tuple[FeedbackOption, ...] = ()
    allow_multiple: bool = False
    feedback_correct: str = ""
    feedback_incorrect: str = ""

    @property
    def correct_texts(self) -> Tuple[str, ...]:
        return tuple(o.option_text for o in self.options if o.is_correct)


@dataclass(frozen=True)
class ImageDragDropItem(_ItemBase):
    kind: ClassVar[str] = "image-drag-drop"
    image_url: str = ""
    drop_zones: Tuple[DropZone, ...] = ()
    draggables: Tuple[Draggable, ...] = ()


Item = Union[
    SingleChoiceItem,
    TrueFalseItem,
    FreeTextItem,
    MarkWordsItem,
    ImageHotspotItem,
    DragWordsItem,
    MultiSelectFeedbackItem,
    ImageDragDropItem,
]

ITEM_CLASSES: Dict[str, type] = {
    cls.kind: cls
    for cls in (
        SingleChoiceItem,
        TrueFalseItem,
        FreeTextItem,
        MarkWordsItem,
        ImageHotspotItem,
        DragWordsItem,
        MultiSelectFeedbackItem,
        ImageDragDropItem,
    )
}


@dataclass(frozen=True)
class Assessment:
    items: Tuple[Item, ...] = ()
    time_limit_seconds: Optional[float] = None
    passing_score_percent: float = 0
    shuffle: bool = False
    allow_retry: bool = False
    max_attempts: Optional[int] = None
    id: Optional[str] = None
    title: str = ""
    description: str = ""
    show_results: bool = True

    def __post_init__(self) -> None:
        if not 0 <= self.passing_score_percent <= 100:
            raise ValueError("passing_score_percent must be within 0..100")
        seen: set[str] = set()
        for it in self.items:
            if it.id in seen:
                raise ValueError(f"duplicate item id {it.id!r}")
            seen.add(it.id)

    def item_by_id(self, item_id: str) -> Optional[Item]:
        for it in self.items:
            if it.id == item_id:
                return it
        return None

    @property
    def total_points(self) -> float:
        return sum(it.points for it in self.items)


@dataclass(frozen=True)
class Result:
    score_percent: int
    correct_count: int
    total_count: int
    elapsed_seconds: int
    passed: bool
    attempt_number: int
    completed_at: str
    assessment_id: Optional[str] = None


@dataclass(frozen=True)
class ItemReview:
    position: int
    item_id: str
    kind: str
    points: float
    answered: bool
    correct: bool

    def to_dict(self) -> Dict[str, object]:
        return {
            "position": self.position,
            "item_id": self.item_id,
            "kind": self.kind,
            "points": self.points,
            "answered": self.answered,
            "correct": self.correct,
        }


@dataclass
class DecodeReport:
    """Outcome of decoding a persisted assessment.

    ``assessment`` is None only when the document itself could not be read.
    ``errors`` holds items that were dropped, ``warnings`` fields that were repaired.
    """

    assessment: Optional[Assessment] = None
    warnings: List[Any] = field(default_factory=list)
    errors: List[Any] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.assessment is not None and not self.errors

    def messages(self) -> List[Dict[str, object]]:
        return [e.to_dict() for e in self.errors] + [w.to_dict() for w in self.warnings]


ResponseMap = Mapping[str, Response]
