from __future__ import annotations

from datetime import datetime, timezone

import pytest

from assessment_core.types import (
    Assessment,
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
    SingleChoiceItem,
    TrueFalseItem,
)

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


def build_items() -> list[Item]:
    """One item of every kind, with answers that are easy to reason about."""

    return [
        SingleChoiceItem(
            id="sc1",
            prompt="What is React?",
            points=1,
            options=("A JavaScript library", "A CSS framework", "A database"),
            correct_option="A JavaScript library",
            explanation="React is a UI library.",
        ),
        TrueFalseItem(id="tf1", prompt="React was created at Facebook.", points=1, answer=True),
        FreeTextItem(id="ft1", prompt="Capital of France?", points=2, accepted="Paris"),
        MarkWordsItem(
            id="mw1",
            prompt="Mark the fruits.",
            points=1,
            text="I ate an apple, a banana and some bread.",
            words=("apple", "banana"),
        ),
        ImageHotspotItem(
            id="hs1",
            prompt="Click the labelled parts.",
            points=1,
            image_url="https://example.org/engine.png",
            hotspots=(
                Hotspot(id="h1", x=10, y=20, radius=15, label="Piston"),
                Hotspot(id="h2", x=40, y=50, radius=15, label=""),
                Hotspot(id="h3", x=70, y=80, radius=15, label="Valve"),
            ),
        ),
        DragWordsItem(
            id="dw1",
            prompt="Fill the gaps.",
            points=2,
            text="The ___ is red and the ___ is blue.",
            word_bank=("sky", "rose", "grass"),
            targets=(
                DragTarget(target_id="t1", correct_word="rose"),
                DragTarget(target_id="t2", correct_word="sky"),
            ),
        ),
        MultiSelectFeedbackItem(
            id="ms1",
            prompt="Which are primes?",
            points=1,
            allow_multiple=True,
            options=(
                FeedbackOption(option_text="2", is_correct=True, feedback="Smallest prime."),
                FeedbackOption(option_text="4", is_correct=False, feedback="4 = 2 x 2."),
                FeedbackOption(option_text="7", is_correct=True),
            ),
            feedback_correct="Well done.",
            feedback_incorrect="Not quite.",
        ),
        ImageDragDropItem(
            id="dd1",
            prompt="Place the organs.",
            points=1,
            image_url="https://example.org/body.png",
            drop_zones=(
                DropZone(id="z1", x=10, y=10, width=50, height=50, label="Chest"),
                DropZone(id="z2", x=10, y=70, width=50, height=50, label="Belly"),
            ),
            draggables=(
                Draggable(draggable_id="heart", correct_zone_id="z1", text="Heart"),
                Draggable(draggable_id="stomach", correct_zone_id="z2", text="Stomach"),
            ),
        ),
    ]


def correct_responses() -> dict[str, object]:
    return {
        "sc1": "A JavaScript library",
        "tf1": True,
        "ft1": "paris",
        "mw1": {"apple", "banana"},
        "hs1": {"h1", "h3"},
        "dw1": {"t1": "rose", "t2": "sky"},
        "ms1": ["2", "7"],
        "dd1": {"heart": "z1", "stomach": "z2"},
    }


def build_sample_assessment(**settings: object) -> Assessment:
    return Assessment(items=tuple(build_items()), **settings)  # type: ignore[arg-type]


@pytest.fixture
def sample_items() -> list[Item]:
    return build_items()


@pytest.fixture
def sample_assessment() -> Assessment:
    return build_sample_assessment(passing_score_percent=70, id="quiz-1", title="Sample")
