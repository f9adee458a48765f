from __future__ import annotations

import pytest

from assessment_core import config
from assessment_core.evaluator import feedback_for, is_correct, normalize_word
from assessment_core.types import (
    DragTarget,
    DragWordsItem,
    FeedbackOption,
    FreeTextItem,
    MarkWordsItem,
    MultiSelectFeedbackItem,
    TrueFalseItem,
)

from tests.conftest import build_items, correct_responses


def test_every_kind_accepts_its_correct_response():
    answers = correct_responses()
    for item in build_items():
        assert is_correct(item, answers[item.id]), item.kind


def test_absent_response_is_never_correct():
    for item in build_items():
        assert is_correct(item, None) is False


@pytest.mark.parametrize(
    "response",
    [0, 1, 2.5, True, False, "", "x", [], [1, 2], [["nested"]], {}, {"a": 1}, {"a": None}, set(), object(), b"bytes"],
)
def test_mismatched_shapes_return_false_without_raising(response):
    for item in build_items():
        result = is_correct(item, response)
        assert isinstance(result, bool)
        assert result is False or item.kind in {"true-false", "drag-words", "image-drag-drop"}


def test_true_false_booleans_and_legacy_strings():
    item = TrueFalseItem(id="tf", answer=True)
    assert is_correct(item, True)
    assert not is_correct(item, False)
    assert is_correct(item, " TRUE ")
    assert not is_correct(item, "false")
    assert not is_correct(item, 1)


def test_mark_words_requires_exact_set():
    item = MarkWordsItem(id="mw", words=("apple", "banana"))
    assert not is_correct(item, {"apple"})
    assert is_correct(item, {"apple", "banana"})
    assert not is_correct(item, {"apple", "banana", "cherry"})


def test_mark_words_strips_punctuation_and_collapses_duplicates():
    item = MarkWordsItem(id="mw", words=("apple", "apple", "banana."))
    assert is_correct(item, ["apple,", " banana!", "apple"])
    assert not is_correct(item, "apple banana")


def test_normalize_word():
    assert normalize_word("  hello?! ") == "hello"
    assert normalize_word("a.b") == "ab"


def test_free_text_default_case_is_a_single_constant(monkeypatch):
    item = FreeTextItem(id="ft", accepted="Paris")
    monkeypatch.setattr(config, "FREE_TEXT_CASE_SENSITIVE", False)
    assert is_correct(item, "  paris ")
    monkeypatch.setattr(config, "FREE_TEXT_CASE_SENSITIVE", True)
    assert not is_correct(item, "paris")
    assert is_correct(item, "Paris ")


def test_free_text_item_flag_overrides_default(monkeypatch):
    monkeypatch.setattr(config, "FREE_TEXT_CASE_SENSITIVE", False)
    strict = FreeTextItem(id="ft", accepted="Paris", case_sensitive=True)
    assert not is_correct(strict, "paris")
    assert is_correct(strict, "Paris")


def test_drag_words_is_all_or_nothing():
    item = DragWordsItem(
        id="dw",
        targets=(DragTarget(target_id="t1", correct_word="rose"), DragTarget(target_id="t2", correct_word="sky")),
    )
    good = {"t1": "rose", "t2": "sky"}
    assert is_correct(item, good)
    for target_id in good:
        flipped = dict(good)
        flipped[target_id] = "grass"
        assert not is_correct(item, flipped), target_id
    assert not is_correct(item, {"t1": "rose"}), "an unfilled target fails the item"


def test_hotspot_extra_or_missing_clicks_fail():
    item = next(it for it in build_items() if it.kind == "image-hotspot")
    assert is_correct(item, ["h3", "h1"])
    assert not is_correct(item, ["h1"])
    assert not is_correct(item, ["h1", "h2", "h3"])


def test_image_drag_drop_every_draggable_must_land():
    item = next(it for it in build_items() if it.kind == "image-drag-drop")
    assert not is_correct(item, {"heart": "z1"})
    assert not is_correct(item, {"heart": "z2", "stomach": "z2"})
    assert is_correct(item, {"heart": "z1", "stomach": "z2", "extra": "z1"})


def test_multi_select_single_mode():
    item = MultiSelectFeedbackItem(
        id="ms",
        options=(FeedbackOption("Yes", True), FeedbackOption("No", False)),
        allow_multiple=False,
    )
    assert is_correct(item, "Yes")
    assert is_correct(item, ["Yes"])
    assert not is_correct(item, "No")
    assert not is_correct(item, ["Yes", "No"])
    assert not is_correct(item, ["Yes", "Yes"])


def test_multi_select_multi_mode_needs_exact_set():
    item = next(it for it in build_items() if it.kind == "multi-select-feedback")
    assert is_correct(item, {"7", "2"})
    assert not is_correct(item, ["2"])
    assert not is_correct(item, ["2", "4", "7"])


def test_feedback_collects_option_feedback_and_explanation():
    items = {it.id: it for it in build_items()}
    text = feedback_for(items["ms1"], ["2", "4"])
    assert "Smallest prime." in text
    assert "4 = 2 x 2." in text
    assert "Not quite." in text
    assert feedback_for(items["ms1"], ["2", "7"]).endswith("Well done.")
    assert feedback_for(items["sc1"], "A CSS framework") == "React is a UI library."
    assert feedback_for(items["tf1"], True) == ""
