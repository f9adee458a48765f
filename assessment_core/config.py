from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


# Free-text answers compare case-insensitively unless the item says otherwise.
FREE_TEXT_CASE_SENSITIVE: bool = False

# Removed from words before mark-words and option comparison.
WORD_STRIP_CHARS: str = ".,!?;:"

MIN_POINTS: int = 1
MIN_PASSING_SCORE: int = 0
MAX_PASSING_SCORE: int = 100

# timeLimitSeconds is authored in minutes by the editor; the session multiplies it.
TIME_LIMIT_UNIT_SECONDS: int = 60


DEBUG_TRACE: bool = False
TRACE_FIELDS: tuple[str, ...] = (
    "event",
    "attempt",
    "phase",
    "index",
    "elapsed",
    "item_id",
)

LEGACY_KIND_ALIASES: dict[str, str] = {
    "multiple-choice": "single-choice",
    "multiple_choice": "single-choice",
    "single_choice": "single-choice",
    "quiz": "single-choice",
    "true_false": "true-false",
    "fill-in-the-blank": "free-text",
    "fill_in_the_blank": "free-text",
    "free_text": "free-text",
    "mark-the-words": "mark-words",
    "mark_the_words": "mark-words",
    "mark_words": "mark-words",
    "image_hotspot": "image-hotspot",
    "drag-the-words": "drag-words",
    "drag_the_words": "drag-words",
    "drag_words": "drag-words",
    "test": "multi-select-feedback",
    "multi_select_feedback": "multi-select-feedback",
    "image_drag_drop": "image-drag-drop",
}

CORS_ORIGINS: tuple[str, ...] = ("http://localhost:3000",)

# // env overrides for staging/ops; defaults remain conservative.
FREE_TEXT_CASE_SENSITIVE = _env_bool("FREE_TEXT_CASE_SENSITIVE", FREE_TEXT_CASE_SENSITIVE)
DEBUG_TRACE = _env_bool("DEBUG_TRACE", False)
CORS_ORIGINS = tuple(
    o.strip() for o in _env_str("CORS_ORIGINS", ",".join(CORS_ORIGINS)).split(",") if o.strip()
)
