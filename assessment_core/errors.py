"""Error values reported by the codec and the session.

These are Exception subclasses so callers may raise them, but the engine
itself returns them: a stray UI event or a bad document never aborts grading.
"""
from __future__ import annotations

from typing import Any, Dict


class EngineError(Exception):
    code: str = "engine_error"

    def __init__(self, message: str = "", **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        out.update(self.context)
        return out

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class MalformedJson(EngineError):
    code = "malformed_json"


class UnknownItemKind(EngineError):
    code = "unknown_item_kind"


class MissingAnswerSpecField(EngineError):
    code = "missing_answer_spec_field"


class InvalidTransition(EngineError):
    code = "invalid_transition"


class RetryNotAllowed(EngineError):
    code = "retry_not_allowed"


__all__ = [
    "EngineError",
    "MalformedJson",
    "UnknownItemKind",
    "MissingAnswerSpecField",
    "InvalidTransition",
    "RetryNotAllowed",
]
