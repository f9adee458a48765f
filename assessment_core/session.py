# assessment_core/session.py
from __future__ import annotations
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union
import logging
import math
import random

from . import config
from .errors import InvalidTransition, RetryNotAllowed
from .evaluator import is_correct
from .scorer import passed as _passed
from .scorer import score
from .types import Assessment, Item, ItemReview, Result


log = logging.getLogger(__name__)


def _emit_trace(**values: object) -> None:
    if not config.DEBUG_TRACE:
        return
    ordered = []
    for key in config.TRACE_FIELDS:
        if key in values:
            ordered.append(f"{key}={values[key]}")
    if ordered:
        log.info("trace %s", " ".join(str(val) for val in ordered))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Phase(str, Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class Session:
    """
    One learner's attempt at an assessment.

    Transitions return None on success, or an InvalidTransition /
    RetryNotAllowed value when the call does not fit the current phase;
    a rejected call leaves the session untouched. The session owns no clock:
    whoever drives it calls tick() about once a second.
    """

    def __init__(
        self,
        assessment: Assessment,
        *,
        rng: Optional[random.Random] = None,
        attempt_number: int = 1,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.assessment = assessment
        self.rng = rng if rng is not None else random.Random()
        self.clock = clock or _utcnow
        self.attempt_number = attempt_number
        self.phase = Phase.NOT_STARTED
        self.order: List[str] = []
        self.current_index = 0
        self.elapsed_seconds: float = 0
        self.responses: Dict[str, Any] = {}
        self.result: Optional[Result] = None
        self._items: Dict[str, Item] = {it.id: it for it in assessment.items}

    # ---- guards ----

    def _reject(self, action: str, why: str) -> InvalidTransition:
        log.debug(
            "session reject action=%s phase=%s attempt=%d reason=%s",
            action,
            self.phase.value,
            self.attempt_number,
            why,
        )
        return InvalidTransition(
            f"{action}: {why}", action=action, phase=self.phase.value
        )

    def _require_in_progress(self, action: str) -> Optional[InvalidTransition]:
        if self.phase is not Phase.IN_PROGRESS:
            return self._reject(action, f"session is {self.phase.value}")
        return None

    # ---- transitions ----

    def start(self) -> Optional[InvalidTransition]:
        if self.phase is not Phase.NOT_STARTED:
            return self._reject("start", f"session is {self.phase.value}")
        order = [it.id for it in self.assessment.items]
        if self.assessment.shuffle:
            self.rng.shuffle(order)
        self.order = order
        self.current_index = 0
        self.elapsed_seconds = 0
        self.phase = Phase.IN_PROGRESS
        log.debug(
            "session start attempt=%d items=%d shuffle=%s",
            self.attempt_number,
            len(order),
            self.assessment.shuffle,
        )
        _emit_trace(event="start", attempt=self.attempt_number, phase=self.phase.value, index=0, elapsed=0)
        return None

    def tick(self, delta_seconds: float = 1) -> Optional[InvalidTransition]:
        err = self._require_in_progress("tick")
        if err is not None:
            return err
        if (
            isinstance(delta_seconds, bool)
            or not isinstance(delta_seconds, (int, float))
            or not math.isfinite(delta_seconds)
            or delta_seconds < 0
        ):
            return self._reject("tick", f"delta must be a finite non-negative number, got {delta_seconds!r}")
        self.elapsed_seconds += delta_seconds
        limit = self.time_limit
        if limit is not None and self.elapsed_seconds >= limit:
            log.debug("session time expired attempt=%d elapsed=%s limit=%s", self.attempt_number, self.elapsed_seconds, limit)
            self._finish("time-expired")
        return None

    def submit_response(self, item_id: str, response: Any) -> Optional[InvalidTransition]:
        err = self._require_in_progress("submit_response")
        if err is not None:
            return err
        if item_id not in self._items:
            return self._reject("submit_response", f"unknown item {item_id!r}")
        self.responses[item_id] = response
        _emit_trace(
            event="submit",
            attempt=self.attempt_number,
            phase=self.phase.value,
            index=self.current_index,
            elapsed=self.elapsed_seconds,
            item_id=item_id,
        )
        return None

    def advance(self) -> Optional[InvalidTransition]:
        err = self._require_in_progress("advance")
        if err is not None:
            return err
        if self.current_index < len(self.order) - 1:
            self.current_index += 1
            _emit_trace(event="advance", attempt=self.attempt_number, phase=self.phase.value, index=self.current_index)
        else:
            self._finish("last-item")
        return None

    def go_back(self) -> Optional[InvalidTransition]:
        err = self._require_in_progress("go_back")
        if err is not None:
            return err
        if self.current_index <= 0:
            return self._reject("go_back", "already at the first item")
        self.current_index -= 1
        _emit_trace(event="back", attempt=self.attempt_number, phase=self.phase.value, index=self.current_index)
        return None

    def complete(self) -> Optional[InvalidTransition]:
        err = self._require_in_progress("complete")
        if err is not None:
            return err
        self._finish("finish")
        return None

    def can_retry(self) -> bool:
        a = self.assessment
        if not a.allow_retry:
            return False
        return a.max_attempts is None or self.attempt_number < a.max_attempts

    def retry(self) -> Union["Session", RetryNotAllowed, InvalidTransition]:
        """Fresh, not-yet-started session for the next attempt; this one is left as is."""

        if self.phase is Phase.NOT_STARTED:
            return self._reject("retry", "session has not started")
        if not self.can_retry():
            log.debug(
                "session retry refused attempt=%d allow_retry=%s max_attempts=%s",
                self.attempt_number,
                self.assessment.allow_retry,
                self.assessment.max_attempts,
            )
            return RetryNotAllowed(
                "retry is not allowed for this assessment"
                if not self.assessment.allow_retry
                else f"attempt limit {self.assessment.max_attempts} reached",
                attempt_number=self.attempt_number,
                max_attempts=self.assessment.max_attempts,
            )
        return Session(
            self.assessment,
            rng=self.rng,
            attempt_number=self.attempt_number + 1,
            clock=self.clock,
        )

    def _finish(self, reason: str) -> None:
        sc = score(self.ordered_items(), self.responses)
        self.result = Result(
            score_percent=sc.percent,
            correct_count=sc.correct_count,
            total_count=sc.total_count,
            elapsed_seconds=int(self.elapsed_seconds),
            passed=_passed(sc.percent, self.assessment.passing_score_percent),
            attempt_number=self.attempt_number,
            completed_at=self.clock().isoformat(),
            assessment_id=self.assessment.id,
        )
        self.phase = Phase.COMPLETED
        log.debug(
            "session complete attempt=%d reason=%s percent=%d correct=%d/%d passed=%s",
            self.attempt_number,
            reason,
            sc.percent,
            sc.correct_count,
            sc.total_count,
            self.result.passed,
        )
        _emit_trace(
            event=f"complete:{reason}",
            attempt=self.attempt_number,
            phase=self.phase.value,
            index=self.current_index,
            elapsed=self.elapsed_seconds,
        )

    # ---- derived state ----

    @property
    def current_result(self) -> Result:
        if self.phase is not Phase.COMPLETED or self.result is None:
            raise InvalidTransition(
                "result is only available once the session is completed",
                action="current_result",
                phase=self.phase.value,
            )
        return self.result

    @property
    def time_limit(self) -> Optional[float]:
        if self.assessment.time_limit_seconds is None:
            return None
        return self.assessment.time_limit_seconds * config.TIME_LIMIT_UNIT_SECONDS

    @property
    def time_remaining(self) -> Optional[float]:
        limit = self.time_limit
        if limit is None:
            return None
        return max(limit - self.elapsed_seconds, 0)

    @property
    def current_item(self) -> Optional[Item]:
        if self.phase is not Phase.IN_PROGRESS or not self.order:
            return None
        return self._items[self.order[self.current_index]]

    @property
    def progress(self) -> float:
        if self.phase is Phase.COMPLETED:
            return 1.0
        if self.phase is Phase.NOT_STARTED or not self.order:
            return 0.0
        return (self.current_index + 1) / len(self.order)

    @property
    def answered_count(self) -> int:
        return sum(1 for iid in self.order if iid in self.responses)

    def ordered_items(self) -> List[Item]:
        if not self.order:
            return list(self.assessment.items)
        return [self._items[iid] for iid in self.order]

    def review(self) -> List[ItemReview]:
        rows: List[ItemReview] = []
        for pos, it in enumerate(self.ordered_items()):
            resp = self.responses.get(it.id)
            rows.append(
                ItemReview(
                    position=pos,
                    item_id=it.id,
                    kind=it.kind,
                    points=it.points,
                    answered=it.id in self.responses,
                    correct=is_correct(it, resp),
                )
            )
        return rows

    def to_dict(self) -> Dict[str, object]:
        """JSON-friendly snapshot for the UI/API layer."""

        return {
            "phase": self.phase.value,
            "attempt_number": self.attempt_number,
            "current_index": self.current_index,
            "total_count": len(self.order) if self.order else len(self.assessment.items),
            "answered_count": self.answered_count,
            "elapsed_seconds": self.elapsed_seconds,
            "time_remaining": self.time_remaining,
            "progress": self.progress,
            "can_retry": self.can_retry() if self.phase is not Phase.NOT_STARTED else False,
        }


def start_session(
    assessment: Assessment,
    *,
    rng: Optional[random.Random] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> Session:
    sess = Session(assessment, rng=rng, clock=clock)
    sess.start()
    return sess


__all__ = ["Phase", "Session", "start_session"]
