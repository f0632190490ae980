"""Protection limits: source size before parsing, wall-clock time while rendering.

Tag and filter handlers are third-party code and are not required to poll for
cancellation, so :func:`bound` races the evaluation against a deadline on a
separate daemon thread. When the deadline passes the caller gets
:class:`~liqpy.errors.RenderTimeout` immediately, but the thread is not
stopped: it runs to completion (or forever, for a handler that never returns)
in the background. Built-in loop and block nodes also check the deadline
themselves, so templates that only use built-ins do stop shortly after a
timeout. At most :data:`MAX_ABANDONED` timed-out evaluations may still be
running; beyond that :func:`bound` refuses new work with
:class:`~liqpy.errors.EvaluationBacklog`.
"""

from __future__ import annotations

import logging
import math
import sys
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields
from typing import Any, TypeVar

from liqpy.errors import EvalError, EvaluationBacklog, LiquidError, RenderTimeout, SizeExceeded

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ABANDONED = 8

_lock = threading.Lock()
_abandoned = 0


@dataclass(frozen=True, slots=True)
class ProtectionSettings:
    """Limits applied to one template. Replace the whole object to change them."""

    max_source_size_bytes: int = sys.maxsize
    max_evaluation_duration: float = math.inf  # seconds
    max_iterations: int = sys.maxsize
    max_rendered_size: int = sys.maxsize

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{f.name} must be a number, got {value!r}")
            if value < 0:
                raise ValueError(f"{f.name} must not be negative, got {value!r}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ProtectionSettings:
        """Build settings from a config table, e.g. the ``[protection]`` section of liqpy.toml."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown protection setting(s): {', '.join(unknown)}")
        return cls(**dict(data))

    @property
    def is_time_bounded(self) -> bool:
        return not math.isinf(self.max_evaluation_duration)


def check_size(size: int, limit: int) -> None:
    """Reject a source of *size* bytes when it exceeds *limit*."""
    if size > limit:
        raise SizeExceeded(size, limit)


def abandoned_count() -> int:
    """Number of timed-out evaluations still running in the background."""
    with _lock:
        return _abandoned


class _Unit(threading.Thread):
    """One evaluation, run on its own daemon thread."""

    def __init__(self, evaluate: Callable[[], Any]) -> None:
        super().__init__(name="liqpy-render", daemon=True)
        self._evaluate = evaluate
        self._abandoned = False
        self.result: Any = None
        self.error: Exception | None = None
        self.finished = False
        self.done = False

    def run(self) -> None:
        global _abandoned
        try:
            self.result = self._evaluate()
            self.finished = True
        except Exception as exc:
            self.error = exc
        finally:
            with _lock:
                self.done = True
                if self._abandoned:
                    _abandoned -= 1
                    logger.info("abandoned evaluation %s finished", self.name)

    def abandon(self) -> bool:
        """Mark the unit as abandoned; False if it finished in the meantime."""
        global _abandoned
        with _lock:
            if self.done:
                return False
            self._abandoned = True
            _abandoned += 1
            return True


def bound(evaluate: Callable[[], T], limit: float) -> T:
    """Run *evaluate* and return its result, or raise RenderTimeout after *limit* seconds.

    Library errors raised by the evaluation propagate unchanged; anything else
    is wrapped in EvalError with the original exception as its cause.
    """
    with _lock:
        if _abandoned >= MAX_ABANDONED:
            raise EvaluationBacklog(_abandoned)

    unit = _Unit(evaluate)
    unit.start()
    unit.join(None if math.isinf(limit) else limit)

    if unit.is_alive() and unit.abandon():
        logger.warning("evaluation exceeded %gs; leaving %s running in the background", limit, unit.name)
        raise RenderTimeout(limit)

    if unit.error is not None:
        if isinstance(unit.error, LiquidError):
            raise unit.error
        raise EvalError(f"error while rendering: {unit.error}", cause=unit.error) from unit.error
    if not unit.finished:
        raise EvalError("evaluation terminated without a result")
    return unit.result
