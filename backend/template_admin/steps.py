"""Ordered remote steps with per-step compensation.

A ``StepSequence`` runs each step immediately. When a step raises, the
compensations registered by earlier steps run in reverse order and a
``StepFailedError`` describes what failed and what state remains.
"""
import logging
from typing import Any, Callable, List, Optional, Tuple

log = logging.getLogger(__name__)


class StepFailedError(RuntimeError):
    def __init__(self, workflow: str, step: str, cause: BaseException, completed: List[str], rolled_back: List[str], left_in_place: List[str]):
        self.workflow = workflow
        self.step = step
        self.cause = cause
        self.completed = completed
        self.rolled_back = rolled_back
        self.left_in_place = left_in_place
        super().__init__(f"{workflow} failed at step '{step}': {cause}")

    def to_dict(self) -> dict:
        return {
            "failedStep": self.step,
            "completedSteps": self.completed,
            "rolledBack": self.rolled_back,
            "leftInPlace": self.left_in_place,
        }


class StepSequence:
    def __init__(self, workflow: str):
        self.workflow = workflow
        self.completed: List[str] = []
        self._undo: List[Tuple[str, Optional[Callable[[], Any]]]] = []

    def run(self, label: str, fn: Callable[..., Any], *args, compensate: Optional[Callable[[Any], Any]] = None, record: bool = True, **kwargs) -> Any:
        """Run one step now. Reads pass ``record=False``: a failure still unwinds, but success changes nothing to report."""
        log.info("%s: %s", self.workflow, label)
        try:
            result = fn(*args, **kwargs)
        except Exception as e:
            log.exception("%s: step '%s' failed", self.workflow, label)
            rolled_back, left = self._unwind()
            raise StepFailedError(self.workflow, label, e, list(self.completed), rolled_back, left) from e
        if not record:
            return result
        self.completed.append(label)
        undo = (lambda: compensate(result)) if compensate else None
        self._undo.append((label, undo))
        return result

    def _unwind(self) -> Tuple[List[str], List[str]]:
        rolled_back: List[str] = []
        left: List[str] = []
        for label, undo in reversed(self._undo):
            if undo is None:
                left.append(label)
                continue
            try:
                undo()
                rolled_back.append(label)
            except Exception:
                log.exception("%s: compensation for '%s' failed", self.workflow, label)
                left.append(label)
        return rolled_back, left
