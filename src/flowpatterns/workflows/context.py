"""
Execution Context

Per-run store of completed step results plus the trigger input. Results are
write-once per step id; writes are guarded by a lock and published through
per-step events so a join can wait for its predecessors without polling.
"""

import asyncio
import copy
import threading
import uuid
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from .step import Step

TRIGGER = "trigger"

StepKey = Union[str, Step, Any]


def step_key(step: StepKey) -> str:
    """Resolve a step, an embedded workflow or an id to its id string."""
    if isinstance(step, str):
        return step
    if isinstance(step, Step):
        return step.id
    name = getattr(step, "name", None)
    if isinstance(name, str):
        return name
    raise TypeError(f"Cannot use {step!r} as a step reference")


class ExecutionContext:
    """
    Mutable context owned by the executor for a single run.

    Steps never receive this object directly; they get ``view()``.
    """

    def __init__(
        self,
        trigger_input: Any,
        workflow_name: str = "workflow",
        run_id: Optional[str] = None,
    ):
        self.trigger_input = trigger_input
        self.workflow_name = workflow_name
        self.run_id = run_id or uuid.uuid4().hex
        self._results: Dict[str, Any] = {}
        self._skipped: Set[str] = set()
        self._events: Dict[str, asyncio.Event] = {}
        self._lock = threading.Lock()

    def _event(self, step_id: str) -> asyncio.Event:
        event = self._events.get(step_id)
        if event is None:
            event = self._events[step_id] = asyncio.Event()
        return event

    def record(self, step_id: str, result: Any) -> None:
        """
        Record a step's result.

        Raises:
            RuntimeError: If the step already has a result or was skipped
        """
        with self._lock:
            if step_id in self._results or step_id in self._skipped:
                raise RuntimeError(f"Result for step '{step_id}' is already settled")
            self._results[step_id] = result
            event = self._event(step_id)
        event.set()

    def mark_skipped(self, step_ids: Iterable[str]) -> None:
        """Mark steps as unreachable in this run; settled ids are left alone."""
        events = []
        with self._lock:
            for step_id in step_ids:
                if step_id in self._results or step_id in self._skipped:
                    continue
                self._skipped.add(step_id)
                events.append(self._event(step_id))
        for event in events:
            event.set()

    async def wait_for(self, step_ids: Iterable[str]) -> None:
        """Block until every listed step is either recorded or skipped."""
        with self._lock:
            pending = [
                self._event(step_id)
                for step_id in step_ids
                if step_id not in self._results and step_id not in self._skipped
            ]
        for event in pending:
            await event.wait()

    def has_result(self, step: StepKey) -> bool:
        with self._lock:
            return step_key(step) in self._results

    def is_skipped(self, step: StepKey) -> bool:
        with self._lock:
            return step_key(step) in self._skipped

    def get_result(self, step: StepKey, default: Any = None) -> Any:
        key = step_key(step)
        if key == TRIGGER:
            return self.trigger_input
        with self._lock:
            return self._results.get(key, default)

    @property
    def results(self) -> Dict[str, Any]:
        """Snapshot of recorded results."""
        with self._lock:
            return dict(self._results)

    @property
    def skipped(self) -> List[str]:
        with self._lock:
            return sorted(self._skipped)

    def view(self) -> "ExecutionContextView":
        return ExecutionContextView(self)


class ExecutionContextView:
    """
    Read-only access to a run's context, handed to steps and predicates.

    Values are returned as deep copies so a step cannot change what other
    steps observe.
    """

    __slots__ = ("_context",)

    def __init__(self, context: ExecutionContext):
        self._context = context

    @property
    def trigger_input(self) -> Any:
        return copy.deepcopy(self._context.trigger_input)

    @property
    def workflow_name(self) -> str:
        return self._context.workflow_name

    @property
    def run_id(self) -> str:
        return self._context.run_id

    def get_result(self, step: StepKey, default: Any = None) -> Any:
        """
        Result of a completed step.

        Args:
            step: Step, embedded workflow, step id, or "trigger"
            default: Returned when the step has no result

        Returns:
            Copy of the recorded result, or ``default``
        """
        return copy.deepcopy(self._context.get_result(step, default))

    def has_result(self, step: StepKey) -> bool:
        return self._context.has_result(step)

    def is_skipped(self, step: StepKey) -> bool:
        return self._context.is_skipped(step)

    def __repr__(self) -> str:
        return (
            f"ExecutionContextView(workflow={self.workflow_name!r}, "
            f"results={sorted(self._context.results)})"
        )
