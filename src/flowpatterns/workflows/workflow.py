"""
Workflow Pattern

Compose steps into a graph with a fluent builder, seal it with ``commit()``,
then run it any number of times.

Example:
    plan_both = (
        Workflow(
            name="plan-both-workflow",
            trigger_schema=ForecastInput,
            result=ResultMapping(
                schema=Activities,
                mapping={"activities": FieldRef(synthesize, "activities")},
            ),
        )
        .parallel([plan_activities, plan_indoor_activities])
        .after([plan_activities, plan_indoor_activities])
        .step(synthesize)
        .commit()
    )

    weather = (
        Workflow(name="weather-workflow", trigger_schema=CityInput)
        .step(fetch_weather)
        .if_(rain_expected)
        .then(plan_both, variables={"forecast": FieldRef(fetch_weather)})
        .else_()
        .then(plan_activities, variables={"forecast": FieldRef(fetch_weather)})
        .commit()
    )

    output = await weather.run({"city": "Paris"})
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Type, Union

from pydantic import BaseModel

from ..core.metrics import MetricsCollector
from ..core.types import GraphValidationError, WorkflowNotCommittedError
from .context import TRIGGER, StepKey, step_key
from .executor import WorkflowRun
from .graph import (
    ConditionalNode,
    ForkNode,
    JoinNode,
    Node,
    Predicate,
    SequentialNode,
    SubWorkflowNode,
    WorkflowGraph,
    describe,
    iter_step_ids,
)
from .mapping import FieldRef, ResultMapping
from .step import Step

logger = logging.getLogger(__name__)


class _OpenConditional:
    """Builder state for an ``if_()`` that has not been closed yet."""

    def __init__(self, predicate: Predicate):
        self.predicate = predicate
        self.then_branch: List[Node] = []
        self.else_branch: List[Node] = []
        self.in_else = False

    def append(self, node: Node) -> None:
        (self.else_branch if self.in_else else self.then_branch).append(node)

    def build(self) -> ConditionalNode:
        return ConditionalNode(
            predicate=self.predicate,
            then_branch=tuple(self.then_branch),
            else_branch=tuple(self.else_branch),
        )


class Workflow:
    """
    A named graph of steps.

    Responsibilities:
        1. Collect nodes through the builder methods
        2. Validate and freeze the graph on ``commit()``
        3. Create runs (``create_run`` / ``run``) and keep the latest metrics
        4. Render the graph (``visualize``)
    """

    def __init__(
        self,
        name: str,
        trigger_schema: Optional[Type[BaseModel]] = None,
        result: Optional[ResultMapping] = None,
        description: str = "",
    ):
        """
        Initialize an empty, uncommitted workflow.

        Args:
            name: Workflow identifier (also its node id when embedded)
            trigger_schema: Contract for the trigger payload
            result: Projection of the final output (None = last node's output)
            description: Human readable summary
        """
        if not name:
            raise ValueError("Workflow name must be a non-empty string")
        self.name = name
        self.trigger_schema = trigger_schema
        self.result = result
        self.description = description

        self._nodes: List[Node] = []
        self._open_if: Optional[_OpenConditional] = None
        self._pending_after: Optional[tuple] = None
        self._graph: Optional[WorkflowGraph] = None
        self._last_metrics: Optional[MetricsCollector] = None
        self._history = MetricsCollector(name)

    # =========================================================================
    # BUILDER
    # =========================================================================

    def _ensure_mutable(self) -> None:
        if self._graph is not None:
            raise GraphValidationError(
                self.name, "workflow is committed; no further nodes may be added"
            )

    def _close_conditional(self) -> None:
        if self._open_if is not None:
            self._nodes.append(self._open_if.build())
            self._open_if = None

    def _no_pending_after(self, method: str) -> None:
        if self._pending_after is not None:
            raise GraphValidationError(
                self.name, f"after([...]) must be followed by step(), not {method}()"
            )

    def step(self, step: Step, variables: Optional[Mapping[str, FieldRef]] = None) -> "Workflow":
        """
        Append a step. After ``after([...])`` this creates the join node.

        Args:
            step: Step to run
            variables: Build the step input from these bindings instead of
                the previous node's output
        """
        self._ensure_mutable()
        self._close_conditional()
        if self._pending_after is not None:
            if variables:
                raise GraphValidationError(
                    self.name, f"join step '{step.id}' receives its predecessors' results; "
                    "variables are not supported"
                )
            self._nodes.append(JoinNode(after=self._pending_after, step=step))
            self._pending_after = None
        else:
            self._nodes.append(SequentialNode(step=step, variables=dict(variables or {})))
        return self

    def parallel(self, steps: Sequence[Step]) -> "Workflow":
        """Append a fork: ``steps`` run concurrently with the same input."""
        self._ensure_mutable()
        self._no_pending_after("parallel")
        self._close_conditional()
        self._nodes.append(ForkNode(steps=tuple(steps)))
        return self

    def after(self, steps: Sequence[StepKey]) -> "Workflow":
        """Gate the next ``step()`` on every listed step having a result."""
        self._ensure_mutable()
        self._no_pending_after("after")
        self._close_conditional()
        self._pending_after = tuple(step_key(s) for s in steps)
        return self

    def if_(self, predicate: Predicate) -> "Workflow":
        """
        Open a conditional. ``then()`` calls fill the then branch until
        ``else_()``; the next ``step``/``parallel``/``after``/``commit`` closes it.

        Args:
            predicate: ``(context_view) -> bool``, sync or async
        """
        self._ensure_mutable()
        self._no_pending_after("if_")
        if not callable(predicate):
            raise GraphValidationError(self.name, "if_() predicate must be callable")
        self._close_conditional()
        self._open_if = _OpenConditional(predicate)
        return self

    def else_(self) -> "Workflow":
        """Switch the open conditional to its else branch."""
        self._ensure_mutable()
        if self._open_if is None:
            raise GraphValidationError(self.name, "else_() without a preceding if_()")
        if self._open_if.in_else:
            raise GraphValidationError(self.name, "else_() called twice for one if_()")
        self._open_if.in_else = True
        return self

    def then(
        self,
        target: Union[Step, "Workflow"],
        variables: Optional[Mapping[str, FieldRef]] = None,
    ) -> "Workflow":
        """
        Append a step or an embedded workflow to the open branch (or to the
        top level when no conditional is open).

        Args:
            target: Step or committed Workflow
            variables: Trigger/input fields built from earlier steps' outputs
        """
        self._ensure_mutable()
        self._no_pending_after("then")
        if isinstance(target, Workflow):
            node: Node = SubWorkflowNode(workflow=target, variables=dict(variables or {}))
        elif isinstance(target, Step):
            node = SequentialNode(step=target, variables=dict(variables or {}))
        else:
            raise GraphValidationError(
                self.name, f"then() expects a Step or Workflow, got {type(target).__name__}"
            )
        if self._open_if is not None:
            self._open_if.append(node)
        else:
            self._nodes.append(node)
        return self

    def commit(self) -> "Workflow":
        """
        Validate and freeze the graph. Calling it again is a no-op.

        Returns:
            self, now runnable

        Raises:
            GraphValidationError: If the graph is malformed
        """
        if self._graph is not None:
            return self
        if self._pending_after is not None:
            raise GraphValidationError(self.name, "after([...]) is not followed by step()")

        nodes = list(self._nodes)
        if self._open_if is not None:
            nodes.append(self._open_if.build())
        graph = WorkflowGraph(nodes=tuple(nodes))
        _GraphValidator(self.name, graph, self.result).validate()

        self._open_if = None
        self._nodes = nodes
        self._graph = graph
        logger.debug(f"[{self.name}] committed ({len(graph.step_ids())} steps)")
        return self

    # =========================================================================
    # EXECUTION
    # =========================================================================

    @property
    def committed(self) -> bool:
        return self._graph is not None

    @property
    def graph(self) -> WorkflowGraph:
        """The committed graph; raises WorkflowNotCommittedError before commit()."""
        if self._graph is None:
            raise WorkflowNotCommittedError(self.name)
        return self._graph

    def create_run(
        self,
        step_timeout: Optional[float] = None,
        run_id: Optional[str] = None,
    ) -> WorkflowRun:
        """
        Create a pending run.

        Args:
            step_timeout: Default timeout (seconds) for steps that declare none
            run_id: Identifier for logs and step context (random by default)
        """
        return WorkflowRun(self, step_timeout=step_timeout, run_id=run_id)

    async def run(self, trigger_input: Any, step_timeout: Optional[float] = None) -> Any:
        """Create a run and execute it; returns the final output."""
        return await self.create_run(step_timeout=step_timeout).start(trigger_input)

    def _record_metrics(self, metrics: MetricsCollector) -> None:
        self._last_metrics = metrics
        self._history.merge(metrics)

    def get_metrics(self) -> Dict[str, Any]:
        """
        Metrics of the most recently finished run.

        Returns:
            Dict with workflow-level summary and per-step details, plus
            ``summary``: per-step counts and timings across every run
        """
        latest = self._last_metrics or MetricsCollector(self.name)
        metrics = latest.get_workflow_metrics()
        metrics["summary"] = self._history.get_summary()
        return metrics

    # =========================================================================
    # OBSERVABILITY
    # =========================================================================

    def visualize(self) -> str:
        """
        ASCII rendering of the graph.

        Returns:
            Multi-line string showing the graph structure
        """
        nodes = self._graph.nodes if self._graph is not None else tuple(self._nodes)
        step_ids = list(iter_step_ids(nodes))
        lines = [
            f"Workflow: {self.name}",
            f"Trigger: {self.trigger_schema.__name__ if self.trigger_schema else 'any'}",
            f"Steps: {len(step_ids)} ({', '.join(step_ids)})",
            f"Committed: {'yes' if self.committed else 'no'}",
            "",
            "Graph:",
            "  START",
        ]
        lines.extend(describe(nodes))
        lines.append("    |")
        lines.append("    v")
        lines.append("  END")
        return "\n".join(lines)

    def __repr__(self) -> str:
        nodes = self._graph.nodes if self._graph is not None else self._nodes
        return (
            f"Workflow(name={self.name!r}, "
            f"nodes={len(nodes)}, "
            f"committed={self.committed})"
        )

    def __str__(self) -> str:
        return self.visualize()


class _GraphValidator:
    """Checks run by ``Workflow.commit()``."""

    def __init__(self, workflow_name: str, graph: WorkflowGraph, result: Optional[ResultMapping]):
        self.workflow_name = workflow_name
        self.graph = graph
        self.result = result
        self.all_ids: Set[str] = set()
        self.declared: Set[str] = set()

    def fail(self, reason: str) -> None:
        raise GraphValidationError(self.workflow_name, reason)

    def validate(self) -> None:
        if not self.graph.nodes:
            self.fail("workflow has no steps")

        ids = self.graph.step_ids()
        seen: Set[str] = set()
        for step_id in ids:
            if step_id == TRIGGER:
                self.fail(f"'{TRIGGER}' is reserved and cannot be used as a step id")
            if step_id in seen:
                self.fail(f"duplicate step id '{step_id}'")
            seen.add(step_id)
        self.all_ids = seen

        self._walk(self.graph.nodes)

        if self.result is not None:
            for field_name, ref in self.result.mapping.items():
                self._check_ref(ref, f"result field '{field_name}'", require_declared=False)

    def _check_ref(self, ref: FieldRef, owner: str, require_declared: bool = True) -> None:
        if ref.step_id == TRIGGER:
            return
        if ref.step_id not in self.all_ids:
            self.fail(f"{owner} references unknown step '{ref.step_id}'")
        if require_declared and ref.step_id not in self.declared:
            self.fail(f"{owner} references step '{ref.step_id}' which is not declared before it")

    def _walk(self, nodes) -> None:
        for node in nodes:
            if isinstance(node, SequentialNode):
                for name, ref in node.variables.items():
                    self._check_ref(ref, f"variable '{name}' of step '{node.step.id}'")
                self.declared.add(node.step.id)
            elif isinstance(node, ForkNode):
                if not node.steps:
                    self.fail("parallel() needs at least one step")
                self.declared.update(step.id for step in node.steps)
            elif isinstance(node, JoinNode):
                if not node.after:
                    self.fail(f"join step '{node.step.id}' lists no predecessors")
                for step_id in node.after:
                    if step_id == TRIGGER:
                        self.fail(f"join step '{node.step.id}' cannot wait on '{TRIGGER}'")
                    self._check_ref(FieldRef(step_id), f"join step '{node.step.id}'")
                self.declared.add(node.step.id)
            elif isinstance(node, SubWorkflowNode):
                if not node.workflow.committed:
                    self.fail(f"sub-workflow '{node.workflow.name}' must be committed first")
                for name, ref in node.variables.items():
                    self._check_ref(ref, f"variable '{name}' of sub-workflow '{node.workflow.name}'")
                self.declared.add(node.workflow.name)
            elif isinstance(node, ConditionalNode):
                if not node.then_branch:
                    self.fail(f"{node.id} has an empty then branch")
                # Each branch only sees what was declared before the conditional.
                before = set(self.declared)
                self._walk(node.then_branch)
                then_declared = self.declared
                self.declared = set(before)
                self._walk(node.else_branch)
                self.declared |= then_declared
