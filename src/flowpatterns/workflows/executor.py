"""
Workflow Executor

Walks a committed graph for one trigger payload:
  - sequential nodes run in declaration order; every step gets its own
    copy of its input
  - a conditional evaluates its predicate once and runs one branch; the
    other branch's steps are marked skipped
  - fork members run as concurrent tasks; on failure in-flight siblings
    drain, nothing downstream starts, and the first failure is raised
  - a join waits until its predecessors are recorded or skipped and is
    skipped itself if any predecessor was
  - a sub-workflow runs with a fresh context; only its final output is
    recorded in the enclosing context

The final output is projected through the workflow's ResultMapping, or is
the output of the last node that ran when no mapping is declared.
"""

import asyncio
import copy
import inspect
import logging
import time
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from ..core.metrics import MetricsCollector
from ..core.types import (
    RunStatus,
    StepExecutionError,
    StepStatus,
    StepTimeout,
    WorkflowError,
    WorkflowNotCommittedError,
)
from .context import ExecutionContext
from .graph import (
    ConditionalNode,
    ForkNode,
    JoinNode,
    Node,
    SequentialNode,
    SubWorkflowNode,
    iter_step_ids,
)
from .mapping import project
from .step import Step, validate_contract

if TYPE_CHECKING:
    from .workflow import Workflow

logger = logging.getLogger(__name__)

_SKIPPED = object()


class _Expired(Exception):
    """The executor's deadline for a step body passed."""


class WorkflowExecutor:
    """
    Executes one workflow graph.

    A new executor is created for every run (and every nested sub-workflow
    run); it holds no state between runs.
    """

    def __init__(
        self,
        workflow: "Workflow",
        step_timeout: Optional[float] = None,
        metrics: Optional[MetricsCollector] = None,
        node_path: Tuple[str, ...] = (),
    ):
        """
        Args:
            workflow: Committed workflow to execute
            step_timeout: Default timeout for steps that declare none
            metrics: Collector shared with nested sub-workflow runs
            node_path: Names of enclosing workflows, outermost first
        """
        self.workflow = workflow
        self.step_timeout = step_timeout
        self.metrics = metrics or MetricsCollector(workflow.name)
        self.node_path = tuple(node_path) + (workflow.name,)

    @property
    def name(self) -> str:
        return self.workflow.name

    def _metric_key(self, step_id: str) -> str:
        # Nested steps are keyed by their sub-workflow path so ids reused
        # across workflows stay distinct.
        return "/".join(self.node_path[1:] + (step_id,))

    async def execute(self, trigger_input: Any, run_id: Optional[str] = None) -> Any:
        """
        Run the workflow end to end.

        Args:
            trigger_input: Payload matching the workflow's trigger schema
            run_id: Identifier shown to steps through the context view

        Returns:
            Final output

        Raises:
            ContractViolation: Trigger, step input/output or result schema failure
            StepExecutionError: A step (or predicate) failed or timed out
            OutputMappingError: A projected field is absent
        """
        graph = self.workflow.graph
        trigger = validate_contract(
            self.name, "trigger", self.workflow.trigger_schema, trigger_input
        )
        context = ExecutionContext(trigger, self.name, run_id)

        last = await self._run_nodes(graph.nodes, context, trigger)

        result = self.workflow.result
        if result is None:
            return last
        output = project(context, result.mapping, self.name)
        return validate_contract(self.name, "result", result.schema, output)

    # =========================================================================
    # NODE DISPATCH
    # =========================================================================

    async def _run_nodes(
        self,
        nodes: Tuple[Node, ...],
        context: ExecutionContext,
        previous: Any,
    ) -> Any:
        output = previous
        for node in nodes:
            result = await self._run_node(node, context, output)
            if result is not _SKIPPED:
                output = result
        return output

    async def _run_node(self, node: Node, context: ExecutionContext, previous: Any) -> Any:
        if isinstance(node, SequentialNode):
            data = project(context, node.variables, self.name) if node.variables else previous
            return await self._run_step(node.step, data, context)
        if isinstance(node, ForkNode):
            return await self._run_fork(node, context, previous)
        if isinstance(node, JoinNode):
            return await self._run_join(node, context)
        if isinstance(node, SubWorkflowNode):
            return await self._run_sub_workflow(node, context, previous)
        if isinstance(node, ConditionalNode):
            return await self._run_conditional(node, context, previous)
        raise TypeError(f"Unknown node type: {type(node).__name__}")

    async def _run_step(self, step: Step, data: Any, context: ExecutionContext) -> Any:
        key = self._metric_key(step.id)
        timeout = step.timeout or self.step_timeout
        start_time = time.time()

        try:
            validated = step.validate_input(copy.deepcopy(data))
        except WorkflowError as e:
            self.metrics.record_step(key, StepStatus.FAILED, error=str(e))
            raise

        logger.debug(f"[{self.name}] {step.id} started")
        try:
            raw = await self._invoke(step, validated, context, timeout)
        except _Expired:
            duration = (time.time() - start_time) * 1000
            self.metrics.record_step(key, StepStatus.TIMEOUT, duration, f"timed out after {timeout:g}s")
            logger.error(f"[{self.name}] {step.id} timed out after {timeout:g}s")
            raise StepTimeout(step.id, timeout, self.node_path) from None
        except Exception as e:
            duration = (time.time() - start_time) * 1000
            self.metrics.record_step(key, StepStatus.FAILED, duration, str(e))
            logger.error(f"[{self.name}] {step.id} failed: {e}")
            raise StepExecutionError(step.id, e, self.node_path) from e

        duration = (time.time() - start_time) * 1000
        try:
            output = step.validate_output(raw)
        except WorkflowError as e:
            self.metrics.record_step(key, StepStatus.FAILED, duration, str(e))
            raise

        context.record(step.id, output)
        self.metrics.record_step(key, StepStatus.SUCCESS, duration)
        logger.info(f"[{self.name}] {step.id} succeeded ({duration:.1f}ms)")
        return output

    async def _invoke(
        self,
        step: Step,
        data: Any,
        context: ExecutionContext,
        timeout: Optional[float],
    ) -> Any:
        """
        Run a step body, enforcing the time budget.

        Only the executor's own deadline becomes ``StepTimeout``; a
        ``TimeoutError`` raised by the body is an ordinary step failure.
        """
        if not timeout:
            return await step.invoke(data, context.view())

        invocation = asyncio.ensure_future(step.invoke(data, context.view()))
        try:
            done, _ = await asyncio.wait({invocation}, timeout=timeout)
        except asyncio.CancelledError:
            invocation.cancel()
            raise
        if not done:
            invocation.cancel()
            await asyncio.wait({invocation})
            raise _Expired
        return invocation.result()

    async def _run_fork(self, node: ForkNode, context: ExecutionContext, previous: Any) -> Dict[str, Any]:
        failures: List[BaseException] = []

        async def run_member(step: Step) -> Any:
            try:
                return await self._run_step(step, previous, context)
            except Exception as e:
                failures.append(e)
                raise

        tasks = [
            asyncio.create_task(run_member(step), name=f"{self.name}:{step.id}")
            for step in node.steps
        ]
        try:
            await asyncio.wait(tasks)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        if failures:
            # Mark every task's exception as retrieved; the first one wins.
            for task in tasks:
                if not task.cancelled():
                    task.exception()
            raise failures[0]
        return {step.id: task.result() for step, task in zip(node.steps, tasks)}

    async def _run_join(self, node: JoinNode, context: ExecutionContext) -> Any:
        await context.wait_for(node.after)
        skipped = [step_id for step_id in node.after if context.is_skipped(step_id)]
        if skipped:
            context.mark_skipped([node.step.id])
            self.metrics.record_step(self._metric_key(node.step.id), StepStatus.SKIPPED)
            logger.debug(
                f"[{self.name}] {node.step.id} skipped: predecessors {skipped} did not run"
            )
            return _SKIPPED
        data = {step_id: context.get_result(step_id) for step_id in node.after}
        return await self._run_step(node.step, data, context)

    async def _run_sub_workflow(
        self,
        node: SubWorkflowNode,
        context: ExecutionContext,
        previous: Any,
    ) -> Any:
        trigger = project(context, node.variables, self.name) if node.variables else previous
        nested = WorkflowExecutor(
            node.workflow,
            step_timeout=self.step_timeout,
            metrics=self.metrics,
            node_path=self.node_path,
        )
        start_time = time.time()
        logger.info(f"[{self.name}] entering sub-workflow {node.id}")
        try:
            output = await nested.execute(trigger, run_id=context.run_id)
        except WorkflowError as e:
            duration = (time.time() - start_time) * 1000
            self.metrics.record_step(self._metric_key(node.id), StepStatus.FAILED, duration, str(e))
            raise
        duration = (time.time() - start_time) * 1000

        context.record(node.id, output)
        self.metrics.record_step(self._metric_key(node.id), StepStatus.SUCCESS, duration)
        logger.info(f"[{self.name}] sub-workflow {node.id} succeeded ({duration:.1f}ms)")
        return output

    async def _run_conditional(
        self,
        node: ConditionalNode,
        context: ExecutionContext,
        previous: Any,
    ) -> Any:
        try:
            decision = node.predicate(context.view())
            if inspect.isawaitable(decision):
                decision = await decision
        except Exception as e:
            logger.error(f"[{self.name}] {node.id} predicate failed: {e}")
            raise StepExecutionError(node.id, e, self.node_path) from e

        chosen, other = (
            (node.then_branch, node.else_branch) if decision else (node.else_branch, node.then_branch)
        )
        skipped = list(iter_step_ids(other))
        context.mark_skipped(skipped)
        for step_id in skipped:
            self.metrics.record_step(self._metric_key(step_id), StepStatus.SKIPPED)
        logger.info(
            f"[{self.name}] {node.id} -> {'then' if decision else 'else'} branch"
        )
        return await self._run_nodes(chosen, context, previous)


# =============================================================================
# RUNS
# =============================================================================

_ALLOWED_TRANSITIONS = {
    RunStatus.PENDING: {RunStatus.RUNNING},
    RunStatus.RUNNING: {RunStatus.SUCCEEDED, RunStatus.FAILED},
    RunStatus.SUCCEEDED: set(),
    RunStatus.FAILED: set(),
}


class WorkflowRun:
    """
    One invocation of a workflow.

    Lifecycle: PENDING -> RUNNING -> SUCCEEDED | FAILED. A run starts once;
    on failure it keeps only the terminal error, never partial results.

    Usage:
        run = workflow.create_run()
        output = await run.start({"city": "Paris"})
        print(run.status, run.metrics.get_workflow_metrics())
    """

    def __init__(
        self,
        workflow: "Workflow",
        step_timeout: Optional[float] = None,
        run_id: Optional[str] = None,
    ):
        self.workflow = workflow
        self.step_timeout = step_timeout
        self.run_id = run_id or uuid.uuid4().hex
        self.status = RunStatus.PENDING
        self.output: Any = None
        self.error: Optional[BaseException] = None
        self.metrics = MetricsCollector(workflow.name)
        self.started_at: Optional[datetime] = None
        self.finished_at: Optional[datetime] = None

    def _transition(self, to: RunStatus) -> None:
        if to not in _ALLOWED_TRANSITIONS[self.status]:
            raise WorkflowError(
                f"[{self.workflow.name}] run {self.run_id} cannot go from "
                f"{self.status.value} to {to.value}"
            )
        self.status = to

    async def start(self, trigger_input: Any) -> Any:
        """
        Execute the run.

        Returns:
            Final workflow output

        Raises:
            WorkflowNotCommittedError: If the workflow was never committed
            WorkflowError: If the run was already started, or on any run failure
        """
        if not self.workflow.committed:
            raise WorkflowNotCommittedError(self.workflow.name)
        self._transition(RunStatus.RUNNING)
        self.started_at = datetime.now()
        self.metrics.start()
        logger.info(f"[{self.workflow.name}] run {self.run_id} started")

        executor = WorkflowExecutor(
            self.workflow,
            step_timeout=self.step_timeout,
            metrics=self.metrics,
        )
        try:
            output = await executor.execute(trigger_input, run_id=self.run_id)
        except BaseException as e:
            self.error = e
            self._transition(RunStatus.FAILED)
            logger.error(f"[{self.workflow.name}] run {self.run_id} failed: {e}")
            raise
        finally:
            self.metrics.stop()
            self.finished_at = datetime.now()
            self.workflow._record_metrics(self.metrics)

        self.output = output
        self._transition(RunStatus.SUCCEEDED)
        total_ms = self.metrics.get_workflow_metrics()["total_duration_ms"]
        logger.info(
            f"[{self.workflow.name}] run {self.run_id} succeeded ({total_ms / 1000:.2f}s)"
        )
        return output
