"""
Workflow Pattern - graph-based step orchestration.

Compose ``Step`` definitions into a ``Workflow`` with:
- Sequential steps, conditional branches, parallel fan-out and joins
- Embedded sub-workflows fed through variable bindings
- Contract validation, timeouts, metrics and ASCII visualization
"""

from .context import TRIGGER, ExecutionContext, ExecutionContextView
from .executor import WorkflowExecutor, WorkflowRun
from .graph import (
    ConditionalNode,
    ForkNode,
    JoinNode,
    SequentialNode,
    SubWorkflowNode,
    WorkflowGraph,
)
from .mapping import FieldRef, ResultMapping, resolve_path
from .step import Step
from .workflow import Workflow

__all__ = [
    # Pattern
    "Workflow",
    "Step",
    "FieldRef",
    "ResultMapping",
    "TRIGGER",
    # Execution
    "WorkflowExecutor",
    "WorkflowRun",
    "ExecutionContext",
    "ExecutionContextView",
    # Graph nodes
    "WorkflowGraph",
    "SequentialNode",
    "ForkNode",
    "JoinNode",
    "SubWorkflowNode",
    "ConditionalNode",
    # Utilities
    "resolve_path",
]
