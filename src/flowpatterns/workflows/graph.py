"""
Workflow graph nodes

A committed workflow is an immutable tuple of tagged node variants. The
executor dispatches on the node type; validation and visualization walk the
same structure.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Iterator, Tuple, Union

from .context import ExecutionContextView
from .mapping import FieldRef
from .step import Step

if TYPE_CHECKING:
    from .workflow import Workflow

Predicate = Callable[[ExecutionContextView], Union[bool, Awaitable[bool]]]


@dataclass(frozen=True)
class SequentialNode:
    """Run ``step`` once every earlier node on the path has completed."""

    step: Step
    variables: Dict[str, FieldRef] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.step.id


@dataclass(frozen=True)
class ForkNode:
    """Run independent steps concurrently."""

    steps: Tuple[Step, ...]

    @property
    def id(self) -> str:
        return "fork(" + ", ".join(s.id for s in self.steps) + ")"


@dataclass(frozen=True)
class JoinNode:
    """Run ``step`` once every step in ``after`` has a recorded result."""

    after: Tuple[str, ...]
    step: Step

    @property
    def id(self) -> str:
        return self.step.id


@dataclass(frozen=True)
class SubWorkflowNode:
    """Run an embedded committed workflow as one logical step."""

    workflow: "Workflow"
    variables: Dict[str, FieldRef] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.workflow.name


@dataclass(frozen=True)
class ConditionalNode:
    """Evaluate ``predicate`` once and run exactly one branch."""

    predicate: Predicate
    then_branch: Tuple["Node", ...]
    else_branch: Tuple["Node", ...] = ()

    @property
    def id(self) -> str:
        name = getattr(self.predicate, "__name__", "predicate")
        return f"if({name})"


Node = Union[SequentialNode, ForkNode, JoinNode, SubWorkflowNode, ConditionalNode]


@dataclass(frozen=True)
class WorkflowGraph:
    """Immutable, validated node sequence of a committed workflow."""

    nodes: Tuple[Node, ...]

    def step_ids(self) -> Tuple[str, ...]:
        """Every id declared in the graph, in declaration order."""
        return tuple(iter_step_ids(self.nodes))

    def __len__(self) -> int:
        return len(self.nodes)


def iter_step_ids(nodes: Tuple[Node, ...]) -> Iterator[str]:
    """Yield the ids a node sequence records, branches included (pre-order)."""
    for node in nodes:
        if isinstance(node, ForkNode):
            for step in node.steps:
                yield step.id
        elif isinstance(node, ConditionalNode):
            yield from iter_step_ids(node.then_branch)
            yield from iter_step_ids(node.else_branch)
        else:
            yield node.id


def describe(nodes: Tuple[Node, ...], indent: int = 2) -> Iterator[str]:
    """Yield ASCII lines describing a node sequence."""
    pad = " " * indent
    for node in nodes:
        yield f"{pad}  |"
        yield f"{pad}  v"
        if isinstance(node, SequentialNode):
            suffix = _bindings(node.variables)
            yield f"{pad}[{node.step.id}]{suffix}"
        elif isinstance(node, ForkNode):
            yield f"{pad}<fork> " + " | ".join(f"[{s.id}]" for s in node.steps)
        elif isinstance(node, JoinNode):
            yield f"{pad}<join {', '.join(node.after)}> [{node.step.id}]"
        elif isinstance(node, SubWorkflowNode):
            yield f"{pad}{{{node.workflow.name}}}{_bindings(node.variables)}"
        elif isinstance(node, ConditionalNode):
            yield f"{pad}<{node.id}>"
            yield f"{pad}  then:"
            yield from describe(node.then_branch, indent + 4)
            yield f"{pad}  else:"
            if node.else_branch:
                yield from describe(node.else_branch, indent + 4)
            else:
                yield f"{pad}    (nothing)"


def _bindings(variables: Dict[str, Any]) -> str:
    if not variables:
        return ""
    pairs = ", ".join(f"{k} <- {v.step_id}:{v.path}" for k, v in variables.items())
    return f" ({pairs})"
