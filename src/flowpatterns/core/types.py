"""Shared type definitions and the error taxonomy for workflow runs."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple


class StepStatus(str, Enum):
    """Status of a single step within a run."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"
    TIMEOUT = "timeout"


class RunStatus(str, Enum):
    """Lifecycle of a workflow run: PENDING -> RUNNING -> SUCCEEDED | FAILED."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class StepMetrics:
    """Execution metrics for one step of one run."""

    name: str
    status: StepStatus = StepStatus.PENDING
    duration_ms: float = 0.0
    error_message: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "duration_ms": self.duration_ms,
            "error_message": self.error_message,
            "warnings": self.warnings,
        }


# =============================================================================
# ERRORS
# =============================================================================

class WorkflowError(Exception):
    """Base class for every error raised by the workflow engine."""


class GraphValidationError(WorkflowError):
    """
    Raised by ``Workflow.commit()`` (or a builder call) for a malformed graph.

    Attributes:
        workflow_name: Workflow being built
        reason: What is wrong with the graph
    """

    def __init__(self, workflow_name: str, reason: str):
        self.workflow_name = workflow_name
        self.reason = reason
        super().__init__(f"[{workflow_name}] invalid workflow graph: {reason}")


class WorkflowNotCommittedError(WorkflowError):
    """Raised when running a workflow whose graph was never committed."""

    def __init__(self, workflow_name: str):
        self.workflow_name = workflow_name
        super().__init__(
            f"[{workflow_name}] workflow must be committed before it can run"
        )


class ContractViolation(WorkflowError):
    """
    Raised when a value does not satisfy a declared schema.

    Attributes:
        subject: Step id or workflow name owning the contract
        contract: Which contract failed ("trigger", "input", "output", "result")
        errors: Validation error details (pydantic ``errors()`` format)
    """

    def __init__(
        self,
        subject: str,
        contract: str,
        errors: Optional[Sequence[Dict[str, Any]]] = None,
        message: Optional[str] = None,
    ):
        self.subject = subject
        self.contract = contract
        self.errors = list(errors or [])
        detail = message or format_validation_errors(self.errors)
        super().__init__(f"[{subject}] {contract} contract violated: {detail}")


class StepExecutionError(WorkflowError):
    """
    Raised when a step body (or a branch predicate) fails.

    Attributes:
        step_id: Id of the failing step
        node_path: Workflow names leading to the step, outermost first
        cause: Underlying exception
    """

    def __init__(
        self,
        step_id: str,
        cause: BaseException,
        node_path: Tuple[str, ...] = (),
    ):
        self.step_id = step_id
        self.cause = cause
        self.node_path = tuple(node_path)
        super().__init__(f"[{self.location}] step failed: {cause}")

    @property
    def location(self) -> str:
        return " > ".join(self.node_path + (self.step_id,))


class StepTimeout(StepExecutionError):
    """Raised when a step exceeds its time budget."""

    def __init__(
        self,
        step_id: str,
        timeout: float,
        node_path: Tuple[str, ...] = (),
    ):
        self.timeout = timeout
        super().__init__(
            step_id,
            TimeoutError(f"timed out after {timeout:g}s"),
            node_path,
        )


class OutputMappingError(WorkflowError):
    """
    Raised when a field projection references an absent value.

    Attributes:
        workflow_name: Workflow doing the projection
        field: Target field being built
        step_id: Source step id
        path: Path inside the source step's output
    """

    def __init__(
        self,
        workflow_name: str,
        field: str,
        step_id: str,
        path: str,
        reason: str,
    ):
        self.workflow_name = workflow_name
        self.field = field
        self.step_id = step_id
        self.path = path
        self.reason = reason
        super().__init__(
            f"[{workflow_name}] cannot map '{field}' from "
            f"{step_id}:{path}: {reason}"
        )


class UnknownAgentError(WorkflowError, LookupError):
    """Raised when an agent name is not in the registry."""

    def __init__(self, name: str, available: Sequence[str] = ()):
        self.name = name
        self.available = list(available)
        super().__init__(
            f"Agent '{name}' is not registered. Available: {self.available}"
        )


class StreamConsumedError(WorkflowError):
    """Raised when a text stream is iterated more than once."""


class FetchError(WorkflowError):
    """Raised by JSON fetchers for transport, status or decoding failures."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Fetching {url} failed: {reason}")


def format_validation_errors(errors: Sequence[Dict[str, Any]]) -> str:
    """
    Render pydantic validation errors as one line.

    Args:
        errors: Output of ``ValidationError.errors()``

    Returns:
        "field: message; other.field: message"
    """
    if not errors:
        return "invalid value"
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)
