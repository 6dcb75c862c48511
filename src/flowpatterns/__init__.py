"""flowpatterns: a small workflow engine for LLM and API pipelines."""

from .core import (
    AgentRegistry,
    ContractViolation,
    GraphValidationError,
    IAgent,
    IJSONFetcher,
    OutputMappingError,
    RunStatus,
    StepExecutionError,
    StepTimeout,
    TextStream,
    WorkflowError,
    WorkflowNotCommittedError,
)
from .workflows import (
    ExecutionContextView,
    FieldRef,
    ResultMapping,
    Step,
    Workflow,
    WorkflowRun,
)

__version__ = "0.1.0"

__all__ = [
    # Workflow builder
    "Workflow",
    "Step",
    "FieldRef",
    "ResultMapping",
    "WorkflowRun",
    "ExecutionContextView",
    "RunStatus",
    # Collaborators
    "IAgent",
    "IJSONFetcher",
    "AgentRegistry",
    "TextStream",
    # Errors
    "WorkflowError",
    "ContractViolation",
    "GraphValidationError",
    "WorkflowNotCommittedError",
    "StepExecutionError",
    "StepTimeout",
    "OutputMappingError",
]
