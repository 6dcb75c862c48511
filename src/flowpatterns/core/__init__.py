"""Core infrastructure shared by the engine and the example workflows."""

from .abstractions import ChatMessage, IAgent, IJSONFetcher
from .agents import AgentRegistry
from .config import Settings, load_settings
from .http import HttpxJSONFetcher
from .llm_adapter import LangChainAgent, LLMClientAgent, to_langchain_messages
from .llm_client import (
    AnthropicClient,
    LLMClient,
    OllamaClient,
    OpenAIClient,
    create_llm_client,
)
from .logger import get_logger
from .metrics import MetricsCollector
from .text_stream import TextStream
from .types import (
    ContractViolation,
    FetchError,
    GraphValidationError,
    OutputMappingError,
    RunStatus,
    StepExecutionError,
    StepMetrics,
    StepStatus,
    StepTimeout,
    StreamConsumedError,
    UnknownAgentError,
    WorkflowError,
    WorkflowNotCommittedError,
)

__all__ = [
    # Collaborators
    "ChatMessage",
    "IAgent",
    "IJSONFetcher",
    "AgentRegistry",
    "HttpxJSONFetcher",
    "TextStream",
    # LLM
    "LLMClient",
    "OpenAIClient",
    "AnthropicClient",
    "OllamaClient",
    "create_llm_client",
    "LangChainAgent",
    "LLMClientAgent",
    "to_langchain_messages",
    # Config & observability
    "Settings",
    "load_settings",
    "get_logger",
    "MetricsCollector",
    "StepMetrics",
    "StepStatus",
    "RunStatus",
    # Errors
    "WorkflowError",
    "ContractViolation",
    "GraphValidationError",
    "WorkflowNotCommittedError",
    "StepExecutionError",
    "StepTimeout",
    "OutputMappingError",
    "UnknownAgentError",
    "StreamConsumedError",
    "FetchError",
]
