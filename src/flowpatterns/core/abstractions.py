"""
Collaborator Abstractions

Interfaces steps depend on instead of concrete HTTP clients or model SDKs,
so the same workflow runs against real services or test doubles.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Union

from langchain_core.messages import BaseMessage

from .text_stream import TextStream

# A chat message: {"role": "user", "content": "..."} or a LangChain message
ChatMessage = Union[Dict[str, str], BaseMessage]


# ============================================================================
# Agents
# ============================================================================

class IAgent(ABC):
    """
    A named text generator that streams its reply.

    Implementations wrap LangChain chat models, provider SDK clients, or
    canned responses in tests.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key for this agent."""
        pass

    @abstractmethod
    def stream_text(self, messages: List[ChatMessage]) -> TextStream:
        """
        Start generating a reply.

        Args:
            messages: Conversation so far

        Returns:
            Single-use stream of text chunks
        """
        pass


# ============================================================================
# HTTP
# ============================================================================

class IJSONFetcher(ABC):
    """Fetch a JSON document from a URL."""

    @abstractmethod
    async def fetch(
        self,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """
        GET a URL and decode the JSON body.

        Args:
            url: Absolute URL
            params: Query parameters

        Returns:
            Decoded JSON value

        Raises:
            FetchError: On transport errors, error status or malformed JSON
        """
        pass
