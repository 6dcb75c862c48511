"""
Agent Adapters

Wrap concrete LLM implementations (LangChain chat models, provider
``LLMClient``s) behind the ``IAgent`` streaming interface.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Iterator, List, Optional, Tuple

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from .abstractions import ChatMessage, IAgent
from .llm_client import LLMClient
from .text_stream import TextStream

logger = logging.getLogger(__name__)

_ROLE_TO_MESSAGE = {
    "system": SystemMessage,
    "user": HumanMessage,
    "human": HumanMessage,
    "assistant": AIMessage,
    "ai": AIMessage,
}


def to_langchain_messages(messages: List[ChatMessage]) -> List[BaseMessage]:
    """
    Normalize chat messages to LangChain message objects.

    Args:
        messages: Role/content dicts or LangChain messages

    Returns:
        List of LangChain messages

    Raises:
        ValueError: On an unknown role
    """
    converted: List[BaseMessage] = []
    for msg in messages:
        if isinstance(msg, BaseMessage):
            converted.append(msg)
            continue
        role = msg.get("role", "user")
        message_cls = _ROLE_TO_MESSAGE.get(role)
        if message_cls is None:
            raise ValueError(f"Unknown message role: {role}")
        converted.append(message_cls(content=msg.get("content", "")))
    return converted


def split_system_user(
    messages: List[BaseMessage],
    default_system: str = "You are a helpful assistant.",
) -> Tuple[str, str]:
    """Flatten LangChain messages into the (system, user) pair LLMClient takes."""
    system_parts = []
    user_parts = []
    for msg in messages:
        if isinstance(msg, SystemMessage):
            system_parts.append(str(msg.content))
        elif isinstance(msg, AIMessage):
            user_parts.append(f"Assistant: {msg.content}")
        else:
            user_parts.append(str(msg.content))
    system = "\n\n".join(system_parts) or default_system
    return system, "\n".join(user_parts)


class LangChainAgent(IAgent):
    """
    Agent backed by a LangChain chat model.

    Example:
        agent = LangChainAgent(
            "planningAgent",
            ChatOllama(model="qwen2.5:7b"),
            instructions="You are a local activities and travel expert.",
        )
    """

    def __init__(self, name: str, llm: Any, instructions: Optional[str] = None):
        """
        Args:
            name: Registry key
            llm: LangChain ChatModel (anything with ``astream(messages)``)
            instructions: System prompt prepended to every conversation
        """
        self._name = name
        self.llm = llm
        self.instructions = instructions

    @property
    def name(self) -> str:
        return self._name

    def stream_text(self, messages: List[ChatMessage]) -> TextStream:
        converted = to_langchain_messages(messages)
        if self.instructions:
            converted = [SystemMessage(content=self.instructions)] + converted
        return TextStream(self._chunks(converted))

    async def _chunks(self, messages: List[BaseMessage]) -> AsyncIterator[str]:
        logger.debug(f"[{self._name}] streaming {len(messages)} messages")
        async for chunk in self.llm.astream(messages):
            content = chunk.content if hasattr(chunk, "content") else chunk
            if isinstance(content, str):
                yield content


class LLMClientAgent(IAgent):
    """
    Agent backed by a provider ``LLMClient``.

    ``LLMClient.stream()`` is a blocking iterator, so each chunk is pulled on
    a worker thread.
    """

    def __init__(
        self,
        name: str,
        client: LLMClient,
        instructions: Optional[str] = None,
        temperature: float = 0.7,
    ):
        self._name = name
        self.client = client
        self.instructions = instructions
        self.temperature = temperature

    @property
    def name(self) -> str:
        return self._name

    def stream_text(self, messages: List[ChatMessage]) -> TextStream:
        converted = to_langchain_messages(messages)
        if self.instructions:
            converted = [SystemMessage(content=self.instructions)] + converted
        system, user = split_system_user(converted)
        return TextStream(self._chunks(system, user))

    async def _chunks(self, system: str, user: str) -> AsyncIterator[str]:
        iterator: Iterator[str] = await asyncio.to_thread(
            lambda: iter(self.client.stream(system=system, user=user, temperature=self.temperature))
        )
        done = object()
        while True:
            chunk = await asyncio.to_thread(next, iterator, done)
            if chunk is done:
                break
            yield chunk
