"""
Step Definition

A step is a named unit of work with optional pydantic input/output contracts
and an execution function ``execute(input, context) -> output``. Steps are
immutable and may be shared by several workflows.
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Type, Union

from pydantic import BaseModel, ValidationError

from ..core.types import ContractViolation

if TYPE_CHECKING:
    from .context import ExecutionContextView

StepFunc = Callable[[Any, "ExecutionContextView"], Union[Any, Awaitable[Any]]]


@dataclass(frozen=True, eq=False)
class Step:
    """
    Immutable step definition.

    Attributes:
        id: Identifier, unique within a workflow
        execute: Sync or async callable ``(input, context) -> output``
        description: Human readable summary
        input_schema: Contract checked before ``execute`` (None = unchecked)
        output_schema: Contract checked on the returned value (None = unchecked)
        timeout: Seconds before the step fails with ``StepTimeout``

    Example:
        fetch = Step(
            id="fetch-weather",
            description="Fetches weather forecast for a given city",
            input_schema=CityInput,
            output_schema=Forecast,
            execute=fetch_weather,
        )
    """

    id: str
    execute: StepFunc
    description: str = ""
    input_schema: Optional[Type[BaseModel]] = None
    output_schema: Optional[Type[BaseModel]] = None
    timeout: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.id or not isinstance(self.id, str):
            raise ValueError("Step id must be a non-empty string")
        if not callable(self.execute):
            raise TypeError(f"Step '{self.id}' execute must be callable")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"Step '{self.id}' timeout must be positive")

    def validate_input(self, data: Any) -> Any:
        """
        Check ``data`` against the input contract.

        Returns:
            A model instance when a schema is declared, otherwise ``data``

        Raises:
            ContractViolation: If validation fails
        """
        if self.input_schema is None:
            return data
        return _validate(self.id, "input", self.input_schema, data)

    def validate_output(self, value: Any) -> Any:
        """
        Check a returned value against the output contract.

        Returns:
            The value as a plain dict when it is (or validates to) a model

        Raises:
            ContractViolation: If validation fails
        """
        if self.output_schema is not None:
            value = _validate(self.id, "output", self.output_schema, value)
        if isinstance(value, BaseModel):
            return value.model_dump()
        return value

    async def invoke(self, data: Any, context: "ExecutionContextView") -> Any:
        """Call ``execute``; sync functions run on a worker thread."""
        if inspect.iscoroutinefunction(self.execute):
            return await self.execute(data, context)
        result = await asyncio.to_thread(self.execute, data, context)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"Step(id={self.id!r})"


def _validate(subject: str, contract: str, schema: Type[BaseModel], data: Any) -> BaseModel:
    if isinstance(data, schema):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump()
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise ContractViolation(subject, contract, e.errors(include_url=False)) from e


def validate_contract(subject: str, contract: str, schema: Optional[Type[BaseModel]], data: Any) -> Any:
    """
    Validate a workflow-level value (trigger input or result).

    Returns:
        ``data`` as a plain dict when a schema is declared, otherwise unchanged
    """
    if schema is None:
        return data
    return _validate(subject, contract, schema, data).model_dump()
