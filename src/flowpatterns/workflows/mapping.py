"""
Field-path projections

``FieldRef`` points at a value inside a step's recorded output; variable
bindings and result mappings are both built from them.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Type

from pydantic import BaseModel

from ..core.types import OutputMappingError
from .context import TRIGGER, ExecutionContext, StepKey, step_key

WHOLE = "."

_MISSING = object()


class PathError(LookupError):
    """Raised when a path does not resolve inside a value."""


@dataclass(frozen=True, init=False)
class FieldRef:
    """
    Reference to ``path`` inside the output of ``step``.

    Args:
        step: Step, embedded workflow, step id, or "trigger"
        path: "." for the whole output, otherwise a dotted path such as
            "activities" or "items.0.name"
    """

    step_id: str
    path: str = WHOLE

    def __init__(self, step: StepKey, path: str = WHOLE):
        object.__setattr__(self, "step_id", step_key(step))
        object.__setattr__(self, "path", path or WHOLE)

    def __repr__(self) -> str:
        return f"FieldRef({self.step_id!r}, {self.path!r})"


def resolve_path(value: Any, path: str) -> Any:
    """
    Walk a dotted path through dicts, sequences and objects.

    Raises:
        PathError: If a segment is missing
    """
    if path in ("", WHOLE):
        return value
    current = value
    for segment in path.strip(WHOLE).split(WHOLE):
        if isinstance(current, Mapping):
            if segment not in current:
                raise PathError(f"key '{segment}' not found")
            current = current[segment]
        elif isinstance(current, (list, tuple)):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError):
                raise PathError(f"index '{segment}' not found") from None
        else:
            attr = getattr(current, segment, _MISSING)
            if attr is _MISSING:
                raise PathError(f"attribute '{segment}' not found")
            current = attr
    return current


def project(
    context: ExecutionContext,
    bindings: Mapping[str, FieldRef],
    workflow_name: str,
) -> Dict[str, Any]:
    """
    Build a dict from field bindings against a run's context.

    Raises:
        OutputMappingError: If a source step has no result or a path is missing
    """
    projected: Dict[str, Any] = {}
    for name, ref in bindings.items():
        if ref.step_id != TRIGGER and not context.has_result(ref.step_id):
            reason = "step was skipped" if context.is_skipped(ref.step_id) else "step has no result"
            raise OutputMappingError(workflow_name, name, ref.step_id, ref.path, reason)
        try:
            projected[name] = resolve_path(context.get_result(ref.step_id), ref.path)
        except PathError as e:
            raise OutputMappingError(workflow_name, name, ref.step_id, ref.path, str(e)) from e
    return projected


@dataclass(frozen=True)
class ResultMapping:
    """
    Declarative projection from a finished run to the workflow output.

    Example:
        ResultMapping(
            schema=Activities,
            mapping={"activities": FieldRef(synthesize, "activities")},
        )
    """

    mapping: Dict[str, FieldRef] = field(default_factory=dict)
    schema: Optional[Type[BaseModel]] = None

    def __post_init__(self) -> None:
        if not self.mapping:
            raise ValueError("ResultMapping needs at least one field")
        object.__setattr__(self, "mapping", dict(self.mapping))
