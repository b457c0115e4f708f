"""Resolve ``${steps.<id>.outputs.<path>}`` references in step inputs.

A string input is scanned by hand into literal text and ``${...}``
references; nothing inside a reference is evaluated. When the trimmed string
is exactly one reference, the referenced value replaces it with its type
preserved. Otherwise each reference is replaced by its text form. A
reference to a step without an output is left in place verbatim; resolution
itself never raises.

Examples
--------
>>> outputs = {"a": {"nodeId": "n1", "tags": ["x", "y"]}}
>>> resolve_value("${steps.a.outputs.nodeId}", outputs)
'n1'
>>> resolve_value("${steps.a.outputs.tags}", outputs)
['x', 'y']
>>> resolve_value("id=${steps.a.outputs.tags.1}", outputs)
'id=y'
>>> resolve_value("${steps.missing.outputs.x}", outputs)
'${steps.missing.outputs.x}'
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

OPEN = "${"
CLOSE = "}"
STEPS_KEYWORD = "steps"
OUTPUTS_KEYWORD = "outputs"


@dataclass(frozen=True, slots=True)
class StepReference:
    """A parsed reference expression.

    Attributes
    ----------
    step_id : str
        Referenced step.
    path : tuple[str, ...]
        Attribute/key path into the step output; integer segments index lists.
    source : str
        The exact text of the expression.
    """

    step_id: str
    path: tuple[str, ...]
    source: str

    @classmethod
    def parse(cls, source: str) -> StepReference | None:
        """Parse one ``${...}`` expression, or return None if it is not a reference.

        The body is ``steps.<id>.outputs`` followed by zero or more ``.<segment>``
        parts; whitespace is allowed only around the body.
        """
        if not (source.startswith(OPEN) and source.endswith(CLOSE)):
            return None
        parts = source[len(OPEN) : -len(CLOSE)].strip().split(".")
        if len(parts) < 3 or parts[0] != STEPS_KEYWORD or parts[2] != OUTPUTS_KEYWORD:
            return None
        for part in parts:
            if not part or CLOSE in part or any(ch.isspace() for ch in part):
                return None
        return cls(step_id=parts[1], path=tuple(parts[3:]), source=source)


Segment = str | StepReference


def _references(text: str) -> Iterator[tuple[int, int, StepReference]]:
    """Yield ``(start, end, reference)`` for every reference in ``text``.

    A ``${`` that does not open a valid reference is literal text; scanning
    resumes right after its ``$``.
    """
    position = 0
    while (start := text.find(OPEN, position)) != -1:
        close = text.find(CLOSE, start + len(OPEN))
        if close == -1:
            return
        end = close + len(CLOSE)
        reference = StepReference.parse(text[start:end])
        if reference is None:
            position = start + 1
            continue
        yield start, end, reference
        position = end


def scan(text: str) -> list[Segment]:
    """Split ``text`` into literal strings and :class:`StepReference` segments."""
    segments: list[Segment] = []
    position = 0
    for start, end, reference in _references(text):
        if start > position:
            segments.append(text[position:start])
        segments.append(reference)
        position = end
    if position < len(text):
        segments.append(text[position:])
    return segments


def parse_whole_reference(text: str) -> StepReference | None:
    """Return the reference if the trimmed ``text`` is exactly one reference."""
    return StepReference.parse(text.strip())


_MISSING = object()


def _lookup(output: Any, path: tuple[str, ...]) -> Any:
    value = output
    for segment in path:
        if value is None:
            return None
        if isinstance(value, Mapping):
            value = value.get(segment)
        elif isinstance(value, Sequence) and not isinstance(value, str | bytes):
            try:
                value = value[int(segment)]
            except (ValueError, IndexError):
                return None
        elif isinstance(value, BaseModel):
            value = getattr(value, segment, None)
        else:
            return None
    return value


def _dereference(reference: StepReference, outputs: Mapping[str, Any]) -> Any:
    if reference.step_id not in outputs:
        return _MISSING
    return _lookup(outputs[reference.step_id], reference.path)


def to_text(value: Any) -> str:
    """Text form used for inline substitution."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    return json.dumps(value, separators=(",", ":"), default=str)


def resolve_value(value: Any, outputs: Mapping[str, Any]) -> Any:
    """Resolve references in ``value``, recursing into dicts and lists."""
    if isinstance(value, str):
        return _resolve_string(value, outputs)
    if isinstance(value, Mapping):
        return {key: resolve_value(item, outputs) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [resolve_value(item, outputs) for item in value]
    return value


def _resolve_string(text: str, outputs: Mapping[str, Any]) -> Any:
    if "${" not in text:
        return text
    whole = parse_whole_reference(text)
    if whole is not None:
        resolved = _dereference(whole, outputs)
        return text if resolved is _MISSING else resolved

    parts: list[str] = []
    for segment in scan(text):
        if isinstance(segment, str):
            parts.append(segment)
            continue
        resolved = _dereference(segment, outputs)
        parts.append(segment.source if resolved is _MISSING else to_text(resolved))
    return "".join(parts)


def resolve_inputs(inputs: Mapping[str, Any], outputs: Mapping[str, Any]) -> dict[str, Any]:
    """Return a new input dict with every reference resolved against ``outputs``.

    ``inputs`` is not modified.
    """
    return {key: resolve_value(value, outputs) for key, value in inputs.items()}


def extract_step_references(value: Any) -> set[str]:
    """Return the ids of all steps referenced anywhere in ``value``."""
    if isinstance(value, str):
        return {reference.step_id for _, _, reference in _references(value)}
    if isinstance(value, Mapping):
        found: set[str] = set()
        for item in value.values():
            found |= extract_step_references(item)
        return found
    if isinstance(value, list | tuple):
        found = set()
        for item in value:
            found |= extract_step_references(item)
        return found
    return set()


__all__ = [
    "StepReference",
    "extract_step_references",
    "parse_whole_reference",
    "resolve_inputs",
    "resolve_value",
    "scan",
    "to_text",
]
