"""Runtime value interpolation between plan steps.

A string parameter may carry one token referencing an earlier step's
result:

    {{ step_id ( .segment | [index] )* }}

e.g. ``{{step1.results.0.id}}`` or ``{{step1.results[0].id}}``. A numeric
dot segment indexes a list, or looks up a string key in a map.

Interpolation is fail-open: an unknown step id, an unresolvable path, a
malformed token or a string without a token leaves the value unchanged.
Only the first token of a string is honored; later ones stay verbatim.

When the token is the whole string the resolved value replaces it as-is
(so a placeholder can become an object, list or number). When the token is
embedded in other text it is replaced by the value's text form.
"""

import json
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional, Union

TOKEN_RE = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)
_REFERENCE_RE = re.compile(
    r"^([A-Za-z_][A-Za-z0-9_\-]*)((?:\.[A-Za-z0-9_\-]+|\[\d+\])*)$"
)
_ACCESSOR_RE = re.compile(r"\.([A-Za-z0-9_\-]+)|\[(\d+)\]")


class _Unresolved:
    def __repr__(self) -> str:
        return "<unresolved>"


UNRESOLVED = _Unresolved()


@dataclass(frozen=True)
class Accessor:
    key: str
    bracketed: bool = False

    def apply(self, value: Any) -> Any:
        if isinstance(value, dict):
            return value.get(self.key, UNRESOLVED)
        if isinstance(value, (list, tuple)):
            if not self.key.isdigit():
                return UNRESOLVED
            index = int(self.key)
            if index >= len(value):
                return UNRESOLVED
            return value[index]
        return UNRESOLVED


@dataclass(frozen=True)
class Reference:
    """A parsed ``{{step_id.path}}`` token inside a string."""

    step_id: str
    accessors: tuple[Accessor, ...]
    start: int
    end: int
    whole: bool

    @property
    def path(self) -> str:
        return "".join(
            f"[{a.key}]" if a.bracketed else f".{a.key}" for a in self.accessors
        )

    def resolve(self, result: Any) -> Any:
        value = result
        for accessor in self.accessors:
            value = accessor.apply(value)
            if value is UNRESOLVED:
                return UNRESOLVED
        return value


@lru_cache(maxsize=1024)
def parse_reference(text: str) -> Optional[Reference]:
    """Parse the first token in `text`, or None if there is no valid one."""
    match = TOKEN_RE.search(text)
    if match is None:
        return None

    ref = _REFERENCE_RE.match(match.group(1).strip())
    if ref is None:
        return None

    accessors = tuple(
        Accessor(key=dot or bracket, bracketed=bool(bracket))
        for dot, bracket in _ACCESSOR_RE.findall(ref.group(2))
    )
    return Reference(
        step_id=ref.group(1),
        accessors=accessors,
        start=match.start(),
        end=match.end(),
        whole=text.strip() == match.group(0),
    )


def _to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list, tuple, bool)) or value is None:
        return json.dumps(value, ensure_ascii=False)
    return str(value)


@dataclass(frozen=True)
class _TemplateString:
    raw: str
    reference: Reference

    def render(self, results: dict[str, Any]) -> Any:
        if self.reference.step_id not in results:
            return self.raw
        resolved = self.reference.resolve(results[self.reference.step_id])
        if resolved is UNRESOLVED:
            return self.raw
        if self.reference.whole:
            return resolved
        return self.raw[: self.reference.start] + _to_text(resolved) + self.raw[self.reference.end:]


TemplateNode = Union[dict, list, tuple, _TemplateString, Any]


class ParameterTemplate:
    """A parameter tree with its tokens parsed once.

    Usage:
        template = ParameterTemplate(step.parameters)
        template.references        # step ids the tree points at
        template.render(results)   # interpolated copy of the tree
    """

    def __init__(self, parameters: Any):
        self.parameters = parameters
        self.references: list[str] = []
        self._tree = self._compile(parameters)

    def _compile(self, value: Any) -> TemplateNode:
        if isinstance(value, dict):
            return {k: self._compile(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self._compile(v) for v in value]
        if isinstance(value, tuple):
            return tuple(self._compile(v) for v in value)
        if isinstance(value, str):
            ref = parse_reference(value)
            if ref is None:
                return value
            if ref.step_id not in self.references:
                self.references.append(ref.step_id)
            return _TemplateString(raw=value, reference=ref)
        return value

    def render(self, results: dict[str, Any]) -> Any:
        return self._render(self._tree, results)

    def _render(self, node: TemplateNode, results: dict[str, Any]) -> Any:
        if isinstance(node, dict):
            return {k: self._render(v, results) for k, v in node.items()}
        if isinstance(node, list):
            return [self._render(v, results) for v in node]
        if isinstance(node, tuple):
            return tuple(self._render(v, results) for v in node)
        if isinstance(node, _TemplateString):
            return node.render(results)
        return node


def interpolate(value: Any, results: dict[str, Any]) -> Any:
    """Return `value` with step-result tokens substituted from `results`.

    Maps and sequences are rebuilt; the input is never mutated.
    """
    return ParameterTemplate(value).render(results)


def referenced_steps(value: Any) -> list[str]:
    """Step ids referenced by tokens anywhere in a parameter tree."""
    return list(ParameterTemplate(value).references)
