"""Deferred value references used in connection strings and manifests.

Nothing in this module resolves a secret while an expression is being built.
Expressions carry *references* to values and are only turned into text in two
places:

* :attr:`ReferenceExpression.value_expression` renders the manifest placeholder
  form (``{fn.secretOutputs.connectionString}``), which never contains secret
  material.
* :meth:`ReferenceExpression.get_value` resolves the actual value, which is
  only possible once a provisioner has populated the resource outputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Protocol, Tuple, Union, runtime_checkable


class MissingOutputError(KeyError):
    """Raised when an output is read before the resource has been provisioned."""


@runtime_checkable
class ValueProvider(Protocol):
    """Anything that can appear as a reference inside a :class:`ReferenceExpression`."""

    @property
    def value_expression(self) -> str:
        """Manifest placeholder for the value."""

    def get_value(self) -> Optional[str]:
        """Resolve the concrete value."""


class _BicepOutputBase:
    _collection = "outputs"
    _attribute = "outputs"

    def __init__(self, name: str, resource: Any) -> None:
        self.name = name
        self.resource = resource

    @property
    def value_expression(self) -> str:
        return f"{{{self.resource.name}.{self._collection}.{self.name}}}"

    @property
    def value(self) -> Optional[str]:
        values = getattr(self.resource, self._attribute)
        if self.name not in values:
            raise MissingOutputError(
                f"No {self._collection} value '{self.name}' for resource '{self.resource.name}'."
            )
        return values[self.name]

    def get_value(self) -> Optional[str]:
        return self.value

    def __eq__(self, other: object) -> bool:
        return (
            type(other) is type(self)
            and other.name == self.name  # type: ignore[attr-defined]
            and other.resource is self.resource  # type: ignore[attr-defined]
        )

    def __hash__(self) -> int:
        return hash((type(self), self.name, id(self.resource)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, {self.resource.name!r})"


class BicepOutputReference(_BicepOutputBase):
    """Reference to a plain output of a Bicep module."""

    _collection = "outputs"
    _attribute = "outputs"


class BicepSecretOutputReference(_BicepOutputBase):
    """Reference to a secret output of a Bicep module (stored in a key vault)."""

    _collection = "secretOutputs"
    _attribute = "secret_outputs"


class ExpressionPartKind(Enum):
    LITERAL = "literal"
    REFERENCE = "reference"


@dataclass(frozen=True)
class ExpressionPart:
    kind: ExpressionPartKind
    value: Union[str, ValueProvider]


class ReferenceExpression:
    """Immutable sequence of literal and reference parts.

    Build one with :meth:`create`; plain strings become literal parts and any
    :class:`ValueProvider` (including another expression) becomes a reference.
    """

    __slots__ = ("_parts",)

    def __init__(self, parts: Iterable[ExpressionPart]) -> None:
        self._parts: Tuple[ExpressionPart, ...] = tuple(parts)

    @classmethod
    def create(cls, *parts: Union[str, ValueProvider]) -> "ReferenceExpression":
        collected = []
        for part in parts:
            if isinstance(part, str):
                if part:
                    collected.append(ExpressionPart(ExpressionPartKind.LITERAL, part))
            elif isinstance(part, ValueProvider):
                collected.append(ExpressionPart(ExpressionPartKind.REFERENCE, part))
            else:
                raise TypeError(f"Unsupported expression part: {part!r}")
        return cls(collected)

    @property
    def parts(self) -> Tuple[ExpressionPart, ...]:
        return self._parts

    @property
    def references(self) -> Tuple[ValueProvider, ...]:
        return tuple(
            part.value  # type: ignore[misc]
            for part in self._parts
            if part.kind is ExpressionPartKind.REFERENCE
        )

    @property
    def is_literal(self) -> bool:
        return all(part.kind is ExpressionPartKind.LITERAL for part in self._parts)

    @property
    def value_expression(self) -> str:
        rendered = []
        for part in self._parts:
            if part.kind is ExpressionPartKind.LITERAL:
                rendered.append(part.value)  # type: ignore[arg-type]
            else:
                rendered.append(part.value.value_expression)  # type: ignore[union-attr]
        return "".join(rendered)

    def get_value(self) -> Optional[str]:
        rendered = []
        for part in self._parts:
            if part.kind is ExpressionPartKind.LITERAL:
                rendered.append(part.value)  # type: ignore[arg-type]
                continue
            value = part.value.get_value()  # type: ignore[union-attr]
            if value is None:
                return None
            rendered.append(value)
        return "".join(rendered)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ReferenceExpression) and other._parts == self._parts

    def __hash__(self) -> int:
        return hash(self._parts)

    def __repr__(self) -> str:
        return f"ReferenceExpression({self.value_expression!r})"


__all__ = [
    "BicepOutputReference",
    "BicepSecretOutputReference",
    "ExpressionPart",
    "ExpressionPartKind",
    "MissingOutputError",
    "ReferenceExpression",
    "ValueProvider",
]
