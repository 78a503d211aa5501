"""Write-once construct holding the infrastructure declared for one resource."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Iterable, List, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

_IDENTIFIER_INVALID = re.compile(r"[^A-Za-z0-9_]")


class ConstructFinalizedError(RuntimeError):
    """Raised when a construct is modified after it has been built."""


@dataclass(frozen=True)
class BicepExpression:
    """Raw Bicep text, emitted without quoting."""

    text: str

    def __str__(self) -> str:
        return self.text


BicepValue = Union[None, bool, int, float, str, BicepExpression, Mapping[str, Any], List[Any]]


def to_bicep_identifier(name: str) -> str:
    """Turn an arbitrary resource name into a valid Bicep symbol."""

    identifier = _IDENTIFIER_INVALID.sub("_", name)
    if not identifier or identifier[0].isdigit():
        identifier = f"_{identifier}"
    return identifier


@dataclass
class Parameter:
    name: str
    type: str = "string"
    description: Optional[str] = None
    default: Optional[BicepValue] = None
    secure: bool = False


class ProvisionedResource:
    """A resource declaration inside a :class:`ResourceModuleConstruct`.

    ``body`` holds everything rendered after ``parent``/``name``/``location``
    in declaration order; ``tags`` and ``properties`` are views into it.
    """

    resource_type: ClassVar[str] = ""
    api_version: ClassVar[str] = ""
    has_location: ClassVar[bool] = True

    def __init__(
        self,
        construct: "ResourceModuleConstruct",
        name: Union[str, BicepExpression],
        *,
        identifier: Optional[str] = None,
        existing: bool = False,
        parent: Optional["ProvisionedResource"] = None,
    ) -> None:
        if identifier is None:
            identifier = to_bicep_identifier(str(name))
        self.construct = construct
        self.name = name
        self.identifier = identifier
        self.existing = existing
        self.parent = parent
        self.body: Dict[str, Any] = {}
        if not existing:
            self.body["tags"] = {}
            self.body["properties"] = {}
        construct.add_resource(self)

    @property
    def type_reference(self) -> str:
        return f"{self.resource_type}@{self.api_version}"

    @property
    def tags(self) -> Dict[str, Any]:
        return self.body.setdefault("tags", {})

    @property
    def properties(self) -> Dict[str, Any]:
        return self.body.setdefault("properties", {})

    def assign_property(self, path: str, value: BicepValue) -> None:
        """Set a nested body value addressed by a dotted ``path`` (``properties.value``)."""

        self.construct._ensure_mutable()
        keys = [key for key in path.split(".") if key]
        if not keys:
            raise ValueError("Property path must not be empty.")
        target = self.body
        for key in keys[:-1]:
            child = target.get(key)
            if child is None:
                child = target[key] = {}
            elif not isinstance(child, dict):
                raise ValueError(f"Cannot assign '{path}': '{key}' is not an object.")
            target = child
        target[keys[-1]] = value

    def reference(self, member: str) -> BicepExpression:
        """Expression referring to a member of this resource, e.g. ``properties.hostName``."""

        return BicepExpression(f"{self.identifier}.{member}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(identifier={self.identifier!r}, type={self.type_reference!r})"


class ResourceModuleConstruct:
    """Collects parameters and resources for one application model resource.

    A fresh construct is created for every deployment pass. Once :meth:`build`
    has run the construct is frozen and its rendered template is cached.
    """

    LOCATION_PARAMETER = "location"

    def __init__(self, resource: Any) -> None:
        self.resource = resource
        self._parameters: Dict[str, Parameter] = {}
        self._resources: List[ProvisionedResource] = []
        self._template: Optional[str] = None
        self.add_parameter(
            Parameter(
                self.LOCATION_PARAMETER,
                description="The location for the resource(s) to be deployed.",
                default=BicepExpression("resourceGroup().location"),
            )
        )

    @property
    def is_built(self) -> bool:
        return self._template is not None

    @property
    def parameters(self) -> Tuple[Parameter, ...]:
        return tuple(self._parameters.values())

    @property
    def resources(self) -> Tuple[ProvisionedResource, ...]:
        return tuple(self._resources)

    def get_parameter(self, name: str) -> Optional[Parameter]:
        return self._parameters.get(name)

    def _ensure_mutable(self) -> None:
        if self.is_built:
            raise ConstructFinalizedError(
                f"Construct for '{getattr(self.resource, 'name', '?')}' has already been built."
            )

    def _symbols(self) -> set[str]:
        symbols = set(self._parameters)
        symbols.update(item.identifier for item in self._resources)
        return symbols

    def unique_symbol(self, candidate: str, reserved: Iterable[str] = ()) -> str:
        """Return ``candidate``, suffixed if it is declared or ``reserved``."""

        taken = self._symbols().union(reserved)
        symbol = candidate
        index = 1
        while symbol in taken:
            symbol = f"{candidate}_{index}"
            index += 1
        return symbol

    def add_parameter(self, parameter: Parameter) -> Parameter:
        self._ensure_mutable()
        if parameter.name in self._symbols():
            raise ValueError(f"Bicep symbol '{parameter.name}' is already declared.")
        self._parameters[parameter.name] = parameter
        return parameter

    def add_resource(self, resource: ProvisionedResource) -> ProvisionedResource:
        self._ensure_mutable()
        if resource.identifier in self._symbols():
            raise ValueError(f"Bicep symbol '{resource.identifier}' is already declared.")
        self._resources.append(resource)
        return resource

    def build(self) -> str:
        """Freeze the construct and return its Bicep template."""

        if self._template is None:
            from provisioning.bicep import render_bicep  # Local import to avoid circular dependency

            self._template = render_bicep(self)
            logger.debug(
                "Built construct for '%s' with %d parameter(s) and %d resource(s).",
                getattr(self.resource, "name", "?"),
                len(self._parameters),
                len(self._resources),
            )
        return self._template


__all__ = [
    "BicepExpression",
    "BicepValue",
    "ConstructFinalizedError",
    "Parameter",
    "ProvisionedResource",
    "ResourceModuleConstruct",
    "to_bicep_identifier",
]
