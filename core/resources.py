"""Resources that make up the application model."""

from __future__ import annotations

import logging
from typing import Optional, Protocol, runtime_checkable

from core.annotations import ConnectionStringRedirectAnnotation, ResourceAnnotationCollection
from core.expressions import ReferenceExpression

logger = logging.getLogger(__name__)


class ConnectionStringRedirectError(RuntimeError):
    """Raised when a connection string cannot be resolved through redirections."""


class Resource:
    """A named node in the application model that owns its annotations."""

    def __init__(self, name: str) -> None:
        if not name:
            raise ValueError("Resource name must be a non-empty string.")
        self._name = name
        self._annotations = ResourceAnnotationCollection()

    @property
    def name(self) -> str:
        return self._name

    @property
    def annotations(self) -> ResourceAnnotationCollection:
        return self._annotations

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


@runtime_checkable
class ResourceWithConnectionString(Protocol):
    """Resources that can hand out a connection string to other resources."""

    name: str

    @property
    def connection_string_expression(self) -> Optional[ReferenceExpression]:
        """Deferred connection string, or ``None`` when the resource has none."""


class FunctionsResource(Resource):
    """A functions application declared by the application author.

    Locally the app runs as a process or a container and has no connection
    string of its own; a connection string only becomes available once the
    resource is redirected to a provisioned Azure counterpart.
    """

    @property
    def connection_string_expression(self) -> Optional[ReferenceExpression]:
        return None


def resolve_connection_string_expression(resource: object) -> ReferenceExpression:
    """Follow connection string redirections and return the effective expression."""

    visited = []
    current = resource
    while True:
        if any(current is seen for seen in visited):
            chain = " -> ".join(getattr(item, "name", repr(item)) for item in visited)
            raise ConnectionStringRedirectError(f"Connection string redirection cycle: {chain}.")
        visited.append(current)

        annotations = getattr(current, "annotations", None)
        redirect = None
        if annotations is not None:
            redirect = annotations.single_or_none(ConnectionStringRedirectAnnotation)
        # An adapter shares its annotations with the resource it wraps, so the
        # redirect can point back at ``current`` through a different object.
        if redirect is not None and redirect.resource is not current:
            logger.debug(
                "Redirecting connection string of '%s' to '%s'.",
                getattr(current, "name", current),
                getattr(redirect.resource, "name", redirect.resource),
            )
            current = redirect.resource
            continue

        expression = getattr(current, "connection_string_expression", None)
        if expression is None:
            raise ConnectionStringRedirectError(
                f"Resource '{getattr(current, 'name', current)}' does not expose a connection string."
            )
        return expression


__all__ = [
    "ConnectionStringRedirectError",
    "FunctionsResource",
    "Resource",
    "ResourceWithConnectionString",
    "resolve_connection_string_expression",
]
