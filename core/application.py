"""Application builder and fluent resource builders."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, Tuple, Type, TypeVar

from core.annotations import (
    AnnotationBehavior,
    ConnectionStringRedirectAnnotation,
    ContainerImageAnnotation,
    ManifestPublishingCallbackAnnotation,
    ResourceAnnotation,
)
from core.resources import FunctionsResource, Resource
from core.settings import HostingSettings

logger = logging.getLogger(__name__)

_R = TypeVar("_R")


class DuplicateResourceError(ValueError):
    """Raised when a resource name is already registered in the application model."""


class DistributedApplicationOperation(Enum):
    RUN = "run"
    PUBLISH = "publish"


@dataclass(frozen=True)
class ExecutionContext:
    operation: DistributedApplicationOperation = DistributedApplicationOperation.RUN

    @property
    def is_run_mode(self) -> bool:
        return self.operation is DistributedApplicationOperation.RUN

    @property
    def is_publish_mode(self) -> bool:
        return self.operation is DistributedApplicationOperation.PUBLISH


class ResourceBuilder(Generic[_R]):
    """Fluent handle used to configure a single resource."""

    def __init__(self, application_builder: "DistributedApplicationBuilder", resource: _R) -> None:
        self.application_builder = application_builder
        self.resource = resource

    def with_annotation(
        self,
        annotation: ResourceAnnotation,
        behavior: AnnotationBehavior = AnnotationBehavior.APPEND,
    ) -> "ResourceBuilder[_R]":
        annotations = self.resource.annotations  # type: ignore[attr-defined]
        if behavior is AnnotationBehavior.REPLACE:
            annotations.remove_type(type(annotation))
        annotations.append(annotation)
        return self

    def with_manifest_publishing_callback(
        self, callback: Callable[[Any], None]
    ) -> "ResourceBuilder[_R]":
        return self.with_annotation(
            ManifestPublishingCallbackAnnotation(callback), AnnotationBehavior.REPLACE
        )

    def with_connection_string_redirection(self, target: Any) -> "ResourceBuilder[_R]":
        return self.with_annotation(
            ConnectionStringRedirectAnnotation(target), AnnotationBehavior.REPLACE
        )


class DistributedApplicationModel:
    """Read-only view of the resources registered when the builder was built."""

    def __init__(self, resources: List[Resource], execution_context: ExecutionContext) -> None:
        self._resources: Tuple[Resource, ...] = tuple(resources)
        self.execution_context = execution_context

    @property
    def resources(self) -> Tuple[Resource, ...]:
        return self._resources

    def __iter__(self) -> Iterator[Resource]:
        return iter(self._resources)

    def __len__(self) -> int:
        return len(self._resources)

    def find(self, name: str) -> Optional[Resource]:
        key = name.lower()
        for resource in self._resources:
            if resource.name.lower() == key:
                return resource
        return None


class DistributedApplicationBuilder:
    """Collects resources and shared services before the model is finalized."""

    def __init__(
        self,
        settings: Optional[HostingSettings] = None,
        *,
        execution_context: Optional[ExecutionContext] = None,
    ) -> None:
        self.settings = settings or HostingSettings.from_env()
        if execution_context is None:
            operation = (
                DistributedApplicationOperation.PUBLISH
                if self.settings.is_publish_mode
                else DistributedApplicationOperation.RUN
            )
            execution_context = ExecutionContext(operation=operation)
        self.execution_context = execution_context
        self.resources: List[Resource] = []
        self.services: Dict[str, Any] = {}

    def add_resource(self, resource: Resource, builder_cls: Optional[Type[ResourceBuilder]] = None):
        existing = {item.name.lower() for item in self.resources}
        if resource.name.lower() in existing:
            raise DuplicateResourceError(
                f"Cannot add resource '{resource.name}': a resource with that name already exists."
            )
        self.resources.append(resource)
        logger.debug("Added resource '%s' (%s).", resource.name, type(resource).__name__)
        return self.create_resource_builder(resource, builder_cls)

    def create_resource_builder(self, resource: Any, builder_cls: Optional[Type[ResourceBuilder]] = None):
        """Return a builder for ``resource`` without adding it to the model."""

        cls = builder_cls or ResourceBuilder
        return cls(self, resource)

    def add_functions(
        self,
        name: str,
        *,
        image: Optional[str] = None,
        tag: str = "latest",
        registry: Optional[str] = None,
    ) -> ResourceBuilder[FunctionsResource]:
        builder = self.add_resource(FunctionsResource(name))
        if image:
            builder.with_annotation(ContainerImageAnnotation(image=image, tag=tag, registry=registry))
        return builder

    def build(self) -> DistributedApplicationModel:
        return DistributedApplicationModel(self.resources, self.execution_context)


__all__ = [
    "DistributedApplicationBuilder",
    "DistributedApplicationModel",
    "DistributedApplicationOperation",
    "DuplicateResourceError",
    "ExecutionContext",
    "ResourceBuilder",
]
