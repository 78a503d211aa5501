"""Annotations attached to application model resources."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Type, TypeVar

if TYPE_CHECKING:  # pragma: no cover - typing aid only
    from core.manifest import ManifestPublishingContext

_A = TypeVar("_A", bound="ResourceAnnotation")


class AnnotationBehavior(Enum):
    """How :meth:`ResourceBuilder.with_annotation` treats existing annotations."""

    APPEND = "append"
    REPLACE = "replace"


class ResourceAnnotation:
    """Marker base class for resource metadata."""


@dataclass(eq=False)
class ContainerImageAnnotation(ResourceAnnotation):
    """Marks a resource as runnable from a container image."""

    image: str
    tag: str = "latest"
    registry: Optional[str] = None

    @property
    def reference(self) -> str:
        prefix = f"{self.registry}/" if self.registry else ""
        return f"{prefix}{self.image}:{self.tag}"


@dataclass(eq=False)
class ManifestPublishingCallbackAnnotation(ResourceAnnotation):
    """Overrides how a resource is written during the manifest pass."""

    callback: Callable[["ManifestPublishingContext"], None]


@dataclass(eq=False)
class ConnectionStringRedirectAnnotation(ResourceAnnotation):
    """Redirects connection string lookups to another resource."""

    resource: Any


class ResourceAnnotationCollection(List[ResourceAnnotation]):
    """Mutable, ordered collection of annotations owned by a resource."""

    def of_type(self, annotation_type: Type[_A]) -> List[_A]:
        return [item for item in self if isinstance(item, annotation_type)]

    def single_or_none(self, annotation_type: Type[_A]) -> Optional[_A]:
        """Return the only annotation of ``annotation_type`` or ``None``.

        Raises :class:`ValueError` when more than one annotation matches.
        """

        matches = self.of_type(annotation_type)
        if len(matches) > 1:
            raise ValueError(
                f"Expected at most one {annotation_type.__name__}, found {len(matches)}."
            )
        return matches[0] if matches else None

    def remove_type(self, annotation_type: Type[ResourceAnnotation]) -> int:
        """Remove every annotation of ``annotation_type``; return how many were removed."""

        kept = [item for item in self if not isinstance(item, annotation_type)]
        removed = len(self) - len(kept)
        self[:] = kept
        return removed

    def remove(self, annotation: ResourceAnnotation) -> None:  # type: ignore[override]
        # Identity, not equality: two annotations with equal fields are distinct markers.
        for index, item in enumerate(self):
            if item is annotation:
                del self[index]
                return
        raise ValueError("Annotation is not attached to this resource.")


__all__ = [
    "AnnotationBehavior",
    "ConnectionStringRedirectAnnotation",
    "ContainerImageAnnotation",
    "ManifestPublishingCallbackAnnotation",
    "ResourceAnnotation",
    "ResourceAnnotationCollection",
]
