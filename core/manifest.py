"""Manifest publishing pass over the application model."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from adapters.manifest_store import write_manifest, write_text_file
from core.annotations import ContainerImageAnnotation, ManifestPublishingCallbackAnnotation
from core.application import DistributedApplicationModel
from core.models import ContainerManifestResource, ManifestDocument, ManifestResource
from core.resources import Resource

logger = logging.getLogger(__name__)

UNSUPPORTED_RESOURCE_TYPE = "unsupported"


class ManifestPublishingContext:
    """State shared with manifest callbacks while one resource is being written.

    Files added by callbacks are held until :meth:`write_files` so a failing
    pass leaves nothing on disk.
    """

    def __init__(self, manifest_path: str | Path) -> None:
        self.manifest_path = Path(manifest_path)
        self.resource: Optional[Resource] = None
        self._entry: Optional[Dict[str, Any]] = None
        self._files: Dict[Path, str] = {}

    @property
    def manifest_directory(self) -> Path:
        return self.manifest_path.resolve().parent

    @property
    def pending_files(self) -> Dict[Path, str]:
        return dict(self._files)

    def get_manifest_relative_path(self, path: str | Path) -> str:
        """Return ``path`` relative to the manifest, using forward slashes."""

        relative = os.path.relpath(Path(path).resolve(), self.manifest_directory)
        return Path(relative).as_posix()

    def add_file(self, path: str | Path, content: str) -> Path:
        """Queue ``content`` to be written next to the manifest; returns the resolved path."""

        target = Path(path).resolve()
        self._files[target] = content
        return target

    def write_files(self) -> None:
        for path, content in self._files.items():
            write_text_file(path, content)
        self._files.clear()

    def write_entry(self, entry: ManifestResource) -> None:
        if self._entry is not None:
            raise RuntimeError(
                f"Manifest entry for '{getattr(self.resource, 'name', '?')}' was already written."
            )
        self._entry = entry.to_entry()

    def _begin(self, resource: Resource) -> None:
        self.resource = resource
        self._entry = None

    def _end(self) -> Dict[str, Any]:
        entry = self._entry
        self.resource = None
        self._entry = None
        if entry is None:
            raise RuntimeError("Manifest callback completed without writing an entry.")
        return entry


def _write_default_entry(context: ManifestPublishingContext, resource: Resource) -> None:
    container = resource.annotations.single_or_none(ContainerImageAnnotation)
    if container is not None:
        context.write_entry(ContainerManifestResource(image=container.reference))
        return
    context.write_entry(ManifestResource(type=UNSUPPORTED_RESOURCE_TYPE))


def build_manifest(
    model: DistributedApplicationModel,
    manifest_path: str | Path,
    *,
    context: Optional[ManifestPublishingContext] = None,
) -> ManifestDocument:
    """Run every resource's manifest callback and collect the entries.

    Nothing is written to disk; files produced by callbacks stay queued on
    ``context``. Callback failures propagate unchanged.
    """

    if context is None:
        context = ManifestPublishingContext(manifest_path)
    resources: Dict[str, Dict[str, Any]] = {}
    for resource in model:
        context._begin(resource)
        callback = resource.annotations.single_or_none(ManifestPublishingCallbackAnnotation)
        if callback is not None:
            logger.debug("[publish] Writing '%s' through its manifest callback.", resource.name)
            callback.callback(context)
        else:
            _write_default_entry(context, resource)
        resources[resource.name] = context._end()
    return ManifestDocument(resources=resources)


def publish_manifest(
    model: DistributedApplicationModel, manifest_path: str | Path
) -> ManifestDocument:
    """Build the manifest for ``model`` and write it with its module files.

    Every entry is built before anything is written, so a failing callback
    leaves no manifest and no module files behind.
    """

    context = ManifestPublishingContext(manifest_path)
    document = build_manifest(model, manifest_path, context=context)
    context.write_files()
    write_manifest(manifest_path, document.to_json_dict())
    logger.info(
        "[publish] Wrote manifest with %d resource(s) to %s.", len(document.resources), manifest_path
    )
    return document


__all__ = [
    "ManifestPublishingContext",
    "UNSUPPORTED_RESOURCE_TYPE",
    "build_manifest",
    "publish_manifest",
]
