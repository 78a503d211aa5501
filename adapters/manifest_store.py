"""Filesystem adapter for manifest and Bicep module output."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

logger = logging.getLogger(__name__)


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def write_text_file(path: str | Path, content: str) -> Path:
    """Write ``content`` to ``path`` using UTF-8 and return the resolved path."""

    target = Path(path)
    _ensure_parent(target)
    target.write_text(content, encoding="utf-8")
    logger.debug("Wrote %d characters to %s", len(content), target)
    return target.resolve()


def write_manifest(path: str | Path, document: Mapping[str, Any]) -> Path:
    """Serialize the manifest document as indented JSON."""

    payload = json.dumps(document, indent=2) + "\n"
    return write_text_file(path, payload)


def read_manifest(path: str | Path) -> dict:
    return json.loads(Path(path).read_text(encoding="utf-8"))
