"""Environment driven settings for the application host."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

_PUBLISHER_ENV = "ASPIRE_PUBLISHER"
_MANIFEST_PATH_ENV = "ASPIRE_MANIFEST_PATH"

MANIFEST_PUBLISHER = "manifest"
DEFAULT_MANIFEST_PATH = "aspire-manifest.json"


@dataclass(frozen=True)
class HostingSettings:
    publisher: Optional[str] = None
    manifest_path: Path = Path(DEFAULT_MANIFEST_PATH)

    @property
    def is_publish_mode(self) -> bool:
        return (self.publisher or "").lower() == MANIFEST_PUBLISHER

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "HostingSettings":
        env = os.environ if environ is None else environ
        publisher = (env.get(_PUBLISHER_ENV) or "").strip() or None
        manifest_path = (env.get(_MANIFEST_PATH_ENV) or "").strip() or DEFAULT_MANIFEST_PATH
        return cls(publisher=publisher, manifest_path=Path(manifest_path))


__all__ = ["DEFAULT_MANIFEST_PATH", "HostingSettings", "MANIFEST_PUBLISHER"]
