"""Generate the deployment manifest and Bicep modules for an app host.

The app host is a callable that receives a ``DistributedApplicationBuilder``
and declares resources on it::

    python tools/publish_manifest.py --apphost myapp.apphost.configure --output-path out/aspire-manifest.json
"""

from __future__ import annotations

import argparse
import importlib
import logging
import os
import sys
from pathlib import Path
from typing import Callable

# Support both running from workspace root and tools directory
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.application import DistributedApplicationBuilder
from core.manifest import publish_manifest
from core.settings import MANIFEST_PUBLISHER, HostingSettings

logger = logging.getLogger(__name__)


def load_apphost(path: str) -> Callable[[DistributedApplicationBuilder], object]:
    """Import ``module.attr`` and return the app host callable."""

    module_path, _, attr_name = path.rpartition(".")
    if not module_path or not attr_name:
        raise ValueError("--apphost must be in 'module.attr' format")

    module = importlib.import_module(module_path)
    apphost = getattr(module, attr_name)
    if not callable(apphost):
        raise TypeError(f"App host '{path}' is not callable")
    return apphost


def get_parser() -> argparse.ArgumentParser:
    defaults = HostingSettings.from_env()
    parser = argparse.ArgumentParser(description="Write the deployment manifest for an app host.")
    parser.add_argument(
        "--apphost",
        required=True,
        help="Dotted path to a callable that configures a DistributedApplicationBuilder.",
    )
    parser.add_argument(
        "--output-path",
        default=str(defaults.manifest_path),
        help="Manifest file to write. Defaults to $ASPIRE_MANIFEST_PATH or aspire-manifest.json.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = get_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
        stream=sys.stderr,
    )

    output_path = Path(args.output_path)
    settings = HostingSettings(publisher=MANIFEST_PUBLISHER, manifest_path=output_path)

    try:
        apphost = load_apphost(args.apphost)
        builder = DistributedApplicationBuilder(settings)
        apphost(builder)
        publish_manifest(builder.build(), output_path)
    except Exception as exc:
        logger.exception("[publish] Manifest generation failed.")
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(f"Manifest written to {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
