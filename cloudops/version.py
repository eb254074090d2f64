"""Package version lookup.

Order: CLOUDOPS_BUILD_VERSION (release builds stamp it from the git tag),
installed distribution metadata, then pyproject.toml for source checkouts.
"""

import os
import tomllib
from importlib import metadata
from pathlib import Path

DISTRIBUTION_NAME = "cloudops"
PYPROJECT_PATH = Path(__file__).resolve().parent.parent / "pyproject.toml"


def _pyproject_version(path: Path = PYPROJECT_PATH) -> str:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f).get("project", {}).get("version", "unknown")
    except (OSError, tomllib.TOMLDecodeError):
        return "unknown"


def get_version() -> str:
    """
    Resolve the cloudops version string.

    Returns:
        str: Version string (e.g., "0.3.0" or "0.3.1-dev.1"), or "unknown"
    """
    if build_version := os.getenv("CLOUDOPS_BUILD_VERSION"):
        return build_version

    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return _pyproject_version()


__version__ = get_version()
