"""Single source of truth for the application version.

Reads the version from pyproject.toml at import time using tomllib (stdlib,
Python 3.11+), falling back to the installed distribution metadata.
"""

import tomllib
from importlib import metadata
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
DISTRIBUTION_NAME = "twodo-routines"


def get_version() -> str:
    """Read and return the version string from pyproject.toml."""
    pyproject_path = _PROJECT_ROOT / "pyproject.toml"
    if pyproject_path.exists():
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
        return data["project"]["version"]
    return metadata.version(DISTRIBUTION_NAME)


__version__: str = get_version()
