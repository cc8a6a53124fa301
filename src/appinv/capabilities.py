"""Startup check for the third-party packages a run needs.

This module must stay importable without any of those packages, because
main.py consults it before importing anything that depends on them.
"""

import importlib.util

# import name -> distribution name on the package index
REQUIRED_MODULES: dict[str, str] = {
    "aiohttp": "aiohttp",
    "anyio": "anyio",
    "dotenv": "python-dotenv",
    "openpyxl": "openpyxl",
}


def missing_capabilities(required: dict[str, str] | None = None) -> list[str]:
    """Return the distribution names of required modules that cannot be found."""
    required = REQUIRED_MODULES if required is None else required
    missing = []
    for module_name, distribution in required.items():
        if importlib.util.find_spec(module_name) is None:
            missing.append(distribution)
    return missing
