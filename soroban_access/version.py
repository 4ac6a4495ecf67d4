"""
Version helpers for the Soroban access-control library.

- ``__version__`` is the semantic version for packaging.
- ``user_agent()`` is the identity string sent by the HTTP adapters.
"""

from __future__ import annotations

# Bump this when making a release; use semver (MAJOR.MINOR.PATCH)
__version__ = "0.1.0"


def user_agent() -> str:
    return f"soroban-access/{__version__}"


__all__ = ["__version__", "user_agent"]
