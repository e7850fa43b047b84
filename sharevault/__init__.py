from __future__ import annotations
"""
sharevault - pooled liquid staking vault.

Pools a base asset deposited by many parties, delegates it across staking
agents (each wrapping a position with one validator) and issues a fungible
receipt token representing a proportional, appreciating claim on the pool.

Public surface (lazily loaded):
- config, errors, metrics, math
- vtypes, economics, delegation, queue, adapters
- vault, cli
"""


from typing import List

try:
    from .version import __version__  # type: ignore
except Exception:  # pragma: no cover - fallback when git/env probing fails
    __version__ = "0.0.0+local"

__all__: List[str] = [
    "__version__",
    # lazily importable subpackages/modules
    "config",
    "errors",
    "metrics",
    "math",
    "vtypes",
    "economics",
    "delegation",
    "queue",
    "adapters",
    "vault",
    "cli",
]

# --- Lazy module loader (PEP 562) -------------------------------------------------
import importlib


_lazy_modules = set(__all__) - {"__version__"}


def __getattr__(name: str):
    if name in _lazy_modules:
        return importlib.import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(set(globals().keys()) | _lazy_modules)


def get_version() -> str:
    """Return the sharevault package version string."""
    return __version__
