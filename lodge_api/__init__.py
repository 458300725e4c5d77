# pragma: no cover
# lodge_api/__init__.py
import importlib
from typing import Any

__all__ = ["server"]


def __getattr__(name: str) -> Any:
    """
    Lazy import submodules on attribute access, e.g. `from lodge_api import server`.
    Keeps `import lodge_api.auth` from building the whole application.
    """
    if name in ("server", "auth", "schemas", "deps"):
        mod = importlib.import_module(f"lodge_api.{name}")
        globals()[name] = mod
        return mod
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
