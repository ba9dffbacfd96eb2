from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "1.0.0"

if TYPE_CHECKING:  # pragma: no cover
    from .cli import main
    from .lifecycle import LifecycleManager
    from .models import RunOutcome, ScriptEntry
    from .registry import discover

__all__ = ["LifecycleManager", "RunOutcome", "ScriptEntry", "discover", "main", "__version__"]


def __getattr__(name: str):  # pragma: no cover
    # Lazy exports keep `import scriptrun` free of pydantic until something is used.
    if name == "LifecycleManager":
        from .lifecycle import LifecycleManager

        return LifecycleManager
    if name in {"RunOutcome", "ScriptEntry"}:
        from .models import RunOutcome, ScriptEntry

        return {"RunOutcome": RunOutcome, "ScriptEntry": ScriptEntry}[name]
    if name == "discover":
        from .registry import discover

        return discover
    if name == "main":
        from .cli import main

        return main
    raise AttributeError(name)
