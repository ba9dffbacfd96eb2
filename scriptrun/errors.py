"""Error taxonomy for discovery, selection and script execution.

Recoverable discovery errors (`DirectoryNotFound`, `DiscoveryIOError`) are caught by
`registry.discover`, which moves on to the next candidate directory. Everything else
reaches the CLI boundary, where it is rendered and mapped to an exit status.
"""

from __future__ import annotations

from typing import Optional, Sequence


class RunnerError(Exception):
    """Base class for all scriptrun errors."""


class DirectoryNotFound(RunnerError):
    def __init__(self, path: str):
        super().__init__(f"Scripts directory not found: {path}")
        self.path = path


class DiscoveryIOError(RunnerError):
    def __init__(self, path: str, cause: OSError):
        super().__init__(f"Error reading scripts directory {path}: {cause}")
        self.path = path
        self.cause = cause


class NoScriptsFound(RunnerError):
    def __init__(self, message: str = "No scripts found in the specified directories"):
        super().__init__(message)


class ScriptNotFound(RunnerError):
    def __init__(self, name: str, available: Sequence[str] = ()):
        super().__init__(f"Script '{name}' not found")
        self.name = name
        self.available = list(available)


class SpawnError(RunnerError):
    def __init__(self, script: str, cause: Optional[BaseException] = None, message: str = ""):
        detail = message or (str(cause) if cause is not None else "unknown error")
        super().__init__(f"Failed to run script {script}: {detail}")
        self.script = script
        self.cause = cause


class CancellationError(RunnerError):
    """Raised by a spawner when the run's cancellation token was triggered."""


class AbnormalExit(RunnerError):
    def __init__(self, script: str, code: int):
        super().__init__(f"Script {script} failed with code {code}")
        self.script = script
        self.code = code


class SelectionCancelled(RunnerError):
    def __init__(self, message: str = "Selection cancelled"):
        super().__init__(message)
