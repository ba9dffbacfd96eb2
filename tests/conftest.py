from __future__ import annotations

import signal
import threading
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

from scriptrun.errors import CancellationError


class FakeHandle:
    """Scripted child process. `on_wait` runs inside wait(), i.e. while the child is 'running'."""

    def __init__(self, code: Optional[int] = 0, on_wait: Optional[Callable[["FakeHandle"], None]] = None, wait_error: Optional[BaseException] = None):
        self.code = code
        self.on_wait = on_wait
        self.wait_error = wait_error
        self.terminate_calls = 0
        self.kill_calls = 0
        self._alive = True

    @property
    def alive(self) -> bool:
        return self._alive

    def wait(self) -> Optional[int]:
        if self.on_wait is not None:
            self.on_wait(self)
        self._alive = False
        if self.wait_error is not None:
            raise self.wait_error
        return self.code

    def terminate(self) -> None:
        self.terminate_calls += 1
        # Killed by a signal: no exit code.
        self.code = None

    def kill(self) -> None:
        self.kill_calls += 1
        self.code = None
        self._alive = False


class FakeSpawner:
    def __init__(self, handle: Optional[FakeHandle] = None, error: Optional[BaseException] = None):
        self.handle = handle or FakeHandle()
        self.error = error
        self.calls: List[List[str]] = []

    def spawn(self, argv: Sequence[str], cancel: threading.Event) -> FakeHandle:
        self.calls.append(list(argv))
        if cancel.is_set():
            raise CancellationError("cancelled before start")
        if self.error is not None:
            raise self.error
        return self.handle


class SignalRecorder:
    """Stands in for signal.signal so tests never touch real process handlers."""

    def __init__(self):
        self.handlers: Dict[int, Any] = {}

    def __call__(self, sig: int, handler: Any) -> Any:
        prev = self.handlers.get(sig, signal.SIG_DFL)
        self.handlers[sig] = handler
        return prev

    def fire(self, sig: int = signal.SIGINT) -> None:
        handler = self.handlers[sig]
        assert callable(handler), f"no Python handler installed for {sig}"
        handler(sig, None)


class ExitRecorder:
    def __init__(self):
        self.codes: List[int] = []

    def __call__(self, code: int) -> None:
        self.codes.append(code)


@pytest.fixture
def signals() -> SignalRecorder:
    return SignalRecorder()


@pytest.fixture
def exits() -> ExitRecorder:
    return ExitRecorder()


def write(path, text: str = "") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
