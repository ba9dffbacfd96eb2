"""Process lifecycle: spawn a script, forward termination signals, resolve exactly once.

One `LifecycleManager` runs at most one script at a time. Each `execute` call owns a
`ScriptRun` holding the cancellation token, the current-process slot and the outcome.
Every path out of a run (natural exit, spawn error, cancellation, signal cleanup)
goes through `ScriptRun.on_exit` / `ScriptRun.on_error`, and only the first one
settles the outcome.

Signal handlers run on the main thread while it is blocked in `wait()`, so every lock
a handler can take is an RLock.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from .config import default_interpreters
from .errors import CancellationError, SpawnError
from .logging_utils import hard_exit
from .models import RunOutcome, ScriptEntry, find_entry
from .util import quote_argv

logger = logging.getLogger(__name__)

FORWARDED_SIGNALS: Tuple[int, ...] = tuple(
    getattr(signal, name) for name in ("SIGINT", "SIGTERM", "SIGQUIT") if hasattr(signal, name)
)
FORCED_EXIT_CODE = 1


class ProcessHandle(Protocol):
    @property
    def alive(self) -> bool: ...

    def wait(self) -> Optional[int]: ...

    def terminate(self) -> None: ...

    def kill(self) -> None: ...


class ProcessSpawner(Protocol):
    def spawn(self, argv: Sequence[str], cancel: threading.Event) -> ProcessHandle: ...


class PopenHandle:
    def __init__(self, proc: subprocess.Popen):
        self.proc = proc

    @property
    def alive(self) -> bool:
        return self.proc.poll() is None

    def wait(self) -> Optional[int]:
        """Exit code, or None when the child was ended by a signal."""
        rc = self.proc.wait()
        return None if rc < 0 else rc

    def terminate(self) -> None:
        # Popen ignores signals to an already reaped child.
        self.proc.terminate()

    def kill(self) -> None:
        self.proc.kill()


class PopenSpawner:
    """Spawns with inherited stdin/stdout/stderr; nothing is captured."""

    def __init__(self, cwd: Optional[str] = None, env: Optional[Dict[str, str]] = None):
        self.cwd = cwd
        self.env = env

    def spawn(self, argv: Sequence[str], cancel: threading.Event) -> PopenHandle:
        if cancel.is_set():
            raise CancellationError("cancelled before start")
        env = {**os.environ, **self.env} if self.env else None
        proc = subprocess.Popen(list(argv), cwd=self.cwd, env=env)
        if cancel.is_set():
            proc.terminate()
            proc.wait()
            raise CancellationError("cancelled during start-up")
        return PopenHandle(proc)


@dataclass(frozen=True)
class RunningProcess:
    handle: ProcessHandle
    cancel: threading.Event


class ScriptRun:
    """State of one execution."""

    def __init__(self, entry: ScriptEntry):
        self.entry = entry
        self.cancel = threading.Event()
        self._lock = threading.RLock()
        self._process: Optional[RunningProcess] = None
        self._outcome: Optional[RunOutcome] = None

    @property
    def process(self) -> Optional[RunningProcess]:
        return self._process

    @property
    def outcome(self) -> Optional[RunOutcome]:
        return self._outcome

    def attach(self, handle: ProcessHandle) -> RunningProcess:
        with self._lock:
            if self._process is not None:
                raise RuntimeError(f"script {self.entry.name} already has a running process")
            self._process = RunningProcess(handle=handle, cancel=self.cancel)
            return self._process

    def release(self) -> Optional[RunningProcess]:
        """Clear the slot. Only the first call returns the process."""
        with self._lock:
            rp, self._process = self._process, None
            return rp

    def settle(self, outcome: RunOutcome) -> bool:
        with self._lock:
            if self._outcome is not None:
                logger.debug("Ignoring %s for %s: already resolved as %s", outcome.kind, self.entry.name, self._outcome.kind)
                return False
            self._outcome = outcome
        return True

    def on_exit(self, code: Optional[int]) -> bool:
        self.release()
        name = self.entry.name
        if code == 0:
            outcome = RunOutcome(kind="success", script=name, code=0)
        elif code is None:
            outcome = RunOutcome(kind="terminated", script=name)
        else:
            outcome = RunOutcome(kind="failed", script=name, code=code)
        return self.settle(outcome)

    def on_error(self, exc: BaseException) -> bool:
        self.release()
        name = self.entry.name
        if isinstance(exc, CancellationError):
            return self.settle(RunOutcome(kind="aborted", script=name))
        logger.error("Error running script %s: %s", name, exc)
        return self.settle(RunOutcome(kind="failed", script=name, error=str(exc) or type(exc).__name__))

    def cancel_and_terminate(self) -> bool:
        """Trigger the token, then terminate the child if one is running."""
        self.cancel.set()
        with self._lock:
            rp = self._process
        if rp is None:
            return False
        try:
            rp.handle.terminate()
        except OSError as e:
            logger.warning("Failed to terminate %s: %s", self.entry.name, e)
        return True


class SignalSubscription:
    """Installs one callback for a set of signals and can put the previous handlers back."""

    def __init__(
        self,
        signals: Sequence[int],
        callback: Callable[[int, Any], None],
        *,
        install: Callable[[int, Any], Any] = signal.signal,
    ):
        self.signals = tuple(signals)
        self._callback = callback
        self._install = install
        self._previous: Dict[int, Any] = {}

    @property
    def active(self) -> bool:
        return bool(self._previous)

    def install(self) -> bool:
        for sig in self.signals:
            if sig in self._previous:
                continue
            try:
                self._previous[sig] = self._install(sig, self._callback)
            except (ValueError, OSError) as e:
                # signal.signal only works on the main thread.
                logger.debug("Cannot install handler for signal %s: %s", sig, e)
        return self.active

    def restore(self) -> None:
        for sig, prev in self._previous.items():
            try:
                self._install(sig, prev if prev is not None else signal.SIG_DFL)
            except (ValueError, OSError) as e:
                logger.debug("Cannot restore handler for signal %s: %s", sig, e)
        self._previous.clear()


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


class LifecycleManager:
    def __init__(
        self,
        spawner: Optional[ProcessSpawner] = None,
        *,
        interpreters: Optional[Dict[str, Tuple[str, ...]]] = None,
        grace_s: float = 0.1,
        signals: Sequence[int] = FORWARDED_SIGNALS,
        install_signal: Callable[[int, Any], Any] = signal.signal,
        exit_fn: Callable[[int], None] = hard_exit,
    ):
        self.spawner: ProcessSpawner = spawner or PopenSpawner()
        self.interpreters = interpreters if interpreters is not None else default_interpreters()
        self.grace_s = float(grace_s)
        self.signals = tuple(signals)
        self._install_signal = install_signal
        self._exit_fn = exit_fn
        self._lock = threading.RLock()
        self._active: Optional[ScriptRun] = None
        self._signalled = False
        self.exit_timer: Optional[threading.Timer] = None
        self.last_run: Optional[ScriptRun] = None

    @property
    def current(self) -> Optional[RunningProcess]:
        run = self._active
        return run.process if run is not None else None

    @property
    def signalled(self) -> bool:
        return self._signalled

    def build_argv(self, entry: ScriptEntry, extra_args: Sequence[str] = ()) -> List[str]:
        ext = os.path.splitext(entry.path)[1]
        interpreter = self.interpreters.get(ext)
        if interpreter is None:
            raise SpawnError(entry.name, message=f"no interpreter configured for '{ext or entry.path}'")
        return [*interpreter, entry.path, *extra_args]

    def execute(self, name: str, scripts: Sequence[ScriptEntry], extra_args: Sequence[str] = ()) -> RunOutcome:
        entry = find_entry(name, scripts)
        if entry is None:
            logger.error("Script '%s' not found", name)
            return RunOutcome(kind="not_found", script=name)

        with self._lock:
            if self._active is not None:
                raise RuntimeError(f"cannot run {name}: {self._active.entry.name} is still running")
            run = ScriptRun(entry)
            self._active = run

        subscription = SignalSubscription(self.signals, self._on_signal, install=self._install_signal)
        subscription.install()
        try:
            self._drive(run, extra_args)
        finally:
            with self._lock:
                self._active = None
                self.last_run = run
            # After a signal the handlers stay until the forced exit, absorbing repeats.
            if not self._signalled:
                subscription.restore()

        outcome = run.outcome
        if outcome is None:
            raise RuntimeError(f"script {name} finished without an outcome")
        logger.info("Script %s resolved as %s", name, outcome.kind)
        return outcome

    def _drive(self, run: ScriptRun, extra_args: Sequence[str]) -> None:
        try:
            argv = self.build_argv(run.entry, extra_args)
            logger.info("Spawning %s", quote_argv(argv))
            handle = self.spawner.spawn(argv, run.cancel)
        except Exception as e:
            run.on_error(e)
            return

        run.attach(handle)
        if run.cancel.is_set():
            # A signal arrived between spawn and attach.
            run.cancel_and_terminate()

        try:
            code = handle.wait()
        except Exception as e:
            if handle.alive:
                handle.kill()
            run.on_error(e)
        else:
            run.on_exit(code)

    def cleanup(self) -> bool:
        """Cancel the active run and terminate its process, if any."""
        with self._lock:
            run = self._active
        if run is None:
            return False
        return run.cancel_and_terminate()

    def _on_signal(self, signum: int, frame: Any) -> None:  # noqa: ARG002
        with self._lock:
            if self._signalled:
                logger.debug("Ignoring repeated %s during shutdown", _signal_name(signum))
                return
            self._signalled = True
        logger.warning("Received %s. Cleaning up...", _signal_name(signum))
        self.cleanup()
        timer = threading.Timer(self.grace_s, self._force_exit)
        timer.name = "scriptrun-forced-exit"
        self.exit_timer = timer
        timer.start()

    def _force_exit(self) -> None:
        with self._lock:
            run = self._active
        rp = run.process if run is not None else None
        if rp is not None and rp.handle.alive:
            logger.warning("Killing %s after grace period", run.entry.name if run else "script")
            try:
                rp.handle.kill()
            except OSError as e:
                logger.warning("Kill failed: %s", e)
        self._exit_fn(FORCED_EXIT_CODE)
