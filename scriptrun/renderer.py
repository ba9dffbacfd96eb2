from __future__ import annotations

from typing import Callable, List, Sequence

from .models import RunOutcome
from .util import short


class Style:
    def __init__(self, enabled: bool):
        self.enabled = bool(enabled)

    def _wrap(self, code: str, s: str) -> str:
        if not self.enabled:
            return s
        return f"\033[{code}m{s}\033[0m"

    def dim(self, s: str) -> str:
        return self._wrap("2", s)

    def bold(self, s: str) -> str:
        return self._wrap("1", s)

    def italic(self, s: str) -> str:
        return self._wrap("3", s)

    def red(self, s: str) -> str:
        return self._wrap("31", s)

    def green(self, s: str) -> str:
        return self._wrap("32", s)

    def yellow(self, s: str) -> str:
        return self._wrap("33", s)

    def blue(self, s: str) -> str:
        return self._wrap("34", s)

    def cyan(self, s: str) -> str:
        return self._wrap("36", s)


RULE_WIDTH = 60


class Renderer:
    """Terminal presentation for listings, banners, progress lines and errors."""

    def __init__(self, style: Style, print_fn: Callable[..., None] = print, err_fn: Callable[..., None] | None = None):
        self.style = style
        self._out = print_fn
        self._err = err_fn or print_fn

    def _box(self, lines: Sequence[str], colour: Callable[[str], str]) -> List[str]:
        rule = colour("─" * RULE_WIDTH)
        return ["", rule, *[f"  {ln}" for ln in lines], rule, ""]

    def welcome(self) -> None:
        s = self.style
        lines = [
            s.bold(s.blue("Script Runner")),
            s.dim("Select a script to run"),
            "",
            s.italic(s.dim("Tip: Use --help to see all available options")),
        ]
        for ln in self._box(lines, s.blue):
            self._out(ln)

    def error_box(self, message: str) -> None:
        s = self.style
        for ln in self._box([s.red("Error occurred:"), short(message, 100)], s.red):
            self._err(ln)

    def listing(self, names: Sequence[str]) -> None:
        if not names:
            self._out("\nNo scripts found in the scripts directory.\n")
            return
        self._out("\nAvailable scripts:\n")
        for name in names:
            self._out(f"  • {self.style.green(name)}")
        self._out("\nRun a script using: scriptrun -s <script-name>\n")

    def verbose(self, message: str) -> None:
        self._out(self.style.dim(message))

    def found(self, count: int, directory: str) -> None:
        self._out(self.style.green(f"✓ Found {count} scripts in {directory}"))

    def running(self, name: str) -> None:
        self._out(f"Running script: {self.style.bold(name)}")

    def outcome(self, outcome: RunOutcome) -> None:
        s = self.style
        if outcome.kind == "success":
            self._out(s.green(f'✓ Script "{outcome.script}" completed successfully'))
        elif outcome.kind == "terminated":
            self._out(s.yellow("Script execution was terminated"))
        elif outcome.kind == "aborted":
            self._out(s.yellow("Script execution was aborted"))
