from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence

from .errors import NoScriptsFound, SelectionCancelled
from .models import ScriptEntry
from .renderer import Style


@dataclass(frozen=True)
class Choice:
    label: str
    value: str


class PromptProvider(Protocol):
    def __call__(self, message: str, choices: Sequence[Choice]) -> str: ...


class TerminalPrompt:
    """
    Numbered single-choice prompt on stdin/stdout.

    Shows `page_size` choices at a time; `n`/`p` move between pages without wrapping.
    Accepts the item number or the exact choice value.
    """

    def __init__(
        self,
        *,
        page_size: int = 10,
        style: Optional[Style] = None,
        input_fn: Callable[[str], str] = input,
        print_fn: Callable[[str], None] = print,
    ):
        self.page_size = max(1, int(page_size))
        self.style = style or Style(enabled=False)
        self._input = input_fn
        self._print = print_fn

    def __call__(self, message: str, choices: Sequence[Choice]) -> str:
        if not choices:
            raise NoScriptsFound()
        pages = (len(choices) + self.page_size - 1) // self.page_size
        page = 0
        while True:
            self._show_page(message, choices, page, pages)
            try:
                raw = self._input(self.style.cyan("? ") if self.style.enabled else "? ").strip()
            except EOFError:
                raise SelectionCancelled() from None

            if raw.lower() in ("n", "next"):
                page = min(page + 1, pages - 1)
                continue
            if raw.lower() in ("p", "prev"):
                page = max(page - 1, 0)
                continue
            picked = self._match(raw, choices)
            if picked is not None:
                return picked.value
            self._print(self.style.red(f"Invalid choice: {raw!r}"))

    def _show_page(self, message: str, choices: Sequence[Choice], page: int, pages: int) -> None:
        self._print(self.style.bold(message))
        start = page * self.page_size
        for i, c in enumerate(choices[start : start + self.page_size], start=start + 1):
            self._print(f"  {i:>2}) {c.label}")
        if pages > 1:
            hint = f"page {page + 1}/{pages}"
            if page + 1 < pages:
                hint += "  n: next"
            if page > 0:
                hint += "  p: prev"
            self._print(self.style.dim(hint))

    @staticmethod
    def _match(raw: str, choices: Sequence[Choice]) -> Optional[Choice]:
        if raw.isdigit():
            idx = int(raw) - 1
            if 0 <= idx < len(choices):
                return choices[idx]
            return None
        return next((c for c in choices if c.value == raw), None)


def build_choices(scripts: Sequence[ScriptEntry], style: Optional[Style] = None) -> List[Choice]:
    style = style or Style(enabled=False)
    return [
        Choice(
            label=f"{style.green(s.name)} {style.dim(f'({s.path})')}",
            value=s.name,
        )
        for s in scripts
    ]


def resolve(
    requested_name: Optional[str],
    scripts: Sequence[ScriptEntry],
    prompt: Optional[PromptProvider] = None,
    *,
    style: Optional[Style] = None,
) -> str:
    """Pick the script to run: the requested name as-is, or ask the user."""
    if requested_name is not None:
        return requested_name
    if not scripts:
        raise NoScriptsFound()
    prompt = prompt or TerminalPrompt(style=style)
    return prompt("Choose a script to run:", build_choices(scripts, style))
