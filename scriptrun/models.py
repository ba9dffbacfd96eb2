"""Models that flow between the registry, the selector and the lifecycle manager."""

from __future__ import annotations

from typing import Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from .errors import AbnormalExit, ScriptNotFound, SpawnError


class ScriptEntry(BaseModel):
    """A runnable script: display name plus absolute path to the file to execute."""

    model_config = ConfigDict(frozen=True)

    name: str
    path: str


OutcomeKind = Literal["success", "terminated", "aborted", "failed", "not_found"]


class RunOutcome(BaseModel):
    """Terminal resolution of one `execute` call."""

    model_config = ConfigDict(frozen=True)

    kind: OutcomeKind
    script: str
    code: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind in ("success", "terminated", "aborted")

    @property
    def exit_code(self) -> int:
        if self.ok:
            return 0
        if self.kind == "failed" and self.code:
            return self.code
        return 1

    def raise_for_status(self, available: Sequence[str] = ()) -> None:
        if self.kind == "not_found":
            raise ScriptNotFound(self.script, available)
        if self.kind != "failed":
            return
        if self.code is not None:
            raise AbnormalExit(self.script, self.code)
        raise SpawnError(self.script, message=self.error or "")


def find_entry(name: str, scripts: Sequence[ScriptEntry]) -> Optional[ScriptEntry]:
    # First match wins.
    return next((s for s in scripts if s.name == name), None)
