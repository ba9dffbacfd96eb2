from __future__ import annotations

import argparse
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

DEFAULT_SCRIPT_DIRS: Tuple[str, ...] = ("./scripts", "./src/scripts")


def default_interpreters() -> Dict[str, Tuple[str, ...]]:
    return {
        ".py": (sys.executable,),
        ".ts": ("bun",),
        ".js": ("bun",),
        ".sh": ("bash",),
    }


@dataclass(frozen=True)
class ScriptLayout:
    """How a scripts directory is laid out on disk."""

    # Order matters: first extension found wins for directory entry points.
    extensions: Tuple[str, ...] = (".py", ".ts", ".js", ".sh")
    entry_stem: str = "_main"
    reserved_dir: str = "runner"
    reserved_prefix: str = "_"

    def entry_point_names(self) -> List[str]:
        return [self.entry_stem + ext for ext in self.extensions]

    def is_script_file(self, filename: str) -> bool:
        if filename.startswith(self.reserved_prefix):
            return False
        return os.path.splitext(filename)[1] in self.extensions


@dataclass
class RunnerConfig:
    """Configuration for a scriptrun invocation."""

    path: Optional[str] = None
    default_dirs: Tuple[str, ...] = DEFAULT_SCRIPT_DIRS
    layout: ScriptLayout = field(default_factory=ScriptLayout)
    interpreters: Dict[str, Tuple[str, ...]] = field(default_factory=default_interpreters)
    grace_s: float = 0.1
    verbose: bool = False
    color: bool = True
    log_level: str = "WARNING"
    json_logs: bool = False
    log_file: str = ""
    log_file_level: str = "DEBUG"

    def script_dirs(self, cwd: Optional[Path] = None) -> List[str]:
        """Candidate directories in lookup order; a custom path is tried first."""
        dirs = list(self.default_dirs)
        if self.path:
            base = cwd or Path.cwd()
            dirs.insert(0, str((base / self.path).resolve()))
        return dirs

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "RunnerConfig":
        return cls(
            path=args.path or None,
            grace_s=max(0.0, float(args.grace)),
            verbose=bool(args.verbose),
            color=not args.no_color,
            log_level=args.log_level,
            json_logs=bool(args.json_logs),
            log_file=args.log_file,
        )
