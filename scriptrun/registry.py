"""Script discovery.

A scripts directory holds two kinds of runnable entries:
- plain script files (`build.ts`, `deploy.py`), named after the file stem
- sub-directories with an entry-point file (`release/_main.py`), named after the directory

Files starting with the reserved prefix and the reserved tooling directory are skipped.
Candidate directories are tried in order and the first non-empty one wins.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Protocol, Sequence

from .config import ScriptLayout
from .errors import DirectoryNotFound, DiscoveryIOError, RunnerError
from .models import ScriptEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirEntryInfo:
    name: str
    is_dir: bool
    is_file: bool


class DirectoryProvider(Protocol):
    def exists(self, path: str) -> bool: ...

    def entries(self, path: str) -> Iterable[DirEntryInfo]: ...


class LocalDirectory:
    """`DirectoryProvider` backed by the local filesystem."""

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def entries(self, path: str) -> Iterable[DirEntryInfo]:
        with os.scandir(path) as it:
            return [DirEntryInfo(e.name, e.is_dir(), e.is_file()) for e in it]


def scan_directory(
    path: str,
    provider: Optional[DirectoryProvider] = None,
    layout: Optional[ScriptLayout] = None,
) -> List[ScriptEntry]:
    """Scan one directory. Raises DirectoryNotFound / DiscoveryIOError."""
    provider = provider or LocalDirectory()
    layout = layout or ScriptLayout()

    root = Path(path).resolve()
    if not provider.exists(str(root)):
        raise DirectoryNotFound(str(path))

    try:
        listing = list(provider.entries(str(root)))
    except OSError as e:
        raise DiscoveryIOError(str(path), e) from e

    scripts: List[ScriptEntry] = []
    for entry in listing:
        full = root / entry.name
        if entry.is_dir:
            if entry.name == layout.reserved_dir:
                continue
            main_file = _find_entry_point(full, provider, layout)
            if main_file is not None:
                scripts.append(ScriptEntry(name=entry.name, path=str(main_file)))
        elif entry.is_file and layout.is_script_file(entry.name):
            scripts.append(ScriptEntry(name=os.path.splitext(entry.name)[0], path=str(full)))
    return scripts


def _find_entry_point(folder: Path, provider: DirectoryProvider, layout: ScriptLayout) -> Optional[Path]:
    for candidate in layout.entry_point_names():
        p = folder / candidate
        if provider.exists(str(p)):
            return p
    return None


def discover(
    candidates: Sequence[str],
    provider: Optional[DirectoryProvider] = None,
    *,
    layout: Optional[ScriptLayout] = None,
    on_skip: Optional[Callable[[str, RunnerError], None]] = None,
    on_scan: Optional[Callable[[str], None]] = None,
    on_found: Optional[Callable[[str, int], None]] = None,
) -> List[ScriptEntry]:
    """Return the scripts of the first candidate directory that yields any."""
    provider = provider or LocalDirectory()
    for directory in candidates:
        if on_scan is not None:
            on_scan(directory)
        logger.debug("Searching for scripts in %s", directory)
        try:
            scripts = scan_directory(directory, provider, layout)
        except (DirectoryNotFound, DiscoveryIOError) as e:
            if isinstance(e, DiscoveryIOError):
                logger.warning("%s", e)
            else:
                logger.info("%s", e)
            if on_skip is not None:
                on_skip(directory, e)
            continue
        if scripts:
            logger.info("Found %d scripts in %s", len(scripts), directory)
            if on_found is not None:
                on_found(directory, len(scripts))
            return scripts
        logger.debug("No scripts in %s", directory)
    return []
