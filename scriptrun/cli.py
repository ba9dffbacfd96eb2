from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional, Sequence, Tuple

from . import __version__
from .config import RunnerConfig
from .errors import AbnormalExit, RunnerError, ScriptNotFound, SelectionCancelled
from .lifecycle import LifecycleManager
from .logging_utils import install_thread_excepthook, setup_logging
from .models import ScriptEntry
from .registry import discover
from .renderer import Renderer, Style
from .selector import PromptProvider, TerminalPrompt, resolve

logger = logging.getLogger(__name__)

EXIT_PROMPT_INTERRUPTED = 130


def _err(*args: object) -> None:
    print(*args, file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="scriptrun",
        description="Discover scripts in ./scripts (or ./src/scripts) and run one.",
        epilog="Arguments after `--` are passed to the script.",
    )
    p.add_argument("-p", "--path", default=os.environ.get("SCRIPTRUN_PATH", ""), help="Custom scripts directory path.")
    p.add_argument("-l", "--list", action="store_true", help="List all available scripts.")
    p.add_argument("-s", "--script", default=None, help="Run a specific script directly.")
    p.add_argument("-v", "--verbose", action="store_true", help="Show detailed script execution information.")
    p.add_argument("-V", "--version", action="version", version=__version__)

    p.add_argument("--log-level", default=os.environ.get("SCRIPTRUN_LOG_LEVEL", "WARNING"))
    p.add_argument("--json-logs", action="store_true")
    p.add_argument("--log-file", default=os.environ.get("SCRIPTRUN_LOG_FILE", ""), help="Also write logs to this file.")
    p.add_argument("--no-color", action="store_true", help="Disable ANSI colors.")
    p.add_argument(
        "--grace",
        type=float,
        default=float(os.environ.get("SCRIPTRUN_GRACE", "0.1")),
        help="Seconds to wait after an interrupt before exiting.",
    )
    return p


def split_argv(argv: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Split at the first `--`: (scriptrun options, arguments for the script)."""
    argv = list(argv)
    if "--" not in argv:
        return argv, []
    i = argv.index("--")
    return argv[:i], argv[i + 1 :]


def load_scripts(cfg: RunnerConfig, renderer: Renderer) -> List[ScriptEntry]:
    def _on_scan(directory: str) -> None:
        if cfg.verbose:
            renderer.verbose(f"Searching for scripts in: {directory}")

    def _on_skip(directory: str, error: RunnerError) -> None:
        if cfg.verbose:
            renderer.verbose(f"  skipped: {error}")

    def _on_found(directory: str, count: int) -> None:
        if cfg.verbose:
            renderer.found(count, directory)

    return discover(
        cfg.script_dirs(),
        layout=cfg.layout,
        on_scan=_on_scan,
        on_skip=_on_skip,
        on_found=_on_found,
    )


def run(
    cfg: RunnerConfig,
    *,
    list_only: bool = False,
    script: Optional[str] = None,
    script_args: Sequence[str] = (),
    manager: Optional[LifecycleManager] = None,
    prompt: Optional[PromptProvider] = None,
    renderer: Optional[Renderer] = None,
) -> int:
    style = Style(enabled=cfg.color and sys.stdout.isatty())
    renderer = renderer or Renderer(style, err_fn=_err)
    manager = manager or LifecycleManager(interpreters=cfg.interpreters, grace_s=cfg.grace_s)

    try:
        scripts = load_scripts(cfg, renderer)

        if list_only:
            renderer.listing([s.name for s in scripts])
            return 0

        if script is not None:
            name = script
            if cfg.verbose:
                renderer.verbose(f"Running script: {name}")
        else:
            renderer.welcome()
            name = resolve(None, scripts, prompt or TerminalPrompt(style=renderer.style), style=renderer.style)
            if cfg.verbose:
                renderer.verbose(f"Running selected script: {name}")

        renderer.running(name)
        outcome = manager.execute(name, scripts, script_args)
        if manager.signalled:
            return 1
        outcome.raise_for_status([s.name for s in scripts])
        renderer.outcome(outcome)
        return 0
    except ScriptNotFound as e:
        renderer.error_box(str(e))
        renderer.listing(e.available)
        return 1
    except AbnormalExit as e:
        renderer.error_box(str(e))
        return e.code
    except SelectionCancelled as e:
        renderer.error_box(str(e))
        return 1
    except KeyboardInterrupt:
        # Only reachable while prompting; runs install their own handlers.
        _err()
        return EXIT_PROMPT_INTERRUPTED
    except RunnerError as e:
        logger.debug("Runner error", exc_info=True)
        renderer.error_box(str(e))
        return 1
    except Exception as e:
        logger.exception("Unexpected error")
        renderer.error_box(str(e) or type(e).__name__)
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    own, script_args = split_argv(sys.argv[1:] if argv is None else argv)
    parser = build_parser()
    args = parser.parse_args(own)
    if script_args and args.list:
        parser.error("arguments after `--` cannot be used with --list")
    cfg = RunnerConfig.from_args(args)
    setup_logging(cfg.log_level, json_logs=cfg.json_logs, log_file=cfg.log_file, log_file_level=cfg.log_file_level)
    install_thread_excepthook()
    return run(
        cfg,
        list_only=args.list,
        script=args.script,
        script_args=script_args,
    )
