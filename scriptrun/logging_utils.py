from __future__ import annotations

import datetime as dt
import json
import logging
import os
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts": dt.datetime.now(dt.timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(
    level: str = "WARNING",
    json_logs: bool = False,
    *,
    log_file: str = "",
    log_file_level: str = "DEBUG",
    log_file_max_bytes: int = 5_000_000,
    log_file_backup_count: int = 3,
) -> None:
    root = logging.getLogger()
    # Root takes everything; handlers filter.
    root.setLevel(logging.DEBUG)

    # stdout belongs to the child script, diagnostics go to stderr.
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(getattr(logging, str(level).upper(), logging.WARNING))
    fmt = JsonFormatter() if json_logs else logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    handler.setFormatter(fmt)

    handlers: list[logging.Handler] = [handler]

    if log_file:
        try:
            p = Path(str(log_file)).expanduser()
            if str(p.parent) not in ("", "."):
                p.parent.mkdir(parents=True, exist_ok=True)
            fh = RotatingFileHandler(
                p,
                maxBytes=int(log_file_max_bytes),
                backupCount=int(log_file_backup_count),
                encoding="utf-8",
            )
            fh.setLevel(getattr(logging, str(log_file_level).upper(), logging.DEBUG))
            fh.setFormatter(fmt)
            handlers.append(fh)
        except OSError as e:
            sys.stderr.write(f"scriptrun: WARNING: failed to open log file {log_file!r}: {e}\n")

    root.handlers[:] = handlers


def hard_exit(code: int) -> None:
    """Flush logs and std streams, then leave without running interpreter teardown."""
    logging.shutdown()
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (OSError, ValueError):
            pass
    os._exit(code)


def install_thread_excepthook(exit_code: int = 1) -> None:
    """Uncaught errors in worker threads are logged and end the program with `exit_code`."""

    def _hook(args: threading.ExceptHookArgs) -> None:
        if args.exc_type is SystemExit:
            return
        log.error(
            "Unhandled error in thread %s",
            getattr(args.thread, "name", "?"),
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),  # type: ignore[arg-type]
        )
        hard_exit(exit_code)

    threading.excepthook = _hook


log = logging.getLogger("scriptrun")
