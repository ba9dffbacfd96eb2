"""
scriptrun entrypoint wrapper.

Run:
    python run_script.py --list
    python run_script.py -s build -- --watch

The implementation lives in the `scriptrun/` package.
"""

from __future__ import annotations

from scriptrun.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
