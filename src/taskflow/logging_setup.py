# src/taskflow/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Console floor per logger prefix; the longest matching prefix wins.
# Lifecycle events (task created, status changed, tags replaced) come from the
# services at INFO and are what an operator watches. The store and the command
# boundary log every call at DEBUG; that detail belongs in the file only.
_CONSOLE_FLOORS: dict[str, int] = {
    "taskflow": logging.INFO,
    "taskflow.tasks.task_store": logging.WARNING,
    "taskflow.cli.commands": logging.WARNING,
    "py.warnings": logging.ERROR,
}
_THIRD_PARTY_FLOOR = logging.ERROR


def console_floor(name: str) -> int:
    best = ""
    for prefix in _CONSOLE_FLOORS:
        if (name == prefix or name.startswith(prefix + ".")) and len(prefix) > len(best):
            best = prefix
    return _CONSOLE_FLOORS[best] if best else _THIRD_PARTY_FLOOR


class _ConsoleNoiseFilter(logging.Filter):
    """Drop records below the console floor of their logger (see _CONSOLE_FLOORS)."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= console_floor(record.name)


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskflow",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Configure logging with:
    - Console handler: readable + filtered for interactive use
    - File handler: full logs for debugging

    Call this ONCE, very early (before first logger.info).
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "taskflow.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)
