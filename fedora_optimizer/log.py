import logging
import os
import pwd
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "fedora_optimizer"

# Attach as ``extra=FILE_ONLY`` to keep a record out of the console.
FILE_ONLY = {"file_only": True}


class ConsoleFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return not getattr(record, "file_only", False)


def prune_logs(log_dir: Path, max_total_size: int, pattern: str = "*.log") -> int:
    """Delete the oldest run logs until the directory fits under the size limit."""
    log_files = sorted(log_dir.glob(pattern), key=lambda f: f.stat().st_mtime)
    total_size = sum(f.stat().st_size for f in log_files)
    removed = 0
    while total_size > max_total_size and log_files:
        oldest = log_files.pop(0)
        total_size -= oldest.stat().st_size
        oldest.unlink()
        removed += 1
    return removed


def _chown_to_caller(path: Path) -> None:
    user = os.environ.get("SUDO_USER")
    if not user or os.geteuid() != 0:
        return
    try:
        info = pwd.getpwnam(user)
        os.chown(path, info.pw_uid, info.pw_gid)
    except (KeyError, OSError) as e:
        print(f"Warning: could not hand log {path} to {user}: {e}", file=sys.stderr)


def setup_logging(
    log_file: Path,
    console: Console,
    max_total_size: Optional[int] = None,
    prune_pattern: str = "fot_*.log",
) -> logging.Logger:
    """
    Configure the run logger with a Rich console handler and an append-only file.

    With ``max_total_size`` set, logs in the same directory matching
    ``prune_pattern`` are pruned oldest first before the new file is opened.
    """
    log_file = Path(log_file)
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        if max_total_size is not None:
            prune_logs(log_file.parent, max_total_size, prune_pattern)
    except OSError as e:
        print(f"Warning: Log dir setup error {log_file.parent}: {e}", file=sys.stderr)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    for h in logger.handlers[:]:
        logger.removeHandler(h)
        h.close()

    console_handler = RichHandler(
        console=console, markup=False, rich_tracebacks=True, show_path=False
    )
    console_handler.setLevel(logging.INFO)
    console_handler.addFilter(ConsoleFilter())
    logger.addHandler(console_handler)

    try:
        if not log_file.exists():
            log_file.touch(mode=0o600)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "[%(asctime)s] [%(levelname)s] %(message)s", "%Y-%m-%d %H:%M:%S"
            )
        )
        logger.addHandler(file_handler)
        _chown_to_caller(log_file)
    except OSError as e:
        logger.error(f"Failed file logging setup {log_file}: {e}")
    return logger
