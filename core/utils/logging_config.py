"""
Logging setup shared by the APIs, the simulator session and the CLI.

Usage:
    from core.utils.logging_config import setup_logging
    setup_logging(level="DEBUG", log_dir="logs")
"""

import logging
import sys
import threading
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

_initialized = False
_lock = threading.Lock()


def setup_logging(level="INFO", log_dir: Optional[str] = None, force: bool = False) -> logging.Logger:
    """
    Configures the root logger once per process.

    Console output always; with ``log_dir`` also ``combined.log`` (everything)
    and ``error.log`` (errors only).
    """
    global _initialized

    with _lock:
        root = logging.getLogger()
        if _initialized and not force:
            return root

        if isinstance(level, str):
            level = getattr(logging, level.upper(), logging.INFO)

        for handler in list(root.handlers):
            root.removeHandler(handler)

        formatter = logging.Formatter(DEFAULT_FORMAT)

        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(formatter)
        root.addHandler(console)

        if log_dir:
            path = Path(log_dir)
            path.mkdir(parents=True, exist_ok=True)

            combined = logging.FileHandler(path / "combined.log", encoding="utf-8")
            combined.setFormatter(formatter)
            root.addHandler(combined)

            errors = logging.FileHandler(path / "error.log", encoding="utf-8")
            errors.setLevel(logging.ERROR)
            errors.setFormatter(formatter)
            root.addHandler(errors)

        root.setLevel(level)
        _initialized = True
        return root
