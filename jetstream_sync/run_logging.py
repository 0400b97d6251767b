"""Logging setup for worker runs."""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class RunLogFiles:
    session_log: Path
    error_log: Path
    handlers: List[logging.Handler]

    def error_log_has_content(self) -> bool:
        for handler in self.handlers:
            handler.flush()
        return self.error_log.exists() and self.error_log.stat().st_size > 0

    def close(self) -> None:
        root = logging.getLogger()
        for handler in self.handlers:
            root.removeHandler(handler)
            handler.close()


def configure_run_logging(log_dir: str = "logs",
                          started_at: Optional[datetime] = None,
                          debug: bool = False) -> RunLogFiles:
    """
    Send logs to the console, a per-run session file and a per-run error file.

    Files are named ``embeddings-<YYYY-MM-DD-HHMMSS>.log`` and
    ``embeddings-errors-<YYYY-MM-DD-HHMMSS>.log``. The error file only
    receives ERROR and above and is not created until the first error.
    """
    started_at = started_at or datetime.now()
    timestamp = started_at.strftime("%Y-%m-%d-%H%M%S")

    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    session_log = directory / f"embeddings-{timestamp}.log"
    error_log = directory / f"embeddings-errors-{timestamp}.log"

    level = logging.DEBUG if debug else logging.INFO
    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)

    session_handler = logging.FileHandler(session_log, encoding="utf-8")
    session_handler.setLevel(level)
    session_handler.setFormatter(formatter)

    error_handler = logging.FileHandler(error_log, encoding="utf-8", delay=True)
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(formatter)

    handlers: List[logging.Handler] = [console, session_handler, error_handler]
    root = logging.getLogger()
    root.setLevel(level)
    for handler in handlers:
        root.addHandler(handler)

    # Client libraries are chatty at DEBUG
    for noisy in ("httpx", "httpcore", "hpack"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return RunLogFiles(session_log=session_log, error_log=error_log, handlers=handlers)
