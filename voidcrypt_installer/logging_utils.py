from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

from .lib.env import PATHS

DEFAULT_LOG_PATH = PATHS.log_default

_FORMAT = logging.Formatter(
    fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S%z",
)


@dataclass(frozen=True)
class LogPaths:
    requested: str
    actual: str

    def as_record(self) -> Dict[str, str]:
        return {"log_requested": self.requested, "log_actual": self.actual}


class _InstallerHandler:
    """Marker mixin so reconfiguring replaces only our own handlers."""


class _FileHandler(_InstallerHandler, logging.FileHandler):
    pass


class _ConsoleHandler(_InstallerHandler, logging.StreamHandler):
    pass


def _open_log(log_path: str) -> logging.FileHandler:
    """Open ``log_path``; the live ISO may not allow /var/log, then use the cwd."""

    try:
        Path(log_path).parent.mkdir(parents=True, exist_ok=True)
        return _FileHandler(log_path)
    except OSError:
        return _FileHandler(str(Path.cwd() / Path(log_path).name))


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> LogPaths:
    """Send every record to ``log_path`` and ``level`` and up to the console.

    The file always gets DEBUG, so command output is there even when the
    console is quiet. Calling this again (host, then stage two in tests)
    replaces the previous handlers.
    """

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in [h for h in root.handlers if isinstance(h, _InstallerHandler)]:
        root.removeHandler(h)
        h.close()

    file_handler = _open_log(log_path)
    file_handler.setLevel(logging.DEBUG)
    handlers: List[logging.Handler] = [file_handler]

    if also_console:
        console = _ConsoleHandler()
        console.setLevel(level)
        handlers.append(console)

    for h in handlers:
        h.setFormatter(_FORMAT)
        root.addHandler(h)

    paths = LogPaths(requested=log_path, actual=file_handler.baseFilename)
    logging.getLogger(__name__).info("Logging to %s (requested %s)", paths.actual, paths.requested)
    return paths
