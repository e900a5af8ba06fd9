import os
import sys
from pathlib import Path
from typing import Any, TextIO

from rich.console import Console
from rich.markup import escape

from dm_harvest.utils.config_dir import get_config_dir

# Session log lives in the user config directory and is overwritten each run
LOG_FILE_NAME = "dm_harvest_session.log"

try:
    LOG_FILE: Path | None = get_config_dir() / LOG_FILE_NAME
    log_file_handle: TextIO | None = open(LOG_FILE, "w", encoding="utf-8")
except OSError as e:
    print(f"Error opening log file {LOG_FILE_NAME}: {e}", file=sys.stderr)
    LOG_FILE = None
    log_file_handle = None


class Logger:
    """Rich console output on stderr, mirrored to the session log file.

    Messages passed to the level methods are escaped, so handles, message
    text and exception strings containing "[...]" print verbatim.
    """

    def __init__(self, enabled: bool = True, file: TextIO | None = log_file_handle):
        self.enabled = enabled
        self._console = Console(stderr=True)
        self._file_console = Console(file=file, width=120) if file else None
        self._null_console = Console(file=open(os.devnull, "w"))

    def print(self, *args, **kwargs):
        """Print rich renderables or markup as-is."""
        if not self.enabled:
            return
        self._console.print(*args, **kwargs)
        if self._file_console:
            self._file_console.print(*args, **kwargs)

    def _styled(self, style: str | None, message: Any, *args, **kwargs):
        text = escape(str(message))
        self.print(f"[{style}]{text}[/{style}]" if style else text, *args, **kwargs)

    def debug(self, message: Any, *args, **kwargs):
        self._styled("dim", message, *args, **kwargs)

    def info(self, message: Any, *args, **kwargs):
        self._styled(None, message, *args, **kwargs)

    def warning(self, message: Any, *args, **kwargs):
        self._styled("yellow", message, *args, **kwargs)

    def error(self, message: Any, *args, **kwargs):
        self._styled("red", message, *args, **kwargs)

    def success(self, message: Any, *args, **kwargs):
        self._styled("green", message, *args, **kwargs)

    @property
    def console(self) -> Console:
        """Get the underlying Rich console."""
        return self._console if self.enabled else self._null_console

    def get_log_file_path(self) -> Path | None:
        """Return the path to the log file, if configured."""
        if log_file_handle:
            return LOG_FILE
        return None


# Create a default instance
logger = Logger()
