"""
Central Logging and Console Utilities.

All user-facing output of jankyp goes through the standard `logging` library
backed by `rich`. Two consoles are managed:

1.  **Console**: progress and diagnostics of the instrumentation pipeline
    (stdout by default).
2.  **Report Console**: destination of the behavior ledger report printed at
    process exit (stderr by default, so it never mixes with the program's own
    output).

Both are reached through proxies so tests can swap in a recording console
via `set_console` / `set_report_console` while modules keep importing the
same module-level objects.

Attributes:
    console (_ConsoleProxy): Proxy to the active pipeline console.
    report_console (_ConsoleProxy): Proxy to the active report console.
"""

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

SUCCESS_LEVEL_NUM = 25
logging.addLevelName(SUCCESS_LEVEL_NUM, "SUCCESS")

_THEME = Theme(
  {
    "logging.level.success": "green",
    "info": "dim cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "green",
    "path": "bold blue",
  }
)


class _ConsoleProxy:
  """
  Forwards printing to a swappable `rich.console.Console` backend.

  Attributes:
      _backend (Console): The active Rich Console instance.
      _stderr (bool): Whether a fresh default backend writes to stderr.
      _owns_logging (bool): Whether the root logger follows this backend.
  """

  def __init__(self, stderr: bool = False, owns_logging: bool = False) -> None:
    self._stderr = stderr
    self._owns_logging = owns_logging
    self._backend: Console = Console(theme=_THEME, stderr=stderr)
    self._configure_logging()

  def set_backend(self, new_console: Console) -> None:
    """
    Injects a new Console backend.

    Args:
        new_console (Console): The new Rich Console instance to use.
    """
    self._backend = new_console
    self._configure_logging()

  def reset(self) -> None:
    """Restores a fresh default backend."""
    self._backend = Console(theme=_THEME, stderr=self._stderr)
    self._configure_logging()

  @property
  def backend(self) -> Console:
    """The currently active Console."""
    return self._backend

  def _configure_logging(self) -> None:
    """Points the root logger's RichHandler at the current backend."""
    if not self._owns_logging:
      return

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
      if isinstance(handler, RichHandler):
        root_logger.removeHandler(handler)

    rich_handler = RichHandler(
      console=self._backend,
      show_time=False,
      omit_repeated_times=False,
      show_path=False,
      markup=True,
      rich_tracebacks=True,
    )
    root_logger.setLevel(logging.INFO)
    root_logger.addHandler(rich_handler)

  def print(self, *args: Any, **kwargs: Any) -> None:
    """Forwards `print` calls to the active backend."""
    self._backend.print(*args, **kwargs)

  def __getattr__(self, name: str) -> Any:
    return getattr(self._backend, name)


console = _ConsoleProxy(owns_logging=True)
report_console = _ConsoleProxy(stderr=True)


def set_console(new_console: Console) -> None:
  """Redirects pipeline output and logging to `new_console`."""
  console.set_backend(new_console)


def reset_console() -> None:
  """Restores pipeline output and logging to standard output."""
  console.reset()


def set_report_console(new_console: Console) -> None:
  """Redirects the ledger report to `new_console`."""
  report_console.set_backend(new_console)


def reset_report_console() -> None:
  """Restores the ledger report destination to standard error."""
  report_console.reset()


def log_info(msg: str) -> None:
  """
  Logs an informational message via standard logging.

  Args:
      msg (str): The message content. Can include rich markup like [bold].
  """
  logging.info(f"ℹ️  {msg}", extra={"markup": True})


def log_success(msg: str) -> None:
  """Logs a success message via standard logging."""
  logging.log(SUCCESS_LEVEL_NUM, f"✅ {msg}", extra={"markup": True})


def log_warning(msg: str) -> None:
  """Logs a warning message via standard logging."""
  logging.warning(f"⚠️  {msg}", extra={"markup": True})


def log_error(msg: str) -> None:
  """Logs an error message via standard logging."""
  logging.error(f"❌ {msg}", extra={"markup": True})
