"""
Tests for the console proxies and logging wrappers.
"""

import logging

import pytest
from rich.console import Console
from rich.logging import RichHandler

from jankyp.utils.console import (
  console,
  log_error,
  log_info,
  log_success,
  log_warning,
  report_console,
  reset_console,
  reset_report_console,
  set_console,
  set_report_console,
)


@pytest.fixture(autouse=True)
def cleanup_console():
  """Ensures both consoles are reset after every test."""
  reset_console()
  reset_report_console()
  yield
  reset_console()
  reset_report_console()


def test_console_proxy_forwards_attributes():
  assert callable(console.print)
  assert hasattr(console, "export_text")
  assert isinstance(console.backend, Console)


def test_report_console_writes_to_stderr_by_default():
  assert report_console.backend.stderr
  assert not console.backend.stderr


def test_log_wrappers_route_through_injected_console():
  capture = Console(record=True, width=120)
  set_console(capture)

  log_info("indexing")
  log_success("done")
  log_warning("careful")
  log_error("broken")

  text = capture.export_text()
  for message in ("indexing", "done", "careful", "broken"):
    assert message in text
  assert "SUCCESS" in text


def test_report_console_does_not_capture_logging():
  capture = Console(record=True, width=120)
  set_report_console(capture)
  logging.info("not for the report")
  assert capture.export_text() == ""


def test_single_rich_handler_after_swaps():
  set_console(Console(record=True))
  set_console(Console(record=True))
  handlers = [h for h in logging.getLogger().handlers if isinstance(h, RichHandler)]
  assert len(handlers) == 1
