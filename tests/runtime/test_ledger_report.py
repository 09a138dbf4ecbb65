"""
Tests for the exit-time ledger report.
"""

import pytest
from rich.console import Console

import jankyp.runtime as runtime
from jankyp.runtime.ledger import Ledger
from jankyp.utils.console import reset_report_console, set_report_console

P1 = "Line 1, Column 0"


@pytest.fixture(autouse=True)
def cleanup_report_console():
  reset_report_console()
  yield
  reset_report_console()


def _recording_console() -> Console:
  return Console(record=True, width=160, file=None)


def test_report_lists_categories_positions_and_messages(ledger):
  ledger.record_arity(P1, 2, 3)
  ledger.record_exception("Line 9, Column 4")

  out = _recording_console()
  ledger.report(console=out)
  text = out.export_text()

  for title in ("ArityMismatch", "BadOperand", "ExpectedNumber", "ShapeConfusion", "ExceptionCaught", "PrototypeMutation"):
    assert title in text
  assert "received 3 actual arguments (2 formal arguments)" in text
  assert "Line 9, Column 4" in text
  assert "none observed" in text


def test_report_defaults_to_report_console(ledger):
  out = _recording_console()
  set_report_console(out)
  ledger.record_exception(P1)
  ledger.report()
  assert "ExceptionCaught" in out.export_text()


def test_flush_reports_once(host):
  out = _recording_console()
  set_report_console(out)
  ledger = Ledger(host, report_on_exit=True)
  ledger.record_exception(P1)

  ledger.flush()
  ledger.flush()

  assert out.export_text().count("ExceptionCaught") == 1


def test_flush_skips_unused_ledger(host):
  out = _recording_console()
  set_report_console(out)
  Ledger(host, report_on_exit=True).flush()
  assert out.export_text() == ""


def test_flush_respects_disabled_reporting(ledger):
  out = _recording_console()
  set_report_console(out)
  ledger.record_exception(P1)
  ledger.flush()
  assert out.export_text() == ""


def test_process_wide_ledger():
  assert runtime.ledger.host is runtime.host
  assert set(runtime.capabilities()) == set(runtime.ledger.capabilities())
