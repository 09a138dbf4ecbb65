"""
Run Command Handler.

Instruments one script, runs it in the embedded engine and prints the
behavior report. An uncaught exception in the program is reported as a
warning; the report still covers everything recorded before it.
"""

from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError
from rich.markup import escape

from jankyp.config import RuntimeConfig
from jankyp.core.errors import JankypError
from jankyp.runtime.quickjs_host import run_program
from jankyp.utils.console import log_error, log_info, log_warning


def handle_run(input_path: Path, binding: Optional[str] = None, rules: Optional[List[str]] = None) -> int:
  """
  Handles running one file under the ledger.

  Args:
      input_path: Script to run.
      binding: Override for the ledger binding name.
      rules: Override for the enabled rule modules.

  Returns:
      int: Exit code (0 if the program completed, 1 otherwise).
  """
  if not input_path.is_file():
    log_error(f"Input not found: {input_path}")
    return 1

  try:
    config = RuntimeConfig.load(binding=binding, rules=rules, search_path=input_path.parent)
  except ValidationError as e:
    log_error(f"Invalid configuration: {escape(str(e))}")
    return 1

  code = input_path.read_text(encoding="utf-8")
  log_info(f"Running [path]{input_path}[/path]")

  try:
    run = run_program(code, config=config, filename=str(input_path))
  except JankypError as e:
    log_error(escape(str(e)))
    return 1

  if not run.success:
    first_line = run.error.partition("\n")[0]
    log_warning(f"Uncaught exception: {escape(first_line)}")
  run.ledger.report()
  return 0 if run.success else 1
