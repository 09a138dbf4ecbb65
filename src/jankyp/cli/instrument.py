"""
Instrument Command Handler.

Loads configuration, rewrites one program through the engine and writes the
result. Failures are logged and turned into exit code 1; no output file is
written for a failed run.
"""

from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError
from rich.markup import escape
from rich.table import Table

from jankyp.config import RuntimeConfig
from jankyp.core.engine import InstrumentationEngine
from jankyp.core.hooks import available_modules, get_modules
from jankyp.utils.console import console, log_error, log_info, log_success


def handle_instrument(
  input_path: Path,
  output_path: Path,
  binding: Optional[str] = None,
  ledger_module: Optional[str] = None,
  source_type: Optional[str] = None,
  rules: Optional[List[str]] = None,
) -> int:
  """
  Handles the instrumentation of one file.

  Args:
      input_path: Program to rewrite.
      output_path: Where the instrumented program is written.
      binding: Override for the ledger binding name.
      ledger_module: Override for the ledger module specifier.
      source_type: Override for the parse goal ('script' or 'module').
      rules: Override for the enabled rule modules.

  Returns:
      int: Exit code (0 for success, 1 for failure).
  """
  if not input_path.is_file():
    log_error(f"Input not found: {input_path}")
    return 1

  try:
    config = RuntimeConfig.load(
      binding=binding,
      ledger_module=ledger_module,
      source_type=source_type,
      rules=rules,
      search_path=input_path.parent,
    )
  except ValidationError as e:
    log_error(f"Invalid configuration: {escape(str(e))}")
    return 1

  if config.rules is not None:
    unknown = [name for name in config.rules if name not in available_modules()]
    if unknown:
      log_error(f"Unknown rule modules: {', '.join(unknown)}")
      return 1

  code = input_path.read_text(encoding="utf-8")
  log_info(f"Instrumenting [path]{input_path}[/path]")

  result = InstrumentationEngine(config=config).run(code)
  if not result.success:
    for error in result.errors:
      log_error(escape(error))
    return 1

  output_path.parent.mkdir(parents=True, exist_ok=True)
  output_path.write_text(result.code, encoding="utf-8")

  total = sum(result.rewrites.values())
  log_success(f"Wrote [path]{output_path}[/path] ({total} rewrites)")
  return 0


def handle_list_rules() -> int:
  """Prints the registered rule modules in application order."""
  table = Table(title="Rule Modules")
  table.add_column("Module", style="bold cyan")
  table.add_column("Node Kinds")
  table.add_column("Description")
  for module in get_modules():
    table.add_row(module.name, ", ".join(module.kinds), module.description)
  console.print(table)
  return 0
