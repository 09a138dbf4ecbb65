"""
Runtime Configuration Store.

Settings resolve in three layers: built-in defaults, the ``[tool.jankyp]``
table of the nearest ``pyproject.toml``, then explicit (CLI) overrides.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

if sys.version_info >= (3, 11):
  import tomllib
else:
  import tomli as tomllib

DEFAULT_BINDING = "$jankyp"
DEFAULT_LEDGER_MODULE = "jankyp/ledger"
SOURCE_TYPES = ("script", "module")


class RuntimeConfig(BaseModel):
  """
  Configuration of one instrumentation run.
  """

  binding: str = Field(DEFAULT_BINDING, description="Identifier the rewritten program binds the ledger to.")
  ledger_module: str = Field(
    DEFAULT_LEDGER_MODULE,
    description="Module specifier the rewritten program requires to obtain the ledger.",
  )
  source_type: str = Field("script", description="Parse the input as a 'script' or a 'module'.")
  rules: Optional[List[str]] = Field(
    None,
    description="Rule modules to apply, in registration order. None selects all of them.",
  )
  report_on_exit: bool = Field(True, description="Print the ledger report when the process exits.")

  @field_validator("source_type")
  @classmethod
  def validate_source_type(cls, v: str) -> str:
    """
    Normalizes and checks the parse goal.

    Raises:
        ValueError: If the value is neither 'script' nor 'module'.
    """
    v_clean = v.lower().strip()
    if v_clean not in SOURCE_TYPES:
      raise ValueError(f"Unknown source type: '{v}'. Expected one of {SOURCE_TYPES}")
    return v_clean

  @field_validator("binding")
  @classmethod
  def validate_binding(cls, v: str) -> str:
    """
    Checks that the binding is a plain identifier.

    Raises:
        ValueError: If the name cannot be used as an identifier.
    """
    body = v.replace("$", "a").replace("_", "a")
    if not v or v[0].isdigit() or not body.isalnum():
      raise ValueError(f"Invalid binding name: '{v}'")
    return v

  @classmethod
  def load(
    cls,
    binding: Optional[str] = None,
    ledger_module: Optional[str] = None,
    source_type: Optional[str] = None,
    rules: Optional[List[str]] = None,
    report_on_exit: Optional[bool] = None,
    search_path: Optional[Path] = None,
  ) -> "RuntimeConfig":
    """
    Loads configuration from pyproject.toml and overrides it with explicit arguments.

    Args:
        binding (Optional[str]): Override for the ledger binding name.
        ledger_module (Optional[str]): Override for the ledger module specifier.
        source_type (Optional[str]): Override for the parse goal.
        rules (Optional[List[str]]): Override for the enabled rule modules.
        report_on_exit (Optional[bool]): Override for the exit-time ledger report.
        search_path (Optional[Path]): Directory to start searching for TOML config.

    Returns:
        RuntimeConfig: The fully resolved configuration object.
    """
    toml_config, _ = _load_toml_settings(search_path or Path.cwd())

    settings: Dict[str, Any] = {}
    for key in ("binding", "ledger_module", "source_type", "rules", "report_on_exit"):
      if key in toml_config:
        settings[key] = toml_config[key]

    overrides = {
      "binding": binding,
      "ledger_module": ledger_module,
      "source_type": source_type,
      "rules": rules,
      "report_on_exit": report_on_exit,
    }
    settings.update({k: v for k, v in overrides.items() if v is not None})
    return cls(**settings)


def _load_toml_settings(start_path: Path) -> Tuple[Dict[str, Any], Optional[Path]]:
  """
  Searches parents for 'pyproject.toml' and extracts the ``[tool.jankyp]`` table.

  Args:
      start_path (Path): Directory to start search from.

  Returns:
      Tuple[Dict, Optional[Path]]: The config dict and the directory it was found in.
  """
  current = start_path.resolve()

  for parent in [current, *current.parents]:
    toml_path = parent / "pyproject.toml"
    if toml_path.is_file():
      try:
        with open(toml_path, "rb") as f:
          data = tomllib.load(f)
      except (OSError, tomllib.TOMLDecodeError):
        return {}, None
      return data.get("tool", {}).get("jankyp", {}), parent

  return {}, None
