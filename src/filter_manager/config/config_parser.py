"""Configuration parsing and normalization helpers for filter-manager.

Brief:
  This module contains the configuration-parsing utilities used by the CLI
  entrypoint. It centralizes:
    - reading YAML config files
    - merging variables from config/env/CLI and expanding `${KEY}` references
    - validating the result with the typed AppConfig model

Inputs:
  - YAML config files and CLI `KEY=YAML` assignments

Outputs:
  - AppConfig instances
"""

from __future__ import annotations

import copy
import json
import logging
import os
import re
from typing import Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

_VAR_KEY = re.compile(r"[A-Z_][A-Z0-9_]*")
_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")

REPORTS = ("destinations", "subdomains", "rewrite", "dump")
_LOG_LEVELS = ("debug", "info", "warn", "warning", "error", "crit", "critical")


class LoggingConfig(BaseModel):
    """Brief: Typed logging section, passed to init_logging() as a dict.

    Inputs:
      - level: debug, info, warn, error or crit.
      - stderr: Log to stderr.
      - file: Optional log file path.
      - syslog: False, True, or a mapping with address/facility/tag.

    Outputs:
      - LoggingConfig instance.
    """

    model_config = ConfigDict(extra="forbid")

    level: str = Field(default="info")
    stderr: bool = Field(default=True)
    file: Optional[str] = None
    syslog: Union[bool, Dict[str, Any]] = Field(default=False)

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> str:
        level = str(v).strip().lower()
        if level not in _LOG_LEVELS:
            raise ValueError(f"unknown logging level {v!r}")
        return level


class PslConfig(BaseModel):
    """Brief: Public suffix list options for the subdomain reports."""

    model_config = ConfigDict(extra="forbid")

    offline: bool = Field(default=True)


class AppConfig(BaseModel):
    """Brief: Typed configuration model for the filter-manager CLI.

    Inputs:
      - logging: LoggingConfig section.
      - input: Rule file to parse.
      - output: Destination file for the rewrite report.
      - report: One of destinations, subdomains, rewrite, dump.
      - min_count: Minimum destination count shown by the destinations report.
      - strict: When False, keep valid lines and report every bad line.
      - psl: PslConfig section.

    Outputs:
      - AppConfig instance with normalized field types.
    """

    model_config = ConfigDict(extra="forbid")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    input: str = Field(default="input.txt")
    output: str = Field(default="output.txt")
    report: Literal["destinations", "subdomains", "rewrite", "dump"] = Field(
        default="destinations"
    )
    min_count: int = Field(default=2, ge=1)
    strict: bool = Field(default=True)
    psl: PslConfig = Field(default_factory=PslConfig)


def _is_var_key(key: str) -> bool:
    """Brief: Validate whether a string is a supported variable key name.

    Inputs:
      - key: Candidate variable name.

    Outputs:
      - bool: True when the name matches [A-Z_][A-Z0-9_]*.
    """

    return bool(key) and bool(_VAR_KEY.fullmatch(key))


def _parse_yaml_value(text: str) -> Any:
    """Brief: Parse a CLI/environment variable value as YAML.

    Inputs:
      - text: String containing a YAML scalar/list/dict.

    Outputs:
      - Any: Parsed value (the original string when it is not valid YAML).
    """

    try:
        return yaml.safe_load(text)
    except yaml.YAMLError:
        return text


def parse_config_variables(
    cfg: Dict[str, Any],
    *,
    cli_vars: Optional[List[str]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Brief: Merge config/environment/CLI variables into cfg['vars'].

    Inputs:
      - cfg: Parsed YAML configuration mapping (mutated in-place).
      - cli_vars: Optional list of CLI `KEY=YAML` assignments.
      - environ: Optional environment mapping (defaults to os.environ).

    Outputs:
      - dict: The merged variables mapping stored back onto cfg['vars'].

    Precedence:
      - CLI (-v/--var) overrides environment overrides config-file variables.
      - Environment entries only override keys already declared in the file,
        so unrelated process variables never leak into the config.

    Example:
      >>> cfg = {'vars': {'MIN': 2}}
      >>> parse_config_variables(cfg, cli_vars=['MIN=5'], environ={})['MIN']
      5
    """

    base = cfg.get("vars")
    if base is None:
        merged: Dict[str, Any] = {}
    elif isinstance(base, dict):
        merged = dict(base)
    else:
        raise ValueError("config.vars must be a mapping when present")

    for k in merged:
        if not isinstance(k, str) or not _is_var_key(k):
            raise ValueError(f"config.vars key {k!r} must match [A-Z_][A-Z0-9_]*")

    env = os.environ if environ is None else environ
    for k in list(merged):
        if k in env:
            merged[k] = _parse_yaml_value(str(env[k]))

    for assignment in cli_vars or []:
        if "=" not in assignment:
            raise ValueError(
                "Invalid -v/--var value (expected KEY=YAML), got: %r" % assignment
            )
        k, raw = assignment.split("=", 1)
        k = k.strip()
        if not _is_var_key(k):
            raise ValueError(
                "Invalid variable name %r (must match [A-Z_][A-Z0-9_]*)" % k
            )
        merged[k] = _parse_yaml_value(raw)

    cfg["vars"] = merged
    return merged


def expand_variables(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Brief: Expand cfg['vars'] references across the config and drop the group.

    Inputs:
      - cfg: Configuration mapping (mutated in-place).

    Outputs:
      - dict: The same mapping without the 'vars' key.

    Behavior:
      - A string value that is exactly `$KEY` or `${KEY}` is replaced by the
        variable's YAML value (list/dict/int/etc.).
      - `${KEY}` occurrences inside longer strings are replaced by the
        variable's text; unknown keys are left untouched.
      - Variables may reference other variables; cycles raise ValueError.
    """

    variables = cfg.pop("vars", None) or {}
    resolved: Dict[str, Any] = {}

    def _resolve(key: str, stack: List[str]) -> Any:
        if key in resolved:
            return resolved[key]
        if key in stack:
            raise ValueError(
                "config.vars contains a cycle: " + " -> ".join(stack + [key])
            )
        value = _expand(variables[key], stack + [key])
        resolved[key] = value
        return value

    def _to_text(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if value is None:
            return "null"
        if isinstance(value, (int, float, str)):
            return str(value)
        return json.dumps(value)

    def _expand_string(text: str, stack: List[str]) -> Any:
        if text.startswith("${") and text.endswith("}") and text[2:-1] in variables:
            return copy.deepcopy(_resolve(text[2:-1], stack))
        if text.startswith("$") and text[1:] in variables:
            return copy.deepcopy(_resolve(text[1:], stack))

        def _repl(match: re.Match) -> str:
            key = match.group(1)
            if key not in variables:
                return match.group(0)
            return _to_text(_resolve(key, stack))

        return _VAR_PATTERN.sub(_repl, text)

    def _expand(obj: Any, stack: List[str]) -> Any:
        if isinstance(obj, str):
            return _expand_string(obj, stack)
        if isinstance(obj, list):
            return [_expand(item, stack) for item in obj]
        if isinstance(obj, dict):
            return {k: _expand(v, stack) for k, v in obj.items()}
        return obj

    for key in list(variables):
        _resolve(key, [])

    for top_key in list(cfg):
        cfg[top_key] = _expand(cfg[top_key], [])
    return cfg


def build_config(cfg: Dict[str, Any]) -> AppConfig:
    """Brief: Validate an expanded configuration mapping.

    Inputs:
      - cfg: Configuration mapping without a 'vars' group.

    Outputs:
      - AppConfig: Validated configuration.

    Raises:
      - ValueError: When the mapping does not match AppConfig.
    """

    try:
        return AppConfig(**cfg)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc


def parse_config_file(
    config_path: Optional[str],
    *,
    cli_vars: Optional[List[str]] = None,
    environ: Optional[Dict[str, str]] = None,
    required: bool = True,
) -> AppConfig:
    """Brief: Read, variable-merge, expand and validate a YAML config file.

    Inputs:
      - config_path: Path to the YAML configuration file, or None.
      - cli_vars: Optional list of CLI `KEY=YAML` assignments (from -v/--var).
      - environ: Optional environment mapping (defaults to os.environ).
      - required: When False a missing file yields the default configuration.

    Outputs:
      - AppConfig: Validated configuration.

    Raises:
      - OSError: The file is missing (and required) or unreadable.
      - ValueError: YAML root is not a mapping, variables are invalid, or
        validation fails.
    """

    cfg: Any = {}
    if config_path is not None and (required or os.path.exists(config_path)):
        with open(config_path, "r", encoding="utf-8") as f:
            try:
                cfg = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc
        logger.debug("Loaded config file %s", config_path)

    if not isinstance(cfg, dict):
        raise ValueError("Configuration root must be a mapping")

    parse_config_variables(cfg, cli_vars=list(cli_vars or []), environ=environ)
    expand_variables(cfg)
    return build_config(cfg)
