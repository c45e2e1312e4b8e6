"""
Rules configuration loader for DiffSense.

The configuration is a YAML file, by default ``.diffsense.yml`` at the
repository root. It is either a plain list of rules or a mapping with the
keys ``rules``, ``exclude_paths``, ``include_only``, ``commit_types`` and
``scoring``. Every rule needs an ``id``; the optional keys are ``match``
(glob), ``match_path`` (substring), ``match_ast`` (text searched in the
semantic delta descriptions), ``type``, ``reason`` and ``heuristics`` (a
list of ``{if: name}`` entries).

:func:`read_config` raises :class:`ConfigError` for any problem.
:func:`load_config` never raises: it falls back to the built-in default
rules and records why in :attr:`DiffSenseConfig.load_error`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from ..models import COMMIT_TYPES, Rule


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


DEFAULT_CONFIG_FILENAME = ".diffsense.yml"

DEFAULT_RULES: Tuple[Rule, ...] = (
    Rule(id="default-test", match="**/*.{spec,test}.{ts,js}", type="test"),
    Rule(id="default-docs", match="**/*.md", type="docs"),
)

# Scalar weights and multiplier tables accepted under ``scoring:``
SCORING_WEIGHT_KEYS = ("breaking", "public_api", "feature", "fix", "file_size", "semantic_impact")
SCORING_TABLE_KEYS = ("file_type", "change_kind")

_RULE_KEYS = {"id", "match", "match_path", "match_ast", "type", "reason", "heuristics"}
_TOP_LEVEL_KEYS = {"rules", "exclude_paths", "include_only", "commit_types", "scoring"}

DEFAULT_CONFIG_TEMPLATE = """\
# DiffSense rules configuration.
#
# Rules are evaluated in order. Every applying rule id is recorded and the
# last applying rule with a type decides the commit type.
rules:
  - id: default-test
    match: "**/*.{spec,test}.{ts,js}"
    type: test
  - id: default-docs
    match: "**/*.md"
    type: docs
#  - id: api-breaking
#    match_path: src/api/
#    heuristics:
#      - if: containsBreakingChange
#    type: feat
#    reason: Public API changes

# Globs of paths skipped before analysis, and of the only paths analyzed.
exclude_paths: []
include_only: []

# Additional commit types rules may use.
commit_types: []

# Scoring weight overrides, for example:
# scoring:
#   breaking: 10
#   file_type:
#     test: 0.5
"""


class ConfigError(Exception):
    """Raised when the rules configuration file is missing or invalid."""

    pass


@dataclass(frozen=True)
class DiffSenseConfig:
    """Validated configuration for one analysis run."""

    rules: Tuple[Rule, ...] = DEFAULT_RULES
    exclude_paths: Tuple[str, ...] = ()
    include_only: Tuple[str, ...] = ()
    commit_types: Tuple[str, ...] = COMMIT_TYPES
    scoring: Dict[str, Any] = field(default_factory=dict)
    source: Optional[Path] = None
    load_error: Optional[str] = None


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------
def _optional_str(entry: Dict[str, Any], key: str, where: str) -> Optional[str]:
    value = entry.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{where}: '{key}' must be a string")
    return value


def _string_list(value: Any, key: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"'{key}' must be a list of strings")
    return tuple(value)


def _parse_heuristics(value: Any, where: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ConfigError(f"{where}: 'heuristics' must be a list")
    names: List[str] = []
    for item in value:
        if isinstance(item, dict) and isinstance(item.get("if"), str):
            names.append(item["if"])
        elif isinstance(item, str):
            names.append(item)
        else:
            raise ConfigError(f"{where}: each heuristic must be a mapping with an 'if' string")
    return tuple(names)


def _parse_rule(entry: Any, index: int, commit_types: Tuple[str, ...]) -> Rule:
    where = f"rule #{index + 1}"
    if not isinstance(entry, dict):
        raise ConfigError(f"{where} must be a mapping")
    rule_id = entry.get("id")
    if not isinstance(rule_id, str) or not rule_id.strip():
        raise ConfigError(f"{where} is missing a string 'id'")
    where = f"rule '{rule_id}'"

    unknown = sorted(set(entry) - _RULE_KEYS)
    if unknown:
        logger.warning("Ignoring unknown keys in %s: %s", where, ", ".join(map(str, unknown)))

    commit_type = _optional_str(entry, "type", where)
    if commit_type is not None and commit_type not in commit_types:
        raise ConfigError(
            f"{where}: unknown commit type '{commit_type}' (expected one of {', '.join(commit_types)})"
        )

    return Rule(
        id=rule_id,
        match=_optional_str(entry, "match", where),
        match_path=_optional_str(entry, "match_path", where),
        match_ast=_optional_str(entry, "match_ast", where),
        type=commit_type,
        reason=_optional_str(entry, "reason", where),
        heuristics=_parse_heuristics(entry.get("heuristics"), where),
    )


def _parse_scoring(value: Any) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError("'scoring' must be a mapping")
    scoring: Dict[str, Any] = {}
    for key, weight in value.items():
        if key in SCORING_WEIGHT_KEYS:
            if isinstance(weight, bool) or not isinstance(weight, (int, float)):
                raise ConfigError(f"scoring: '{key}' must be a number")
            scoring[key] = float(weight)
        elif key in SCORING_TABLE_KEYS:
            if not isinstance(weight, dict) or not all(
                isinstance(k, str) and isinstance(v, (int, float)) and not isinstance(v, bool)
                for k, v in weight.items()
            ):
                raise ConfigError(f"scoring: '{key}' must map names to numbers")
            scoring[key] = {k: float(v) for k, v in weight.items()}
        else:
            raise ConfigError(f"scoring: unknown weight '{key}'")
    return scoring


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def parse_config(data: Any, source: Optional[Path] = None) -> DiffSenseConfig:
    """Validate already-decoded YAML data into a :class:`DiffSenseConfig`.

    Raises
    ------
    ConfigError
        If the structure, a rule, or a weight is invalid.
    """
    if isinstance(data, list):
        data = {"rules": data}
    if not isinstance(data, dict):
        raise ConfigError("configuration must be a list of rules or a mapping")

    unknown = sorted(set(data) - _TOP_LEVEL_KEYS)
    if unknown:
        raise ConfigError(f"unknown configuration keys: {', '.join(map(str, unknown))}")

    extra_types = _string_list(data.get("commit_types"), "commit_types")
    commit_types = COMMIT_TYPES + tuple(t for t in extra_types if t not in COMMIT_TYPES)

    raw_rules = data.get("rules")
    if raw_rules is None:
        rules = DEFAULT_RULES
    elif not isinstance(raw_rules, list):
        raise ConfigError("'rules' must be a list")
    else:
        rules = tuple(_parse_rule(entry, i, commit_types) for i, entry in enumerate(raw_rules))
        seen = set()
        for rule in rules:
            if rule.id in seen:
                raise ConfigError(f"duplicate rule id '{rule.id}'")
            seen.add(rule.id)

    return DiffSenseConfig(
        rules=rules,
        exclude_paths=_string_list(data.get("exclude_paths"), "exclude_paths"),
        include_only=_string_list(data.get("include_only"), "include_only"),
        commit_types=commit_types,
        scoring=_parse_scoring(data.get("scoring")),
        source=source,
    )


def read_config(path: Path) -> DiffSenseConfig:
    """Read and validate the configuration file at ``path``.

    Raises
    ------
    ConfigError
        If the file is missing, is not valid YAML, or fails validation.
    """
    if not path.exists():
        raise ConfigError(f"Missing rules configuration file: {path}")
    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
        logger.error("Failed to read or parse configuration file: %s", exc)
        raise ConfigError(f"Invalid YAML in {path.name}: {exc}") from exc
    if data is None:
        raise ConfigError(f"{path.name} is empty")
    return parse_config(data, source=path)


def load_config(repo_root: Optional[Path] = None, config_path: Optional[Path] = None) -> DiffSenseConfig:
    """Load the rules configuration, falling back to the default rules.

    Parameters
    ----------
    repo_root : Optional[Path]
        Repository root searched for ``.diffsense.yml`` when no explicit
        path is given.
    config_path : Optional[Path]
        Explicit configuration file. A missing or invalid explicit file is
        logged as a warning; a missing default file only at debug level.

    Returns
    -------
    DiffSenseConfig
        The loaded configuration, or the defaults with ``load_error`` set.
    """
    explicit = config_path is not None
    if config_path is None:
        config_path = (repo_root or Path.cwd()) / DEFAULT_CONFIG_FILENAME
        if not config_path.exists():
            logger.debug("No configuration at %s, using default rules", config_path)
            return DiffSenseConfig()

    try:
        config = read_config(config_path)
    except ConfigError as exc:
        if explicit:
            logger.warning("Falling back to default rules: %s", exc)
        else:
            logger.warning("Ignoring invalid %s, using default rules: %s", config_path.name, exc)
        return DiffSenseConfig(load_error=str(exc))

    logger.debug("Loaded %d rules from %s", len(config.rules), config_path)
    return config


def write_default_config(path: Path, overwrite: bool = False) -> Path:
    """Write :data:`DEFAULT_CONFIG_TEMPLATE` to ``path``.

    Raises
    ------
    ConfigError
        If ``path`` already exists and ``overwrite`` is False, or it cannot
        be written.
    """
    if path.exists() and not overwrite:
        raise ConfigError(f"{path.name} already exists at {path.parent}")
    try:
        path.write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
    except OSError as exc:
        logger.error("Failed to write configuration file: %s", exc)
        raise ConfigError(f"Cannot write {path}: {exc}") from exc
    logger.debug("Wrote default configuration to %s", path)
    return path


def config_to_dict(config: DiffSenseConfig) -> Dict[str, Any]:
    """Return ``config`` in the shape of the configuration file."""
    rules: List[Dict[str, Any]] = []
    for rule in config.rules:
        entry: Dict[str, Any] = {"id": rule.id}
        for key in ("match", "match_path", "match_ast", "type", "reason"):
            value = getattr(rule, key)
            if value is not None:
                entry[key] = value
        if rule.heuristics:
            entry["heuristics"] = [{"if": name} for name in rule.heuristics]
        rules.append(entry)
    return {
        "rules": rules,
        "exclude_paths": list(config.exclude_paths),
        "include_only": list(config.include_only),
        "commit_types": list(config.commit_types),
        "scoring": dict(config.scoring),
    }
