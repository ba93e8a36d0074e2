from __future__ import annotations

"""
Configuration: which rules are enabled, at what severity, and how a run behaves.

Settings come from ``stylecheck.toml`` (whole document) or the
``[tool.stylecheck]`` table of ``pyproject.toml``, found by walking up from
the working directory, and are then overridden by CLI options. Everything is
validated into a frozen RuleStore before any file is processed.
"""

import dataclasses
import enum
import logging
import tomllib
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from stylecheck.errors import ConfigError
from stylecheck.findings.models import Severity
from stylecheck.rules.base import Rule
from stylecheck.rules.registry import RuleStore, builtin_rules

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "stylecheck.toml"
PYPROJECT_FILENAME = "pyproject.toml"


class OutputFormat(str, enum.Enum):
    TEXT = "text"
    STRUCTURED = "structured"


def _kebab(name: str) -> str:
    return name.replace("_", "-")


class SuppressionEntry(BaseModel):
    """Suppress rule (or "*") in every file whose path matches one of paths."""

    rule: str
    paths: List[str] = Field(default_factory=lambda: ["*"])

    model_config = ConfigDict(frozen=True, extra="forbid")


class Config(BaseModel):
    """
    Run configuration.

    Keys are spelled in kebab-case in TOML (``severity-overrides``,
    ``excluded-rules``, ``fail-on``...); snake_case works from Python.
    """

    severity_overrides: dict[str, Severity] = Field(default_factory=dict)
    excluded_rules: List[str] = Field(default_factory=list)
    fix: bool = False
    output_format: OutputFormat = OutputFormat.TEXT
    fail_on: Severity = Severity.ERROR
    suppressions: List[SuppressionEntry] = Field(default_factory=list)
    jobs: Optional[int] = Field(None, ge=1)
    max_fix_passes: int = Field(10, ge=1)
    exclude_dirs: List[str] = Field(default_factory=list)

    model_config = ConfigDict(
        alias_generator=_kebab,
        populate_by_name=True,
        extra="forbid",
    )

    @property
    def suppression_entries(self) -> list[tuple[str, list[str]]]:
        return [(entry.rule, list(entry.paths)) for entry in self.suppressions]


def get_default_config() -> Config:
    """Every built-in rule at its default severity, report-only, text output."""
    return Config()


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        where = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f"{where}: {err['msg']}")
    return "; ".join(parts)


def config_from_mapping(data: dict[str, Any], origin: str = "<config>") -> Config:
    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"{origin}: {_validation_message(e)}") from e


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: malformed TOML: {e}") from e
    except OSError as e:
        raise ConfigError(f"{path}: cannot read configuration: {e}") from e


def _section(path: Path, data: dict[str, Any]) -> Optional[dict[str, Any]]:
    if path.name == PYPROJECT_FILENAME:
        section = data.get("tool", {}).get("stylecheck")
        if section is not None and not isinstance(section, dict):
            raise ConfigError(f"{path}: [tool.stylecheck] must be a table")
        return section
    return data


def find_config_file(start: Optional[Path] = None) -> Optional[Path]:
    """Nearest stylecheck.toml, or pyproject.toml with a [tool.stylecheck] table."""
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        pyproject = directory / PYPROJECT_FILENAME
        if pyproject.is_file() and _section(pyproject, _read_toml(pyproject)) is not None:
            return pyproject
    return None


def load_config(path: Optional[Path] = None, start: Optional[Path] = None) -> Config:
    """
    Load configuration from path, or from the nearest config file.

    Raises:
        ConfigError: the file is missing, malformed or has invalid values.
    """
    if path is None:
        path = find_config_file(start)
        if path is None:
            logger.debug("No configuration file found; using defaults")
            return get_default_config()
    elif not path.is_file():
        raise ConfigError(f"{path}: configuration file not found")
    section = _section(path, _read_toml(path))
    logger.info("Loaded configuration from %s", path)
    return config_from_mapping(section or {}, origin=str(path))


def parse_severity(value: str) -> Severity:
    try:
        return Severity(value.strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in Severity)
        raise ConfigError(f"unknown severity '{value}' (expected one of: {allowed})") from None


def parse_severity_options(options: Iterable[str]) -> dict[str, Severity]:
    """Parse repeated ``rule=severity`` CLI options."""
    overrides: dict[str, Severity] = {}
    for option in options:
        rule_id, sep, level = option.partition("=")
        rule_id = rule_id.strip()
        if not sep or not rule_id:
            raise ConfigError(f"invalid severity override '{option}' (expected rule=severity)")
        severity = parse_severity(level)
        if overrides.get(rule_id, severity) != severity:
            raise ConfigError(
                f"rule '{rule_id}' overridden with two different severities: "
                f"{overrides[rule_id].value} and {severity.value}"
            )
        overrides[rule_id] = severity
    return overrides


def merge_cli(
    config: Config,
    *,
    fix: Optional[bool] = None,
    output_format: Optional[OutputFormat] = None,
    excluded_rules: Sequence[str] = (),
    severities: Sequence[str] = (),
    fail_on: Optional[str] = None,
    jobs: Optional[int] = None,
) -> Config:
    """Return config with CLI options layered on top; CLI values win."""
    update: dict[str, Any] = {}
    if fix is not None:
        update["fix"] = fix
    if output_format is not None:
        update["output_format"] = output_format
    if excluded_rules:
        update["excluded_rules"] = [*config.excluded_rules, *excluded_rules]
    if severities:
        update["severity_overrides"] = {**config.severity_overrides, **parse_severity_options(severities)}
    if fail_on is not None:
        update["fail_on"] = parse_severity(fail_on)
    if jobs is not None:
        if jobs < 1:
            raise ConfigError("--jobs must be at least 1")
        update["jobs"] = jobs
    return config.model_copy(update=update)


def get_enabled_rules(
    config: Optional[Config] = None,
    rules: Optional[Sequence[Rule]] = None,
) -> list[Rule]:
    """
    Return the enabled rules, with severity overrides applied.

    Raises:
        ConfigError: a rule id is unknown, or a rule is both excluded and
            given a severity override.
    """
    if config is None:
        config = get_default_config()
    available = list(rules) if rules is not None else builtin_rules()
    known = {rule.id for rule in available}

    for rule_id in config.excluded_rules:
        if rule_id not in known:
            raise ConfigError(f"unknown rule id '{rule_id}' in excluded-rules")
    for rule_id in config.severity_overrides:
        if rule_id not in known:
            raise ConfigError(f"unknown rule id '{rule_id}' in severity-overrides")
        if rule_id in config.excluded_rules:
            raise ConfigError(f"rule '{rule_id}' is excluded but also has a severity override")
    for entry in config.suppressions:
        if entry.rule != "*" and entry.rule not in known:
            raise ConfigError(f"unknown rule id '{entry.rule}' in suppressions")

    excluded = set(config.excluded_rules)
    enabled: list[Rule] = []
    for rule in available:
        if rule.id in excluded:
            continue
        severity = config.severity_overrides.get(rule.id)
        if severity is not None and severity is not rule.severity:
            rule = dataclasses.replace(rule, severity=severity)
        enabled.append(rule)
    return enabled


def build_store(config: Optional[Config] = None, rules: Optional[Sequence[Rule]] = None) -> RuleStore:
    """Validate config and freeze the enabled rules into a RuleStore."""
    store = RuleStore(get_enabled_rules(config, rules))
    logger.debug("Enabled rules: %s", ", ".join(sorted(store.ids)) if len(store) else "<none>")
    return store
