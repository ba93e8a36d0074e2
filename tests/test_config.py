"""Tests for configuration loading, CLI merging and rule-store construction."""

from pathlib import Path

import pytest

from stylecheck.config import (
    Config,
    OutputFormat,
    build_store,
    config_from_mapping,
    find_config_file,
    get_default_config,
    get_enabled_rules,
    load_config,
    merge_cli,
    parse_severity_options,
)
from stylecheck.errors import ConfigError
from stylecheck.findings.models import Severity
from stylecheck.rules.registry import builtin_rules


def test_default_config():
    config = get_default_config()
    assert config.fix is False
    assert config.output_format is OutputFormat.TEXT
    assert config.fail_on is Severity.ERROR
    assert config.max_fix_passes == 10
    assert len(get_enabled_rules(config)) == len(builtin_rules())


def test_load_stylecheck_toml(tmp_path: Path):
    (tmp_path / "stylecheck.toml").write_text(
        """
fix = true
output-format = "structured"
fail-on = "warning"
excluded-rules = ["var-usage"]

[severity-overrides]
this-qualifier = "error"

[[suppressions]]
rule = "private-field-naming"
paths = ["Generated/*.cs"]
""",
        encoding="utf-8",
    )
    config = load_config(start=tmp_path)
    assert config.fix is True
    assert config.output_format is OutputFormat.STRUCTURED
    assert config.fail_on is Severity.WARNING
    assert config.excluded_rules == ["var-usage"]
    assert config.severity_overrides == {"this-qualifier": Severity.ERROR}
    assert config.suppression_entries == [("private-field-naming", ["Generated/*.cs"])]


def test_pyproject_section_found_from_subdirectory(tmp_path: Path):
    (tmp_path / "pyproject.toml").write_text(
        '[project]\nname = "x"\n\n[tool.stylecheck]\njobs = 2\n', encoding="utf-8"
    )
    nested = tmp_path / "src" / "App"
    nested.mkdir(parents=True)
    assert find_config_file(nested) == (tmp_path / "pyproject.toml").resolve()
    assert load_config(start=nested).jobs == 2


def test_pyproject_without_section_is_skipped(tmp_path: Path):
    (tmp_path / "pyproject.toml").write_text('[project]\nname = "x"\n', encoding="utf-8")
    (tmp_path / "stylecheck.toml").write_text("fix = true\n", encoding="utf-8")
    assert find_config_file(tmp_path).name == "stylecheck.toml"


def test_malformed_toml_raises(tmp_path: Path):
    path = tmp_path / "stylecheck.toml"
    path.write_text("fix = = true\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="malformed TOML"):
        load_config(path)


def test_missing_explicit_file_raises(tmp_path: Path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "nope.toml")


def test_unknown_key_rejected():
    with pytest.raises(ConfigError, match="unknown-key"):
        config_from_mapping({"unknown-key": 1})


def test_invalid_severity_rejected():
    with pytest.raises(ConfigError):
        config_from_mapping({"severity-overrides": {"var-usage": "fatal"}})


def test_snake_case_names_accepted():
    assert Config(fail_on=Severity.SUGGESTION).fail_on is Severity.SUGGESTION


class TestEnabledRules:
    def test_unknown_excluded_rule(self):
        with pytest.raises(ConfigError, match="no-such-rule"):
            get_enabled_rules(Config(excluded_rules=["no-such-rule"]))

    def test_unknown_override(self):
        with pytest.raises(ConfigError, match="no-such-rule"):
            get_enabled_rules(Config(severity_overrides={"no-such-rule": Severity.ERROR}))

    def test_unknown_suppression_rule(self):
        with pytest.raises(ConfigError, match="no-such-rule"):
            get_enabled_rules(config_from_mapping({"suppressions": [{"rule": "no-such-rule"}]}))

    def test_wildcard_suppression_allowed(self):
        config = config_from_mapping({"suppressions": [{"rule": "*", "paths": ["Legacy/**"]}]})
        assert len(get_enabled_rules(config)) == len(builtin_rules())

    def test_excluded_and_overridden(self):
        config = Config(excluded_rules=["var-usage"], severity_overrides={"var-usage": Severity.ERROR})
        with pytest.raises(ConfigError, match="excluded"):
            get_enabled_rules(config)

    def test_exclusion_and_override_applied(self):
        config = Config(
            excluded_rules=["var-usage"],
            severity_overrides={"this-qualifier": Severity.ERROR},
        )
        store = build_store(config)
        assert "var-usage" not in store
        assert store["this-qualifier"].severity is Severity.ERROR
        assert store.severity_of("this-qualifier") is Severity.ERROR

    def test_builtin_rules_untouched_by_override(self):
        build_store(Config(severity_overrides={"this-qualifier": Severity.ERROR}))
        builtin = {r.id: r for r in builtin_rules()}
        assert builtin["this-qualifier"].severity is Severity.SUGGESTION


class TestCliMerge:
    def test_parse_severity_options(self):
        assert parse_severity_options(["var-usage=warning", "this-qualifier = ERROR"]) == {
            "var-usage": Severity.WARNING,
            "this-qualifier": Severity.ERROR,
        }

    def test_same_severity_twice_allowed(self):
        assert parse_severity_options(["var-usage=error", "var-usage=error"]) == {
            "var-usage": Severity.ERROR
        }

    def test_two_different_severities_rejected(self):
        with pytest.raises(ConfigError, match="two different severities"):
            parse_severity_options(["var-usage=error", "var-usage=warning"])

    @pytest.mark.parametrize("option", ["var-usage", "=error", "var-usage=fatal"])
    def test_malformed_option(self, option):
        with pytest.raises(ConfigError):
            parse_severity_options([option])

    def test_cli_values_win(self):
        base = Config(excluded_rules=["var-usage"], severity_overrides={"nameof-usage": Severity.WARNING})
        merged = merge_cli(
            base,
            fix=True,
            output_format=OutputFormat.STRUCTURED,
            excluded_rules=["keyword-types"],
            severities=["nameof-usage=error"],
            fail_on="suggestion",
            jobs=3,
        )
        assert merged.fix is True
        assert merged.output_format is OutputFormat.STRUCTURED
        assert merged.excluded_rules == ["var-usage", "keyword-types"]
        assert merged.severity_overrides == {"nameof-usage": Severity.ERROR}
        assert merged.fail_on is Severity.SUGGESTION
        assert merged.jobs == 3
        assert base.fix is False

    def test_unset_options_keep_config(self):
        base = Config(fix=True)
        assert merge_cli(base) == base

    def test_jobs_must_be_positive(self):
        with pytest.raises(ConfigError):
            merge_cli(Config(), jobs=0)
