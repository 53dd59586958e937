"""
Configuration tests for no-implicit-deps.
Tests rule option parsing, config files, environment overrides and discovery.
"""

import json

import pytest

from implicit_deps.cli_config import (
    CheckerConfig,
    RuleOptions,
    build_config,
    create_sample_config,
    find_config_file,
    load_config,
    load_config_file,
    parse_rule_options,
    validate_config_values,
)
from implicit_deps.discovery import discover_source_files


class TestRuleOptions:
    """Test parsing of raw rule options."""

    def test_defaults(self):
        assert parse_rule_options() == RuleOptions(dev=False, optional=False, ignore=())
        assert parse_rule_options(True) == RuleOptions()

    def test_partial_mapping_keeps_defaults(self):
        options = parse_rule_options({"dev": True})

        assert options.dev is True
        assert options.optional is False
        assert options.ignore == ()

    def test_rule_argument_list_form(self):
        options = parse_rule_options(
            [True, {"dev": True, "optional": False, "ignore": ["#"]}]
        )

        assert options == RuleOptions(dev=True, optional=False, ignore=("#",))
        assert options.ignored == frozenset({"#"})

    def test_rule_argument_list_without_options(self):
        assert parse_rule_options([True]) == RuleOptions()

    @pytest.mark.parametrize(
        "raw",
        [
            {"dev": "yes"},
            {"optional": 1},
            {"ignore": "left-pad"},
            {"ignore": ["ok", 3]},
            {"unknown": True},
            "dev",
        ],
    )
    def test_invalid_options(self, raw):
        with pytest.raises(ValueError):
            parse_rule_options(raw)


class TestConfigFiles:
    """Test loading configuration from files and environment."""

    def test_load_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"rule": {"dev": True}}))

        assert load_config_file(path) == {"rule": {"dev": True}}

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("rule:\n  optional: true\n  ignore:\n    - '#'\n")

        assert load_config_file(path) == {"rule": {"optional": True, "ignore": ["#"]}}

    def test_load_toml(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('[rule]\ndev = true\nignore = ["internal-alias"]\n')

        assert load_config_file(path) == {"rule": {"dev": True, "ignore": ["internal-alias"]}}

    def test_broken_file_returns_none(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{broken")

        assert load_config_file(path) is None

    def test_missing_file_returns_none(self, tmp_path):
        assert load_config_file(tmp_path / "absent.json") is None

    def test_find_config_in_working_directory(self, tmp_path):
        path = tmp_path / ".no-implicit-deps.toml"
        path.write_text("[rule]\ndev = true\n")

        assert find_config_file().resolve() == path.resolve()
        assert load_config().rule.dev is True

    def test_find_config_in_home(self, tmp_path):
        user_config = tmp_path / "home" / ".config" / "no-implicit-deps" / "config.json"
        user_config.parent.mkdir(parents=True)
        user_config.write_text(json.dumps({"rule": {"optional": True}}))

        assert find_config_file().resolve() == user_config.resolve()

    def test_no_config_uses_defaults(self):
        config = load_config()

        assert config.rule.to_options() == RuleOptions()
        assert config.output.output_format == "console"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("NO_IMPLICIT_DEPS_DEV", "true")
        monkeypatch.setenv("NO_IMPLICIT_DEPS_OPTIONAL", "1")
        monkeypatch.setenv("NO_IMPLICIT_DEPS_IGNORE", "a, b,,c")
        monkeypatch.setenv("NO_IMPLICIT_DEPS_LOG_LEVEL", "debug")

        config = build_config({"rule": {"dev": False}})

        assert config.rule.to_options() == RuleOptions(dev=True, optional=True, ignore=("a", "b", "c"))
        assert config.logging.log_level == "DEBUG"

    def test_invalid_section_falls_back_to_defaults(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"rule": {"dev": "yes"}, "output": {"quiet": True}}))

        config = load_config(path)

        assert config.rule.dev is False
        assert config.output.quiet is True

    def test_validation(self):
        config = CheckerConfig()
        assert validate_config_values(config) == []

        config.output.output_format = "xml"
        config.logging.log_level = "LOUD"
        config.discovery.extensions = ["js"]

        errors = validate_config_values(config)
        assert len(errors) == 3

    def test_sample_config_round_trips(self):
        sample = json.loads(create_sample_config())

        assert set(sample) == {"rule", "output", "logging", "discovery"}
        assert validate_config_values(build_config(sample)) == []


class TestSourceDiscovery:
    """Test expansion of paths into source files."""

    def test_directories_are_walked(self, write_source, temp_dir):
        write_source("src/a.ts", "")
        write_source("src/b.jsx", "")
        write_source("src/types.d.ts", "")
        write_source("src/readme.md", "")
        write_source("node_modules/pkg/index.js", "")
        write_source("dist/bundle.js", "")

        files = discover_source_files([temp_dir])

        assert [f.relative_to(temp_dir).as_posix() for f in files] == ["src/a.ts", "src/b.jsx"]

    def test_explicit_files_are_kept(self, write_source):
        script = write_source("bin/tool", "#!/usr/bin/env node\n")

        assert discover_source_files([script]) == [script]

    def test_duplicates_are_removed(self, write_source, temp_dir):
        source = write_source("a.js", "")

        assert discover_source_files([source, temp_dir]) == [source]

    def test_custom_extensions(self, write_source, temp_dir):
        write_source("a.js", "")
        write_source("b.vue", "")

        files = discover_source_files([temp_dir], extensions=[".vue"])

        assert [f.name for f in files] == ["b.vue"]
