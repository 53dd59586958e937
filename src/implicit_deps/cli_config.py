"""
Configuration management for no-implicit-deps.

Rule options come from (lowest to highest precedence) built-in defaults, a
config file, environment variables, and command line flags.
"""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

import toml
from rich.console import Console

from .error_handling import log_config_error

try:
    import yaml

    HAS_YAML = True
except ImportError:
    HAS_YAML = False

console = Console(stderr=True)

OPTION_DEV = "dev"
OPTION_OPTIONAL = "optional"
OPTION_IGNORE = "ignore"

CONFIG_FILE_NAMES = [
    ".no-implicit-deps.json",
    ".no-implicit-deps.yaml",
    ".no-implicit-deps.yml",
    ".no-implicit-deps.toml",
]

OUTPUT_FORMATS = ("console", "json")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class RuleOptions:
    """Per-invocation options of the no-implicit-dependencies rule."""

    dev: bool = False
    optional: bool = False
    ignore: Tuple[str, ...] = ()

    @property
    def ignored(self) -> FrozenSet[str]:
        """Ignore list as a set for membership tests."""
        return frozenset(self.ignore)


def parse_rule_options(raw: Any = None) -> RuleOptions:
    """
    Build rule options from a raw rule configuration value.

    Accepts ``None`` or ``True`` (defaults), a mapping of options, or the
    rule-argument list form ``[true, {"dev": true}]``. Missing keys keep
    their defaults.

    Args:
        raw: Raw configuration value

    Returns:
        RuleOptions: Validated options

    Raises:
        ValueError: If an option is unknown or has the wrong type
    """
    if isinstance(raw, (list, tuple)):
        arguments = [item for item in raw if not isinstance(item, bool)]
        raw = arguments[0] if arguments else None

    if raw is None or raw is True:
        return RuleOptions()
    if not isinstance(raw, dict):
        raise ValueError(f"Rule options must be an object, got {type(raw).__name__}")

    unknown = set(raw) - {OPTION_DEV, OPTION_OPTIONAL, OPTION_IGNORE}
    if unknown:
        raise ValueError(f"Unknown rule option(s): {', '.join(sorted(unknown))}")

    for key in (OPTION_DEV, OPTION_OPTIONAL):
        if key in raw and not isinstance(raw[key], bool):
            raise ValueError(f"Rule option '{key}' must be a boolean")

    ignore = raw.get(OPTION_IGNORE, [])
    if not isinstance(ignore, (list, tuple)) or not all(
        isinstance(name, str) for name in ignore
    ):
        raise ValueError(f"Rule option '{OPTION_IGNORE}' must be a list of strings")

    return RuleOptions(
        dev=raw.get(OPTION_DEV, False),
        optional=raw.get(OPTION_OPTIONAL, False),
        ignore=tuple(ignore),
    )


@dataclass
class RuleConfig:
    """Rule option defaults as loaded from config files and environment."""

    dev: bool = False
    optional: bool = False
    ignore: List[str] = field(default_factory=list)

    def to_options(self) -> RuleOptions:
        return parse_rule_options(asdict(self))


@dataclass
class OutputConfig:
    """Output configuration."""

    output_format: str = "console"
    output_file: Optional[str] = None
    quiet: bool = False
    verbose: bool = False
    fail_on_findings: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""

    log_level: str = "WARNING"
    enable_json: bool = True


@dataclass
class DiscoveryConfig:
    """Which files a directory argument expands to."""

    extensions: List[str] = field(
        default_factory=lambda: [
            ".js",
            ".jsx",
            ".mjs",
            ".cjs",
            ".ts",
            ".tsx",
            ".mts",
            ".cts",
        ]
    )
    exclude_dirs: List[str] = field(
        default_factory=lambda: [
            "node_modules",
            ".git",
            "dist",
            "build",
            "coverage",
            ".next",
            ".nuxt",
            ".cache",
            "bower_components",
        ]
    )


@dataclass
class CheckerConfig:
    """Complete configuration for a check run."""

    rule: RuleConfig = field(default_factory=RuleConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# Global configuration instance
_global_config: Optional[CheckerConfig] = None


def validate_config_values(config: CheckerConfig) -> List[str]:
    """
    Validate configuration values and return any errors.

    Args:
        config: Configuration to validate

    Returns:
        List[str]: List of validation errors (empty if valid)
    """
    errors = []

    try:
        config.rule.to_options()
    except ValueError as e:
        errors.append(f"rule: {e}")

    if config.output.output_format not in OUTPUT_FORMATS:
        errors.append(
            f"output.output_format must be one of {', '.join(OUTPUT_FORMATS)}"
        )
    if config.output.output_file and config.output.output_format != "json":
        errors.append("output.output_file can only be used with the json format")

    if str(config.logging.log_level).upper() not in LOG_LEVELS:
        errors.append(f"logging.log_level must be one of {', '.join(LOG_LEVELS)}")

    if not config.discovery.extensions:
        errors.append("discovery.extensions must not be empty")
    for extension in config.discovery.extensions:
        if not str(extension).startswith("."):
            errors.append(f"discovery.extensions entry must start with '.': {extension}")

    return errors


def load_config_file(config_path: Path) -> Optional[Dict[str, Any]]:
    """Load config from a JSON, YAML or TOML file."""
    if not config_path.exists():
        return None

    suffix = config_path.suffix.lower()
    try:
        with open(config_path, encoding="utf-8") as f:
            if suffix in [".yaml", ".yml"]:
                if HAS_YAML:
                    return yaml.safe_load(f)
                console.print(
                    "⚠️  PyYAML not installed, skipping YAML config", style="yellow"
                )
                return None
            if suffix == ".toml":
                return toml.load(f)
            if suffix == ".json":
                return json.load(f)
    except Exception as e:
        log_config_error(
            f"Error loading config from {config_path}",
            "load_config_file",
            config_path=config_path,
            exception=e,
        )
        console.print(
            f"⚠️  Error loading config from {config_path}: {e}", style="yellow"
        )

    return None


def find_config_file(start: Optional[Path] = None) -> Optional[Path]:
    """Find config file in standard locations."""
    base = start or Path.cwd()
    user_dir = Path.home() / ".config" / "no-implicit-deps"
    locations = [base / name for name in CONFIG_FILE_NAMES] + [
        user_dir / "config.json",
        user_dir / "config.yaml",
        user_dir / "config.toml",
    ]

    for location in locations:
        if location.exists():
            return location

    return None


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def load_environment_overrides(config: CheckerConfig) -> None:
    """Load environment variable overrides."""

    def get_env_bool(key: str, default: bool = False) -> bool:
        value = os.environ.get(key, "").lower()
        return value in ["true", "1", "yes", "on"] if value else default

    config.rule.dev = get_env_bool("NO_IMPLICIT_DEPS_DEV", config.rule.dev)
    config.rule.optional = get_env_bool(
        "NO_IMPLICIT_DEPS_OPTIONAL", config.rule.optional
    )
    if ignore := os.environ.get("NO_IMPLICIT_DEPS_IGNORE"):
        config.rule.ignore = _split_list(ignore)

    if output_format := os.environ.get("NO_IMPLICIT_DEPS_OUTPUT_FORMAT"):
        config.output.output_format = output_format.lower()

    if log_level := os.environ.get("NO_IMPLICIT_DEPS_LOG_LEVEL"):
        config.logging.log_level = log_level.upper()


def apply_config_section(
    config: Any, section_data: Dict[str, Any], section_name: str
) -> None:
    """Apply configuration from dictionary to config section."""
    if not isinstance(section_data, dict):
        console.print(
            f"⚠️  Config section '{section_name}' must be an object", style="yellow"
        )
        return

    for key, value in section_data.items():
        if hasattr(config, key):
            setattr(config, key, value)
        else:
            console.print(
                f"⚠️  Unknown config key in {section_name}: {key}", style="yellow"
            )


def build_config(file_config: Optional[Dict[str, Any]] = None) -> CheckerConfig:
    """Create a configuration from defaults, file contents and environment."""
    config = CheckerConfig()

    if file_config:
        for section_name in ("rule", "output", "logging", "discovery"):
            if section_name in file_config:
                apply_config_section(
                    getattr(config, section_name),
                    file_config[section_name],
                    section_name,
                )

    load_environment_overrides(config)
    return config


def load_config(config_path: Optional[Path] = None) -> CheckerConfig:
    """Load configuration from file and environment."""
    global _global_config

    if _global_config is not None and config_path is None:
        return _global_config

    config_file = config_path or find_config_file()
    file_config = load_config_file(config_file) if config_file else None
    config = build_config(file_config)

    validation_errors = validate_config_values(config)
    if validation_errors:
        console.print("⚠️  Configuration validation errors:", style="red")
        for error in validation_errors:
            console.print(f"  • {error}", style="red")
        console.print("Using default values for invalid settings.", style="yellow")
        config = _reset_invalid_sections(config, validation_errors)

    _global_config = config
    return config


def _reset_invalid_sections(config: CheckerConfig, errors: List[str]) -> CheckerConfig:
    defaults = CheckerConfig()
    for section_name in ("rule", "output", "logging", "discovery"):
        if any(error.startswith(section_name) for error in errors):
            setattr(config, section_name, getattr(defaults, section_name))
    return config


def get_config() -> CheckerConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _global_config
    _global_config = None


def create_sample_config() -> str:
    """Generate sample configuration."""
    return json.dumps(CheckerConfig().to_dict(), indent=2)
