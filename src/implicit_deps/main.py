import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel

from . import __version__
from .classifier import NoImplicitDependenciesRule
from .cli_config import (
    CheckerConfig,
    build_config,
    create_sample_config,
    get_config,
    load_config,
    load_config_file,
    parse_rule_options,
    validate_config_values,
)
from .discovery import discover_source_files
from .error_handling import ErrorCategory, ErrorContext, get_error_handler
from .reporting import CheckResult, FindingsReporter, output_json_results
from .structured_logging import configure_logging

EXIT_FINDINGS = 1
EXIT_ERRORS = 2

console = Console()


def build_rule_options(
    config: CheckerConfig,
    dev: bool,
    optional: bool,
    ignore: Tuple[str, ...],
):
    """Merge command line flags over configured rule defaults."""
    raw = {
        "dev": dev or config.rule.dev,
        "optional": optional or config.rule.optional,
        "ignore": list(config.rule.ignore) + list(ignore),
    }
    try:
        return parse_rule_options(raw)
    except ValueError as e:
        raise click.UsageError(f"Invalid rule options: {e}")


def run_check(files, rule: NoImplicitDependenciesRule) -> CheckResult:
    """
    Check every file independently and collect the findings.

    Manifest problems reported while checking are kept as warnings, once
    per distinct problem.
    """
    result = CheckResult()

    def collect_warning(context: ErrorContext) -> None:
        if context.category is ErrorCategory.MANIFEST:
            warning = context.describe()
            if warning not in result.warnings:
                result.warnings.append(warning)

    handler = get_error_handler()
    handler.add_listener(collect_warning)
    try:
        for file_path in files:
            try:
                result.findings.extend(rule.apply_to_path(file_path))
                result.files_checked += 1
            except ValueError as e:
                result.errors.append(str(e))
    finally:
        handler.remove_listener(collect_warning)
    return result


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.pass_context
def cli(ctx, version):
    """
    🔍 no-implicit-deps: find imports missing from package.json

    Reports modules that a JavaScript or TypeScript file imports but that
    are not declared as dependencies in the nearest package.json.
    """
    if version:
        console.print(f"no-implicit-deps version {__version__}", style="bold blue")
        ctx.exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@cli.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True))
@click.option(
    "--dev",
    is_flag=True,
    help="Check devDependencies instead of peerDependencies",
)
@click.option(
    "--optional",
    is_flag=True,
    help="Also accept packages listed in optionalDependencies",
)
@click.option(
    "--ignore",
    "-i",
    multiple=True,
    help="Package name to never report (repeatable)",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Configuration file (JSON, YAML or TOML)",
)
@click.option(
    "--output-format",
    type=click.Choice(["console", "json"], case_sensitive=False),
    default=None,
    help="Output format for results (default from config or console)",
)
@click.option(
    "--output-file",
    "-o",
    type=click.Path(dir_okay=False),
    help="Save results to file (JSON format only)",
)
@click.option("--quiet", "-q", is_flag=True, help="Only print one line per finding")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option(
    "--no-fail",
    is_flag=True,
    help="Exit with status 0 even when implicit dependencies are found",
)
def check(
    paths: Tuple[str, ...],
    dev: bool,
    optional: bool,
    ignore: Tuple[str, ...],
    config_file: Optional[str],
    output_format: Optional[str],
    output_file: Optional[str],
    quiet: bool,
    verbose: bool,
    no_fail: bool,
) -> None:
    """
    Check source files for imports not listed in package.json.

    Directories are searched recursively for .js/.jsx/.mjs/.cjs/.ts/.tsx
    files, skipping node_modules.

    Examples:

      no-implicit-deps check src/

      no-implicit-deps check src/index.ts --dev --ignore '#'

      no-implicit-deps check src --output-format json -o results.json
    """
    config = load_config(Path(config_file) if config_file else None)
    configure_logging(
        "DEBUG" if verbose else config.logging.log_level, config.logging.enable_json
    )

    options = build_rule_options(config, dev, optional, ignore)
    final_format = (output_format or config.output.output_format).lower()
    final_output_file = output_file or config.output.output_file
    fail_on_findings = config.output.fail_on_findings and not no_fail

    if final_output_file and final_format != "json":
        raise click.UsageError("Output file can only be used with JSON format")

    files = discover_source_files(
        paths, config.discovery.extensions, config.discovery.exclude_dirs
    )
    if not files:
        if not quiet:
            console.print("⚠️  No source files found to check.", style="yellow")
        return

    result = run_check(files, NoImplicitDependenciesRule(options))

    if final_format == "json":
        output_json_results(result, final_output_file)
    elif quiet:
        for finding in result.findings:
            click.echo(
                f"{finding.file_name}:{finding.line}:{finding.column}: {finding.message}"
            )
        for error in result.errors:
            click.echo(f"error: {error}", err=True)
        for warning in result.warnings:
            click.echo(f"warning: {warning}", err=True)
    else:
        FindingsReporter(console).print_results(result, verbose=verbose)

    if result.errors:
        sys.exit(EXIT_ERRORS)
    if result.has_findings and fail_on_findings:
        sys.exit(EXIT_FINDINGS)


@cli.command()
def info():
    """Show the rule description, its options and supported file types."""
    metadata = NoImplicitDependenciesRule.metadata
    extensions = ", ".join(CheckerConfig().discovery.extensions)
    info_text = f"""
[bold blue]📋 Rule:[/bold blue] {metadata['ruleName']}

{metadata['description']}.
{metadata['descriptionDetails']}

[bold blue]⚙️  Options:[/bold blue]
{metadata['optionsDescription']}

[bold blue]📁 Supported File Types:[/bold blue]
{extensions}

[bold blue]💡 Examples:[/bold blue]
  no-implicit-deps check src/
  no-implicit-deps check src/ --dev --optional
  no-implicit-deps check src/ --ignore '#' --ignore internal-alias
"""
    console.print(Panel(info_text, title="no-implicit-deps", border_style="blue"))


@cli.group()
def config():
    """Manage configuration files."""


@config.command("init")
@click.argument(
    "path", type=click.Path(dir_okay=False), default=".no-implicit-deps.json"
)
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def config_init(path: str, force: bool):
    """Write a sample configuration file."""
    target = Path(path)
    if target.exists() and not force:
        raise click.ClickException(
            f"{target} already exists (use --force to overwrite)"
        )
    target.write_text(create_sample_config() + "\n", encoding="utf-8")
    console.print(f"✅ Sample configuration written to {target}", style="green")


@config.command("show")
def config_show():
    """Show the effective configuration."""
    console.print_json(data=get_config().to_dict())


@config.command("validate")
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
def config_validate(config_file: str):
    """Validate a configuration file."""
    file_config = load_config_file(Path(config_file))
    if file_config is None:
        raise click.ClickException(f"Could not load configuration from {config_file}")

    errors = validate_config_values(build_config(file_config))
    if errors:
        console.print("❌ Configuration is invalid:", style="red")
        for error in errors:
            console.print(f"  • {error}", style="red")
        sys.exit(1)

    console.print("✅ Configuration is valid.", style="green")


if __name__ == "__main__":
    cli()
