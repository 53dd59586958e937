"""
Reporting and output formatting for check results.

Provides color-coded console output using Rich library, and JSON export.
"""

import json
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .reference import Finding


@dataclass
class CheckResult:
    """Outcome of checking a set of files."""

    files_checked: int = 0
    findings: List[Finding] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def has_findings(self) -> bool:
        return len(self.findings) > 0

    def findings_by_file(self) -> Dict[str, List[Finding]]:
        grouped: Dict[str, List[Finding]] = defaultdict(list)
        for finding in self.findings:
            grouped[finding.file_name].append(finding)
        return dict(grouped)

    def to_dict(self) -> dict:
        return {
            "files_checked": self.files_checked,
            "total_findings": len(self.findings),
            "findings": [finding.to_dict() for finding in self.findings],
            "errors": self.errors,
            "warnings": self.warnings,
        }


class FindingsReporter:
    """Formats and displays check results."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_results(self, result: CheckResult, verbose: bool = False) -> None:
        """
        Print check results in a user-friendly format.

        Args:
            result: The results to display
            verbose: Also list the offending package names
        """
        self.console.print()
        self.console.print(
            Panel(
                f"🔍 Checked {result.files_checked} file(s)",
                title="[bold blue]no-implicit-dependencies[/bold blue]",
                border_style="blue",
            )
        )

        if result.errors:
            self._print_errors(result.errors)
        if result.warnings:
            self._print_warnings(result.warnings)

        for file_name, findings in result.findings_by_file().items():
            self._print_file_findings(file_name, findings)

        self._print_footer(result, verbose)

    def _print_file_findings(self, file_name: str, findings: List[Finding]) -> None:
        table = Table(title=f"📁 {file_name}", box=box.ROUNDED, title_style="bold cyan")
        table.add_column("Location", style="dim", no_wrap=True)
        table.add_column("Package", style="bold yellow")
        table.add_column("Message")

        for finding in findings:
            table.add_row(
                f"{finding.line}:{finding.column}",
                finding.package_name,
                finding.message,
            )

        self.console.print(table)

    def _print_errors(self, errors: List[str]) -> None:
        self.console.print("❌ Errors:", style="bold red")
        for error in errors:
            self.console.print(f"   • {error}", style="red")
        self.console.print()

    def _print_warnings(self, warnings: List[str]) -> None:
        self.console.print("⚠️  Warnings:", style="bold yellow")
        for warning in warnings:
            self.console.print(f"   • {warning}", style="yellow")
        self.console.print()

    def _print_footer(self, result: CheckResult, verbose: bool) -> None:
        if not result.has_findings:
            self.console.print("✅ No implicit dependencies found.", style="green")
            return

        files_with_findings = len(result.findings_by_file())
        self.console.print(
            f"⚠️  {len(result.findings)} implicit dependenc"
            f"{'y' if len(result.findings) == 1 else 'ies'} "
            f"in {files_with_findings} file(s)",
            style="bold yellow",
        )
        if verbose:
            packages = sorted({f.package_name for f in result.findings})
            self.console.print(
                "   Add these packages to package.json or to the ignore list: "
                + ", ".join(packages),
                style="dim",
            )


def output_json_results(result: CheckResult, output_file: Optional[str] = None) -> str:
    """Export results as JSON, to a file or stdout."""
    json_output = json.dumps(result.to_dict(), indent=2, ensure_ascii=False)

    if output_file:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(json_output)
        Console(stderr=True).print(f"✅ Results saved to {output_file}", style="green")
    else:
        print(json_output)
    return json_output
