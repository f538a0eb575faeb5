"""
Console reporter for terminal output with colors and formatting
"""

from typing import Any, Dict, List, Optional
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.text import Text
from rich import box

from ..collector.models import CollectionResult
from ..compose.models import OptimizationResult

NOT_SET = "(not set)"


def format_results(results: List[OptimizationResult]) -> str:
    """Plain-text optimization report, services sorted by name"""
    if not results:
        return "No optimizations or static issues found."

    lines = ["Optimization Report:", "====================="]
    found_issues = False

    for result in sorted(results, key=lambda r: r.service_name):
        lines.append(f"\n--- Service: {result.service_name} ---")
        has_content = False

        if result.static_warnings:
            lines.append("  Static Analysis Warnings:")
            lines.extend(f"    - {warning}" for warning in result.static_warnings)
            has_content = True

        if result.has_runtime_suggestions:
            lines.append(f"  Triggered Rule: {result.rule_id} (Priority: {result.priority})")
            has_content = True

            if result.suggestions:
                lines.append("  Suggested Changes:")
                for key in sorted(result.suggestions):
                    current = result.current_state.get(key) or NOT_SET
                    lines.append(f"    - Set {key}: {result.suggestions[key]} (was: {current})")

            if result.env_changes:
                lines.append("  Environment Variable Changes:")
                for key in sorted(result.env_changes):
                    lines.append(f"    - Set {key}={result.env_changes[key]}")

            if result.action:
                lines.append(f"  Action Required: {result.action}")

        if has_content:
            found_issues = True
        else:
            lines.append("  No optimizations or static warnings found for this service.")

    if not found_issues:
        return "No optimizations or static issues found across all services."

    return "\n".join(lines) + "\n"


class ConsoleReporter:
    """Rich console reporter for optimization results"""

    def __init__(self, use_colors: bool = True, quiet: bool = False,
                 console: Optional[Console] = None):
        self.console = console or Console(force_terminal=use_colors, no_color=not use_colors)
        self.quiet = quiet

    def print_summary(self, results: List[OptimizationResult], services_scanned: int,
                      collection: Optional[CollectionResult] = None) -> None:
        """Print summary of the scan"""
        if self.quiet:
            return

        table = Table(title="📊 Scan Summary", box=box.ROUNDED)
        table.add_column("Metric", style="bold")
        table.add_column("Count", justify="right")

        table.add_row("Services Scanned", str(services_scanned))
        if collection is not None:
            table.add_row("Containers Measured", str(len(collection.snapshots)))
        table.add_row("", "")  # Separator
        table.add_row(
            "Services With Suggestions",
            Text(str(sum(1 for r in results if r.has_runtime_suggestions)), style="yellow"),
        )
        table.add_row(
            "Services With Static Warnings",
            Text(str(sum(1 for r in results if r.static_warnings)), style="red"),
        )

        self.console.print(table)
        self.console.print()

    def print_results(self, results: List[OptimizationResult]) -> None:
        """Print one panel per service"""
        if not results:
            self.print_no_findings()
            return

        for result in sorted(results, key=lambda r: r.service_name):
            self._print_result(result)

    def _print_result(self, result: OptimizationResult) -> None:
        body = Text()

        if result.static_warnings:
            body.append("Static Analysis Warnings\n", style="bold red")
            for warning in result.static_warnings:
                body.append(f"  ⚠ {warning}\n")

        if result.has_runtime_suggestions:
            body.append("Triggered Rule: ", style="bold")
            body.append(f"{result.rule_id} (Priority: {result.priority})\n")

            if result.suggestions:
                body.append("Suggested Changes\n", style="bold yellow")
                for key in sorted(result.suggestions):
                    current = result.current_state.get(key) or NOT_SET
                    body.append(f"  • {key}: ")
                    body.append(result.suggestions[key], style="green")
                    body.append(f" (was: {current})\n", style="dim")

            if result.env_changes:
                body.append("Environment Variable Changes\n", style="bold yellow")
                for key in sorted(result.env_changes):
                    body.append(f"  • {key}=")
                    body.append(f"{result.env_changes[key]}\n", style="green")

            if result.action:
                body.append("Action Required: ", style="bold magenta")
                body.append(f"{result.action}\n")

        if not body.plain:
            body.append("No optimizations or static warnings found for this service.", style="dim")
        body.rstrip()

        self.console.print(Panel(
            body,
            title=f"🐳 {result.service_name}",
            title_align="left",
            border_style="blue",
        ))

    def print_no_findings(self) -> None:
        """Print message when nothing was found"""
        if not self.quiet:
            self.console.print("\n✅ [green]No optimizations or static issues found.[/green]")

    def print_collection_warnings(self, collection: CollectionResult) -> None:
        """Print per-container failures and the deadline notice"""
        if collection.warnings:
            self.console.print(
                f"\n⚠️  [bold yellow]Encountered {len(collection.warnings)} errors while fetching stats[/bold yellow]"
            )
            for warning in collection.warnings:
                self.console.print(f"   - {warning}")

        if collection.deadline_error is not None:
            self.console.print(f"\n⏱️  [bold red]{collection.deadline_error}[/bold red]")
            self.console.print("   [dim]Suggestions below are based on partial data.[/dim]")

    def print_rule_stats(self, engine_stats: Dict[str, Any]) -> None:
        """Print rule engine statistics"""
        if self.quiet:
            return

        total_rules = engine_stats.get("total_rules", 0)
        version = engine_stats.get("version")
        kind_counts = engine_stats.get("kind_counts", {})

        header = f"\n📋 Loaded {total_rules} optimization rules"
        if version:
            header += f" (ruleset {version})"
        self.console.print(header)

        if kind_counts:
            kind_text = [f"{count} {kind}" for kind, count in sorted(kind_counts.items()) if count > 0]
            self.console.print(f"     {' • '.join(kind_text)}")

    def export_text(self, results: List[OptimizationResult], file_path: str) -> None:
        """Export results to a plain text file"""
        with open(file_path, "w") as f:
            f.write(format_results(results))
