"""
Command-line interface for bloatjack
"""

import json
import logging
from pathlib import Path
from typing import Optional
import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .collector.runtime import DockerRuntimeClient
from .collector.stats import DEFAULT_TIMEOUT, StatsCollector
from .compose.optimizer import apply_rules, facts_for_services, merge_results, static_analysis
from .compose.parser import extract_services, parse_compose_file
from .errors import BloatjackError, RuleLoadError
from .log import configure_logging
from .report.console import ConsoleReporter
from .report.json_reporter import JSONReporter
from .rules.engine import RuleEngine
from .rules.loader import get_ruleset_version, load_bundled_rules, load_rules_from_directory
from .rules.models import RuleSet

logger = logging.getLogger(__name__)

# Initialize typer app
app = typer.Typer(
    name="bloatjack",
    help="BloatJack - Cyber-surgeon that slims your containers",
    add_completion=False
)

console = Console()


def version_string() -> str:
    try:
        return f"bloatjack version {__version__} (ruleset {get_ruleset_version()})"
    except RuleLoadError:
        return f"bloatjack version {__version__}"


def version_callback(value: bool):
    if value:
        typer.echo(version_string())
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True,
        help="Show version and exit"
    )
):
    """Measure, explain and right-size container resources"""
    pass


def load_rule_set(rules_dir: Optional[str]) -> RuleSet:
    """Bundled rules unless a directory is given"""
    if rules_dir:
        return load_rules_from_directory(rules_dir)
    return load_bundled_rules()


@app.command()
def scan(
    compose_file: str = typer.Argument(..., help="docker-compose file to analyze"),
    rules_dir: Optional[str] = typer.Option(
        None, "--rules-dir", "-r", envvar="BLOATJACK_RULES_DIR",
        help="Directory of rule files (default: bundled rules)"
    ),
    output_format: str = typer.Option(
        "console", "--format", "-f",
        help="Output format: console, json"
    ),
    output_file: Optional[str] = typer.Option(
        None, "--output", "-o",
        help="Write the report to a file instead of stdout"
    ),
    timeout: float = typer.Option(
        DEFAULT_TIMEOUT, "--timeout", "-t", envvar="BLOATJACK_STATS_TIMEOUT",
        help="Seconds allowed for collecting container stats"
    ),
    max_workers: Optional[int] = typer.Option(
        None, "--max-workers", envvar="BLOATJACK_MAX_WORKERS",
        help="Bound on concurrent stats fetches (default: one per container)"
    ),
    no_stats: bool = typer.Option(
        False, "--no-stats",
        help="Skip the container runtime and run static analysis only"
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress progress output"
    ),
    debug: bool = typer.Option(
        False, "--debug", "-d",
        help="Enable debug logging"
    )
):
    """Scan a compose file and running containers, then suggest resource changes"""
    configure_logging(debug)

    if output_format not in ("console", "json"):
        console.print(f"Invalid format: {output_format}. Use: console, json")
        raise typer.Exit(1)

    progress = not quiet and output_format == "console"

    try:
        path = Path(compose_file).resolve()
        compose = parse_compose_file(path)
        services = extract_services(compose)
        if progress:
            console.print(f"🔍 Found {len(services)} services in {path.name}")

        rule_set = load_rule_set(rules_dir)
        engine = RuleEngine(rule_set)

        static_results = static_analysis(compose)

        collection = None
        facts = {}
        if not no_stats:
            with DockerRuntimeClient() as runtime:
                collector = StatsCollector(runtime, max_workers=max_workers)
                collection = collector.collect(timeout=timeout)
            facts = facts_for_services(services, collection.snapshots, compose)
            if progress:
                console.print(
                    f"📈 Fetched stats for {len(collection.snapshots)} containers, "
                    f"mapped {len(facts)} services"
                )

        for service_name, service_facts in facts.items():
            logger.debug("Facts for %s: %s", service_name, service_facts)

        runtime_results = apply_rules(engine, services, facts)
        results = merge_results(runtime_results, static_results)

    except BloatjackError as e:
        console.print(f"❌ Error: {e}")
        raise typer.Exit(1)

    if output_format == "json":
        reporter = JSONReporter(pretty=True, ruleset_version=rule_set.version)
        if output_file:
            reporter.export_results(results, output_file, collection)
            if progress:
                console.print(f"📁 JSON results exported to {output_file}")
        else:
            typer.echo(reporter.format_results_string(results, collection))
        return

    reporter = ConsoleReporter(quiet=quiet)
    if progress:
        reporter.print_rule_stats(engine.get_statistics())
    reporter.print_summary(results, len(services), collection)
    if collection is not None:
        reporter.print_collection_warnings(collection)
    reporter.print_results(results)

    if output_file:
        reporter.export_text(results, output_file)
        if progress:
            console.print(f"📁 Results exported to {output_file}")


@app.command()
def rules(
    rules_dir: Optional[str] = typer.Option(
        None, "--rules-dir", "-r", envvar="BLOATJACK_RULES_DIR",
        help="Directory containing rule files (default: bundled rules)"
    ),
    format: str = typer.Option(
        "table", "--format", "-f",
        help="Output format: table, json, ids"
    ),
    kind: Optional[str] = typer.Option(
        None, "--kind", "-k",
        help="Only rules whose selector targets this kind"
    )
):
    """List available rules"""
    try:
        rule_set = load_rule_set(rules_dir)
    except BloatjackError as e:
        console.print(f"❌ Error: {e}")
        raise typer.Exit(1)

    filtered_rules = list(rule_set.rules)
    if kind:
        filtered_rules = [r for r in filtered_rules if r.match.get("kind") in (kind, "*")]

    if not filtered_rules:
        console.print("No rules match the specified filters")
        raise typer.Exit(0)

    ordered = sorted(filtered_rules, key=lambda r: (-r.priority, r.id))

    if format == "table":
        title = f"Optimization Rules ({len(filtered_rules)} rules)"
        if rule_set.version:
            title += f" - ruleset {rule_set.version}"
        table = Table(title=title)
        table.add_column("ID", style="bold")
        table.add_column("Priority", justify="right")
        table.add_column("Match")
        table.add_column("Condition")
        table.add_column("Note")

        for rule in ordered:
            match_str = ", ".join(f"{k}={v}" for k, v in sorted(rule.match.items())) or "*"
            table.add_row(
                rule.id,
                str(rule.priority),
                match_str,
                rule.condition or "",
                rule.note or ""
            )

        console.print(table)

    elif format == "json":
        rules_data = [rule.model_dump(by_alias=True, exclude_none=True) for rule in ordered]
        typer.echo(json.dumps(rules_data, indent=2))

    elif format == "ids":
        for rule in sorted(filtered_rules, key=lambda r: r.id):
            typer.echo(rule.id)

    else:
        console.print(f"Invalid format: {format}. Use: table, json, ids")
        raise typer.Exit(1)


@app.command()
def validate(
    rules_dir: str = typer.Argument(..., help="Directory containing rule files")
):
    """Validate rule files"""
    try:
        rule_set = load_rules_from_directory(rules_dir)
    except BloatjackError as e:
        console.print(f"❌ {e}")
        raise typer.Exit(1)

    if len(rule_set) == 0:
        console.print(f"No rules found in {rules_dir}")
        raise typer.Exit(1)

    console.print(f"✅ {len(rule_set)} rules valid")


if __name__ == "__main__":
    app()
