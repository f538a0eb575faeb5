"""
Test cases for console and JSON reporting
"""

import json

from rich.console import Console

from bloatjack import __version__
from bloatjack.collector.models import CollectionResult, ObservedStats
from bloatjack.compose.models import OptimizationResult
from bloatjack.errors import ContainerFetchError, StatsDeadlineExceeded
from bloatjack.report.console import ConsoleReporter, format_results
from bloatjack.report.json_reporter import JSONReporter


DB_RESULT = OptimizationResult(
    service_name="db",
    current_state={"mem_limit": "2g", "cpus": ""},
    suggestions={"mem_limit": "1024m", "cpus": "0.5"},
    env_changes={"POSTGRES_SHARED_BUFFERS": "256MB"},
    static_warnings=["CPU limit not defined."],
    priority=80,
    rule_id="mem-cap-db@1.0.0",
    action="Check connection pool size.",
)

WEB_STATIC = OptimizationResult(
    service_name="web",
    static_warnings=["Memory limit not defined."],
)


class TestFormatResults:
    """Test the plain-text report"""

    def test_no_results(self):
        assert format_results([]) == "No optimizations or static issues found."

    def test_full_report(self):
        report = format_results([WEB_STATIC, DB_RESULT])

        assert report.startswith("Optimization Report:\n=====================")
        assert report.index("--- Service: db ---") < report.index("--- Service: web ---")
        assert "  Triggered Rule: mem-cap-db@1.0.0 (Priority: 80)" in report
        assert "    - Set cpus: 0.5 (was: (not set))" in report
        assert "    - Set mem_limit: 1024m (was: 2g)" in report
        assert report.index("Set cpus") < report.index("Set mem_limit")
        assert "    - Set POSTGRES_SHARED_BUFFERS=256MB" in report
        assert "  Action Required: Check connection pool size." in report
        assert "    - Memory limit not defined." in report

    def test_only_empty_results(self):
        empty = OptimizationResult(service_name="idle")
        assert format_results([empty]) == "No optimizations or static issues found across all services."


class TestConsoleReporter:
    """Test rich console output"""

    def setup_method(self):
        self.console = Console(record=True, width=120, color_system=None)
        self.reporter = ConsoleReporter(console=self.console)

    def test_print_results(self):
        self.reporter.print_results([DB_RESULT])
        text = self.console.export_text()

        assert "🐳 db" in text
        assert "mem-cap-db@1.0.0 (Priority: 80)" in text
        assert "mem_limit: 1024m (was: 2g)" in text
        assert "POSTGRES_SHARED_BUFFERS=256MB" in text

    def test_no_findings(self):
        self.reporter.print_results([])
        assert "No optimizations or static issues found." in self.console.export_text()

    def test_collection_warnings(self):
        collection = CollectionResult(
            warnings=[ContainerFetchError("abcdef1234567890", "proj_db_1", OSError("boom"))],
            deadline_error=StatsDeadlineExceeded(5.0, 2, 1),
        )
        self.reporter.print_collection_warnings(collection)
        text = self.console.export_text()

        assert "proj_db_1" in text
        assert "timed out after 5s" in text
        assert "partial data" in text

    def test_quiet_summary(self):
        reporter = ConsoleReporter(quiet=True, console=self.console)
        reporter.print_summary([DB_RESULT], 3)
        assert self.console.export_text() == ""

    def test_export_text(self, tmp_path):
        path = tmp_path / "report.txt"
        self.reporter.export_text([DB_RESULT], str(path))
        assert path.read_text() == format_results([DB_RESULT])


class TestJSONReporter:
    """Test machine-readable output"""

    def test_structure(self):
        reporter = JSONReporter(ruleset_version="2025-06-01")
        data = json.loads(reporter.format_results_string([WEB_STATIC, DB_RESULT]))

        assert data["scan_info"]["tool"] == "bloatjack"
        assert data["scan_info"]["version"] == __version__
        assert data["scan_info"]["ruleset_version"] == "2025-06-01"
        assert data["scan_info"]["services_reported"] == 2
        assert [r["service"] for r in data["results"]] == ["db", "web"]

        db = data["results"][0]
        assert db["rule_id"] == "mem-cap-db@1.0.0"
        assert db["suggestions"]["mem_limit"] == {"value": "1024m", "current": "2g"}
        assert db["env_changes"] == {"POSTGRES_SHARED_BUFFERS": "256MB"}
        assert db["action"] == "Check connection pool size."
        assert "rule_id" not in data["results"][1]

    def test_collection_details(self):
        collection = CollectionResult(
            snapshots=[ObservedStats(container_id="a", container_name="proj_db_1")],
            warnings=[ContainerFetchError("b" * 64, "proj_web_1", OSError("boom"))],
            deadline_error=StatsDeadlineExceeded(1.0, 1, 1),
        )
        data = JSONReporter(pretty=False).format_results_string([], collection)
        parsed = json.loads(data)

        assert parsed["scan_info"]["containers_measured"] == 1
        assert parsed["scan_info"]["deadline_exceeded"] is True
        assert parsed["warnings"][0] == {
            "container_id": "b" * 64,
            "container_name": "proj_web_1",
            "error": "boom",
        }
        assert "timed out" in parsed["warnings"][1]["error"]

    def test_export_results(self, tmp_path):
        path = tmp_path / "out.json"
        JSONReporter().export_results([DB_RESULT], str(path))
        assert json.loads(path.read_text())["results"][0]["service"] == "db"
