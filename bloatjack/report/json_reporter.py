"""
JSON reporter for machine-readable output
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .. import __version__
from ..collector.models import CollectionResult
from ..compose.models import OptimizationResult


class JSONReporter:
    """JSON output formatter for optimization results"""

    def __init__(self, pretty: bool = True, ruleset_version: str = ""):
        self.pretty = pretty
        self.ruleset_version = ruleset_version

    def export_results(self, results: List[OptimizationResult], output_file: str,
                       collection: Optional[CollectionResult] = None) -> None:
        """Export results to a JSON file"""
        with open(output_file, "w") as f:
            f.write(self.format_results_string(results, collection))

    def format_results_string(self, results: List[OptimizationResult],
                              collection: Optional[CollectionResult] = None) -> str:
        """Format results as a JSON string"""
        output_data = self._format_results(results, collection)
        if self.pretty:
            return json.dumps(output_data, indent=2)
        return json.dumps(output_data)

    def _format_results(self, results: List[OptimizationResult],
                        collection: Optional[CollectionResult] = None) -> Dict[str, Any]:
        output_data: Dict[str, Any] = {
            "scan_info": {
                "tool": "bloatjack",
                "version": __version__,
                "ruleset_version": self.ruleset_version,
                "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
                "services_reported": len(results),
            },
            "results": [],
            "warnings": [],
        }

        for result in sorted(results, key=lambda r: r.service_name):
            result_data: Dict[str, Any] = {
                "service": result.service_name,
                "static_warnings": list(result.static_warnings),
            }
            if result.has_runtime_suggestions:
                result_data.update({
                    "rule_id": result.rule_id,
                    "priority": result.priority,
                    "suggestions": {
                        key: {"value": value, "current": result.current_state.get(key)}
                        for key, value in sorted(result.suggestions.items())
                    },
                    "env_changes": dict(sorted(result.env_changes.items())),
                })
                if result.action:
                    result_data["action"] = result.action
            output_data["results"].append(result_data)

        if collection is not None:
            output_data["scan_info"]["containers_measured"] = len(collection.snapshots)
            output_data["scan_info"]["deadline_exceeded"] = collection.deadline_exceeded
            for warning in collection.warnings:
                output_data["warnings"].append({
                    "container_id": warning.container_id,
                    "container_name": warning.container_name,
                    "error": str(warning.cause),
                })
            if collection.deadline_error is not None:
                output_data["warnings"].append({"error": str(collection.deadline_error)})

        return output_data
