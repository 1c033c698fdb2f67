"""
JSON report formatter.
"""

import json
from typing import Any, TextIO

from constants import FORMAT_JSON
from core.models import ReconciledReport
from core.reconciler import iter_severities
from outputs.base import ReportFormatter


class JSONFormatter(ReportFormatter):
    """
    Machine-readable report.

    Shape: {"LayerCount": n, "Vulnerabilities": {"High": [...], ...}} with
    only the levels at or above the cutoff that have entries.
    """

    def supports_format(self) -> str:
        return FORMAT_JSON

    def to_dict(self, report: ReconciledReport) -> dict[str, Any]:
        return {
            "LayerCount": report.layer_count,
            "Vulnerabilities": {
                level.value: [v.to_dict() for v in report.grouped[level]]
                for level in iter_severities(report.grouped, self.min_severity)
            },
        }

    def render(self, report: ReconciledReport, stream: TextIO) -> None:
        json.dump(self.to_dict(report), stream)
        stream.write("\n")
