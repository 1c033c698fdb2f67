"""
Plain text report formatter.
"""

from typing import TextIO

from constants import FORMAT_STANDARD
from core.models import ReconciledReport
from core.reconciler import iter_severities
from outputs.base import ReportFormatter

SEPARATOR = "-" * 41


class StandardFormatter(ReportFormatter):
    """Counts per severity followed by one block per vulnerability."""

    def supports_format(self) -> str:
        return FORMAT_STANDARD

    def render(self, report: ReconciledReport, stream: TextIO) -> None:
        stream.write(f"Found {report.found} vulnerabilities\n")
        self.write_summary(report, stream)

        for level in iter_severities(report.grouped, self.min_severity):
            for v in report.grouped[level]:
                stream.write(
                    f"{v.name}: [{v.severity}] \n"
                    f"Found in: {v.feature_name} [{v.feature_version}]\n"
                    f"Fixed By: {v.fixed_by or ''}\n"
                    f"{v.description}\n"
                    f"{v.link}\n"
                )
                stream.write(f"{SEPARATOR}\n")
