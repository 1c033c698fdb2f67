"""
Tabular report formatter using rich.
"""

from typing import TextIO

from rich.console import Console
from rich.table import Table
from rich.text import Text

from constants import FORMAT_TABLE, SEVERITY_STYLES
from core.models import ReconciledReport, SeverityLevel
from core.reconciler import iter_severities
from outputs.base import ReportFormatter

COLUMNS = ["Severity", "Name", "FeatureName", "FeatureVersion", "FixedBy", "Description", "Link"]


def severity_text(severity: str) -> Text:
    """Severity label coloured by level; unknown values use the Unknown style."""
    style = SEVERITY_STYLES.get(severity, SEVERITY_STYLES[SeverityLevel.UNKNOWN.value])
    return Text(severity, style=style)


class TableFormatter(ReportFormatter):
    """Counts per severity followed by a table of vulnerabilities."""

    def supports_format(self) -> str:
        return FORMAT_TABLE

    def build_table(self, report: ReconciledReport) -> Table:
        table = Table(show_lines=True)
        for column in COLUMNS:
            table.add_column(column, justify="left", overflow="fold")

        for level in iter_severities(report.grouped, self.min_severity):
            for v in report.grouped[level]:
                table.add_row(
                    severity_text(v.severity),
                    v.name,
                    v.feature_name,
                    v.feature_version,
                    v.fixed_by or "",
                    v.description,
                    v.link,
                )
        return table

    def render(self, report: ReconciledReport, stream: TextIO) -> None:
        self.write_summary(report, stream)
        table = self.build_table(report)
        if table.row_count:
            Console(file=stream).print(table)
