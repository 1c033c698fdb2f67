"""
Base report formatter interface.

Defines the contract that all report formatters must implement.
"""

from abc import ABC, abstractmethod
from typing import TextIO

from core.models import ReconciledReport, SeverityLevel
from core.reconciler import iter_severities


class ReportFormatter(ABC):
    """
    Abstract base class for report formatters.

    All formatters (standard text, table, JSON) must implement this interface.
    """

    def __init__(self, min_severity: SeverityLevel = SeverityLevel.UNKNOWN):
        """
        Initialize formatter.

        Args:
            min_severity: Lowest severity whose vulnerabilities are listed
        """
        self.min_severity = min_severity

    @abstractmethod
    def render(self, report: ReconciledReport, stream: TextIO) -> None:
        """
        Write a report.

        Args:
            report: Reconciled scan report
            stream: Text stream to write to
        """
        pass

    @abstractmethod
    def supports_format(self) -> str:
        """
        Return the format this formatter supports.

        Returns:
            Format identifier (e.g., "standard", "json")
        """
        pass

    def write_summary(self, report: ReconciledReport, stream: TextIO) -> None:
        """Per-level counts for every non-empty level."""
        for level in iter_severities(report.grouped):
            stream.write(f"{level.value}: {len(report.grouped[level])}\n")
        stream.write("\n")
