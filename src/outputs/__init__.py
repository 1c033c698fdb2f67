"""Report formatters for reconciled scan results."""

from core.exceptions import ConfigurationException
from core.models import SeverityLevel
from outputs.base import ReportFormatter
from outputs.json_output import JSONFormatter
from outputs.standard import StandardFormatter
from outputs.table import TableFormatter

FORMATTERS = {
    formatter_class().supports_format(): formatter_class
    for formatter_class in (StandardFormatter, JSONFormatter, TableFormatter)
}


def get_formatter(name: str, min_severity: SeverityLevel = SeverityLevel.UNKNOWN) -> ReportFormatter:
    """
    Look up a formatter by format name.

    Raises:
        ConfigurationException: If no formatter supports the format
    """
    try:
        return FORMATTERS[name](min_severity)
    except KeyError:
        raise ConfigurationException(f"Unsupported output format: {name}") from None


__all__ = [
    "ReportFormatter",
    "StandardFormatter",
    "JSONFormatter",
    "TableFormatter",
    "get_formatter",
]
