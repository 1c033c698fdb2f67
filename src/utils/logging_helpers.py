"""
Logging helper utilities for the layerscan CLI.

Formats fatal error reports, including the chain of underlying causes, and
the one-line scan outcome compared against the threshold.
"""

import logging
from typing import List, Optional

from core.models import ReconciledReport


def error_messages(error: BaseException) -> List[str]:
    """
    Messages of an exception and every exception it was raised from.

    Examples:
        >>> try:
        ...     raise RuntimeError("token endpoint returned 401") from ConnectionError("reset")
        ... except RuntimeError as e:
        ...     error_messages(e)
        ['token endpoint returned 401', 'caused by: reset']
    """
    messages = [str(error)]
    cause = error.__cause__
    while cause is not None:
        messages.append(f"caused by: {cause}")
        cause = cause.__cause__
    return messages


def log_error_section(
    title: str,
    messages: List[str],
    logger: Optional[logging.Logger] = None,
    width: int = 60
) -> None:
    """
    Log an error block framed by separator lines.

    Args:
        title: First line of the block
        messages: Lines following the title; empty strings give blank lines
        logger: Logger instance (defaults to root logger if not provided)
        width: Width of separator line in characters
    """
    if logger is None:
        logger = logging.getLogger()

    separator = "=" * width
    logger.error(separator)
    logger.error(title)
    for message in messages:
        logger.error(message or "")
    logger.error(separator)


def log_scan_outcome(
    report: ReconciledReport,
    threshold: int,
    logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Log how a report compares with the threshold.

    Returns:
        True if the actionable count exceeds the threshold
    """
    if logger is None:
        logger = logging.getLogger()

    exceeded = report.total > threshold
    if exceeded:
        logger.warning(
            f"{report.image_name}: {report.total} actionable vulnerabilities "
            f"exceed the threshold of {threshold}"
        )
    else:
        logger.info(
            f"{report.image_name}: {report.total} actionable of {report.found} "
            f"vulnerabilities, threshold {threshold}"
        )
    return exceeded
