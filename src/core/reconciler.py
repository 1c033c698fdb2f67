"""
Vulnerability result reconciliation.

Deduplicates backend findings, removes allow-listed names, groups what is
left by severity and counts the actionable entries.
"""

import logging
from typing import Iterable, Iterator, Mapping, Sequence

from core.models import Allowlist, ReconciledReport, SeverityLevel, Vulnerability

logger = logging.getLogger(__name__)


def deduplicate(vulnerabilities: Iterable[Vulnerability]) -> list[Vulnerability]:
    """
    Drop repeated findings, keeping the first occurrence of each identity.

    Identity is (name, feature name, feature version), so the same CVE in
    two different packages is kept twice.
    """
    seen: set[tuple[str, str, str]] = set()
    unique = []
    for vulnerability in vulnerabilities:
        if vulnerability.identity in seen:
            continue
        seen.add(vulnerability.identity)
        unique.append(vulnerability)
    return unique


def filter_allowlisted(
    vulnerabilities: Iterable[Vulnerability],
    allowlist: Allowlist,
    image_name: str,
) -> list[Vulnerability]:
    """Remove vulnerabilities whose name is allow-listed for the image."""
    ignored = allowlist.names_for(image_name)
    kept = [v for v in vulnerabilities if v.name not in ignored]
    return kept


def group_by_severity(vulnerabilities: Iterable[Vulnerability]) -> dict[SeverityLevel, list[Vulnerability]]:
    """
    Group vulnerabilities by severity level.

    Every level is present in the result, possibly with an empty list.
    Severities outside the enumeration land in UNKNOWN.
    """
    grouped: dict[SeverityLevel, list[Vulnerability]] = {
        level: [] for level in SeverityLevel.ordered_levels()
    }
    for vulnerability in vulnerabilities:
        grouped[vulnerability.level].append(vulnerability)
    return grouped


def iter_severities(
    grouped: Mapping[SeverityLevel, Sequence[Vulnerability]],
    min_severity: SeverityLevel = SeverityLevel.UNKNOWN,
) -> Iterator[SeverityLevel]:
    """Yield non-empty levels from min_severity upwards."""
    for level in SeverityLevel.ordered_levels():
        if level.rank >= min_severity.rank and grouped.get(level):
            yield level


def flatten(grouped: Mapping[SeverityLevel, Sequence[Vulnerability]]) -> list[Vulnerability]:
    """Concatenate groups back into one list, in enumeration order."""
    return [v for level in SeverityLevel.ordered_levels() for v in grouped.get(level, [])]


def count_actionable(
    grouped: Mapping[SeverityLevel, Sequence[Vulnerability]],
    min_severity: SeverityLevel = SeverityLevel.UNKNOWN,
    ignore_unfixed: bool = False,
) -> int:
    """
    Count vulnerabilities that count against the threshold.

    Args:
        grouped: Vulnerabilities per level
        min_severity: Lowest level that is counted
        ignore_unfixed: Only count vulnerabilities with a fix available

    Returns:
        Number of actionable vulnerabilities
    """
    total = 0
    for level in iter_severities(grouped, min_severity):
        if ignore_unfixed:
            total += sum(1 for v in grouped[level] if v.is_fixable)
        else:
            total += len(grouped[level])
    return total


def reconcile(
    vulnerabilities: Iterable[Vulnerability],
    allowlist: Allowlist,
    image_name: str,
    ignore_unfixed: bool = False,
    min_severity: SeverityLevel = SeverityLevel.UNKNOWN,
    layer_count: int = 0,
) -> ReconciledReport:
    """
    Run the full reconciliation pipeline for one image.

    Args:
        vulnerabilities: Raw backend findings
        allowlist: Names to ignore
        image_name: Image the per-image allow-list is keyed by
        ignore_unfixed: Only count vulnerabilities with a fix available
        min_severity: Lowest level counted against the threshold
        layer_count: Number of layers in the scanned image

    Returns:
        ReconciledReport with grouped findings and the actionable total
    """
    unique = deduplicate(vulnerabilities)
    kept = filter_allowlisted(unique, allowlist, image_name)
    if len(kept) != len(unique):
        logger.info(f"Ignoring {len(unique) - len(kept)} allow-listed vulnerabilities for {image_name}")

    grouped = group_by_severity(kept)
    return ReconciledReport(
        image_name=image_name,
        grouped=grouped,
        total=count_actionable(grouped, min_severity, ignore_unfixed),
        layer_count=layer_count,
    )


__all__ = [
    "deduplicate",
    "filter_allowlisted",
    "group_by_severity",
    "iter_severities",
    "flatten",
    "count_actionable",
    "reconcile",
]
