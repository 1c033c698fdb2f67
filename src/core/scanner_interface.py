"""
Scan backend interface.

Defines the contract for vulnerability scanning backends, so the two Clair
protocol dialects can be tried in order without type-switching on a version.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable

from core.models import ResolvedImage, SeverityLevel, Vulnerability


class ScanBackend(ABC):
    """
    Abstract base class for vulnerability scanning backends.

    Implementations submit an image's layers and return the findings,
    normalized to Vulnerability records.
    """

    @abstractmethod
    def name(self) -> str:
        """
        Return the backend name.

        Returns:
            Backend identifier used in logs and errors (e.g. "clair-v1")
        """
        pass

    @abstractmethod
    def analyze(self, image: ResolvedImage) -> list[Vulnerability]:
        """
        Submit an image's layers and collect its vulnerabilities.

        Args:
            image: Resolved image with its base-first layer list

        Returns:
            Vulnerabilities in backend order; an empty list is a success

        Raises:
            BackendUnreachable: If the transport cannot connect
            BackendRejected: If the backend answers with an error
        """
        pass


def flatten_features(features: Iterable[Any], field_names: dict[str, str]) -> list[Vulnerability]:
    """
    Flatten a feature -> vulnerabilities structure.

    Each vulnerability gets the owning feature's name and version attached.
    Works for both decoded JSON dicts and protobuf messages: ``field_names``
    maps our attribute names onto the source's field names.

    Args:
        features: Feature records
        field_names: Source field names for "features.name", "features.version",
            "features.vulnerabilities" and each Vulnerability attribute

    Returns:
        Flat list of Vulnerability records
    """

    def read(record: Any, key: str) -> Any:
        source_key = field_names[key]
        if isinstance(record, dict):
            return record.get(source_key)
        return getattr(record, source_key, None)

    vulnerabilities = []
    for feature in features or []:
        feature_name = read(feature, "feature_name") or ""
        feature_version = read(feature, "feature_version") or ""
        for item in read(feature, "vulnerabilities") or []:
            vulnerabilities.append(
                Vulnerability(
                    name=read(item, "name") or "",
                    namespace=read(item, "namespace") or "",
                    description=read(item, "description") or "",
                    link=read(item, "link") or "",
                    severity=str(read(item, "severity") or SeverityLevel.UNKNOWN.value),
                    fixed_by=read(item, "fixed_by") or None,
                    feature_name=feature_name,
                    feature_version=feature_version,
                )
            )
    return vulnerabilities


__all__ = [
    "ScanBackend",
    "flatten_features",
]
