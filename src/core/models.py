"""
Domain models for image resolution and vulnerability reconciliation.

This module defines the core data structures used throughout the application.
All models are immutable (frozen dataclasses) to prevent accidental mutation.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping, Optional

from constants import DEFAULT_PLATFORM, DIGEST_PREFIX


class SeverityLevel(str, Enum):
    """Vulnerability severity levels as reported by Clair, lowest first."""

    UNKNOWN = "Unknown"
    NEGLIGIBLE = "Negligible"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"
    DEFCON1 = "Defcon1"

    @classmethod
    def ordered_levels(cls) -> list["SeverityLevel"]:
        """Return severity levels in enumeration order (Unknown first)."""
        return list(cls)

    @property
    def rank(self) -> int:
        """Position of this level in the enumeration order."""
        return self.ordered_levels().index(self)

    @classmethod
    def from_string(cls, value: Any) -> "SeverityLevel":
        """
        Map a backend severity string onto the enumeration.

        Matching ignores case; non-string values are compared by their
        string form and anything unrecognized becomes UNKNOWN.
        """
        if value:
            normalized = str(value).strip().lower()
            for level in cls:
                if level.value.lower() == normalized:
                    return level
        return cls.UNKNOWN


@dataclass(frozen=True)
class Platform:
    """Target operating system and CPU architecture."""

    os: str = "linux"
    architecture: str = "amd64"

    @classmethod
    def parse(cls, value: str = DEFAULT_PLATFORM) -> "Platform":
        """Parse an ``os/arch`` string; a missing half keeps its default."""
        os_part, _, arch_part = value.partition("/")
        return cls(
            os=os_part or cls.os,
            architecture=arch_part or cls.architecture,
        )

    def __str__(self) -> str:
        return f"{self.os}/{self.architecture}"


@dataclass(frozen=True)
class ImageReference:
    """
    Registry coordinates of an image.

    Attributes:
        registry: Registry host, including the port when one was given
        repository: Repository path (e.g. "library/nginx")
        tag: Tag name
        digest: Content digest; when set it takes precedence over the tag
    """

    registry: str
    repository: str
    tag: str
    digest: Optional[str] = None

    @property
    def reference(self) -> str:
        """Tag or digest used in the manifest URL."""
        return self.digest or self.tag

    def with_digest(self, digest: str) -> "ImageReference":
        """Return a copy pointing at a specific manifest digest."""
        return replace(self, digest=digest)

    def __str__(self) -> str:
        separator = "@" if self.digest else ":"
        return f"{self.registry}/{self.repository}{separator}{self.reference}"


def trim_digest(digest: Optional[str]) -> str:
    """Strip the algorithm prefix from a digest."""
    if not digest:
        return ""
    return digest.replace(DIGEST_PREFIX, "", 1)


@dataclass(frozen=True)
class Layer:
    """
    One filesystem layer of an image.

    Attributes:
        digest: Blob digest as listed in the manifest
        name: Ancestry digest submitted to the scan backend
        parent_name: Name of the layer directly below, None for the base layer
    """

    digest: str
    name: str
    parent_name: Optional[str] = None


@dataclass(frozen=True)
class ManifestListEntry:
    """A per-platform pointer inside a manifest list."""

    digest: str
    media_type: str
    platform: Platform


@dataclass(frozen=True)
class Manifest:
    """
    Decoded image manifest.

    Attributes:
        schema_version: 1 or 2
        media_type: Content type the registry declared for the body
        layers: Layers in base-first order
        config_digest: Image config digest (schema 2 only)
    """

    schema_version: int
    media_type: str
    layers: tuple[Layer, ...]
    config_digest: Optional[str] = None


@dataclass(frozen=True)
class ResolvedImage:
    """
    An image whose manifest has been fetched and decoded.

    Attributes:
        reference: Parsed reference the image was resolved from
        registry_url: Registry API base URL ("https://host/v2")
        manifest: Decoded manifest
        authorization: Authorization header value the backend should use
            to fetch blobs, if the registry required one
    """

    reference: ImageReference
    registry_url: str
    manifest: Manifest
    authorization: Optional[str] = None

    @property
    def layers(self) -> tuple[Layer, ...]:
        return self.manifest.layers

    @property
    def name(self) -> str:
        """Repository name, also used as the Clair ancestry name."""
        return self.reference.repository

    def blob_path(self, layer: Layer) -> str:
        """URL from which the backend can download a layer blob."""
        return "/".join([self.registry_url, self.reference.repository, "blobs", layer.digest])


@dataclass(frozen=True)
class Vulnerability:
    """
    A single finding reported by the scan backend.

    Attributes:
        name: Vulnerability identifier (e.g. "CVE-2014-9471")
        namespace: Vulnerability namespace (e.g. "debian:8")
        description: Free-form description
        link: Advisory URL
        severity: Severity string exactly as reported
        fixed_by: Version that fixes the issue, if any
        feature_name: Package the vulnerability was found in
        feature_version: Installed version of that package
    """

    name: str
    namespace: str = ""
    description: str = ""
    link: str = ""
    severity: str = SeverityLevel.UNKNOWN.value
    fixed_by: Optional[str] = None
    feature_name: str = ""
    feature_version: str = ""

    @property
    def identity(self) -> tuple[str, str, str]:
        """Key used to collapse duplicate findings."""
        return (self.name, self.feature_name, self.feature_version)

    @property
    def level(self) -> SeverityLevel:
        return SeverityLevel.from_string(self.severity)

    @property
    def is_fixable(self) -> bool:
        return bool(self.fixed_by)

    def to_dict(self) -> dict[str, str]:
        """Convert to the field names Clair uses, for JSON output."""
        return {
            "Name": self.name,
            "NamespaceName": self.namespace,
            "Description": self.description,
            "Link": self.link,
            "Severity": self.severity,
            "FixedBy": self.fixed_by or "",
            "FeatureName": self.feature_name,
            "FeatureVersion": self.feature_version,
        }


@dataclass(frozen=True)
class Allowlist:
    """
    Vulnerability names deliberately excluded from the report.

    Attributes:
        general: Names ignored for every image
        images: Names ignored per image, keyed by image name
    """

    general: frozenset[str] = frozenset()
    images: Mapping[str, frozenset[str]] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "Allowlist":
        return cls()

    def names_for(self, image_name: str) -> frozenset[str]:
        """
        All names ignored for an image.

        Official images are also looked up by their short name, so
        "library/nginx" matches an entry keyed "nginx".
        """
        names = set(self.general)
        names.update(self.images.get(image_name, frozenset()))
        short_name = image_name.split("/", 1)[1] if image_name.startswith("library/") else None
        if short_name:
            names.update(self.images.get(short_name, frozenset()))
        return frozenset(names)

    def is_allowed(self, vulnerability_name: str, image_name: str) -> bool:
        return vulnerability_name in self.names_for(image_name)


@dataclass(frozen=True)
class ReconciledReport:
    """
    Vulnerabilities of one image after deduplication and filtering.

    Attributes:
        image_name: Name the allow-list was matched against
        grouped: Vulnerabilities per severity level, first-seen order
        total: Actionable vulnerability count compared with the threshold
        layer_count: Number of layers in the scanned image
    """

    image_name: str
    grouped: Mapping[SeverityLevel, list[Vulnerability]]
    total: int
    layer_count: int = 0

    def counts(self) -> dict[SeverityLevel, int]:
        """Number of vulnerabilities per level, for every level."""
        return {
            level: len(self.grouped.get(level, []))
            for level in SeverityLevel.ordered_levels()
        }

    @property
    def found(self) -> int:
        """All vulnerabilities left after filtering, regardless of cutoff."""
        return sum(self.counts().values())
