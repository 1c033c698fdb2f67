"""
Centralized configuration constants for layerscan.

This module provides a single source of truth for configuration values
that are used across multiple modules, making them easier to update
and maintain.
"""

# ============================================================================
# Image Reference Defaults
# ============================================================================

DEFAULT_REGISTRY = "registry-1.docker.io"
"""Registry host used when a reference names no registry."""

DEFAULT_NAMESPACE = "library"
"""Organization prefix applied to single-segment (official) image names."""

DEFAULT_TAG = "latest"
"""Tag used when a reference carries neither tag nor digest."""

DIGEST_PREFIX = "sha256:"
"""Algorithm prefix stripped from digests when composing layer names."""

# ============================================================================
# Platform and Architecture
# ============================================================================

DEFAULT_PLATFORM = "linux/amd64"
"""Default container platform used to pick an entry from a manifest list."""

# ============================================================================
# Manifest Media Types
# ============================================================================

MEDIA_TYPE_MANIFEST_V2 = "application/vnd.docker.distribution.manifest.v2+json"
MEDIA_TYPE_MANIFEST_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"
MEDIA_TYPE_MANIFEST_V1 = "application/vnd.docker.distribution.manifest.v1+prettyjws"
MEDIA_TYPE_OCI_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
MEDIA_TYPE_OCI_INDEX = "application/vnd.oci.image.index.v1+json"

ACCEPTED_MANIFEST_TYPES = [
    MEDIA_TYPE_MANIFEST_V2,
    MEDIA_TYPE_MANIFEST_LIST,
    MEDIA_TYPE_MANIFEST_V1,
    MEDIA_TYPE_OCI_MANIFEST,
    MEDIA_TYPE_OCI_INDEX,
]
"""Manifest types sent in the Accept header, in preference order."""

SCHEMA_V2_TYPES = frozenset({MEDIA_TYPE_MANIFEST_V2, MEDIA_TYPE_OCI_MANIFEST})
MANIFEST_LIST_TYPES = frozenset({MEDIA_TYPE_MANIFEST_LIST, MEDIA_TYPE_OCI_INDEX})

EMPTY_LAYER_DIGEST = "sha256:a3ed95caeb02ffe68cdd9fd84406680ae93d633cb16422d00e8a7c22955b46d4"
"""Digest of the empty tar layer some builders emit for metadata-only steps."""

# ============================================================================
# Registry Authentication
# ============================================================================

MAX_AUTH_ATTEMPTS = 2
"""Upper bound on authentication cycles for a single manifest request."""

MAX_MANIFEST_LIST_DEPTH = 1
"""A manifest list may point at manifests, never at another list."""

# ============================================================================
# Clair Backend
# ============================================================================

CLAIR_DEFAULT_PORT = 6060
"""Port assumed when the Clair address does not carry one."""

CLAIR_LAYER_FORMAT = "Docker"
"""Layer format announced to Clair for every pushed layer."""

# ============================================================================
# Timeouts (in seconds)
# ============================================================================

DEFAULT_REGISTRY_TIMEOUT = 60
"""Timeout for registry manifest and token requests (1 minute)."""

DEFAULT_CLAIR_TIMEOUT = 60
"""Timeout for each Clair request or RPC (1 minute)."""

# ============================================================================
# Output
# ============================================================================

FORMAT_STANDARD = "standard"
FORMAT_JSON = "json"
FORMAT_TABLE = "table"

OUTPUT_FORMATS = [FORMAT_STANDARD, FORMAT_JSON, FORMAT_TABLE]
"""Supported report formats; the first one is the default."""

SEVERITY_STYLES = {
    "Defcon1": "bold red",
    "Critical": "bold red",
    "High": "red",
    "Medium": "yellow",
    "Low": "bright_blue",
    "Negligible": "bright_blue",
    "Unknown": "bright_white",
}
"""Mapping of severity names to rich styles used by the table report."""

# ============================================================================
# Exit Codes
# ============================================================================

EXIT_OK = 0
EXIT_THRESHOLD_EXCEEDED = 1
EXIT_FAILURE = 1
EXIT_SCAN_FAILED = 2
