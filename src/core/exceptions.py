"""
Exception hierarchy for layerscan.

Provides a standardized exception hierarchy for consistent error handling
across the application. All exceptions inherit from LayerscanException.
"""

from typing import Optional


class LayerscanException(Exception):
    """Base exception for all layerscan errors."""
    pass


class ReferenceException(LayerscanException):
    """Image reference could not be interpreted."""
    pass


class MalformedReference(ReferenceException):
    """No repository name could be isolated from an image reference."""

    def __init__(self, reference: str, reason: str = "no repository name found"):
        """
        Initialize malformed reference exception.

        Args:
            reference: Raw reference string as supplied by the user
            reason: Why parsing failed
        """
        self.reference = reference
        self.reason = reason
        super().__init__(f"Malformed image reference {reference!r}: {reason}")


class RegistryException(LayerscanException):
    """Registry protocol exchange failed."""
    pass


class AuthChallengeUnparseable(RegistryException):
    """The WWW-Authenticate header did not match the bearer grammar."""

    def __init__(self, header: Optional[str]):
        self.header = header
        if header:
            super().__init__(f"Can't parse WWW-Authenticate challenge: {header}")
        else:
            super().__init__("Registry returned 401 without a WWW-Authenticate challenge")


class TokenMissing(RegistryException):
    """The token endpoint answered without a token or access_token field."""
    pass


class AuthenticationFailed(RegistryException):
    """Authentication did not succeed within the bounded retry count."""
    pass


class PlatformNotFound(RegistryException):
    """No manifest list entry matches the requested platform."""

    def __init__(self, os: str, architecture: str):
        self.os = os
        self.architecture = architecture
        super().__init__(
            f"Did not find the specified platform (os: {os}, arch: {architecture}) "
            "in the manifest list"
        )


class RegistryRequestError(RegistryException):
    """Registry answered with an unexpected HTTP status."""

    def __init__(self, url: str, status_code: int, body: str = ""):
        self.url = url
        self.status_code = status_code
        self.body = body
        message = f"Registry request {url} returned {status_code}"
        if body:
            message = f"{message}: {body}"
        super().__init__(message)


class RegistryUnreachable(RegistryException):
    """Transport-level failure talking to the registry."""
    pass


class ManifestException(LayerscanException):
    """Manifest could not be turned into a layer list."""
    pass


class ManifestDecodeError(ManifestException):
    """Manifest body does not have the expected JSON shape."""
    pass


class UnsupportedManifestType(ManifestException):
    """Registry responded with a content type we cannot decode."""

    def __init__(self, content_type: Optional[str]):
        self.content_type = content_type
        super().__init__(
            f"Docker Registry responded with unsupported Content-Type: {content_type}"
        )


class BackendException(LayerscanException):
    """Scan backend failed."""

    def __init__(self, backend: str, reason: str):
        """
        Initialize backend exception.

        Args:
            backend: Backend name that failed
            reason: Reason for failure
        """
        self.backend = backend
        self.reason = reason
        super().__init__(f"{backend} failed: {reason}")


class BackendUnreachable(BackendException):
    """The backend transport could not connect or timed out."""
    pass


class BackendRejected(BackendException):
    """The backend answered with a non-success application response."""
    pass


class ScanException(LayerscanException):
    """Every scan backend failed for an image."""

    def __init__(self, image: str, reason: str):
        """
        Initialize scan exception.

        Args:
            image: Image reference that failed to scan
            reason: Reason for failure
        """
        self.image = image
        self.reason = reason
        super().__init__(f"Failed to scan {image}: {reason}")


class ConfigurationException(LayerscanException):
    """Configuration is invalid or missing."""
    pass


__all__ = [
    "LayerscanException",
    "ReferenceException",
    "MalformedReference",
    "RegistryException",
    "AuthChallengeUnparseable",
    "TokenMissing",
    "AuthenticationFailed",
    "PlatformNotFound",
    "RegistryRequestError",
    "RegistryUnreachable",
    "ManifestException",
    "ManifestDecodeError",
    "UnsupportedManifestType",
    "BackendException",
    "BackendUnreachable",
    "BackendRejected",
    "ScanException",
    "ConfigurationException",
]
