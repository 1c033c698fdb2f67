"""
Core vulnerability scanning engine.

Resolves an image through the registry, hands its layers to the scan
backends in fallback order, and reconciles the findings into a report.
"""

import logging
from typing import Optional, Sequence

import requests

from constants import DEFAULT_CLAIR_TIMEOUT
from core.exceptions import BackendException, ManifestDecodeError, ScanException
from core.models import Allowlist, ReconciledReport, ResolvedImage, SeverityLevel, Vulnerability
from core.reconciler import reconcile
from core.reference import parse_reference
from core.registry import RegistryConfig, RegistrySession
from core.scanner_interface import ScanBackend
from integrations.clair_rest import ClairRestBackend
from integrations.clair_rpc import ClairRpcBackend

logger = logging.getLogger(__name__)


def default_backends(
    address: str,
    timeout: float = DEFAULT_CLAIR_TIMEOUT,
    trace: bool = False,
) -> list[ScanBackend]:
    """REST dialect first, RPC dialect second."""
    return [
        ClairRestBackend(address, timeout=timeout, trace=trace),
        ClairRpcBackend(address, timeout=timeout, trace=trace),
    ]


class VulnerabilityScanner:
    """
    Vulnerability scanner backed by Clair.

    Runs one image at a time: parse the reference, pull the manifest through
    a fresh registry session, try each backend until one succeeds, then
    reconcile.
    """

    def __init__(
        self,
        registry_config: RegistryConfig,
        backends: Sequence[ScanBackend],
        allowlist: Optional[Allowlist] = None,
        ignore_unfixed: bool = False,
        min_severity: SeverityLevel = SeverityLevel.UNKNOWN,
        http_session: Optional[requests.Session] = None,
    ):
        """
        Initialize vulnerability scanner.

        Args:
            registry_config: Registry connection settings
            backends: Scan backends in fallback order
            allowlist: Vulnerability names to ignore
            ignore_unfixed: Only count vulnerabilities with a fix available
            min_severity: Lowest severity counted against the threshold
            http_session: Optional requests session for the registry
        """
        if not backends:
            raise ValueError("At least one scan backend is required")
        self.registry_config = registry_config
        self.backends = list(backends)
        self.allowlist = allowlist or Allowlist.empty()
        self.ignore_unfixed = ignore_unfixed
        self.min_severity = min_severity
        self.http_session = http_session

    def resolve(self, image: str) -> ResolvedImage:
        """
        Parse a reference and pull its manifest.

        Raises:
            ReferenceException: If the reference is malformed
            RegistryException: If the registry exchange fails
            ManifestException: If the manifest cannot be decoded or has no layers
        """
        reference = parse_reference(image)
        logger.debug(f"Parsed {image} as {reference}")

        with RegistrySession(self.registry_config, session=self.http_session) as session:
            resolved = session.pull(reference)

        if not resolved.layers:
            raise ManifestDecodeError(f"Manifest of {image} lists no layers")
        logger.info(f"Analysing {len(resolved.layers)} layers of {reference}")
        return resolved

    def analyze(self, image: ResolvedImage) -> list[Vulnerability]:
        """
        Try each backend in order and return the first successful result.

        Raises:
            ScanException: If every backend failed
        """
        failures = []
        for backend in self.backends:
            try:
                vulnerabilities = backend.analyze(image)
            except BackendException as e:
                logger.warning(f"Failed to analyze using {backend.name()}: {e.reason}")
                failures.append(f"{backend.name()}: {e.reason}")
                continue
            logger.debug(f"{backend.name()} returned {len(vulnerabilities)} vulnerabilities")
            return vulnerabilities

        raise ScanException(str(image.reference), "; ".join(failures))

    def scan(self, image: str) -> ReconciledReport:
        """
        Scan a single image for vulnerabilities.

        Args:
            image: Image reference to scan

        Returns:
            ReconciledReport for the image

        Raises:
            LayerscanException: If resolution or every backend fails
        """
        resolved = self.resolve(image)
        vulnerabilities = self.analyze(resolved)
        logger.info(f"Found {len(vulnerabilities)} vulnerabilities in {resolved.reference}")
        return reconcile(
            vulnerabilities,
            self.allowlist,
            resolved.name,
            ignore_unfixed=self.ignore_unfixed,
            min_severity=self.min_severity,
            layer_count=len(resolved.layers),
        )


__all__ = [
    "VulnerabilityScanner",
    "default_backends",
]
