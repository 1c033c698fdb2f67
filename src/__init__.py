"""
layerscan - container image vulnerability scanner

Resolves an image reference through its registry, submits the image's
layers to Clair and reports the vulnerabilities found.
"""

__version__ = "2.0.0"

from core.models import (
    ImageReference,
    ReconciledReport,
    SeverityLevel,
    Vulnerability,
)

__all__ = [
    "ImageReference",
    "ReconciledReport",
    "SeverityLevel",
    "Vulnerability",
]
