"""Core logic for image resolution, scanning and reconciliation."""

from core.models import (
    Allowlist,
    ImageReference,
    Layer,
    Manifest,
    ReconciledReport,
    ResolvedImage,
    SeverityLevel,
    Vulnerability,
)
from core.reference import parse_reference
from core.scanner import VulnerabilityScanner

__all__ = [
    "Allowlist",
    "ImageReference",
    "Layer",
    "Manifest",
    "ReconciledReport",
    "ResolvedImage",
    "SeverityLevel",
    "Vulnerability",
    "parse_reference",
    "VulnerabilityScanner",
]
