"""
Pytest fixtures and configuration for layerscan tests.

Provides shared fixtures and test utilities across the test suite.
"""

import json
from typing import Optional
from unittest.mock import MagicMock

import pytest

from constants import EMPTY_LAYER_DIGEST, MEDIA_TYPE_MANIFEST_V2
from core.manifest import chain_layers
from core.models import (
    ImageReference,
    Manifest,
    ResolvedImage,
    Vulnerability,
)

CONFIG_DIGEST = "sha256:cfg000"
BASE_DIGEST = "sha256:base111"
TIP_DIGEST = "sha256:tip222"


def build_response(
    status_code: int = 200,
    body=None,
    headers: Optional[dict] = None,
) -> MagicMock:
    """Build a stand-in for requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    if isinstance(body, (dict, list)):
        text = json.dumps(body)
        response.json.return_value = body
    else:
        text = body or ""
        response.json.side_effect = ValueError("No JSON object could be decoded")
    response.text = text
    response.content = text.encode()
    return response


@pytest.fixture
def make_response():
    """Factory fixture for fake HTTP responses."""
    return build_response


@pytest.fixture
def sample_reference():
    """Reference to a private registry image."""
    return ImageReference(
        registry="registry.example.com",
        repository="team/app",
        tag="1.0",
    )


@pytest.fixture
def sample_resolved_image(sample_reference):
    """Three-layer schema 2 image whose middle layer is the empty layer."""
    manifest = Manifest(
        schema_version=2,
        media_type=MEDIA_TYPE_MANIFEST_V2,
        layers=chain_layers([BASE_DIGEST, EMPTY_LAYER_DIGEST, TIP_DIGEST], CONFIG_DIGEST),
        config_digest=CONFIG_DIGEST,
    )
    return ResolvedImage(
        reference=sample_reference,
        registry_url="https://registry.example.com/v2",
        manifest=manifest,
        authorization="Bearer registry-token",
    )


@pytest.fixture
def sample_vulnerabilities():
    """Five distinct findings CVE-0..CVE-4 of mixed severity."""
    severities = ["Low", "High", "Medium", "Critical", "Negligible"]
    return [
        Vulnerability(
            name=f"CVE-{i}",
            namespace="debian:12",
            description=f"Issue number {i}",
            link=f"https://security-tracker.debian.org/tracker/CVE-{i}",
            severity=severity,
            fixed_by="1.2.3" if i % 2 == 0 else None,
            feature_name="openssl",
            feature_version="3.0.11-1",
        )
        for i, severity in enumerate(severities)
    ]


@pytest.fixture
def clair_layer_payload():
    """Clair v1 GET /v1/layers response with two features."""
    return {
        "Layer": {
            "Name": "tip",
            "Features": [
                {
                    "Name": "coreutils",
                    "NamespaceName": "debian:8",
                    "Version": "8.23-4",
                    "Vulnerabilities": [
                        {
                            "Name": "CVE-2014-9471",
                            "NamespaceName": "debian:8",
                            "Description": "The parse_datetime function in GNU coreutils ...",
                            "Link": "https://security-tracker.debian.org/tracker/CVE-2014-9471",
                            "Severity": "Low",
                            "FixedBy": "9.23-5",
                        }
                    ],
                },
                {
                    "Name": "bash",
                    "NamespaceName": "debian:8",
                    "Version": "4.3-11",
                },
            ],
        }
    }


@pytest.fixture
def allowlist_file(tmp_path):
    """Allow-list YAML with one general and one per-image entry."""
    path = tmp_path / "allowlist.yaml"
    path.write_text(
        "general:\n"
        "  - CVE-3\n"
        "images:\n"
        "  X:\n"
        "    - CVE-4\n"
    )
    return path
