"""Tests for manifest decoding."""

import json

import pytest

from constants import (
    EMPTY_LAYER_DIGEST,
    MEDIA_TYPE_MANIFEST_LIST,
    MEDIA_TYPE_MANIFEST_V1,
    MEDIA_TYPE_MANIFEST_V2,
    MEDIA_TYPE_OCI_INDEX,
    MEDIA_TYPE_OCI_MANIFEST,
)
from core.exceptions import ManifestDecodeError, PlatformNotFound, UnsupportedManifestType
from core.manifest import (
    chain_layers,
    decode_manifest,
    decode_manifest_list,
    filter_empty_layers,
    is_manifest_list,
    normalize_content_type,
    select_platform,
)
from core.models import Platform


def schema2_body(layers, config="sha256:cfg"):
    return json.dumps({
        "schemaVersion": 2,
        "mediaType": MEDIA_TYPE_MANIFEST_V2,
        "config": {"mediaType": "application/vnd.docker.container.image.v1+json", "digest": config},
        "layers": [{"digest": digest, "size": 100} for digest in layers],
    }).encode()


class TestContentType:
    """Tests for content type helpers."""

    def test_parameters_dropped(self):
        assert normalize_content_type(f"{MEDIA_TYPE_MANIFEST_V2}; charset=utf-8") == MEDIA_TYPE_MANIFEST_V2

    def test_missing(self):
        assert normalize_content_type(None) == ""

    def test_manifest_list_types(self):
        assert is_manifest_list(MEDIA_TYPE_MANIFEST_LIST)
        assert is_manifest_list(MEDIA_TYPE_OCI_INDEX)
        assert not is_manifest_list(MEDIA_TYPE_MANIFEST_V2)


class TestChainLayers:
    """Tests for layer naming and parent links."""

    def test_names_fold_config_digest(self):
        layers = chain_layers(["sha256:aaa", "sha256:bbb"], "sha256:cfg")
        assert [layer.name for layer in layers] == ["cfgaaa", "cfgbbb"]
        assert layers[0].parent_name is None
        assert layers[1].parent_name == "cfgaaa"

    def test_raw_digest_without_config(self):
        layers = chain_layers(["sha256:aaa", "sha256:bbb"])
        assert layers[1].name == "sha256:bbb"
        assert layers[1].parent_name == "sha256:aaa"

    def test_empty(self):
        assert chain_layers([]) == ()


class TestFilterEmptyLayers:
    """Tests for filter_empty_layers."""

    def test_relinks_over_empty_layer(self):
        layers = chain_layers(["sha256:aaa", EMPTY_LAYER_DIGEST, "sha256:bbb"], "sha256:cfg")
        kept = filter_empty_layers(layers)
        assert [layer.digest for layer in kept] == ["sha256:aaa", "sha256:bbb"]
        assert kept[0].parent_name is None
        assert kept[1].parent_name == "cfgaaa"

    def test_all_empty(self):
        layers = chain_layers([EMPTY_LAYER_DIGEST, EMPTY_LAYER_DIGEST])
        assert filter_empty_layers(layers) == ()


class TestDecodeManifest:
    """Tests for decode_manifest."""

    def test_schema2(self):
        manifest = decode_manifest(schema2_body(["sha256:aaa", "sha256:bbb"]), MEDIA_TYPE_MANIFEST_V2)
        assert manifest.schema_version == 2
        assert manifest.config_digest == "sha256:cfg"
        assert [layer.digest for layer in manifest.layers] == ["sha256:aaa", "sha256:bbb"]

    def test_oci_manifest(self):
        manifest = decode_manifest(schema2_body(["sha256:aaa"]), MEDIA_TYPE_OCI_MANIFEST)
        assert manifest.media_type == MEDIA_TYPE_OCI_MANIFEST
        assert len(manifest.layers) == 1

    def test_schema1_reversed(self):
        """Schema 1 lists the tip first; layers come back base-first."""
        body = json.dumps({
            "schemaVersion": 1,
            "fsLayers": [{"blobSum": "sha256:tip"}, {"blobSum": "sha256:mid"}, {"blobSum": "sha256:base"}],
        })
        manifest = decode_manifest(body, MEDIA_TYPE_MANIFEST_V1)
        assert [layer.digest for layer in manifest.layers] == ["sha256:base", "sha256:mid", "sha256:tip"]
        assert manifest.layers[0].name == "sha256:base"
        assert manifest.config_digest is None

    def test_schema2_no_layers(self):
        manifest = decode_manifest(schema2_body([]), MEDIA_TYPE_MANIFEST_V2)
        assert manifest.layers == ()

    def test_unsupported_type(self):
        with pytest.raises(UnsupportedManifestType) as exc_info:
            decode_manifest(b"{}", "text/html")
        assert exc_info.value.content_type == "text/html"

    def test_invalid_json(self):
        with pytest.raises(ManifestDecodeError, match="not valid JSON"):
            decode_manifest(b"<html>", MEDIA_TYPE_MANIFEST_V2)

    def test_missing_config(self):
        body = json.dumps({"schemaVersion": 2, "layers": []})
        with pytest.raises(ManifestDecodeError, match="config digest"):
            decode_manifest(body, MEDIA_TYPE_MANIFEST_V2)

    def test_layer_without_digest(self):
        body = json.dumps({"config": {"digest": "sha256:cfg"}, "layers": [{"size": 1}]})
        with pytest.raises(ManifestDecodeError, match="layer 0 has no digest"):
            decode_manifest(body, MEDIA_TYPE_MANIFEST_V2)


class TestManifestList:
    """Tests for manifest list decoding and platform selection."""

    @pytest.fixture
    def entries(self):
        body = json.dumps({
            "schemaVersion": 2,
            "mediaType": MEDIA_TYPE_MANIFEST_LIST,
            "manifests": [
                {
                    "digest": "sha256:arm",
                    "mediaType": MEDIA_TYPE_MANIFEST_V2,
                    "platform": {"os": "linux", "architecture": "arm64"},
                },
                {
                    "digest": "sha256:amd",
                    "mediaType": MEDIA_TYPE_MANIFEST_V2,
                    "platform": {"os": "linux", "architecture": "amd64"},
                },
            ],
        })
        return decode_manifest_list(body)

    def test_decode(self, entries):
        assert len(entries) == 2
        assert entries[0].platform == Platform("linux", "arm64")

    def test_select_platform(self, entries):
        assert select_platform(entries, Platform("linux", "amd64")).digest == "sha256:amd"

    def test_platform_not_found(self, entries):
        with pytest.raises(PlatformNotFound) as exc_info:
            select_platform(entries, Platform("windows", "amd64"))
        assert exc_info.value.os == "windows"

    def test_missing_manifests(self):
        with pytest.raises(ManifestDecodeError):
            decode_manifest_list(b'{"schemaVersion": 2}')
