"""
Manifest decoding.

Decodes registry manifest bodies (schema 1, schema 2 and manifest lists)
into a canonical, base-first list of layers.
"""

import json
import logging
from dataclasses import replace
from typing import Any, Optional, Sequence, Union

from constants import (
    EMPTY_LAYER_DIGEST,
    MANIFEST_LIST_TYPES,
    MEDIA_TYPE_MANIFEST_V1,
    SCHEMA_V2_TYPES,
)
from core.exceptions import ManifestDecodeError, PlatformNotFound, UnsupportedManifestType
from core.models import Layer, Manifest, ManifestListEntry, Platform, trim_digest

logger = logging.getLogger(__name__)


def normalize_content_type(content_type: Optional[str]) -> str:
    """Drop media type parameters such as ``; charset=utf-8``."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def is_manifest_list(content_type: Optional[str]) -> bool:
    return normalize_content_type(content_type) in MANIFEST_LIST_TYPES


def _load_document(body: Union[bytes, str], kind: str) -> dict[str, Any]:
    try:
        document = json.loads(body)
    except (TypeError, ValueError) as e:
        raise ManifestDecodeError(f"{kind} is not valid JSON: {e}") from e
    if not isinstance(document, dict):
        raise ManifestDecodeError(f"{kind} must be a JSON object, got {type(document).__name__}")
    return document


def _digest_list(entries: Any, key: str, kind: str) -> list[str]:
    """Pull the digest field out of every entry of a layer array."""
    if not isinstance(entries, list):
        raise ManifestDecodeError(f"{kind} has no layer list")
    digests = []
    for index, entry in enumerate(entries):
        digest = entry.get(key) if isinstance(entry, dict) else None
        if not isinstance(digest, str) or not digest:
            raise ManifestDecodeError(f"{kind} layer {index} has no {key}")
        digests.append(digest)
    return digests


def chain_layers(digests: Sequence[str], config_digest: Optional[str] = None) -> tuple[Layer, ...]:
    """
    Build base-first layers linked to their parents.

    Args:
        digests: Layer digests, base layer first
        config_digest: Image config digest; when present it is folded into
            each layer name so backend cache keys are anchored to the image

    Returns:
        Tuple of Layer records
    """
    layers = []
    parent_name = None
    for digest in digests:
        if config_digest:
            name = f"{trim_digest(config_digest)}{trim_digest(digest)}"
        else:
            name = digest
        layers.append(Layer(digest=digest, name=name, parent_name=parent_name))
        parent_name = name
    return tuple(layers)


def filter_empty_layers(layers: Sequence[Layer]) -> tuple[Layer, ...]:
    """
    Remove empty tar layers and relink parents over the remaining chain.
    """
    kept = []
    parent_name = None
    for layer in layers:
        if layer.digest == EMPTY_LAYER_DIGEST:
            continue
        kept.append(replace(layer, parent_name=parent_name))
        parent_name = layer.name
    return tuple(kept)


def decode_manifest(body: Union[bytes, str], content_type: Optional[str]) -> Manifest:
    """
    Decode a single-image manifest.

    Args:
        body: Raw response body
        content_type: Content-Type header of the response

    Returns:
        Manifest with layers in base-first order

    Raises:
        ManifestDecodeError: If the body does not have the expected shape
        UnsupportedManifestType: If the content type is not a known schema
    """
    media_type = normalize_content_type(content_type)

    if media_type in SCHEMA_V2_TYPES:
        document = _load_document(body, "Schema 2 manifest")
        config = document.get("config")
        if not isinstance(config, dict) or not isinstance(config.get("digest"), str):
            raise ManifestDecodeError("Schema 2 manifest has no config digest")
        config_digest = config["digest"]
        digests = _digest_list(document.get("layers"), "digest", "Schema 2 manifest")
        logger.debug(f"Decoded schema 2 manifest with {len(digests)} layers")
        return Manifest(
            schema_version=document.get("schemaVersion", 2),
            media_type=media_type,
            layers=chain_layers(digests, config_digest),
            config_digest=config_digest,
        )

    if media_type == MEDIA_TYPE_MANIFEST_V1:
        document = _load_document(body, "Schema 1 manifest")
        digests = _digest_list(document.get("fsLayers"), "blobSum", "Schema 1 manifest")
        # Schema 1 lists the tip layer first.
        digests.reverse()
        logger.debug(f"Decoded schema 1 manifest with {len(digests)} layers")
        return Manifest(
            schema_version=document.get("schemaVersion", 1),
            media_type=media_type,
            layers=chain_layers(digests),
        )

    raise UnsupportedManifestType(content_type)


def decode_manifest_list(body: Union[bytes, str]) -> list[ManifestListEntry]:
    """
    Decode a manifest list into its per-platform entries.

    Raises:
        ManifestDecodeError: If the body does not have the expected shape
    """
    document = _load_document(body, "Manifest list")
    manifests = document.get("manifests")
    if not isinstance(manifests, list):
        raise ManifestDecodeError("Manifest list has no manifests array")

    entries = []
    for index, item in enumerate(manifests):
        if not isinstance(item, dict) or not isinstance(item.get("digest"), str):
            raise ManifestDecodeError(f"Manifest list entry {index} has no digest")
        platform = item.get("platform") or {}
        if not isinstance(platform, dict):
            raise ManifestDecodeError(f"Manifest list entry {index} has a malformed platform")
        entries.append(
            ManifestListEntry(
                digest=item["digest"],
                media_type=item.get("mediaType", ""),
                platform=Platform(
                    os=platform.get("os", ""),
                    architecture=platform.get("architecture", ""),
                ),
            )
        )
    return entries


def select_platform(entries: Sequence[ManifestListEntry], platform: Platform) -> ManifestListEntry:
    """
    Pick the manifest list entry built for a platform.

    Raises:
        PlatformNotFound: If no entry matches both os and architecture
    """
    for entry in entries:
        if entry.platform.os == platform.os and entry.platform.architecture == platform.architecture:
            return entry
    raise PlatformNotFound(platform.os, platform.architecture)


__all__ = [
    "normalize_content_type",
    "is_manifest_list",
    "chain_layers",
    "filter_empty_layers",
    "decode_manifest",
    "decode_manifest_list",
    "select_platform",
]
