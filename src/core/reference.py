"""
Image reference parsing.

Turns a free-form image string such as ``nginx``, ``quay.io/org/app:1.2`` or
``localhost:5000/app@sha256:...`` into registry coordinates with a single
left-to-right pass over the characters.
"""

from enum import Enum
from typing import Iterable, Iterator, Optional

from constants import DEFAULT_NAMESPACE, DEFAULT_REGISTRY, DEFAULT_TAG
from core.exceptions import MalformedReference
from core.models import ImageReference

SEPARATORS = frozenset(":/@")


class ParserState(Enum):
    """States of the reference scanner."""

    INITIAL = "initial"
    NAME = "name"
    PORT = "port"
    TAG = "tag"


def _segments(chars: Iterable[str]) -> Iterator[tuple[str, Optional[str]]]:
    """
    Split a character stream into (segment, terminator) pairs.

    The terminator is the separator that ended the segment, or None for the
    final segment at end of input.
    """
    buffer: list[str] = []
    for char in chars:
        if char in SEPARATORS:
            yield "".join(buffer), char
            buffer = []
        else:
            buffer.append(char)
    yield "".join(buffer), None


def _is_registry_host(segment: str) -> bool:
    return segment == "localhost" or "." in segment


def parse_reference(raw: str) -> ImageReference:
    """
    Parse an image reference into registry, repository and tag or digest.

    Args:
        raw: Image reference as typed by the user

    Returns:
        ImageReference with defaults applied

    Raises:
        MalformedReference: If no repository name can be isolated

    Examples:
        >>> parse_reference("nginx")
        ImageReference(registry='registry-1.docker.io', repository='library/nginx', tag='latest', digest=None)
        >>> parse_reference("localhost:5000/team/app:1.0").repository
        'team/app'
    """
    if raw is None or not raw.strip():
        raise MalformedReference(raw or "", "reference is empty")

    state = ParserState.INITIAL
    registry = DEFAULT_REGISTRY
    port = ""
    name_parts: list[str] = []
    tag_parts: list[str] = []
    digest_parts: Optional[list[str]] = None

    for segment, terminator in _segments(raw.strip()):
        if state is ParserState.INITIAL:
            if terminator in ("/", ":") and _is_registry_host(segment):
                registry = segment
                state = ParserState.PORT if terminator == ":" else ParserState.NAME
            elif terminator == "/":
                name_parts.append(segment)
                state = ParserState.NAME
            else:
                # Single-segment name: an official image under the default org.
                name_parts = [DEFAULT_NAMESPACE, segment] if segment else []
                state = ParserState.TAG
                if terminator == "@":
                    digest_parts = []
        elif state is ParserState.PORT:
            port = segment
            state = ParserState.NAME
        elif state is ParserState.NAME:
            name_parts.append(segment)
            if terminator in (":", "@"):
                state = ParserState.TAG
                if terminator == "@":
                    digest_parts = []
        else:
            target = digest_parts if digest_parts is not None else tag_parts
            target.append(segment)
            if terminator == "@" and digest_parts is None:
                # name:tag@digest, the digest wins
                digest_parts = []

    repository = "/".join(part for part in name_parts if part)
    if not repository or not name_parts[-1]:
        raise MalformedReference(raw)

    if port:
        registry = f"{registry}:{port}"

    tag = ":".join(tag_parts) or DEFAULT_TAG
    digest = ":".join(digest_parts) if digest_parts else None

    return ImageReference(registry=registry, repository=repository, tag=tag, digest=digest)


def registry_base_url(reference: ImageReference, insecure: bool = False) -> str:
    """
    Registry API base URL for a reference.

    Args:
        reference: Parsed image reference
        insecure: Use plain HTTP instead of HTTPS

    Returns:
        URL of the form "https://host[:port]/v2"
    """
    scheme = "http" if insecure else "https"
    return f"{scheme}://{reference.registry}/v2"


__all__ = [
    "ParserState",
    "parse_reference",
    "registry_base_url",
]
