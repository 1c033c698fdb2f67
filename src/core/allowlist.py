"""
Allow-list loading.

Reads the YAML document listing vulnerabilities to ignore, either for every
image (``general``) or for specific images (``images``):

    general:
      - CVE-2017-16997
    images:
      library/alpine:
        - CVE-2018-0732
"""

import logging
from pathlib import Path
from typing import Optional

import yaml

from core.exceptions import ConfigurationException
from core.models import Allowlist

logger = logging.getLogger(__name__)


def _names(value, where: str) -> frozenset[str]:
    if value is None:
        return frozenset()
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigurationException(f"Allow-list {where} must be a list of vulnerability names")
    return frozenset(value)


def parse_allowlist(data) -> Allowlist:
    """
    Build an Allowlist from a decoded YAML document.

    Raises:
        ConfigurationException: If the document has the wrong shape
    """
    if data is None:
        return Allowlist.empty()
    if not isinstance(data, dict):
        raise ConfigurationException("Allow-list must be a mapping with 'general' and 'images' keys")

    images = data.get("images") or {}
    if not isinstance(images, dict):
        raise ConfigurationException("Allow-list 'images' must map image names to lists")

    return Allowlist(
        general=_names(data.get("general"), "'general'"),
        images={str(image): _names(names, f"entry for {image}") for image, names in images.items()},
    )


def load_allowlist(path: Optional[Path]) -> Allowlist:
    """
    Load the allow-list file, or an empty allow-list when no path is given.

    Args:
        path: YAML file path

    Returns:
        Immutable Allowlist

    Raises:
        ConfigurationException: If the file cannot be read or parsed
    """
    if not path:
        return Allowlist.empty()

    path = Path(path)
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationException(f"Could not read allow-list file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationException(f"Could not parse allow-list file {path}: {e}") from e

    allowlist = parse_allowlist(data)
    logger.debug(
        f"Loaded allow-list from {path}: {len(allowlist.general)} general, "
        f"{len(allowlist.images)} per-image entries"
    )
    return allowlist


__all__ = [
    "parse_allowlist",
    "load_allowlist",
]
