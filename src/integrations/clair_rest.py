"""
Clair API v1 (REST) scan backend.

Pushes every layer of an image to Clair, then asks for the vulnerabilities
of the tip layer, which Clair computes over the whole ancestry.
"""

import logging
from typing import Optional
from urllib.parse import urlsplit

import requests

from constants import CLAIR_DEFAULT_PORT, CLAIR_LAYER_FORMAT, DEFAULT_CLAIR_TIMEOUT
from core.exceptions import BackendRejected, BackendUnreachable, ConfigurationException
from core.manifest import filter_empty_layers
from core.models import Layer, ResolvedImage, Vulnerability
from core.scanner_interface import ScanBackend, flatten_features
from utils.http_trace import dump_response

logger = logging.getLogger(__name__)

REST_FIELD_NAMES = {
    "feature_name": "Name",
    "feature_version": "Version",
    "vulnerabilities": "Vulnerabilities",
    "name": "Name",
    "namespace": "NamespaceName",
    "description": "Description",
    "link": "Link",
    "severity": "Severity",
    "fixed_by": "FixedBy",
}


def normalize_rest_address(address: str) -> str:
    """
    Complete a possibly partial Clair address.

    Adds ``http://`` when no scheme is given and port 6060 when no port is
    given. An explicit ``:443`` on https is dropped to keep vhost matching
    working behind proxies.

    Raises:
        ConfigurationException: If the port is not a number or the host is missing

    Examples:
        >>> normalize_rest_address("localhost")
        'http://localhost:6060'
        >>> normalize_rest_address("https://clair.example.com:443")
        'https://clair.example.com'
    """
    normalized = address.strip().rstrip("/")
    if "://" not in normalized:
        normalized = f"http://{normalized}"

    parts = urlsplit(normalized)
    try:
        port = parts.port
    except ValueError as e:
        raise ConfigurationException(f"Invalid Clair address {address}: {e}") from e
    if not parts.hostname:
        raise ConfigurationException(f"Invalid Clair address {address}: no host")

    if parts.scheme == "https" and port == 443:
        return f"https://{parts.hostname}"
    if port is None:
        return f"{parts.scheme}://{parts.netloc}:{CLAIR_DEFAULT_PORT}{parts.path}"
    return normalized


class ClairRestBackend(ScanBackend):
    """
    Clair v1 backend speaking the layer push/pull REST dialect.
    """

    def __init__(
        self,
        address: str,
        timeout: float = DEFAULT_CLAIR_TIMEOUT,
        trace: bool = False,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize Clair REST backend.

        Args:
            address: Clair address, possibly without scheme or port
            timeout: Per-request timeout in seconds
            trace: Dump requests and responses to the debug log
            session: Optional requests session; one created here is closed
                after each analysis
        """
        self.url = normalize_rest_address(address)
        self.timeout = timeout
        self.trace = trace
        self._owns_session = session is None
        self.http = session or requests.Session()

    def close(self) -> None:
        if self._owns_session:
            self.http.close()

    def name(self) -> str:
        return "clair-v1"

    def _layer_envelope(self, image: ResolvedImage, layer: Layer) -> dict:
        return {
            "Layer": {
                "Name": layer.name,
                "Path": image.blob_path(layer),
                "ParentName": layer.parent_name or "",
                "Format": CLAIR_LAYER_FORMAT,
                "Headers": {"Authorization": image.authorization or ""},
            }
        }

    def push_layer(self, image: ResolvedImage, layer: Layer) -> None:
        """
        Submit one layer to Clair.

        Raises:
            BackendUnreachable: If the request cannot be sent
            BackendRejected: If Clair answers with anything but 201 Created
        """
        try:
            response = self.http.post(
                f"{self.url}/v1/layers",
                json=self._layer_envelope(image, layer),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise BackendUnreachable(self.name(), f"can't push layer to Clair: {e}") from e
        dump_response(response, self.trace)

        if response.status_code != 201:
            raise BackendRejected(
                self.name(),
                f"push error {response.status_code}: {self._error_message(response)}",
            )

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text.strip()
        error = payload.get("Error") if isinstance(payload, dict) else None
        if isinstance(error, dict) and error.get("Message"):
            return error["Message"]
        return response.text.strip()

    def fetch_vulnerabilities(self, layer_name: str) -> list[Vulnerability]:
        """
        Ask Clair for the vulnerabilities of a layer and its ancestry.

        Raises:
            BackendUnreachable: If the request cannot be sent
            BackendRejected: If Clair answers with an error or an unexpected body
        """
        url = f"{self.url}/v1/layers/{layer_name}?vulnerabilities"
        try:
            response = self.http.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise BackendUnreachable(self.name(), str(e)) from e
        dump_response(response, self.trace)

        if response.status_code != 200:
            raise BackendRejected(
                self.name(),
                f"analyze error {response.status_code}: {self._error_message(response)}",
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise BackendRejected(self.name(), f"invalid layer response: {e}") from e

        layer = payload.get("Layer") if isinstance(payload, dict) else None
        if not isinstance(layer, dict):
            raise BackendRejected(self.name(), "layer response has no Layer object")
        return flatten_features(layer.get("Features"), REST_FIELD_NAMES)

    def analyze(self, image: ResolvedImage) -> list[Vulnerability]:
        """
        Push all non-empty layers base-first, then read the tip layer.

        Push failures are logged and skipped; only the final read decides
        whether this backend succeeded.
        """
        layers = filter_empty_layers(image.layers)
        if not layers:
            logger.info(f"No need to analyse {image.reference}: it has no non-empty layer")
            return []

        try:
            for index, layer in enumerate(layers):
                try:
                    self.push_layer(image, layer)
                except (BackendUnreachable, BackendRejected) as e:
                    logger.warning(f"Push layer {index} ({layer.digest}) failed: {e.reason}")

            return self.fetch_vulnerabilities(layers[-1].name)
        finally:
            self.close()


__all__ = [
    "ClairRestBackend",
    "normalize_rest_address",
]
