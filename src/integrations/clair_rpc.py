"""
Clair API v3 (gRPC) scan backend.

Submits the whole ancestry of an image in one call and reads the
vulnerabilities back by ancestry name.
"""

import logging
from typing import Callable, Optional

import grpc

from constants import CLAIR_DEFAULT_PORT, CLAIR_LAYER_FORMAT, DEFAULT_CLAIR_TIMEOUT
from core.exceptions import BackendRejected, BackendUnreachable
from core.manifest import filter_empty_layers
from core.models import ResolvedImage, Vulnerability
from core.scanner_interface import ScanBackend, flatten_features
from integrations import clair_pb

logger = logging.getLogger(__name__)

RPC_FIELD_NAMES = {
    "feature_name": "name",
    "feature_version": "version",
    "vulnerabilities": "vulnerabilities",
    "name": "name",
    "namespace": "namespace_name",
    "description": "description",
    "link": "link",
    "severity": "severity",
    "fixed_by": "fixed_by",
}

UNREACHABLE_CODES = frozenset({grpc.StatusCode.UNAVAILABLE, grpc.StatusCode.DEADLINE_EXCEEDED})


def normalize_rpc_target(address: str) -> str:
    """
    Turn a Clair address into a gRPC target.

    Strips any URL scheme and adds port 6060 when no port is given.

    Examples:
        >>> normalize_rpc_target("https://localhost")
        'localhost:6060'
        >>> normalize_rpc_target("clair:9090")
        'clair:9090'
    """
    target = address.strip().rstrip("/")
    if "://" in target:
        target = target.split("://", 1)[1]
    if ":" not in target:
        target = f"{target}:{CLAIR_DEFAULT_PORT}"
    return target


class ClairRpcBackend(ScanBackend):
    """
    Clair v3 backend speaking the AncestryService gRPC dialect.
    """

    def __init__(
        self,
        address: str,
        timeout: float = DEFAULT_CLAIR_TIMEOUT,
        trace: bool = False,
        channel_factory: Optional[Callable[[str], grpc.Channel]] = None,
    ):
        """
        Initialize Clair RPC backend.

        Args:
            address: Clair address, scheme and port optional
            timeout: Per-call deadline in seconds
            trace: Log request and response messages at debug level
            channel_factory: Builds a channel for a target (insecure channel by default)
        """
        self.target = normalize_rpc_target(address)
        self.timeout = timeout
        self.trace = trace
        self.channel_factory = channel_factory or grpc.insecure_channel

    def name(self) -> str:
        return "clair-v3"

    def build_post_request(self, image: ResolvedImage):
        """Build the PostAncestry request for an image's non-empty layers."""
        request = clair_pb.PostAncestryRequest(
            ancestry_name=image.name,
            format=CLAIR_LAYER_FORMAT,
        )
        for layer in filter_empty_layers(image.layers):
            post_layer = request.layers.add(hash=layer.name, path=image.blob_path(layer))
            post_layer.headers["Authorization"] = image.authorization or ""
        return request

    def _call(self, channel: grpc.Channel, method: str, request, response_class):
        stub = channel.unary_unary(
            method,
            request_serializer=lambda message: message.SerializeToString(),
            response_deserializer=response_class.FromString,
        )
        if self.trace:
            logger.debug(f"rpc request {method}: {request}")
        try:
            response = stub(request, timeout=self.timeout)
        except grpc.RpcError as e:
            code = e.code() if hasattr(e, "code") else None
            details = e.details() if hasattr(e, "details") else str(e)
            if code in UNREACHABLE_CODES:
                raise BackendUnreachable(self.name(), f"{self.target}: {details}") from e
            raise BackendRejected(self.name(), f"{method} failed ({code}): {details}") from e
        if self.trace:
            logger.debug(f"rpc response {method}: {response}")
        return response

    def analyze(self, image: ResolvedImage) -> list[Vulnerability]:
        """
        Post the ancestry, then fetch it with features and vulnerabilities.
        """
        request = self.build_post_request(image)
        if not request.layers:
            logger.info(f"No need to analyse {image.reference}: it has no non-empty layer")
            return []

        channel = self.channel_factory(self.target)
        try:
            self._call(
                channel,
                clair_pb.POST_ANCESTRY_METHOD,
                request,
                clair_pb.PostAncestryResponse,
            )
            response = self._call(
                channel,
                clair_pb.GET_ANCESTRY_METHOD,
                clair_pb.GetAncestryRequest(
                    ancestry_name=image.name,
                    with_features=True,
                    with_vulnerabilities=True,
                ),
                clair_pb.GetAncestryResponse,
            )
        finally:
            channel.close()

        return flatten_features(response.ancestry.features, RPC_FIELD_NAMES)


__all__ = [
    "ClairRpcBackend",
    "normalize_rpc_target",
]
