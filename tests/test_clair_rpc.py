"""Tests for the Clair v3 RPC backend."""

from dataclasses import replace
from unittest.mock import MagicMock

import grpc
import pytest

from constants import EMPTY_LAYER_DIGEST
from core.exceptions import BackendRejected, BackendUnreachable
from core.manifest import chain_layers
from integrations import clair_pb
from integrations.clair_rpc import ClairRpcBackend, normalize_rpc_target


class FakeRpcError(grpc.RpcError):
    """RpcError carrying a status code, as raised by real stubs."""

    def __init__(self, code, details="boom"):
        super().__init__(details)
        self._code = code
        self._details = details

    def code(self):
        return self._code

    def details(self):
        return self._details


def ancestry_response():
    return clair_pb.GetAncestryResponse(
        ancestry=clair_pb.Ancestry(
            name="team/app",
            features=[
                clair_pb.Feature(
                    name="openssl",
                    namespace_name="debian:12",
                    version="3.0.11-1",
                    vulnerabilities=[
                        clair_pb.Vulnerability(
                            name="CVE-2023-5678",
                            namespace_name="debian:12",
                            severity="Medium",
                            link="https://security-tracker.debian.org/tracker/CVE-2023-5678",
                            fixed_by="3.0.13-1",
                        ),
                        clair_pb.Vulnerability(name="CVE-2024-0727", severity=""),
                    ],
                ),
                clair_pb.Feature(name="zlib", version="1.2.13"),
            ],
        )
    )


@pytest.fixture
def stubs():
    """Callables returned by channel.unary_unary, keyed by method."""
    return {
        clair_pb.POST_ANCESTRY_METHOD: MagicMock(return_value=clair_pb.PostAncestryResponse()),
        clair_pb.GET_ANCESTRY_METHOD: MagicMock(return_value=ancestry_response()),
    }


@pytest.fixture
def channel(stubs):
    channel = MagicMock()
    channel.unary_unary.side_effect = lambda method, **kwargs: stubs[method]
    return channel


@pytest.fixture
def backend(channel):
    return ClairRpcBackend("http://clair.example.com", timeout=45, channel_factory=MagicMock(return_value=channel))


class TestNormalizeRpcTarget:
    """Tests for normalize_rpc_target."""

    @pytest.mark.parametrize("address,expected", [
        ("localhost", "localhost:6060"),
        ("https://localhost", "localhost:6060"),
        ("http://clair:9090", "clair:9090"),
        ("clair:9090", "clair:9090"),
        ("http://clair/", "clair:6060"),
    ])
    def test_normalize(self, address, expected):
        assert normalize_rpc_target(address) == expected


class TestClairRpcBackend:
    """Tests for ClairRpcBackend."""

    def test_name(self, backend):
        assert backend.name() == "clair-v3"
        assert backend.target == "clair.example.com:6060"

    def test_post_request(self, backend, sample_resolved_image):
        request = backend.build_post_request(sample_resolved_image)

        assert request.ancestry_name == "team/app"
        assert request.format == "Docker"
        assert [layer.hash for layer in request.layers] == ["cfg000base111", "cfg000tip222"]
        assert request.layers[0].path == "https://registry.example.com/v2/team/app/blobs/sha256:base111"
        assert dict(request.layers[1].headers) == {"Authorization": "Bearer registry-token"}

    def test_analyze(self, backend, channel, stubs, sample_resolved_image):
        vulnerabilities = backend.analyze(sample_resolved_image)

        backend.channel_factory.assert_called_once_with("clair.example.com:6060")
        post_request = stubs[clair_pb.POST_ANCESTRY_METHOD].call_args.args[0]
        assert len(post_request.layers) == 2
        assert stubs[clair_pb.POST_ANCESTRY_METHOD].call_args.kwargs["timeout"] == 45

        get_request = stubs[clair_pb.GET_ANCESTRY_METHOD].call_args.args[0]
        assert get_request.ancestry_name == "team/app"
        assert get_request.with_features
        assert get_request.with_vulnerabilities
        channel.close.assert_called_once()

        assert [v.name for v in vulnerabilities] == ["CVE-2023-5678", "CVE-2024-0727"]
        first = vulnerabilities[0]
        assert first.feature_name == "openssl"
        assert first.feature_version == "3.0.11-1"
        assert first.fixed_by == "3.0.13-1"
        assert vulnerabilities[1].severity == "Unknown"
        assert vulnerabilities[1].fixed_by is None

    def test_serializers_round_trip_messages(self, backend, channel, sample_resolved_image):
        backend.analyze(sample_resolved_image)

        get_kwargs = channel.unary_unary.call_args_list[1].kwargs
        payload = get_kwargs["request_serializer"](clair_pb.GetAncestryRequest(ancestry_name="x"))
        assert clair_pb.GetAncestryRequest.FromString(payload).ancestry_name == "x"
        response = get_kwargs["response_deserializer"](ancestry_response().SerializeToString())
        assert response.ancestry.name == "team/app"

    def test_no_layers(self, backend, sample_resolved_image):
        manifest = replace(sample_resolved_image.manifest, layers=chain_layers([EMPTY_LAYER_DIGEST]))
        image = replace(sample_resolved_image, manifest=manifest)

        assert backend.analyze(image) == []
        backend.channel_factory.assert_not_called()

    @pytest.mark.parametrize("code", [grpc.StatusCode.UNAVAILABLE, grpc.StatusCode.DEADLINE_EXCEEDED])
    def test_unreachable(self, backend, channel, stubs, sample_resolved_image, code):
        stubs[clair_pb.POST_ANCESTRY_METHOD].side_effect = FakeRpcError(code, "connection refused")

        with pytest.raises(BackendUnreachable, match="connection refused"):
            backend.analyze(sample_resolved_image)
        channel.close.assert_called_once()

    def test_rejected(self, backend, stubs, sample_resolved_image):
        stubs[clair_pb.GET_ANCESTRY_METHOD].side_effect = FakeRpcError(
            grpc.StatusCode.NOT_FOUND, "ancestry not found"
        )

        with pytest.raises(BackendRejected, match="ancestry not found") as exc_info:
            backend.analyze(sample_resolved_image)
        assert exc_info.value.backend == "clair-v3"
