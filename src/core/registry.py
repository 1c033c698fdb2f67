"""
Registry session for manifest retrieval.

Performs the Docker Registry HTTP API v2 exchange needed to fetch one image
manifest: the initial request, bearer token challenge handling, manifest list
resolution by platform, and a bounded authentication retry.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

import requests

from constants import (
    ACCEPTED_MANIFEST_TYPES,
    DEFAULT_PLATFORM,
    DEFAULT_REGISTRY_TIMEOUT,
    MAX_AUTH_ATTEMPTS,
    MAX_MANIFEST_LIST_DEPTH,
)
from core.exceptions import (
    AuthChallengeUnparseable,
    AuthenticationFailed,
    ManifestDecodeError,
    RegistryRequestError,
    RegistryUnreachable,
    TokenMissing,
)
from core.manifest import (
    decode_manifest,
    decode_manifest_list,
    is_manifest_list,
    select_platform,
)
from core.models import ImageReference, Platform, ResolvedImage
from core.reference import registry_base_url
from utils.http_trace import dump_response

logger = logging.getLogger(__name__)

BEARER_CHALLENGE_RE = re.compile(r'Bearer realm="(.*?)",service="(.*?)",scope="(.*?)"')


@dataclass
class RegistryConfig:
    """
    Connection settings for a registry session.

    Attributes:
        username: Registry account name, sent to the token endpoint
        password: Registry password
        token: Pre-seeded base64 basic-auth value
        insecure_tls: Skip TLS certificate verification
        insecure_registry: Talk plain HTTP to the registry
        timeout: Per-request timeout in seconds
        platform: Platform to pick from manifest lists ("os/arch")
        trace: Dump requests and responses to the debug log
    """

    username: Optional[str] = None
    password: Optional[str] = None
    token: Optional[str] = None
    insecure_tls: bool = False
    insecure_registry: bool = False
    timeout: float = DEFAULT_REGISTRY_TIMEOUT
    platform: str = DEFAULT_PLATFORM
    trace: bool = False

    @property
    def has_credentials(self) -> bool:
        return bool(self.username)


@dataclass(frozen=True)
class BearerChallenge:
    """Parsed ``WWW-Authenticate: Bearer`` challenge."""

    realm: str
    service: str
    scope: str

    @classmethod
    def parse(cls, header: Optional[str]) -> "BearerChallenge":
        """
        Parse a bearer challenge header.

        Raises:
            AuthChallengeUnparseable: If the header is missing or does not
                match the realm/service/scope grammar
        """
        if not header:
            raise AuthChallengeUnparseable(header)
        match = BEARER_CHALLENGE_RE.search(header)
        if match is None:
            raise AuthChallengeUnparseable(header)
        realm, service, scope = match.groups()
        return cls(realm=realm, service=service, scope=scope)

    def token_params(self, account: Optional[str] = None) -> dict[str, str]:
        """Query parameters for the token request."""
        params = {"service": self.service, "scope": self.scope}
        if account:
            params["account"] = account
        return params


class RegistrySession:
    """
    One authenticated conversation with a registry.

    A session is created per image resolution and discarded afterwards. The
    only state it mutates is ``authorization``, the complete value of the
    Authorization header ("Bearer <token>" or "Basic <token>").
    """

    def __init__(self, config: RegistryConfig, session: Optional[requests.Session] = None):
        """
        Initialize registry session.

        Args:
            config: Registry connection settings
            session: Optional requests session (a new one is created if omitted);
                only a session created here is closed by close()
        """
        self.config = config
        self.platform = Platform.parse(config.platform)
        self.authorization: Optional[str] = f"Basic {config.token}" if config.token else None
        self._owns_session = session is None
        self.http = session or requests.Session()
        self.http.verify = not config.insecure_tls

    def close(self) -> None:
        if self._owns_session:
            self.http.close()

    def __enter__(self) -> "RegistrySession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def manifest_url(self, reference: ImageReference) -> str:
        base = registry_base_url(reference, self.config.insecure_registry)
        return f"{base}/{reference.repository}/manifests/{reference.reference}"

    def _get(self, url: str, **kwargs) -> requests.Response:
        try:
            response = self.http.get(url, timeout=self.config.timeout, **kwargs)
        except requests.RequestException as e:
            raise RegistryUnreachable(f"Request to {url} failed: {e}") from e
        dump_response(response, self.config.trace)
        return response

    def _manifest_request(self, reference: ImageReference) -> requests.Response:
        headers = {"Accept": ", ".join(ACCEPTED_MANIFEST_TYPES)}
        if self.authorization:
            headers["Authorization"] = self.authorization
        return self._get(self.manifest_url(reference), headers=headers)

    def request_token(self, challenge_response: requests.Response) -> str:
        """
        Obtain a bearer token for the challenge carried by a 401 response.

        Args:
            challenge_response: The 401 response from the registry

        Returns:
            Authorization header value ("Bearer <token>")

        Raises:
            AuthChallengeUnparseable: If the challenge header is not understood
            AuthenticationFailed: If the token endpoint rejects the request
            TokenMissing: If the token response carries no token
        """
        challenge = BearerChallenge.parse(challenge_response.headers.get("WWW-Authenticate"))
        auth = None
        if self.config.has_credentials:
            auth = (self.config.username, self.config.password or "")

        logger.debug(f"Requesting registry token from {challenge.realm} for {challenge.scope}")
        response = self._get(
            challenge.realm,
            params=challenge.token_params(self.config.username),
            auth=auth,
        )
        if response.status_code != 200:
            raise AuthenticationFailed(f"Token request returned {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise TokenMissing(f"Token response is not valid JSON: {e}") from e

        token = None
        if isinstance(payload, dict):
            token = payload.get("token") or payload.get("access_token")
        if not token:
            raise TokenMissing("Token response has neither token nor access_token")
        return f"Bearer {token}"

    def _authorized_request(self, reference: ImageReference) -> requests.Response:
        """
        Request a manifest, answering 401 challenges at most MAX_AUTH_ATTEMPTS times.

        A value that is already set is re-sent once before being replaced; a
        value that was just obtained and still gets a 401 is cleared and
        refreshed.
        """
        response = self._manifest_request(reference)
        attempts = 0
        while response.status_code == 401:
            if attempts >= MAX_AUTH_ATTEMPTS:
                raise AuthenticationFailed(
                    f"Registry rejected credentials for {reference} after {attempts} attempts"
                )
            if attempts > 0:
                logger.debug("Registry rejected the current token, requesting a new one")
                self.authorization = None
            if self.authorization is None:
                self.authorization = self.request_token(response)
            attempts += 1
            response = self._manifest_request(reference)
        return response

    def fetch_manifest(self, reference: ImageReference) -> tuple[bytes, str]:
        """
        Fetch the manifest of an image, resolving manifest lists by platform.

        Args:
            reference: Parsed image reference

        Returns:
            Tuple of (manifest body, content type)

        Raises:
            RegistryException: On protocol or transport failures
            ManifestException: If a manifest list cannot be decoded
        """
        depth = 0
        while True:
            response = self._authorized_request(reference)
            if response.status_code != 200:
                raise RegistryRequestError(
                    self.manifest_url(reference),
                    response.status_code,
                    response.text[:200],
                )

            content_type = response.headers.get("Content-Type", "")
            if not is_manifest_list(content_type):
                return response.content, content_type

            if depth >= MAX_MANIFEST_LIST_DEPTH:
                raise ManifestDecodeError("Manifest list points at another manifest list")
            entry = select_platform(decode_manifest_list(response.content), self.platform)
            logger.debug(f"Resolved {reference} for {self.platform} to {entry.digest}")
            reference = reference.with_digest(entry.digest)
            depth += 1

    def pull(self, reference: ImageReference) -> ResolvedImage:
        """
        Fetch and decode the manifest of an image.

        Args:
            reference: Parsed image reference

        Returns:
            ResolvedImage carrying the base-first layer list
        """
        body, content_type = self.fetch_manifest(reference)
        manifest = decode_manifest(body, content_type)
        return ResolvedImage(
            reference=reference,
            registry_url=registry_base_url(reference, self.config.insecure_registry),
            manifest=manifest,
            authorization=self.authorization,
        )


__all__ = [
    "RegistryConfig",
    "BearerChallenge",
    "RegistrySession",
]
