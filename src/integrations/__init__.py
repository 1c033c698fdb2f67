"""Clair scan backends."""

from integrations.clair_rest import ClairRestBackend
from integrations.clair_rpc import ClairRpcBackend

__all__ = [
    "ClairRestBackend",
    "ClairRpcBackend",
]
