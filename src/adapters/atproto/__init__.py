"""Identity-protocol adapters - AT Protocol HTTP client."""

from .client import AtprotoClient

__all__ = ["AtprotoClient"]
