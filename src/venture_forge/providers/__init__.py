"""Outbound AI/search providers behind a rotating key pool."""

from venture_forge.providers.base import SearchHit, SearchProvider, TextGenerator
from venture_forge.providers.client import ResilientProviderClient
from venture_forge.providers.gateway import ProviderGateway
from venture_forge.providers.key_rotation import KeyRotationManager

__all__ = [
    "KeyRotationManager",
    "ProviderGateway",
    "ResilientProviderClient",
    "SearchHit",
    "SearchProvider",
    "TextGenerator",
]
