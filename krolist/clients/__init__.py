"""Clients for hosted backend services."""

from krolist.clients.functions import (
    FunctionsClient,
    decode_catalog_refresh_response,
    decode_refresh_response,
)

__all__ = [
    "FunctionsClient",
    "decode_catalog_refresh_response",
    "decode_refresh_response",
]
