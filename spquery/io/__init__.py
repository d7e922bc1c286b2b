"""
I/O layer for the Lists web service.

This module provides sync and async implementations for executing
SOAPRequest objects and returning SOAPResponse objects.

The I/O layer is intentionally thin - it only handles HTTP transport.
All protocol logic (XML building/parsing) is in spquery.protocol.

Example (sync):
    from spquery.protocol import ListsProtocol
    from spquery.io import SyncIO

    protocol = ListsProtocol(base_url="https://sp.example.com/sites/team")
    with SyncIO() as io:
        response = io.execute(protocol.get_list_request("Tasks"))
        info = protocol.parse_list(response)

Example (async):
    from spquery.protocol import ListsProtocol
    from spquery.io import AsyncIO

    protocol = ListsProtocol(base_url="https://sp.example.com/sites/team")
    async with AsyncIO() as io:
        response = await io.execute(protocol.get_list_request("Tasks"))
        info = protocol.parse_list(response)
"""

from .base import AsyncIOProtocol, SyncIOProtocol
from .sync import SyncIO
from .async_ import AsyncIO

__all__ = [
    # Protocols
    "SyncIOProtocol",
    "AsyncIOProtocol",
    # Implementations
    "SyncIO",
    "AsyncIO",
]
