"""
Abstract I/O protocol definition.

This module defines the interface that all I/O implementations must follow.
"""

from typing import Protocol, runtime_checkable

from spquery.protocol.types import SOAPRequest, SOAPResponse


@runtime_checkable
class SyncIOProtocol(Protocol):
    """
    Protocol defining the synchronous I/O interface.

    Implementations must provide a way to execute SOAPRequest objects
    and return SOAPResponse objects synchronously.  Network failures
    are raised as spquery.lib.error.TransportError.
    """

    def execute(self, request: SOAPRequest) -> SOAPResponse:
        """
        Execute a request and return the response.

        Args:
            request: The SOAPRequest to execute

        Returns:
            SOAPResponse with status, headers, and body
        """
        ...

    def close(self) -> None:
        """Close any resources (e.g., HTTP session)."""
        ...


@runtime_checkable
class AsyncIOProtocol(Protocol):
    """
    Protocol defining the asynchronous I/O interface.

    Implementations must provide a way to execute SOAPRequest objects
    and return SOAPResponse objects asynchronously.
    """

    async def execute(self, request: SOAPRequest) -> SOAPResponse:
        """
        Execute a request and return the response.

        Args:
            request: The SOAPRequest to execute

        Returns:
            SOAPResponse with status, headers, and body
        """
        ...

    async def close(self) -> None:
        """Close any resources (e.g., HTTP session)."""
        ...
