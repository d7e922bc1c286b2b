"""
Synchronous I/O implementation using the requests library.
"""

from typing import Optional

import requests

from spquery.lib import error
from spquery.protocol.types import SOAPRequest, SOAPResponse


class SyncIO:
    """
    Synchronous I/O shell using the requests library.

    This is a thin wrapper that executes SOAPRequest objects via HTTP
    and returns SOAPResponse objects.  Authentication, proxies and
    retries are configured on the session by the caller.

    Example:
        io = SyncIO()
        response = io.execute(protocol.get_list_request("Tasks"))
        info = protocol.parse_list(response)
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        verify: bool = True,
    ):
        """
        Initialize the sync I/O handler.

        Args:
            session: Existing requests Session to use (creates new if None)
            timeout: Request timeout in seconds
            verify: Verify SSL certificates
        """
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.timeout = timeout
        self.verify = verify

    def execute(self, request: SOAPRequest) -> SOAPResponse:
        """
        Execute a SOAPRequest and return SOAPResponse.

        Args:
            request: The request to execute

        Returns:
            SOAPResponse with status, headers, and body

        Raises:
            TransportError: the request could not be completed
        """
        try:
            response = self.session.request(
                method=request.method,
                url=request.url,
                headers=request.headers,
                data=request.body,
                timeout=self.timeout,
                verify=self.verify,
            )
        except requests.RequestException as e:
            raise error.TransportError(url=request.url, reason=str(e)) from e

        return SOAPResponse(
            status=response.status_code,
            headers=dict(response.headers),
            body=response.content,
        )

    def close(self) -> None:
        """Close the session if we created it."""
        if self._owns_session and self.session:
            self.session.close()

    def __enter__(self) -> "SyncIO":
        """Context manager entry."""
        return self

    def __exit__(self, *args) -> None:
        """Context manager exit."""
        self.close()
