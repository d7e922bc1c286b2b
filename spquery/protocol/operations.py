"""
Lists web service operations combining request building and response parsing.

This class provides a high-level interface to the SOAP methods while
remaining completely I/O-free.
"""

import base64
from typing import Dict, List, Optional
from urllib.parse import urljoin, urlparse

from spquery.lib import error

from .types import (
    ContentType,
    ListInfo,
    ListItemsPage,
    SOAPRequest,
    SOAPResponse,
    ViewInfo,
)
from .xml_builders import (
    SP_NS,
    build_get_list_body,
    build_get_list_collection_body,
    build_get_list_content_types_body,
    build_get_view_body,
)
from .xml_parsers import (
    parse_content_types_response,
    parse_list_collection_response,
    parse_list_items_response,
    parse_list_response,
    parse_view_response,
)

LISTS_SERVICE = "_vti_bin/Lists.asmx"
VIEWS_SERVICE = "_vti_bin/Views.asmx"


class ListsProtocol:
    """
    Sans-I/O handler for the SharePoint Lists and Views web services.

    Builds requests and parses responses without doing any I/O.
    All HTTP communication is delegated to an external I/O implementation.

    Example:
        protocol = ListsProtocol(base_url="https://sp.example.com/sites/team")

        # Build request
        request = protocol.get_list_request("Tasks")

        # Execute with your I/O (not shown)
        response = io.execute(request)

        # Parse response
        info = protocol.parse_list(response)
    """

    def __init__(
        self,
        base_url: str = "",
        username: Optional[str] = None,
        password: Optional[str] = None,
        huge_tree: bool = False,
    ):
        """
        Initialize the protocol handler.

        Args:
            base_url: URL of the SharePoint site (web) holding the lists
            username: Username for Basic authentication
            password: Password for Basic authentication
            huge_tree: Allow parsing very large XML responses
        """
        self.base_url = base_url.rstrip("/") if base_url else ""
        self.username = username
        self.password = password
        self.huge_tree = huge_tree
        self._auth_header = self._build_auth_header(username, password)

    def _build_auth_header(
        self,
        username: Optional[str],
        password: Optional[str],
    ) -> Optional[str]:
        """Build Basic auth header if credentials provided."""
        if username and password:
            credentials = f"{username}:{password}"
            encoded = base64.b64encode(credentials.encode()).decode()
            return f"Basic {encoded}"
        return None

    def _base_headers(self, action: str) -> Dict[str, str]:
        headers = {
            "Content-Type": "text/xml; charset=utf-8",
            "SOAPAction": SP_NS + action,
        }
        if self._auth_header:
            headers["Authorization"] = self._auth_header
        return headers

    def resolve_url(self, path: str = "") -> str:
        """
        Resolve a site path (relative to base_url) or absolute URL.

        Args:
            path: Relative path or absolute URL

        Returns:
            Full URL without trailing slash
        """
        if not path:
            return self.base_url
        if urlparse(path).scheme:
            return path.rstrip("/")
        if self.base_url:
            return urljoin(self.base_url + "/", path.lstrip("/")).rstrip("/")
        return path.rstrip("/")

    def service_url(self, service: str = LISTS_SERVICE, site_url: Optional[str] = None) -> str:
        site_url = site_url or self.base_url
        if not site_url:
            raise error.ConfigError(reason="the site URL is required")
        return f"{site_url.rstrip('/')}/{service}"

    def _request(
        self, action: str, body: bytes, service: str = LISTS_SERVICE, site_url: Optional[str] = None
    ) -> SOAPRequest:
        return SOAPRequest(
            url=self.service_url(service, site_url),
            action=action,
            headers=self._base_headers(action),
            body=body,
        )

    # =========================================================================
    # Request builders
    # =========================================================================

    def get_list_items_request(self, body: bytes, site_url: Optional[str] = None) -> SOAPRequest:
        """
        Build a GetListItems request around a compiled query body.

        Args:
            body: SOAP envelope from compile_query()
            site_url: Site holding the list (default: base_url)

        Returns:
            SOAPRequest ready for execution
        """
        return self._request("GetListItems", body, site_url=site_url)

    def get_view_request(
        self, list_name: str, view_name: str, site_url: Optional[str] = None
    ) -> SOAPRequest:
        return self._request(
            "GetView",
            build_get_view_body(list_name, view_name),
            service=VIEWS_SERVICE,
            site_url=site_url,
        )

    def get_list_request(self, list_name: str, site_url: Optional[str] = None) -> SOAPRequest:
        return self._request("GetList", build_get_list_body(list_name), site_url=site_url)

    def get_list_content_types_request(
        self, list_name: str, site_url: Optional[str] = None
    ) -> SOAPRequest:
        return self._request(
            "GetListContentTypes",
            build_get_list_content_types_body(list_name),
            site_url=site_url,
        )

    def get_list_collection_request(self, site_url: Optional[str] = None) -> SOAPRequest:
        return self._request(
            "GetListCollection", build_get_list_collection_body(), site_url=site_url
        )

    # =========================================================================
    # Response parsers
    # =========================================================================

    def parse_list_items(
        self,
        response: SOAPResponse,
        alias: Optional[str] = None,
    ) -> ListItemsPage:
        """
        Parse a GetListItems response.

        Args:
            response: The SOAPResponse from the server
            alias: Prefix every field name with "<alias>."

        Returns:
            ListItemsPage with rows and continuation token
        """
        return parse_list_items_response(
            response.body,
            status_code=response.status,
            alias=alias,
            huge_tree=self.huge_tree,
        )

    def parse_view(self, response: SOAPResponse) -> ViewInfo:
        return parse_view_response(
            response.body, status_code=response.status, huge_tree=self.huge_tree
        )

    def parse_list(self, response: SOAPResponse) -> ListInfo:
        return parse_list_response(
            response.body, status_code=response.status, huge_tree=self.huge_tree
        )

    def parse_list_content_types(self, response: SOAPResponse) -> List[ContentType]:
        return parse_content_types_response(
            response.body, status_code=response.status, huge_tree=self.huge_tree
        )

    def parse_list_collection(self, response: SOAPResponse) -> List[Dict[str, str]]:
        return parse_list_collection_response(
            response.body, status_code=response.status, huge_tree=self.huge_tree
        )
