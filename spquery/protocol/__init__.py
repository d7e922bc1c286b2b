"""
Sans-I/O implementation of the SharePoint Lists web service.

This module provides protocol-level operations without any I/O.
It builds requests and parses responses as pure data transformations.

The protocol layer is organized into:
- types: Core data structures (SOAPRequest, SOAPResponse, result types)
- xml_builders: Pure functions to build SOAP request bodies
- xml_parsers: Pure functions to parse SOAP response bodies
- operations: ListsProtocol class combining builders and parsers

Example usage:

    from spquery.protocol import ListsProtocol

    protocol = ListsProtocol(base_url="https://sp.example.com/sites/team")

    # Build a request (no I/O)
    request = protocol.get_list_request("Tasks")

    # Execute via your preferred I/O (sync, async, or mock)
    response = your_http_client.execute(request)

    # Parse response (no I/O)
    info = protocol.parse_list(response)
"""

from .types import (
    ContentType,
    ListInfo,
    ListItemsPage,
    Record,
    SOAPRequest,
    SOAPResponse,
    ViewInfo,
)
from .xml_builders import (
    build_envelope,
    build_get_list_body,
    build_get_list_collection_body,
    build_get_list_content_types_body,
    build_get_list_items_body,
    build_get_view_body,
    build_group_by,
    build_order_by,
    build_query_options,
    build_view_fields,
    build_where,
)
from .xml_parsers import (
    decode_row,
    parse_content_types_response,
    parse_list_collection_response,
    parse_list_items_response,
    parse_list_response,
    parse_view_response,
)
from .operations import ListsProtocol

__all__ = [
    # Request/Response
    "SOAPRequest",
    "SOAPResponse",
    # Result types
    "ContentType",
    "ListInfo",
    "ListItemsPage",
    "Record",
    "ViewInfo",
    # XML Builders
    "build_envelope",
    "build_get_list_body",
    "build_get_list_collection_body",
    "build_get_list_content_types_body",
    "build_get_list_items_body",
    "build_get_view_body",
    "build_group_by",
    "build_order_by",
    "build_query_options",
    "build_view_fields",
    "build_where",
    # XML Parsers
    "decode_row",
    "parse_content_types_response",
    "parse_list_collection_response",
    "parse_list_items_response",
    "parse_list_response",
    "parse_view_response",
    # Protocol
    "ListsProtocol",
]
