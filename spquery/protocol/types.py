"""
Core protocol types for the Sans-I/O Lists web service implementation.

These dataclasses represent HTTP requests and responses at the protocol level,
independent of any I/O implementation, plus the parsed results of the
SOAP methods the query engine uses.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

## One list item: field name -> value.  A missing key means the field
## was not returned, an empty string means it was returned empty.
Record = Dict[str, Optional[str]]


@dataclass(frozen=True)
class SOAPRequest:
    """
    Represents an HTTP request to be made.

    This is a pure data structure with no I/O. It describes what request
    should be made, but does not make it.  All SOAP calls are POSTs.

    Attributes:
        url: Full URL of the web service endpoint
        action: SOAP method name (GetListItems, GetList, ...)
        headers: HTTP headers as dict
        body: SOAP envelope as bytes
    """

    url: str
    action: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    method: str = "POST"

    def with_header(self, name: str, value: str) -> "SOAPRequest":
        """Return new request with additional header."""
        new_headers = {**self.headers, name: value}
        return SOAPRequest(
            url=self.url,
            action=self.action,
            headers=new_headers,
            body=self.body,
            method=self.method,
        )


@dataclass(frozen=True)
class SOAPResponse:
    """
    Represents an HTTP response received.

    Attributes:
        status: HTTP status code
        headers: HTTP headers as dict
        body: Response body as bytes
    """

    status: int
    headers: dict[str, str]
    body: bytes

    @property
    def ok(self) -> bool:
        """True if status indicates success (2xx)."""
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    @property
    def reason(self) -> str:
        """Return a reason phrase for the status code."""
        reasons = {
            200: "OK",
            400: "Bad Request",
            401: "Unauthorized",
            403: "Forbidden",
            404: "Not Found",
            429: "Too Many Requests",
            500: "Internal Server Error",
            502: "Bad Gateway",
            503: "Service Unavailable",
        }
        return reasons.get(self.status, "Unknown")


@dataclass
class ListItemsPage:
    """
    Decoded result of one GetListItems round.

    Attributes:
        rows: Records in server order
        next_page_token: ListItemCollectionPositionNext, None when absent or empty
        item_count: ItemCount reported by the server, if any
    """

    rows: List[Record] = field(default_factory=list)
    next_page_token: Optional[str] = None
    item_count: Optional[int] = None


@dataclass
class ViewInfo:
    """
    The parts of a list view the query engine can reuse.

    Attributes:
        name: View GUID
        fields: ViewFields, in view order
        order_by: "Field ASC, Other DESC" or None
        where_caml: Inner CAML of the view's <Where>, or None
        row_limit: RowLimit of the view, if any
        calendar: True for calendar views
    """

    name: str = ""
    fields: List[str] = field(default_factory=list)
    order_by: Optional[str] = None
    where_caml: Optional[str] = None
    row_limit: Optional[int] = None
    calendar: bool = False


@dataclass
class ListInfo:
    """
    List details (attributes of <List>) and its fields.

    Attributes:
        details: Attributes of the <List> element
        fields: One dict per <Field> having an ID
    """

    details: Dict[str, str] = field(default_factory=dict)
    fields: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def root_folder(self) -> Optional[str]:
        return self.details.get("RootFolder")


@dataclass
class ContentType:
    id: str
    name: str = ""
    description: str = ""
