"""
Pure functions for parsing Lists web service XML responses.

All functions in this module are pure - they take XML bytes in and return
structured data out, with no side effects or I/O.
"""

import copy
import logging
from typing import Any, Dict, Iterable, List, Optional, Type

from lxml import etree
from lxml.etree import _Element

from spquery.lib import error
from spquery.lib.namespace import ns

from .types import ContentType, ListInfo, ListItemsPage, Record, ViewInfo

log = logging.getLogger(__name__)

ROW_PREFIX = "ows_"


def _localname(el: _Element) -> str:
    return etree.QName(el).localname


def _iter_named(tree: _Element, name: str) -> Iterable[_Element]:
    for el in tree.iter(tag=etree.Element):
        if _localname(el) == name:
            yield el


def _find_named(tree: _Element, name: str) -> Optional[_Element]:
    return next(iter(_iter_named(tree, name)), None)


def _parse_xml(body: bytes, huge_tree: bool = False) -> _Element:
    """
    Parse a response body.

    Raises:
        DecodeError: If body is empty or not well-formed XML
    """
    if not body or not body.strip():
        raise error.DecodeError(reason="empty response body")
    parser = etree.XMLParser(huge_tree=huge_tree)
    try:
        return etree.fromstring(body, parser)
    except etree.XMLSyntaxError as e:
        raise error.DecodeError(reason=f"malformed response XML: {e}") from e


def _fault_message(tree: _Element) -> Optional[str]:
    """Return the fault text if the envelope carries a SOAP fault."""
    fault = tree.find(".//" + ns("soap", "Fault"))
    if fault is None:
        return None
    detail = _find_named(fault, "errorstring")
    if detail is not None and detail.text:
        return detail.text.strip()
    faultstring = fault.find("faultstring")
    if faultstring is not None and faultstring.text:
        return faultstring.text.strip()
    return "SOAP fault"


def _check_response(
    body: bytes,
    status_code: int,
    method: str,
    huge_tree: bool = False,
    fault_class: Type[error.SPError] = error.RemoteServiceError,
) -> _Element:
    """
    Common status/fault handling for all methods.

    A non-success status with a SOAP fault is reported as fault_class (so
    "list does not exist" becomes ListNotFound for GetList); other failures
    become RemoteServiceError.
    """
    text = body.decode("utf-8", errors="replace") if body else ""
    if not 200 <= status_code < 300:
        fault = None
        if body:
            try:
                fault = _fault_message(etree.fromstring(body, etree.XMLParser(huge_tree=huge_tree)))
            except etree.XMLSyntaxError:
                fault = None
        if fault and fault_class is not error.RemoteServiceError:
            raise fault_class(reason=fault)
        raise error.RemoteServiceError(
            reason=fault or f"{method} failed with status {status_code}",
            status=status_code,
            body=text,
        )
    tree = _parse_xml(body, huge_tree=huge_tree)
    fault = _fault_message(tree)
    if fault:
        if fault_class is not error.RemoteServiceError:
            raise fault_class(reason=fault)
        raise error.RemoteServiceError(reason=fault, status=status_code, body=text)
    return tree


def caml_string(elements: Iterable[_Element]) -> str:
    """Serialize elements as namespace-free CAML."""
    out = []
    for el in elements:
        el = copy.deepcopy(el)
        for sub in el.iter(tag=etree.Element):
            sub.tag = _localname(sub)
        etree.cleanup_namespaces(el)
        out.append(etree.tostring(el, encoding="unicode", with_tail=False))
    return "".join(out)


def decode_row(
    row: _Element,
    alias: Optional[str] = None,
) -> Record:
    """
    Turn one attribute-per-row element into a Record, stripping the
    "ows_" prefix and prefixing "<alias>." when an alias is given.
    """
    record: Record = {}
    for key, value in row.attrib.items():
        key = etree.QName(key).localname if key.startswith("{") else key
        if key.startswith(ROW_PREFIX):
            key = key[len(ROW_PREFIX):]
        if alias:
            key = f"{alias}.{key}"
        record[key] = value
    return record


def parse_list_items_response(
    body: bytes,
    status_code: int = 200,
    alias: Optional[str] = None,
    huge_tree: bool = False,
) -> ListItemsPage:
    """
    Parse a GetListItems response.

    Args:
        body: Raw XML response bytes
        status_code: HTTP status code of the response
        alias: When set, every field name is prefixed with "<alias>."
        huge_tree: Allow parsing very large XML documents

    Returns:
        ListItemsPage with the rows and the continuation token

    Raises:
        RemoteServiceError: non-success status or SOAP fault
        DecodeError: malformed XML
    """
    tree = _check_response(body, status_code, "GetListItems", huge_tree=huge_tree)

    page = ListItemsPage()
    data = _find_named(tree, "data")
    if data is None:
        error.weirdness("GetListItems response without rs:data element", tree)
        return page

    token = data.get("ListItemCollectionPositionNext")
    if token:
        page.next_page_token = token
    item_count = data.get("ItemCount")
    if item_count and item_count.isdigit():
        page.item_count = int(item_count)

    for row in data:
        if not isinstance(row.tag, str) or _localname(row) != "row":
            continue
        page.rows.append(decode_row(row, alias))

    if page.item_count is not None and page.item_count != len(page.rows):
        log.debug(
            "ItemCount=%s but %s rows decoded", page.item_count, len(page.rows)
        )
    return page


def parse_view_response(
    body: bytes,
    status_code: int = 200,
    huge_tree: bool = False,
) -> ViewInfo:
    """
    Parse a GetView response into the parts a query can reuse.

    Raises:
        ViewNotFound: the service reported a fault or returned no <View>
    """
    tree = _check_response(
        body, status_code, "GetView", huge_tree=huge_tree, fault_class=error.ViewNotFound
    )
    view = _find_named(tree, "View")
    if view is None:
        raise error.ViewNotFound(reason="no View element in GetView response")

    info = ViewInfo(
        name=view.get("Name", ""),
        calendar=(view.get("Type", "").upper() == "CALENDAR"),
    )

    view_fields = _find_named(view, "ViewFields")
    if view_fields is not None:
        for ref in view_fields:
            if isinstance(ref.tag, str) and _localname(ref) == "FieldRef" and ref.get("Name"):
                info.fields.append(ref.get("Name"))

    query = _find_named(view, "Query")
    if query is not None:
        order_by = _find_named(query, "OrderBy")
        if order_by is not None:
            parts = []
            for ref in order_by:
                if not isinstance(ref.tag, str) or not ref.get("Name"):
                    continue
                ascending = ref.get("Ascending", "TRUE").upper() != "FALSE"
                parts.append(f"{ref.get('Name')} {'ASC' if ascending else 'DESC'}")
            info.order_by = ", ".join(parts) or None
        where = _find_named(query, "Where")
        if where is not None and len(where):
            info.where_caml = caml_string(where)

    row_limit = _find_named(view, "RowLimit")
    if row_limit is not None and row_limit.text and row_limit.text.strip().isdigit():
        info.row_limit = int(row_limit.text.strip())

    return info


def _parse_field_element(field: _Element) -> Dict[str, Any]:
    info: Dict[str, Any] = dict(field.attrib)
    choices: List[str] = []
    defaults: List[str] = []
    for child in field.iter(tag=etree.Element):
        name = _localname(child)
        if name == "CHOICE" and child.text is not None:
            choices.append(child.text)
        elif name == "Default" and child.text is not None:
            defaults.append(child.text)
    if choices:
        info["Choices"] = choices
    if info.get("Type") in ("Lookup", "LookupMulti"):
        info["Choices"] = {"list": info.get("List", ""), "field": info.get("ShowField", "")}
    if len(defaults) == 1:
        info["DefaultValue"] = defaults[0]
    elif defaults:
        info["DefaultValue"] = defaults
    else:
        info["DefaultValue"] = None
    return info


def parse_list_response(
    body: bytes,
    status_code: int = 200,
    huge_tree: bool = False,
) -> ListInfo:
    """
    Parse a GetList response.

    Raises:
        ListNotFound: the service reported a fault or returned no <List>
    """
    tree = _check_response(
        body, status_code, "GetList", huge_tree=huge_tree, fault_class=error.ListNotFound
    )
    lst = _find_named(tree, "List")
    if lst is None:
        raise error.ListNotFound(reason="no List element in GetList response")
    info = ListInfo(details=dict(lst.attrib))
    for field in _iter_named(lst, "Field"):
        ## fields nested in other fields' markup don't carry an ID
        if "ID" in field.attrib:
            info.fields.append(_parse_field_element(field))
    return info


def parse_content_types_response(
    body: bytes,
    status_code: int = 200,
    huge_tree: bool = False,
) -> List[ContentType]:
    tree = _check_response(
        body, status_code, "GetListContentTypes", huge_tree=huge_tree, fault_class=error.ListNotFound
    )
    return [
        ContentType(
            id=ct.get("ID"),
            name=ct.get("Name", ""),
            description=ct.get("Description", ""),
        )
        for ct in _iter_named(tree, "ContentType")
        if ct.get("ID")
    ]


def parse_list_collection_response(
    body: bytes,
    status_code: int = 200,
    huge_tree: bool = False,
) -> List[Dict[str, str]]:
    tree = _check_response(body, status_code, "GetListCollection", huge_tree=huge_tree)
    results = []
    for lst in _iter_named(tree, "List"):
        item = dict(lst.attrib)
        if "DefaultViewUrl" in item:
            item["Url"] = item["DefaultViewUrl"]
        if "Title" in item:
            item["Name"] = item["Title"]
        results.append(item)
    return results


