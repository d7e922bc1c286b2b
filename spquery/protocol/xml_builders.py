"""
Pure functions for building Lists web service SOAP request bodies.

All functions in this module are pure - they take data in and return XML out,
with no side effects or I/O.  CAML elements are created in the SharePoint
SOAP namespace, which is the default namespace of the method element, so
they serialize without prefixes.
"""
from typing import Iterable
from typing import List
from typing import Optional
from typing import Sequence
from typing import Union

from lxml import etree
from lxml.etree import _Element

from spquery.lib import error
from spquery.lib.namespace import ns
from spquery.lib.namespace import nsmap

SP_NS = nsmap["sp"]

CALENDAR_RANGES = ("Day", "Week", "Month", "Year", "Now", "Today")


def _sp(tag: str) -> str:
    return ns("sp", tag)


def _element(tag: str, text: Optional[str] = None, **attrib: str) -> _Element:
    el = etree.Element(_sp(tag), attrib)
    if text is not None:
        el.text = text
    return el


def parse_fragment(fragment: str, xmlns: str = SP_NS) -> List[_Element]:
    """
    Parse an XML fragment (possibly several sibling elements, e.g. a
    CAML filter) into elements of the given default namespace.

    :raises FilterSyntaxError: when the fragment is not well-formed
    """
    try:
        wrapper = etree.fromstring(f'<wrapper xmlns="{xmlns}">{fragment}</wrapper>')
    except etree.XMLSyntaxError as e:
        raise error.FilterSyntaxError(reason=f"malformed CAML fragment: {e}") from e
    return list(wrapper)


def build_envelope(
    method_name: str,
    body: Union[str, Iterable[_Element]],
    xmlns: str = SP_NS,
) -> bytes:
    """
    Wrap the method parameters in a SOAP 1.1 envelope.

    Args:
        method_name: SOAP method, e.g. "GetListItems"
        body: Parameter elements, or the same as an XML fragment string
        xmlns: Namespace of the method element

    Returns:
        UTF-8 encoded XML bytes
    """
    envelope = etree.Element(
        ns("soap", "Envelope"),
        nsmap={k: nsmap[k] for k in ("xsi", "xsd", "soap")},
    )
    soap_body = etree.SubElement(envelope, ns("soap", "Body"))
    method = etree.SubElement(soap_body, "{%s}%s" % (xmlns, method_name), nsmap={None: xmlns})
    if isinstance(body, str):
        body = parse_fragment(body, xmlns) if body.strip() else []
    for child in body:
        method.append(child)
    return etree.tostring(envelope, encoding="utf-8", xml_declaration=True)


def build_view_fields(fields: Sequence[str]) -> _Element:
    view_fields = _element("ViewFields", Properties="True")
    for name in fields:
        view_fields.append(_element("FieldRef", Name=name))
    return view_fields


def build_order_by(
    orderby: Optional[str],
    use_index: bool = False,
) -> Optional[_Element]:
    """
    Build <OrderBy> from "Field [ASC|DESC], Other [ASC|DESC]".

    Returns None for an empty sort specification.
    """
    if not orderby:
        return None
    refs = []
    for part in orderby.split(","):
        words = part.split()
        if not words:
            continue
        direction = words[1].upper() if len(words) > 1 else "ASC"
        refs.append(
            _element(
                "FieldRef",
                Name=words[0],
                Ascending="TRUE" if direction != "DESC" else "FALSE",
            )
        )
    if not refs:
        return None
    order_by = _element("OrderBy")
    if use_index:
        order_by.set("UseIndexForOrderBy", "TRUE")
        order_by.set("Override", "TRUE")
    order_by.extend(refs)
    return order_by


def build_group_by(groupby: Optional[str]) -> Optional[_Element]:
    if not groupby:
        return None
    names = [x.strip() for x in groupby.split(",") if x.strip()]
    if not names:
        return None
    group_by = _element("GroupBy", Collapse="TRUE")
    for name in names:
        group_by.append(_element("FieldRef", Name=name))
    return group_by


def build_date_ranges_overlap(calendar_range: str = "Month") -> str:
    """CAML fragment selecting calendar occurrences inside the given range."""
    if calendar_range not in CALENDAR_RANGES:
        raise error.ConfigError(reason=f"unknown calendar range {calendar_range!r}")
    return (
        "<DateRangesOverlap>"
        '<FieldRef Name="EventDate" />'
        '<FieldRef Name="EndDate" />'
        '<FieldRef Name="RecurrenceID" />'
        f'<Value Type="DateTime"><{calendar_range} /></Value>'
        "</DateRangesOverlap>"
    )


def build_where(where_caml: Optional[str]) -> Optional[_Element]:
    """Wrap inner CAML in <Where>.  No element at all for an empty filter."""
    if not where_caml or not where_caml.strip():
        return None
    where = _element("Where")
    where.extend(parse_fragment(where_caml))
    return where


def build_query_options(
    next_page_token: Optional[str] = None,
    date_in_utc: bool = False,
    include_mandatory_columns: bool = True,
    expand_user_field: bool = False,
    view_scope: Optional[str] = "Recursive",
    folder: Optional[str] = None,
    calendar_date: Optional[str] = None,
    expand_recurrence: bool = True,
    raw: Optional[str] = None,
) -> _Element:
    """
    Build <QueryOptions>.  When raw is given it replaces the generated
    options entirely.
    """
    query_options = _element("QueryOptions")
    if raw:
        query_options.extend(parse_fragment(raw))
        return query_options
    query_options.append(_element("DateInUtc", "True" if date_in_utc else "False"))
    query_options.append(
        _element("Paging", ListItemCollectionPositionNext=next_page_token or "")
    )
    query_options.append(_element("IncludeAttachmentUrls", "True"))
    if not include_mandatory_columns:
        query_options.append(_element("IncludeMandatoryColumns", "False"))
    query_options.append(
        _element("ExpandUserField", "True" if expand_user_field else "False")
    )
    if view_scope:
        query_options.append(_element("ViewAttributes", Scope=view_scope))
    if folder:
        query_options.append(_element("Folder", folder))
    if calendar_date is not None:
        query_options.append(_element("CalendarDate", calendar_date))
        query_options.append(_element("RecurrencePatternXMLVersion", "v3"))
        query_options.append(
            _element("ExpandRecurrence", "TRUE" if expand_recurrence else "FALSE")
        )
    return query_options


def build_get_list_items_body(
    list_name: str,
    fields: Sequence[str] = (),
    where: Optional[_Element] = None,
    order_by: Optional[_Element] = None,
    group_by: Optional[_Element] = None,
    row_limit: int = 0,
    query_options: Optional[_Element] = None,
) -> bytes:
    """
    Build the GetListItems SOAP envelope.

    Args:
        list_name: List title or GUID
        fields: Fields for <ViewFields>; empty means the list defaults
        where: <Where> element or None
        order_by: <OrderBy> element or None
        group_by: <GroupBy> element or None
        row_limit: Maximum number of rows for this round
        query_options: <QueryOptions> element

    Returns:
        UTF-8 encoded XML bytes
    """
    query = _element("Query")
    for part in (where, group_by, order_by):
        if part is not None:
            query.append(part)
    query_param = _element("query")
    query_param.append(query)

    view_fields_param = _element("viewFields")
    view_fields_param.append(build_view_fields(fields))

    query_options_param = _element("queryOptions")
    query_options_param.append(
        query_options if query_options is not None else build_query_options()
    )

    return build_envelope(
        "GetListItems",
        [
            _element("listName", list_name),
            _element("viewName", ""),
            query_param,
            view_fields_param,
            _element("rowLimit", str(row_limit)),
            query_options_param,
        ],
    )


def build_get_view_body(list_name: str, view_name: str) -> bytes:
    return build_envelope(
        "GetView",
        [_element("listName", list_name), _element("viewName", view_name)],
    )


def build_get_list_body(list_name: str) -> bytes:
    return build_envelope("GetList", [_element("listName", list_name)])


def build_get_list_content_types_body(list_name: str) -> bytes:
    return build_envelope("GetListContentTypes", [_element("listName", list_name)])


def build_get_list_collection_body() -> bytes:
    return build_envelope("GetListCollection", [])
