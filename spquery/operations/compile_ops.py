"""
Query compilation - NormalizedRequest to GetListItems envelope.

Compilation is deterministic: the same normalized request, filter and
continuation token always give the same bytes.
"""
from typing import Optional

from spquery.protocol.xml_builders import build_date_ranges_overlap
from spquery.protocol.xml_builders import build_get_list_items_body
from spquery.protocol.xml_builders import build_group_by
from spquery.protocol.xml_builders import build_order_by
from spquery.protocol.xml_builders import build_query_options
from spquery.protocol.xml_builders import build_where

from .base import and_caml
from .normalize_ops import NormalizedRequest


def compile_query(
    list_name: str,
    normalized: NormalizedRequest,
    where_caml: str = "",
    page_token: Optional[str] = None,
) -> bytes:
    """
    Build the GetListItems envelope for one round.

    Args:
        list_name: List title or GUID
        normalized: Output of normalize_request()
        where_caml: Inner CAML of this round's filter (one of
            normalized.where_rounds)
        page_token: ListItemCollectionPositionNext from the previous round

    Returns:
        UTF-8 encoded SOAP envelope
    """
    if normalized.calendar:
        where_caml = and_caml(where_caml, build_date_ranges_overlap(normalized.calendar_range))

    query_options = build_query_options(
        next_page_token=page_token,
        date_in_utc=normalized.date_in_utc,
        include_mandatory_columns=not normalized.fields,
        expand_user_field=normalized.expand_user_field,
        view_scope=normalized.view_scope,
        folder=normalized.folder,
        calendar_date=normalized.calendar_date if normalized.calendar else None,
        expand_recurrence=normalized.expand_recurrence,
        raw=normalized.query_options,
    )

    return build_get_list_items_body(
        list_name,
        fields=normalized.fields,
        where=build_where(where_caml),
        order_by=build_order_by(normalized.orderby, normalized.use_index_for_orderby),
        group_by=build_group_by(normalized.groupby),
        row_limit=normalized.row_limit,
        query_options=query_options,
    )
