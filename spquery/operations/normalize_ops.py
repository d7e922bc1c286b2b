"""
Option normalization - Sans-I/O resolution of request shortcuts.

A Request may name a view, ask for calendar expansion, or scope itself
to a folder.  This module folds those shortcuts into one concrete set of
fields, sort, filter rounds and query options that the compiler can
turn into CAML.  The view definition and the list root folder are
looked up by the engine beforehand and passed in.
"""
from dataclasses import dataclass
from datetime import datetime
from datetime import timezone
from typing import List
from typing import Optional

from spquery.lib import error
from spquery.lib.caml import translate_filter
from spquery.protocol.types import ViewInfo
from spquery.protocol.xml_builders import CALENDAR_RANGES
from spquery.query import FOLDER_SCOPES
from spquery.query import CalendarOptions
from spquery.query import Request

from .base import and_caml
from .base import unique
from .join_ops import parse_on_clause
from .join_ops import side_fields

CALENDAR_SORT = "EventDate ASC"


@dataclass(frozen=True)
class NormalizedRequest:
    """
    Everything the compiler needs, with all shortcuts resolved.

    ``where_rounds`` holds inner CAML (possibly empty), one entry per
    filter round.
    """

    fields: tuple = ()
    orderby: str = ""
    groupby: str = ""
    where_rounds: tuple = ("",)
    multi_where: bool = False
    row_limit: int = 0
    calendar: bool = False
    calendar_range: str = "Month"
    calendar_date: Optional[str] = None
    expand_recurrence: bool = True
    view_scope: Optional[str] = "Recursive"
    folder: Optional[str] = None
    use_index_for_orderby: bool = False
    expand_user_field: bool = False
    date_in_utc: bool = False
    query_options: Optional[str] = None


def check_request(list_name: str, site_url: Optional[str], request: Request) -> None:
    """
    Validate a request (and its joins and merges) before any I/O.

    :raises ConfigError: missing list or site URL, bad paging values
    :raises InvalidJoinSpec: join without usable ON clause
    """
    if not list_name:
        raise error.ConfigError(reason="the list name or ID is required")
    if not site_url:
        raise error.ConfigError(reason=f"the site URL is required for list '{list_name}'")
    if request.page < 1:
        raise error.ConfigError(reason=f"page must be at least 1, got {request.page}")
    if request.rowlimit < 0:
        raise error.ConfigError(reason=f"rowlimit can't be negative, got {request.rowlimit}")
    if request.folder_options and request.folder_options.show not in FOLDER_SCOPES:
        raise error.ConfigError(reason=f"unknown folder show option {request.folder_options.show!r}")
    if request.calendar_options and request.calendar_options.range not in CALENDAR_RANGES:
        raise error.ConfigError(
            reason=f"unknown calendar range {request.calendar_options.range!r}, expected one of {', '.join(CALENDAR_RANGES)}"
        )

    if request.join is not None:
        spec = request.join
        if not spec.list:
            raise error.InvalidJoinSpec(reason="join requires a list")
        parent_alias = request.alias or list_name
        on = spec.on_clause(parent_alias)
        if not on:
            raise error.InvalidJoinSpec(reason=f"join with '{spec.list}' requires 'on' or 'on_lookup'")
        if spec.alias == parent_alias:
            raise error.InvalidJoinSpec(
                reason=f"both sides of the join are named '{parent_alias}', set an alias"
            )
        pairs = parse_on_clause(on)
        side_fields(pairs, parent_alias)
        side_fields(pairs, spec.alias)
        check_request(spec.list, spec.url or site_url, spec.request)

    for target in request.merge:
        if not target.list:
            raise error.ConfigError(reason="merge target requires a list")
        check_request(target.list, target.url or site_url, target.request)


def needs_root_folder(request: Request) -> bool:
    return bool(request.folder_options and not request.folder_options.root_folder)


def to_caml(expr: str, is_caml: bool, escape: bool = True) -> str:
    if not expr:
        return ""
    if is_caml:
        return expr
    return translate_filter(expr, escape)


def format_sp_date(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def normalize_request(
    request: Request,
    view: Optional[ViewInfo] = None,
    root_folder: Optional[str] = None,
    now: Optional[datetime] = None,
) -> NormalizedRequest:
    """
    Merge a request with its view and resolve calendar and folder options.

    - fields: explicit fields, then view fields, without duplicates
    - sort: user sort, then view sort
    - filter: each user filter round AND the view filter
    - calendar (asked for, or implied by a calendar view): sort on
      EventDate when nothing else sorts, and a CalendarDate option
    - folder: root folder + relative path, view scope from folder_options

    :param now: reference date for calendar queries without one
    :raises FilterSyntaxError: when a filter can't be translated
    """
    fields: List[str] = unique(list(request.fields) + (view.fields if view else []))

    orderby = ", ".join(x for x in (request.orderby, view.order_by if view else None) if x)

    view_where = view.where_caml if view else None
    rounds = [
        and_caml(to_caml(w, request.where_caml, request.where_escape_char), view_where or "")
        for w in request.where_rounds()
    ]

    calendar = request.calendar or bool(view and view.calendar)
    cal_opts = request.calendar_options or CalendarOptions()
    calendar_date = None
    if calendar:
        if not orderby:
            orderby = CALENDAR_SORT
        reference = cal_opts.reference_date or now or datetime.now(timezone.utc)
        calendar_date = format_sp_date(reference)

    view_scope: Optional[str] = "Recursive"
    folder = None
    if request.folder_options is not None:
        view_scope = FOLDER_SCOPES[request.folder_options.show]
        root = request.folder_options.root_folder or root_folder
        if request.folder_options.path:
            if not root:
                raise error.ConfigError(reason="folder_options.path requires the list root folder")
            folder = f"{root.rstrip('/')}/{request.folder_options.path.strip('/')}"

    return NormalizedRequest(
        fields=tuple(fields),
        orderby=orderby,
        groupby=request.groupby or "",
        where_rounds=tuple(rounds),
        multi_where=request.multi_where,
        row_limit=request.rowlimit,
        calendar=calendar,
        calendar_range=cal_opts.range,
        calendar_date=calendar_date,
        expand_recurrence=cal_opts.split_recurrence,
        view_scope=view_scope,
        folder=folder,
        use_index_for_orderby=request.use_index_for_orderby,
        expand_user_field=request.expand_user_field,
        date_in_utc=request.date_in_utc,
        query_options=request.query_options,
    )
