"""
The query engine: rounds, joins and merges for one Request.

The engine never does I/O itself.  Each operation is a generator that
yields the SOAPRequest it needs executed, gets the SOAPResponse sent
back, and finally returns its value (``StopIteration.value``).  This
lets the sync and the async client share every line of query logic::

    op = engine.query("Tasks", Request(where='Status = "Open"'))
    result = drive(op, io.execute)

Retrieval is a plain loop over filter rounds and pages, so the number
of pages never grows the call stack.  Joins and merges nest as deep as
the request itself does.
"""
import logging
from typing import Any
from typing import Awaitable
from typing import Callable
from typing import Dict
from typing import Generator
from typing import List
from typing import Optional
from typing import Tuple
from typing import TypeVar
from urllib.parse import urljoin
from urllib.parse import urlparse

from spquery.cache import CONTENT_TYPES
from spquery.cache import LIST
from spquery.cache import LIST_COLLECTION
from spquery.cache import VIEW
from spquery.cache import MetadataCache
from spquery.cache import cache_key
from spquery.cache import get_cache
from spquery.lib import error
from spquery.operations.compile_ops import compile_query
from spquery.operations.join_ops import join_parent_request
from spquery.operations.join_ops import join_rows
from spquery.operations.join_ops import parent_only
from spquery.operations.join_ops import prepare_join
from spquery.operations.merge_ops import tag_rows
from spquery.operations.normalize_ops import check_request
from spquery.operations.normalize_ops import needs_root_folder
from spquery.operations.normalize_ops import normalize_request
from spquery.protocol.operations import ListsProtocol
from spquery.protocol.types import ContentType
from spquery.protocol.types import ListInfo
from spquery.protocol.types import Record
from spquery.protocol.types import SOAPRequest
from spquery.protocol.types import SOAPResponse
from spquery.protocol.types import ViewInfo
from spquery.query import Request
from spquery.query import Result

log = logging.getLogger("spquery")

T = TypeVar("T")
Operation = Generator[SOAPRequest, SOAPResponse, T]


def drive(operation: Operation[T], execute: Callable[[SOAPRequest], SOAPResponse]) -> T:
    """
    Run an operation to completion with a blocking ``execute``.

    Errors raised by ``execute`` are thrown into the operation so it can
    attach the rows collected so far before they propagate.
    """
    try:
        request = next(operation)
        while True:
            try:
                response = execute(request)
            except error.SPError as e:
                request = operation.throw(e)
            else:
                request = operation.send(response)
    except StopIteration as stop:
        return stop.value


async def drive_async(
    operation: Operation[T], execute: Callable[[SOAPRequest], Awaitable[SOAPResponse]]
) -> T:
    """Same as drive(), with a coroutine ``execute``."""
    try:
        request = next(operation)
        while True:
            try:
                response = await execute(request)
            except error.SPError as e:
                request = operation.throw(e)
            else:
                request = operation.send(response)
    except StopIteration as stop:
        return stop.value


class QueryEngine:
    """
    Sans-I/O driver for queries and metadata lookups.

    Args:
        protocol: Builds the SOAP requests and parses the responses
        cache: Metadata cache (default: the process-wide one)
        now: Reference time for calendar queries (default: current time)
    """

    def __init__(
        self,
        protocol: ListsProtocol,
        cache: Optional[MetadataCache] = None,
        now: Optional[Callable[[], Any]] = None,
    ) -> None:
        self.protocol = protocol
        self.cache = cache if cache is not None else get_cache()
        self.now = now

    def site(self, url: Optional[str] = None, parent: Optional[str] = None) -> str:
        """Site URL for a list: absolute, relative to parent, or the base URL."""
        if not url:
            return parent or self.protocol.base_url
        if urlparse(url).scheme or not parent:
            return self.protocol.resolve_url(url)
        return urljoin(parent.rstrip("/") + "/", url.lstrip("/")).rstrip("/")

    def _parse(self, parser: Callable, request: SOAPRequest, response: SOAPResponse, *args):
        try:
            return parser(response, *args)
        except error.SPError as e:
            if not e.url:
                e.url = request.url
            raise

    # =========================================================================
    # Queries
    # =========================================================================

    def query(self, list_name: str, request: Request, site_url: Optional[str] = None) -> Operation[Result]:
        """
        Everything a Request asks for, as one Result.

        The whole request, joins and merges included, is validated
        before the first round trip.

        Raises:
            ConfigError: invalid request, nothing has been sent
            SPError: any failing round; ``partial_items`` holds the rows
                collected by the earlier rounds of the failing list
        """
        site_url = self.site(site_url)
        check_request(list_name, site_url, request)
        return (yield from self._query(list_name, request, site_url))

    def _query(self, list_name: str, request: Request, site_url: str) -> Operation[Result]:
        if request.join is not None:
            request = join_parent_request(request, list_name)
        items, token = yield from self._retrieve(list_name, request, site_url)
        if request.join is not None:
            items = yield from self._join(items, request, list_name, site_url)
        if request.merge:
            items = yield from self._merge(items, request, list_name, site_url)
        log.info("%d items from list '%s'", len(items), list_name)
        return Result(items=items, next_page_token=token)

    def _retrieve(
        self, list_name: str, request: Request, site_url: str
    ) -> Operation[Tuple[List[Record], Optional[str]]]:
        """All filter rounds and pages of one list."""
        view = None
        if request.view:
            view = yield from self.view_info(list_name, request.view, site_url, request.view_cache)
        root_folder = None
        if needs_root_folder(request):
            info = yield from self.list_info(list_name, site_url)
            root_folder = info.root_folder
            if not root_folder:
                error.weirdness(f"no RootFolder for list '{list_name}'")

        normalized = normalize_request(
            request, view, root_folder, now=self.now() if self.now else None
        )
        alias = (request.alias or list_name) if request.show_list_in_attribute else None
        total = len(normalized.where_rounds)

        items: List[Record] = []
        token = None
        try:
            for number, where in enumerate(normalized.where_rounds, start=1):
                page_token = request.next_page_token if number == 1 else None
                budget = request.page if request.paging else 1
                while True:
                    body = compile_query(list_name, normalized, where, page_token)
                    soap_request = self.protocol.get_list_items_request(body, site_url)
                    log.debug(
                        "GetListItems on '%s' (filter %d/%d):\n%s",
                        list_name,
                        number,
                        total,
                        body.decode("utf-8"),
                    )
                    response = yield soap_request
                    page = self._parse(self.protocol.parse_list_items, soap_request, response, alias)
                    items.extend(page.rows)
                    token = page.next_page_token
                    log.debug("%d rows from '%s', next page token %r", len(page.rows), list_name, token)
                    if request.paging and request.progress:
                        request.progress(len(items), None)
                    budget -= 1
                    if not (request.paging and token and budget > 0):
                        break
                    page_token = token
                if normalized.multi_where:
                    log.info("filter %d/%d on '%s' done, %d items so far", number, total, list_name, len(items))
                    if request.progress:
                        request.progress(number, total)
        except error.SPError as e:
            e.partial_items = items
            raise
        return items, token

    def _join(
        self, items: List[Record], request: Request, list_name: str, site_url: str
    ) -> Operation[List[Record]]:
        spec = request.join
        parent_alias = request.alias or list_name
        log.info(
            "%s join of '%s' with '%s'", "outer" if spec.outer else "inner", parent_alias, spec.alias
        )
        if not items:
            log.info("join skipped, no items in '%s'", parent_alias)
            return []
        index, child_request = prepare_join(items, spec, parent_alias)
        if child_request is None:
            return parent_only(index) if spec.outer else []
        child = yield from self._query(spec.list, child_request, self.site(spec.url, site_url))
        return join_rows(index, child.items, spec.outer)

    def _merge(
        self, items: List[Record], request: Request, list_name: str, site_url: str
    ) -> Operation[List[Record]]:
        merged = tag_rows(items, list_name, site_url)
        for target in request.merge:
            target_url = self.site(target.url, site_url)
            log.info("merging list '%s' at %s", target.list, target_url)
            result = yield from self._query(target.list, target.request, target_url)
            merged.extend(tag_rows(result.items, target.list, target_url))
        return merged

    # =========================================================================
    # Metadata
    # =========================================================================

    def view_info(
        self, list_name: str, view_name: str, site_url: Optional[str] = None, use_cache: bool = True
    ) -> Operation[ViewInfo]:
        """
        Fields, sort and filter of a list view.

        With ``use_cache=False`` the view is fetched again, and the
        cached copy is replaced.
        """
        site_url = self.site(site_url)
        key = cache_key(VIEW, site_url, list_name, view_name)
        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                return cached
        soap_request = self.protocol.get_view_request(list_name, view_name, site_url)
        response = yield soap_request
        info = self._parse(self.protocol.parse_view, soap_request, response)
        self.cache.put(key, info)
        return info

    def list_info(
        self, list_name: str, site_url: Optional[str] = None, use_cache: bool = True
    ) -> Operation[ListInfo]:
        site_url = self.site(site_url)
        key = cache_key(LIST, site_url, list_name)
        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                return cached
        soap_request = self.protocol.get_list_request(list_name, site_url)
        response = yield soap_request
        info = self._parse(self.protocol.parse_list, soap_request, response)
        self.cache.put(key, info)
        return info

    def content_types(
        self, list_name: str, site_url: Optional[str] = None, use_cache: bool = True
    ) -> Operation[List[ContentType]]:
        site_url = self.site(site_url)
        key = cache_key(CONTENT_TYPES, site_url, list_name)
        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                return cached
        soap_request = self.protocol.get_list_content_types_request(list_name, site_url)
        response = yield soap_request
        types = self._parse(self.protocol.parse_list_content_types, soap_request, response)
        self.cache.put(key, types)
        return types

    def list_collection(
        self, site_url: Optional[str] = None, use_cache: bool = True
    ) -> Operation[List[Dict[str, str]]]:
        site_url = self.site(site_url)
        key = cache_key(LIST_COLLECTION, site_url)
        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                return cached
        soap_request = self.protocol.get_list_collection_request(site_url)
        response = yield soap_request
        lists = self._parse(self.protocol.parse_list_collection, soap_request, response)
        self.cache.put(key, lists)
        return lists
