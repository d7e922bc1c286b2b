"""
Declarative query model.

A Request describes everything wanted from one list: fields, filter,
sort, grouping, paging, and optionally a join with a second list and a
merge with further lists.  The engine turns it into as many
GetListItems rounds as needed and hands back one Result.
"""
import dataclasses
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from typing import Callable
from typing import Iterator
from typing import List
from typing import Optional
from typing import Sequence
from typing import Union

from spquery.protocol.types import Record

#: folder_options.show -> ViewAttributes Scope
FOLDER_SCOPES = {
    "FilesOnlyRecursive": "Recursive",
    "FilesAndFoldersRecursive": "RecursiveAll",
    "FilesOnlyInFolder": "FilesOnly",
    "FilesAndFoldersInFolder": None,
}

DEFAULT_PAGE_LIMIT = 5000

ProgressCallback = Callable[[int, Optional[int]], None]


@dataclass
class FolderOptions:
    """
    Restrict a query to a folder of a list or library.

    :param path: folder path relative to the list root, e.g. "Archive/2023"
    :param show: one of the FOLDER_SCOPES keys
    :param root_folder: server-relative root of the list; looked up
        with GetList when not given
    """

    path: str = ""
    show: str = "FilesAndFoldersInFolder"
    root_folder: Optional[str] = None


@dataclass
class CalendarOptions:
    """
    Options for calendar lists (recurring events expansion).

    :param split_recurrence: expand each occurrence of recurring events
    :param reference_date: date the range is computed from (default: now, UTC)
    :param range: Day, Week, Month or Year
    """

    split_recurrence: bool = True
    reference_date: Optional[datetime] = None
    range: str = "Month"


@dataclass
class Request:
    """
    One logical query against a list.

    ``where`` is either a single SQL-like (or CAML, with ``where_caml``)
    expression, or a sequence of expressions.  A sequence is run as
    independent rounds, in order, and the rows are concatenated - the
    usual way around the list view threshold.
    """

    fields: Sequence[str] = ()
    where: Union[str, Sequence[str]] = ""
    where_caml: bool = False
    where_escape_char: bool = True
    orderby: str = ""
    groupby: str = ""
    rowlimit: int = 0
    paging: bool = False
    page: int = DEFAULT_PAGE_LIMIT
    next_page_token: Optional[str] = None
    view: Optional[str] = None
    view_cache: bool = True
    alias: Optional[str] = None
    show_list_in_attribute: bool = False
    use_index_for_orderby: bool = False
    expand_user_field: bool = False
    date_in_utc: bool = False
    folder_options: Optional[FolderOptions] = None
    calendar: bool = False
    calendar_options: Optional[CalendarOptions] = None
    query_options: Optional[str] = None
    join: Optional["JoinSpec"] = None
    merge: List["MergeTarget"] = field(default_factory=list)
    progress: Optional[ProgressCallback] = None

    def where_rounds(self) -> List[str]:
        """
        The filter expressions, one per round, as given.  An empty
        expression is a round without filter.  Never empty.
        """
        if isinstance(self.where, str):
            return [self.where]
        return list(self.where) or [""]

    @property
    def multi_where(self) -> bool:
        return not isinstance(self.where, str)

    def replace(self, **changes) -> "Request":
        return dataclasses.replace(self, **changes)


@dataclass
class JoinSpec:
    """
    Join the rows of the current list with the rows of another one.

    Either ``on`` (``"'Orders'.CustomerId = 'Customers'.ID"``, several
    pairs joined with AND) or ``on_lookup`` (the name of a lookup field
    of the joined list pointing at the current list) must be given.
    ``request`` describes what to fetch from the joined list, and may
    itself carry a join or a merge.
    """

    list: str
    request: Request = field(default_factory=Request)
    on: Optional[str] = None
    on_lookup: Optional[str] = None
    outer: bool = False
    url: Optional[str] = None

    @property
    def alias(self) -> str:
        return self.request.alias or self.list

    def on_clause(self, parent_alias: str) -> Optional[str]:
        if self.on:
            return self.on
        if self.on_lookup:
            return f"'{self.alias}'.{self.on_lookup} = '{parent_alias}'.ID"
        return None


@dataclass
class MergeTarget:
    """A further list whose rows are appended to the result."""

    list: str
    request: Request = field(default_factory=Request)
    url: Optional[str] = None


@dataclass
class Result:
    """
    Rows of a query, plus the continuation token of the last round.

    ``next_page_token`` is set when the service reported more rows than
    were fetched; pass it back as ``Request.next_page_token`` to resume.
    """

    items: List[Record] = field(default_factory=list)
    next_page_token: Optional[str] = None

    def __iter__(self) -> Iterator[Record]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, idx):
        return self.items[idx]

    @property
    def has_more(self) -> bool:
        return bool(self.next_page_token)
