"""
Client-side join of the rows of two lists.

The parent rows (everything retrieved for the current list) are indexed
on the values of the ON clause fields.  Every row of the joined list is
then looked up in that index and merged with each matching parent row.

Keys are tuples of the ON-pair values, lookup values (``"12;#Title"``)
reduced to their item ID.  A row with an empty key part can't match
anything: it is left out of an inner join, and comes out as a
parent-only row of an outer join.
"""
import logging
import re
from dataclasses import dataclass
from dataclasses import field
from typing import Dict
from typing import List
from typing import NamedTuple
from typing import Optional
from typing import Sequence
from typing import Tuple

from spquery.lib import error
from spquery.lib.caml import translate_filter
from spquery.lib.clean import get_lookup_id
from spquery.protocol.types import Record
from spquery.query import JoinSpec
from spquery.query import Request

from .base import and_caml
from .base import field_value
from .base import or_caml
from .base import prefix_record
from .base import unique

log = logging.getLogger("spquery")

#: maximum number of values in one <In> element
JOIN_IN_CHUNK_SIZE = 500
#: above this many <In> elements the child list is paged instead
JOIN_IN_MAX_CHUNKS = 10

JoinKey = Tuple[str, ...]

_ON_PAIR_RE = re.compile(r"""^\s*['"]([^'"]+)['"]\.(\S+)\s*=\s*['"]([^'"]+)['"]\.(\S+)\s*$""")
_AND_RE = re.compile(r"\s+AND\s+", re.IGNORECASE)


class JoinFieldPair(NamedTuple):
    list1: str
    field1: str
    list2: str
    field2: str

    def field_for(self, alias: str) -> Optional[str]:
        if self.list1 == alias:
            return self.field1
        if self.list2 == alias:
            return self.field2
        return None


def parse_on_clause(on: str) -> List[JoinFieldPair]:
    """
    Parse ``"'Orders'.CustomerId = 'Customers'.ID AND 'Orders'.Year = 'Customers'.Year"``.

    :raises InvalidJoinSpec: when a pair can't be parsed
    """
    if not on or not on.strip():
        raise error.InvalidJoinSpec(reason="empty ON clause")
    pairs = []
    for part in _AND_RE.split(on.strip()):
        m = _ON_PAIR_RE.match(part)
        if m is None:
            raise error.InvalidJoinSpec(reason=f"can't parse ON clause {part!r}")
        pairs.append(JoinFieldPair(*m.groups()))
    return pairs


def side_fields(pairs: Sequence[JoinFieldPair], alias: str) -> List[str]:
    """
    The fields of each pair that belong to ``alias``, in pair order.

    :raises InvalidJoinSpec: when a pair doesn't refer to ``alias``
    """
    fields = []
    for pair in pairs:
        name = pair.field_for(alias)
        if name is None:
            raise error.InvalidJoinSpec(
                reason=f"ON clause {pair.list1}.{pair.field1} = {pair.list2}.{pair.field2} doesn't refer to '{alias}'"
            )
        fields.append(name)
    return fields


def join_key(record: Record, fields: Sequence[str], alias: str) -> Optional[JoinKey]:
    """The join key of a row, or None when one of its parts is empty."""
    parts = []
    for name in fields:
        value = field_value(record, name, alias)
        value = get_lookup_id(value) or value
        if not value:
            return None
        parts.append(value)
    return tuple(parts)


@dataclass
class JoinIndex:
    """
    Parent rows grouped by join key.

    ``keys`` keeps the first-seen order of the keys; ``unmatchable``
    holds the rows with an empty key part, which only an outer join
    emits.
    """

    pairs: List[JoinFieldPair]
    parent_alias: str
    child_alias: str
    parent_fields: List[str]
    child_fields: List[str]
    keys: List[JoinKey] = field(default_factory=list)
    rows: Dict[JoinKey, List[Record]] = field(default_factory=dict)
    unmatchable: List[Record] = field(default_factory=list)

    def __len__(self) -> int:
        return sum(len(rows) for rows in self.rows.values()) + len(self.unmatchable)


def build_join_index(
    parent_rows: Sequence[Record],
    pairs: Sequence[JoinFieldPair],
    parent_alias: str,
    child_alias: str,
) -> JoinIndex:
    """Index the parent rows, prefixing their fields with "<parent_alias>."."""
    index = JoinIndex(
        pairs=list(pairs),
        parent_alias=parent_alias,
        child_alias=child_alias,
        parent_fields=side_fields(pairs, parent_alias),
        child_fields=side_fields(pairs, child_alias),
    )
    for row in parent_rows:
        key = join_key(row, index.parent_fields, parent_alias)
        row = prefix_record(row, parent_alias)
        if key is None:
            index.unmatchable.append(row)
            continue
        if key not in index.rows:
            index.keys.append(key)
            index.rows[key] = []
        index.rows[key].append(row)
    if parent_rows and not index.rows:
        log.warning(
            "no row of '%s' has a value for %s, the join with '%s' can't match anything",
            parent_alias,
            ", ".join(index.parent_fields),
            child_alias,
        )
    return index


def with_fields(request: Request, names: Sequence[str]) -> Request:
    """
    The request with ``names`` added to the fields it lists.  A request
    listing no fields already gets all of them and is returned as is.
    """
    if not request.fields or all(name in request.fields for name in names):
        return request
    return request.replace(fields=unique(list(request.fields) + list(names)))


def join_parent_request(request: Request, list_name: str) -> Request:
    """The parent side of a join, asking for the fields its ON clause needs."""
    parent_alias = request.alias or list_name
    pairs = parse_on_clause(request.join.on_clause(parent_alias))
    return with_fields(request, side_fields(pairs, parent_alias))


def lookup_ids(index: JoinIndex) -> List[str]:
    """
    The parent item IDs a lookup join can match, in first-seen order.
    Empty unless the join is a single parent "ID" to child field pair.
    """
    if len(index.pairs) != 1 or index.parent_fields[0] != "ID":
        return []
    return unique(key[0] for key in index.keys)


def restrict_to_lookup(child: Request, lookup_field: str, ids: Sequence[str]) -> Request:
    """
    Restrict the child request to the rows whose lookup field points to
    one of the given parent IDs.

    The IDs go in ``<In>`` elements of at most JOIN_IN_CHUNK_SIZE values,
    OR-ed together and AND-ed with each of the child's own filter rounds.
    With more than JOIN_IN_MAX_CHUNKS elements the filter is not added
    and the child list is fetched with paging instead.  When the child
    lists its fields, the lookup field is added to them.
    """
    fields = unique(list(child.fields) + [lookup_field]) if child.fields else []
    chunks = [ids[i:i + JOIN_IN_CHUNK_SIZE] for i in range(0, len(ids), JOIN_IN_CHUNK_SIZE)]
    if len(chunks) > JOIN_IN_MAX_CHUNKS:
        log.warning(
            "join on '%s' would need %d IN clauses, fetching the joined list with paging instead",
            lookup_field,
            len(chunks),
        )
        return child.replace(fields=fields, paging=True)

    in_caml = or_caml(
        *(
            translate_filter("[%s] IN [%s]" % (lookup_field, ", ".join(f'"~{i}"' for i in chunk)))
            for chunk in chunks
        )
    )
    rounds = [
        and_caml(in_caml, w if child.where_caml else translate_filter(w, child.where_escape_char))
        for w in child.where_rounds()
    ]
    return child.replace(
        fields=fields,
        where=rounds if child.multi_where else rounds[0],
        where_caml=True,
    )


def join_rows(index: JoinIndex, child_rows: Sequence[Record], outer: bool = False) -> List[Record]:
    """
    Merge every child row with each parent row sharing its key.

    Child fields are added as "<child_alias>.<field>".  With ``outer``
    the parent rows no child matched follow, without child fields.
    """
    joined: List[Record] = []
    matched = set()
    for child in child_rows:
        key = join_key(child, index.child_fields, index.child_alias)
        if key is None or key not in index.rows:
            continue
        matched.add(key)
        child = prefix_record(child, index.child_alias)
        for parent in index.rows[key]:
            row = dict(parent)
            row.update(child)
            joined.append(row)

    if outer:
        for key in index.keys:
            if key not in matched:
                joined.extend(dict(row) for row in index.rows[key])
        joined.extend(dict(row) for row in index.unmatchable)
    return joined


def parent_only(index: JoinIndex) -> List[Record]:
    """All parent rows, as an outer join without any child row gives them."""
    return join_rows(index, [], outer=True)


def prepare_join(
    parent_rows: Sequence[Record], spec: JoinSpec, parent_alias: str
) -> Tuple[JoinIndex, Optional[Request]]:
    """
    Index the parent rows and work out the request for the joined list.

    Returns the index and the child request.  The child request is None
    when no child row can match (a lookup join without parent IDs): the
    join result is then empty, or the parent rows alone when ``outer``.
    """
    pairs = parse_on_clause(spec.on_clause(parent_alias))
    index = build_join_index(parent_rows, pairs, parent_alias, spec.alias)
    child = with_fields(spec.request, index.child_fields)
    if spec.on_lookup and not spec.on:
        ids = lookup_ids(index)
        if not ids:
            log.info("join with '%s': no parent IDs to look up", spec.list)
            return index, None
        child = restrict_to_lookup(child, spec.on_lookup, ids)
    return index, child
