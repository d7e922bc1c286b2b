"""
Operations Layer - Sans-I/O query logic.

This package contains pure functions that implement the query engine
without performing any network I/O.  The engine (spquery.engine) strings
them together, and both SyncListClient and AsyncListClient drive the
engine.

Architecture:
    ┌─────────────────────────────────────┐
    │  SyncListClient / AsyncListClient   │
    │  (handles I/O)                      │
    ├─────────────────────────────────────┤
    │  QueryEngine (spquery.engine)       │
    │  - rounds, joins, merges            │
    ├─────────────────────────────────────┤
    │  Operations Layer (this package)    │
    │  - normalize_request()              │
    │  - compile_query()                  │
    │  - build_join_index(), join_rows()  │
    │  - tag_rows()                       │
    ├─────────────────────────────────────┤
    │  Protocol Layer (spquery.protocol)  │
    │  - XML building and parsing         │
    └─────────────────────────────────────┘

Modules:
    base: Common record and CAML helpers
    normalize_ops: Views, calendar and folder options folded into a request
    compile_ops: GetListItems envelope for one round
    join_ops: ON clause parsing, join index, row matching
    merge_ops: Provenance tagging for merged lists
"""
from spquery.operations.base import and_caml
from spquery.operations.base import field_value
from spquery.operations.base import or_caml
from spquery.operations.base import prefix_record
from spquery.operations.base import unique
from spquery.operations.compile_ops import compile_query
from spquery.operations.join_ops import build_join_index
from spquery.operations.join_ops import JOIN_IN_CHUNK_SIZE
from spquery.operations.join_ops import JOIN_IN_MAX_CHUNKS
from spquery.operations.join_ops import JoinFieldPair
from spquery.operations.join_ops import JoinIndex
from spquery.operations.join_ops import join_rows
from spquery.operations.join_ops import parse_on_clause
from spquery.operations.join_ops import prepare_join
from spquery.operations.join_ops import restrict_to_lookup
from spquery.operations.merge_ops import PROVENANCE_FIELD
from spquery.operations.merge_ops import source_tag
from spquery.operations.merge_ops import tag_rows
from spquery.operations.normalize_ops import check_request
from spquery.operations.normalize_ops import needs_root_folder
from spquery.operations.normalize_ops import normalize_request
from spquery.operations.normalize_ops import NormalizedRequest

__all__ = [
    # Base
    "and_caml",
    "field_value",
    "or_caml",
    "prefix_record",
    "unique",
    # Normalization
    "NormalizedRequest",
    "check_request",
    "needs_root_folder",
    "normalize_request",
    # Compilation
    "compile_query",
    # Joins
    "JOIN_IN_CHUNK_SIZE",
    "JOIN_IN_MAX_CHUNKS",
    "JoinFieldPair",
    "JoinIndex",
    "build_join_index",
    "join_rows",
    "parse_on_clause",
    "prepare_join",
    "restrict_to_lookup",
    # Merges
    "PROVENANCE_FIELD",
    "source_tag",
    "tag_rows",
]
