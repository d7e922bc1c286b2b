"""
Union of the rows of several lists.

Rows are appended source after source, never deduplicated.  Each row
gets a "Source" field telling which list and site it came from, unless
it already has one from a nested merge.
"""
import json
from typing import Iterable
from typing import List

from spquery.protocol.types import Record

PROVENANCE_FIELD = "Source"


def source_tag(list_name: str, site_url: str) -> str:
    return json.dumps({"list": list_name, "url": site_url})


def tag_rows(rows: Iterable[Record], list_name: str, site_url: str) -> List[Record]:
    tag = source_tag(list_name, site_url)
    tagged = []
    for row in rows:
        row = dict(row)
        row.setdefault(PROVENANCE_FIELD, tag)
        tagged.append(row)
    return tagged
