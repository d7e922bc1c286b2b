"""
Tests for GetListItems query compilation.
"""
from datetime import datetime

from lxml import etree

from spquery.operations.compile_ops import compile_query
from spquery.operations.normalize_ops import normalize_request
from spquery.query import FolderOptions, Request

SP = "{http://schemas.microsoft.com/sharepoint/soap/}"


def _method(body: bytes):
    return etree.fromstring(body).find(f".//{SP}GetListItems")


class TestCompileQuery:
    def test_idempotent(self):
        n = normalize_request(
            Request(fields=["Title"], where='Status = "Open"', orderby="Title DESC", groupby="Status")
        )
        first = compile_query("Tasks", n, n.where_rounds[0], "Paged=TRUE&p_ID=10")
        second = compile_query("Tasks", n, n.where_rounds[0], "Paged=TRUE&p_ID=10")
        assert first == second

    def test_empty_filter_has_no_where(self):
        n = normalize_request(Request())
        method = _method(compile_query("Tasks", n, n.where_rounds[0]))
        assert method.find(f".//{SP}Where") is None

    def test_filter_and_options(self):
        n = normalize_request(
            Request(
                fields=["Title"],
                where='Status = "Open"',
                orderby="ID",
                use_index_for_orderby=True,
                rowlimit=200,
                date_in_utc=True,
            )
        )
        method = _method(compile_query("Tasks", n, n.where_rounds[0], "Paged=TRUE&p_ID=10"))
        assert method.find(f"{SP}rowLimit").text == "200"
        where = method.find(f".//{SP}Where")
        assert where[0].tag == f"{SP}Eq"
        order_by = method.find(f".//{SP}OrderBy")
        assert order_by.get("UseIndexForOrderBy") == "TRUE"
        options = method.find(f".//{SP}QueryOptions")
        assert options.find(f"{SP}Paging").get("ListItemCollectionPositionNext") == "Paged=TRUE&p_ID=10"
        assert options.find(f"{SP}DateInUtc").text == "True"
        assert options.find(f"{SP}IncludeMandatoryColumns").text == "False"

    def test_default_fields_keep_mandatory_columns(self):
        n = normalize_request(Request())
        options = _method(compile_query("Tasks", n)).find(f".//{SP}QueryOptions")
        assert options.find(f"{SP}IncludeMandatoryColumns") is None

    def test_calendar_filter_combined(self):
        n = normalize_request(Request(calendar=True, where='Status = "Open"'), now=datetime(2024, 1, 1))
        method = _method(compile_query("Events", n, n.where_rounds[0]))
        where = method.find(f".//{SP}Where")
        assert where[0].tag == f"{SP}And"
        assert [etree.QName(c).localname for c in where[0]] == ["Eq", "DateRangesOverlap"]
        options = method.find(f".//{SP}QueryOptions")
        assert options.find(f"{SP}CalendarDate").text == "2024-01-01T00:00:00Z"
        order_by = method.find(f".//{SP}OrderBy")
        assert order_by[0].get("Name") == "EventDate"

    def test_calendar_without_filter(self):
        n = normalize_request(Request(calendar=True), now=datetime(2024, 1, 1))
        where = _method(compile_query("Events", n)).find(f".//{SP}Where")
        assert where[0].tag == f"{SP}DateRangesOverlap"

    def test_folder(self):
        n = normalize_request(
            Request(folder_options=FolderOptions(path="Sub", show="FilesAndFoldersRecursive")),
            root_folder="/sites/team/Docs",
        )
        options = _method(compile_query("Docs", n)).find(f".//{SP}QueryOptions")
        assert options.find(f"{SP}Folder").text == "/sites/team/Docs/Sub"
        assert options.find(f"{SP}ViewAttributes").get("Scope") == "RecursiveAll"

    def test_raw_query_options(self):
        n = normalize_request(Request(query_options="<Folder>/x</Folder>"))
        options = _method(compile_query("Docs", n)).find(f".//{SP}QueryOptions")
        assert [etree.QName(c).localname for c in options] == ["Folder"]
