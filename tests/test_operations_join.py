"""
Tests for the client-side join and merge of list rows.
"""
import json

import pytest

from spquery.lib import error
from spquery.operations.join_ops import (
    JOIN_IN_CHUNK_SIZE,
    JOIN_IN_MAX_CHUNKS,
    JoinFieldPair,
    build_join_index,
    join_parent_request,
    join_rows,
    parent_only,
    parse_on_clause,
    prepare_join,
    restrict_to_lookup,
    with_fields,
)
from spquery.operations.merge_ops import PROVENANCE_FIELD, source_tag, tag_rows
from spquery.query import JoinSpec, Request

PARENTS = [{"id": "1"}, {"id": "2"}]
CHILDREN = [
    {"pid": "1", "name": "a"},
    {"pid": "1", "name": "b"},
    {"pid": "3", "name": "c"},
]


def _index(parents=PARENTS):
    return build_join_index(parents, parse_on_clause("'parent'.id = 'child'.pid"), "parent", "child")


class TestParseOnClause:
    def test_single_pair(self):
        assert parse_on_clause("'Orders'.Customer = 'Customers'.ID") == [
            JoinFieldPair("Orders", "Customer", "Customers", "ID")
        ]

    def test_several_pairs(self):
        pairs = parse_on_clause("'A'.x = 'B'.y and \"A\".z = \"B\".w")
        assert [p.field_for("A") for p in pairs] == ["x", "z"]
        assert [p.field_for("B") for p in pairs] == ["y", "w"]

    @pytest.mark.parametrize("on", ["", "A.x = B.y", "'A'.x == 'B'.y", "'A'.x = 'B'.y AND"])
    def test_invalid(self, on):
        with pytest.raises(error.InvalidJoinSpec):
            parse_on_clause(on)


class TestJoinRows:
    def test_inner_join(self):
        rows = join_rows(_index(), CHILDREN)
        assert rows == [
            {"parent.id": "1", "child.pid": "1", "child.name": "a"},
            {"parent.id": "1", "child.pid": "1", "child.name": "b"},
        ]

    def test_outer_join(self):
        rows = join_rows(_index(), CHILDREN, outer=True)
        assert len(rows) == 3
        assert rows[2] == {"parent.id": "2"}
        assert all(r.get("child.pid") != "3" for r in rows)

    def test_lookup_values_match_on_id(self):
        index = _index([{"id": "1", "title": "One"}])
        rows = join_rows(index, [{"pid": "1;#One", "name": "a"}])
        assert rows == [{"parent.id": "1", "parent.title": "One", "child.pid": "1;#One", "child.name": "a"}]

    def test_prefixed_keys(self):
        index = _index([{"parent.id": "1"}])
        rows = join_rows(index, [{"child.pid": "1", "child.name": "a"}])
        assert rows == [{"parent.id": "1", "child.pid": "1", "child.name": "a"}]

    def test_empty_key_never_matches(self):
        index = _index([{"id": ""}, {"title": "no id"}, {"id": "1"}])
        assert len(index.unmatchable) == 2
        assert join_rows(index, [{"pid": "", "name": "x"}, {"name": "y"}]) == []
        outer = join_rows(index, [], outer=True)
        assert outer == [{"parent.id": "1"}, {"parent.id": ""}, {"parent.title": "no id"}]

    def test_composite_keys_do_not_collide(self):
        pairs = parse_on_clause("'P'.a = 'C'.a AND 'P'.b = 'C'.b")
        index = build_join_index([{"a": "1_2", "b": "3"}, {"a": "1", "b": "2_3"}], pairs, "P", "C")
        rows = join_rows(index, [{"a": "1", "b": "2_3", "n": "x"}])
        assert rows == [{"P.a": "1", "P.b": "2_3", "C.a": "1", "C.b": "2_3", "C.n": "x"}]

    def test_duplicate_parent_keys(self):
        index = _index([{"id": "1", "n": "first"}, {"id": "1", "n": "second"}])
        rows = join_rows(index, [{"pid": "1"}])
        assert [r["parent.n"] for r in rows] == ["first", "second"]
        assert index.keys == [("1",)]

    def test_parent_only(self):
        assert parent_only(_index()) == [{"parent.id": "1"}, {"parent.id": "2"}]


class TestLookupJoin:
    def test_prepare_restricts_child(self):
        spec = JoinSpec("Lines", request=Request(fields=["Title"]), on_lookup="Order")
        index, child = prepare_join([{"ID": "5"}, {"ID": "7"}, {"ID": "5"}], spec, "Orders")
        assert index.parent_fields == ["ID"]
        assert index.child_fields == ["Order"]
        assert child.where_caml
        assert child.fields == ["Title", "Order"]
        assert child.where.startswith('<In><FieldRef Name="Order" LookupId="True" />')
        assert child.where.count("<Value ") == 2

    def test_prepare_combines_child_filter(self):
        spec = JoinSpec("Lines", request=Request(where="Qty > 1"), on_lookup="Order")
        _, child = prepare_join([{"ID": "5"}], spec, "Orders")
        assert child.where.startswith("<And><In>")
        assert child.where.endswith('<Value Type="Number">1</Value></Gt></And>')

    def test_prepare_keeps_filter_rounds(self):
        spec = JoinSpec("Lines", request=Request(where=["Qty > 1", "Qty < 0"]), on_lookup="Order")
        _, child = prepare_join([{"ID": "5"}], spec, "Orders")
        assert isinstance(child.where, list)
        assert len(child.where) == 2

    def test_prepare_without_ids(self):
        spec = JoinSpec("Lines", on_lookup="Order")
        index, child = prepare_join([{"Title": "no id"}], spec, "Orders")
        assert child is None
        assert index.unmatchable == [{"Orders.Title": "no id"}]

    def test_explicit_on_adds_child_fields(self):
        spec = JoinSpec("Lines", request=Request(fields=["Qty"]), on="'Lines'.Order = 'Orders'.Number")
        _, child = prepare_join([{"Number": "5"}], spec, "Orders")
        assert child.fields == ["Qty", "Order"]
        assert child.where == ""

    def test_parent_request_gets_on_fields(self):
        request = Request(fields=["Title"], join=JoinSpec("Lines", on="'Lines'.Order = 'Orders'.Number"))
        assert join_parent_request(request, "Orders").fields == ["Title", "Number"]
        everything = Request(join=JoinSpec("Lines", on="'Lines'.Order = 'Orders'.Number"))
        assert join_parent_request(everything, "Orders") is everything

    def test_with_fields(self):
        request = Request(fields=["A", "B"])
        assert with_fields(request, ["B"]) is request
        assert with_fields(request, ["C", "A"]).fields == ["A", "B", "C"]
        everything = Request()
        assert with_fields(everything, ["C"]) is everything

    def test_explicit_on_is_not_restricted(self):
        spec = JoinSpec("Lines", on="'Lines'.Order = 'Orders'.ID")
        _, child = prepare_join([{"ID": "5"}], spec, "Orders")
        assert child is spec.request

    def test_chunks(self):
        ids = [str(i) for i in range(JOIN_IN_CHUNK_SIZE + 1)]
        child = restrict_to_lookup(Request(), "Order", ids)
        assert child.where.startswith("<Or><In>")
        assert child.where.count("<In>") == 2
        assert child.fields == []
        assert not child.paging

    def test_too_many_ids_pages_instead(self):
        ids = [str(i) for i in range(JOIN_IN_CHUNK_SIZE * JOIN_IN_MAX_CHUNKS + 1)]
        child = restrict_to_lookup(Request(where="Qty > 1"), "Order", ids)
        assert child.paging
        assert child.where == "Qty > 1"
        assert not child.where_caml


class TestMerge:
    def test_tag_rows(self):
        rows = tag_rows([{"x": "1"}], "A", "https://sp.example.com")
        assert json.loads(rows[0][PROVENANCE_FIELD]) == {"list": "A", "url": "https://sp.example.com"}

    def test_existing_tag_kept(self):
        inner = source_tag("B", "https://sp.example.com/b")
        rows = tag_rows([{"x": "2", PROVENANCE_FIELD: inner}], "A", "https://sp.example.com")
        assert rows[0][PROVENANCE_FIELD] == inner

    def test_input_not_modified(self):
        original = [{"x": "1"}]
        tag_rows(original, "A", "https://sp.example.com")
        assert original == [{"x": "1"}]
