"""
Tests for the SQL-like WHERE to CAML translation.
"""
import pytest

from spquery.lib import error
from spquery.lib.caml import translate_filter


class TestComparisons:
    def test_text_equality(self):
        assert (
            translate_filter('Title = "Hello"')
            == '<Eq><FieldRef Name="Title" /><Value Type="Text">Hello</Value></Eq>'
        )

    def test_number(self):
        assert (
            translate_filter("ID > 3")
            == '<Gt><FieldRef Name="ID" /><Value Type="Number">3</Value></Gt>'
        )

    @pytest.mark.parametrize(
        "op,tag",
        [
            ("=", "Eq"),
            ("==", "Eq"),
            ("<>", "Neq"),
            ("!=", "Neq"),
            ("<", "Lt"),
            ("<=", "Leq"),
            (">", "Gt"),
            (">=", "Geq"),
        ],
    )
    def test_operators(self, op, tag):
        assert translate_filter(f"Amount {op} 10").startswith(f"<{tag}>")

    def test_like_is_contains(self):
        assert (
            translate_filter('Title LIKE "foo"')
            == '<Contains><FieldRef Name="Title" /><Value Type="Text">foo</Value></Contains>'
        )

    def test_begins_with(self):
        assert translate_filter('Title ~= "Pre"').startswith("<BeginsWith>")

    def test_bracketed_field_name(self):
        assert '<FieldRef Name="My Field" />' in translate_filter('[My Field] = "x"')

    def test_is_null(self):
        assert translate_filter("DueDate IS NULL") == '<IsNull><FieldRef Name="DueDate" /></IsNull>'
        assert (
            translate_filter("DueDate is not null")
            == '<IsNotNull><FieldRef Name="DueDate" /></IsNotNull>'
        )


class TestSpecialValues:
    def test_me(self):
        assert (
            translate_filter('Author = "[Me]"')
            == '<Eq><FieldRef Name="Author" /><Value Type="Integer"><UserID Type="Integer" /></Value></Eq>'
        )

    def test_today_with_offset(self):
        assert (
            translate_filter('Created >= "[Today-7]"')
            == '<Geq><FieldRef Name="Created" /><Value Type="DateTime"><Today OffsetDays="-7" /></Value></Geq>'
        )

    def test_today(self):
        assert '<Value Type="DateTime"><Today /></Value>' in translate_filter('Due < "[Today]"')

    def test_lookup_id(self):
        assert (
            translate_filter('Project = "~12"')
            == '<Eq><FieldRef Name="Project" LookupId="True" /><Value Type="Integer">12</Value></Eq>'
        )

    def test_date(self):
        assert '<Value Type="DateTime">2024-01-31</Value>' in translate_filter('Due = "2024-01-31"')

    def test_date_time(self):
        assert (
            '<Value Type="DateTime" IncludeTimeValue="TRUE">2024-01-31T10:00:00Z</Value>'
            in translate_filter('Due = "2024-01-31T10:00:00Z"')
        )

    def test_text_is_escaped(self):
        assert ">a&lt;b&amp;c<" in translate_filter('Title = "a<b&c"')

    def test_escaping_can_be_disabled(self):
        assert ">a<b/><" in translate_filter('Title = "a<b/>"', escape=False)

    def test_quoted_quote(self):
        assert ">it's<" in translate_filter("Title = 'it\\'s'")


class TestLogic:
    def test_and_binds_tighter_than_or(self):
        assert translate_filter("A = 1 AND B = 2 OR C = 3") == (
            "<Or><And>"
            '<Eq><FieldRef Name="A" /><Value Type="Number">1</Value></Eq>'
            '<Eq><FieldRef Name="B" /><Value Type="Number">2</Value></Eq>'
            "</And>"
            '<Eq><FieldRef Name="C" /><Value Type="Number">3</Value></Eq>'
            "</Or>"
        )

    def test_parentheses(self):
        caml = translate_filter("A = 1 AND (B = 2 OR C = 3)")
        assert caml.startswith("<And><Eq>")
        assert caml.endswith("</Eq></Or></And>")

    def test_three_terms_nest(self):
        caml = translate_filter("A = 1 AND B = 2 AND C = 3")
        assert caml.startswith("<And><And>")

    def test_in(self):
        assert translate_filter('Category IN ["a", "b"]') == (
            '<In><FieldRef Name="Category" /><Values>'
            '<Value Type="Text">a</Value><Value Type="Text">b</Value>'
            "</Values></In>"
        )

    def test_in_lookup_ids(self):
        caml = translate_filter('Order IN ["~1", "~2"]')
        assert '<FieldRef Name="Order" LookupId="True" />' in caml
        assert '<Value Type="Integer">1</Value><Value Type="Integer">2</Value>' in caml

    def test_in_numbers(self):
        assert '<Value Type="Number">7</Value>' in translate_filter("ID IN [7, 8]")


class TestErrors:
    def test_empty(self):
        assert translate_filter("") == ""
        assert translate_filter("   ") == ""

    @pytest.mark.parametrize(
        "expr",
        [
            "Title =",
            'Title "x"',
            '(Title = "x"',
            'Title = "x" junk',
            'Title = "x" $',
            'Title IN ["a" "b"]',
            "Title IS EMPTY",
        ],
    )
    def test_syntax_errors(self, expr):
        with pytest.raises(error.FilterSyntaxError):
            translate_filter(expr)
