"""
Translation of SQL-like WHERE expressions into CAML.

The accepted syntax is the one used throughout the package::

    Title = "Hello" AND (Status <> "Closed" OR Priority > 2)
    Author = "[Me]"
    Created >= "[Today-7]"
    Project = "~12"                      (lookup by item ID)
    Category IN ["a", "b", "~3"]
    Description LIKE "keyword"           (Contains)
    Title ~= "Pre"                       (BeginsWith)
    DueDate IS NULL / DueDate IS NOT NULL

Field names are bare words or wrapped in brackets (``[My Field]``).
Values are quoted strings or bare numbers.  AND binds tighter than OR.
"""
import re
from typing import List
from typing import NamedTuple
from typing import Optional
from typing import Tuple

from spquery.lib import error

_COMPARISONS = {
    "=": "Eq",
    "==": "Eq",
    "<>": "Neq",
    "!=": "Neq",
    "<": "Lt",
    "<=": "Leq",
    ">": "Gt",
    ">=": "Geq",
    "~=": "BeginsWith",
    "LIKE": "Contains",
}

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<lparen>\()
  | (?P<rparen>\))
  | (?P<lbracket_list>\[(?=\s*["'\d\]-]))
  | (?P<rbracket>\])
  | (?P<comma>,)
  | (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
  | (?P<number>-?\d+(?:\.\d+)?(?![\w.]))
  | (?P<op><>|!=|<=|>=|==|~=|=|<|>)
  | (?P<field>\[[^\]]+\]|[A-Za-z_][\w.:-]*)
    """,
    re.VERBOSE,
)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}([ T]\d{2}:\d{2}(:\d{2})?Z?)?$")
_TODAY_RE = re.compile(r"^\[Today\s*(?:([+-])\s*(\d+))?\]$", re.IGNORECASE)
_KEYWORDS = {"AND", "OR", "IN", "IS", "NOT", "NULL", "LIKE"}


class Token(NamedTuple):
    kind: str
    text: str
    pos: int


def _tokenize(expr: str) -> List[Token]:
    tokens: List[Token] = []
    pos = 0
    while pos < len(expr):
        m = _TOKEN_RE.match(expr, pos)
        if m is None:
            raise error.FilterSyntaxError(
                reason=f"unexpected character {expr[pos]!r} at position {pos} in {expr!r}"
            )
        kind = m.lastgroup
        text = m.group(kind)
        if kind == "lbracket_list":
            kind = "lbracket"
        if kind == "field" and text.upper() in _KEYWORDS:
            kind = "keyword"
            text = text.upper()
        if kind != "ws":
            tokens.append(Token(kind, text, pos))
        pos = m.end()
    return tokens


def _escape(value: str) -> str:
    return value.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _unquote(text: str) -> str:
    if text[:1] in ('"', "'"):
        quote = text[0]
        text = text[1:-1]
        text = text.replace("\\" + quote, quote).replace("\\\\", "\\")
    return text


def _field_ref(name: str, lookup_id: bool = False) -> str:
    if name.startswith("[") and name.endswith("]"):
        name = name[1:-1]
    if lookup_id:
        return f'<FieldRef Name="{name}" LookupId="True" />'
    return f'<FieldRef Name="{name}" />'


def _value(raw: str, quoted: bool, escape: bool) -> Tuple[str, bool]:
    """Return the CAML <Value> for a literal, and whether it is a lookup ID."""
    if not quoted:
        return f'<Value Type="Number">{raw}</Value>', False
    if raw == "[Me]":
        return '<Value Type="Integer"><UserID Type="Integer" /></Value>', False
    m = _TODAY_RE.match(raw)
    if m:
        if m.group(2):
            offset = int(m.group(2)) * (-1 if m.group(1) == "-" else 1)
            return (
                f'<Value Type="DateTime"><Today OffsetDays="{offset}" /></Value>',
                False,
            )
        return '<Value Type="DateTime"><Today /></Value>', False
    if raw.startswith("~") and raw[1:].lstrip("-").isdigit():
        return f'<Value Type="Integer">{raw[1:]}</Value>', True
    if _DATE_RE.match(raw):
        include_time = ' IncludeTimeValue="TRUE"' if len(raw) > 10 else ""
        return f'<Value Type="DateTime"{include_time}>{raw}</Value>', False
    if escape:
        raw = _escape(raw)
    return f'<Value Type="Text">{raw}</Value>', False


class _Parser:
    def __init__(self, expr: str, escape: bool) -> None:
        self.expr = expr
        self.escape = escape
        self.tokens = _tokenize(expr)
        self.pos = 0

    def _peek(self) -> Optional[Token]:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def _next(self) -> Token:
        tok = self._peek()
        if tok is None:
            raise error.FilterSyntaxError(reason=f"unexpected end of expression {self.expr!r}")
        self.pos += 1
        return tok

    def _expect(self, kind: str, text: Optional[str] = None) -> Token:
        tok = self._next()
        if tok.kind != kind or (text is not None and tok.text != text):
            raise error.FilterSyntaxError(
                reason=f"expected {text or kind} at position {tok.pos} in {self.expr!r}, got {tok.text!r}"
            )
        return tok

    def parse(self) -> str:
        result = self._or()
        tok = self._peek()
        if tok is not None:
            raise error.FilterSyntaxError(
                reason=f"unexpected {tok.text!r} at position {tok.pos} in {self.expr!r}"
            )
        return result

    def _or(self) -> str:
        left = self._and()
        while self._is_keyword("OR"):
            self.pos += 1
            left = f"<Or>{left}{self._and()}</Or>"
        return left

    def _and(self) -> str:
        left = self._atom()
        while self._is_keyword("AND"):
            self.pos += 1
            left = f"<And>{left}{self._atom()}</And>"
        return left

    def _is_keyword(self, word: str) -> bool:
        tok = self._peek()
        return tok is not None and tok.kind == "keyword" and tok.text == word

    def _atom(self) -> str:
        tok = self._peek()
        if tok is not None and tok.kind == "lparen":
            self.pos += 1
            inner = self._or()
            self._expect("rparen")
            return inner
        return self._comparison()

    def _literal(self) -> Tuple[str, bool]:
        tok = self._next()
        if tok.kind == "string":
            return _unquote(tok.text), True
        if tok.kind == "number":
            return tok.text, False
        raise error.FilterSyntaxError(
            reason=f"expected a value at position {tok.pos} in {self.expr!r}, got {tok.text!r}"
        )

    def _comparison(self) -> str:
        field = self._expect("field").text
        tok = self._next()

        if tok.kind == "keyword" and tok.text == "IS":
            negate = self._is_keyword("NOT")
            if negate:
                self.pos += 1
            self._expect("keyword", "NULL")
            tag = "IsNotNull" if negate else "IsNull"
            return f"<{tag}>{_field_ref(field)}</{tag}>"

        if tok.kind == "keyword" and tok.text == "IN":
            self._expect("lbracket")
            values: List[Tuple[str, bool]] = []
            while True:
                values.append(self._value_of(*self._literal()))
                nxt = self._next()
                if nxt.kind == "rbracket":
                    break
                if nxt.kind != "comma":
                    raise error.FilterSyntaxError(
                        reason=f"expected ',' or ']' at position {nxt.pos} in {self.expr!r}"
                    )
            lookup = any(is_lookup for _, is_lookup in values)
            inner = "".join(v for v, _ in values)
            return f"<In>{_field_ref(field, lookup)}<Values>{inner}</Values></In>"

        if tok.kind == "op" or (tok.kind == "keyword" and tok.text == "LIKE"):
            tag = _COMPARISONS[tok.text]
            value, lookup = self._value_of(*self._literal())
            return f"<{tag}>{_field_ref(field, lookup)}{value}</{tag}>"

        raise error.FilterSyntaxError(
            reason=f"expected an operator at position {tok.pos} in {self.expr!r}, got {tok.text!r}"
        )

    def _value_of(self, raw: str, quoted: bool) -> Tuple[str, bool]:
        return _value(raw, quoted, self.escape)


def translate_filter(expr: str, escape: bool = True) -> str:
    """
    Convert a SQL-like WHERE expression into the inner CAML of a
    ``<Where>`` element.  An empty expression gives an empty string.

    :param expr: the expression, e.g. ``'Title = "Hello" AND ID > 3'``
    :param escape: XML-escape text values
    :raises FilterSyntaxError: when the expression can't be parsed
    """
    if not expr or not expr.strip():
        return ""
    return _Parser(expr, escape).parse()
