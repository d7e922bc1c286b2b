"""
Helpers for the compound values SharePoint puts in list item fields.

Lookup, user and multi-choice columns come back as strings like
``"15;#Paul"`` or ``";#Red;#Blue;#"``.  Calculated columns are
prefixed with their result type (``"float;#12.5"``), and date-only
values carry a midnight time.
"""
import re
from typing import Optional

_TYPE_PREFIX = re.compile(r"^(string|float|datetime);#?")
_MIDNIGHT = re.compile(r"^(\d{4}-\d{2}-\d{2}) 00:00:00$")
_INTERNAL_ID_SEP = re.compile(r";#-?\d+;#")
_LEADING_ID_SEP = re.compile(r"^-?\d+;#")
_EDGE_SEP = re.compile(r"^;#|;#$")
_SEP = re.compile(r";#")
_LOOKUP = re.compile(r"^(-?\d+);#")


def clean_result(value: Optional[str], separator: str = ";") -> str:
    """
    Remove the SharePoint decorations from a field value.

    Examples::

        clean_result("15;#Paul")                      -> "Paul"
        clean_result("string;#Paul")                  -> "Paul"
        clean_result(";#Paul;#Jacques;#", ", ")       -> "Paul, Jacques"
        clean_result("1;#Value1;#2;#Value2;#")        -> "Value1;Value2"
        clean_result("2022-01-19 00:00:00")           -> "2022-01-19"
        clean_result(None)                            -> ""

    The replacements are applied one after the other, so a value made
    only of separators (``";#;#"``) collapses to separators.
    """
    if not value:
        return ""
    value = _TYPE_PREFIX.sub("", value, count=1)
    value = _MIDNIGHT.sub(r"\1", value, count=1)
    value = _INTERNAL_ID_SEP.sub(separator, value)
    value = _LEADING_ID_SEP.sub("", value, count=1)
    value = _EDGE_SEP.sub("", value)
    return _SEP.sub(separator, value)


def get_lookup_id(value: Optional[str]) -> Optional[str]:
    """
    Return the item ID of a lookup value (``"15;#Paul"`` -> ``"15"``).

    For multi-value lookups only the first ID is returned.  None is
    returned when the value is not in lookup format.
    """
    if not value:
        return None
    m = _LOOKUP.match(value)
    if m is None:
        return None
    return m.group(1)
