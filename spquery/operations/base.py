"""
Base utilities for the operations layer.

The operations layer contains pure functions (Sans-I/O) that handle the
query engine's logic without performing any network I/O.

Design principles:
- All functions are pure: same inputs always produce same outputs
- No network I/O - that's the client's responsibility
- Records are plain dicts; no schema is assumed
"""
from typing import Iterable
from typing import List
from typing import Optional

from spquery.protocol.types import Record


def unique(values: Iterable[str]) -> List[str]:
    """Drop empty and repeated values, keeping first-seen order."""
    seen = set()
    out = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            out.append(value)
    return out


def field_value(record: Record, name: str, alias: Optional[str] = None) -> Optional[str]:
    """
    Value of a field, whether or not the record keys carry the
    "<alias>." prefix.
    """
    if alias:
        prefixed = f"{alias}.{name}"
        if prefixed in record:
            return record[prefixed]
    return record.get(name)


def prefix_record(record: Record, alias: str) -> Record:
    """Prefix every not-yet-prefixed key with "<alias>."."""
    return {(k if "." in k else f"{alias}.{k}"): v for k, v in record.items()}


def and_caml(*parts: str) -> str:
    """Combine inner CAML fragments with nested <And>, skipping empty ones."""
    parts = [p for p in parts if p]
    if not parts:
        return ""
    combined = parts[0]
    for part in parts[1:]:
        combined = f"<And>{combined}{part}</And>"
    return combined


def or_caml(*parts: str) -> str:
    parts = [p for p in parts if p]
    if not parts:
        return ""
    combined = parts[0]
    for part in parts[1:]:
        combined = f"<Or>{combined}{part}</Or>"
    return combined
