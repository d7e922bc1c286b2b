"""
Process-wide cache of list metadata.

Views, list definitions (root folder, fields), content types and list
collections rarely change, and a query naming a view would otherwise
cost one extra round trip per call.  Entries live until the process
ends or until they are dropped with invalidate()/clear().

Lookups happen while a query is suspended waiting for the network, so
no lock is held during them.  Two callers missing the same key at the
same time will both fetch it; the last one to store wins.
"""
import logging
import threading
from typing import Any
from typing import Dict
from typing import Hashable
from typing import Optional
from typing import Tuple

log = logging.getLogger("spquery")

CacheKey = Tuple[str, str, str, Hashable]

VIEW = "view"
LIST = "list"
CONTENT_TYPES = "content_types"
LIST_COLLECTION = "list_collection"

_MISSING = object()


def cache_key(kind: str, site_url: str, list_name: str = "", identity: Hashable = "") -> CacheKey:
    return (kind, (site_url or "").rstrip("/").lower(), list_name or "", identity)


class MetadataCache:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[CacheKey, Any] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: CacheKey, default: Any = None) -> Any:
        with self._lock:
            value = self._entries.get(key, _MISSING)
        if value is _MISSING:
            return default
        log.debug("metadata cache hit for %s", key)
        return value

    def put(self, key: CacheKey, value: Any) -> None:
        with self._lock:
            self._entries[key] = value

    def invalidate(self, kind: Optional[str] = None, site_url: Optional[str] = None) -> int:
        """
        Drop entries of one kind and/or one site (all entries when neither
        is given).  Returns the number of entries dropped.
        """
        site = site_url.rstrip("/").lower() if site_url else None
        with self._lock:
            keys = [
                key
                for key in self._entries
                if (kind is None or key[0] == kind) and (site is None or key[1] == site)
            ]
            for key in keys:
                del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


_cache: Optional[MetadataCache] = None
_cache_lock = threading.Lock()


def get_cache() -> MetadataCache:
    """The process-wide cache, created on first use."""
    global _cache
    if _cache is None:
        with _cache_lock:
            if _cache is None:
                _cache = MetadataCache()
    return _cache
