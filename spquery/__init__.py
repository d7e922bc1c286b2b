#!/usr/bin/env python
import logging

__version__ = "0.1.0"

from .client import AsyncListClient
from .client import SyncListClient
from .client import get_async_list_client
from .client import get_list_client
from .query import JoinSpec
from .query import MergeTarget
from .query import Request
from .query import Result

## Silence notification of no default logging handler
log = logging.getLogger("spquery")


class NullHandler(logging.Handler):
    def emit(self, record) -> None:
        pass


log.addHandler(NullHandler())

__all__ = [
    "__version__",
    "AsyncListClient",
    "JoinSpec",
    "MergeTarget",
    "Request",
    "Result",
    "SyncListClient",
    "get_async_list_client",
    "get_list_client",
]
