#!/usr/bin/env python
import logging
import os
from typing import Any
from typing import List
from typing import Optional

from spquery import __version__

## Environmental variables prepended with "PYTHON_SPQUERY" are used for debug purposes,
## environmental variables prepended with "SPQUERY_" are for connection parameters
debug_dump_communication = bool(os.environ.get("PYTHON_SPQUERY_COMMDUMP", False))
## one of DEBUG_PDB, DEBUG, DEVELOPMENT, PRODUCTION
debugmode = os.environ.get("PYTHON_SPQUERY_DEBUGMODE")
if not debugmode:
    if "dev" in __version__:
        debugmode = "DEVELOPMENT"
    else:
        debugmode = "PRODUCTION"

log = logging.getLogger("spquery")
if debugmode.startswith("DEBUG"):
    log.setLevel(logging.DEBUG)
else:
    log.setLevel(logging.WARNING)


def weirdness(*reasons):
    from spquery.lib.debug import xmlstring

    reason = " : ".join([xmlstring(x) for x in reasons])
    log.warning(f"Deviation from expectations found: {reason}")
    if debugmode == "DEBUG_PDB":
        log.error(f"Dropping into debugger due to {reason}")
        import pdb

        pdb.set_trace()


class SPError(Exception):
    url: Optional[str] = None
    reason: str = "no reason"
    ## rows collected by earlier rounds of a multi-round call that failed.
    ## Only for diagnostics - a failed call never returns a partial result.
    partial_items: List[Any] = []

    def __init__(self, url: Optional[str] = None, reason: Optional[str] = None) -> None:
        if url:
            self.url = url
        if reason:
            self.reason = reason
        self.partial_items = []

    def __str__(self) -> str:
        return "%s at '%s', reason %s" % (
            self.__class__.__name__,
            self.url,
            self.reason,
        )


class ConfigError(SPError):
    """
    The request can't be executed as given: the list name or the site
    URL is missing, or a join/merge definition is invalid.  Raised
    before any network call is made.
    """

    pass


class InvalidJoinSpec(ConfigError):
    pass


class RemoteServiceError(SPError):
    """
    The service answered with a non-success HTTP status, or with a
    SOAP fault embedded in a successful response.  The status and the
    raw body are kept for inspection.
    """

    status: Optional[int] = None
    body: Optional[str] = None

    def __init__(
        self,
        url: Optional[str] = None,
        reason: Optional[str] = None,
        status: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(url, reason)
        self.status = status
        self.body = body

    def __str__(self) -> str:
        return "%s at '%s', status %s, reason %s" % (
            self.__class__.__name__,
            self.url,
            self.status,
            self.reason,
        )


class DecodeError(SPError):
    pass


class FilterSyntaxError(SPError):
    pass


class ViewNotFound(SPError):
    pass


class ListNotFound(SPError):
    pass


class TransportError(SPError):
    pass
