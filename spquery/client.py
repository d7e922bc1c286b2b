"""
High-level clients for querying SharePoint lists.

SyncListClient and AsyncListClient run the same QueryEngine; the only
difference is how a SOAPRequest gets executed (requests or aiohttp).

Example:
    from spquery import Request, JoinSpec, SyncListClient

    with SyncListClient("https://sp.example.com/sites/team", "user", "pass") as client:
        result = client.query(
            "Orders",
            Request(
                fields=["Title", "Customer"],
                where='Status = "Open"',
                join=JoinSpec("Customers", on="'Orders'.Customer = 'Customers'.ID"),
            ),
        )
        for row in result:
            print(row["Orders.Title"], row["Customers.Title"])
"""
import logging
import os
from typing import Dict
from typing import List
from typing import Optional

import aiohttp
import requests

from spquery import config
from spquery.cache import MetadataCache
from spquery.engine import QueryEngine
from spquery.engine import drive
from spquery.engine import drive_async
from spquery.io import AsyncIO
from spquery.io import SyncIO
from spquery.lib import error
from spquery.protocol import ListsProtocol
from spquery.protocol.types import ContentType
from spquery.protocol.types import ListInfo
from spquery.protocol.types import SOAPRequest
from spquery.protocol.types import SOAPResponse
from spquery.protocol.types import ViewInfo
from spquery.query import Request
from spquery.query import Result

log = logging.getLogger("spquery")

CONNECTION_KEYS = ("url", "username", "password", "timeout", "verify_ssl", "huge_tree")


def _dump_communication(request: SOAPRequest, response: Optional[SOAPResponse]) -> None:
    import datetime
    from tempfile import NamedTemporaryFile

    with NamedTemporaryFile(prefix="spquerycomm", delete=False) as commlog:
        commlog.write(b"=" * 80 + b"\n")
        commlog.write(f"{datetime.datetime.now():%FT%H:%M:%S}".encode("utf-8"))
        commlog.write(b"\n====>\n")
        commlog.write(f"{request.method} {request.url}\n".encode("utf-8"))
        commlog.write(
            b"\n".join(f"{k}: {v}".encode("utf-8") for k, v in request.headers.items())
        )
        commlog.write(b"\n\n")
        commlog.write(request.body)
        commlog.write(b"\n<====\n")
        if response is None:
            commlog.write(b"(no response)\n")
        else:
            commlog.write(f"{response.status} {response.reason}\n".encode("utf-8"))
            commlog.write(
                b"\n".join(f"{k}: {v}".encode("utf-8") for k, v in response.headers.items())
            )
            commlog.write(b"\n\n")
            commlog.write(response.body)
        log.debug(f"blocking: communication dumped to {commlog.name}")


class SyncListClient:
    """
    Synchronous SharePoint lists client.

    Example:
        with SyncListClient("https://sp.example.com/sites/team") as client:
            for row in client.query("Tasks", where='Status <> "Done"'):
                print(row["Title"])
    """

    def __init__(
        self,
        url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        huge_tree: bool = False,
        session: Optional[requests.Session] = None,
        cache: Optional[MetadataCache] = None,
    ):
        """
        Initialize the client.

        Args:
            url: URL of the site holding the lists
            username: Username for Basic authentication
            password: Password for Basic authentication
            timeout: Request timeout in seconds
            verify_ssl: Verify SSL certificates
            huge_tree: Allow parsing very large XML responses
            session: requests Session to use, e.g. one set up for NTLM
            cache: Metadata cache (default: the process-wide one)
        """
        self.protocol = ListsProtocol(
            base_url=url,
            username=username,
            password=password,
            huge_tree=huge_tree,
        )
        self.io = SyncIO(session=session, timeout=timeout, verify=verify_ssl)
        self.engine = QueryEngine(self.protocol, cache=cache)

    def close(self) -> None:
        """Close the HTTP session."""
        self.io.close()

    def __enter__(self) -> "SyncListClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _execute(self, request: SOAPRequest) -> SOAPResponse:
        """Execute a request and return the response."""
        log.debug("%s %s", request.action, request.url)
        try:
            response = self.io.execute(request)
        except error.TransportError:
            if error.debug_dump_communication:
                _dump_communication(request, None)
            raise
        if error.debug_dump_communication:
            _dump_communication(request, response)
        return response

    # High-level operations

    def query(
        self,
        list_name: str,
        request: Optional[Request] = None,
        site_url: Optional[str] = None,
        **options,
    ) -> Result:
        """
        Retrieve the items of a list.

        Args:
            list_name: List title or GUID
            request: What to retrieve; when not given, one is built from
                the keyword options (``fields=``, ``where=``, ...)
            site_url: Site holding the list, absolute or relative to the
                client URL (default: the client URL)

        Returns:
            Result with the rows and the continuation token

        Raises:
            ConfigError: invalid request, raised before any network call
            RemoteServiceError, DecodeError, TransportError: a round failed
        """
        if request is None:
            request = Request(**options)
        elif options:
            request = request.replace(**options)
        return drive(self.engine.query(list_name, request, site_url), self._execute)

    def info(
        self, list_name: str, site_url: Optional[str] = None, use_cache: bool = True
    ) -> ListInfo:
        """List details and field definitions (GetList)."""
        return drive(self.engine.list_info(list_name, site_url, use_cache), self._execute)

    def view(
        self,
        list_name: str,
        view_name: str,
        site_url: Optional[str] = None,
        use_cache: bool = True,
    ) -> ViewInfo:
        """Fields, sort and filter of a view (GetView)."""
        return drive(
            self.engine.view_info(list_name, view_name, site_url, use_cache), self._execute
        )

    def content_types(
        self, list_name: str, site_url: Optional[str] = None, use_cache: bool = True
    ) -> List[ContentType]:
        return drive(self.engine.content_types(list_name, site_url, use_cache), self._execute)

    def lists(
        self, site_url: Optional[str] = None, use_cache: bool = True
    ) -> List[Dict[str, str]]:
        """The lists of a site (GetListCollection)."""
        return drive(self.engine.list_collection(site_url, use_cache), self._execute)


class AsyncListClient:
    """
    Asynchronous SharePoint lists client.

    Example:
        async with AsyncListClient("https://sp.example.com/sites/team") as client:
            result = await client.query("Tasks", where='Status <> "Done"')
    """

    def __init__(
        self,
        url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        huge_tree: bool = False,
        session: Optional[aiohttp.ClientSession] = None,
        cache: Optional[MetadataCache] = None,
    ):
        self.protocol = ListsProtocol(
            base_url=url,
            username=username,
            password=password,
            huge_tree=huge_tree,
        )
        self.io = AsyncIO(session=session, timeout=timeout, verify_ssl=verify_ssl)
        self.engine = QueryEngine(self.protocol, cache=cache)

    async def close(self) -> None:
        """Close the HTTP session."""
        await self.io.close()

    async def __aenter__(self) -> "AsyncListClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def _execute(self, request: SOAPRequest) -> SOAPResponse:
        """Execute a request and return the response."""
        log.debug("%s %s", request.action, request.url)
        try:
            response = await self.io.execute(request)
        except error.TransportError:
            if error.debug_dump_communication:
                _dump_communication(request, None)
            raise
        if error.debug_dump_communication:
            _dump_communication(request, response)
        return response

    # High-level operations

    async def query(
        self,
        list_name: str,
        request: Optional[Request] = None,
        site_url: Optional[str] = None,
        **options,
    ) -> Result:
        """See SyncListClient.query()."""
        if request is None:
            request = Request(**options)
        elif options:
            request = request.replace(**options)
        return await drive_async(self.engine.query(list_name, request, site_url), self._execute)

    async def info(
        self, list_name: str, site_url: Optional[str] = None, use_cache: bool = True
    ) -> ListInfo:
        return await drive_async(
            self.engine.list_info(list_name, site_url, use_cache), self._execute
        )

    async def view(
        self,
        list_name: str,
        view_name: str,
        site_url: Optional[str] = None,
        use_cache: bool = True,
    ) -> ViewInfo:
        return await drive_async(
            self.engine.view_info(list_name, view_name, site_url, use_cache), self._execute
        )

    async def content_types(
        self, list_name: str, site_url: Optional[str] = None, use_cache: bool = True
    ) -> List[ContentType]:
        return await drive_async(
            self.engine.content_types(list_name, site_url, use_cache), self._execute
        )

    async def lists(
        self, site_url: Optional[str] = None, use_cache: bool = True
    ) -> List[Dict[str, str]]:
        return await drive_async(self.engine.list_collection(site_url, use_cache), self._execute)


def _coerce(params: Dict) -> Dict:
    """Connection parameters from the environment or a config file are strings."""
    out = {}
    for key, value in params.items():
        if key == "user":
            key = "username"
        if key == "pass":
            key = "password"
        if key not in CONNECTION_KEYS:
            log.warning(f"ignoring unknown connection parameter {key}")
            continue
        if key == "timeout":
            value = float(value)
        elif key in ("verify_ssl", "huge_tree") and isinstance(value, str):
            value = value.strip().lower() not in ("0", "false", "no", "off", "")
        out[key] = value
    return out


def get_connection_params(
    check_config_file: bool = True,
    config_file: Optional[str] = None,
    config_section: Optional[str] = None,
    environment: bool = True,
    **config_data,
) -> Optional[Dict]:
    """
    Find the connection parameters, from these sources in order:

    * The parameters given
    * Environment variables prepended with `SPQUERY_`, like `SPQUERY_URL`, `SPQUERY_USERNAME`, `SPQUERY_PASSWORD`
    * Environment variables `SPQUERY_CONFIG_FILE` and `SPQUERY_CONFIG_SECTION` (if environment is set)
    * The config file (see spquery.config); the first section matching
      config_section (default "default") is used
    """
    if config_data:
        return _coerce(config_data)

    if environment:
        conf = {}
        for conf_key in (
            x
            for x in os.environ
            if x.startswith("SPQUERY_") and not x.startswith("SPQUERY_CONFIG")
        ):
            conf[conf_key[8:].lower()] = os.environ[conf_key]
        if conf:
            return _coerce(conf)
        if not config_file:
            config_file = os.environ.get("SPQUERY_CONFIG_FILE")
        if not config_section:
            config_section = os.environ.get("SPQUERY_CONFIG_SECTION")

    if check_config_file:
        cfg = config.read_config(config_file)
        if cfg:
            for section_name in config.expand_config_section(cfg, config_section or "default"):
                params = config.connection_params(config.config_section(cfg, section_name))
                if params:
                    return _coerce(params)
    return None


def get_list_client(**kwargs) -> Optional[SyncListClient]:
    """
    A SyncListClient set up from parameters, environment or config file
    (see get_connection_params).  None when no configuration is found.
    """
    params = get_connection_params(**kwargs)
    if not params:
        return None
    return SyncListClient(**params)


def get_async_list_client(**kwargs) -> Optional[AsyncListClient]:
    params = get_connection_params(**kwargs)
    if not params:
        return None
    return AsyncListClient(**params)
