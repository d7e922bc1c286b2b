"""
Tests for the sync and async list clients.

These tests verify the clients work correctly, using mocked I/O.
"""
import os
import tempfile

import pytest
from unittest.mock import AsyncMock, Mock

from spquery import AsyncListClient, JoinSpec, Request, SyncListClient
from spquery.cache import MetadataCache
from spquery.client import get_connection_params, get_list_client
from spquery.lib import error

from sp_responses import fault_response, list_items_response, list_response

SITE = "https://sp.example.com/sites/team"


class TestSyncListClient:
    def test_init(self):
        client = SyncListClient(SITE, username="user", password="pass", timeout=60.0)
        try:
            assert client.protocol.base_url == SITE
            assert client.protocol._auth_header is not None
            assert client.io.timeout == 60.0
        finally:
            client.close()

    def test_context_manager(self):
        with SyncListClient(SITE) as client:
            assert client.engine is not None

    def test_query_with_keywords(self):
        client = SyncListClient(SITE, cache=MetadataCache())
        client.io.execute = Mock(return_value=list_items_response([{"ID": "1", "Title": "Ok"}]))
        result = client.query("Tasks", fields=["Title"], where='Title = "Ok"')
        assert result.items == [{"ID": "1", "Title": "Ok"}]
        request = client.io.execute.call_args[0][0]
        assert request.action == "GetListItems"
        assert b'<Value Type="Text">Ok</Value>' in request.body

    def test_query_request_with_overrides(self):
        client = SyncListClient(SITE, cache=MetadataCache())
        client.io.execute = Mock(
            side_effect=[
                list_items_response([{"ID": "1"}], token="T1"),
                list_items_response([{"ID": "2"}]),
            ]
        )
        result = client.query("Tasks", Request(fields=["ID"]), paging=True)
        assert len(result) == 2
        assert client.io.execute.call_count == 2

    def test_join(self):
        client = SyncListClient(SITE, cache=MetadataCache())
        client.io.execute = Mock(
            side_effect=[
                list_items_response([{"id": "1"}, {"id": "2"}]),
                list_items_response([{"pid": "1", "name": "a"}]),
            ]
        )
        result = client.query(
            "parent",
            Request(join=JoinSpec("child", on="'parent'.id = 'child'.pid", outer=True)),
        )
        assert result.items == [
            {"parent.id": "1", "child.pid": "1", "child.name": "a"},
            {"parent.id": "2"},
        ]

    def test_remote_error(self):
        client = SyncListClient(SITE, cache=MetadataCache())
        client.io.execute = Mock(return_value=fault_response("List does not exist."))
        with pytest.raises(error.RemoteServiceError):
            client.query("Missing")

    def test_info(self):
        client = SyncListClient(SITE, cache=MetadataCache())
        client.io.execute = Mock(return_value=list_response())
        info = client.info("Tasks")
        assert info.root_folder == "/sites/team/Lists/Tasks"
        client.info("Tasks")
        assert client.io.execute.call_count == 1
        client.info("Tasks", use_cache=False)
        assert client.io.execute.call_count == 2

    def test_commdump(self, monkeypatch, tmp_path):
        monkeypatch.setattr(error, "debug_dump_communication", True)
        monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))
        client = SyncListClient(SITE, cache=MetadataCache())
        client.io.execute = Mock(return_value=list_items_response([]))
        client.query("Tasks")
        dumps = list(tmp_path.glob("spquerycomm*"))
        assert len(dumps) == 1
        dump = dumps[0].read_bytes()
        assert b"GetListItems" in dump
        assert b"</soap:Envelope>\n<====\n" in dump


class TestAsyncListClient:
    @pytest.mark.asyncio
    async def test_context_manager(self):
        async with AsyncListClient(SITE) as client:
            assert client.protocol.base_url == SITE

    @pytest.mark.asyncio
    async def test_query(self):
        client = AsyncListClient(SITE, cache=MetadataCache())
        client.io.execute = AsyncMock(
            side_effect=[
                list_items_response([{"ID": "1"}]),
                list_items_response([{"ID": "2"}]),
            ]
        )
        progress = []
        result = await client.query(
            "Tasks",
            where=["ID = 1", "ID = 2"],
            progress=lambda done, total: progress.append((done, total)),
        )
        assert [r["ID"] for r in result] == ["1", "2"]
        assert progress == [(1, 2), (2, 2)]
        await client.close()

    @pytest.mark.asyncio
    async def test_transport_error_keeps_partial_rows(self):
        client = AsyncListClient(SITE, cache=MetadataCache())
        client.io.execute = AsyncMock(
            side_effect=[
                list_items_response([{"ID": "1"}], token="T1"),
                error.TransportError(url=SITE, reason="timeout"),
            ]
        )
        with pytest.raises(error.TransportError) as exc_info:
            await client.query("Tasks", paging=True)
        assert exc_info.value.partial_items == [{"ID": "1"}]

    @pytest.mark.asyncio
    async def test_info(self):
        client = AsyncListClient(SITE, cache=MetadataCache())
        client.io.execute = AsyncMock(return_value=list_response())
        info = await client.info("Tasks")
        assert info.details["Title"] == "Tasks"


class TestGetListClient:
    def test_from_parameters(self):
        params = get_connection_params(url=SITE, timeout="10", verify_ssl="false")
        assert params == {"url": SITE, "timeout": 10.0, "verify_ssl": False}

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("SPQUERY_URL", SITE)
        monkeypatch.setenv("SPQUERY_USER", "me")
        monkeypatch.setenv("SPQUERY_CONFIG_FILE", "/nonexistent")
        params = get_connection_params(check_config_file=False)
        assert params == {"url": SITE, "username": "me"}

    def test_from_config_file(self, monkeypatch, tmp_path):
        for key in [k for k in os.environ if k.startswith("SPQUERY_")]:
            monkeypatch.delenv(key)
        config_file = tmp_path / "spquery.yaml"
        config_file.write_text(
            "default:\n"
            f"  spquery_url: {SITE}\n"
            "  spquery_pass: secret\n"
            "other:\n"
            "  inherits: default\n"
            "  spquery_user: someone\n"
        )
        params = get_connection_params(config_file=str(config_file), config_section="other")
        assert params == {"url": SITE, "password": "secret", "username": "someone"}
        client = get_list_client(config_file=str(config_file))
        try:
            assert isinstance(client, SyncListClient)
            assert client.protocol.base_url == SITE
        finally:
            client.close()

    def test_nothing_found(self, monkeypatch, tmp_path):
        for key in [k for k in os.environ if k.startswith("SPQUERY_")]:
            monkeypatch.delenv(key)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert get_list_client(config_file=str(tmp_path / "missing.json")) is None
