"""
End-to-end integration tests against the mock YApi server.
"""

import json

import httpx
import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from mocks.yapi.server import MockYApiServer
from shared.config import YApiSettings
from shared.errors import RemoteApiError
from shared.metrics import MetricsCollector
from service_yapi.app.adapters import YApiClient
from service_yapi.app.tools import ToolDispatcher

BASE_URL = "http://yapi.test"


class TestEndToEndFlow:
    """Tool calls flowing through the dispatcher and client to a YApi server."""

    @pytest.fixture(autouse=True)
    def isolated_environment(self, monkeypatch, tmp_path):
        for name in list(os.environ):
            if name.upper().startswith("YAPI_"):
                monkeypatch.delenv(name, raising=False)
        monkeypatch.chdir(tmp_path)

    @pytest.fixture
    def yapi_server(self):
        return MockYApiServer()

    @pytest.fixture
    def make_dispatcher(self, yapi_server):
        def _make(**auth) -> ToolDispatcher:
            settings = YApiSettings(base_url=BASE_URL, **auth)
            client = YApiClient(
                settings,
                transport=httpx.ASGITransport(app=yapi_server.app),
                metrics=MetricsCollector("yapi-e2e"),
                eager_login=False,
            )
            return ToolDispatcher(client)

        return _make

    async def _call(self, dispatcher: ToolDispatcher, name: str, arguments=None) -> str:
        content = await dispatcher.call_tool(name, arguments or {})
        return content[0].text

    @pytest.mark.asyncio
    async def test_credential_session_flow(self, make_dispatcher, yapi_server):
        dispatcher = make_dispatcher(username="admin@yapi.test", password="yapi123")

        try:
            projects = json.loads(await self._call(dispatcher, "yapi_get_projects"))
            assert sorted(project["_id"] for project in projects) == [101, 102, 201]
            assert yapi_server.login_count == 1

            menu = json.loads(await self._call(dispatcher, "yapi_get_interface_menu", {"project_id": 101}))
            pets = next(category for category in menu if category["_id"] == 1001)
            assert len(pets["list"]) == 2

            created = await self._call(dispatcher, "yapi_create_interface", {
                "title": "Delete pet",
                "path": "/pets/{id}",
                "method": "DELETE",
                "project_id": 101,
                "catid": 1001,
            })
            assert created.startswith("Interface created successfully: ")

            # The write dropped the cached menu, so the new interface is visible.
            menu = json.loads(await self._call(dispatcher, "yapi_get_interface_menu", {"project_id": 101}))
            pets = next(category for category in menu if category["_id"] == 1001)
            assert len(pets["list"]) == 3

            yapi_server.expire_sessions()
            interface = json.loads(await self._call(dispatcher, "yapi_get_interface", {"interface_id": 5001}))
            assert interface["title"] == "List pets"
            assert yapi_server.login_count == 2
        finally:
            await dispatcher.client.close()

    @pytest.mark.asyncio
    async def test_token_flow(self, make_dispatcher, yapi_server):
        dispatcher = make_dispatcher(token=yapi_server.project_token)

        try:
            categories = json.loads(await self._call(dispatcher, "yapi_get_categories", {"project_id": 101}))
            assert [category["name"] for category in categories] == ["pets", "store"]

            await self._call(dispatcher, "yapi_create_category", {"name": "users", "project_id": 101})
            categories = json.loads(await self._call(dispatcher, "yapi_get_categories", {"project_id": 101}))
            assert [category["name"] for category in categories] == ["pets", "store", "users"]

            await self._call(dispatcher, "yapi_get_interface", {"interface_id": 5002})
            deleted = await self._call(dispatcher, "yapi_delete_interface", {"interface_id": 5002})
            assert deleted == "Interface 5002 deleted successfully"

            with pytest.raises(RemoteApiError) as exc_info:
                await self._call(dispatcher, "yapi_get_interface", {"interface_id": 5002})
            assert exc_info.value.message == "Failed to get interface: Interface not found"

            found = json.loads(await self._call(dispatcher, "yapi_search_interfaces", {"project_id": 101, "q": "order"}))
            assert [item["_id"] for item in found["list"]] == [5003]

            imported = await self._call(dispatcher, "yapi_import_data", {
                "type": "swagger",
                "project_id": 101,
                "catid": 1001,
                "data_source": "https://petstore.example.com/swagger.json",
            })
            assert imported.startswith("Data imported successfully: ")
            assert yapi_server.login_count == 0
        finally:
            await dispatcher.client.close()

    @pytest.mark.asyncio
    async def test_invalid_token_surfaces_remote_error(self, make_dispatcher):
        dispatcher = make_dispatcher(token="not-the-token")

        try:
            with pytest.raises(RemoteApiError) as exc_info:
                await self._call(dispatcher, "yapi_get_projects")
        finally:
            await dispatcher.client.close()

        assert exc_info.value.message == "Failed to get projects: Token is invalid"
        assert exc_info.value.errcode == 40011
