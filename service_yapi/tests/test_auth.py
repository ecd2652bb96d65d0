"""
Unit tests for credential sessions and authentication selection in the client.
"""

import asyncio

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.config import YApiSettings
from shared.errors import AuthenticationError
from service_yapi.app.adapters import YApiClient
from service_yapi.app.auth import CredentialAuth, NoAuth, TokenAuth


BASE_URL = "http://yapi.example.com"
CREDENTIALS = {"username": "admin@yapi.test", "password": "yapi123"}


class TestCredentialSession:
    """Test cases for username/password login handling."""

    @pytest.mark.asyncio
    async def test_first_request_logs_in_once(self, make_client, fake_yapi, metrics):
        fake_yapi.login("sess-1").reply("/api/interface/getCatMenu", [{"_id": 1}])

        async with make_client(**CREDENTIALS) as client:
            await client.get_categories(1)
            await client.get_categories(2)

            assert client.is_authenticated
            assert client.auth.session_cookie == "_yapi_token=sess-1; _yapi_uid=11"

        logins = fake_yapi.calls("/api/user/login")
        assert len(logins) == 1
        assert fake_yapi.body(logins[0]) == {"email": "admin@yapi.test", "password": "yapi123"}

        calls = fake_yapi.calls("/api/interface/getCatMenu")
        assert len(calls) == 2
        for call in calls:
            assert call.headers["cookie"] == "_yapi_token=sess-1; _yapi_uid=11"
            assert "token" not in call.url.params
        assert metrics.get_sample_value("yapi_logins_total", status="success") == 1.0

    @pytest.mark.asyncio
    async def test_cached_read_needs_no_session(self, make_client, fake_yapi):
        fake_yapi.login().reply("/api/interface/getCatMenu", [{"_id": 1}])

        async with make_client(**CREDENTIALS) as client:
            first = await client.get_categories(1)
            sent = len(fake_yapi.requests)
            client.auth.authenticated = False

            second = await client.get_categories(1)

            assert second == first
            assert len(fake_yapi.requests) == sent

        assert len(fake_yapi.calls("/api/user/login")) == 1
        assert len(fake_yapi.calls("/api/interface/getCatMenu")) == 1

    @pytest.mark.asyncio
    async def test_concurrent_first_requests_share_one_login(self, make_client, fake_yapi):
        fake_yapi.login().reply("/api/interface/getCatMenu", [])

        async with make_client(**CREDENTIALS) as client:
            await asyncio.gather(client.get_categories(1), client.get_categories(2))

        assert len(fake_yapi.calls("/api/user/login")) == 1
        assert len(fake_yapi.calls("/api/interface/getCatMenu")) == 2

    @pytest.mark.asyncio
    async def test_expired_session_logs_in_again_and_retries_once(self, make_client, fake_yapi):
        fake_yapi.login("sess-1").login("sess-2")
        fake_yapi.reply("/api/interface/get", status_code=401)
        fake_yapi.reply("/api/interface/get", {"_id": 5})

        async with make_client(**CREDENTIALS) as client:
            result = await client.get_interface(5)

        assert result == {"_id": 5}
        assert len(fake_yapi.calls("/api/user/login")) == 2
        first, retry = fake_yapi.calls("/api/interface/get")
        assert "_yapi_token=sess-1" in first.headers["cookie"]
        assert retry.headers["cookie"] == "_yapi_token=sess-2; _yapi_uid=11"

    @pytest.mark.asyncio
    async def test_second_401_fails(self, make_client, fake_yapi):
        fake_yapi.login().reply("/api/interface/get", status_code=401)

        async with make_client(**CREDENTIALS) as client:
            with pytest.raises(AuthenticationError) as exc_info:
                await client.get_interface(5)

        assert "still unauthorized" in exc_info.value.message
        assert len(fake_yapi.calls("/api/user/login")) == 2
        assert len(fake_yapi.calls("/api/interface/get")) == 2

    @pytest.mark.asyncio
    async def test_rejected_login_stops_the_request(self, make_client, fake_yapi, metrics):
        fake_yapi.reply("/api/user/login", errcode=405, errmsg="Invalid email or password")

        async with make_client(**CREDENTIALS) as client:
            with pytest.raises(AuthenticationError) as exc_info:
                await client.get_interface(1)

            assert not client.is_authenticated

        assert exc_info.value.message == "Login failed: Invalid email or password"
        assert fake_yapi.calls("/api/interface/get") == []
        assert metrics.get_sample_value("yapi_logins_total", status="rejected") == 1.0

    @pytest.mark.asyncio
    async def test_login_http_error(self, make_client, fake_yapi):
        fake_yapi.reply("/api/user/login", status_code=500)

        async with make_client(**CREDENTIALS) as client:
            with pytest.raises(AuthenticationError) as exc_info:
                await client.get_interface(1)

        assert exc_info.value.message == "Login failed: HTTP 500"

    @pytest.mark.asyncio
    async def test_eager_login_at_construction(self, make_client, fake_yapi):
        fake_yapi.login().reply("/api/interface/get", {"_id": 1})

        async with make_client(eager_login=True, **CREDENTIALS) as client:
            await client._warmup_task
            assert client.is_authenticated

            await client.get_interface(1)

        assert len(fake_yapi.calls("/api/user/login")) == 1

    @pytest.mark.asyncio
    async def test_failed_eager_login_is_retried_on_first_request(self, make_client, fake_yapi):
        fake_yapi.reply("/api/user/login", errcode=405, errmsg="Invalid email or password")
        fake_yapi.login()
        fake_yapi.reply("/api/interface/get", {"_id": 1})

        async with make_client(eager_login=True, **CREDENTIALS) as client:
            await client._warmup_task
            assert not client.is_authenticated

            assert await client.get_interface(1) == {"_id": 1}

        assert len(fake_yapi.calls("/api/user/login")) == 2


class TestAuthSelection:
    """Test cases for how the client picks its authentication mode."""

    @pytest.mark.asyncio
    async def test_token_wins_and_never_logs_in(self, make_client, fake_yapi):
        fake_yapi.reply("/api/project/list", [])

        async with make_client(eager_login=True, token="abc", **CREDENTIALS) as client:
            assert isinstance(client.auth, TokenAuth)
            await client.get_projects()

        assert fake_yapi.calls("/api/user/login") == []
        assert fake_yapi.calls("/api/group/list") == []
        assert fake_yapi.calls("/api/project/list")[0].url.params["token"] == "abc"

    @pytest.mark.asyncio
    async def test_token_is_sent_in_post_body(self, make_client, fake_yapi):
        fake_yapi.reply("/api/interface/del", {"n": 1})

        async with make_client(token="abc") as client:
            await client.delete_interface(4)

        request = fake_yapi.calls("/api/interface/del")[0]
        assert fake_yapi.body(request)["token"] == "abc"
        assert "token" not in request.url.params

    @pytest.mark.asyncio
    async def test_no_auth_fails_without_network(self, fake_yapi, metrics):
        settings = YApiSettings.model_construct(base_url=BASE_URL)

        async with YApiClient(settings, transport=fake_yapi.transport, metrics=metrics) as client:
            assert isinstance(client.auth, NoAuth)
            assert not client.is_authenticated
            with pytest.raises(AuthenticationError):
                await client.get_projects()

        assert fake_yapi.requests == []

    def test_credential_auth_hides_password(self):
        auth = CredentialAuth(username="admin", password="hunter2")

        assert "hunter2" not in repr(auth)
