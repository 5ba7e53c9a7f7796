"""Identity provider bindings."""

import asyncio
import json

import httpx
import pytest

from global_chat.auth import LocalIdentityProvider, RestIdentityProvider
from global_chat.errors import AuthenticationError, InitializationError
from global_chat.transport.http import HttpClient

from fakes import settle


def make_provider(handler, api_key: str = "test-key") -> RestIdentityProvider:
    http = HttpClient(api_key=api_key, transport=httpx.MockTransport(handler))
    return RestIdentityProvider(http, api_key)


class TestRestIdentityProvider:
    @pytest.mark.asyncio
    async def test_anonymous_sign_in(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"localId": "anon-1", "idToken": "tok", "refreshToken": "ref"})

        provider = make_provider(handler)
        identity = await provider.sign_in_anonymously()

        assert identity.id == "anon-1"
        assert identity.is_anonymous
        assert identity.id_token == "tok"
        assert requests[0].url.path == "/v1/accounts:signUp"
        assert requests[0].url.params["key"] == "test-key"
        assert json.loads(requests[0].content) == {"returnSecureToken": True}
        await provider.close()

    @pytest.mark.asyncio
    async def test_token_sign_in(self):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append((request.url.path, json.loads(request.content)))
            return httpx.Response(200, json={"localId": "user-7", "idToken": "tok"})

        provider = make_provider(handler)
        identity = await provider.sign_in_with_token("custom")

        assert identity.id == "user-7"
        assert identity.is_anonymous is False
        assert bodies == [("/v1/accounts:signInWithCustomToken", {"token": "custom", "returnSecureToken": True})]
        await provider.close()

    @pytest.mark.asyncio
    async def test_sign_in_when_signed_in_is_a_no_op(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"localId": "anon-1"})

        provider = make_provider(handler)
        first = await provider.sign_in_anonymously()
        second = await provider.sign_in_anonymously()
        third = await provider.sign_in_with_token("other")

        assert first == second == third
        assert len(calls) == 1
        await provider.close()

    @pytest.mark.asyncio
    async def test_overlapping_sign_ins_share_one_request(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"localId": f"anon-{len(requests)}"})

        provider = make_provider(handler)
        seen = []
        provider.observe_auth_state(lambda identity: seen.append(identity and identity.id))
        await settle()

        first, second = await asyncio.gather(
            provider.sign_in_anonymously(), provider.sign_in_anonymously(),
        )

        assert len(requests) == 1
        assert first == second
        assert first.id == "anon-1"
        assert seen == [None, "anon-1"]
        await provider.close()

    @pytest.mark.asyncio
    async def test_overlapping_sign_ins_share_one_failure(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(400, json={"error": {"message": "OPERATION_NOT_ALLOWED"}})

        provider = make_provider(handler)
        results = await asyncio.gather(
            provider.sign_in_anonymously(), provider.sign_in_with_token("custom"),
            return_exceptions=True,
        )

        assert len(requests) == 1
        assert all(isinstance(r, AuthenticationError) for r in results)
        assert provider.current_identity is None
        await provider.close()

    @pytest.mark.asyncio
    async def test_rejected_sign_in_raises_authentication_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": {"code": 400, "message": "ADMIN_ONLY_OPERATION"}})

        provider = make_provider(handler)
        with pytest.raises(AuthenticationError, match="ADMIN_ONLY_OPERATION"):
            await provider.sign_in_anonymously()
        assert provider.current_identity is None
        await provider.close()

    @pytest.mark.asyncio
    async def test_response_without_account_id(self):
        provider = make_provider(lambda request: httpx.Response(200, json={}))

        with pytest.raises(AuthenticationError) as exc_info:
            await provider.sign_in_anonymously()
        assert exc_info.value.code == "auth_bad_response"
        await provider.close()

    @pytest.mark.asyncio
    async def test_initialize_requires_api_key(self):
        provider = make_provider(lambda request: httpx.Response(200), api_key="")

        with pytest.raises(InitializationError):
            await provider.initialize()
        await provider.close()

    @pytest.mark.asyncio
    async def test_observers_hear_initial_state_and_changes(self):
        provider = make_provider(lambda request: httpx.Response(200, json={"localId": "anon-1"}))
        seen = []
        remove = provider.observe_auth_state(lambda identity: seen.append(identity and identity.id))

        assert seen == []
        await settle()
        await provider.sign_in_anonymously()
        provider.sign_out()
        remove()
        remove()
        await provider.sign_in_anonymously()

        assert seen == [None, "anon-1", None]
        await provider.close()


class TestLocalIdentityProvider:
    @pytest.mark.asyncio
    async def test_anonymous_identity_is_stable(self):
        provider = LocalIdentityProvider()
        first = await provider.sign_in_anonymously()
        second = await provider.sign_in_anonymously()

        assert first is second
        assert len(first.id) == 28

    @pytest.mark.asyncio
    async def test_token_identity_is_derived_from_token(self):
        a = await LocalIdentityProvider().sign_in_with_token("same")
        b = await LocalIdentityProvider().sign_in_with_token("same")

        assert a.id == b.id
        assert "same" not in a.id

    @pytest.mark.asyncio
    async def test_empty_token_rejected(self):
        with pytest.raises(AuthenticationError):
            await LocalIdentityProvider().sign_in_with_token("")
