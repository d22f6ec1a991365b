"""
Tests unitarios para CrmClient y CrmAuthClient usando httpx.MockTransport.

Verifica el formato de los requests y la clasificacion de errores.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from urllib.parse import parse_qs

import httpx
import pytest

from crm_sync.infrastructure.external.crm.client import CrmAuthClient, CrmClient
from crm_sync.infrastructure.external.crm.session import CrmSession
from crm_sync.shared.exceptions.sync import (
    AuthError,
    MalformedResponseError,
    RateLimitedError,
    TransientError,
    UnauthorizedError,
)

BASE_URL = "https://crm.test"


def _session(token: str = "tok-1") -> CrmSession:
    return CrmSession(auth_client=None, access_token=token)


def _client(handler, token: str = "tok-1") -> CrmClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CrmClient(_session(token), base_url=BASE_URL, http_client=http)


class TestCrmClientSearch:
    """Tests para CrmClient.search."""

    @pytest.mark.asyncio
    async def test_search_posts_body_and_parses_page(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "results": [
                    {
                        "id": 42,
                        "properties": {"domain": "acme.com"},
                        "createdAt": "2024-01-15T09:00:00.000Z",
                        "updatedAt": "2024-01-16T10:00:00Z",
                    }
                ],
                "paging": {"next": {"after": "100"}},
            })

        client = _client(handler)
        page = await client.search("companies", {"limit": 100})

        assert seen["url"] == f"{BASE_URL}/crm/v3/objects/companies/search"
        assert seen["auth"] == "Bearer tok-1"
        assert seen["body"] == {"limit": 100}
        assert page.next_after == "100"
        record = page.results[0]
        assert record.id == "42"
        assert record.created_at == datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)
        assert record.properties == {"domain": "acme.com"}

    @pytest.mark.asyncio
    async def test_last_page_has_no_token(self) -> None:
        client = _client(lambda request: httpx.Response(200, json={"results": []}))

        page = await client.search("contacts", {})

        assert page.results == []
        assert page.next_after is None

    @pytest.mark.asyncio
    async def test_uses_current_session_token(self) -> None:
        """El bearer se lee de la sesion en cada request."""
        tokens = []

        def handler(request):
            tokens.append(request.headers["Authorization"])
            return httpx.Response(200, json={"results": []})

        session = _session("first")
        client = CrmClient(
            session, base_url=BASE_URL, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
        )
        await client.search("contacts", {})
        session._access_token = "second"
        await client.search("contacts", {})

        assert tokens == ["Bearer first", "Bearer second"]


class TestCrmClientErrors:
    """Clasificacion de respuestas no exitosas."""

    @pytest.mark.asyncio
    async def test_429_is_rate_limited_with_retry_after(self) -> None:
        client = _client(lambda r: httpx.Response(429, headers={"Retry-After": "3"}))

        with pytest.raises(RateLimitedError) as exc_info:
            await client.search("companies", {})

        assert exc_info.value.retry_after == 3.0

    @pytest.mark.asyncio
    async def test_401_is_unauthorized(self) -> None:
        client = _client(lambda r: httpx.Response(401, json={"message": "expired"}))

        with pytest.raises(UnauthorizedError):
            await client.search("companies", {})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 500, 502, 503])
    async def test_other_status_is_transient(self, status) -> None:
        client = _client(lambda r: httpx.Response(status, text="oops"))

        with pytest.raises(TransientError) as exc_info:
            await client.search("companies", {})

        assert exc_info.value.status == status

    @pytest.mark.asyncio
    async def test_network_error_is_transient(self) -> None:
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(handler)

        with pytest.raises(TransientError):
            await client.search("companies", {})

    @pytest.mark.asyncio
    async def test_unexpected_payload_is_malformed(self) -> None:
        client = _client(lambda r: httpx.Response(200, json={"results": [{"id": "1"}]}))

        with pytest.raises(MalformedResponseError):
            await client.search("companies", {})


class TestCrmClientAssociations:
    """Tests para asociaciones y detalle de contacto."""

    @pytest.mark.asyncio
    async def test_batch_read_maps_first_association(self) -> None:
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"results": [
                {"from": {"id": "p1"}, "to": [{"id": "c1"}, {"id": "c2"}]},
                {"from": {"id": "p2"}, "to": []},
                {"to": [{"id": "c3"}]},
            ]})

        client = _client(handler)
        result = await client.batch_read_associations("contacts", "companies", ["p1", "p2"])

        assert seen["path"] == "/crm/v3/associations/contacts/companies/batch/read"
        assert seen["body"] == {"inputs": [{"id": "p1"}, {"id": "p2"}]}
        assert result == {"p1": "c1"}

    @pytest.mark.asyncio
    async def test_batch_read_without_ids_does_not_call(self) -> None:
        def handler(request):
            raise AssertionError("no deberia llamar al CRM")

        client = _client(handler)

        assert await client.batch_read_associations("contacts", "companies", []) == {}

    @pytest.mark.asyncio
    async def test_list_associations(self) -> None:
        def handler(request):
            assert request.url.path == "/crm/v3/objects/meetings/m1/associations/contacts"
            return httpx.Response(200, json={"results": [{"id": 11, "type": "meeting_to_contact"}]})

        client = _client(handler)

        assert await client.list_associations("meetings", "m1", "contacts") == ["11"]

    @pytest.mark.asyncio
    async def test_get_contact_email(self) -> None:
        def handler(request):
            assert request.url.params["properties"] == "email"
            return httpx.Response(200, json={"id": "11", "properties": {"email": "x@y.com"}})

        client = _client(handler)

        assert await client.get_contact_email("11") == "x@y.com"

    @pytest.mark.asyncio
    async def test_get_contact_blank_email_is_none(self) -> None:
        client = _client(lambda r: httpx.Response(200, json={"id": "11", "properties": {"email": ""}}))

        assert await client.get_contact_email("11") is None


class TestCrmAuthClient:
    """Tests para CrmAuthClient.refresh_access_token."""

    @pytest.mark.asyncio
    async def test_refresh_posts_form_and_parses_grant(self) -> None:
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["form"] = parse_qs(request.content.decode())
            return httpx.Response(200, json={"access_token": "new", "refresh_token": "r-1", "expires_in": 1800})

        auth = CrmAuthClient(
            client_id="cid",
            client_secret="secret",
            base_url=BASE_URL,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        grant = await auth.refresh_access_token("r-1")

        assert seen["path"] == "/oauth/v1/token"
        assert seen["form"] == {
            "grant_type": ["refresh_token"],
            "client_id": ["cid"],
            "client_secret": ["secret"],
            "refresh_token": ["r-1"],
        }
        assert grant.access_token == "new"
        assert grant.expires_in == 1800

    @pytest.mark.asyncio
    async def test_refresh_accepts_camel_case_grant(self) -> None:
        auth = CrmAuthClient(
            base_url=BASE_URL,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(
                lambda r: httpx.Response(200, json={"accessToken": "new", "expiresIn": 60})
            )),
        )

        grant = await auth.refresh_access_token("r-1")

        assert grant.access_token == "new"
        assert grant.expires_in == 60

    @pytest.mark.asyncio
    async def test_refresh_rejected_raises_auth_error(self) -> None:
        auth = CrmAuthClient(
            base_url=BASE_URL,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(
                lambda r: httpx.Response(400, json={"error": "invalid_grant"})
            )),
        )

        with pytest.raises(AuthError):
            await auth.refresh_access_token("r-1")

    @pytest.mark.asyncio
    async def test_refresh_without_token_raises_auth_error(self) -> None:
        auth = CrmAuthClient(base_url=BASE_URL)

        with pytest.raises(AuthError):
            await auth.refresh_access_token("")
        await auth.aclose()
