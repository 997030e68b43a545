"""
Tests for clients/archivist_client.py — real HTTP against an aiohttp TestServer.
"""

import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from clients.archivist_client import ArchivistClient, DEFAULT_BASE_URL
from clients.archivist_errors import (
    ArchivistAPIError,
    ArchivistAuthError,
    ArchivistConnectionError,
    ArchivistNotFoundError,
    ArchivistResponseError,
    ArchivistServerError,
)
from models.links import RecordType, ResolvedLink


def serve(routes, scenario):
    """Run *scenario(client, seen)* against an app serving *routes*.

    routes: list of (method, path, handler); each handler gets the request.
    seen collects one dict per request received.
    """
    seen = []

    def wrap(handler):
        async def _handler(request):
            body = await request.json() if request.can_read_body else None
            seen.append({
                "method": request.method,
                "path": request.path,
                "query": dict(request.query),
                "headers": request.headers,
                "body": body,
                "match": dict(request.match_info),
            })
            return handler(request)
        return _handler

    async def run():
        app = web.Application()
        for method, path, handler in routes:
            app.router.add_route(method, path, wrap(handler))
        async with TestServer(app) as server:
            base_url = f"http://{server.host}:{server.port}"
            async with ArchivistClient("key_123", base_url) as client:
                return await scenario(client, seen)

    return asyncio.run(run())


class TestConfig:

    def test_env_fallbacks(self, monkeypatch):
        monkeypatch.setenv("ARCHIVIST_API_KEY", "env_key")
        monkeypatch.setenv("ARCHIVIST_BASE_URL", "https://example.test/")
        client = ArchivistClient()
        assert client.api_key == "env_key"
        assert client.base_url == "https://example.test"
        assert client.has_api_key

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ARCHIVIST_API_KEY", raising=False)
        monkeypatch.delenv("ARCHIVIST_BASE_URL", raising=False)
        client = ArchivistClient()
        assert client.base_url == DEFAULT_BASE_URL
        assert not client.has_api_key

    def test_invalid_character_type(self):
        client = ArchivistClient("key")
        with pytest.raises(ValueError):
            asyncio.run(client.create_character("camp", "Durnan", character_type="Villain"))


class TestCampaigns:

    def test_list_campaigns(self):
        routes = [("GET", "/v1/campaigns", lambda r: web.json_response({
            "data": [{"id": "c1", "title": "Waterdeep", "system": "5e"}],
            "total": 1,
        }))]

        async def scenario(client, seen):
            return await client.list_campaigns()

        result = serve(routes, scenario)
        assert [c.title for c in result.data] == ["Waterdeep"]
        assert result.total == 1

    def test_list_sends_paging_and_key(self):
        seen_box = {}
        routes = [("GET", "/v1/campaigns", lambda r: web.json_response({"data": []}))]

        async def scenario(client, seen):
            await client.list_campaigns()
            seen_box.update(seen[0])

        serve(routes, scenario)
        assert seen_box["query"] == {"page": "1", "size": "100"}
        assert seen_box["headers"]["x-api-key"] == "key_123"

    def test_create_campaign(self):
        routes = [("POST", "/v1/campaigns", lambda r: web.json_response({"id": "c9", "title": "Vault"}))]

        async def scenario(client, seen):
            campaign = await client.create_campaign("Vault")
            return campaign, seen[0]["body"]

        campaign, body = serve(routes, scenario)
        assert campaign.id == "c9"
        assert body == {"title": "Vault"}


class TestRecords:

    def test_create_character_body(self):
        routes = [("POST", "/v1/characters", lambda r: web.json_response({"id": 42}))]

        async def scenario(client, seen):
            record = await client.create_character("camp", "Hadrian", "A paladin.", character_type="PC")
            return record, seen[0]["body"]

        record, body = serve(routes, scenario)
        assert record.id == "42"
        assert body == {
            "campaign_id": "camp",
            "character_name": "Hadrian",
            "type": "PC",
            "description": "A paladin.",
        }

    def test_named_records_use_their_endpoints(self):
        routes = [
            ("POST", "/v1/items", lambda r: web.json_response({"id": "i1"})),
            ("POST", "/v1/locations", lambda r: web.json_response({"id": "l1"})),
            ("POST", "/v1/factions", lambda r: web.json_response({"id": "f1"})),
        ]

        async def scenario(client, seen):
            ids = [
                (await client.create_item("camp", "Sunblade", "Bright.")).id,
                (await client.create_location("camp", "Yawning Portal")).id,
                (await client.create_faction("camp", "Harpers", "Spies.")).id,
            ]
            return ids, seen

        ids, seen = serve(routes, scenario)
        assert ids == ["i1", "l1", "f1"]
        assert seen[0]["body"] == {"campaign_id": "camp", "name": "Sunblade", "description": "Bright."}
        assert seen[1]["body"] == {"campaign_id": "camp", "name": "Yawning Portal"}

    def test_missing_id_is_a_response_error(self):
        routes = [("POST", "/v1/items", lambda r: web.json_response({"name": "no id"}))]

        async def scenario(client, seen):
            with pytest.raises(ArchivistResponseError):
                await client.create_item("camp", "Sunblade")

        serve(routes, scenario)

    def test_invalid_json_is_a_response_error(self):
        routes = [("POST", "/v1/items", lambda r: web.Response(text="<html>oops</html>"))]

        async def scenario(client, seen):
            with pytest.raises(ArchivistResponseError):
                await client.create_item("camp", "Sunblade")

        serve(routes, scenario)

    def test_create_lore_body(self):
        routes = [("POST", "/v1/lore", lambda r: web.json_response({"id": "lore_1"}))]

        async def scenario(client, seen):
            record = await client.create_lore(
                world_id="camp", sub_type="worldHistory", content="# Founding\n",
                file_name="History.md", original_name="History.md",
                file_type="text/markdown", size=11,
            )
            return record, seen[0]["body"]

        record, body = serve(routes, scenario)
        assert record.id == "lore_1"
        assert body == {
            "world_id": "camp",
            "sub_type": "worldHistory",
            "content": "# Founding\n",
            "file_name": "History.md",
            "original_name": "History.md",
            "file_type": "text/markdown",
            "size": 11,
        }


class TestErrors:

    def test_error_message_format(self):
        routes = [("POST", "/v1/items", lambda r: web.Response(
            status=422, reason="Unprocessable Entity", text="name is required"))]

        async def scenario(client, seen):
            with pytest.raises(ArchivistAPIError) as exc_info:
                await client.create_item("camp", "")
            return exc_info.value

        error = serve(routes, scenario)
        assert str(error) == "422 Unprocessable Entity - name is required"
        assert error.status == 422

    @pytest.mark.parametrize("status,error_type", [
        (401, ArchivistAuthError),
        (403, ArchivistAuthError),
        (404, ArchivistNotFoundError),
        (503, ArchivistServerError),
    ])
    def test_status_mapping(self, status, error_type):
        routes = [("GET", "/v1/campaigns", lambda r: web.Response(status=status, text="nope"))]

        async def scenario(client, seen):
            with pytest.raises(error_type):
                await client.list_campaigns()

        serve(routes, scenario)

    def test_connection_refused(self):
        async def run():
            async with ArchivistClient("key", "http://127.0.0.1:1") as client:
                with pytest.raises(ArchivistConnectionError):
                    await client.list_campaigns()

        asyncio.run(run())


class TestLinks:

    LINK = ResolvedLink(
        from_id="char_1", from_type=RecordType.CHARACTER,
        to_id="item_2", to_type=RecordType.ITEM, alias="the blade",
    )

    def test_no_content_response(self):
        routes = [("POST", "/v1/campaigns/{campaign_id}/links", lambda r: web.Response(status=204))]

        async def scenario(client, seen):
            return await client.create_campaign_link("camp 1", self.LINK), seen[0]

        result, request = serve(routes, scenario)
        assert result is None
        assert request["match"] == {"campaign_id": "camp 1"}
        assert request["body"] == {
            "from_id": "char_1",
            "from_type": "Character",
            "to_id": "item_2",
            "to_type": "Item",
            "alias": "the blade",
            "campaign_id": "camp 1",
        }

    def test_link_record_returned(self):
        routes = [("POST", "/v1/campaigns/{campaign_id}/links", lambda r: web.json_response({"id": "lnk"}))]

        async def scenario(client, seen):
            return await client.create_campaign_link("camp", self.LINK)

        assert serve(routes, scenario).id == "lnk"
