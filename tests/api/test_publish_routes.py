"""Tests for publishing and playing named games."""

import base64

from httpx import AsyncClient


def _request(name: str, **extra) -> dict:
    files = [{"path": "main.lua", "content": base64.b64encode(b"x").decode()}]
    return {"name": name, "files": files, **extra}


class TestPublish:
    async def test_publish_and_play(self, client: AsyncClient) -> None:
        res = await client.post("/publish", json=_request("pong", title="Pong"))

        assert res.status_code == 201
        body = res.json()
        assert body["name"] == "pong"
        assert body["path"] == "/play/pong"
        assert body["url"].startswith("local://pong-")

        play = await client.get("/play/pong")
        assert play.status_code == 200
        assert play.headers["content-type"].startswith("text/html")
        assert "<title>Pong</title>" in play.text

    async def test_records_connection_address(self, app, client: AsyncClient) -> None:
        await client.post(
            "/publish", json=_request("snake"), headers={"X-Forwarded-For": "198.51.100.7"}
        )
        record = await app.state.registry.lookup("snake")
        assert record.author_ip == "127.0.0.1"

    async def test_name_taken(self, client: AsyncClient) -> None:
        await client.post("/publish", json=_request("pong"))
        res = await client.post("/publish", json=_request("pong"))
        assert res.status_code == 409
        assert res.json()["kind"] == "NameAlreadyTaken"

    async def test_invalid_name(self, client: AsyncClient) -> None:
        res = await client.post("/publish", json=_request("not a name"))
        assert res.status_code == 400
        assert res.json()["kind"] == "InvalidInput"

    async def test_build_errors_surface(self, client: AsyncClient, app) -> None:
        res = await client.post("/publish", json=_request("tiny", memory=0))
        assert res.status_code == 400
        assert not await app.state.registry.is_taken("tiny")

    async def test_unknown_game(self, client: AsyncClient) -> None:
        res = await client.get("/play/ghost")
        assert res.status_code == 404


class TestPublishRateLimit:
    async def test_429_after_limit(self, client: AsyncClient) -> None:
        statuses = []
        for i in range(7):
            res = await client.post("/publish", json=_request(f"game{i}"))
            statuses.append(res.status_code)
        assert 429 in statuses, f"Expected 429 in statuses but got: {statuses}"
