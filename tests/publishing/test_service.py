"""Tests for publishing and retrieving documents."""

import pytest

from lovepack.packaging.errors import (
    InputUnavailable,
    InvalidInput,
    NameAlreadyTaken,
    UpstreamDeliveryFailure,
)
from lovepack.publishing.registry import InMemoryNameRegistry
from lovepack.publishing.service import publish_document, retrieve_document, validate_name
from lovepack.publishing.store import LocalDeliveryStore


class FailingDelivery:
    async def store(self, key: str, data: bytes, media_type: str) -> str:
        raise UpstreamDeliveryFailure("Upload failed: 503")

    async def fetch(self, url: str) -> bytes:
        raise UpstreamDeliveryFailure("Fetch failed: 503")


class TestValidateName:
    @pytest.mark.parametrize("name", ["pong", "Pong-2", "a", "x_y", "9lives"])
    def test_accepts(self, name: str) -> None:
        assert validate_name(name) == name

    @pytest.mark.parametrize("name", ["", "-pong", "pong game", "../pong", "a" * 65, "pöng"])
    def test_rejects(self, name: str) -> None:
        with pytest.raises(InvalidInput):
            validate_name(name)


class TestPublishDocument:
    async def test_publish_then_retrieve(self) -> None:
        registry, delivery = InMemoryNameRegistry(), LocalDeliveryStore()
        record = await publish_document(
            "pong", b"<html>pong</html>", registry, delivery, author_ip="198.51.100.7"
        )

        assert record.name == "pong"
        assert record.url.startswith("local://pong-")
        assert record.author_ip == "198.51.100.7"
        assert await retrieve_document("pong", registry, delivery) == b"<html>pong</html>"

    async def test_name_taken(self) -> None:
        registry, delivery = InMemoryNameRegistry(), LocalDeliveryStore()
        await publish_document("pong", b"first", registry, delivery)
        with pytest.raises(NameAlreadyTaken):
            await publish_document("pong", b"second", registry, delivery)
        assert await retrieve_document("pong", registry, delivery) == b"first"

    async def test_upload_failure_registers_nothing(self) -> None:
        registry = InMemoryNameRegistry()
        with pytest.raises(UpstreamDeliveryFailure):
            await publish_document("pong", b"doc", registry, FailingDelivery())
        assert not await registry.is_taken("pong")

    async def test_invalid_name(self) -> None:
        with pytest.raises(InvalidInput):
            await publish_document("no spaces", b"doc", InMemoryNameRegistry(), LocalDeliveryStore())


class TestRetrieveDocument:
    async def test_unknown_name(self) -> None:
        with pytest.raises(InputUnavailable):
            await retrieve_document("ghost", InMemoryNameRegistry(), LocalDeliveryStore())
