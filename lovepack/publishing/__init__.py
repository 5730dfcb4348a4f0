"""Publishing of compiled games.

Public API:
    publish_document(name, document, registry, delivery) -> GameRecord
    retrieve_document(name, registry, delivery) -> bytes
"""

from lovepack.publishing.registry import GameRecord, InMemoryNameRegistry, NameRegistry
from lovepack.publishing.service import publish_document, retrieve_document
from lovepack.publishing.store import (
    DeliveryStore,
    EphemeralObjectStore,
    HttpDeliveryStore,
    LocalDeliveryStore,
)

__all__ = [
    "DeliveryStore",
    "EphemeralObjectStore",
    "GameRecord",
    "HttpDeliveryStore",
    "InMemoryNameRegistry",
    "LocalDeliveryStore",
    "NameRegistry",
    "publish_document",
    "retrieve_document",
]
