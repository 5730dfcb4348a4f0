"""FastAPI dependencies for the shared stores.

The stores live on ``app.state`` (created in `create_app()`), so every
request in one process sees the same registry and object stores.
"""

from fastapi import Request

from lovepack.publishing.registry import NameRegistry
from lovepack.publishing.store import DeliveryStore, EphemeralObjectStore


def get_registry(request: Request) -> NameRegistry:
    return request.app.state.registry


def get_shared_objects(request: Request) -> EphemeralObjectStore:
    return request.app.state.shared_objects


def get_delivery_store(request: Request) -> DeliveryStore:
    return request.app.state.delivery
