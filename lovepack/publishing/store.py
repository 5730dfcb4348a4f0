"""Object stores for compiled documents.

EphemeralObjectStore
    In-memory, id-addressed, optional per-object TTL. Backs the temporary
    share links served by a single lookup route.

DeliveryStore
    Where published documents live. `LocalDeliveryStore` keeps them in an
    EphemeralObjectStore without expiry; `HttpDeliveryStore` uploads them to
    an external endpoint with httpx.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

import httpx

from lovepack.packaging.errors import UpstreamDeliveryFailure

logger = logging.getLogger(__name__)

# Timeout for delivery uploads and fetches
DELIVERY_TIMEOUT = 30

LOCAL_URL_SCHEME = "local://"


@dataclass(frozen=True)
class StoredObject:
    data: bytes
    media_type: str
    expires_at: Optional[float] = None

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class EphemeralObjectStore:
    """Id-addressed byte store with lazy expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._objects: dict[str, StoredObject] = {}
        self._clock = clock

    def put(
        self,
        data: bytes,
        media_type: str,
        ttl_seconds: Optional[float] = None,
        object_id: Optional[str] = None,
    ) -> str:
        """Store ``data`` and return its id."""
        object_id = object_id or uuid.uuid4().hex
        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
        self._objects[object_id] = StoredObject(data, media_type, expires_at)
        return object_id

    def get(self, object_id: str) -> Optional[StoredObject]:
        stored = self._objects.get(object_id)
        if stored is None:
            return None
        if stored.expired(self._clock()):
            del self._objects[object_id]
            return None
        return stored

    def remove(self, object_id: str) -> bool:
        return self._objects.pop(object_id, None) is not None

    def purge_expired(self) -> int:
        """Drop every expired object. Returns how many were removed."""
        now = self._clock()
        stale = [oid for oid, obj in self._objects.items() if obj.expired(now)]
        for object_id in stale:
            del self._objects[object_id]
        if stale:
            logger.debug("Purged %d expired objects", len(stale))
        return len(stale)

    def __len__(self) -> int:
        return len(self._objects)


class DeliveryStore(Protocol):
    async def store(self, key: str, data: bytes, media_type: str) -> str: ...

    async def fetch(self, url: str) -> bytes: ...


class LocalDeliveryStore:
    """Keeps published documents in process memory."""

    def __init__(self, objects: Optional[EphemeralObjectStore] = None) -> None:
        self.objects = objects or EphemeralObjectStore()

    async def store(self, key: str, data: bytes, media_type: str) -> str:
        self.objects.put(data, media_type, object_id=key)
        return f"{LOCAL_URL_SCHEME}{key}"

    async def fetch(self, url: str) -> bytes:
        if not url.startswith(LOCAL_URL_SCHEME):
            raise UpstreamDeliveryFailure(f"Not a local delivery URL: {url}")
        stored = self.objects.get(url[len(LOCAL_URL_SCHEME):])
        if stored is None:
            raise UpstreamDeliveryFailure(f"Published document missing: {url}")
        return stored.data


class HttpDeliveryStore:
    """Uploads documents to an external HTTP endpoint.

    The endpoint receives a multipart upload and must answer with JSON
    containing the public ``url`` of the stored file.
    """

    def __init__(
        self,
        upload_url: str,
        api_key: str = "",
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.upload_url = upload_url
        self.api_key = api_key
        self._client = client

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            return {}
        return {"Authorization": f"Bearer {self.api_key}"}

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(method, url, **kwargs)
        async with httpx.AsyncClient(timeout=DELIVERY_TIMEOUT) as client:
            return await client.request(method, url, **kwargs)

    async def store(self, key: str, data: bytes, media_type: str) -> str:
        try:
            response = await self._request(
                "POST",
                self.upload_url,
                headers=self._headers(),
                files={"file": (key, data, media_type)},
            )
        except httpx.HTTPError as exc:
            raise UpstreamDeliveryFailure(f"Upload failed: {exc}") from exc

        if response.status_code >= 400:
            raise UpstreamDeliveryFailure(f"Upload failed: {response.status_code}")

        try:
            url = response.json()["url"]
        except (ValueError, KeyError, TypeError) as exc:
            raise UpstreamDeliveryFailure("Upload response carried no url") from exc

        logger.info("Uploaded %s (%d bytes) to %s", key, len(data), url)
        return url

    async def fetch(self, url: str) -> bytes:
        try:
            response = await self._request("GET", url)
        except httpx.HTTPError as exc:
            raise UpstreamDeliveryFailure(f"Fetch failed: {exc}") from exc
        if response.status_code >= 400:
            raise UpstreamDeliveryFailure(f"Fetch failed: {response.status_code}")
        return response.content
