"""Published-name registry.

The publish flow only needs four operations, so the registry is a Protocol
that any backing store (a database table, a key-value service) can satisfy.
`InMemoryNameRegistry` is the default and the one used in tests.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

from lovepack.packaging.errors import NameAlreadyTaken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GameRecord:
    """One published game: its public name and where the document lives."""

    name: str
    url: str
    author_ip: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NameRegistry(Protocol):
    async def is_taken(self, name: str) -> bool: ...

    async def register(self, record: GameRecord) -> GameRecord: ...

    async def lookup(self, name: str) -> Optional[GameRecord]: ...

    async def remove(self, name: str) -> bool: ...


class InMemoryNameRegistry:
    """Process-local registry. Names are matched case-insensitively."""

    def __init__(self) -> None:
        self._records: dict[str, GameRecord] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def _key(name: str) -> str:
        return name.lower()

    async def is_taken(self, name: str) -> bool:
        return self._key(name) in self._records

    async def register(self, record: GameRecord) -> GameRecord:
        """Claim ``record.name``.

        Raises:
            NameAlreadyTaken: If another record already holds the name.
        """
        async with self._lock:
            key = self._key(record.name)
            if key in self._records:
                raise NameAlreadyTaken(record.name)
            self._records[key] = record
        logger.info("Registered game name '%s'", record.name)
        return record

    async def lookup(self, name: str) -> Optional[GameRecord]:
        return self._records.get(self._key(name))

    async def remove(self, name: str) -> bool:
        async with self._lock:
            return self._records.pop(self._key(name), None) is not None

    def __len__(self) -> int:
        return len(self._records)
