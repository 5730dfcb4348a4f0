"""Publish and retrieve compiled single-document games.

Publishing checks the name, hands the document to the delivery store and
then registers the returned URL under the name. Nothing is registered when
the upload fails, so the caller can retry.
"""

import logging
import re
import uuid
from typing import Optional

from lovepack.packaging.errors import InputUnavailable, InvalidInput, NameAlreadyTaken
from lovepack.publishing.registry import GameRecord, NameRegistry
from lovepack.publishing.store import DeliveryStore

logger = logging.getLogger(__name__)

NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,63}$")

DOCUMENT_MEDIA_TYPE = "text/html"


def validate_name(name: str) -> str:
    """Raises InvalidInput unless ``name`` is usable as a URL path segment."""
    if not NAME_RE.match(name):
        raise InvalidInput(
            "Name must be 1-64 characters of letters, digits, '-' or '_' "
            "and start with a letter or digit"
        )
    return name


async def publish_document(
    name: str,
    document: bytes,
    registry: NameRegistry,
    delivery: DeliveryStore,
    author_ip: Optional[str] = None,
) -> GameRecord:
    """Store ``document`` under ``name`` and register it.

    Raises:
        InvalidInput: For an unusable name.
        NameAlreadyTaken: If the name is registered.
        UpstreamDeliveryFailure: If the delivery store fails.
    """
    validate_name(name)
    if await registry.is_taken(name):
        raise NameAlreadyTaken(name)

    key = f"{name}-{uuid.uuid4().hex[:8]}.html"
    url = await delivery.store(key, document, DOCUMENT_MEDIA_TYPE)
    # A concurrent publish may have claimed the name during the upload; the
    # registry is the arbiter and raises NameAlreadyTaken for the loser.
    record = await registry.register(GameRecord(name=name, url=url, author_ip=author_ip))
    logger.info("Published '%s' at %s", name, url)
    return record


async def retrieve_document(
    name: str,
    registry: NameRegistry,
    delivery: DeliveryStore,
) -> bytes:
    """Return the published document for ``name``.

    Raises:
        InputUnavailable: If nothing is published under the name.
    """
    record = await registry.lookup(name)
    if record is None or not record.url:
        raise InputUnavailable(f"No game published as '{name}'")
    return await delivery.fetch(record.url)
