"""Publishing endpoints.

POST /publish      build a single document and publish it under a name
GET  /play/{name}  serve a published document

Rate limiting: POST /publish is throttled with `publish_rate_limit`.
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse

from lovepack.api.dependencies import get_delivery_store, get_registry
from lovepack.api.jobs import build_job, source_input_for
from lovepack.api.schemas import PublishRequest, PublishResponse
from lovepack.core.config import Settings, get_settings
from lovepack.core.limiter import client_address, limiter
from lovepack.packaging.errors import NameAlreadyTaken
from lovepack.packaging.orchestrator import run_packaging_job
from lovepack.packaging.types import ArtifactMode, SingleDocument
from lovepack.publishing.registry import NameRegistry
from lovepack.publishing.service import publish_document, retrieve_document, validate_name
from lovepack.publishing.store import DeliveryStore

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(tags=["publish"])


@router.post("/publish", response_model=PublishResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.publish_rate_limit)
async def publish_game(
    request: Request,
    body: PublishRequest,
    app_settings: Settings = Depends(get_settings),
    registry: NameRegistry = Depends(get_registry),
    delivery: DeliveryStore = Depends(get_delivery_store),
) -> PublishResponse:
    """Build a single document and publish it under ``body.name``."""
    # Fail fast before spending a build on a name that cannot be used.
    validate_name(body.name)
    if await registry.is_taken(body.name):
        raise NameAlreadyTaken(body.name)

    source = source_input_for(body, app_settings)
    job = build_job(source, body, app_settings, ArtifactMode.SINGLE_DOCUMENT)
    artifact = await run_packaging_job(job, app_settings)
    if not isinstance(artifact, SingleDocument):
        raise TypeError(f"Unexpected artifact type: {type(artifact).__name__}")

    record = await publish_document(
        body.name,
        artifact.content,
        registry,
        delivery,
        author_ip=client_address(request),
    )
    return PublishResponse(name=record.name, url=record.url, path=f"/play/{record.name}")


@router.get("/play/{name}", response_class=HTMLResponse)
async def play_game(
    name: str,
    registry: NameRegistry = Depends(get_registry),
    delivery: DeliveryStore = Depends(get_delivery_store),
) -> HTMLResponse:
    document = await retrieve_document(name, registry, delivery)
    return HTMLResponse(content=document)
