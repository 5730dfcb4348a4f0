"""Compile endpoints.

POST /compile            loose files or one string reference -> build
POST /compile/archive    uploaded .love / zip -> build
POST /export             loose files -> downloadable .love archive
POST /share              build a single document behind a temporary link
GET  /shared/{object_id} serve a shared document until it expires

Rate limiting: every POST here shares `compile_rate_limit` per client.
"""

import base64
import logging
import re
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, Response

from lovepack.api.dependencies import get_shared_objects
from lovepack.api.jobs import (
    archive_input_for,
    build_job,
    mode_for,
    source_input_for,
    string_reference,
)
from lovepack.api.schemas import (
    ArchiveCompileRequest,
    CompileRequest,
    DirectoryTreeResponse,
    ShareResponse,
)
from lovepack.core.config import Settings, get_settings
from lovepack.core.limiter import limiter
from lovepack.packaging.errors import InputUnavailable, InvalidInput
from lovepack.packaging.orchestrator import run_packaging_job
from lovepack.packaging.types import (
    Artifact,
    ArtifactMode,
    DirectoryTree,
    SingleDocument,
    SourceArchive,
)
from lovepack.publishing.store import EphemeralObjectStore

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(tags=["compile"])

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def artifact_response(artifact: Artifact) -> Response:
    """HTTP response for a finished build."""
    if isinstance(artifact, SingleDocument):
        return HTMLResponse(content=artifact.content)
    if isinstance(artifact, DirectoryTree):
        body = DirectoryTreeResponse(
            files={
                path: base64.b64encode(content).decode("ascii")
                for path, content in sorted(artifact.files.items())
            }
        )
        return JSONResponse(content=body.model_dump())
    raise TypeError(f"Unexpected artifact type: {type(artifact).__name__}")


def content_disposition(filename: str) -> str:
    """Attachment header for ``filename``.

    The quoted ``filename`` is an ASCII fallback; ``filename*`` (RFC 5987)
    carries the exact name for clients that understand it.
    """
    cleaned = _CONTROL_CHARS.sub("", filename)
    fallback = cleaned.encode("ascii", "replace").decode("ascii")
    fallback = fallback.replace("\\", "\\\\").replace('"', '\\"')
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(cleaned, safe='')}"


@router.post("/compile")
@limiter.limit(settings.compile_rate_limit)
async def compile_files(
    request: Request,
    body: CompileRequest,
    app_settings: Settings = Depends(get_settings),
) -> Response:
    """Build a game from loose files or a single reference."""
    source = source_input_for(body, app_settings)
    job = build_job(source, body, app_settings, mode_for(body))
    artifact = await run_packaging_job(job, app_settings)
    return artifact_response(artifact)


@router.post("/compile/archive")
@limiter.limit(settings.compile_rate_limit)
async def compile_archive(
    request: Request,
    body: ArchiveCompileRequest,
    app_settings: Settings = Depends(get_settings),
) -> Response:
    """Build a game from an uploaded .love archive."""
    job = build_job(archive_input_for(body), body, app_settings, mode_for(body))
    artifact = await run_packaging_job(job, app_settings)
    return artifact_response(artifact)


@router.post("/export")
@limiter.limit(settings.compile_rate_limit)
async def export_source(
    request: Request,
    body: CompileRequest,
    app_settings: Settings = Depends(get_settings),
) -> Response:
    """Zip the submitted source tree into a .love file."""
    if string_reference(body) is not None:
        raise InvalidInput("export needs files as an array")
    source = source_input_for(body, app_settings)
    job = build_job(source, body, app_settings, ArtifactMode.SOURCE_ARCHIVE)
    artifact = await run_packaging_job(job, app_settings)
    if not isinstance(artifact, SourceArchive):
        raise TypeError(f"Unexpected artifact type: {type(artifact).__name__}")

    return Response(
        content=artifact.content,
        media_type=SourceArchive.media_type,
        headers={"Content-Disposition": content_disposition(artifact.filename)},
    )


@router.post("/share", response_model=ShareResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.compile_rate_limit)
async def share_document(
    request: Request,
    body: CompileRequest,
    app_settings: Settings = Depends(get_settings),
    objects: EphemeralObjectStore = Depends(get_shared_objects),
) -> ShareResponse:
    """Build a single document and expose it under a temporary link."""
    source = source_input_for(body, app_settings)
    job = build_job(source, body, app_settings, ArtifactMode.SINGLE_DOCUMENT)
    artifact = await run_packaging_job(job, app_settings)
    if not isinstance(artifact, SingleDocument):
        raise TypeError(f"Unexpected artifact type: {type(artifact).__name__}")

    objects.purge_expired()
    object_id = objects.put(
        artifact.content,
        SingleDocument.media_type,
        ttl_seconds=app_settings.shared_link_ttl_seconds,
    )
    logger.info("Shared job %s as %s", job.job_id, object_id)
    return ShareResponse(
        id=object_id,
        url=f"{app_settings.public_base_url}/shared/{object_id}",
        expires_in_seconds=app_settings.shared_link_ttl_seconds,
    )


@router.get("/shared/{object_id}")
async def get_shared_document(
    object_id: str,
    objects: EphemeralObjectStore = Depends(get_shared_objects),
) -> Response:
    stored = objects.get(object_id)
    if stored is None:
        raise InputUnavailable("Shared document not found or expired")
    return Response(content=stored.data, media_type=stored.media_type)
