"""Translate request bodies into PackagingJobs and run them.

All request validation that does not need the filesystem or the network
happens here, before a job (and its temp scope) exists.
"""

import logging
from typing import Optional

from lovepack.api.schemas import ArchiveCompileRequest, CompileRequest, PackagingOptions
from lovepack.core.config import Settings
from lovepack.packaging.errors import InvalidInput
from lovepack.packaging.resolver import (
    classify_reference,
    decode_inline_payload,
    normalize_source_path,
)
from lovepack.packaging.types import (
    ArchiveUpload,
    ArtifactMode,
    LocalPath,
    PackagingJob,
    SourceFile,
    SourceFiles,
    SourceInput,
)

logger = logging.getLogger(__name__)


def string_reference(body: CompileRequest) -> Optional[str]:
    """The single string reference in ``body.files``, or None for loose files.

    Raises:
        InvalidInput: If an array holds more than one string reference.
    """
    if isinstance(body.files, str):
        return body.files
    if body.files and isinstance(body.files[0], str):
        if len(body.files) > 1:
            raise InvalidInput("files may hold only one string reference")
        return body.files[0]
    return None


def source_input_for(body: CompileRequest, settings: Settings) -> SourceInput:
    """Build the SourceInput a compile request describes.

    Raises:
        InvalidInput: For an empty file list, unsafe paths, or a local path
            reference on a deployment that does not allow them.
    """
    if not body.files:
        raise InvalidInput("files must be a non-empty array")

    reference = string_reference(body)
    if reference is not None:
        source = classify_reference(reference)
        if isinstance(source, LocalPath) and not settings.allow_local_paths:
            raise InvalidInput("files must be an array, a data URL or an http(s) URL")
        return source

    for item in body.files:
        normalize_source_path(item.path)
    return SourceFiles(
        tuple(SourceFile(path=item.path, content=item.content) for item in body.files)
    )


def archive_input_for(body: ArchiveCompileRequest) -> ArchiveUpload:
    return ArchiveUpload(decode_inline_payload(body.archive))


def mode_for(options: PackagingOptions) -> ArtifactMode:
    return ArtifactMode.SINGLE_DOCUMENT if options.single_file else ArtifactMode.DIRECTORY_TREE


def build_job(
    source: SourceInput,
    options: PackagingOptions,
    settings: Settings,
    mode: ArtifactMode,
) -> PackagingJob:
    job = PackagingJob(
        input=source,
        title=options.title or settings.default_title,
        memory_limit_bytes=options.memory or settings.default_memory,
        mode=mode,
        compatibility_mode=options.compatibility,
    )
    logger.info(
        "Created job %s (%s, input=%s)",
        job.job_id, mode.value, type(source).__name__,
    )
    return job
