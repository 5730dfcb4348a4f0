"""Bundle builder: concatenates collected files into one payload.

Produces the manifest of byte ranges the runtime uses to carve the payload
back into files, the runtime arguments, and the directory-creation
operations its virtual filesystem needs before any file can be placed.
"""

import logging

from lovepack.packaging.errors import MemoryLimitExceeded
from lovepack.packaging.types import (
    CANONICAL_GAME_NAME,
    STREAMABLE_SUFFIXES,
    Bundle,
    CollectedFile,
    DirectoryOp,
    FileEntry,
)

logger = logging.getLogger(__name__)


def is_streamable_media(name: str) -> bool:
    return name.endswith(STREAMABLE_SUFFIXES)


def directory_ops(directories: list[str]) -> list[DirectoryOp]:
    """Turn relative directory paths into create-path operations.

    ``a/b`` becomes "create ``b`` under ``/a``"; top-level directories are
    created under ``/``.
    """
    ops: list[DirectoryOp] = []
    for directory in directories:
        parent, _, name = directory.rpartition("/")
        ops.append(DirectoryOp(parent=f"/{parent}" if parent else "/", name=name))
    return ops


def build_bundle(
    files: list[CollectedFile],
    directories: list[str],
    *,
    single_file: bool,
) -> Bundle:
    """Read ``files`` in order and build the payload plus manifest."""
    chunks: list[bytes] = []
    manifest: list[FileEntry] = []
    current_byte = 0

    for collected in files:
        name = CANONICAL_GAME_NAME if single_file else collected.relative_path
        data = collected.absolute_path.read_bytes()
        manifest.append(
            FileEntry(
                relative_path=name,
                start_byte=current_byte,
                end_byte=current_byte + len(data),
                is_streamable_media=is_streamable_media(name),
            )
        )
        current_byte += len(data)
        chunks.append(data)

    if single_file:
        arguments = (f"./{CANONICAL_GAME_NAME}",)
        ops: list[DirectoryOp] = []
    else:
        arguments = ("./",)
        ops = directory_ops(directories)

    bundle = Bundle(
        payload=b"".join(chunks),
        manifest=tuple(manifest),
        runtime_arguments=arguments,
        directory_ops=tuple(ops),
    )
    logger.info(
        "Built bundle: %d files, %d bytes, %d directories",
        len(manifest), bundle.size, len(ops),
    )
    return bundle


def check_memory_limit(bundle: Bundle, limit: int) -> None:
    """Raise MemoryLimitExceeded when the payload cannot fit in ``limit``."""
    if bundle.size > limit:
        raise MemoryLimitExceeded(required=bundle.size, limit=limit)
