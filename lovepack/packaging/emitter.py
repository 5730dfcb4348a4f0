"""Artifact emission: materialises the final deliverable.

Three shapes:
- directory tree: rendered page + bootstrap + raw payload + runtime files
- single document: the fully inlined page from the renderer
- source archive: a zip of the original source tree (no bundle involved)
"""

import io
import logging
import zipfile
from pathlib import Path

from lovepack.packaging.renderer import RenderedOutputs
from lovepack.packaging.runtime_assets import RuntimeAssets
from lovepack.packaging.types import (
    Bundle,
    CollectedFile,
    DirectoryTree,
    SingleDocument,
    SourceArchive,
)

logger = logging.getLogger(__name__)

# Epoch for zip entries: source archives are byte-identical for identical trees.
_ZIP_TIMESTAMP = (1980, 1, 1, 0, 0, 0)


def emit_directory_tree(
    rendered: RenderedOutputs,
    bundle: Bundle,
    runtime: RuntimeAssets,
    destination: Path,
) -> DirectoryTree:
    """Write the bundle as a file tree under ``destination``.

    Returns every written file's relative path mapped to its bytes.
    """
    if rendered.index_html is None:
        raise ValueError("Directory output needs a rendered index.html")

    files: dict[str, bytes] = {
        "index.html": rendered.index_html.encode("utf-8"),
        "game.js": rendered.game_script.encode("utf-8"),
        "game.data": bundle.payload,
    }
    files.update(runtime.files)

    destination.mkdir(parents=True, exist_ok=True)
    for relative, content in files.items():
        target = destination.joinpath(*relative.split("/"))
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)

    logger.info("Wrote %d files to %s", len(files), destination)
    return DirectoryTree(files=files, root=destination)


def emit_single_document(rendered: RenderedOutputs) -> SingleDocument:
    if rendered.document is None:
        raise ValueError("Single-document output needs a rendered document")
    return SingleDocument(content=rendered.document)


def emit_source_archive(
    files: list[CollectedFile],
    directories: list[str],
    title: str,
) -> SourceArchive:
    """Zip the original source tree, preserving the collected layout."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(
        buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9
    ) as archive:
        for directory in directories:
            info = zipfile.ZipInfo(f"{directory}/", date_time=_ZIP_TIMESTAMP)
            info.external_attr = 0o40755 << 16
            archive.writestr(info, b"")
        for collected in files:
            info = zipfile.ZipInfo(collected.relative_path, date_time=_ZIP_TIMESTAMP)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
            archive.writestr(info, collected.absolute_path.read_bytes(), compresslevel=9)

    content = buffer.getvalue()
    logger.info("Archived %d files (%d bytes)", len(files), len(content))
    return SourceArchive(content=content, filename=f"{title}.love")
