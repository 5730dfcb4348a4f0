"""Types for the packaging pipeline.

SourceInput variants describe where a game comes from. CollectedFile,
FileEntry, DirectoryOp and Bundle describe the runtime bundle built from it.
PackagingJob is the immutable request for one job; Artifact variants are
what a finished job hands back.
"""

import enum
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

DEFAULT_TITLE = "Love Game"
DEFAULT_MEMORY = 67108864

# Name used for the packaged unit when the input is a single file
# (a .love archive) rather than a directory tree.
CANONICAL_GAME_NAME = "game.love"

# Extensions the runtime streams instead of loading fully.
STREAMABLE_SUFFIXES = (".ogg", ".wav", ".mp3", ".flac", ".xm")


# ---------------------------------------------------------------------------
# Source inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LocalPath:
    path: Path


@dataclass(frozen=True)
class RemoteReference:
    url: str


@dataclass(frozen=True)
class InlinePayload:
    """A data URI or bare base64 string carrying a whole game file."""

    text: str


@dataclass(frozen=True)
class SourceFile:
    """One loose source file; ``content`` is base64 or a data URL."""

    path: str
    content: str


@dataclass(frozen=True)
class SourceFiles:
    files: tuple[SourceFile, ...]


@dataclass(frozen=True)
class ArchiveUpload:
    """Raw bytes of a pre-built .love (zip) archive."""

    data: bytes


SourceInput = Union[LocalPath, RemoteReference, InlinePayload, SourceFiles, ArchiveUpload]


# ---------------------------------------------------------------------------
# Bundle
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CollectedFile:
    absolute_path: Path
    relative_path: str
    size: int


@dataclass(frozen=True)
class FileEntry:
    """Where one logical file lives inside the bundle payload.

    ``relative_path`` always uses forward slashes and never starts with ``/``.
    """

    relative_path: str
    start_byte: int
    end_byte: int
    is_streamable_media: bool = False

    @property
    def size(self) -> int:
        return self.end_byte - self.start_byte


@dataclass(frozen=True)
class DirectoryOp:
    """Instruction for the virtual filesystem: create ``name`` under ``parent``."""

    parent: str
    name: str

    def to_js(self) -> str:
        return f"Module['FS_createPath']('{_js_quote(self.parent)}', '{_js_quote(self.name)}', true, true);"


def _js_quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


@dataclass(frozen=True)
class Bundle:
    """Contiguous payload plus the manifest partitioning it.

    manifest[0].start_byte == 0, each entry starts where the previous one
    ended, and manifest[-1].end_byte == len(payload).
    """

    payload: bytes
    manifest: tuple[FileEntry, ...]
    runtime_arguments: tuple[str, ...]
    directory_ops: tuple[DirectoryOp, ...] = ()

    @property
    def size(self) -> int:
        return len(self.payload)

    def slice(self, entry: FileEntry) -> bytes:
        return self.payload[entry.start_byte:entry.end_byte]


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


class ArtifactMode(str, enum.Enum):
    DIRECTORY_TREE = "directory_tree"
    SINGLE_DOCUMENT = "single_document"
    SOURCE_ARCHIVE = "source_archive"


class JobState(str, enum.Enum):
    CREATED = "created"
    RESOLVING_INPUT = "resolving_input"
    COLLECTING_FILES = "collecting_files"
    BUILDING_BUNDLE = "building_bundle"
    RENDERING = "rendering"
    EMITTING_ARTIFACT = "emitting_artifact"
    DONE = "done"
    FAILED = "failed"


def _new_job_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class PackagingJob:
    """One packaging request. Immutable once built.

    ``output_dir`` persists a directory-tree artifact at a caller-chosen
    location; when None the tree is written to job-owned staging and removed
    once the job finishes (the returned mapping still holds every byte).
    """

    input: SourceInput
    title: str = DEFAULT_TITLE
    memory_limit_bytes: int = DEFAULT_MEMORY
    mode: ArtifactMode = ArtifactMode.SINGLE_DOCUMENT
    compatibility_mode: bool = False
    output_dir: Optional[Path] = None
    job_id: str = field(default_factory=_new_job_id)

    @property
    def single_file_mode(self) -> bool:
        return self.mode is ArtifactMode.SINGLE_DOCUMENT


# ---------------------------------------------------------------------------
# Artifacts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DirectoryTree:
    files: dict[str, bytes]
    root: Path

    media_type = "application/json"


@dataclass(frozen=True)
class SingleDocument:
    content: bytes

    media_type = "text/html"


@dataclass(frozen=True)
class SourceArchive:
    content: bytes
    filename: str

    media_type = "application/zip"


Artifact = Union[DirectoryTree, SingleDocument, SourceArchive]
