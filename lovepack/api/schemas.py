"""Pydantic schemas for the HTTP interface.

Field names follow the JSON the browser front-end sends, so ``singleFile``
keeps its camelCase alias.
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class SourceFileModel(BaseModel):
    """One loose source file. ``content`` is a data URL or bare base64."""

    path: str = Field(..., min_length=1, description="Relative path, e.g. 'lib/util.lua'")
    content: str


class PackagingOptions(BaseModel):
    """Options shared by every compile-style request."""

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=200,
        description="Page title. Defaults to the configured default title.",
    )
    memory: Optional[int] = Field(
        default=None,
        gt=0,
        description="Runtime memory in bytes. Must cover the bundle size.",
    )
    compatibility: bool = Field(
        default=False,
        description="Use the single-threaded compat runtime.",
    )
    single_file: bool = Field(
        default=True,
        alias="singleFile",
        description="Inline everything into one HTML document.",
    )


class CompileRequest(PackagingOptions):
    """Compile loose files or a single string reference.

    The reference may be sent bare or as the only element of an array. It
    is classified as a data URL, an http(s) URL or a server-local
    path (local paths only when the deployment allows them).
    """

    files: Union[list[SourceFileModel], list[str], str]


class ArchiveCompileRequest(PackagingOptions):
    """Compile an uploaded .love / zip archive."""

    archive: str = Field(..., min_length=1, description="Data URL or base64 zip bytes")


class PublishRequest(CompileRequest):
    name: str = Field(..., min_length=1, max_length=64)


class DirectoryTreeResponse(BaseModel):
    """Multi-file build: relative path -> base64 file content."""

    success: bool = True
    files: dict[str, str]


class ShareResponse(BaseModel):
    id: str
    url: str
    expires_in_seconds: int


class PublishResponse(BaseModel):
    name: str
    url: str
    path: str
