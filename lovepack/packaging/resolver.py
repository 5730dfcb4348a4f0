"""Input resolution: turns a SourceInput into a local file-tree root.

A single dispatch function, `resolve_input()`, handles every SourceInput
variant. Anything it materialises (downloads, decoded payloads, staged
source trees) is registered with the job's JobScope before the first byte
is written, so it is removed however the job ends.

Security:
  - Remote URLs must be http(s). Unless private networks are explicitly
    allowed, every hop (including redirect targets) is checked so that a
    public URL cannot redirect the server into its own network.
  - Loose source paths and archive members are rejected if they are
    absolute or contain `..` components or null bytes.
  - Redirects are followed manually and bounded by `max_redirects`.
"""

import base64
import binascii
import io
import ipaddress
import logging
import re
import socket
import zipfile
import zlib
from pathlib import Path
from typing import Optional
from urllib.parse import unquote_to_bytes, urlparse

import httpx

from lovepack.core.config import Settings
from lovepack.packaging.errors import (
    ArchiveCorrupt,
    DownloadFailed,
    InputUnavailable,
    InvalidInput,
    MalformedPayload,
)
from lovepack.packaging.types import (
    ArchiveUpload,
    InlinePayload,
    LocalPath,
    RemoteReference,
    SourceFile,
    SourceFiles,
    SourceInput,
)
from lovepack.packaging.workspace import JobScope, offload

logger = logging.getLogger(__name__)

_REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})

_DATA_URI_RE = re.compile(
    r"^data:(?P<media>[^;,]*)(?P<params>(?:;[^;,]*)*),(?P<data>.*)$",
    re.DOTALL | re.IGNORECASE,
)
_URL_RE = re.compile(r"^https?://", re.IGNORECASE)

_PRIVATE_NETWORKS: list[ipaddress.IPv4Network | ipaddress.IPv6Network] = [
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("169.254.0.0/16"),     # Link-local / cloud metadata
    ipaddress.ip_network("100.64.0.0/10"),
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),
    ipaddress.ip_network("fe80::/10"),
]

_CHUNK_SIZE = 64 * 1024


# ---------------------------------------------------------------------------
# Classification and decoding
# ---------------------------------------------------------------------------


def classify_reference(text: str) -> SourceInput:
    """Map a request's string reference to a SourceInput variant.

    This is the only place that inspects the shape of a reference string.
    """
    if text.lower().startswith("data:"):
        return InlinePayload(text)
    if _URL_RE.match(text):
        return RemoteReference(text)
    return LocalPath(Path(text))


def decode_inline_payload(text: str) -> bytes:
    """Decode a data URI or a bare base64 string.

    Raises:
        MalformedPayload: If the structure or the base64 body is invalid.
    """
    if text[:5].lower() == "data:":
        match = _DATA_URI_RE.match(text)
        if not match:
            raise MalformedPayload("Invalid data URL format")
        params = [p.strip().lower() for p in match.group("params").split(";") if p]
        data = match.group("data")
        if "base64" in params:
            return _b64decode(data)
        return unquote_to_bytes(data)
    return _b64decode(text)


def _b64decode(data: str) -> bytes:
    cleaned = "".join(data.split()).replace("-", "+").replace("_", "/")
    cleaned += "=" * (-len(cleaned) % 4)
    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedPayload(f"Invalid base64 payload: {exc}") from exc


def normalize_source_path(path: str) -> str:
    """Return ``path`` as a clean forward-slash relative path.

    Raises:
        InvalidInput: For empty, absolute or traversing paths.
    """
    if not path or "\x00" in path:
        raise InvalidInput(f"Invalid source path: {path!r}")
    unified = path.replace("\\", "/")
    if unified.startswith("/") or re.match(r"^[A-Za-z]:", unified):
        raise InvalidInput(f"Source path must be relative: {path!r}")
    parts = [p for p in unified.split("/") if p not in ("", ".")]
    if not parts:
        raise InvalidInput(f"Invalid source path: {path!r}")
    if ".." in parts:
        raise InvalidInput(f"Invalid source path - path traversal detected: {path!r}")
    return "/".join(parts)


# ---------------------------------------------------------------------------
# Remote URLs
# ---------------------------------------------------------------------------


def validate_remote_url(url: str, allow_private_networks: bool = False) -> None:
    """Validate a remote input URL before fetching it.

    Raises:
        InvalidInput: For non-http(s) URLs or URLs without a host.
        DownloadFailed: If the host resolves to a private address.
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise InvalidInput(f"Remote input must use http or https (got '{parsed.scheme}')")
    hostname = parsed.hostname
    if not hostname:
        raise InvalidInput(f"Remote input URL has no hostname: {url}")
    if allow_private_networks:
        return

    try:
        addr_infos = socket.getaddrinfo(hostname, None)
    except socket.gaierror as exc:
        raise DownloadFailed(f"cannot resolve hostname '{hostname}': {exc}")

    for _family, _type, _proto, _canonname, sockaddr in addr_infos:
        try:
            ip = ipaddress.ip_address(sockaddr[0])
        except ValueError:
            continue
        for private_net in _PRIVATE_NETWORKS:
            if ip in private_net:
                raise DownloadFailed(
                    f"host '{hostname}' resolves to private address {ip}"
                )


async def download_file(
    url: str,
    destination: Path,
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
) -> Path:
    """Download ``url`` into ``destination``, following bounded redirects."""
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(timeout=settings.download_timeout_seconds)
    try:
        return await _download(url, destination, settings, client)
    finally:
        if owns_client:
            await client.aclose()


async def _download(
    url: str,
    destination: Path,
    settings: Settings,
    client: httpx.AsyncClient,
) -> Path:
    current = url
    for _hop in range(settings.max_redirects + 1):
        await offload(
            validate_remote_url, current, settings.allow_private_networks
        )
        try:
            async with client.stream("GET", current, follow_redirects=False) as response:
                if response.status_code in _REDIRECT_STATUSES:
                    location = response.headers.get("location")
                    if not location:
                        raise DownloadFailed(
                            f"redirect {response.status_code} without Location header"
                        )
                    current = str(httpx.URL(current).join(location))
                    logger.debug("Following redirect to %s", current)
                    continue

                if not 200 <= response.status_code < 300:
                    raise DownloadFailed(
                        f"HTTP {response.status_code}", status=response.status_code
                    )

                written = await _stream_to_file(
                    response, destination, settings.max_download_bytes
                )
        except httpx.HTTPError as exc:
            raise DownloadFailed(str(exc) or type(exc).__name__) from exc

        logger.info("Downloaded %s (%d bytes)", current, written)
        return destination

    raise DownloadFailed(f"too many redirects (limit {settings.max_redirects})")


async def _stream_to_file(
    response: httpx.Response,
    destination: Path,
    max_bytes: int,
) -> int:
    written = 0
    with destination.open("wb") as fh:
        async for chunk in response.aiter_bytes(_CHUNK_SIZE):
            written += len(chunk)
            if written > max_bytes:
                raise DownloadFailed(f"response exceeds {max_bytes} bytes")
            fh.write(chunk)
    return written


# ---------------------------------------------------------------------------
# Loose files and archives
# ---------------------------------------------------------------------------


def stage_source_files(files: tuple[SourceFile, ...], directory: Path) -> Path:
    """Decode loose source files into ``directory`` and return it."""
    if not files:
        raise InvalidInput("files must be a non-empty array")

    seen: set[str] = set()
    decoded: list[tuple[str, bytes]] = []
    for source in files:
        relative = normalize_source_path(source.path)
        if relative in seen:
            raise InvalidInput(f"Duplicate source path: {relative}")
        seen.add(relative)
        decoded.append((relative, decode_inline_payload(source.content)))

    for relative, content in decoded:
        target = directory.joinpath(*relative.split("/"))
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except (FileExistsError, IsADirectoryError, NotADirectoryError) as exc:
            raise InvalidInput(
                f"Source path {relative} conflicts with another file or folder"
            ) from exc

    logger.debug("Staged %d source files into %s", len(decoded), directory)
    return directory


def validate_archive(data: bytes) -> list[str]:
    """Check that ``data`` is an intact zip with safe member names.

    Returns the member file names.

    Raises:
        ArchiveCorrupt: If the archive cannot be read, fails its CRC
            checks, contains unsafe paths or holds no files.
    """
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            infos = archive.infolist()
            for info in infos:
                try:
                    normalize_source_path(info.filename)
                except InvalidInput as exc:
                    raise ArchiveCorrupt(f"Unsafe archive member: {info.filename!r}") from exc
            bad_member = archive.testzip()
    except (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError) as exc:
        raise ArchiveCorrupt(f"Archive is not a readable zip file: {exc}") from exc

    if bad_member is not None:
        raise ArchiveCorrupt(f"Archive member failed CRC check: {bad_member}")

    names = [info.filename for info in infos if not info.is_dir()]
    if not names:
        raise ArchiveCorrupt("Archive contains no files")
    return names


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


async def resolve_input(
    source: SourceInput,
    scope: JobScope,
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
) -> Path:
    """Resolve ``source`` to a readable root path (directory or file).

    Raises:
        InputUnavailable, DownloadFailed, MalformedPayload, InvalidInput,
        ArchiveCorrupt: Depending on the variant.
    """
    if isinstance(source, LocalPath):
        path = source.path.expanduser().resolve()
        if not path.exists():
            raise InputUnavailable(f"Input path does not exist: {path}")
        return path

    if isinstance(source, RemoteReference):
        destination = scope.temp_file()
        return await download_file(source.url, destination, settings, client)

    if isinstance(source, InlinePayload):
        content = decode_inline_payload(source.text)
        destination = scope.temp_file()
        await offload(destination.write_bytes, content)
        return destination

    if isinstance(source, SourceFiles):
        return await offload(
            stage_source_files, source.files, scope.input_dir()
        )

    if isinstance(source, ArchiveUpload):
        await offload(validate_archive, source.data)
        destination = scope.temp_file()
        await offload(destination.write_bytes, source.data)
        return destination

    raise InvalidInput(f"Unsupported input type: {type(source).__name__}")
