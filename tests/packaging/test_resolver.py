"""Tests for input classification, decoding, downloads and staging.

Outbound HTTP goes through httpx.MockTransport; DNS is patched where the
private-network guard is exercised. No real network calls are made.
"""

import base64
import io
import socket
import zipfile
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from lovepack.core.config import Settings
from lovepack.packaging.errors import (
    ArchiveCorrupt,
    DownloadFailed,
    InputUnavailable,
    InvalidInput,
    MalformedPayload,
)
from lovepack.packaging.resolver import (
    classify_reference,
    decode_inline_payload,
    download_file,
    normalize_source_path,
    resolve_input,
    stage_source_files,
    validate_archive,
    validate_remote_url,
)
from lovepack.packaging.types import (
    ArchiveUpload,
    InlinePayload,
    LocalPath,
    RemoteReference,
    SourceFile,
    SourceFiles,
)
from lovepack.packaging.workspace import JobScope


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _zip(members: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in members.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def _mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _addr_info(ip: str):
    return [(socket.AF_INET, socket.SOCK_STREAM, 0, "", (ip, 0))]


# ---------------------------------------------------------------------------
# Classification and decoding
# ---------------------------------------------------------------------------


class TestClassifyReference:
    def test_data_url(self) -> None:
        assert classify_reference("data:;base64,eA==") == InlinePayload("data:;base64,eA==")

    def test_http_and_https(self) -> None:
        assert classify_reference("https://a.example/g.love") == RemoteReference(
            "https://a.example/g.love"
        )
        assert isinstance(classify_reference("HTTP://a.example/g.love"), RemoteReference)

    def test_anything_else_is_a_path(self) -> None:
        assert classify_reference("games/pong.love") == LocalPath(Path("games/pong.love"))
        assert isinstance(classify_reference("ftp://a.example/g"), LocalPath)


class TestDecodeInlinePayload:
    def test_base64_data_url(self) -> None:
        assert decode_inline_payload("data:application/zip;base64,aGVsbG8=") == b"hello"

    def test_data_url_with_extra_params(self) -> None:
        text = "data:application/octet-stream;name=g.love;base64,aGVsbG8="
        assert decode_inline_payload(text) == b"hello"

    def test_percent_encoded_data_url(self) -> None:
        assert decode_inline_payload("data:text/plain,print%28%27hi%27%29") == b"print('hi')"

    def test_bare_base64(self) -> None:
        assert decode_inline_payload("aGVsbG8=") == b"hello"

    def test_missing_padding_and_urlsafe_alphabet(self) -> None:
        assert decode_inline_payload("aGVsbG8") == b"hello"
        assert decode_inline_payload(base64.urlsafe_b64encode(b"\xfb\xff").decode()) == b"\xfb\xff"

    def test_malformed_base64(self) -> None:
        with pytest.raises(MalformedPayload):
            decode_inline_payload("not*base64!")

    def test_data_url_without_comma(self) -> None:
        with pytest.raises(MalformedPayload):
            decode_inline_payload("data:application/zip;base64")

    def test_malformed_is_invalid_input(self) -> None:
        assert issubclass(MalformedPayload, InvalidInput)


class TestNormalizeSourcePath:
    def test_cleans_separators(self) -> None:
        assert normalize_source_path("lib\\util.lua") == "lib/util.lua"
        assert normalize_source_path("./lib//util.lua") == "lib/util.lua"

    @pytest.mark.parametrize(
        "path", ["", "/etc/passwd", "C:/game/main.lua", "../main.lua", "a/../../b", "a\x00b", "./"]
    )
    def test_rejects_unsafe_paths(self, path: str) -> None:
        with pytest.raises(InvalidInput):
            normalize_source_path(path)


# ---------------------------------------------------------------------------
# Remote URLs
# ---------------------------------------------------------------------------


class TestValidateRemoteUrl:
    def test_rejects_non_http_scheme(self) -> None:
        with pytest.raises(InvalidInput):
            validate_remote_url("file:///etc/passwd")

    def test_rejects_missing_host(self) -> None:
        with pytest.raises(InvalidInput):
            validate_remote_url("http:///game.love")

    def test_rejects_private_address(self) -> None:
        with patch("socket.getaddrinfo", return_value=_addr_info("10.0.0.8")):
            with pytest.raises(DownloadFailed, match="private address"):
                validate_remote_url("http://intranet.example/game.love")

    def test_rejects_metadata_address(self) -> None:
        with patch("socket.getaddrinfo", return_value=_addr_info("169.254.169.254")):
            with pytest.raises(DownloadFailed):
                validate_remote_url("http://metadata.example/")

    def test_accepts_public_address(self) -> None:
        with patch("socket.getaddrinfo", return_value=_addr_info("93.184.216.34")):
            validate_remote_url("https://games.example/game.love")

    def test_unresolvable_host(self) -> None:
        with patch("socket.getaddrinfo", side_effect=socket.gaierror("nope")):
            with pytest.raises(DownloadFailed):
                validate_remote_url("https://missing.example/")

    def test_private_networks_allowed_skips_dns(self) -> None:
        with patch("socket.getaddrinfo") as mock_dns:
            validate_remote_url("http://localhost/game.love", allow_private_networks=True)
        mock_dns.assert_not_called()


class TestDownloadFile:
    async def test_writes_body(self, tmp_path: Path, settings: Settings) -> None:
        destination = tmp_path / "out.love"
        async with _mock_client(lambda request: httpx.Response(200, content=b"LOVE")) as client:
            result = await download_file("http://a.example/g.love", destination, settings, client)
        assert result == destination
        assert destination.read_bytes() == b"LOVE"

    async def test_follows_relative_redirect(self, tmp_path: Path, settings: Settings) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            if request.url.path == "/start":
                return httpx.Response(302, headers={"Location": "/final.love"})
            return httpx.Response(200, content=b"final")

        destination = tmp_path / "out.love"
        async with _mock_client(handler) as client:
            await download_file("http://a.example/start", destination, settings, client)

        assert seen == ["http://a.example/start", "http://a.example/final.love"]
        assert destination.read_bytes() == b"final"

    async def test_redirect_loop_is_bounded(self, tmp_path: Path, settings: Settings) -> None:
        limited = settings.model_copy(update={"max_redirects": 2})
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            return httpx.Response(301, headers={"Location": "http://a.example/loop"})

        async with _mock_client(handler) as client:
            with pytest.raises(DownloadFailed, match="too many redirects") as exc_info:
                await download_file("http://a.example/loop", tmp_path / "x", limited, client)

        assert len(calls) == 3
        assert exc_info.value.status is None

    async def test_redirect_without_location(self, tmp_path: Path, settings: Settings) -> None:
        async with _mock_client(lambda request: httpx.Response(302)) as client:
            with pytest.raises(DownloadFailed, match="Location"):
                await download_file("http://a.example/", tmp_path / "x", settings, client)

    async def test_http_error_status(self, tmp_path: Path, settings: Settings) -> None:
        async with _mock_client(lambda request: httpx.Response(404)) as client:
            with pytest.raises(DownloadFailed) as exc_info:
                await download_file("http://a.example/missing", tmp_path / "x", settings, client)
        assert exc_info.value.status == 404
        assert exc_info.value.message == "Failed to download: 404"

    async def test_transport_error(self, tmp_path: Path, settings: Settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _mock_client(handler) as client:
            with pytest.raises(DownloadFailed, match="connection refused"):
                await download_file("http://a.example/", tmp_path / "x", settings, client)

    async def test_size_cap(self, tmp_path: Path, settings: Settings) -> None:
        capped = settings.model_copy(update={"max_download_bytes": 10})
        async with _mock_client(lambda request: httpx.Response(200, content=b"x" * 11)) as client:
            with pytest.raises(DownloadFailed, match="exceeds"):
                await download_file("http://a.example/", tmp_path / "x", capped, client)

    async def test_redirect_target_is_checked(self, tmp_path: Path, settings: Settings) -> None:
        guarded = settings.model_copy(update={"allow_private_networks": False})

        def fake_dns(host, *args, **kwargs):
            return _addr_info("93.184.216.34" if host == "public.example" else "127.0.0.1")

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(302, headers={"Location": "http://internal.example/"})

        with patch("socket.getaddrinfo", side_effect=fake_dns):
            async with _mock_client(handler) as client:
                with pytest.raises(DownloadFailed, match="private address"):
                    await download_file("http://public.example/", tmp_path / "x", guarded, client)


# ---------------------------------------------------------------------------
# Loose files and archives
# ---------------------------------------------------------------------------


class TestStageSourceFiles:
    def test_writes_nested_files(self, tmp_path: Path) -> None:
        files = (
            SourceFile("main.lua", _b64(b"print('hi')")),
            SourceFile("lib/util.lua", "data:text/plain;base64," + _b64(b"return 1")),
        )
        root = stage_source_files(files, tmp_path)
        assert (root / "main.lua").read_bytes() == b"print('hi')"
        assert (root / "lib" / "util.lua").read_bytes() == b"return 1"

    def test_empty_list(self, tmp_path: Path) -> None:
        with pytest.raises(InvalidInput, match="non-empty"):
            stage_source_files((), tmp_path)

    def test_duplicate_paths(self, tmp_path: Path) -> None:
        files = (SourceFile("main.lua", _b64(b"a")), SourceFile("./main.lua", _b64(b"b")))
        with pytest.raises(InvalidInput, match="Duplicate"):
            stage_source_files(files, tmp_path)

    def test_file_folder_conflict(self, tmp_path: Path) -> None:
        files = (SourceFile("lib", _b64(b"a")), SourceFile("lib/util.lua", _b64(b"b")))
        with pytest.raises(InvalidInput, match="conflicts"):
            stage_source_files(files, tmp_path)

    def test_bad_content_writes_nothing(self, tmp_path: Path) -> None:
        files = (SourceFile("main.lua", _b64(b"a")), SourceFile("conf.lua", "%%%"))
        with pytest.raises(MalformedPayload):
            stage_source_files(files, tmp_path)
        assert list(tmp_path.iterdir()) == []


class TestValidateArchive:
    def test_returns_member_names(self) -> None:
        data = _zip({"main.lua": b"x", "lib/util.lua": b"y"})
        assert validate_archive(data) == ["main.lua", "lib/util.lua"]

    def test_not_a_zip(self) -> None:
        with pytest.raises(ArchiveCorrupt):
            validate_archive(b"definitely not a zip")

    def test_truncated_zip(self) -> None:
        with pytest.raises(ArchiveCorrupt):
            validate_archive(_zip({"main.lua": b"x" * 100})[:40])

    def test_traversing_member(self) -> None:
        with pytest.raises(ArchiveCorrupt, match="Unsafe"):
            validate_archive(_zip({"../evil.lua": b"x"}))

    def test_empty_archive(self) -> None:
        with pytest.raises(ArchiveCorrupt, match="no files"):
            validate_archive(_zip({}))


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class TestResolveInput:
    async def test_local_directory(self, tmp_path: Path, settings: Settings) -> None:
        (tmp_path / "main.lua").write_text("x")
        with JobScope("job", settings.temp_dir) as scope:
            assert await resolve_input(LocalPath(tmp_path), scope, settings) == tmp_path.resolve()
            assert scope.paths == ()

    async def test_local_path_missing(self, tmp_path: Path, settings: Settings) -> None:
        with JobScope("job", settings.temp_dir) as scope:
            with pytest.raises(InputUnavailable):
                await resolve_input(LocalPath(tmp_path / "nope"), scope, settings)

    async def test_inline_payload_written_to_scope(self, settings: Settings) -> None:
        with JobScope("job", settings.temp_dir) as scope:
            root = await resolve_input(InlinePayload("data:;base64,aGVsbG8="), scope, settings)
            assert root.read_bytes() == b"hello"
            assert root in scope.paths
        assert not root.exists()

    async def test_source_files_staged_in_scope(self, settings: Settings) -> None:
        source = SourceFiles((SourceFile("main.lua", _b64(b"x")),))
        with JobScope("job", settings.temp_dir) as scope:
            root = await resolve_input(source, scope, settings)
            assert root.is_dir()
            assert (root / "main.lua").read_bytes() == b"x"
            assert root in scope.paths
        assert not root.exists()

    async def test_archive_upload(self, settings: Settings) -> None:
        data = _zip({"main.lua": b"x"})
        with JobScope("job", settings.temp_dir) as scope:
            root = await resolve_input(ArchiveUpload(data), scope, settings)
            assert root.read_bytes() == data

    async def test_corrupt_archive_upload(self, settings: Settings) -> None:
        with JobScope("job", settings.temp_dir) as scope:
            with pytest.raises(ArchiveCorrupt):
                await resolve_input(ArchiveUpload(b"junk"), scope, settings)

    async def test_remote_reference(self, settings: Settings) -> None:
        async with _mock_client(lambda request: httpx.Response(200, content=b"LOVE")) as client:
            with JobScope("job", settings.temp_dir) as scope:
                root = await resolve_input(
                    RemoteReference("http://a.example/g.love"), scope, settings, client
                )
                assert root.read_bytes() == b"LOVE"
                assert root in scope.paths
