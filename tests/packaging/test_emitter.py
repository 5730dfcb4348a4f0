"""Tests for artifact emission."""

import io
import zipfile
from pathlib import Path

import pytest

from lovepack.packaging.bundler import build_bundle
from lovepack.packaging.collector import collect_directories, collect_files
from lovepack.packaging.emitter import (
    emit_directory_tree,
    emit_single_document,
    emit_source_archive,
)
from lovepack.packaging.renderer import RenderedOutputs
from lovepack.packaging.runtime_assets import RuntimeFlavor, load_runtime_assets


@pytest.fixture
def source_root(tmp_path: Path) -> Path:
    root = tmp_path / "src"
    (root / "lib").mkdir(parents=True)
    (root / "empty").mkdir()
    (root / "main.lua").write_bytes(b"require('lib.util')")
    (root / "lib" / "util.lua").write_bytes(b"return {}")
    return root


class TestEmitDirectoryTree:
    def test_writes_page_payload_and_runtime(
        self, source_root: Path, runtime_dir: Path, tmp_path: Path
    ) -> None:
        bundle = build_bundle(
            collect_files(source_root), collect_directories(source_root), single_file=False
        )
        runtime = load_runtime_assets(runtime_dir, RuntimeFlavor.RELEASE)
        rendered = RenderedOutputs(game_script="// boot", index_html="<html></html>")
        out = tmp_path / "out"

        tree = emit_directory_tree(rendered, bundle, runtime, out)

        assert tree.root == out
        assert set(tree.files) == {
            "index.html", "game.js", "game.data",
            "love.js", "love.wasm", "love.worker.js", "theme/love.css",
        }
        assert (out / "game.data").read_bytes() == bundle.payload
        assert (out / "theme" / "love.css").is_file()
        assert tree.files["game.js"] == b"// boot"

    def test_requires_index_html(self, runtime_dir: Path, tmp_path: Path) -> None:
        runtime = load_runtime_assets(runtime_dir, RuntimeFlavor.COMPAT)
        bundle = build_bundle([], [], single_file=False)
        with pytest.raises(ValueError):
            emit_directory_tree(RenderedOutputs(game_script=""), bundle, runtime, tmp_path)


class TestEmitSingleDocument:
    def test_wraps_document(self) -> None:
        document = emit_single_document(RenderedOutputs(game_script="", document=b"<html/>"))
        assert document.content == b"<html/>"
        assert document.media_type == "text/html"

    def test_requires_document(self) -> None:
        with pytest.raises(ValueError):
            emit_single_document(RenderedOutputs(game_script=""))


class TestEmitSourceArchive:
    def test_zips_tree_in_collected_order(self, source_root: Path) -> None:
        archive = emit_source_archive(
            collect_files(source_root), collect_directories(source_root), "My Game"
        )

        assert archive.filename == "My Game.love"
        with zipfile.ZipFile(io.BytesIO(archive.content)) as zf:
            assert zf.namelist() == ["empty/", "lib/", "lib/util.lua", "main.lua"]
            assert zf.read("main.lua") == b"require('lib.util')"
            assert zf.getinfo("main.lua").compress_type == zipfile.ZIP_DEFLATED
            assert zf.testzip() is None

    def test_identical_trees_give_identical_archives(self, source_root: Path) -> None:
        files, directories = collect_files(source_root), collect_directories(source_root)
        first = emit_source_archive(files, directories, "g")
        second = emit_source_archive(files, directories, "g")
        assert first.content == second.content
