"""Read-only love.js runtime files, one set per build flavor.

The runtime is opaque to this service: it is copied next to rendered
bundles (directory mode) or inlined into the document (single-document
mode). Each flavor is loaded from disk once and shared by all jobs as an
immutable mapping.

Layout of ``runtime_assets_dir``:

    release/love.js  release/love.wasm  release/love.worker.js  release/theme/...
    compat/love.js   compat/love.wasm   compat/theme/...
"""

import enum
import functools
import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from lovepack.packaging.errors import RuntimeAssetsMissing

logger = logging.getLogger(__name__)

THEME_DIR = "theme"


class RuntimeFlavor(str, enum.Enum):
    # Threaded build; needs a separate worker script.
    RELEASE = "release"
    # Single-threaded build with broader browser support and fewer files.
    COMPAT = "compat"


_REQUIRED_FILES: dict[RuntimeFlavor, tuple[str, ...]] = {
    RuntimeFlavor.RELEASE: ("love.js", "love.wasm", "love.worker.js"),
    RuntimeFlavor.COMPAT: ("love.js", "love.wasm"),
}


@dataclass(frozen=True)
class RuntimeAssets:
    flavor: RuntimeFlavor
    files: Mapping[str, bytes]

    @property
    def love_js(self) -> bytes:
        return self.files["love.js"]

    @property
    def love_wasm(self) -> bytes:
        return self.files["love.wasm"]


def flavor_for(compatibility_mode: bool) -> RuntimeFlavor:
    return RuntimeFlavor.COMPAT if compatibility_mode else RuntimeFlavor.RELEASE


def load_runtime_assets(assets_dir: Path, flavor: RuntimeFlavor) -> RuntimeAssets:
    """Return the shared asset set for ``flavor``.

    Raises:
        RuntimeAssetsMissing: If a required file is absent.
    """
    return _load(assets_dir.resolve(), flavor)


@functools.lru_cache(maxsize=8)
def _load(assets_dir: Path, flavor: RuntimeFlavor) -> RuntimeAssets:
    flavor_dir = assets_dir / flavor.value
    files: dict[str, bytes] = {}

    for name in _REQUIRED_FILES[flavor]:
        path = flavor_dir / name
        if not path.is_file():
            raise RuntimeAssetsMissing(f"Runtime file not found: {path}")
        files[name] = path.read_bytes()

    theme_dir = flavor_dir / THEME_DIR
    if theme_dir.is_dir():
        for path in sorted(theme_dir.rglob("*")):
            if path.is_file():
                files[path.relative_to(flavor_dir).as_posix()] = path.read_bytes()

    logger.info("Loaded %s runtime (%d files) from %s", flavor.value, len(files), flavor_dir)
    return RuntimeAssets(flavor=flavor, files=MappingProxyType(files))


def clear_runtime_cache() -> None:
    _load.cache_clear()
