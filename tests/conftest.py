"""Shared test fixtures for the lovepack test suite.

Runtime assets are faked with tiny files under tmp_path: the packager
treats the love.js runtime as opaque bytes, so their content only needs to
be recognisable in assertions. Every test gets its own staging directory
so leftover temp files can be detected.
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from lovepack.core.config import Settings, get_settings
from lovepack.main import create_app
from lovepack.packaging.runtime_assets import clear_runtime_cache


@pytest.fixture
def runtime_dir(tmp_path: Path):
    """A runtime assets tree with both flavors."""
    root = tmp_path / "runtime"
    for flavor in ("release", "compat"):
        flavor_dir = root / flavor
        (flavor_dir / "theme").mkdir(parents=True)
        (flavor_dir / "love.js").write_text(
            f"/* love.js {flavor} */ function Love(Module) {{ return Module; }}"
        )
        (flavor_dir / "love.wasm").write_bytes(b"\x00asm" + flavor.encode())
        (flavor_dir / "theme" / "love.css").write_text("canvas { display: block; }")
    (root / "release" / "love.worker.js").write_text("/* worker */")

    yield root
    clear_runtime_cache()


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    """Staging directory jobs create their temp files in."""
    return tmp_path / "work"


@pytest.fixture
def settings(runtime_dir: Path, work_dir: Path) -> Settings:
    return Settings(
        _env_file=None,
        runtime_assets_dir=runtime_dir,
        temp_dir=work_dir,
        allow_private_networks=True,
        public_base_url="http://games.test",
        sentry_dsn="",
        debug=False,
    )


@pytest.fixture
def leftovers(work_dir: Path):
    """Callable listing whatever jobs left behind in the staging directory."""

    def _list() -> list[Path]:
        if not work_dir.exists():
            return []
        return sorted(work_dir.iterdir())

    return _list


@pytest.fixture
def app(settings: Settings):
    """Create a FastAPI app with the settings dependency overridden.

    The SlowAPI limiter keeps its counters in memory on a module-level
    singleton, so the buckets are reset before each test.
    """
    from lovepack.core.limiter import limiter

    try:
        limiter.reset()
    except Exception:
        pass

    test_app = create_app()
    test_app.dependency_overrides[get_settings] = lambda: settings
    return test_app


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
