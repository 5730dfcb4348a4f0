"""Runtime asset endpoints.

Serves the compat runtime so published and shared pages can reference a
stable /love.js and /love.wasm. The files never change for a deployment,
so they are marked immutable.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from lovepack.core.config import Settings, get_settings
from lovepack.packaging.runtime_assets import RuntimeFlavor, load_runtime_assets

router = APIRouter(tags=["runtime"])

IMMUTABLE_CACHE = "public, max-age=31536000, immutable"


@router.get("/love.js")
async def love_js(app_settings: Settings = Depends(get_settings)) -> Response:
    runtime = load_runtime_assets(app_settings.runtime_assets_dir, RuntimeFlavor.COMPAT)
    return Response(
        content=runtime.love_js,
        media_type="application/javascript",
        headers={"Cache-Control": IMMUTABLE_CACHE},
    )


@router.get("/love.wasm")
async def love_wasm(app_settings: Settings = Depends(get_settings)) -> Response:
    runtime = load_runtime_assets(app_settings.runtime_assets_dir, RuntimeFlavor.COMPAT)
    return Response(
        content=runtime.love_wasm,
        media_type="application/wasm",
        headers={"Cache-Control": IMMUTABLE_CACHE},
    )
