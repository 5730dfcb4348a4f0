"""Template rendering: a pure function of bundle data to output text.

Nothing here touches the filesystem: the bundle, the job configuration and
the already-loaded runtime assets go in, rendered strings/bytes come out.
"""

import base64
import json
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from lovepack.packaging.runtime_assets import RuntimeAssets, RuntimeFlavor
from lovepack.packaging.templates import game_script, index_html, single_document
from lovepack.packaging.types import Bundle, PackagingJob

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedOutputs:
    """Rendered text for one job.

    Directory mode fills ``game_script`` and ``index_html``; single-document
    mode fills ``game_script`` (inline loader) and ``document``.
    """

    game_script: str
    index_html: Optional[str] = None
    document: Optional[bytes] = None


def build_metadata(bundle: Bundle, package_uuid: str) -> dict:
    """Metadata block consumed by the bootstrap script.

    Runtime filenames are absolute inside the virtual filesystem, so the
    relative manifest paths gain a leading slash here.
    """
    return {
        "package_uuid": package_uuid,
        "remote_package_size": bundle.size,
        "files": [
            {
                "filename": f"/{entry.relative_path}",
                "crunched": 0,
                "start": entry.start_byte,
                "end": entry.end_byte,
                "audio": entry.is_streamable_media,
            }
            for entry in bundle.manifest
        ],
    }


def render_game_script(
    bundle: Bundle,
    *,
    package_uuid: str,
    inline_payload: bool,
) -> str:
    metadata = build_metadata(bundle, package_uuid)
    return game_script(
        [op.to_js() for op in bundle.directory_ops],
        json.dumps(metadata),
        inline_payload=inline_payload,
    )


def render_index_html(
    bundle: Bundle,
    *,
    title: str,
    memory: int,
    flavor: RuntimeFlavor,
) -> str:
    return index_html(
        title,
        memory,
        json.dumps(list(bundle.runtime_arguments)),
        threaded=flavor is RuntimeFlavor.RELEASE,
    )


def render_single_document(
    bundle: Bundle,
    *,
    title: str,
    memory: int,
    runtime: RuntimeAssets,
    package_uuid: str,
) -> bytes:
    script = render_game_script(bundle, package_uuid=package_uuid, inline_payload=True)
    document = single_document(
        title=title,
        memory=memory,
        arguments_json=json.dumps(list(bundle.runtime_arguments)),
        game_script=script,
        runtime_script=runtime.love_js.decode("utf-8"),
        payload_b64=base64.b64encode(bundle.payload).decode("ascii"),
        wasm_b64=base64.b64encode(runtime.love_wasm).decode("ascii"),
    )
    return document.encode("utf-8")


def render(
    bundle: Bundle,
    job: PackagingJob,
    runtime: RuntimeAssets,
    package_uuid: Optional[str] = None,
) -> RenderedOutputs:
    """Render every output the job's artifact mode needs."""
    package_uuid = package_uuid or str(uuid.uuid4())

    if job.single_file_mode:
        document = render_single_document(
            bundle,
            title=job.title,
            memory=job.memory_limit_bytes,
            runtime=runtime,
            package_uuid=package_uuid,
        )
        logger.info("Rendered single document (%d bytes)", len(document))
        return RenderedOutputs(
            game_script=render_game_script(
                bundle, package_uuid=package_uuid, inline_payload=True
            ),
            document=document,
        )

    return RenderedOutputs(
        game_script=render_game_script(
            bundle, package_uuid=package_uuid, inline_payload=False
        ),
        index_html=render_index_html(
            bundle,
            title=job.title,
            memory=job.memory_limit_bytes,
            flavor=runtime.flavor,
        ),
    )
