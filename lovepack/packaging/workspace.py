"""Job-owned temporary resources.

Every temp file or staging directory a job creates is registered with its
JobScope at creation time. Closing the scope removes all of them; it is
called by the orchestrator on every terminal path, including failures and
cancellation. Removal errors are logged and never raised so they cannot mask
the job's own result.
"""

import asyncio
import logging
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def offload(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run blocking ``func`` in a worker thread.

    If the awaiting task is cancelled, the thread is waited for before the
    cancellation propagates, so scope cleanup never races a worker that is
    still writing into a staging directory.
    """
    task = asyncio.ensure_future(asyncio.to_thread(func, *args, **kwargs))
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        try:
            await task
        except Exception as exc:
            logger.debug("Worker finished with %r after cancellation", exc)
        raise


class JobScope:
    """Registry of temporary paths owned by one packaging job."""

    def __init__(self, job_id: str, base_dir: Optional[Path] = None) -> None:
        self.job_id = job_id
        self.base_dir = base_dir
        self._paths: list[Path] = []
        self._input_dir: Optional[Path] = None
        self._output_dir: Optional[Path] = None
        self.closed = False

    @property
    def paths(self) -> tuple[Path, ...]:
        return tuple(self._paths)

    def register(self, path: Path) -> Path:
        """Track ``path`` for removal when the scope closes."""
        if self.closed:
            raise RuntimeError(f"Job scope {self.job_id} is already closed")
        self._paths.append(path)
        return path

    def make_dir(self, prefix: str) -> Path:
        if self.base_dir is not None:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        path = Path(tempfile.mkdtemp(prefix=f"{prefix}-", dir=self.base_dir))
        return self.register(path)

    def temp_file(self, suffix: str = ".love") -> Path:
        """Reserve a uniquely-named temp file path (not yet created)."""
        directory = self.base_dir or Path(tempfile.gettempdir())
        directory.mkdir(parents=True, exist_ok=True)
        return self.register(directory / f"love-{uuid.uuid4()}{suffix}")

    def input_dir(self) -> Path:
        """Input staging directory, created on first use."""
        if self._input_dir is None:
            self._input_dir = self.make_dir("loveweb-src")
        return self._input_dir

    def output_dir(self) -> Path:
        """Output staging directory, created on first use."""
        if self._output_dir is None:
            self._output_dir = self.make_dir("loveweb")
        return self._output_dir

    def close(self) -> None:
        """Remove every registered path. Idempotent."""
        if self.closed:
            return
        self.closed = True
        for path in reversed(self._paths):
            try:
                if path.is_dir() and not path.is_symlink():
                    shutil.rmtree(path)
                elif path.exists() or path.is_symlink():
                    path.unlink()
            except OSError as exc:
                logger.warning(
                    "Failed to remove temp path %s for job %s: %s",
                    path, self.job_id, exc,
                )
        logger.debug("Released %d temp paths for job %s", len(self._paths), self.job_id)

    def __enter__(self) -> "JobScope":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
