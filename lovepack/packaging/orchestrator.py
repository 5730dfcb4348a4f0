"""Packaging job orchestration with state machine enforcement.

State machine:
    created -> resolving_input -> collecting_files -> building_bundle
            -> rendering -> emitting_artifact -> done
    collecting_files -> emitting_artifact          (source archive mode)
    any non-terminal state -> failed

Every job owns a JobScope. Whatever happens (success, a packaging error,
an unexpected exception, or cancellation of the awaiting task) the scope is
closed when the job reaches a terminal state, removing all of the job's
temporary files and staging directories.

Blocking filesystem work runs in worker threads so that many jobs can
overlap their I/O waits on one event loop.
"""

import asyncio
import logging
from typing import Optional

import httpx

from lovepack.core.config import Settings
from lovepack.core.logging import bind_job_id, reset_job_id
from lovepack.packaging.bundler import build_bundle, check_memory_limit
from lovepack.packaging.collector import collect_directories, collect_files
from lovepack.packaging.emitter import (
    emit_directory_tree,
    emit_single_document,
    emit_source_archive,
)
from lovepack.packaging.errors import JobCancelled
from lovepack.packaging.renderer import render
from lovepack.packaging.resolver import resolve_input
from lovepack.packaging.runtime_assets import (
    RuntimeFlavor,
    flavor_for,
    load_runtime_assets,
)
from lovepack.packaging.types import (
    Artifact,
    ArtifactMode,
    DirectoryTree,
    JobState,
    PackagingJob,
)
from lovepack.packaging.workspace import JobScope, offload

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

VALID_TRANSITIONS: dict[JobState, set[JobState]] = {
    JobState.CREATED: {JobState.RESOLVING_INPUT, JobState.FAILED},
    JobState.RESOLVING_INPUT: {JobState.COLLECTING_FILES, JobState.FAILED},
    JobState.COLLECTING_FILES: {
        JobState.BUILDING_BUNDLE,
        JobState.EMITTING_ARTIFACT,
        JobState.FAILED,
    },
    JobState.BUILDING_BUNDLE: {JobState.RENDERING, JobState.FAILED},
    JobState.RENDERING: {JobState.EMITTING_ARTIFACT, JobState.FAILED},
    JobState.EMITTING_ARTIFACT: {JobState.DONE, JobState.FAILED},
}

TERMINAL_STATES = frozenset({JobState.DONE, JobState.FAILED})


def validate_transition(current: JobState, target: JobState) -> None:
    """Enforce the job state machine.

    Raises ValueError if the transition is not allowed.
    """
    allowed = VALID_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise ValueError(
            f"Invalid job state transition: {current.value} -> {target.value}. "
            f"Allowed transitions from '{current.value}': "
            f"{sorted(s.value for s in allowed) or 'none (terminal state)'}"
        )


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


class PackagingJobRunner:
    """Drives one PackagingJob through the pipeline.

    A runner is single-use: call `run()` once. ``state``, ``history`` and
    ``error`` stay readable afterwards.
    """

    def __init__(
        self,
        job: PackagingJob,
        settings: Settings,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.job = job
        self.settings = settings
        self.client = client
        self.state = JobState.CREATED
        self.history: list[JobState] = [JobState.CREATED]
        self.error: Optional[BaseException] = None
        self.scope = JobScope(job.job_id, base_dir=settings.temp_dir)

    def _transition(self, target: JobState) -> None:
        validate_transition(self.state, target)
        logger.debug("Job %s: %s -> %s", self.job.job_id, self.state.value, target.value)
        self.state = target
        self.history.append(target)

    def _fail(self, error: BaseException) -> None:
        self.error = error
        if self.state not in TERMINAL_STATES:
            self._transition(JobState.FAILED)

    async def run(self) -> Artifact:
        """Execute the job and return its artifact.

        Raises whatever error moved the job to ``failed``; a cancelled job
        re-raises ``asyncio.CancelledError`` after recording JobCancelled.
        """
        if self.state is not JobState.CREATED:
            raise RuntimeError(f"Job {self.job.job_id} has already run")

        token = bind_job_id(self.job.job_id)
        try:
            artifact = await self._execute()
            self._transition(JobState.DONE)
            logger.info("Job %s done (%s)", self.job.job_id, self.job.mode.value)
            return artifact
        except asyncio.CancelledError:
            interrupted = self.state
            self._fail(JobCancelled(f"Job {self.job.job_id} was cancelled"))
            logger.warning("Job %s cancelled in state %s", self.job.job_id, interrupted.value)
            raise
        except Exception as exc:
            self._fail(exc)
            logger.warning("Job %s failed: %s", self.job.job_id, exc)
            raise
        finally:
            self.scope.close()
            reset_job_id(token)

    async def _execute(self) -> Artifact:
        job = self.job

        self._transition(JobState.RESOLVING_INPUT)
        root = await resolve_input(job.input, self.scope, self.settings, self.client)

        self._transition(JobState.COLLECTING_FILES)
        files = await offload(collect_files, root)
        directories = await offload(collect_directories, root)

        if job.mode is ArtifactMode.SOURCE_ARCHIVE:
            self._transition(JobState.EMITTING_ARTIFACT)
            return await offload(
                emit_source_archive, files, directories, job.title
            )

        self._transition(JobState.BUILDING_BUNDLE)
        bundle = await offload(
            build_bundle, files, directories, single_file=not root.is_dir()
        )
        check_memory_limit(bundle, job.memory_limit_bytes)

        self._transition(JobState.RENDERING)
        # The threaded release build needs a separate worker file, so a
        # single document always uses the compat runtime.
        if job.single_file_mode:
            flavor = RuntimeFlavor.COMPAT
        else:
            flavor = flavor_for(job.compatibility_mode)
        runtime = await offload(
            load_runtime_assets, self.settings.runtime_assets_dir, flavor
        )
        rendered = render(bundle, job, runtime)

        self._transition(JobState.EMITTING_ARTIFACT)
        if job.single_file_mode:
            return emit_single_document(rendered)
        destination = job.output_dir or self.scope.output_dir()
        return await offload(
            emit_directory_tree, rendered, bundle, runtime, destination
        )


async def run_packaging_job(
    job: PackagingJob,
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
) -> Artifact:
    """Convenience wrapper: run ``job`` and return its artifact."""
    return await PackagingJobRunner(job, settings, client).run()


async def package_projects(
    jobs: list[PackagingJob],
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
) -> list[DirectoryTree]:
    """Package several projects concurrently into their own output folders.

    Every job must be a directory-tree job with an ``output_dir``. The first
    failure propagates once all jobs have settled, so no job is abandoned
    half-way with its temp files still on disk.
    """
    for job in jobs:
        if job.mode is not ArtifactMode.DIRECTORY_TREE or job.output_dir is None:
            raise ValueError(
                f"Job {job.job_id} must be a directory-tree job with an output_dir"
            )

    results = await asyncio.gather(
        *(run_packaging_job(job, settings, client) for job in jobs),
        return_exceptions=True,
    )
    trees: list[DirectoryTree] = []
    for result in results:
        if isinstance(result, BaseException):
            raise result
        trees.append(result)
    return trees
