"""Packaging pipeline for love.js web builds.

Public API:
    run_packaging_job(job, settings) -> Artifact
    package_projects(jobs, settings) -> list[DirectoryTree]
    classify_reference(text) -> SourceInput
"""

from lovepack.packaging.orchestrator import (
    PackagingJobRunner,
    package_projects,
    run_packaging_job,
)
from lovepack.packaging.resolver import classify_reference

__all__ = [
    "PackagingJobRunner",
    "classify_reference",
    "package_projects",
    "run_packaging_job",
]
