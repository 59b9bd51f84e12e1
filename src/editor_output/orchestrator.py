from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from src.editor_output.commands import CommandRunner, SubprocessRunner, TempDirs
from src.editor_output.config import Settings
from src.editor_output.planner import PublishJob, plan_publish_jobs
from src.editor_output.registry import NpmRegistryClient
from src.editor_output.scaffold_cache import ScaffoldCache
from src.editor_output.sync import BranchSynchronizer, SyncResult

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    version: str
    variant: str
    jobs: list[PublishJob] = field(default_factory=list)
    published: list[SyncResult] = field(default_factory=list)
    error: BaseException | None = None
    failed_branch: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def published_branches(self) -> list[str]:
        return [r.branch for r in self.published]


def _default_latest_version(settings: Settings) -> Callable[[], str]:
    client = NpmRegistryClient.from_env()
    return lambda: client.latest_version(settings.package)


def plan(
    version: str,
    *,
    variant: str,
    settings: Settings,
    latest_version: Callable[[], str] | None = None,
) -> list[PublishJob]:
    resolve = latest_version or _default_latest_version(settings)
    return plan_publish_jobs(
        version,
        variant=variant,
        editors=settings.editors,
        latest_version=resolve,
        repo_url=settings.repo_url,
    )


def run(
    version: str,
    *,
    variant: str,
    settings: Settings,
    latest_version: Callable[[], str] | None = None,
    runner: CommandRunner | None = None,
    cache: ScaffoldCache | None = None,
    synchronizer: BranchSynchronizer | None = None,
) -> RunSummary:
    """Plan the branch matrix and publish every branch in order.

    Stops at the first failure. Branches published before the failure stay
    published; the error is returned in the summary rather than raised.
    """
    summary = RunSummary(version=version, variant=variant)
    r = runner or SubprocessRunner()
    temp_dirs = TempDirs()

    try:
        summary.jobs = plan(version, variant=variant, settings=settings, latest_version=latest_version)
    except Exception as exc:
        logger.error("planning failed: %s", exc)
        summary.error = exc
        return summary

    scaffolds = cache or ScaffoldCache(r, package=settings.package, temp_dirs=temp_dirs)
    publisher = synchronizer or BranchSynchronizer(
        r,
        overlay_root=settings.overlay_dir,
        author_name=settings.author_name,
        author_email=settings.author_email,
        temp_dirs=temp_dirs,
    )

    logger.info("Updating online editor repo :: %d branches", len(summary.jobs))
    for idx, job in enumerate(summary.jobs, start=1):
        logger.info("[%d/%d] %s", idx, len(summary.jobs), job.editor_branch)
        try:
            scaffold_path = scaffolds.get(job)
            result = publisher.sync(job, scaffold_path)
        except Exception as exc:
            logger.error("publishing %s failed: %s", job.editor_branch, exc)
            summary.error = exc
            summary.failed_branch = job.editor_branch
            return summary
        summary.published.append(result)
        logger.info(
            "published %s (%s push, %s)",
            result.branch,
            result.push_mode,
            "created" if result.created else "existing",
        )

    return summary
