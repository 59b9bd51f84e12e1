from __future__ import annotations

import logging
import os
import shutil
from contextlib import suppress
from pathlib import Path

from src.editor_output.commands import CommandRunner, SubprocessRunner, TempDirs
from src.editor_output.planner import PublishJob

logger = logging.getLogger(__name__)

# Environment-specific generator artifacts; never committed.
_GENERATED_ARTIFACTS = (
    "node_modules",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
)


class ScaffoldError(RuntimeError):
    pass


def scaffold_cache_key(job: PublishJob) -> tuple[str, str]:
    return (job.project_type, job.variant)


def generator_args(job: PublishJob, *, package: str) -> list[str]:
    args = [
        "npx",
        f"{package}@{job.tag}",
        job.command,
        job.name,
        "--skip-npm",
        "--skip-git",
    ]
    if job.is_typescript:
        args.append("--typescript")
    return args


def generator_env() -> dict[str, str]:
    env = os.environ.copy()
    # --typescript triggers npm peer resolution against a version that may not
    # be published yet; only the generated files matter here.
    env["npm_config_legacy_peer_deps"] = "true"
    return env


def _strip_artifacts(root: Path) -> None:
    for name in _GENERATED_ARTIFACTS:
        target = root / name
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target, ignore_errors=True)
        else:
            with suppress(FileNotFoundError):
                target.unlink()


class ScaffoldCache:
    """Generate each (project type, variant) scaffold once per process."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        package: str = "ember-cli",
        temp_dirs: TempDirs | None = None,
    ) -> None:
        self._runner = runner or SubprocessRunner()
        self._package = package
        self._temp_dirs = temp_dirs or TempDirs()
        self._paths: dict[tuple[str, str], Path] = {}

    @property
    def generated_keys(self) -> list[tuple[str, str]]:
        return list(self._paths)

    def get(self, job: PublishJob) -> Path:
        key = scaffold_cache_key(job)
        cached = self._paths.get(key)
        if cached is not None:
            return cached

        tmp = Path(self._temp_dirs.make("scaffold-"))
        args = generator_args(job, package=self._package)
        logger.info("Running %s (for %s)", " ".join(args), job.variant)
        self._runner.run(args, cwd=str(tmp), env=generator_env(), check=True)

        project_root = tmp / job.name
        _strip_artifacts(tmp)
        if not project_root.is_dir():
            raise ScaffoldError(
                f"{self._package} {job.command} did not produce {job.name!r} in {tmp}"
            )
        _strip_artifacts(project_root)

        self._paths[key] = project_root
        return project_root
