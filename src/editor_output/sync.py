from __future__ import annotations

import logging
import os
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from src.editor_output.commands import (
    CommandError,
    CommandRunner,
    SubprocessRunner,
    TempDirs,
)
from src.editor_output.planner import PublishJob

logger = logging.getLogger(__name__)

_CHECKOUT_DIR = "editor-output"

# git clone --branch=<missing>: "fatal: Remote branch <missing> not found in upstream origin"
_REMOTE_BRANCH_MISSING_RE = re.compile(r"remote branch \S+ not found", re.IGNORECASE)

PushMode = Literal["force", "upstream"]


def git_env() -> dict[str, str]:
    env = os.environ.copy()
    # Untranslated messages; branch-missing detection matches git's C-locale text.
    env["LC_ALL"] = "C"
    env["LANGUAGE"] = ""
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


class SyncError(RuntimeError):
    pass


@dataclass(frozen=True)
class SyncResult:
    branch: str
    created: bool
    commit_sha: str | None
    push_mode: PushMode


def is_remote_branch_missing(err: CommandError) -> bool:
    return bool(_REMOTE_BRANCH_MISSING_RE.search(err.output))


def _copy_tree(src: Path, dst: Path) -> None:
    shutil.copytree(
        src,
        dst,
        symlinks=True,
        dirs_exist_ok=True,
        ignore=shutil.ignore_patterns(".git"),
    )


class BranchSynchronizer:
    """Replace a branch's tracked contents with scaffold + overlay and force-publish.

    History on the target branches is not preserved in any meaningful way: a
    remote branch is overwritten with `push --force` regardless of what other
    commits it may have gained since the last run.
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        overlay_root: Path,
        author_name: str = "github-actions",
        author_email: str = "github-actions@github.com",
        git_executable: str | None = None,
        temp_dirs: TempDirs | None = None,
    ) -> None:
        self._runner = runner or SubprocessRunner()
        self._overlay_root = Path(overlay_root)
        self._author_name = author_name
        self._author_email = author_email
        self._git = git_executable or shutil.which("git") or "git"
        self._temp_dirs = temp_dirs or TempDirs()

    def _run_git(self, *args: str, cwd: Path):
        return self._runner.run([self._git, *args], cwd=str(cwd), env=git_env(), check=True)

    def overlay_path(self, online_editor: str) -> Path:
        return self._overlay_root / online_editor

    def checkout(self, job: PublishJob, workdir: Path) -> tuple[Path, bool]:
        """Clone `job.editor_branch`, creating it locally when absent remotely.

        Returns (repo_path, created).
        """
        repo_path = workdir / _CHECKOUT_DIR
        logger.info("cloning %s in to %s", job.redacted_repo_url, workdir)

        try:
            self._run_git(
                "clone",
                job.repo_url,
                f"--branch={job.editor_branch}",
                _CHECKOUT_DIR,
                cwd=workdir,
            )
            return repo_path, False
        except CommandError as err:
            if not is_remote_branch_missing(err):
                raise

        logger.info("Branch %s does not exist -- creating fresh (local) branch.", job.editor_branch)
        if repo_path.exists():
            shutil.rmtree(repo_path)
        self._run_git("clone", job.repo_url, _CHECKOUT_DIR, cwd=workdir)
        self._run_git("switch", "-C", job.editor_branch, cwd=repo_path)
        return repo_path, True

    def push(self, job: PublishJob, repo_path: Path) -> PushMode:
        logger.info("pushing commit to %s", job.editor_branch)
        try:
            self._run_git("push", "--force", "origin", job.editor_branch, cwd=repo_path)
            return "force"
        except CommandError as err:
            logger.warning(
                "force push of %s failed, retrying with upstream tracking: %s",
                job.editor_branch,
                err,
            )
        self._run_git("push", "-u", "origin", job.editor_branch, cwd=repo_path)
        return "upstream"

    def sync(self, job: PublishJob, scaffold_path: Path) -> SyncResult:
        overlay = self.overlay_path(job.online_editor)
        if not overlay.is_dir():
            raise SyncError(f"no overlay files for online editor {job.online_editor!r} at {overlay}")
        scaffold = Path(scaffold_path)
        if not scaffold.is_dir():
            raise SyncError(f"scaffold directory does not exist: {scaffold}")

        workdir = Path(self._temp_dirs.make("clone-"))
        repo_path, created = self.checkout(job, workdir)

        logger.info("clearing repo content in %s", repo_path)
        self._run_git("rm", "-r", "-f", "-q", "--ignore-unmatch", ".", cwd=repo_path)

        logger.info("copying generated contents to output repo")
        _copy_tree(scaffold, repo_path)

        logger.info("copying online editor files")
        _copy_tree(overlay, repo_path)

        logger.info("committing updates")
        self._run_git("config", "user.name", self._author_name, cwd=repo_path)
        self._run_git("config", "user.email", self._author_email, cwd=repo_path)
        self._run_git("add", "--all", cwd=repo_path)
        self._run_git("commit", "--allow-empty", "-m", job.tag, cwd=repo_path)
        sha = self._run_git("rev-parse", "HEAD", cwd=repo_path).stdout.strip() or None

        push_mode = self.push(job, repo_path)
        return SyncResult(
            branch=job.editor_branch,
            created=created,
            commit_sha=sha,
            push_mode=push_mode,
        )
