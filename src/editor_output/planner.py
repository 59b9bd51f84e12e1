"""Branch matrix for the editor output repository.

Branch names follow `{online_editor}-{project_type}-output{-typescript?}{-tag?}`:

    stackblitz-addon-output-typescript
    stackblitz-app-output-typescript-v4.10.0
    codesandbox-app-output-v4.10.0

Every run produces the tagged branch. When the version being published is the
latest one on npm, the untagged branch (the editor's default) is updated too.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Literal

from src.editor_output.commands import redact
from src.editor_output.config import VALID_VARIANTS

Variant = Literal["javascript", "typescript"]
Command = Literal["new", "addon"]
ProjectType = Literal["app", "addon"]


@dataclass(frozen=True)
class CommandSpec:
    command: Command
    project_type: ProjectType
    name: str


# Planning order: apps first, then addons.
COMMANDS: tuple[CommandSpec, ...] = (
    CommandSpec(command="new", project_type="app", name="my-app"),
    CommandSpec(command="addon", project_type="addon", name="my-addon"),
)


@dataclass(frozen=True)
class PublishJob:
    version: str
    tag: str
    variant: Variant
    command: Command
    name: str
    project_type: ProjectType
    is_typescript: bool
    is_latest: bool
    online_editor: str
    editor_branch: str
    repo_url: str

    @property
    def redacted_repo_url(self) -> str:
        return redact(self.repo_url)


def editor_branch_names(
    online_editor: str,
    project_type: str,
    *,
    tag: str,
    is_typescript: bool,
    is_latest: bool,
) -> list[str]:
    suffix = "-typescript" if is_typescript else ""
    base = f"{online_editor}-{project_type}-output{suffix}"
    if is_latest:
        return [base, f"{base}-{tag}"]
    return [f"{base}-{tag}"]


def _normalize_editors(editors: Iterable[str]) -> list[str]:
    out: list[str] = []
    for raw in editors:
        e = str(raw or "").strip()
        if not e:
            continue
        if e in out:
            raise ValueError(f"online editor listed more than once: {e}")
        out.append(e)
    if not out:
        raise ValueError("at least one online editor must be configured")
    return out


def plan_publish_jobs(
    version: str,
    *,
    variant: str,
    editors: Iterable[str],
    latest_version: Callable[[], str],
    repo_url: str,
) -> list[PublishJob]:
    """Return one job per target branch, in (command, editor, branch) order.

    `latest_version` is called exactly once; if it raises, nothing is planned.
    """
    ver = str(version or "").strip()
    if not ver:
        raise ValueError("a version must be provided")
    if variant not in VALID_VARIANTS:
        raise ValueError(
            f"Invalid variant: {variant!r}. Must be one of {', '.join(VALID_VARIANTS)}"
        )
    editor_list = _normalize_editors(editors)

    tag = f"v{ver}"
    is_latest = ver == str(latest_version()).strip()
    is_typescript = variant == "typescript"

    jobs: list[PublishJob] = []
    for spec in COMMANDS:
        for editor in editor_list:
            for branch in editor_branch_names(
                editor,
                spec.project_type,
                tag=tag,
                is_typescript=is_typescript,
                is_latest=is_latest,
            ):
                jobs.append(
                    PublishJob(
                        version=ver,
                        tag=tag,
                        variant=variant,  # type: ignore[arg-type]
                        command=spec.command,
                        name=spec.name,
                        project_type=spec.project_type,
                        is_typescript=is_typescript,
                        is_latest=is_latest,
                        online_editor=editor,
                        editor_branch=branch,
                        repo_url=repo_url,
                    )
                )
    return jobs
