from __future__ import annotations

import atexit
import re
import shutil
import subprocess
import tempfile
from dataclasses import dataclass, field
from typing import Protocol

_URL_CREDENTIALS_RE = re.compile(r"(://)[^/@\s]+@")


def redact(text: str) -> str:
    """Mask `user:token@` credentials embedded in URLs."""
    return _URL_CREDENTIALS_RE.sub(r"\1***@", text or "")


class CommandError(RuntimeError):
    def __init__(
        self,
        args: list[str],
        *,
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        shown = redact(" ".join(args))
        detail = redact((stderr or stdout or "").strip())
        super().__init__(f"`{shown}` exited with status {returncode}: {detail}")
        self.args_list = list(args)
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""

    @property
    def output(self) -> str:
        return "\n".join(s for s in (self.stdout, self.stderr) if s)


class CommandRunner(Protocol):
    def run(
        self,
        args: list[str],
        *,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]: ...


@dataclass
class SubprocessRunner:
    def run(
        self,
        args: list[str],
        *,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        cp = subprocess.run(
            args,
            cwd=cwd,
            env=env,
            text=True,
            capture_output=True,
            check=False,
        )
        if check and cp.returncode != 0:
            raise CommandError(
                list(args), returncode=cp.returncode, stdout=cp.stdout, stderr=cp.stderr
            )
        return cp


@dataclass
class TempDirs:
    """Temporary directories that live until `cleanup()` or process exit."""

    prefix: str = "editor-output-"
    register_atexit: bool = True
    paths: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.register_atexit:
            atexit.register(self.cleanup)

    def make(self, label: str = "") -> str:
        path = tempfile.mkdtemp(prefix=f"{self.prefix}{label}")
        self.paths.append(path)
        return path

    def cleanup(self) -> None:
        while self.paths:
            shutil.rmtree(self.paths.pop(), ignore_errors=True)
