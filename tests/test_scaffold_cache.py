from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from src.editor_output.commands import CommandError, TempDirs
from src.editor_output.planner import plan_publish_jobs
from src.editor_output.scaffold_cache import (
    ScaffoldCache,
    ScaffoldError,
    generator_args,
    scaffold_cache_key,
)


class _FakeGenerator:
    """Emulates `npx ember-cli@tag <command> <name> ...` by writing a small tree."""

    def __init__(self, *, fail_for: set[str] | None = None, produce: bool = True) -> None:
        self.calls: list[tuple[list[str], str | None, dict[str, str] | None]] = []
        self.fail_for = fail_for or set()
        self.produce = produce

    def run(self, args, *, cwd=None, env=None, check=True):
        self.calls.append((list(args), cwd, env))
        command, name = args[2], args[3]
        if command in self.fail_for:
            raise CommandError(list(args), returncode=1, stderr="npm ERR! generation failed")
        if self.produce:
            root = Path(cwd) / name
            (root / "app").mkdir(parents=True)
            (root / "package.json").write_text('{"name": "%s"}\n' % name, encoding="utf-8")
            (root / "app" / "app.js").write_text("// app\n", encoding="utf-8")
            (root / "node_modules" / "x").mkdir(parents=True)
            (root / "package-lock.json").write_text("{}", encoding="utf-8")
            (root / "yarn.lock").write_text("", encoding="utf-8")
            (Path(cwd) / "package-lock.json").write_text("{}", encoding="utf-8")
            (Path(cwd) / "node_modules").mkdir()
        return subprocess.CompletedProcess(args, 0, stdout="", stderr="")


def _jobs(variant: str = "typescript", editors=("stackblitz", "codesandbox")):
    return plan_publish_jobs(
        "4.10.0",
        variant=variant,
        editors=list(editors),
        latest_version=lambda: "4.10.0",
        repo_url="https://example.invalid/repo.git",
    )


@pytest.fixture
def temp_dirs():
    td = TempDirs(register_atexit=False)
    yield td
    td.cleanup()


def test_generates_once_per_project_type_and_variant(temp_dirs):
    gen = _FakeGenerator()
    cache = ScaffoldCache(gen, temp_dirs=temp_dirs)

    jobs = _jobs()
    assert len(jobs) == 8
    paths = {job.editor_branch: cache.get(job) for job in jobs}

    assert len(gen.calls) == 2
    assert cache.generated_keys == [("app", "typescript"), ("addon", "typescript")]
    app_paths = {p for b, p in paths.items() if "-app-" in b}
    addon_paths = {p for b, p in paths.items() if "-addon-" in b}
    assert len(app_paths) == 1 and len(addon_paths) == 1
    assert app_paths != addon_paths


def test_repeated_gets_return_same_path_without_regenerating(temp_dirs):
    gen = _FakeGenerator()
    cache = ScaffoldCache(gen, temp_dirs=temp_dirs)
    job = _jobs()[0]
    first = cache.get(job)
    for _ in range(5):
        assert cache.get(job) == first
    assert len(gen.calls) == 1


def test_different_variant_is_a_different_key(temp_dirs):
    gen = _FakeGenerator()
    cache = ScaffoldCache(gen, temp_dirs=temp_dirs)
    ts = _jobs("typescript")[0]
    js = _jobs("javascript")[0]
    assert scaffold_cache_key(ts) != scaffold_cache_key(js)
    assert cache.get(ts) != cache.get(js)
    assert len(gen.calls) == 2


def test_generator_invocation_and_env(temp_dirs):
    gen = _FakeGenerator()
    cache = ScaffoldCache(gen, package="ember-cli", temp_dirs=temp_dirs)
    job = _jobs()[0]
    path = cache.get(job)

    args, cwd, env = gen.calls[0]
    assert args == [
        "npx",
        "ember-cli@v4.10.0",
        "new",
        "my-app",
        "--skip-npm",
        "--skip-git",
        "--typescript",
    ]
    assert env is not None and env["npm_config_legacy_peer_deps"] == "true"
    assert path == Path(cwd) / "my-app"
    assert path.is_absolute()


def test_javascript_variant_omits_typescript_flag():
    job = _jobs("javascript")[-1]
    assert generator_args(job, package="ember-cli") == [
        "npx",
        "ember-cli@v4.10.0",
        "addon",
        "my-addon",
        "--skip-npm",
        "--skip-git",
    ]


def test_lockfiles_and_dependencies_are_stripped(temp_dirs):
    cache = ScaffoldCache(_FakeGenerator(), temp_dirs=temp_dirs)
    path = cache.get(_jobs()[0])

    assert (path / "package.json").is_file()
    assert (path / "app" / "app.js").is_file()
    assert not (path / "node_modules").exists()
    assert not (path / "package-lock.json").exists()
    assert not (path / "yarn.lock").exists()
    assert not (path.parent / "package-lock.json").exists()
    assert not (path.parent / "node_modules").exists()


def test_generation_failure_propagates_and_is_not_cached(temp_dirs):
    gen = _FakeGenerator(fail_for={"new"})
    cache = ScaffoldCache(gen, temp_dirs=temp_dirs)
    job = _jobs()[0]
    with pytest.raises(CommandError) as e:
        cache.get(job)
    assert e.value.returncode == 1
    assert cache.generated_keys == []


def test_missing_project_directory_raises(temp_dirs):
    cache = ScaffoldCache(_FakeGenerator(produce=False), temp_dirs=temp_dirs)
    with pytest.raises(ScaffoldError):
        cache.get(_jobs()[0])
