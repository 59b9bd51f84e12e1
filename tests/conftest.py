import sys
from pathlib import Path

import pytest

# Ensure the repo root is on sys.path so tests can import the local `src/` package.
ROOT = str(Path(__file__).resolve().parents[1])
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


@pytest.fixture(autouse=True)
def _isolate_editor_output_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # Runs must never pick up a real token or registry from the developer shell.
    for name in (
        "GITHUB_TOKEN",
        "VARIANT",
        "EDITOR_OUTPUT_REPO",
        "EDITOR_OUTPUT_EDITORS",
        "EDITOR_OUTPUT_UPSTREAM_PACKAGE",
        "EDITOR_OUTPUT_NPM_REGISTRY_URL",
        "EDITOR_OUTPUT_OVERLAY_DIR",
        "EDITOR_OUTPUT_GIT_AUTHOR_NAME",
        "EDITOR_OUTPUT_GIT_AUTHOR_EMAIL",
        "EDITOR_OUTPUT_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
