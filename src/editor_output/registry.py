from __future__ import annotations

import urllib.parse
from typing import Any

import requests

from src.editor_output.config import npm_registry_url


class RegistryError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class NpmRegistryClient:
    def __init__(self, *, base_url: str, session: requests.Session | None = None) -> None:
        self._base = base_url.rstrip("/")
        self._http = session or requests.Session()

    @classmethod
    def from_env(cls, *, session: requests.Session | None = None) -> NpmRegistryClient:
        return cls(base_url=npm_registry_url(), session=session)

    def _url(self, package: str, dist_tag: str) -> str:
        # Scoped names keep their leading "@" but the slash must be encoded.
        encoded = urllib.parse.quote(package, safe="@")
        return f"{self._base}/{encoded}/{dist_tag}"

    def latest_version(self, package: str, *, dist_tag: str = "latest") -> str:
        """Return the version currently published under `dist_tag`."""
        name = (package or "").strip()
        if not name:
            raise RegistryError("package name is required")
        try:
            res = self._http.request(
                "GET",
                self._url(name, dist_tag),
                headers={"Accept": "application/json"},
                timeout=30,
            )
        except requests.RequestException as exc:
            raise RegistryError(f"npm registry request failed for {name}: {exc}") from exc

        if res.status_code >= 400:
            try:
                payload: Any = res.json()
            except Exception:
                payload = {"raw": res.text}
            raise RegistryError(
                f"npm registry error {res.status_code} for {name}@{dist_tag}",
                status_code=res.status_code,
                payload=payload,
            )
        try:
            data = res.json()
        except Exception as exc:
            raise RegistryError(
                f"npm registry returned non-JSON payload for {name}",
                payload={"raw": res.text},
            ) from exc

        version = data.get("version") if isinstance(data, dict) else None
        if not isinstance(version, str) or not version.strip():
            raise RegistryError(f"npm version missing for {name}", payload=data)
        return version.strip()
