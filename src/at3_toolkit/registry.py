"""Latest-version lookups against the npm registry."""

from __future__ import annotations

import ssl
from urllib.parse import quote

import httpx
import truststore

from .config import DEFAULT_REGISTRY_URL
from .errors import RegistryError
from .logger import Logger
from .models import DependencyInfo

ssl_context = truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)


def _major(version: str) -> int | None:
    digits = version.lstrip("^~>=<v ").split(".", 1)[0]
    return int(digits) if digits.isdigit() else None


class NpmRegistry:
    def __init__(self, base_url: str = DEFAULT_REGISTRY_URL, client: httpx.Client | None = None, logger: Logger | None = None):
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(verify=ssl_context)
        self.logger = logger or Logger()

    def latest_version(self, name: str) -> str:
        # scoped names keep their leading @ but the slash must be encoded
        url = f"{self.base_url}/{quote(name, safe='@')}/latest"
        try:
            response = self.client.get(url, timeout=30, follow_redirects=True)
        except httpx.HTTPError as e:
            raise RegistryError(f"Registry request failed for {name}: {e}") from e

        if response.status_code != 200:
            raise RegistryError(f"Registry returned {response.status_code} for {name}")
        try:
            data = response.json()
        except ValueError as je:
            raise RegistryError(f"Failed to parse registry response for {name}: {je}") from je

        version = data.get("version") if isinstance(data, dict) else None
        if not isinstance(version, str):
            raise RegistryError(f"Registry response for {name} has no version")
        return version

    def annotate_latest(self, dependencies: list[DependencyInfo]) -> list[DependencyInfo]:
        """Fill ``latest`` on each dependency; a failed lookup leaves it None."""
        for dep in dependencies:
            try:
                dep.latest = self.latest_version(dep.name)
            except RegistryError as e:
                self.logger.debug(str(e))
                dep.latest = None
        return dependencies

    @staticmethod
    def is_outdated(dep: DependencyInfo) -> bool:
        """Major-version comparison of the declared range against ``latest``."""
        if dep.latest is None:
            return False
        declared, latest = _major(dep.version), _major(dep.latest)
        if declared is None or latest is None:
            return False
        return declared < latest

    def close(self):
        self.client.close()
