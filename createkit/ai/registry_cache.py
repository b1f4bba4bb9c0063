"""npm-registry existence checks for AI-recommended packages.

One ``PackageExistenceCache`` is created per process and handed to whatever
needs it.  Entries are never evicted; the process is short-lived.
"""

from __future__ import annotations

import asyncio
from urllib.parse import quote

import httpx

from createkit.utils import print_warning

NPM_REGISTRY = "https://registry.npmjs.org"


class PackageExistenceCache:
    """Remembers which package names exist on the npm registry."""

    def __init__(self, registry_url: str = NPM_REGISTRY, timeout: float = 10.0) -> None:
        self.registry_url = registry_url.rstrip("/")
        self.timeout = timeout
        self._known: dict[str, bool] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._known

    def __len__(self) -> int:
        return len(self._known)

    def get(self, name: str) -> bool | None:
        return self._known.get(name)

    def set(self, name: str, exists: bool) -> None:
        self._known[name] = exists

    async def exists(self, name: str) -> bool:
        """Return whether *name* is published.

        A definitive answer (200 or 404) is cached.  Network failures are
        not cached and count as "exists" so a flaky connection never drops
        a recommendation.
        """
        cached = self._known.get(name)
        if cached is not None:
            return cached

        url = f"{self.registry_url}/{quote(name, safe='@')}"
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout, connect=5.0)) as client:
                response = await client.head(url)
        except httpx.TransportError as exc:
            print_warning(f"Could not verify package {name}: {exc.__class__.__name__}")
            return True

        if response.status_code == 404:
            self._known[name] = False
        elif response.status_code == 200:
            self._known[name] = True
        else:
            return True
        return self._known[name]


class DependencyRecommender:
    """Filters recommended dependencies down to packages that exist."""

    def __init__(self, cache: PackageExistenceCache) -> None:
        self.cache = cache

    async def verify(self, names: list[str]) -> list[str]:
        """Return *names* without the ones the registry does not know, order kept."""
        unique = list(dict.fromkeys(n for n in names if n))
        results = await asyncio.gather(*(self.cache.exists(name) for name in unique))
        existing = {name for name, ok in zip(unique, results) if ok}
        dropped = [name for name in unique if name not in existing]
        if dropped:
            print_warning(f"Ignoring unknown packages: {', '.join(dropped)}")
        return [name for name in unique if name in existing]
