"""npm registry metadata client."""

import asyncio
import logging
from urllib.parse import quote

import httpx

from .config import DEFAULT_REGISTRY
from .exceptions import RegistryTimeout, RegistryUnavailable
from .models import PackageInfo

logger = logging.getLogger(__name__)


class RegistryClient:
    """Fetches and caches per-package registry metadata.

    One client is built per analysis run; its cache lives as long as the
    client and is never invalidated.
    """

    def __init__(
        self,
        registry_url: str = DEFAULT_REGISTRY,
        timeout: float = 5.0,
        max_concurrency: int = 6,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize registry client.

        Args:
            registry_url: Base URL of the registry
            timeout: Request timeout in seconds
            max_concurrency: Maximum concurrent requests
            transport: Optional httpx transport (used by tests)
        """
        self.registry_url = registry_url.rstrip("/")
        self.timeout = timeout
        self.max_concurrency = max_concurrency
        self._transport = transport
        self._cache: dict[str, PackageInfo] = {}
        self._inflight: dict[str, asyncio.Future] = {}
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def fetch_info(self, package_name: str) -> PackageInfo:
        """Get registry metadata for a package.

        Concurrent calls for the same uncached name share one request.

        Raises:
            RegistryTimeout: if the registry does not answer in time
            RegistryUnavailable: on non-success status or unusable metadata
        """
        if package_name in self._cache:
            return self._cache[package_name]

        pending = self._inflight.get(package_name)
        if pending is None:
            pending = asyncio.ensure_future(self._load(package_name))
            self._inflight[package_name] = pending
            pending.add_done_callback(lambda _: self._inflight.pop(package_name, None))
        return await asyncio.shield(pending)

    async def get_latest_version(self, package_name: str) -> str:
        info = await self.fetch_info(package_name)
        return info.latest

    async def _load(self, package_name: str) -> PackageInfo:
        async with self._semaphore:
            metadata = await self._fetch_package_metadata(package_name)

        try:
            info = PackageInfo.from_metadata(package_name, metadata)
        except (KeyError, TypeError, AttributeError) as e:
            raise RegistryUnavailable(
                f"Malformed registry metadata for {package_name}", package=package_name
            ) from e

        self._cache[package_name] = info
        return info

    def package_url(self, package_name: str) -> str:
        # Scoped names keep the "@" but encode the slash
        return f"{self.registry_url}/{quote(package_name, safe='@')}"

    async def _fetch_package_metadata(self, package_name: str) -> dict:
        """Fetch the raw packument for a package."""
        url = self.package_url(package_name)
        logger.debug("Fetching %s", url)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, headers={"Accept": "application/json"})
                response.raise_for_status()
                return response.json()

        except httpx.TimeoutException as e:
            raise RegistryTimeout(
                f"Timeout fetching metadata for {package_name}", package=package_name
            ) from e
        except httpx.HTTPStatusError as e:
            raise RegistryUnavailable(
                f"Registry returned {e.response.status_code} for {package_name}",
                package=package_name,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise RegistryUnavailable(
                f"Network error fetching {package_name}: {e}", package=package_name
            ) from e
