import zlib
import logging

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
DEFAULT_MAX_CONNECTIONS = 16


def _normalize_base_urls(base_urls):
    if isinstance(base_urls, str):
        base_urls = [base_urls]
    base_urls = tuple(url.rstrip('/') for url in base_urls)
    if not base_urls:
        raise ValueError("At least one base URL is required")
    return base_urls


class ShardedHttpClient:
    """
    Issues GET requests against a set of equivalent base URLs ("shards").

    Each request path is consistently routed to the same base URL
    (chosen via a hash of the path), which spreads tile requests
    across all mirrors while keeping browser/proxy caches effective.

    No retries and no authentication are performed here.
    """

    def __init__(self, base_urls, client=None, timeout=DEFAULT_TIMEOUT, max_connections=DEFAULT_MAX_CONNECTIONS):
        """
        Args:
            base_urls: A single URL or a list of URLs, e.g. 'http://vime.example.org'
            client: Optional httpx.AsyncClient to use (it is not closed by aclose()).
                    If not provided, a new client is created and owned by this object.
        """
        self.base_urls = _normalize_base_urls(base_urls)
        self._owns_client = client is None
        if client is None:
            limits = httpx.Limits(max_connections=max_connections)
            client = httpx.AsyncClient(timeout=timeout, limits=limits)
        self._client = client

    def select_base_url(self, path, base_urls=None):
        """
        Choose the base URL for the given path.
        If base_urls is given, choose among those instead of this client's own URLs.
        """
        if base_urls is None:
            base_urls = self.base_urls
        else:
            base_urls = _normalize_base_urls(base_urls)
        index = zlib.crc32(path.encode('utf-8')) % len(base_urls)
        return base_urls[index]

    def url_for(self, path, base_urls=None):
        return self.select_base_url(path, base_urls) + path

    async def _get(self, path, base_urls=None):
        url = self.url_for(path, base_urls)
        logger.debug(f"GET {url}")
        r = await self._client.get(url)
        r.raise_for_status()
        return r

    async def get_bytes(self, path, base_urls=None):
        r = await self._get(path, base_urls)
        return r.content

    async def get_json(self, path):
        r = await self._get(path)
        return r.json()

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()
