"""
Entry point for opening VIME stacks.

A stack is identified by a connection string of the form:

    [vime://]http://host[:port]/project/<project>/stack/<stack>[/neuroglancer]/type/<type>/<iteration>/<file_iteration>[/...]

Usage:

    async with VimeSession() as session:
        volume = await session.get_volume('http://vime.example.org/project/fly/stack/sec26/neuroglancer/type/raw/3/0')
        level_sources = volume.get_sources()
        source = level_sources[0][0]

        chunk = VolumeChunk((5, 4, 1))
        await source.download(chunk)
"""
import asyncio
import logging
import collections

from .errors import InvalidSourceUrlError
from .decoders import TileEncoding, default_decoder_registry
from .http_util import ShardedHttpClient, DEFAULT_TIMEOUT, DEFAULT_MAX_CONNECTIONS
from .levels import DEFAULT_TOP_LEVEL_MAX_DIM
from .multiscale import MultiscaleTileSource
from .stackinfo import StackIdentity, fetch_stack_info

logger = logging.getLogger(__name__)

SourceUrl = collections.namedtuple('SourceUrl', 'url project_name stack_name type iteration file_iteration')

VIME_PROTOCOL_PREFIX = 'vime://'


def parse_source_url(path):
    """
    Split a VIME connection string into its components.

    The components are located by their keywords ('project', 'stack', 'type'),
    so an optional 'neuroglancer' segment and any trailing segments are ignored.

    Returns:
        SourceUrl
    Raises:
        InvalidSourceUrlError
    """
    original_path = path
    if path.startswith(VIME_PROTOCOL_PREFIX):
        path = path[len(VIME_PROTOCOL_PREFIX):]

    if '//' not in path:
        raise InvalidSourceUrlError(f"VIME source URL has no protocol: {original_path}")

    protocol, remainder = path.split('//', 1)
    host, *segments = remainder.split('/')
    if not protocol or not host:
        raise InvalidSourceUrlError(f"VIME source URL has no server: {original_path}")

    def value_after(keyword, start):
        try:
            i = segments.index(keyword, start)
        except ValueError:
            raise InvalidSourceUrlError(f"VIME source URL has no '{keyword}' component: {original_path}") from None
        if i+1 >= len(segments) or not segments[i+1]:
            raise InvalidSourceUrlError(f"VIME source URL has no value for '{keyword}': {original_path}")
        return segments[i+1], i+1

    project_name, i = value_after('project', 0)
    stack_name, i = value_after('stack', i+1)
    type, i = value_after('type', i+1)

    try:
        iteration = int(segments[i+1])
        file_iteration = int(segments[i+2])
    except (IndexError, ValueError):
        raise InvalidSourceUrlError(f"VIME source URL must end with /<iteration>/<file_iteration>: {original_path}") from None

    if iteration < 0 or file_iteration < 0:
        raise InvalidSourceUrlError(f"VIME iterations must be non-negative: {original_path}")

    return SourceUrl(protocol + '//' + host, project_name, stack_name, type, iteration, file_iteration)


class MemoCache:
    """
    Memoizes the results of coroutine functions, by key.

    Concurrent requests for the same key share a single in-flight task.
    If the task fails, it is evicted, so the next request starts over
    (all requests that were already waiting on it receive the error).
    """

    def __init__(self):
        self._tasks = {}

    async def get(self, key, coroutine_function):
        try:
            task = self._tasks[key]
        except KeyError:
            task = asyncio.ensure_future(coroutine_function())
            self._tasks[key] = task
            task.add_done_callback(lambda t: self._evict_if_failed(key, t))
        return await asyncio.shield(task)

    def _evict_if_failed(self, key, task):
        if task.cancelled() or task.exception() is not None:
            if self._tasks.get(key) is task:
                del self._tasks[key]

    def __len__(self):
        return len(self._tasks)

    def __contains__(self, key):
        return key in self._tasks

    async def clear(self):
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


class VimeSession:
    """
    Owns the resources needed to open VIME stacks: one HTTP client per server,
    the decoder registry, and a cache of stack info and opened volumes
    (so each stack is fetched only once per session).

    Use as an async context manager, or call close() when done.
    """

    def __init__(self, mirror_urls=(), decoders=None, encoding=TileEncoding.JPEG,
                 timeout=DEFAULT_TIMEOUT, max_connections=DEFAULT_MAX_CONNECTIONS,
                 top_level_max_dim=DEFAULT_TOP_LEVEL_MAX_DIM, http_client=None):
        """
        Args:
            mirror_urls: Additional base URLs that serve the same data as every source URL.
            decoders: DecoderRegistry (default: default_decoder_registry())
            encoding: TileEncoding used for tiles
            timeout: HTTP timeout in seconds
            max_connections: Maximum number of concurrent HTTP connections per server
            top_level_max_dim: See plan_levels()
            http_client: Optional httpx.AsyncClient to use for all requests.
                         It will not be closed by the session.
        """
        self.mirror_urls = tuple(mirror_urls)
        self.decoders = decoders if decoders is not None else default_decoder_registry()
        self.encoding = TileEncoding(encoding)
        self.timeout = timeout
        self.max_connections = max_connections
        self.top_level_max_dim = top_level_max_dim

        self._http_client = http_client
        self._clients = {}
        self._cache = MemoCache()

    @classmethod
    def from_config(cls, config, http_client=None):
        """
        Create a session from a validated config (see VimeVolumeSchema).
        """
        vime_config = config["vime"]
        return cls( mirror_urls=vime_config["mirror-urls"],
                    encoding=vime_config["encoding"],
                    timeout=vime_config["timeout"],
                    max_connections=vime_config["max-connections"],
                    top_level_max_dim=config["levels"]["auto-level-max-dim"],
                    http_client=http_client )

    def client_for(self, url):
        """
        Return the (shared) ShardedHttpClient for the given base URL and this session's mirrors.
        """
        base_urls = (url,) + tuple(u for u in self.mirror_urls if u != url)
        try:
            return self._clients[base_urls]
        except KeyError:
            client = ShardedHttpClient( base_urls, self._http_client, self.timeout, self.max_connections )
            self._clients[base_urls] = client
            return client

    async def get_stack_info(self, identity):
        """
        Fetch (or return the cached) StackMetadata for the given StackIdentity.
        """
        identity = StackIdentity(*identity)
        key = ('vime:getStackInfo',) + tuple(identity)
        client = self.client_for(identity.url)
        return await self._cache.get(key, lambda: fetch_stack_info(client, identity))

    async def get_volume(self, path):
        """
        Open the stack named by the given connection string.

        Returns:
            MultiscaleTileSource
        Raises:
            InvalidSourceUrlError, MetadataFetchError, MetadataValidationError
        """
        source_url = parse_source_url(path)
        key = ('vime:MultiscaleVolumeChunkSource', source_url.url, path)

        async def open_volume():
            identity = StackIdentity(*source_url)
            stack_info = await self.get_stack_info(identity)
            client = self.client_for(source_url.url)
            logger.info(f"Opened VIME stack {stack_info.project_name}/{stack_info.stack_name} "
                        f"(dimension: {tuple(stack_info.dimension)})")
            return MultiscaleTileSource( client,
                                         client.base_urls,
                                         stack_info,
                                         self.decoders,
                                         self.encoding,
                                         self.top_level_max_dim )

        return await self._cache.get(key, open_volume)

    async def close(self):
        await self._cache.clear()
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()


class VimeDataSource:

    def __init__(self, session):
        self.session = session

    @property
    def description(self):
        return 'Vime'

    async def get_volume(self, url):
        return await self.session.get_volume(url)
