import asyncio
import inspect
import logging

import httpx

from .errors import TileFetchError, TileDecodeError, Cancelled
from .cancellation import uncancelable_token
from .geom import ChunkGridPosition
from .tile_address import tile_path

logger = logging.getLogger(__name__)


class VimeTileSource:
    """
    The chunk source for one resolution level of a VIME stack.

    Holds the level's geometry (spec) and request parameters,
    plus references to the (shared) HTTP client and decoder registry.
    Tile sources have no mutable state, so any number of downloads
    may be in flight at once.
    """

    def __init__(self, spec, parameters, client, decoders):
        """
        Args:
            spec: LevelGeometry
            parameters: TileSourceParameters
            client: ShardedHttpClient
            decoders: DecoderRegistry
        """
        self.spec = spec
        self.parameters = parameters
        self.client = client
        self.decoders = decoders

    def tile_path(self, grid_position):
        return tile_path(self.parameters, ChunkGridPosition(*grid_position))

    async def download(self, chunk, cancellation_token=None):
        """
        Fetch the tile for the given chunk and decode it into the chunk.

        Raises:
            Cancelled: The token was cancelled before the tile arrived.
                       The chunk is left untouched.
            TileFetchError: The request failed.
            UnsupportedEncodingError: No decoder is registered for the stack's encoding.
            TileDecodeError: The tile could not be decoded.
        """
        if cancellation_token is None:
            cancellation_token = uncancelable_token

        # The decoder needs to know the expected shape.
        chunk.chunk_data_size = self.spec.chunk_data_size

        path = self.tile_path(chunk.grid_position)
        try:
            payload = await cancellation_token.run(self.client.get_bytes(path, self.parameters.source_base_urls))
        except httpx.HTTPError as ex:
            raise TileFetchError(f"Failed to fetch tile {path}: {ex}") from ex

        cancellation_token.raise_if_cancelled()

        decoder = self.decoders.get(self.parameters.encoding)
        try:
            result = decoder(payload, chunk)
            if inspect.isawaitable(result):
                await result
        except (TileDecodeError, Cancelled):
            raise
        except Exception as ex:
            raise TileDecodeError(f"Failed to decode tile {path}: {ex}") from ex

        chunk.state = 'populated'
        logger.debug(f"Downloaded {path} ({len(payload)} bytes)")


async def download_chunks(source, chunks, cancellation_token=None):
    """
    Download several chunks of the same source concurrently.

    Failures are isolated: each chunk's outcome is reported separately,
    and one chunk's failure has no effect on the others.

    Returns:
        A list (in the same order as chunks) containing, for each chunk,
        either None (success) or the exception its download raised.
    """
    results = await asyncio.gather( *(source.download(chunk, cancellation_token) for chunk in chunks),
                                    return_exceptions=True )

    outcomes = []
    for chunk, result in zip(chunks, results):
        if isinstance(result, Cancelled):
            logger.debug(f"Download of {chunk} was cancelled")
        elif isinstance(result, BaseException):
            logger.warning(f"Download of {chunk} failed: {result!r}")
        outcomes.append(result)
    return outcomes
