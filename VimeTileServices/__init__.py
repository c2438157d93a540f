import sys
import logging

formatter = logging.Formatter('%(levelname)s [%(asctime)s] %(module)s %(message)s')
handler = logging.StreamHandler(sys.stdout)
handler.setFormatter(formatter)
logging.getLogger().addHandler(handler)
logging.getLogger().setLevel(logging.INFO)

# httpx logs every request at INFO, which is far too chatty for tile downloads.
logging.getLogger('httpx').setLevel(logging.WARNING)
logging.getLogger('httpcore').setLevel(logging.WARNING)

from .errors import ( VimeError, MetadataFetchError, MetadataValidationError, UnsupportedEncodingError,
                      TileFetchError, TileDecodeError, Cancelled, InvalidSourceUrlError )
from .geom import Vec3, ChunkGridPosition
from .stackinfo import StackMetadata, StackIdentity, StackInfoSchema, parse_stack_info, stack_info_path, fetch_stack_info
from .levels import LevelGeometry, auto_zoom_levels, plan_levels
from .tile_address import TileSourceParameters, make_tile_path, tile_path
from .chunk import VolumeChunk
from .decoders import TileEncoding, DecoderRegistry, default_decoder_registry, decode_jpeg_chunk
from .cancellation import CancellationToken, uncancelable_token
from .http_util import ShardedHttpClient
from .tile_source import VimeTileSource, download_chunks
from .multiscale import MultiscaleTileSource
from .datasource import SourceUrl, parse_source_url, VimeSession, VimeDataSource
