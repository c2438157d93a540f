import logging

import numpy as np

from .errors import MetadataFetchError
from .decoders import TileEncoding
from .levels import plan_levels, DEFAULT_TOP_LEVEL_MAX_DIM
from .tile_address import TileSourceParameters
from .tile_source import VimeTileSource

logger = logging.getLogger(__name__)


class MultiscaleTileSource:
    """
    All resolution levels of a single VIME stack.

    get_sources() returns one list of chunk sources per level
    (each list holds exactly one VimeTileSource), ordered from
    full resolution (level 0) to the coarsest level.
    """

    def __init__(self, client, url, stack_info, decoders,
                 encoding=TileEncoding.JPEG, top_level_max_dim=DEFAULT_TOP_LEVEL_MAX_DIM):
        """
        Args:
            client: ShardedHttpClient for the stack's server(s)
            url: The stack's base URL (or list of equivalent base URLs)
            stack_info: StackMetadata
            decoders: DecoderRegistry
            encoding: TileEncoding of the stack's tiles
            top_level_max_dim: See plan_levels()
        """
        if stack_info is None:
            raise MetadataFetchError("Failed to read stack information for stack from VIME.")

        self.client = client
        self.url = url
        self.stack_info = stack_info
        self.decoders = decoders
        self.encoding = TileEncoding(encoding)
        self.top_level_max_dim = top_level_max_dim

    @property
    def data_type(self):
        return np.dtype(np.uint8)

    @property
    def num_channels(self):
        return 1

    @property
    def volume_type(self):
        return 'image'

    def get_sources(self):
        info = self.stack_info
        base_urls = (self.url,) if isinstance(self.url, str) else tuple(self.url)

        sources = []
        for spec in plan_levels(info, self.top_level_max_dim):
            parameters = TileSourceParameters( source_base_urls=base_urls,
                                               encoding=self.encoding,
                                               zoom_level=spec.level,
                                               render_tile_width=info.render_tile_width,
                                               render_tile_height=info.render_tile_height,
                                               iteration=info.iteration,
                                               file_iteration=info.file_iteration,
                                               type=info.type,
                                               project_name=info.project_name,
                                               stack_name=info.stack_name )

            sources.append([VimeTileSource(spec, parameters, self.client, self.decoders)])

        logger.debug(f"{info.project_name}/{info.stack_name}: {len(sources)} levels")
        return sources

    def get_mesh_source(self):
        """
        Meshes are not supported.
        """
        return None
