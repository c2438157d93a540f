"""
In-memory stand-ins for a VIME server, for use in unit tests.
"""
import io
import copy
import asyncio

import numpy as np
import httpx
from PIL import Image

SERVER_URL = 'http://vime.test'

STACK_INFO = {
    "dimension": {"x": 2048, "y": 2048, "z": 10},
    "translation": {"x": 0, "y": 0, "z": 0},
    "resolution": {"x": 4.0, "y": 4.0, "z": 40.0},
    "num_zoom_levels": -1,
    "render_tile_width": 16,
    "render_tile_height": 8,
    "overlap_max": 0,
    "grid_nr": 0,
    "iteration": 3,
    "file_iteration": 0,
    "project_name": "p1",
    "stack_name": "s1",
    "type": "raw"
}

SOURCE_URL = f'{SERVER_URL}/project/p1/stack/s1/neuroglancer/type/raw/3/0'
STACK_INFO_PATH = '/project/p1/stack/s1/type/raw/3/0/stackinfo'


def stack_info(**overrides):
    info = copy.deepcopy(STACK_INFO)
    info.update(overrides)
    return info


def encode_image(array, format='JPEG'):
    stream = io.BytesIO()
    Image.fromarray(np.asarray(array, dtype=np.uint8)).save(stream, format=format)
    return stream.getvalue()


def uniform_jpeg(width, height, value):
    return encode_image(np.full((height, width), value, dtype=np.uint8))


class FakeVimeServer:
    """
    Serves a stack info descriptor and a dict of tiles {path: bytes}.

    Paths listed in 'stalled_paths' never respond (until the request is cancelled).
    'failures' maps paths to a list of HTTP status codes to return before
    serving the path normally.
    """

    def __init__(self, stack_info=STACK_INFO, tiles=None, stalled_paths=(), failures=None):
        self.stack_info = stack_info
        self.tiles = dict(tiles or {})
        self.stalled_paths = set(stalled_paths)
        self.failures = { k: list(v) for k,v in (failures or {}).items() }
        self.requested_paths = []
        self.requested_hosts = []
        self.responded_paths = []
        self._stalled = None

    @property
    def stalled(self):
        # Created lazily, so it belongs to the running event loop.
        if self._stalled is None:
            self._stalled = asyncio.Event()
        return self._stalled

    async def handle(self, request):
        path = request.url.path
        self.requested_paths.append(path)
        self.requested_hosts.append(request.url.host)

        # Give other tasks a chance to run, like a real server would.
        await asyncio.sleep(0)

        if self.failures.get(path):
            return httpx.Response(self.failures[path].pop(0))

        if path in self.stalled_paths:
            self.stalled.set()
            await asyncio.Event().wait()

        self.responded_paths.append(path)
        if path == STACK_INFO_PATH and self.stack_info is not None:
            return httpx.Response(200, json=self.stack_info)

        if path in self.tiles:
            return httpx.Response(200, content=self.tiles[path])

        return httpx.Response(404)

    def client(self):
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handle))


def tile_path_for(column, row, slice_index, level=0, width=16, height=8):
    return ( f'/project/p1/stack/s1/neuroglancer/type/raw/iteration/3/file_iteration/0'
             f'/{width}/{height}/{level}/{slice_index}/{row}/{column}.jpg' )
