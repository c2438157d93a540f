import asyncio
import unittest

import numpy as np

from VimeTileServices.chunk import VolumeChunk
from VimeTileServices.datasource import parse_source_url, SourceUrl, VimeSession, VimeDataSource, MemoCache
from VimeTileServices.errors import InvalidSourceUrlError, MetadataFetchError, MetadataValidationError
from VimeTileServices.geom import Vec3
from VimeTileServices.multiscale import MultiscaleTileSource
from VimeTileServices.stackinfo import StackIdentity

from vime_fakes import ( FakeVimeServer, SERVER_URL, SOURCE_URL, STACK_INFO_PATH,
                         stack_info, uniform_jpeg, tile_path_for )


class TestParseSourceUrl(unittest.TestCase):

    def test_parse(self):
        expected = SourceUrl('http://vime.test', 'p1', 's1', 'raw', 3, 0)
        assert parse_source_url(SOURCE_URL) == expected
        assert parse_source_url('vime://' + SOURCE_URL) == expected

        # Without the 'neuroglancer' segment, and with trailing segments
        assert parse_source_url('http://vime.test/project/p1/stack/s1/type/raw/3/0') == expected
        assert parse_source_url(SOURCE_URL + '/extra/stuff') == expected

    def test_port_and_https(self):
        parsed = parse_source_url('https://vime.test:8443/project/a/stack/b/neuroglancer/type/c/10/2')
        assert parsed == SourceUrl('https://vime.test:8443', 'a', 'b', 'c', 10, 2)

    def test_invalid(self):
        bad_urls = [ 'vime.test/project/p1/stack/s1/type/raw/3/0',
                     'http:///project/p1/stack/s1/type/raw/3/0',
                     'http://vime.test/stack/s1/type/raw/3/0',
                     'http://vime.test/project/p1/stack/s1/type/raw/3',
                     'http://vime.test/project/p1/stack/s1/type/raw/three/0',
                     'http://vime.test/project/p1/stack/s1/type/raw/-1/0',
                     'http://vime.test/project/p1/stack/s1/type/' ]
        for url in bad_urls:
            with self.assertRaises(InvalidSourceUrlError, msg=url):
                parse_source_url(url)

        # Also a ValueError
        with self.assertRaises(ValueError):
            parse_source_url('nonsense')


class TestVimeSession(unittest.TestCase):

    def test_open_and_download(self):
        path = tile_path_for(1, 2, 3, level=1)
        server = FakeVimeServer(tiles={path: uniform_jpeg(16, 8, 99)})

        async def run():
            async with server.client() as http, VimeSession(http_client=http) as session:
                datasource = VimeDataSource(session)
                assert datasource.description == 'Vime'

                volume = await datasource.get_volume(SOURCE_URL)
                sources = volume.get_sources()
                chunk = VolumeChunk((1, 2, 3))
                await sources[1][0].download(chunk)
                return volume, sources, chunk

        volume, sources, chunk = asyncio.run(run())
        assert isinstance(volume, MultiscaleTileSource)
        assert volume.data_type == np.uint8
        assert volume.num_channels == 1
        assert volume.volume_type == 'image'
        assert volume.get_mesh_source() is None

        # 2048 x 2048 with auto levels: levels 0 and 1
        assert len(sources) == 2
        assert all(len(s) == 1 for s in sources)
        assert sources[1][0].spec.voxel_size == Vec3(8.0, 8.0, 40.0)
        assert sources[1][0].parameters.zoom_level == 1
        assert sources[1][0].parameters.source_base_urls == (SERVER_URL,)

        assert chunk.state == 'populated'
        assert server.requested_paths == [STACK_INFO_PATH, path]

    def test_concurrent_opens_share_one_fetch(self):
        server = FakeVimeServer()

        async def run():
            async with server.client() as http, VimeSession(http_client=http) as session:
                volumes = await asyncio.gather(*(session.get_volume(SOURCE_URL) for _ in range(5)))

                # A different connection string for the same stack reuses the stack info.
                other = await session.get_volume(SOURCE_URL + '/0/0/0')
                info = await session.get_stack_info(StackIdentity(SERVER_URL, 'p1', 's1', 'raw', 3, 0))
                return volumes, other, info

        volumes, other, info = asyncio.run(run())
        assert all(v is volumes[0] for v in volumes)
        assert other is not volumes[0]
        assert other.stack_info is info
        assert server.requested_paths == [STACK_INFO_PATH]

    def test_failed_fetch_is_not_cached(self):
        server = FakeVimeServer(failures={STACK_INFO_PATH: [503]})

        async def run():
            async with server.client() as http, VimeSession(http_client=http) as session:
                with self.assertRaises(MetadataFetchError):
                    await session.get_volume(SOURCE_URL)
                return await session.get_volume(SOURCE_URL)

        volume = asyncio.run(run())
        assert volume.stack_info.stack_name == 's1'
        assert server.requested_paths == [STACK_INFO_PATH, STACK_INFO_PATH]

    def test_concurrent_waiters_see_same_failure(self):
        server = FakeVimeServer(failures={STACK_INFO_PATH: [500]})

        async def run():
            async with server.client() as http, VimeSession(http_client=http) as session:
                return await asyncio.gather( *(session.get_volume(SOURCE_URL) for _ in range(3)),
                                             return_exceptions=True )

        results = asyncio.run(run())
        assert all(isinstance(r, MetadataFetchError) for r in results)
        assert server.requested_paths == [STACK_INFO_PATH]

    def test_invalid_stack_info(self):
        server = FakeVimeServer(stack_info=stack_info(render_tile_width=-5))

        async def run():
            async with server.client() as http, VimeSession(http_client=http) as session:
                await session.get_volume(SOURCE_URL)

        with self.assertRaises(MetadataValidationError) as cm:
            asyncio.run(run())
        assert cm.exception.field == 'render_tile_width'

    def test_mirrors(self):
        mirrors = ['http://mirror1.test', 'http://mirror2.test']
        tiles = { tile_path_for(x, 0, 0): uniform_jpeg(16, 8, x) for x in range(20) }
        server = FakeVimeServer(tiles=tiles)
        hosts = []

        async def run():
            async with server.client() as http, VimeSession(mirrors, http_client=http) as session:
                volume = await session.get_volume(SOURCE_URL)
                [source] = volume.get_sources()[0]
                for x in range(20):
                    hosts.append(source.client.select_base_url(source.tile_path((x, 0, 0))))
                    await source.download(VolumeChunk((x, 0, 0)))
                return source

        source = asyncio.run(run())
        assert source.parameters.source_base_urls == (SERVER_URL,) + tuple(mirrors)
        assert set(hosts) <= set(source.parameters.source_base_urls)
        assert len(set(hosts)) > 1

    def test_close_clears_cache(self):
        server = FakeVimeServer()

        async def run():
            async with server.client() as http:
                session = VimeSession(http_client=http)
                await session.get_volume(SOURCE_URL)
                await session.close()
                await session.get_volume(SOURCE_URL)
                await session.close()

        asyncio.run(run())
        assert server.requested_paths == [STACK_INFO_PATH, STACK_INFO_PATH]

    def test_invalid_url(self):
        async def run():
            async with VimeSession() as session:
                await session.get_volume('http://vime.test/nothing/here')

        with self.assertRaises(InvalidSourceUrlError):
            asyncio.run(run())


class TestMultiscaleTileSource(unittest.TestCase):

    def test_missing_stack_info(self):
        with self.assertRaises(MetadataFetchError):
            MultiscaleTileSource(None, SERVER_URL, None, None)


def test_memo_cache():
    calls = []

    async def compute():
        calls.append(1)
        await asyncio.sleep(0)
        return 'value'

    async def run():
        cache = MemoCache()
        results = await asyncio.gather(*(cache.get('key', compute) for _ in range(3)))
        assert 'key' in cache
        assert len(cache) == 1
        await cache.clear()
        assert len(cache) == 0
        return results

    assert asyncio.run(run()) == ['value'] * 3
    assert calls == [1]


if __name__ == "__main__":
    unittest.main()
