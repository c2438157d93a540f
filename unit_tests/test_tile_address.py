import unittest

from VimeTileServices.decoders import TileEncoding
from VimeTileServices.geom import ChunkGridPosition
from VimeTileServices.tile_address import TileSourceParameters, make_tile_path, tile_path


class TestTilePath(unittest.TestCase):

    def test_example_path(self):
        path = make_tile_path('p1', 's1', 'raw', 3, 0, 256, 256, 2, ChunkGridPosition(5, 4, 1))
        assert path == '/project/p1/stack/s1/neuroglancer/type/raw/iteration/3/file_iteration/0/256/256/2/1/4/5.jpg'

    def test_axis_order(self):
        # column=1, row=2, slice=3 --> .../<slice>/<row>/<column>.jpg
        path = make_tile_path('p', 's', 't', 0, 0, 512, 256, 0, ChunkGridPosition(x=1, y=2, z=3))
        assert path.endswith('/512/256/0/3/2/1.jpg')

    def test_parameters(self):
        parameters = TileSourceParameters( source_base_urls=('http://vime.test',),
                                           encoding=TileEncoding.JPEG,
                                           zoom_level=2,
                                           render_tile_width=256,
                                           render_tile_height=256,
                                           iteration=3,
                                           file_iteration=0,
                                           type='raw',
                                           project_name='p1',
                                           stack_name='s1' )

        position = ChunkGridPosition(5, 4, 1)
        expected = '/project/p1/stack/s1/neuroglancer/type/raw/iteration/3/file_iteration/0/256/256/2/1/4/5.jpg'
        assert tile_path(parameters, position) == expected

        # Same inputs, same path.
        assert tile_path(parameters, ChunkGridPosition(5, 4, 1)) == tile_path(parameters, position)

    def test_negative_position_is_rejected(self):
        with self.assertRaises(ValueError):
            ChunkGridPosition(0, -1, 0)

    def test_fractional_position_is_rejected(self):
        with self.assertRaises(ValueError):
            ChunkGridPosition(1.7, 0, 0)

        # Integral floats are fine.
        assert ChunkGridPosition(1.0, 2, 3) == (1, 2, 3)

    def test_grid_position_names(self):
        position = ChunkGridPosition(5, 4, 1)
        assert (position.column, position.row, position.slice_index) == (5, 4, 1)


if __name__ == "__main__":
    unittest.main()
