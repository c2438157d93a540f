import collections

# x,y,z vector (x,y,z order, unlike the zyx boxes used elsewhere in numpy code)
Vec3 = collections.namedtuple('Vec3', 'x y z')


class ChunkGridPosition(collections.namedtuple('ChunkGridPosition', 'x y z')):
    """
    Location of a chunk within a level's tile grid.

    x is the tile column, y is the tile row and z is the slice index.
    """
    __slots__ = ()

    def __new__(cls, x, y, z):
        if any(int(v) != v for v in (x, y, z)):
            raise ValueError(f"Chunk grid positions must be integers, not {(x, y, z)}")
        position = super().__new__(cls, int(x), int(y), int(z))
        if min(position) < 0:
            raise ValueError(f"Chunk grid positions must be non-negative, not {tuple(position)}")
        return position

    @property
    def column(self):
        return self.x

    @property
    def row(self):
        return self.y

    @property
    def slice_index(self):
        return self.z
