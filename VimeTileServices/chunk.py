import numpy as np

from .geom import ChunkGridPosition


class VolumeChunk:
    """
    A single chunk of volume data, backed by one tile.

    Chunks are created and owned by the caller (e.g. a chunk cache).
    A tile source only borrows a chunk for the duration of one download:
    it stamps chunk_data_size, then the decoder writes the decoded samples.

    Members:
        grid_position: ChunkGridPosition (column, row, slice)
        chunk_data_size: Vec3 (x,y,z) of the expected data, or None until stamped.
        data: numpy array in zyx order, or None until populated.
              The caller may preallocate it, in which case it is filled in place.
        state: 'new' or 'populated'
    """

    def __init__(self, grid_position, data=None):
        self.grid_position = ChunkGridPosition(*grid_position)
        self.chunk_data_size = None
        self.data = data
        self.state = 'new'

    @property
    def shape_zyx(self):
        assert self.chunk_data_size is not None, "chunk_data_size has not been set"
        return tuple(self.chunk_data_size[::-1])

    def write(self, samples):
        """
        Store decoded samples (zyx order) in this chunk.
        If the chunk already has a buffer, the samples are copied into it.
        """
        samples = np.asarray(samples)
        if self.data is None:
            self.data = samples
        else:
            if self.data.shape != samples.shape:
                raise ValueError(f"Chunk buffer has shape {self.data.shape}, but decoded data has shape {samples.shape}")
            self.data[:] = samples

    def __repr__(self):
        return f"VolumeChunk({tuple(self.grid_position)}, state={self.state!r})"
