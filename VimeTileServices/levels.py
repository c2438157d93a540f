import collections

import numpy as np

from .geom import Vec3

# Geometry of one resolution level.
# All bounds are given in full-resolution (level 0) voxel coordinates, at every level.
LevelGeometry = collections.namedtuple('LevelGeometry',
                                       'level voxel_size chunk_data_size lower_voxel_bound upper_voxel_bound '
                                       'num_channels dtype')

DEFAULT_TOP_LEVEL_MAX_DIM = 1024


def auto_zoom_levels(dimension, top_level_max_dim=DEFAULT_TOP_LEVEL_MAX_DIM):
    """
    Determine the highest zoom level such that the XY extents of the
    stack at that level are no larger than top_level_max_dim.

    Stacks that are already small enough get a single level (level 0).
    """
    from numpy import ceil, log2
    xy_max = float(max(dimension.x, dimension.y))
    if xy_max <= 0.0:
        return 0
    depth = int(ceil(log2(xy_max / top_level_max_dim)))
    return max(depth, 0)


def plan_levels(stack_info, top_level_max_dim=DEFAULT_TOP_LEVEL_MAX_DIM):
    """
    Compute the geometry of every resolution level of a stack.

    Levels only downsample within the tile plane: the voxel size doubles
    in X and Y with each level, but stays constant in Z.
    Each chunk is exactly one tile of one slice.

    Args:
        stack_info: StackMetadata
        top_level_max_dim: Used to choose the number of levels if the
                           stack info doesn't specify it (zoom_levels == -1).
    Returns:
        tuple of LevelGeometry, for levels 0..N (inclusive)
    """
    num_levels = stack_info.zoom_levels
    if num_levels < 0:
        num_levels = auto_zoom_levels(stack_info.dimension, top_level_max_dim)

    chunk_data_size = Vec3(stack_info.render_tile_width, stack_info.render_tile_height, 1)
    lower_voxel_bound = Vec3(0, 0, 0)
    upper_voxel_bound = Vec3(*stack_info.dimension)

    levels = []
    for level in range(num_levels+1):
        resolution = stack_info.resolution
        voxel_size = Vec3( resolution.x * 2**level,
                           resolution.y * 2**level,
                           resolution.z )
        levels.append( LevelGeometry( level,
                                      voxel_size,
                                      chunk_data_size,
                                      lower_voxel_bound,
                                      upper_voxel_bound,
                                      1,
                                      np.dtype(np.uint8) ) )
    return tuple(levels)
