import collections

# Request parameters shared by every chunk of one level.
TileSourceParameters = collections.namedtuple('TileSourceParameters',
                                              'source_base_urls encoding zoom_level render_tile_width render_tile_height '
                                              'iteration file_iteration type project_name stack_name')


def make_tile_path(project_name, stack_name, type, iteration, file_iteration,
                   render_tile_width, render_tile_height, zoom_level, grid_position):
    """
    Return the server path of a single tile:

        /project/<project_name>/stack/<stack_name>/neuroglancer/type/<type>
        /iteration/<iteration>/file_iteration/<file_iteration>
        /<width>/<height>/<zoom_level>/<slice>/<row>/<column>.jpg

    Note the order of the last three components: slice (z), row (y), column (x).
    """
    column, row, slice_index = grid_position
    return ( f'/project/{project_name}/stack/{stack_name}/neuroglancer/type/{type}'
             f'/iteration/{iteration}/file_iteration/{file_iteration}'
             f'/{render_tile_width}/{render_tile_height}/{zoom_level}'
             f'/{slice_index}/{row}/{column}.jpg' )


def tile_path(parameters, grid_position):
    """
    Return the server path of the tile at grid_position (column, row, slice)
    for the level described by the given TileSourceParameters.
    """
    p = parameters
    return make_tile_path( p.project_name, p.stack_name, p.type, p.iteration, p.file_iteration,
                           p.render_tile_width, p.render_tile_height, p.zoom_level, grid_position )
