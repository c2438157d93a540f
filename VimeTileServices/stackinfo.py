"""
Reading and validating the VIME 'stackinfo' descriptor.

The server describes each stack with a JSON object like this:

    {
      "dimension":   {"x": 40000, "y": 30000, "z": 512},
      "translation": {"x": 0, "y": 0, "z": 0},
      "resolution":  {"x": 4.0, "y": 4.0, "z": 40.0},
      "num_zoom_levels": -1,
      "render_tile_width": 1024,
      "render_tile_height": 1024,
      "overlap_max": 0,
      "grid_nr": 0,
      "iteration": 3,
      "file_iteration": 0,
      "project_name": "fly",
      "stack_name": "sec26",
      "type": "raw"
    }

A num_zoom_levels of -1 means "choose the number of levels automatically".
"""
import math
import logging
import collections

import httpx
from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match

from .errors import MetadataFetchError, MetadataValidationError
from .geom import Vec3
from .util import Timer

logger = logging.getLogger(__name__)

StackMetadata = collections.namedtuple('StackMetadata',
                                       'dimension translation resolution zoom_levels '
                                       'render_tile_width render_tile_height overlap_max grid_nr '
                                       'iteration file_iteration project_name stack_name type')

# Everything needed to locate a stack on the server (and to memoize it).
StackIdentity = collections.namedtuple('StackIdentity',
                                       'url project_name stack_name type iteration file_iteration')

def _vec_schema(description, component_type, minimum=None):
    component = { "type": component_type }
    if minimum is not None:
        component["minimum"] = minimum
    return {
        "description": description,
        "type": "object",
        "required": ["x", "y", "z"],
        "properties": {
            "x": component,
            "y": component,
            "z": component
        }
    }

def _int_schema(description, minimum=0):
    return { "description": description, "type": "integer", "minimum": minimum }

def _name_schema(description):
    return { "description": description, "type": "string", "minLength": 1 }

StackInfoSchema = \
{
    "description": "Stack descriptor returned by the VIME stackinfo endpoint",
    "type": "object",
    "required": ["dimension", "translation", "resolution", "num_zoom_levels",
                 "render_tile_width", "render_tile_height", "overlap_max", "grid_nr",
                 "iteration", "file_iteration", "project_name", "stack_name", "type"],
    "properties": {
        "dimension": _vec_schema("Stack size in voxels (full resolution)", "integer", 0),
        "translation": _vec_schema("Stack offset in voxels", "integer", 0),
        "resolution": _vec_schema("Physical size of one voxel", "number"),
        "num_zoom_levels": _int_schema("Highest zoom level, or -1 to derive it from the stack dimensions", -1),
        "render_tile_width": _int_schema("Tile width in pixels", 1),
        "render_tile_height": _int_schema("Tile height in pixels", 1),
        "overlap_max": _int_schema("Maximum tile overlap"),
        "grid_nr": _int_schema("Tile grid number"),
        "iteration": _int_schema("Dataset iteration"),
        "file_iteration": _int_schema("File iteration"),
        "project_name": _name_schema("Project name (used in tile paths)"),
        "stack_name": _name_schema("Stack name (used in tile paths)"),
        "type": _name_schema("Stack type, e.g. 'raw' (used in tile paths)")
    }
}

_validator = Draft7Validator(StackInfoSchema)


def parse_stack_info(obj):
    """
    Validate a stack descriptor (already decoded from JSON) and
    convert it into a StackMetadata.

    Raises:
        MetadataValidationError, naming the first offending field.
    """
    error = best_match(_validator.iter_errors(obj))
    if error is not None:
        raise MetadataValidationError(_error_field(error), error.message)

    for axis in 'xyz':
        if not math.isfinite(obj["resolution"][axis]):
            raise MetadataValidationError(f'resolution.{axis}', f"{obj['resolution'][axis]} is not a finite number")

    def int_vec(name):
        return Vec3(*(int(obj[name][axis]) for axis in 'xyz'))

    return StackMetadata( dimension=int_vec("dimension"),
                          translation=int_vec("translation"),
                          resolution=Vec3(*(float(obj["resolution"][axis]) for axis in 'xyz')),
                          zoom_levels=int(obj["num_zoom_levels"]),
                          render_tile_width=int(obj["render_tile_width"]),
                          render_tile_height=int(obj["render_tile_height"]),
                          overlap_max=int(obj["overlap_max"]),
                          grid_nr=int(obj["grid_nr"]),
                          iteration=int(obj["iteration"]),
                          file_iteration=int(obj["file_iteration"]),
                          project_name=obj["project_name"],
                          stack_name=obj["stack_name"],
                          type=obj["type"] )


def _error_field(error):
    """
    Return the dotted path of the field a jsonschema ValidationError refers to.
    For 'required' errors, the path points at the enclosing object,
    so we append the name of the (first) missing property.
    """
    path = [str(p) for p in error.absolute_path]
    if error.validator == 'required' and isinstance(error.instance, dict):
        missing = [name for name in error.validator_value if name not in error.instance]
        path += missing[:1]
    return '.'.join(path)


def stack_info_path(project_name, stack_name, type, iteration, file_iteration):
    return f'/project/{project_name}/stack/{stack_name}/type/{type}/{iteration}/{file_iteration}/stackinfo'


async def fetch_stack_info(client, identity):
    """
    Fetch and parse the stack info for the given StackIdentity.

    Args:
        client: ShardedHttpClient for the stack's server
        identity: StackIdentity

    Returns:
        StackMetadata

    Raises:
        MetadataFetchError if the request fails or the body isn't JSON.
        MetadataValidationError if the descriptor is malformed.
    """
    path = stack_info_path( identity.project_name,
                            identity.stack_name,
                            identity.type,
                            identity.iteration,
                            identity.file_iteration )

    with Timer(f"Fetching stack info {path}", logger):
        try:
            descriptor = await client.get_json(path)
        except (httpx.HTTPError, ValueError) as ex:
            raise MetadataFetchError(f"Failed to read stack information from {path}: {ex}") from ex

    return parse_stack_info(descriptor)
