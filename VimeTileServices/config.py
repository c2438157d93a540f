import io
import os
import json

from ruamel.yaml import YAML

from .json_util import validate_and_inject_defaults, inject_defaults, json_dumps
from .http_util import DEFAULT_TIMEOUT, DEFAULT_MAX_CONNECTIONS
from .levels import DEFAULT_TOP_LEVEL_MAX_DIM

VimeServiceSchema = \
{
    "description": "Parameters specifying a VIME stack",
    "type": "object",
    "required": ["source-url"],
    "default": {},
    "properties": {
        "source-url": {
            "description": "Connection string of the stack, e.g.\n"
                           "http://vime.example.org/project/fly/stack/sec26/neuroglancer/type/raw/3/0",
            "type": "string",
            "minLength": 1
        },
        "mirror-urls": {
            "description": "Additional base URLs that serve exactly the same tiles.\n"
                           "Tile requests are spread across the source server and all mirrors.",
            "type": "array",
            "items": { "type": "string", "minLength": 1 },
            "default": []
        },
        "encoding": {
            "description": "Image format of the tiles.",
            "type": "string",
            "enum": ["jpeg"],
            "default": "jpeg"
        },
        "timeout": {
            "description": "HTTP timeout, in seconds.",
            "type": "number",
            "exclusiveMinimum": True,
            "minimum": 0,
            "default": DEFAULT_TIMEOUT
        },
        "max-connections": {
            "description": "Maximum number of concurrent HTTP connections.",
            "type": "integer",
            "minimum": 1,
            "default": DEFAULT_MAX_CONNECTIONS
        }
    }
}

LevelsSchema = \
{
    "description": "Settings for the resolution levels of the stack",
    "type": "object",
    "default": {},
    "properties": {
        "auto-level-max-dim": {
            "description": "If the stack info doesn't specify the number of zoom levels,\n"
                           "use as many levels as needed for the coarsest level to be no wider\n"
                           "(in X and Y) than this many pixels.",
            "type": "integer",
            "minimum": 1,
            "default": DEFAULT_TOP_LEVEL_MAX_DIM
        }
    }
}

VimeVolumeSchema = \
{
    "$schema": "http://json-schema.org/draft-04/schema#",
    "description": "Describes a VIME stack and how to access it.",
    "type": "object",
    "required": ["vime"],
    "properties": {
        "vime": VimeServiceSchema,
        "levels": LevelsSchema
    }
}


def load_config(config_path):
    """
    Load a config file (yaml or json), validate it against
    VimeVolumeSchema and fill in defaults for missing entries.

    Raises:
        jsonschema.ValidationError
    """
    with open(config_path, 'r') as f:
        if os.path.splitext(config_path)[1] == '.json':
            config = json.load(f)
        else:
            config = YAML(typ='rt').load(f)

    validate_and_inject_defaults(config, VimeVolumeSchema)
    return config


def default_config(syntax="yaml"):
    """
    Return the default config (as a string), for the user to fill in.

    syntax: "json", "yaml", or "yaml-with-comments"
    """
    assert syntax in ("json", "yaml", "yaml-with-comments")

    if syntax == "json":
        return json_dumps(inject_defaults({}, VimeVolumeSchema), indent=4)

    yaml = YAML(typ='rt')
    yaml.default_flow_style = False
    config = inject_defaults({}, VimeVolumeSchema, include_yaml_comments=(syntax == "yaml-with-comments"))
    stream = io.StringIO()
    yaml.dump(config, stream)
    return stream.getvalue()


def dump_schema():
    return json_dumps(VimeVolumeSchema, indent=4)
