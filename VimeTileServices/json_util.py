import io
import copy
import json
import collections
from enum import Enum

import numpy as np

from jsonschema import Draft4Validator, validators
from ruamel.yaml.comments import CommentedMap, CommentedSeq
from ruamel.yaml import YAML


def flow_style(ob):
    """
    Convert the object into its corresponding ruamel.yaml subclass,
    so that it is dumped in 'flow style' (e.g. [1, 2, 3]) even when the rest
    of the document uses block style.
    """
    flow_yaml = YAML()
    flow_yaml.default_flow_style = True
    sio = io.StringIO()
    flow_yaml.dump(ob, sio)
    sio.seek(0)
    l = flow_yaml.load(sio)
    assert l.fa.flow_style()
    return l


class ExtendedEncoder(json.JSONEncoder):
    """
    Encoder that handles objects that the built-in json library doesn't handle:

    - Numpy arrays and scalars are converted into their pure-python counterparts
    - Enums are converted to their names
    - All Mapping and Sequence types are converted to dict and list, respectively.
      (For example, ruamel.yaml.CommentedMap)

    Note: namedtuples are already lists as far as the json module is concerned.
    Use ._asdict() first if you want them written as objects.
    """
    def default(self, o):
        if isinstance(o, (np.ndarray, np.number)):
            return o.tolist()
        if isinstance(o, np.dtype):
            return str(o)
        if isinstance(o, Enum):
            return o.name
        if isinstance(o, collections.abc.Mapping) and not isinstance(o, dict):
            return dict(o)
        if isinstance(o, collections.abc.Sequence) and not isinstance(o, (list, str, bytes)):
            return list(o)
        return super().default(o)


def json_dumps(*args, **kwargs):
    """
    json.dumps(), but using ExtendedEncoder, above.
    """
    if 'cls' not in kwargs:
        kwargs['cls'] = ExtendedEncoder
    return json.dumps(*args, **kwargs)


def extend_with_default(validator_class):
    """
    Returns a validator class that fills in missing properties
    with the 'default' value from the schema while validating.

    This code was adapted from the jsonschema FAQ:
    http://python-jsonschema.readthedocs.org/en/latest/faq/
    """
    validate_properties = validator_class.VALIDATORS["properties"]

    def set_defaults_and_validate(validator, properties, instance, schema):
        if isinstance(instance, dict):
            for property, subschema in properties.items():
                if "default" in subschema:
                    instance.setdefault(property, copy.deepcopy(subschema["default"]))

        for error in validate_properties(validator, properties, instance, schema):
            yield error

    return validators.extend(validator_class, {"properties" : set_defaults_and_validate})


def validate(instance, schema, cls=None, *args, inject_defaults=False, **kwargs):
    """
    Drop-in replacement for jsonschema.validate(), with the following extended functionality:

    - If inject_defaults is True, this function *modifies* the instance IN-PLACE
      to fill missing properties with their schema-provided default values.

    ruamel.yaml's CommentedMap and CommentedSeq are dict and list subclasses,
    so configs loaded from yaml validate without any special type checker.
    """
    if cls is None:
        cls = validators.validator_for(schema, default=Draft4Validator)
    cls.check_schema(schema)

    if inject_defaults:
        cls = extend_with_default(cls)

    cls(schema, *args, **kwargs).validate(instance)


def validate_and_inject_defaults(instance, schema, cls=None, *args, **kwargs):
    validate(instance, schema, cls, *args, inject_defaults=True, **kwargs)


def inject_defaults(instance, schema, include_yaml_comments=False, yaml_indent=2, cls=None):
    """
    Return a copy of instance with every schema default filled in,
    ignoring validation errors (including missing 'required' properties).

    Properties that have no default are set to the placeholder '{{NO_DEFAULT}}',
    which makes it obvious where a user must supply a value.

    If include_yaml_comments is True, CommentedMap objects are returned,
    with each property's schema "description" attached as a comment
    so that it is written out when the result is dumped as YAML.
    """
    if cls is None:
        cls = validators.validator_for(schema, default=Draft4Validator)
    cls.check_schema(schema)

    validate_properties = cls.VALIDATORS["properties"]

    def set_default_object_properties(validator, properties, instance, schema):
        if not isinstance(instance, dict):
            return
        for property, subschema in properties.items():
            if "default" in subschema:
                default = copy.deepcopy(subschema["default"])
                if default and isinstance(default, list) and subschema.get("items", {}).get("type") in ("integer", "number", "string"):
                    default = flow_style(default)
                if include_yaml_comments and isinstance(default, dict):
                    default = CommentedMap(default)
                    default.key_indent = instance.key_indent + yaml_indent
                if include_yaml_comments and isinstance(default, list) and not isinstance(default, CommentedSeq):
                    default = CommentedSeq(default)
                instance.setdefault(property, default)
            else:
                instance.setdefault(property, "{{NO_DEFAULT}}")

            if include_yaml_comments and "description" in subschema:
                comment = '\n' + subschema["description"].rstrip('\n')
                instance.yaml_set_comment_before_after_key(property, comment, instance.key_indent)

        for _error in validate_properties(validator, properties, instance, schema):
            # Ignore validation errors
            pass

    def ignore_required(validator, required, instance, schema):
        return

    extended_cls = validators.extend(cls, { "properties" : set_default_object_properties,
                                            "required": ignore_required })

    if include_yaml_comments:
        instance = CommentedMap(instance)
        instance.key_indent = 0 # monkey-patch!
    else:
        instance = dict(instance)

    for _error in extended_cls(schema).iter_errors(instance):
        pass
    return instance
