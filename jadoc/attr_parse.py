import datetime
import jadoc
from .errors import ValidationError

# declared types that are stored as received, they could be anything
PASSTHROUGH_TYPES = (object, dict, list)


def parse_attr(field, attr_val):
    """
    Parse the supplied `attr_val` so it can be stored in the resource attribute described by `field`

    :param field: ResourceField, the declared type is used for coercion
    :param attr_val: jsonapi attribute value
    :return: processed value
    """
    if attr_val is None:
        return attr_val

    python_type = field.type
    if python_type is None or python_type in PASSTHROUGH_TYPES:
        return attr_val

    # objects and arrays are only accepted by passthrough types and custom parsers
    if isinstance(python_type, type) and isinstance(attr_val, (dict, list)):
        raise ValidationError(f'Invalid {python_type.__name__} value {attr_val!r} for "{field.name}"')

    """
        Parse datetime and date values from their ISO 8601 representation
        If another format is used, the resource should use a custom type (a callable that parses the string)
    """
    if python_type in (datetime.datetime, datetime.date, datetime.time):
        if isinstance(attr_val, python_type):
            return attr_val
        try:
            return python_type.fromisoformat(str(attr_val))
        except ValueError as exc:
            raise ValidationError(f'Invalid {python_type.__name__} value "{attr_val}" for "{field.name}": {exc}')

    if python_type is bool and not isinstance(attr_val, bool):
        raise ValidationError(f'Invalid boolean value "{attr_val}" for "{field.name}"')

    if isinstance(python_type, type) and isinstance(attr_val, python_type):
        return attr_val

    if python_type is int and isinstance(attr_val, float) and not attr_val.is_integer():
        raise ValidationError(f'Invalid int value {attr_val!r} for "{field.name}"')

    try:
        result = python_type(attr_val)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f'Invalid value "{attr_val}" for "{field.name}": {exc}')
    jadoc.log.debug(f"Converted {field.name} value {attr_val!r} to {python_type}")
    return result
