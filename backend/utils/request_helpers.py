from flask import request
from flask_login import current_user
from exceptions import Forbidden, ValidationError


def get_payload():
    return request.get_json(silent=True) or {}


def payload_value(payload, *keys, default=None):
    if not payload:
        return default
    for key in keys:
        if key in payload and payload[key] not in (None, ''):
            return payload[key]
    return default


def require_value(payload, *keys):
    value = payload_value(payload, *keys)
    if value is None:
        raise ValidationError(f'Missing required field: {keys[0]}')
    return value


def to_int(value, name):
    """Integer ids only: ints or digit strings, never bools, floats or containers."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValidationError(f'Invalid {name}')


def require_int(payload, *keys):
    return to_int(require_value(payload, *keys), keys[0])


def optional_int(payload, *keys):
    value = payload_value(payload, *keys)
    return None if value is None else to_int(value, keys[0])


def check_acting_user(payload, *keys):
    """A body-supplied actor id must name the session user."""
    claimed = payload_value(payload, *keys)
    if claimed is not None and str(claimed) != str(current_user.id):
        raise Forbidden('Acting user does not match the session.')
