from trivia.errors import ValidationError


def int_field(data, key, default=None, required=False):
    """Read an integer from a JSON body, rejecting floats, bools and strings."""
    value = (data or {}).get(key, default)
    if value is None:
        if required:
            raise ValidationError(f'{key} is required')
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'{key} must be an integer')
    return value
