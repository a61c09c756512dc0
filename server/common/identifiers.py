"""Parsing of client-supplied record identifiers."""

from typing import Final

from server.common.exceptions import ValidationError

_MAX_ID: Final = 2 ** 63 - 1  # BigAutoField upper bound


def _is_ascii_digits(text: str) -> bool:
    # str.isdigit() also accepts superscripts such as '²'
    return text.isascii() and text.isdecimal()


def coerce_id(raw_value: object) -> int | None:
    """Convert a client value into a record id, or None if malformed.

    Args:
        raw_value: Value received from the client (int or str).

    Returns:
        Positive integer id, or None when the value cannot be one.
    """
    if isinstance(raw_value, bool):
        return None
    if isinstance(raw_value, int):
        record_id = raw_value
    elif isinstance(raw_value, str) and _is_ascii_digits(raw_value.strip()):
        record_id = int(raw_value.strip())
    else:
        return None
    if 0 < record_id <= _MAX_ID:
        return record_id
    return None


def parse_id(raw_value: object, field: str) -> int:
    """Convert a required client value into a record id.

    Args:
        raw_value: Value received from the client.
        field: Field name used in the error message.

    Returns:
        Positive integer id.

    Raises:
        ValidationError: If the value is missing or malformed.
    """
    if raw_value is None or raw_value == '':
        raise ValidationError(f'{field} is required')
    record_id = coerce_id(raw_value)
    if record_id is None:
        raise ValidationError(f'{field} is not a valid identifier')
    return record_id


def parse_id_list(raw_values: str | list[object]) -> list[int]:
    """Parse a csv string or list of ids, dropping malformed entries.

    Args:
        raw_values: Comma separated string or list of raw ids.

    Returns:
        Valid ids in input order, without duplicates.
    """
    if isinstance(raw_values, str):
        raw_values = raw_values.split(',')
    parsed: list[int] = []
    for raw_value in raw_values:
        record_id = coerce_id(raw_value)
        if record_id is not None and record_id not in parsed:
            parsed.append(record_id)
    return parsed
