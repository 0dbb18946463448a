import math
from typing import Any, Optional

from runvault.errors import ValidationError


# Column limits: Integer is int4 on PostgreSQL, identifiers are String(64)
MAX_INT = 2 ** 31 - 1
MAX_IDENTIFIER_LENGTH = 64


def require_identifier(value: Any, field: str, max_length: int = MAX_IDENTIFIER_LENGTH) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{field} is required')
    if len(value) > max_length:
        raise ValidationError(f'{field} must be at most {max_length} characters')
    return value


def optional_identifier(value: Any, field: str, max_length: int = MAX_IDENTIFIER_LENGTH) -> Optional[str]:
    if value is None:
        return None
    return require_identifier(value, field, max_length)


def require_non_negative_int(value: Any, field: str) -> int:
    # bool is an int subclass; a JSON true is not a floor number
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f'{field} must be an integer')
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f'{field} must be an integer')
        value = int(value)
    if value < 0:
        raise ValidationError(f'{field} must be non-negative')
    if value > MAX_INT:
        raise ValidationError(f'{field} must be at most {MAX_INT}')
    return value


def optional_non_negative_number(value: Any, field: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f'{field} must be a number')
    try:
        finite = math.isfinite(value)
    except OverflowError:
        finite = False
    if not finite:
        raise ValidationError(f'{field} must be finite')
    if value < 0:
        raise ValidationError(f'{field} must be non-negative')
    return value


def require_positive_int(value: Any, field: str) -> int:
    value = require_non_negative_int(value, field)
    if value == 0:
        raise ValidationError(f'{field} must be positive')
    return value
