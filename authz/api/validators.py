"""Input validation helpers for identifiers and id lists."""
from __future__ import annotations
from typing import Any

from authz.core.exceptions import ValidationError
from authz.core.models import ID_LENGTH

MAX_BATCH_SIZE = 1000


def validate_id(value: Any, field: str) -> str:
    """Validate one opaque identifier.

    Args:
        value: Raw value from a path segment or payload
        field: Field name for error messages (e.g., "userId")

    Returns:
        The identifier, unchanged (ids are opaque)

    Raises:
        ValidationError: If the value is not a non-empty string, carries
            surrounding whitespace or is too long
    """
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    if not value.strip():
        raise ValidationError(f"{field} is required")
    if value != value.strip():
        raise ValidationError(f"{field} must not start or end with whitespace")
    if len(value) > ID_LENGTH:
        raise ValidationError(f"{field} must not exceed {ID_LENGTH} characters")
    return value


def validate_id_list(value: Any, field: str, allow_empty: bool = True) -> list[str]:
    """Validate a list of identifiers, dropping duplicates but keeping order."""
    if not isinstance(value, list):
        raise ValidationError(f"{field} must be an array of strings")
    if len(value) > MAX_BATCH_SIZE:
        raise ValidationError(f"{field} must not contain more than {MAX_BATCH_SIZE} entries")

    ids: list[str] = []
    seen: set[str] = set()
    for index, item in enumerate(value):
        item_id = validate_id(item, f"{field}[{index}]")
        if item_id not in seen:
            seen.add(item_id)
            ids.append(item_id)

    if not ids and not allow_empty:
        raise ValidationError(f"{field} must contain at least one id")
    return ids


def require_object(payload: Any) -> dict:
    """Ensure a JSON body or RPC payload is an object."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def required_field(payload: dict, field: str) -> Any:
    if field not in payload:
        raise ValidationError(f"{field} is required")
    return payload[field]
