"""Serialization boundary between the façade and its backends.

The backing store holds JSON strings; the local store holds native Python
values. Values cross this boundary exactly once per operation, in the
façade, so neither backend needs to know about the other's representation.
"""

import json
from typing import Any

from resilient_cache.exceptions import CacheSerializationError


def encode(value: Any) -> str:
    """
    Serialize a value for the backing store.

    Args:
        value: JSON-serializable value

    Returns:
        Compact JSON string

    Raises:
        CacheSerializationError: If the value is not JSON-serializable
    """
    try:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as e:
        raise CacheSerializationError(
            f"Value of type {type(value).__name__} is not JSON-serializable: {e}"
        ) from e


def decode(raw: Any) -> Any:
    """
    Deserialize a value read from the backing store.

    Args:
        raw: JSON text as str or bytes

    Returns:
        Decoded Python value

    Raises:
        CacheSerializationError: If the stored text is not valid JSON
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CacheSerializationError(f"Stored value is not UTF-8: {e}") from e

    if not isinstance(raw, str):
        raise CacheSerializationError(
            f"Stored value has unexpected type {type(raw).__name__}"
        )

    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise CacheSerializationError(f"Stored value is not valid JSON: {e}") from e
