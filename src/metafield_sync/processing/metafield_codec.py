"""Serialization of location snapshots stored in the variant metafield."""

import structlog
from pydantic import ValidationError

from metafield_sync.models.snapshot import Snapshot

log = structlog.stdlib.get_logger()


class DecodeError(ValueError):
    """Raised when a stored metafield value is not a well-formed snapshot."""


def encode(snapshot: Snapshot) -> str:
    """
    Serialize a snapshot to the JSON string stored in the metafield.

    Output is compact and keeps the ``id``/``updatedAt`` keys storefront
    consumers read; location order is preserved.

    Args:
        snapshot: Snapshot to serialize

    Returns:
        JSON string
    """
    return snapshot.model_dump_json(by_alias=True)


def decode(value: str | bytes | None) -> Snapshot:
    """
    Parse a stored metafield value into a snapshot.

    Args:
        value: Raw metafield value

    Returns:
        The decoded Snapshot

    Raises:
        DecodeError: If the value is missing, empty, not JSON, or fails validation
    """
    if value is None:
        raise DecodeError("No stored snapshot")
    if isinstance(value, bytes):
        try:
            value = value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Stored snapshot is not valid UTF-8: {e.reason}") from e
    if not value.strip():
        raise DecodeError("Stored snapshot is empty")

    try:
        return Snapshot.model_validate_json(value)
    except ValidationError as e:
        raise DecodeError(f"Malformed snapshot: {e.error_count()} validation error(s)") from e

def decode_or_none(value: str | bytes | None) -> Snapshot | None:
    """Decode a stored value, treating anything malformed as absent."""
    try:
        return decode(value)
    except DecodeError as e:
        if value:
            log.warning("stored_snapshot_unreadable", error=str(e))
        return None
