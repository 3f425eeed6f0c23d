"""Snapshot serialization and merge logic."""

from metafield_sync.processing.merger import build_snapshot, coerce_quantity, merge_location
from metafield_sync.processing.metafield_codec import DecodeError, decode, decode_or_none, encode

__all__ = [
    "DecodeError",
    "build_snapshot",
    "coerce_quantity",
    "decode",
    "decode_or_none",
    "encode",
    "merge_location",
]
