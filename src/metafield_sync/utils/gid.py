"""Helpers for Shopify global ids (``gid://shopify/<Kind>/<n>``)."""

GID_PREFIX = "gid://shopify/"


def to_gid(kind: str, numeric_id: int | str) -> str:
    """Build a global id such as ``gid://shopify/InventoryItem/123``.

    Values that are already global ids are returned unchanged.
    """
    value = str(numeric_id)
    if value.startswith(GID_PREFIX):
        return value
    return f"{GID_PREFIX}{kind}/{value}"


def legacy_id(reference: int | str) -> int:
    """
    Extract the numeric id from an opaque reference.

    Accepts a bare integer, a digit string, or a global id whose last path
    segment is numeric (query strings such as ``?inventory_item_id=`` are ignored).

    Args:
        reference: Integer id, digit string or global id

    Returns:
        The numeric id

    Raises:
        ValueError: If no numeric id can be extracted
    """
    if isinstance(reference, bool):
        raise ValueError(f"Not a valid reference: {reference!r}")
    if isinstance(reference, int):
        return reference

    tail = str(reference).split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1].strip()
    if not tail.isdigit():
        raise ValueError(f"Reference has no numeric id: {reference!r}")
    return int(tail)
