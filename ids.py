"""Composite id helpers shared by the builder, the processor chain and the index.

A composite id (aka shard key) has the form ``<prefix>!<postfix>``: the prefix
is hashed by the sharding layer to pick a partition and the postfix is the
document's unique identifier. The separator is never escaped.
"""

SHARD_KEY_SEPARATOR = "!"


def make_composite_id(prefix: str, postfix: str) -> str:
    """Join a shard key prefix and a document id.

    Examples:
        >>> make_composite_id("PersonEU", "7")
        'PersonEU!7'
    """
    return f"{prefix}{SHARD_KEY_SEPARATOR}{postfix}"


def split_composite_id(key: str) -> tuple[str, str]:
    """Split a composite id into ``(prefix, postfix)`` at the first separator.

    Raises:
        ValueError: if ``key`` contains no separator.

    Examples:
        >>> split_composite_id("Person!42")
        ('Person', '42')
        >>> split_composite_id("Person!a!b")
        ('Person', 'a!b')
    """
    prefix, sep, postfix = key.partition(SHARD_KEY_SEPARATOR)
    if not sep:
        raise ValueError(f"Not a composite id (missing '{SHARD_KEY_SEPARATOR}'): {key!r}")
    return prefix, postfix


__all__ = ["SHARD_KEY_SEPARATOR", "make_composite_id", "split_composite_id"]
