"""Normalize combinator input into a single cursor of ``(key, value)`` pairs."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from promissory.errors import InvalidArgumentError

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterator


def iter_items(values: Any) -> Iterator[tuple[Hashable, Any]]:
    """Return a forward-only cursor over ``(key, value)`` pairs.

    Mappings yield their own items; any other iterable (sequence, generator,
    iterator) yields ``(position, value)``.

    Raises:
        InvalidArgumentError: If *values* is not iterable. Raised eagerly,
            before anything is consumed.
    """
    if isinstance(values, Mapping):
        return iter(values.items())
    if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
        raise InvalidArgumentError(
            f"Expected an iterable of promises, got {type(values).__name__}",
            hint="Pass a list, tuple, mapping or generator of Promise objects.",
        )
    return enumerate(values)
