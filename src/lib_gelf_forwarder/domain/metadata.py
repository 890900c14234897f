"""Ordered metadata envelope attached to every forwarded message.

Purpose
-------
Collect additional GELF fields from several sources (exception, identity,
request) while keeping a deterministic precedence: whatever was merged first
wins, later sources only add new keys.

Contents
--------
* :class:`MetadataEnvelope` - insertion-ordered mapping with ``merge``.

System Role
-----------
Built by the forwarder, consumed read-only by the GELF encoder.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any, Callable

CollisionHook = Callable[[str, Any, Any], None]


class MetadataEnvelope(Mapping[str, Any]):
    """Insertion-ordered ``str -> value`` mapping with first-wins merging.

    Examples
    --------
    >>> envelope = MetadataEnvelope({"code": 7})
    >>> envelope.merge({"code": 9, "file": "app.py"})
    ['code']
    >>> dict(envelope)
    {'code': 7, 'file': 'app.py'}
    """

    __slots__ = ("_fields",)

    def __init__(self, fields: Mapping[str, Any] | None = None) -> None:
        self._fields: dict[str, Any] = {}
        if fields:
            self.merge(fields)

    def merge(self, fields: Mapping[str, Any], *, on_collision: CollisionHook | None = None) -> list[str]:
        """Add keys from ``fields`` that are not present yet.

        Returns the keys that were skipped because an earlier source already
        provided them. ``on_collision`` receives ``(key, kept, rejected)``.
        """

        skipped: list[str] = []
        for key, value in fields.items():
            if not isinstance(key, str):
                key = str(key)
            if key in self._fields:
                skipped.append(key)
                if on_collision is not None:
                    on_collision(key, self._fields[key], value)
                continue
            self._fields[key] = value
        return skipped

    def to_dict(self) -> dict[str, Any]:
        """Return a shallow copy preserving insertion order."""

        return dict(self._fields)

    def __getitem__(self, key: str) -> Any:
        return self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"MetadataEnvelope({self._fields!r})"


__all__ = ["CollisionHook", "MetadataEnvelope"]
