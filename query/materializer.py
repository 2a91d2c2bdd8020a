"""
Row Materializer

Turns flat result rows into nested, JSON-ready result trees. Columns are
decoded by their SQL alias (the output path), so the shape of the tree follows
the entity descriptor and not the cursor position.
"""

import logging
from datetime import datetime, date, time
from decimal import Decimal
from typing import Any, Iterable, Mapping
from uuid import UUID

logger = logging.getLogger(__name__)

# Marker for values whose runtime type has no decoder
_SKIP = object()


def _decode_bytes(value: bytes) -> str:
    return value.decode("utf-8", errors="replace")


_DECODERS = {
    type(None): lambda v: None,
    bool: lambda v: v,
    int: lambda v: v,
    float: lambda v: v,
    str: lambda v: v,
    bytes: _decode_bytes,
    bytearray: lambda v: _decode_bytes(bytes(v)),
    memoryview: lambda v: _decode_bytes(v.tobytes()),
    datetime: lambda v: v.isoformat(),
    date: lambda v: v.isoformat(),
    time: lambda v: v.isoformat(),
    UUID: str,
    Decimal: float,
}


def decode_value(value: Any) -> Any:
    """
    Decode a driver value into a JSON-native one.
    Returns the _SKIP marker when no decoder handles the value's type.
    """
    for cls in type(value).__mro__:
        decoder = _DECODERS.get(cls)
        if decoder is not None:
            return decoder(value)
    return _SKIP


class RowMaterializer:
    """Rebuilds nested result trees from flat rows."""

    def _decode_row(self, record: Mapping, output_fields: list[str]) -> dict[str, Any]:
        decoded = {}
        for path in output_fields:
            value = decode_value(record[path])
            if value is _SKIP:
                logger.debug(f"No decoder for column '{path}' of type {type(record[path]).__name__}, skipping")
                continue
            decoded[path] = value
        return decoded

    def _nest(self, decoded: dict[str, Any], output_fields: list[str]) -> dict[str, Any]:
        """
        Group contiguous "parent.key" paths into one dict under "parent".
        Non-dotted paths are attached at the top level.
        """
        result: dict[str, Any] = {}
        i = 0
        while i < len(output_fields):
            path = output_fields[i]
            if "." not in path:
                if path in decoded:
                    result[path] = decoded[path]
                i += 1
                continue

            parent = path.split(".", 1)[0]
            nested = {}
            while i < len(output_fields) and "." in output_fields[i] \
                    and output_fields[i].split(".", 1)[0] == parent:
                current = output_fields[i]
                if current in decoded:
                    nested[current.split(".", 1)[1]] = decoded[current]
                i += 1
            result[parent] = nested
        return result

    def materialize(self, records: Iterable[Mapping], output_fields: list[str]) -> list[dict[str, Any]]:
        """
        Materialize every row into a nested dict.

        Stops at the first row whose leading output field is null (or has no
        decoder) and returns the rows collected so far.
        """
        results = []
        if not output_fields:
            return results

        first = output_fields[0]
        for record in records:
            decoded = self._decode_row(record, output_fields)
            if decoded.get(first) is None:
                break
            results.append(self._nest(decoded, output_fields))
        return results
