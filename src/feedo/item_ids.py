"""Conversion between Google Reader item-ID encodings and 64-bit integers.

Servers emit the same item in three textual forms:

- long form: ``tag:google.com,2005:reader/item/000000000000001f``
- short form: ``000000000000001f`` (exactly 16 hex characters)
- decimal: ``31`` (used by ``stream/items/ids`` item refs)
"""

from __future__ import annotations

import re

LONG_ID_PREFIX = "tag:google.com,2005:reader/item/"

_UINT64_MASK = (1 << 64) - 1
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1

_LONG_HEX_RE = re.compile(r"[0-9a-fA-F]{1,16}")
_SHORT_HEX_RE = re.compile(r"[0-9a-fA-F]{16}")
_DECIMAL_RE = re.compile(r"[+-]?[0-9]+")


def _to_signed(value: int) -> int:
    if value > _INT64_MAX:
        return value - (1 << 64)
    return value


def parse_item_id(raw: str) -> int | None:
    if raw.startswith(LONG_ID_PREFIX):
        hex_part = raw[len(LONG_ID_PREFIX) :]
        if not _LONG_HEX_RE.fullmatch(hex_part):
            return None
        return _to_signed(int(hex_part, 16))

    if _SHORT_HEX_RE.fullmatch(raw):
        return _to_signed(int(raw, 16))

    if _DECIMAL_RE.fullmatch(raw):
        value = int(raw)
        if _INT64_MIN <= value <= _INT64_MAX:
            return value
    return None


def format_short(item_id: int) -> str:
    return f"{item_id & _UINT64_MASK:016x}"


def format_long(item_id: int) -> str:
    return f"{LONG_ID_PREFIX}{format_short(item_id)}"
