"""Variant map ("variant dictionary"): the typed key/value list KDBX4 uses
for KDF parameters and public custom data.

Layout::

    version     Int16ul
    entries     type(1) key_size(4) key value_size(4) value
                ... until a single type == 0x00 byte
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from construct import (
    Adapter, Byte, Container, GreedyBytes, If, Int16ul, Int32sl, Int32ul,
    Int64sl, Int64ul, RepeatUntil, Struct
)

from .common import (
    BoundedPrefixed, TagEnum, Text, TruncatedInputError, parse_source,
    translate_errors
)
from .registry import lookup_kdf

log = logging.getLogger(__name__)

UUID_KEY = b'$UUID'


class VariantType(IntEnum):
    END = 0x00
    UINT32 = 0x04
    UINT64 = 0x05
    BOOL = 0x08
    INT32 = 0x0C
    INT64 = 0x0D
    STRING = 0x18
    BYTE_ARRAY = 0x42


@dataclass(frozen=True)
class VariantEntry:
    value_type: int
    key: bytes
    value: bytes

    def __post_init__(self):
        if self.value_type == VariantType.END:
            raise ValueError("the terminator cannot be stored as an entry")

    @property
    def key_text(self):
        return self.key.decode('utf-8', errors='replace')

    @property
    def typed_value(self):
        return interpret(self)

    @property
    def kdf_name(self) -> Optional[str]:
        """Registry name for a 16-byte $UUID entry, None for anything else"""
        if (self.key == UUID_KEY and self.value_type == VariantType.BYTE_ARRAY
                and len(self.value) == 16):
            return lookup_kdf(self.value)
        return None


@dataclass(frozen=True)
class VariantMap:
    format_version: int
    entries: tuple = ()

    def __len__(self):
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def get(self, key, default=None):
        """First entry stored under `key` (str or bytes)"""
        if isinstance(key, str):
            key = key.encode('utf-8')
        for entry in self.entries:
            if entry.key == key:
                return entry
        return default

    def __getitem__(self, key):
        entry = self.get(key)
        if entry is None:
            raise KeyError(key)
        return entry


class Boolean(Adapter):
    """Stored integer of any width <---> bool"""

    def _decode(self, data, con, path):
        if not data:
            raise TruncatedInputError("empty value for a boolean entry")
        return any(data)

    def _encode(self, obj, con, path):
        return Int32ul.build(int(obj))


# presentation of the raw value bytes, by value type
EntryValue = {
    VariantType.UINT32: Int32ul,
    VariantType.UINT64: Int64ul,
    VariantType.BOOL: Boolean(GreedyBytes),
    VariantType.INT32: Int32sl,
    VariantType.INT64: Int64sl,
    VariantType.STRING: Text(GreedyBytes),
    VariantType.BYTE_ARRAY: GreedyBytes,
}


def _has_body(this):
    return this.value_type != VariantType.END


VariantDictionaryItem = Struct(
    "value_type" / TagEnum(Byte, VariantType),
    "key" / If(_has_body, BoundedPrefixed(Int32ul)),
    "value" / If(_has_body, BoundedPrefixed(Int32ul)),
)


class VariantEntries(Adapter):
    """Items up to and including the terminator <---> tuple of VariantEntry"""

    def _decode(self, items, context, path):
        return tuple(
            VariantEntry(item.value_type, item.key, item.value)
            for item in items[:-1]
        )

    def _encode(self, entries, context, path):
        items = [
            Container(value_type=e.value_type, key=e.key, value=e.value)
            for e in entries
        ]
        items.append(Container(value_type=VariantType.END, key=None, value=None))
        return items


class VariantMapAdapter(Adapter):
    def _decode(self, obj, context, path):
        log.debug(
            "variant map version 0x%04X with %d entries",
            obj.version, len(obj.entries)
        )
        return VariantMap(format_version=obj.version, entries=obj.entries)

    def _encode(self, obj, context, path):
        return Container(version=obj.format_version, entries=obj.entries)


VariantDictionary = VariantMapAdapter(
    Struct(
        "version" / Int16ul,
        "entries" / VariantEntries(
            RepeatUntil(
                lambda item, a, b: item.value_type == VariantType.END,
                VariantDictionaryItem
            )
        ),
    )
)


@translate_errors
def decode_variant_map(data):
    """Decode a variant map from bytes or a binary stream.

    A stream is read to its end first, so pipes and sockets work too; the
    map is the start of what was read.

    Raises:
        TruncatedInputError: a fixed-width field or the terminator is missing
        InvalidEncodingError: a key or value size runs past the end of data
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        # sizes are checked against the bytes left, which needs seek/tell
        data = data.read()
    return parse_source(VariantDictionary, data)


@translate_errors
def encode_variant_map(vmap):
    return VariantDictionary.build(vmap)


@translate_errors
def interpret(entry):
    """Typed view of an entry's stored bytes. Never alters the entry.

    Fixed-width types read their width from the front of the value; a value
    too short for its type raises TruncatedInputError. Unknown types come back
    as the raw bytes.
    """
    subcon = EntryValue.get(entry.value_type, GreedyBytes)
    return subcon.parse(entry.value)
