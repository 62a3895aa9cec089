"""Outer header stream: type-length-value records up to EndOfHeader.

The length field is an Int16ul in KDBX3 and an Int32ul in KDBX4. Each record
keeps its raw bytes, and known types also get a typed projection of them.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from construct import (
    Adapter, Byte, Bytes, Construct, Container, FocusedSeq, GreedyBytes,
    Int16ul, Int32ul, Int64ul, Rebuild, RepeatUntil, RestreamData,
    SizeofError, Struct, Switch, Terminated, len_, this
)
from construct.core import evaluate

from .common import (
    TagEnum, Text, Tupled, UnsupportedVersionError, parse_source,
    translate_errors
)
from .variantmap import VariantDictionary

log = logging.getLogger(__name__)


# https://github.com/dlech/KeePass2.x/blob/dbb9d60095ef39e6abc95d708fb7d03ce5ae865e/KeePassLib/Serialization/KdbxFile.cs#L234-L246
class HeaderType(IntEnum):
    END_OF_HEADER = 0
    COMMENT = 1
    CIPHER_ID = 2
    COMPRESSION_FLAGS = 3
    MASTER_SEED = 4
    TRANSFORM_SEED = 5
    TRANSFORM_ROUNDS = 6
    ENCRYPTION_IV = 7
    STREAM_KEY = 8
    STREAM_START_BYTES = 9
    RANDOM_STREAM_ID = 10
    KDF_PARAMETERS = 11
    PUBLIC_CUSTOM_DATA = 12


@dataclass(frozen=True)
class HeaderRecord:
    """One header TLV record.

    `type` is a HeaderType, or a plain int for tags this library does not
    know. `typed_value` is the projection of `raw_value` selected by `type`
    (None for EndOfHeader and unknown tags); `raw_value` is always kept.
    """

    type: int
    raw_value: bytes
    typed_value: Any = None

    @property
    def length(self):
        return len(self.raw_value)


# typed projection of a record's raw value, selected by its type
HeaderValue = Switch(
    this.type,
    {HeaderType.COMMENT: Text(GreedyBytes),
     HeaderType.CIPHER_ID: Bytes(16),
     HeaderType.COMPRESSION_FLAGS: Int32ul,
     HeaderType.MASTER_SEED: GreedyBytes,
     HeaderType.TRANSFORM_SEED: GreedyBytes,
     HeaderType.TRANSFORM_ROUNDS: Int64ul,
     HeaderType.ENCRYPTION_IV: GreedyBytes,
     HeaderType.STREAM_KEY: GreedyBytes,
     HeaderType.STREAM_START_BYTES: GreedyBytes,
     HeaderType.RANDOM_STREAM_ID: Int32ul,
     HeaderType.KDF_PARAMETERS: VariantDictionary,
     HeaderType.PUBLIC_CUSTOM_DATA: VariantDictionary,
    }
)


class HeaderRecordAdapter(Adapter):
    def _decode(self, obj, context, path):
        log.debug("header %r, %d bytes", obj.type, obj.length)
        return HeaderRecord(obj.type, obj.raw_value, obj.typed_value)

    def _encode(self, obj, context, path):
        return Container(
            type=obj.type,
            raw_value=obj.raw_value,
            typed_value=obj.typed_value
        )


def DynamicHeaderItem(lengthfield):
    return HeaderRecordAdapter(
        Struct(
            "type" / TagEnum(Byte, HeaderType),
            "length" / Rebuild(lengthfield, len_(this.raw_value)),
            "raw_value" / Bytes(this.length),
            # parsed from raw_value, never written back
            "typed_value" / RestreamData(this.raw_value, HeaderValue),
        )
    )


def DynamicHeader(lengthfield):
    return Tupled(
        RepeatUntil(
            lambda item, a, b: item.type == HeaderType.END_OF_HEADER,
            DynamicHeaderItem(lengthfield)
        )
    )


DynamicHeader3 = DynamicHeader(Int16ul)
DynamicHeader4 = DynamicHeader(Int32ul)

DynamicHeaders = {
    3: DynamicHeader3,
    4: DynamicHeader4,
}


class UnsupportedHeader(Construct):
    """Stands in for the header stream of a major version with no known
    length width; refuses to parse or build."""

    def __init__(self, major_version):
        super().__init__()
        self.major_version = major_version

    def _parse(self, stream, context, path):
        raise UnsupportedVersionError(evaluate(self.major_version, context))

    def _build(self, obj, stream, context, path):
        raise UnsupportedVersionError(evaluate(self.major_version, context))

    def _sizeof(self, context, path):
        raise SizeofError("header stream size depends on its records", path=path)


def _dynamic_header(major_version):
    try:
        return DynamicHeaders[major_version]
    except KeyError:
        raise UnsupportedVersionError(major_version) from None


@translate_errors
def decode_headers(source, major_version):
    """Decode header records from bytes or a binary stream, up to and
    including the EndOfHeader record.

    Args:
        source: bytes-like object holding exactly the header span, or a
            readable binary stream positioned at the first record. Stream
            sources are left just past EndOfHeader.
        major_version: KDBX major version, selects the length field width

    Returns:
        tuple of HeaderRecord, ending with the EndOfHeader record

    Raises:
        UnsupportedVersionError: major_version is not 3 or 4
        TruncatedInputError: the input ends inside a record, or a typed
            value is shorter than its fixed width
        InvalidEncodingError: a nested variant map is malformed, or bytes
            follow EndOfHeader in a bytes-like source
    """
    header = _dynamic_header(major_version)
    if isinstance(source, (bytes, bytearray, memoryview)):
        # the span must end with EndOfHeader
        header = FocusedSeq("records", "records" / header, Terminated)
    return parse_source(header, source)


@translate_errors
def encode_headers(records, major_version):
    return _dynamic_header(major_version).build(records)
