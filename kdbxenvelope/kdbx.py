"""KDBX container envelope: fixed prefix, header stream, integrity fields
and the still-encrypted payload.

Nothing here decrypts or verifies anything; the payload and the integrity
fields are carried as opaque bytes.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Union

from construct import (
    Adapter, Bytes, Container, GreedyBytes, If, Int16ul, Int32ul, Struct,
    Switch, SymmetricAdapter, this
)

from .common import (
    MalformedEnvelopeError, TagEnum, parse_source, translate_errors
)
from .header import DynamicHeaders, HeaderRecord, HeaderType, UnsupportedHeader
from .registry import UNKNOWN, lookup_cipher

log = logging.getLogger(__name__)

KDBX_MAGIC = 0x9AA2D903


class Signature(IntEnum):
    V1 = 0xB54BFB65
    V2_PRE = 0xB54BFB66
    V2 = 0xB54BFB67


@dataclass(frozen=True)
class Version:
    major: int
    minor: int

    def __str__(self):
        return "{}.{}".format(self.major, self.minor)


@dataclass(frozen=True)
class HeaderIntegrity:
    """Header hash fields of KDBX4 files, as stored. Not verified."""

    sha256: bytes
    hmac_sha256: bytes


@dataclass(frozen=True)
class ContainerEnvelope:
    magic: int
    signature: Union[Signature, int]
    version: Version
    headers: tuple
    header_integrity: Optional[HeaderIntegrity]
    payload: bytes

    def __post_init__(self):
        object.__setattr__(self, 'headers', tuple(self.headers))
        ends = [
            i for i, record in enumerate(self.headers)
            if record.type == HeaderType.END_OF_HEADER
        ]
        if ends != [len(self.headers) - 1]:
            raise ValueError("headers must end with exactly one EndOfHeader record")
        if (self.header_integrity is not None) != (self.version.major >= 4):
            raise ValueError(
                "header integrity fields belong to major version 4 and later only"
            )

    @property
    def signature_name(self):
        if isinstance(self.signature, Signature):
            return self.signature.name.lower().replace('_', '')
        return UNKNOWN

    @property
    def payload_length(self):
        return len(self.payload)

    def header(self, header_type) -> Optional[HeaderRecord]:
        """First header record of the given type, or None"""
        for record in self.headers:
            if record.type == header_type:
                return record
        return None

    @property
    def cipher_name(self):
        record = self.header(HeaderType.CIPHER_ID)
        return None if record is None else lookup_cipher(record.typed_value)

    @property
    def kdf_name(self):
        record = self.header(HeaderType.KDF_PARAMETERS)
        if record is None:
            return None
        entry = record.typed_value.get('$UUID')
        return None if entry is None else entry.kdf_name


class Magic(SymmetricAdapter):
    """Rejects anything but the KDBX magic number"""

    def _decode(self, obj, context, path):
        if obj != KDBX_MAGIC:
            raise MalformedEnvelopeError(
                "bad magic bytes 0x{:08X}, not a KDBX file".format(obj)
            )
        return obj


class EnvelopeAdapter(Adapter):
    def _decode(self, obj, context, path):
        integrity = None
        if obj.header_integrity is not None:
            integrity = HeaderIntegrity(
                obj.header_integrity.sha256,
                obj.header_integrity.hmac_sha256
            )
        envelope = ContainerEnvelope(
            magic=obj.magic,
            signature=obj.signature,
            version=Version(obj.major_version, obj.minor_version),
            headers=obj.headers,
            header_integrity=integrity,
            payload=obj.payload,
        )
        log.debug(
            "KDBX %s envelope: %d headers, %d payload bytes",
            envelope.version, len(envelope.headers), envelope.payload_length
        )
        return envelope

    def _encode(self, obj, context, path):
        integrity = None
        if obj.header_integrity is not None:
            integrity = Container(
                sha256=obj.header_integrity.sha256,
                hmac_sha256=obj.header_integrity.hmac_sha256
            )
        return Container(
            magic=obj.magic,
            signature=obj.signature,
            minor_version=obj.version.minor,
            major_version=obj.version.major,
            headers=obj.headers,
            header_integrity=integrity,
            payload=obj.payload,
        )


KDBX = EnvelopeAdapter(
    Struct(
        "magic" / Magic(Int32ul),
        "signature" / TagEnum(Int32ul, Signature),
        "minor_version" / Int16ul,
        "major_version" / Int16ul,
        "headers" / Switch(
            this.major_version,
            DynamicHeaders,
            default=UnsupportedHeader(this.major_version)
        ),
        "header_integrity" / If(
            this.major_version >= 4,
            Struct(
                "sha256" / Bytes(4),
                "hmac_sha256" / Bytes(4),
            )
        ),
        "payload" / GreedyBytes,
    )
)


@translate_errors
def decode(source):
    """Decode a KDBX envelope from bytes or a readable binary stream.

    The whole remainder of the source after the header fields is read into
    `payload`; bound the source if it may be large or untrusted.

    Raises:
        MalformedEnvelopeError: the magic bytes do not match
        TruncatedInputError: the data ends inside a fixed-width field or record
        UnsupportedVersionError: the major version is not 3 or 4
        InvalidEncodingError: a nested variant map is malformed
    """
    return parse_source(KDBX, source)


def decode_file(filename):
    with open(filename, 'rb') as f:
        return decode(f)


@translate_errors
def encode(envelope):
    """Build the byte layout of `envelope`. Header lengths are recomputed
    from each record's raw value."""
    return KDBX.build(envelope)
