import functools
from io import BytesIO

from construct import Adapter, Construct, ConstructError, StreamError, SizeofError
from construct.core import stream_read, stream_size, stream_tell, stream_write


class KDBXError(Exception):
    """Base exception for KDBX envelope decoding."""

class TruncatedInputError(KDBXError):
    """Fewer bytes available than a declared or fixed-width field requires."""

class MalformedEnvelopeError(KDBXError):
    """The magic bytes do not identify a KDBX container."""

class InvalidEncodingError(KDBXError):
    """A nested length field overruns its enclosing span."""

class UnsupportedVersionError(KDBXError):
    """No header length width is known for this major version."""

    def __init__(self, major_version):
        self.major_version = major_version
        super().__init__(
            "Unsupported KDBX major version {} (expected 3 or 4)".format(major_version)
        )


def translate_errors(func):
    """Re-raise construct failures as KDBXError subclasses"""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except StreamError as e:
            raise TruncatedInputError(str(e)) from e
        except ConstructError as e:
            raise InvalidEncodingError(str(e)) from e

    return wrapper


def parse_source(subcon, source, **contextkw):
    """Parse bytes-like objects in memory, anything else as a stream"""

    if isinstance(source, (bytes, bytearray, memoryview)):
        return subcon.parse_stream(BytesIO(bytes(source)), **contextkw)
    return subcon.parse_stream(source, **contextkw)


class TagEnum(Adapter):
    """Integer <---> IntEnum member
    Tags missing from the enum are passed through as plain integers"""

    def __init__(self, subcon, enumtype):
        super().__init__(subcon)
        self.enumtype = enumtype

    def _decode(self, obj, context, path):
        try:
            return self.enumtype(obj)
        except ValueError:
            return obj

    def _encode(self, obj, context, path):
        return int(obj)


class Text(Adapter):
    """Bytes <---> str
    Undecodable UTF-8 sequences are replaced rather than rejected"""

    def _decode(self, data, con, path):
        return data.decode('utf-8', errors='replace')

    def _encode(self, text, con, path):
        return text.encode('utf-8')


class Tupled(Adapter):
    """ListContainer <---> tuple"""

    def _decode(self, obj, context, path):
        return tuple(obj)

    def _encode(self, obj, context, path):
        return list(obj)


class BoundedPrefixed(Construct):
    """Length-prefixed bytes that must fit inside the enclosing stream.

    Unlike Prefixed, a declared size running past the end of the stream is
    an encoding error, not a short read.
    """

    def __init__(self, lengthfield):
        super().__init__()
        self.lengthfield = lengthfield

    def _parse(self, stream, context, path):
        length = self.lengthfield._parsereport(stream, context, path)
        remaining = stream_size(stream) - stream_tell(stream, path)
        if length > remaining:
            raise InvalidEncodingError(
                "declared size {} overruns span, {} bytes left".format(length, remaining)
            )
        return stream_read(stream, length, path)

    def _build(self, obj, stream, context, path):
        obj = bytes(obj)
        self.lengthfield._build(len(obj), stream, context, path)
        stream_write(stream, obj, len(obj), path)
        return obj

    def _sizeof(self, context, path):
        raise SizeofError("size depends on the length field", path=path)
