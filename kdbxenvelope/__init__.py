from .version import __version__
from .common import (
    KDBXError, TruncatedInputError, MalformedEnvelopeError,
    UnsupportedVersionError, InvalidEncodingError
)
from .registry import CIPHERS, KDFS, lookup_cipher, lookup_kdf
from .variantmap import (
    VariantType, VariantEntry, VariantMap, decode_variant_map,
    encode_variant_map, interpret
)
from .header import HeaderType, HeaderRecord, decode_headers, encode_headers
from .kdbx import (
    KDBX, KDBX_MAGIC, Signature, Version, HeaderIntegrity, ContainerEnvelope,
    decode, decode_file, encode
)
