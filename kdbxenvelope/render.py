"""Human-readable and JSON views of a decoded envelope.

Rendering only reads the decoded model; it never goes back to the bytes
and never changes what was decoded.
"""

import json
from uuid import UUID

from .common import KDBXError
from .header import HeaderType
from .registry import lookup_cipher
from .variantmap import VariantMap, VariantType

HEADER_LABELS = {
    HeaderType.END_OF_HEADER: 'EndOfHeader',
    HeaderType.COMMENT: 'Comment',
    HeaderType.CIPHER_ID: 'Cipher',
    HeaderType.COMPRESSION_FLAGS: 'CompressionFlags',
    HeaderType.MASTER_SEED: 'MasterSeed',
    HeaderType.TRANSFORM_SEED: 'TransformSeed',
    HeaderType.TRANSFORM_ROUNDS: 'TransformRounds',
    HeaderType.ENCRYPTION_IV: 'EncryptionIV',
    HeaderType.STREAM_KEY: 'StreamKey',
    HeaderType.STREAM_START_BYTES: 'StreamStartBytes',
    HeaderType.RANDOM_STREAM_ID: 'RandomStreamID',
    HeaderType.KDF_PARAMETERS: 'KDFParameters',
    HeaderType.PUBLIC_CUSTOM_DATA: 'PublicCustomData',
}

VARIANT_LABELS = {
    VariantType.UINT32: 'UInt32',
    VariantType.UINT64: 'UInt64',
    VariantType.BOOL: 'Bool',
    VariantType.INT32: 'Int32',
    VariantType.INT64: 'Int64',
    VariantType.STRING: 'String',
    VariantType.BYTE_ARRAY: 'ByteArray',
}


def hexlify(data):
    return '0x' + data.hex().upper()


def header_label(header_type):
    return HEADER_LABELS.get(header_type, 'Unknown(0x{:02X})'.format(header_type))


def variant_label(value_type):
    return VARIANT_LABELS.get(value_type, 'Unknown(0x{:02X})'.format(value_type))


def _entry_value(entry):
    """(value, malformed) for a variant entry"""
    try:
        return entry.typed_value, False
    except KDBXError:
        return entry.value, True


def format_entry_value(entry):
    kdf_name = entry.kdf_name
    if kdf_name is not None:
        return '{} ({})'.format(UUID(bytes=entry.value), kdf_name)
    value, malformed = _entry_value(entry)
    if malformed:
        return hexlify(value) + ' (malformed)'
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, bytes):
        return hexlify(value)
    return str(value)


def format_header_value(record):
    value = record.typed_value
    if record.type == HeaderType.CIPHER_ID:
        return '{} ({})'.format(lookup_cipher(value), UUID(bytes=value))
    if record.type == HeaderType.COMPRESSION_FLAGS:
        return '0x{:X}'.format(value)
    if isinstance(value, VariantMap):
        lines = ['\t\tFormatVersion: 0x{:04X}'.format(value.format_version)]
        for entry in value:
            lines.append(
                "\t\t{}\t| Key: '{}' | Size: {} bytes | Value: {}".format(
                    variant_label(entry.value_type), entry.key_text,
                    len(entry.value), format_entry_value(entry)
                )
            )
        return '\n' + '\n'.join(lines)
    if isinstance(value, bytes):
        return hexlify(value)
    if value is None:
        # unknown header type, only the raw bytes are meaningful
        return hexlify(record.raw_value)
    return str(value)


def to_text(envelope):
    lines = [
        'MagicBytes:\t0x{:08X}'.format(envelope.magic),
        'Signature:\t{}'.format(envelope.signature_name),
        'Version:\t{}'.format(envelope.version),
        'Headers:',
    ]
    for record in envelope.headers:
        if record.type == HeaderType.END_OF_HEADER:
            continue
        value = format_header_value(record)
        # variant maps continue on indented lines of their own
        separator = '' if value.startswith('\n') else '\t'
        lines.append('\t{}:{}{}'.format(header_label(record.type), separator, value))
    if envelope.header_integrity is not None:
        lines.append('HeaderSHA256:\t\t' + hexlify(envelope.header_integrity.sha256))
        lines.append(
            'HeaderHMACSHA256:\t' + hexlify(envelope.header_integrity.hmac_sha256)
        )
    lines.append('EncryptedData:\t\t{} bytes'.format(envelope.payload_length))
    return '\n'.join(lines) + '\n'


def _jsonable(value):
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, VariantMap):
        return variant_map_to_dict(value)
    return value


def variant_map_to_dict(vmap):
    entries = []
    for entry in vmap:
        value, malformed = _entry_value(entry)
        item = {
            'type': {'id': int(entry.value_type), 'name': variant_label(entry.value_type)},
            'key': entry.key_text,
            'value': _jsonable(value),
        }
        if malformed:
            item['malformed'] = True
        if entry.kdf_name is not None:
            item['kdf'] = entry.kdf_name
        entries.append(item)
    return {'format_version': vmap.format_version, 'entries': entries}


def header_to_dict(record):
    item = {
        'type': {'id': int(record.type), 'name': header_label(record.type)},
        'length': record.length,
        'raw_value': record.raw_value.hex(),
        'value': _jsonable(record.typed_value),
    }
    if record.type == HeaderType.CIPHER_ID:
        item['cipher'] = lookup_cipher(record.typed_value)
    return item


def to_dict(envelope):
    integrity = None
    if envelope.header_integrity is not None:
        integrity = {
            'sha256': envelope.header_integrity.sha256.hex(),
            'hmac_sha256': envelope.header_integrity.hmac_sha256.hex(),
        }
    return {
        'magic': '0x{:08X}'.format(envelope.magic),
        'signature': {
            'id': int(envelope.signature),
            'name': envelope.signature_name,
        },
        'version': {
            'major': envelope.version.major,
            'minor': envelope.version.minor,
        },
        'headers': [header_to_dict(record) for record in envelope.headers],
        'header_integrity': integrity,
        'payload_length': envelope.payload_length,
    }


def to_json(envelope, indent=None):
    return json.dumps(to_dict(envelope), indent=indent)
