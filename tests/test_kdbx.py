import dataclasses
import os
import struct
import tempfile
import unittest
from io import BytesIO

from kdbxenvelope import (
    KDBX_MAGIC, ContainerEnvelope, HeaderIntegrity, HeaderRecord, HeaderType,
    MalformedEnvelopeError, Signature, TruncatedInputError,
    UnsupportedVersionError, Version, decode, decode_file, encode
)
from samples import (
    CHACHA20, HEADER_HMAC, HEADER_SHA256, HEADERS3, PAYLOAD, kdbx3, kdbx4,
    prefix, record3
)


class FileTests(unittest.TestCase):

    def test_open_save(self):
        """decode each layout, encode it, then decode the result"""

        for data in (kdbx3(), kdbx4(), kdbx3(payload=b''), kdbx4(payload=b'')):
            envelope = decode(data)
            self.assertEqual(encode(envelope), data)
            self.assertEqual(decode(encode(envelope)), envelope)

    def test_kdbx4(self):
        envelope = decode(kdbx4())
        self.assertEqual(envelope.magic, KDBX_MAGIC)
        self.assertEqual(envelope.signature, Signature.V2)
        self.assertEqual(envelope.signature_name, 'v2')
        self.assertEqual(envelope.version, Version(major=4, minor=1))
        self.assertEqual(str(envelope.version), '4.1')
        self.assertEqual(len(envelope.headers), 6)
        self.assertEqual(
            envelope.header_integrity, HeaderIntegrity(HEADER_SHA256, HEADER_HMAC)
        )
        self.assertEqual(envelope.payload, PAYLOAD)
        self.assertEqual(envelope.payload_length, 16)
        self.assertEqual(envelope.header(HeaderType.CIPHER_ID).typed_value, CHACHA20)
        self.assertEqual(envelope.cipher_name, 'ChaCha20')
        self.assertEqual(envelope.kdf_name, 'Argon2id')

    def test_kdbx3(self):
        envelope = decode(kdbx3())
        self.assertEqual(envelope.version.major, 3)
        self.assertIsNone(envelope.header_integrity)
        self.assertEqual(envelope.payload, PAYLOAD)
        self.assertEqual(envelope.header(HeaderType.TRANSFORM_ROUNDS).typed_value, 60000)
        self.assertEqual(envelope.cipher_name, 'AES-256-CBC')
        self.assertIsNone(envelope.kdf_name)
        self.assertIsNone(envelope.header(HeaderType.KDF_PARAMETERS))

    def test_headers_end_with_terminator(self):
        for data in (kdbx3(), kdbx4()):
            headers = decode(data).headers
            self.assertEqual(headers[-1].type, HeaderType.END_OF_HEADER)
            self.assertNotIn(
                HeaderType.END_OF_HEADER, [r.type for r in headers[:-1]]
            )

    def test_stream_and_file(self):
        data = kdbx4()
        self.assertEqual(decode(BytesIO(data)), decode(data))
        self.assertEqual(decode(bytearray(data)), decode(data))
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'test4.kdbx')
            with open(path, 'wb') as f:
                f.write(data)
            self.assertEqual(decode_file(path), decode(data))


class EnvelopeErrorTests(unittest.TestCase):

    def test_bad_magic(self):
        with self.assertRaises(MalformedEnvelopeError):
            decode(b'PK\x03\x04' + kdbx4()[4:])

    def test_short_magic(self):
        with self.assertRaises(TruncatedInputError):
            decode(kdbx4()[:3])

    def test_short_prefix(self):
        with self.assertRaises(TruncatedInputError):
            decode(kdbx4()[:10])

    def test_unknown_signature_recorded(self):
        data = prefix(3, signature=struct.pack('<I', 0x12345678)) + HEADERS3
        envelope = decode(data)
        self.assertEqual(envelope.signature, 0x12345678)
        self.assertEqual(envelope.signature_name, 'unknown')
        self.assertEqual(encode(envelope), data)

    def test_older_signatures(self):
        envelope = decode(prefix(3, signature=struct.pack('<I', 0xB54BFB66)) + HEADERS3)
        self.assertEqual(envelope.signature, Signature.V2_PRE)
        self.assertEqual(envelope.signature_name, 'v2pre')

    def test_unsupported_version(self):
        for major in (2, 5):
            with self.assertRaises(UnsupportedVersionError) as cm:
                decode(prefix(major) + HEADERS3)
            self.assertEqual(cm.exception.major_version, major)

    def test_missing_integrity_fields(self):
        data = kdbx4(payload=b'')
        with self.assertRaises(TruncatedInputError):
            decode(data[:-3])

    def test_truncated_header_stream(self):
        with self.assertRaises(TruncatedInputError):
            decode(prefix(3) + HEADERS3[:-5])


class ModelTests(unittest.TestCase):

    def test_immutable(self):
        envelope = decode(kdbx4())
        with self.assertRaises(dataclasses.FrozenInstanceError):
            envelope.payload = b''
        with self.assertRaises(dataclasses.FrozenInstanceError):
            envelope.headers[0].raw_value = b''
        self.assertIsInstance(envelope.headers, tuple)

    def test_headers_stored_as_tuple(self):
        headers = [HeaderRecord(HeaderType.END_OF_HEADER, b'')]
        envelope = ContainerEnvelope(
            KDBX_MAGIC, Signature.V2, Version(3, 1), headers, None, b''
        )
        headers.append(HeaderRecord(HeaderType.COMMENT, b'x'))
        self.assertIsInstance(envelope.headers, tuple)
        self.assertEqual(len(envelope.headers), 1)

    def test_terminator_required(self):
        with self.assertRaises(ValueError):
            ContainerEnvelope(
                KDBX_MAGIC, Signature.V2, Version(3, 1),
                (HeaderRecord(HeaderType.COMMENT, b'x'),), None, b''
            )
        end = HeaderRecord(HeaderType.END_OF_HEADER, b'')
        with self.assertRaises(ValueError):
            ContainerEnvelope(
                KDBX_MAGIC, Signature.V2, Version(3, 1), (end, end), None, b''
            )

    def test_integrity_matches_version(self):
        end = HeaderRecord(HeaderType.END_OF_HEADER, b'')
        integrity = HeaderIntegrity(bytes(4), bytes(4))
        with self.assertRaises(ValueError):
            ContainerEnvelope(KDBX_MAGIC, Signature.V2, Version(4, 0), (end,), None, b'')
        with self.assertRaises(ValueError):
            ContainerEnvelope(KDBX_MAGIC, Signature.V2, Version(3, 1), (end,), integrity, b'')

    def test_encode_built_envelope(self):
        envelope = ContainerEnvelope(
            KDBX_MAGIC, Signature.V2, Version(3, 1),
            (
                HeaderRecord(HeaderType.COMPRESSION_FLAGS, b'\x01\x00\x00\x00'),
                HeaderRecord(HeaderType.END_OF_HEADER, b''),
            ),
            None, b'ciphertext'
        )
        data = encode(envelope)
        self.assertEqual(
            data,
            prefix(3) + record3(3, b'\x01\x00\x00\x00') + record3(0, b'') + b'ciphertext'
        )
        self.assertEqual(decode(data).header(HeaderType.COMPRESSION_FLAGS).typed_value, 1)


if __name__ == '__main__':
    unittest.main()
