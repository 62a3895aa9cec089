"""Well-known 16-byte identifiers found in KDBX headers.

https://github.com/keepassxreboot/keepassxc/blob/8324d03f0a015e62b6182843b4478226a5197090/src/format/KeePass2.cpp#L24-L26
"""

from types import MappingProxyType
from uuid import UUID

UNKNOWN = 'unknown'

# payload encryption method, stored in the CipherID header
CIPHERS = MappingProxyType({
    'AES-128-CBC': UUID('61ab05a1-9464-41c3-8d74-3a563df8dd35').bytes,
    'AES-256-CBC': UUID('31c1f2e6-bf71-4350-be58-05216afc5aff').bytes,
    'ChaCha20': UUID('d6038a2b-8b6f-4cb5-a524-339a31dbb59a').bytes,
    'Salsa20': UUID('716e1c8a-ee17-4bdc-93ae-a977b882833a').bytes,
    'Serpent': UUID('098563ff-ddf7-4f98-8619-8079f6db897a').bytes,
    'Twofish': UUID('ad68f29f-576f-4bb9-a36a-d47af965346c').bytes,
})

# key derivation method, stored under $UUID in the KDFParameters variant map
KDFS = MappingProxyType({
    'AES-KDF': UUID('c9d9f39a-628a-4460-bf74-0d08c18a4fea').bytes,
    'Argon2d': UUID('ef636ddf-8c29-444b-91f7-a9a403e30a0c').bytes,
    'Argon2id': UUID('9e298b19-56db-4773-b23d-fc3ec6f0a1e6').bytes,
})

_cipher_names = {uuid: name for name, uuid in CIPHERS.items()}
_kdf_names = {uuid: name for name, uuid in KDFS.items()}


def lookup_cipher(data):
    """Name of the cipher identified by `data`, or 'unknown'"""
    return _cipher_names.get(bytes(data), UNKNOWN)


def lookup_kdf(data):
    """Name of the key derivation function identified by `data`, or 'unknown'"""
    return _kdf_names.get(bytes(data), UNKNOWN)
