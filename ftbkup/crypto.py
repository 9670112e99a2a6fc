"""Block ciphers, hashers and saveset block checks.

A saveset may be encrypted with a block cipher whose key is the digest of a
password; blocks always end with a digest for an integrity check, made with
MD5 when no hasher was chosen.
"""

from __future__ import annotations

import getpass
import os
import sys
from dataclasses import dataclass, field
from typing import Any

from Crypto.Cipher import AES, ARC2, CAST, DES, DES3, Blowfish
from Crypto.Hash import MD5, RIPEMD160, SHA1, SHA224, SHA256, SHA384, SHA512

from .common import (
    BLOCK_MAGIC,
    BLOCK_SIZE,
    DEF_CIPHERNAME,
    DEF_HASHERNAME,
    DEFBLOCKSIZE,
    DEFXORGC,
    DEFXORSC,
    HEADER_MAGIC,
    EndOfFileError,
    describe_error,
)

# name -> (cipher module, block size, default key length)
_CIPHERS: dict[str, tuple[Any, int, int]] = {
    "AES": (AES, 16, 16),
    "Blowfish": (Blowfish, 8, 16),
    "CAST128": (CAST, 8, 16),
    "DES": (DES, 8, 8),
    "DES_EDE2": (DES3, 8, 16),
    "DES_EDE3": (DES3, 8, 24),
    "RC2": (ARC2, 8, 16),
    "Rijndael": (AES, 16, 16),
}

_HASHERS: dict[str, Any] = {
    "RIPEMD160": RIPEMD160,
    "SHA1": SHA1,
    "SHA224": SHA224,
    "SHA256": SHA256,
    "SHA384": SHA384,
    "SHA512": SHA512,
}

_KEYLINE_MAX = 4095


def _lookup(table: dict, name: str):
    lowered = name.lower()
    for key, value in table.items():
        if key.lower() == lowered:
            return key, value
    return None, None


class _BlockCipher:
    """A named block cipher used block by block (ECB) once its key is set."""

    def __init__(self, name: str, module: Any, block_size: int, default_key_length: int) -> None:
        self.name = name
        self.block_size = block_size
        self.default_key_length = default_key_length
        self._module = module
        self._ecb = None

    def set_key(self, key: bytes) -> None:
        """Install the key; it must have a length the algorithm accepts."""
        self._ecb = self._module.new(bytes(key), self._module.MODE_ECB)

    def _engine(self):
        if self._ecb is None:
            raise ValueError(f"cipher {self.name} has no key set")
        return self._ecb

    def encrypt(self, data: bytes) -> bytes:
        """Encrypt a whole number of blocks."""
        return self._engine().encrypt(bytes(data))

    def decrypt(self, data: bytes) -> bytes:
        """Decrypt a whole number of blocks."""
        return self._engine().decrypt(bytes(data))


def cipher_names() -> list[str]:
    """Names of the supported block ciphers."""
    return list(_CIPHERS)


def hasher_names() -> list[str]:
    """Names of the supported key hashers."""
    return list(_HASHERS)


def get_cipher(name: str, key: bytes | None = None) -> _BlockCipher | None:
    """Return the named cipher (case-insensitive), keyed if key is given.

    Returns None if no cipher has that name.
    """
    canonical, entry = _lookup(_CIPHERS, name)
    if entry is None:
        return None
    module, block_size, keylen = entry
    cipher = _BlockCipher(canonical, module, block_size, keylen)
    if key is not None:
        cipher.set_key(key)
    return cipher


def get_hasher(name: str):
    """Return a fresh hash object for the named hasher, or None if unknown."""
    _, module = _lookup(_HASHERS, name)
    if module is None:
        return None
    return module.new()


def xor_block_data(dst: bytearray, src: bytes) -> bytearray:
    """XOR the first len(dst) bytes of src into dst in place and return dst."""
    n = len(dst)
    if len(src) < n:
        raise ValueError(f"source has {len(src)} bytes, need {n}")
    value = int.from_bytes(dst, "little") ^ int.from_bytes(bytes(src[:n]), "little")
    dst[:] = value.to_bytes(n, "little")
    return dst


def read_password(prompt: str) -> str:
    """Prompt on the terminal without echo until a non-empty line is typed."""
    while True:
        try:
            line = getpass.getpass(prompt)
        except EOFError:
            raise EndOfFileError() from None
        if line:
            return line


def cipher_usage(decenc: str) -> str:
    """Usage text for the -encrypt or -decrypt option."""
    lines = [
        f"    -{decenc} [:<cipher>] [:<hasher>] <keyspec>",
        f"                            cipher = block cipher algorithm (default {DEF_CIPHERNAME})",
        f"                            hasher = key hasher algorithm (default {DEF_HASHERNAME})",
        "                           keyspec = - : prompt at stdin",
        "                             @filename : read from first line of file",
        "                                  else : literal string",
        "              cipher algorithms: " + " ".join(cipher_names()),
        "              hasher algorithms: " + " ".join(hasher_names()),
    ]
    return "\n".join(lines) + "\n"


def _read_key_file(path: str) -> bytes:
    try:
        with open(path, "rb") as keyfile:
            line = keyfile.readline(_KEYLINE_MAX)
    except OSError as exc:
        raise ValueError(f"open({path}) error: {describe_error(exc)}") from exc
    if not line:
        raise ValueError(f"read({path}) error: {describe_error(EndOfFileError())}")
    if not line.endswith(b"\n"):
        raise ValueError(f"read({path}) buffer overflow")
    return line[:-1]


def _prompt_key(enc: bool) -> bytes:
    while True:
        first = read_password("password: ")
        if not enc:
            return os.fsencode(first)
        again = read_password("pw again: ")
        if again == first:
            return os.fsencode(first)
        print("ftbackup: passwords don't match", file=sys.stderr)


@dataclass
class BackupConfig:
    """Block geometry and crypto settings shared by writers and readers."""

    l2bs: int = DEFBLOCKSIZE.bit_length() - 1
    xorgc: int = DEFXORGC
    xorsc: int = DEFXORSC
    cipher: _BlockCipher | None = None
    hasher: Any = None
    hashinibuf: bytes = field(default=b"", repr=False)

    @property
    def block_size(self) -> int:
        """Block size in bytes."""
        return 1 << self.l2bs

    def hash_size(self) -> int:
        """Bytes at the end of each block taken by the digest and nonce."""
        if self.hasher is None:
            raise ValueError("no hasher set")
        size = self.hasher.digest_size
        if self.cipher is not None:
            size += self.cipher.block_size
        return size

    def set_default_hasher(self) -> None:
        """Use MD5 for integrity checks when no hasher was chosen."""
        if self.hasher is None:
            self.hasher = MD5.new()

    def block_base_is_valid(self, block) -> bool:
        """Check the magic number common to data and XOR blocks."""
        if block.magic != BLOCK_MAGIC:
            print("ftbackup: bad block magic number", file=sys.stderr)
            return False
        return True

    def block_is_valid(self, block, raw: bytes | None = None) -> bool:
        """Check a data block against this configuration.

        raw is the block's bytes, used to check the header magic that
        hdroffs points at; it defaults to the packed block.
        """
        if not self.block_base_is_valid(block):
            return False

        if (block.l2bs != self.l2bs or block.xorgc != self.xorgc
                or block.xorsc != self.xorsc or block.xorbc > self.xorsc):
            print("ftbackup: bad block size", file=sys.stderr)
            return False

        if block.hdroffs != 0:
            if raw is None:
                raw = block.pack()
            bsnh = self.block_size - self.hash_size()
            ofs = block.hdroffs
            if ofs < BLOCK_SIZE or ofs >= bsnh:
                print("ftbackup: bad block hdroffs", file=sys.stderr)
                return False
            n = min(bsnh - ofs, len(HEADER_MAGIC))
            if bytes(raw[ofs:ofs + n]) != HEADER_MAGIC[:n]:
                print("ftbackup: bad block hdroffs", file=sys.stderr)
                return False

        return True

    def decode_cipher_args(self, argv, index: int, enc: bool) -> int:
        """Decode '-encrypt/-decrypt [:<cipher>] [:<hasher>] <keyspec>'.

        argv[index] is the option itself.  Sets the cipher, hasher and key
        and returns the index of the keyspec argument.  Raises ValueError
        with a message on any error.
        """
        cipher = get_cipher(DEF_CIPHERNAME)
        hasher = get_hasher(DEF_HASHERNAME)
        self.cipher = cipher
        self.hasher = hasher
        keyline = None

        i = index + 1
        while i < len(argv):
            arg = argv[i]
            if arg.startswith(":"):
                newcipher = get_cipher(arg[1:])
                if newcipher is not None:
                    self.cipher = newcipher
                    i += 1
                    continue
                newhasher = get_hasher(arg[1:])
                if newhasher is not None:
                    self.hasher = newhasher
                    i += 1
                    continue
                raise ValueError(f"unknown cipher/hasher {arg[1:]}")
            keyline = arg
            break
        if keyline is None:
            raise ValueError("missing key string")

        defkeylen = self.cipher.default_key_length
        hashlen = self.hasher.digest_size
        if hashlen < defkeylen:
            hname = self.hasher.__class__.__name__.replace("Hash", "")
            raise ValueError(
                f"hash {hname} size {hashlen} too small for cipher "
                f"{self.cipher.name} key size {defkeylen}"
            )

        if keyline == "-":
            key = _prompt_key(enc)
        elif keyline.startswith("@"):
            key = _read_key_file(keyline[1:])
        else:
            key = os.fsencode(keyline)

        self.hashinibuf = self.hasher.new(key).digest()
        self.cipher.set_key(self.hashinibuf[:defkeylen])
        return i