"""Shared constants, on-disk record layouts and error types."""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass

PAGESIZE = 4096
MINBLOCKSIZE = PAGESIZE
DEFBLOCKSIZE = 32768
MAXBLOCKSIZE = 1024 * 1024 * 1024
SEGNODECDIGS = 6
FILEIOSIZE = 32768
DEF_CIPHERNAME = "AES"
DEF_HASHERNAME = "SHA1"

DEFXORSC = 31  # one XOR block per 31 data blocks
DEFXORGC = 2   # XOR blocks written in groups of 2

EX_OK = 0     # everything ran ok
EX_CMD = 1    # command error
EX_SSIO = 2   # saveset io error
EX_FILIO = 3  # file io error
EX_HIST = 4   # history database error

BLOCK_MAGIC = b"ftbackup"
HEADER_MAGIC = b"ftbheder"

HFL_HDLINK = 0x01  # regular file is a hardlink
HFL_XATTRS = 0x02  # xattrs follow name

DB_FILE_PATH_MAX = 1024
DB_FILE_SAVE_MAX = 1024
DB_SAVE_PATH_MAX = 1024

MYEDATACMP = 632396223
MYESIMRDER = 632396224
MYENDOFILE = 632396225

_BLOCK_STRUCT = struct.Struct("<8sIIIBBBB")
_HEADER_STRUCT = struct.Struct("<8sQQQQIIIIIB")

BLOCK_SIZE = _BLOCK_STRUCT.size     # offset of block data
BLOCK_CRIP_OFFSET = 16              # start of encrypted region
HEADER_SIZE = _HEADER_STRUCT.size   # offset of the name within a header


@dataclass
class Block:
    """Fixed block prefix followed by its data bytes."""

    seqno: int = 0
    xorno: int = 0
    hdroffs: int = 0
    l2bs: int = 0
    xorbc: int = 0
    xorgc: int = 0
    xorsc: int = 0
    data: bytes = b""
    magic: bytes = BLOCK_MAGIC

    def pack(self) -> bytes:
        """Return the block as bytes, prefix then data."""
        return _BLOCK_STRUCT.pack(
            self.magic, self.seqno, self.xorno, self.hdroffs,
            self.l2bs, self.xorbc, self.xorgc, self.xorsc,
        ) + bytes(self.data)

    @classmethod
    def unpack(cls, data: bytes) -> "Block":
        """Parse a block from bytes; everything after the prefix is data."""
        if len(data) < BLOCK_SIZE:
            raise ValueError(f"block needs at least {BLOCK_SIZE} bytes, got {len(data)}")
        magic, seqno, xorno, hdroffs, l2bs, xorbc, xorgc, xorsc = _BLOCK_STRUCT.unpack_from(data)
        return cls(
            seqno=seqno, xorno=xorno, hdroffs=hdroffs, l2bs=l2bs,
            xorbc=xorbc, xorgc=xorgc, xorsc=xorsc,
            data=bytes(data[BLOCK_SIZE:]), magic=magic,
        )


@dataclass
class Header:
    """File header; name holds the null-terminated name and any xattrs."""

    mtimns: int = 0
    ctimns: int = 0
    atimns: int = 0
    size: int = 0
    fileno: int = 0
    stmode: int = 0
    ownuid: int = 0
    owngid: int = 0
    flags: int = 0
    name: bytes = b""
    magic: bytes = HEADER_MAGIC

    @property
    def nameln(self) -> int:
        """Length of name and xattrs, including the null."""
        return len(self.name)

    @property
    def filename(self) -> str:
        """The file name up to its terminating null."""
        return os.fsdecode(self.name.split(b"\0", 1)[0])

    def pack(self) -> bytes:
        """Return the header as bytes, fixed part then name."""
        return _HEADER_STRUCT.pack(
            self.magic, self.mtimns, self.ctimns, self.atimns, self.size,
            self.fileno, self.stmode, self.ownuid, self.owngid,
            self.nameln, self.flags,
        ) + bytes(self.name)

    @classmethod
    def unpack(cls, data: bytes) -> "Header":
        """Parse a header and its name from bytes."""
        if len(data) < HEADER_SIZE:
            raise ValueError(f"header needs at least {HEADER_SIZE} bytes, got {len(data)}")
        (magic, mtimns, ctimns, atimns, size, fileno, stmode,
         ownuid, owngid, nameln, flags) = _HEADER_STRUCT.unpack_from(data)
        end = HEADER_SIZE + nameln
        if len(data) < end:
            raise ValueError(f"header name needs {nameln} bytes, got {len(data) - HEADER_SIZE}")
        return cls(
            mtimns=mtimns, ctimns=ctimns, atimns=atimns, size=size,
            fileno=fileno, stmode=stmode, ownuid=ownuid, owngid=owngid,
            flags=flags, name=bytes(data[HEADER_SIZE:end]), magic=magic,
        )


class _FtbOSError(OSError):
    code = 0
    message = ""

    def __init__(self, filename: str | None = None) -> None:
        if filename is None:
            super().__init__(self.code, self.message)
        else:
            super().__init__(self.code, self.message, filename)


class DataCompareError(_FtbOSError):
    """Data on disk does not match the saveset."""

    code = MYEDATACMP
    message = "data compare mismatch"


class SimulatedReadError(_FtbOSError):
    """A read error injected for testing recovery."""

    code = MYESIMRDER
    message = "simulated read error"


class EndOfFileError(_FtbOSError):
    """Unexpected end of file."""

    code = MYENDOFILE
    message = "end of file"


_MESSAGES = {
    MYEDATACMP: DataCompareError.message,
    MYESIMRDER: SimulatedReadError.message,
    MYENDOFILE: EndOfFileError.message,
}


def describe_error(exc: BaseException | int) -> str:
    """Return a readable message for an exception or error number."""
    code = exc if isinstance(exc, int) else getattr(exc, "errno", None)
    if code is not None:
        if code in _MESSAGES:
            return _MESSAGES[code]
        return os.strerror(code)
    return str(exc)


def quadswab(q: int) -> int:
    """Reverse the byte order of a 64-bit value."""
    return int.from_bytes((q & 0xFFFFFFFFFFFFFFFF).to_bytes(8, "little"), "big")