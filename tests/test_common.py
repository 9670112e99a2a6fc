import errno
import os

import pytest

from ftbkup.common import (
    BLOCK_MAGIC,
    BLOCK_SIZE,
    HEADER_MAGIC,
    HEADER_SIZE,
    MYEDATACMP,
    Block,
    DataCompareError,
    EndOfFileError,
    Header,
    SimulatedReadError,
    describe_error,
    quadswab,
)


def test_block_round_trip():
    blk = Block(seqno=7, xorno=0, hdroffs=40, l2bs=15, xorbc=0, xorgc=2, xorsc=31, data=b"payload")
    raw = blk.pack()
    assert Block.unpack(raw) == blk


def test_block_starts_with_magic():
    raw = Block(seqno=1).pack()
    assert raw[:8] == BLOCK_MAGIC
    assert len(raw) == BLOCK_SIZE


def test_block_unpack_too_short():
    with pytest.raises(ValueError):
        Block.unpack(b"ftbackup")


def test_header_round_trip():
    hdr = Header(mtimns=123456789012, ctimns=5, atimns=6, size=1000, fileno=3,
                 stmode=0o100644, ownuid=1000, owngid=100, flags=2, name=b"dir/file\0")
    raw = hdr.pack()
    back = Header.unpack(raw)
    assert back == hdr
    assert back.nameln == len(b"dir/file\0")
    assert back.filename == "dir/file"


def test_header_layout():
    hdr = Header(name=b"x\0")
    raw = hdr.pack()
    assert raw[:8] == HEADER_MAGIC
    assert raw[HEADER_SIZE:] == b"x\0"


def test_header_unpack_truncated_name():
    raw = Header(name=b"abcdef\0").pack()
    with pytest.raises(ValueError):
        Header.unpack(raw[:-2])


def test_describe_custom_errors():
    assert describe_error(DataCompareError()) == "data compare mismatch"
    assert describe_error(SimulatedReadError()) == "simulated read error"
    assert describe_error(EndOfFileError("f")) == "end of file"
    assert describe_error(MYEDATACMP) == "data compare mismatch"


def test_describe_system_error():
    exc = OSError(errno.ENOENT, "gone")
    assert describe_error(exc) == os.strerror(errno.ENOENT)


def test_custom_error_is_oserror_with_code():
    exc = DataCompareError("somefile")
    assert isinstance(exc, OSError)
    assert exc.errno == MYEDATACMP
    assert exc.filename == "somefile"


def test_quadswab_value():
    assert quadswab(0x0102030405060708) == 0x0807060504030201


@pytest.mark.parametrize("value", [0, 1, 0xFFFFFFFFFFFFFFFF, 0x1234, 0xDEADBEEF00112233])
def test_quadswab_involution(value):
    assert quadswab(quadswab(value)) == value


def test_quadswab_matches_byte_order():
    value = 0x1122334455667788
    assert quadswab(value).to_bytes(8, "big") == value.to_bytes(8, "little")