"""Formatting of saveset listings and parsing of date strings and lines."""

from __future__ import annotations

import os
import stat as _stat
import time

from .common import HFL_HDLINK, HFL_XATTRS, Header

_UINT32_MASK = 0xFFFFFFFF
_ULONG_MAX = 0xFFFFFFFFFFFFFFFF


def file_type_char(stmode: int, flags: int = 0) -> str:
    """The type letter shown in a listing for a file's mode and header flags."""
    if _stat.S_ISREG(stmode):
        return "h" if flags & HFL_HDLINK else "-"
    if _stat.S_ISDIR(stmode):
        return "d"
    if _stat.S_ISLNK(stmode):
        return "l"
    if _stat.S_ISFIFO(stmode):
        return "p"
    if _stat.S_ISBLK(stmode):
        return "b"
    if _stat.S_ISCHR(stmode):
        return "c"
    return "?"


def _exec_char(stmode: int, xbit: int, special: int, on: str, off: str) -> str:
    if stmode & xbit:
        return on if stmode & special else "x"
    return off if stmode & special else "-"


def protection_string(stmode: int) -> str:
    """The nine-character rwx protection string for a mode."""
    return "".join((
        "r" if stmode & _stat.S_IRUSR else "-",
        "w" if stmode & _stat.S_IWUSR else "-",
        _exec_char(stmode, _stat.S_IXUSR, _stat.S_ISUID, "s", "S"),
        "r" if stmode & _stat.S_IRGRP else "-",
        "w" if stmode & _stat.S_IWGRP else "-",
        _exec_char(stmode, _stat.S_IXGRP, _stat.S_ISGID, "s", "S"),
        "r" if stmode & _stat.S_IROTH else "-",
        "w" if stmode & _stat.S_IWOTH else "-",
        _exec_char(stmode, _stat.S_IXOTH, _stat.S_ISVTX, "t", "T"),
    ))


def format_header(hdr: Header, name, ofs: int = 0) -> str:
    """One listing line (without newline) describing a file in a saveset.

    A non-zero ofs is appended as '(+ofs)'.
    """
    ftype = file_type_char(hdr.stmode, hdr.flags)
    xatts = "." if hdr.flags & HFL_XATTRS else " "
    sec, nsec = divmod(hdr.mtimns, 1_000_000_000)
    lcl = time.localtime(sec)
    ofsbuf = f"  (+{ofs})" if ofs > 0 else ""
    shown = os.fsdecode(name) if isinstance(name, (bytes, bytearray)) else str(name)
    return (
        f"{ftype}{protection_string(hdr.stmode)}{xatts}"
        f"  {hdr.ownuid:6d}/{hdr.owngid:6d}  {hdr.size:12d}  "
        f"{lcl.tm_year:04d}-{lcl.tm_mon:02d}-{lcl.tm_mday:02d} "
        f"{lcl.tm_hour:02d}:{lcl.tm_min:02d}:{lcl.tm_sec:02d}.{nsec:09d}"
        f"  {shown}{ofsbuf}"
    )


def _parse_unsigned(text: str) -> tuple[int, str]:
    """Parse a leading decimal number like strtoul; return (value, rest).

    When no digits are found the value is 0 and rest is the whole text.
    """
    pos = 0
    while pos < len(text) and text[pos] in " \t\n\v\f\r":
        pos += 1
    negative = False
    if pos < len(text) and text[pos] in "+-":
        negative = text[pos] == "-"
        pos += 1
    start = pos
    while pos < len(text) and "0" <= text[pos] <= "9":
        pos += 1
    if pos == start:
        return 0, text
    value = int(text[start:pos])
    if value > _ULONG_MAX:
        value = _ULONG_MAX
    elif negative:
        value = (-value) & _ULONG_MAX
    return value & _UINT32_MASK, text[pos:]


def sanitize_date_str(instr: str, template: str) -> str:
    """Fill a 'yyyy-mm-dd hh:mm:ss' template from a possibly partial date.

    Fields are zero-padded; fields not given keep the template's value.
    The date/time separator may be a space, '@', 'T' or 't'.  Raises
    ValueError if the string does not fit the template.
    """
    out = list(template)
    pos = 0
    width = 4
    rest = instr
    while True:
        val, rest = _parse_unsigned(rest)
        digits = str(val)
        if len(digits) > width:
            raise ValueError(f"date field {digits} too long in {instr!r}")
        if pos + width > len(out):
            raise ValueError(f"too many fields in {instr!r}")
        out[pos:pos + width] = digits.rjust(width, "0")
        pos += width

        rest = rest.lstrip("".join(chr(c) for c in range(1, 33)))
        if not rest:
            return "".join(out)

        delim = out[pos] if pos < len(out) else "\0"
        pos += 1
        if delim == " ":
            if rest[0] in "@Tt":
                rest = rest[1:]
        else:
            if rest[0] != delim:
                raise ValueError(f"expected {delim!r} in {instr!r}")
            rest = rest[1:]
        width = 2


def read_line(file):
    """Read one line without its newline; None at end of file.

    A final line that lacks a newline also gives None.
    """
    line = file.readline()
    newline = b"\n" if isinstance(line, (bytes, bytearray)) else "\n"
    if not line.endswith(newline):
        return None
    return line[:-1]