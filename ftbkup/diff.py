"""Compare two directory trees: modes, times, xattrs, contents and links."""

from __future__ import annotations

import errno
import os
import stat as _stat
import sys
import time
from typing import TextIO

from .common import FILEIOSIZE, describe_error
from .wildcard import alpha_sort_key

SKIPDIR_NAME = "~SKIPDIR.FTB"


def _emit(out: TextIO | None, text: str) -> None:
    (out if out is not None else sys.stdout).write(text)


def _show(path) -> str:
    return os.fsdecode(path)


def format_time(seconds: int) -> str:
    """Format seconds since the epoch as local 'yyyy-mm-dd hh:mm:ss'."""
    tm = time.localtime(seconds)
    return (f"{tm.tm_year:04d}-{tm.tm_mon:02d}-{tm.tm_mday:02d} "
            f"{tm.tm_hour:02d}:{tm.tm_min:02d}:{tm.tm_sec:02d}")


def sort_xattr_names(names) -> list:
    """Return extended attribute names sorted by unsigned byte value."""
    return sorted(names, key=alpha_sort_key)


def read_xattr_names(path, out=None) -> tuple[list, bool]:
    """Read a file's sorted extended attribute names.

    Returns (names, err); err is True if an error was reported to out.
    A filesystem without xattr support gives an empty list and no error.
    """
    listxattr = getattr(os, "listxattr", None)
    if listxattr is None:
        return [], False
    try:
        names = listxattr(path, follow_symlinks=False)
    except OSError as exc:
        if exc.errno in (errno.ENOTSUP, errno.EOPNOTSUPP):
            return [], False
        _emit(out, f"\ndiff file llistxattr {_show(path)} error: {describe_error(exc)}\n")
        return [], True
    return sort_xattr_names(names), False


def _getxattr(path, name, out) -> bytes | None:
    try:
        return os.getxattr(path, name, follow_symlinks=False)
    except OSError as exc:
        _emit(out, f"\ndiff file lgetxattr({_show(path)},{name}) error: {describe_error(exc)}\n")
        return None


def _decode_value(value: bytes) -> str:
    return value.decode("utf-8", errors="replace")


def diff_file(path1, path2, out=None) -> bool:
    """Compare two paths of any type; return True if they differ."""
    try:
        stat1 = os.lstat(path1)
    except OSError as exc:
        _emit(out, f"\ndiff file lstat {_show(path1)} error: {describe_error(exc)}\n")
        return True
    try:
        stat2 = os.lstat(path2)
    except OSError as exc:
        _emit(out, f"\ndiff file lstat {_show(path2)} error: {describe_error(exc)}\n")
        return True

    p1, p2 = _show(path1), _show(path2)
    width = max(len(p1), len(p2))
    err = False

    if stat1.st_mode != stat2.st_mode:
        _emit(out, f"\ndiff file mode mismatch\n"
                   f"  {p1:>{width}}  0{stat1.st_mode:06o}\n"
                   f"  {p2:>{width}}  0{stat2.st_mode:06o}\n")
        if _stat.S_IFMT(stat1.st_mode) != _stat.S_IFMT(stat2.st_mode):
            return True
        err = True

    if stat1.st_mtime_ns != stat2.st_mtime_ns:
        s1, n1 = divmod(stat1.st_mtime_ns, 1_000_000_000)
        s2, n2 = divmod(stat2.st_mtime_ns, 1_000_000_000)
        _emit(out, f"\ndiff file mtime mismatch\n"
                   f"  {p1:>{width}}  {format_time(s1)}.{n1:09d}\n"
                   f"  {p2:>{width}}  {format_time(s2)}.{n2:09d}\n")
        err = True

    names1, e1 = read_xattr_names(path1, out)
    names2, e2 = read_xattr_names(path2, out)
    err |= e1 | e2

    i = j = 0
    while i < len(names1) or j < len(names2):
        if i < len(names1) and j < len(names2):
            k1, k2 = alpha_sort_key(names1[i]), alpha_sort_key(names2[j])
            cmp = (k1 > k2) - (k1 < k2)
        elif i < len(names1):
            cmp = -1
        else:
            cmp = 1
        if cmp < 0:
            _emit(out, f"\ndiff file {p2} missing xattr {names1[i]}\n")
            err = True
            i += 1
            continue
        if cmp > 0:
            _emit(out, f"\ndiff file {p1} missing xattr {names2[j]}\n")
            err = True
            j += 1
            continue

        name = names1[i]
        value1 = _getxattr(path1, name, out)
        value2 = _getxattr(path2, name, out) if value1 is not None else None
        if value1 is None or value2 is None:
            err = True
        elif value1 != value2:
            _emit(out, f"\ndiff file xattr {name} mismatch\n"
                       f"  {p1:>{width}}  {_decode_value(value1):>{len(value1)}}\n"
                       f"  {p2:>{width}}  {_decode_value(value2):>{len(value2)}}\n")
            err = True
        i += 1
        j += 1

    mode = stat1.st_mode
    if _stat.S_ISREG(mode):
        return diff_regular(path1, path2, out) or err
    if _stat.S_ISDIR(mode):
        return diff_directory(path1, path2, out) or err
    if _stat.S_ISLNK(mode):
        return diff_symlink(path1, path2, out) or err
    return diff_special(path1, path2, stat1, stat2, out) or err


def _open_read(path):
    flags = os.O_RDONLY
    noatime = getattr(os, "O_NOATIME", 0)
    if noatime:
        try:
            return os.fdopen(os.open(path, flags | noatime), "rb")
        except OSError:
            pass
    return os.fdopen(os.open(path, flags), "rb")


def diff_regular(path1, path2, out=None) -> bool:
    """Compare the contents of two regular files; True if they differ."""
    try:
        file1 = _open_read(path1)
    except OSError as exc:
        _emit(out, f"\ndiff regular open {_show(path1)} error: {describe_error(exc)}\n")
        return True
    with file1:
        try:
            file2 = _open_read(path2)
        except OSError as exc:
            _emit(out, f"\ndiff regular open {_show(path2)} error: {describe_error(exc)}\n")
            return True
        with file2:
            return _compare_streams(path1, path2, file1, file2, out)


def _compare_streams(path1, path2, file1, file2, out) -> bool:
    p1, p2 = _show(path1), _show(path2)
    width = max(len(p1), len(p2))
    ofs = 0
    while True:
        try:
            buf1 = file1.read(FILEIOSIZE)
        except OSError as exc:
            _emit(out, f"\ndiff regular read {p1} error: {describe_error(exc)}\n")
            return True
        try:
            buf2 = file2.read(FILEIOSIZE)
        except OSError as exc:
            _emit(out, f"\ndiff regular read {p2} error: {describe_error(exc)}\n")
            return True
        if len(buf1) != len(buf2):
            _emit(out, f"\ndiff regular length mismatch\n"
                       f"  {p1:>{width}}  {ofs + len(buf1):12d}\n"
                       f"  {p2:>{width}}  {ofs + len(buf2):12d}\n")
            return True
        if not buf1:
            return False
        if buf1 != buf2:
            k = next(n for n, (a, b) in enumerate(zip(buf1, buf2)) if a != b)
            _emit(out, f"\ndiff regular content mismatch\n"
                       f"  {p1:>{width}}  {ofs + k:12d}/{buf1[k]:02X}\n"
                       f"  {p2:>{width}}  {ofs + k:12d}/{buf2[k]:02X}\n")
            return True
        ofs += len(buf1)


def contains_skip_dir(names) -> bool:
    """True if the directory listing holds the skip-directory marker."""
    return any(os.fsdecode(name) == SKIPDIR_NAME for name in names)


def is_socket(path, file) -> bool:
    """True if path/file exists and is a socket."""
    try:
        st = os.stat(os.path.join(os.fsdecode(path), os.fsdecode(file)))
    except OSError:
        return False
    return _stat.S_ISSOCK(st.st_mode)


def is_mount_point_or_empty_dir(name) -> bool:
    """True if name is a directory that is a mount point or is empty."""
    name = os.fsdecode(name)
    try:
        inner = os.stat(name)
    except OSError:
        return False
    if not _stat.S_ISDIR(inner.st_mode):
        return False

    copy = name
    while True:
        slash = copy.rfind("/")
        if slash < 0:
            return False
        if slash + 1 < len(copy):
            break
        copy = copy[:slash]
    parent = "/" if slash == 0 else copy[:slash]
    try:
        outer = os.stat(parent)
    except OSError:
        return False
    if outer.st_dev != inner.st_dev:
        return True

    try:
        with os.scandir(name) as entries:
            return next(iter(entries), None) is None
    except OSError:
        return False


def _scan(path) -> list:
    return sorted(os.listdir(path), key=alpha_sort_key)


def diff_directory(path1, path2, out=None) -> bool:
    """Compare two directories entry by entry; True if they differ."""
    p1, p2 = _show(path1), _show(path2)
    try:
        names1 = _scan(path1)
    except OSError as exc:
        _emit(out, f"\ndiff directory scandir {p1} error: {describe_error(exc)}\n")
        return True
    try:
        names2 = _scan(path2)
    except OSError as exc:
        _emit(out, f"\ndiff directory scandir {p2} error: {describe_error(exc)}\n")
        return True

    if contains_skip_dir(names1) and contains_skip_dir(names2):
        return False

    # sockets are neither backed up nor restored
    names1 = [n for n in names1 if not is_socket(path1, n)]
    names2 = [n for n in names2 if not is_socket(path2, n)]

    base1 = p1 + "/" if p1 and not p1.endswith("/") else p1
    base2 = p2 + "/" if p2 and not p2.endswith("/") else p2

    err = False
    i = j = 0
    while i < len(names1) or j < len(names2):
        if i >= len(names1):
            cmp = 1
        elif j >= len(names2):
            cmp = -1
        else:
            k1, k2 = alpha_sort_key(names1[i]), alpha_sort_key(names2[j])
            cmp = (k1 > k2) - (k1 < k2)
        if cmp < 0:
            _emit(out, f"\ndiff directory only {p1} contains {names1[i]}\n")
            err = True
            i += 1
            continue
        if cmp > 0:
            _emit(out, f"\ndiff directory only {p2} contains {names2[j]}\n")
            err = True
            j += 1
            continue

        name1 = base1 + os.fsdecode(names1[i])
        name2 = base2 + os.fsdecode(names2[j])
        # a mount point is saved as an empty directory, so those are equal
        if not (is_mount_point_or_empty_dir(name1) and is_mount_point_or_empty_dir(name2)):
            err |= diff_file(name1, name2, out)
        i += 1
        j += 1
    return err


def diff_symlink(path1, path2, out=None) -> bool:
    """Compare two symbolic links' targets; True if they differ."""
    try:
        target1 = os.fsencode(os.readlink(path1))
    except OSError as exc:
        _emit(out, f"\ndiff symlink {_show(path1)} read error: {describe_error(exc)}\n")
        return True
    try:
        target2 = os.fsencode(os.readlink(path2))
    except OSError as exc:
        _emit(out, f"\ndiff symlink {_show(path2)} read error: {describe_error(exc)}\n")
        return True
    if target1 != target2:
        p1, p2 = _show(path1), _show(path2)
        width = max(len(p1), len(p2))
        _emit(out, f"\ndiff symlink value mismatch\n"
                   f"  {p1:>{width}}  <{os.fsdecode(target1)}>\n"
                   f"  {p2:>{width}}  <{os.fsdecode(target2)}>\n")
        return True
    return False


def diff_special(path1, path2, stat1, stat2, out=None) -> bool:
    """Compare device numbers of two special files; True if they differ."""
    if stat1.st_rdev != stat2.st_rdev:
        p1, p2 = _show(path1), _show(path2)
        width = max(len(p1), len(p2))
        _emit(out, f"\ndiff special rdev mismatch\n"
                   f"  {p1:>{width}}  0x{stat1.st_rdev:08X}\n"
                   f"  {p2:>{width}}  0x{stat2.st_rdev:08X}\n")
        return True
    return False