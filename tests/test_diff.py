import io
import os
import re
import socket
import time
from types import SimpleNamespace

from ftbkup.diff import (
    contains_skip_dir,
    diff_directory,
    diff_file,
    diff_regular,
    diff_special,
    diff_symlink,
    format_time,
    is_mount_point_or_empty_dir,
    is_socket,
    read_xattr_names,
    sort_xattr_names,
)

STAMP = 1_600_000_000_123_456_789


def _write(path, data):
    path.write_bytes(data)
    os.utime(path, ns=(STAMP, STAMP))


def _make_tree(root, content=b"hello"):
    root.mkdir()
    sub = root / "sub"
    sub.mkdir()
    _write(root / "a.txt", content)
    _write(sub / "b.txt", b"inner")
    os.utime(sub, ns=(STAMP, STAMP))
    os.utime(root, ns=(STAMP, STAMP))
    return root


def test_regular_identical(tmp_path):
    _write(tmp_path / "x", b"same data")
    _write(tmp_path / "y", b"same data")
    out = io.StringIO()
    assert diff_regular(str(tmp_path / "x"), str(tmp_path / "y"), out) is False
    assert out.getvalue() == ""


def test_regular_content_mismatch(tmp_path):
    _write(tmp_path / "x", b"abcdef")
    _write(tmp_path / "y", b"abcXef")
    out = io.StringIO()
    assert diff_regular(str(tmp_path / "x"), str(tmp_path / "y"), out) is True
    text = out.getvalue()
    assert "diff regular content mismatch" in text
    assert "/58" in text  # 'X'


def test_regular_length_mismatch(tmp_path):
    _write(tmp_path / "x", b"abc")
    _write(tmp_path / "y", b"abcd")
    out = io.StringIO()
    assert diff_regular(str(tmp_path / "x"), str(tmp_path / "y"), out) is True
    assert "diff regular length mismatch" in out.getvalue()


def test_regular_missing_file(tmp_path):
    _write(tmp_path / "x", b"abc")
    out = io.StringIO()
    assert diff_regular(str(tmp_path / "x"), str(tmp_path / "nope"), out) is True
    assert "diff regular open" in out.getvalue()


def test_diff_file_missing(tmp_path):
    out = io.StringIO()
    assert diff_file(str(tmp_path / "a"), str(tmp_path / "b"), out) is True
    assert "diff file lstat" in out.getvalue()


def test_diff_file_mtime_mismatch(tmp_path):
    _write(tmp_path / "x", b"data")
    _write(tmp_path / "y", b"data")
    os.utime(tmp_path / "y", ns=(STAMP, STAMP + 1))
    out = io.StringIO()
    assert diff_file(str(tmp_path / "x"), str(tmp_path / "y"), out) is True
    assert "diff file mtime mismatch" in out.getvalue()


def test_diff_file_mode_mismatch(tmp_path):
    _write(tmp_path / "x", b"data")
    _write(tmp_path / "y", b"data")
    os.chmod(tmp_path / "x", 0o644)
    os.chmod(tmp_path / "y", 0o600)
    out = io.StringIO()
    assert diff_file(str(tmp_path / "x"), str(tmp_path / "y"), out) is True
    assert "diff file mode mismatch" in out.getvalue()


def test_diff_trees_equal(tmp_path):
    t1 = _make_tree(tmp_path / "one")
    t2 = _make_tree(tmp_path / "two")
    out = io.StringIO()
    assert diff_file(str(t1), str(t2), out) is False
    assert out.getvalue() == ""


def test_diff_trees_content_differs(tmp_path):
    t1 = _make_tree(tmp_path / "one")
    t2 = _make_tree(tmp_path / "two", content=b"world")
    out = io.StringIO()
    assert diff_file(str(t1), str(t2), out) is True
    assert "content mismatch" in out.getvalue()


def test_directory_extra_entry(tmp_path):
    t1 = _make_tree(tmp_path / "one")
    t2 = _make_tree(tmp_path / "two")
    _write(t2 / "extra", b"")
    out = io.StringIO()
    assert diff_directory(str(t1), str(t2), out) is True
    assert f"only {t2} contains extra" in out.getvalue()


def test_directory_skipdir_marker(tmp_path):
    d1 = tmp_path / "one"
    d2 = tmp_path / "two"
    d1.mkdir()
    d2.mkdir()
    for d in (d1, d2):
        _write(d / "~SKIPDIR.FTB", b"")
    _write(d1 / "only_here", b"x")
    out = io.StringIO()
    assert diff_directory(str(d1), str(d2), out) is False
    assert out.getvalue() == ""


def test_directory_empty_subdirs_not_compared(tmp_path):
    d1 = tmp_path / "one"
    d2 = tmp_path / "two"
    for d in (d1, d2):
        d.mkdir()
        (d / "empty").mkdir()
    os.utime(d1 / "empty", ns=(STAMP, STAMP))
    os.utime(d2 / "empty", ns=(STAMP, STAMP + 5))
    out = io.StringIO()
    assert diff_directory(str(d1), str(d2), out) is False


def test_symlink_mismatch(tmp_path):
    os.symlink("target-a", tmp_path / "l1")
    os.symlink("target-b", tmp_path / "l2")
    out = io.StringIO()
    assert diff_symlink(str(tmp_path / "l1"), str(tmp_path / "l2"), out) is True
    text = out.getvalue()
    assert "<target-a>" in text and "<target-b>" in text


def test_symlink_equal(tmp_path):
    os.symlink("target", tmp_path / "l1")
    os.symlink("target", tmp_path / "l2")
    out = io.StringIO()
    assert diff_symlink(str(tmp_path / "l1"), str(tmp_path / "l2"), out) is False


def test_special_rdev():
    out = io.StringIO()
    s1 = SimpleNamespace(st_rdev=1)
    s2 = SimpleNamespace(st_rdev=2)
    assert diff_special("p", "q", s1, s2, out) is True
    assert "0x00000001" in out.getvalue()
    assert diff_special("p", "q", s1, s1, io.StringIO()) is False


def test_sort_xattr_names_byte_order():
    assert sort_xattr_names(["user.b", "user.a"]) == ["user.a", "user.b"]
    assert sort_xattr_names(["b", "B", "a"]) == ["B", "a", "b"]


def test_read_xattr_names_plain_file(tmp_path):
    _write(tmp_path / "f", b"x")
    names, err = read_xattr_names(str(tmp_path / "f"), io.StringIO())
    assert err is False
    assert names == sort_xattr_names(names)


def test_format_time_round_trip():
    t = 1_500_000_000
    text = format_time(t)
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", text)
    assert int(time.mktime(time.strptime(text, "%Y-%m-%d %H:%M:%S"))) == t


def test_contains_skip_dir():
    assert contains_skip_dir(["a", "~SKIPDIR.FTB"]) is True
    assert contains_skip_dir(["a", "b"]) is False


def test_is_socket(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        sock.bind("s")
        assert is_socket(str(tmp_path), "s") is True
    finally:
        sock.close()
    _write(tmp_path / "f", b"")
    assert is_socket(str(tmp_path), "f") is False
    assert is_socket(str(tmp_path), "missing") is False


def test_is_mount_point_or_empty_dir(tmp_path, monkeypatch):
    (tmp_path / "empty").mkdir()
    (tmp_path / "full").mkdir()
    _write(tmp_path / "full" / "x", b"")
    _write(tmp_path / "file", b"")
    assert is_mount_point_or_empty_dir(str(tmp_path / "empty")) is True
    assert is_mount_point_or_empty_dir(str(tmp_path / "empty") + "/") is True
    assert is_mount_point_or_empty_dir(str(tmp_path / "full")) is False
    assert is_mount_point_or_empty_dir(str(tmp_path / "file")) is False
    monkeypatch.chdir(tmp_path)
    assert is_mount_point_or_empty_dir("empty") is False