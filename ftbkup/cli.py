"""Command-line entry point: tree comparison, help browser and version."""

from __future__ import annotations

import errno
import os
import subprocess
import sys
from importlib.metadata import PackageNotFoundError, version

from .common import EX_CMD, EX_OK, EX_SSIO, describe_error
from .diff import diff_file
from .listing import read_line

APPLICATIONS_DIR = "/usr/share/applications"
PREFERRED_BROWSER = ".local/share/applications/preferred-web-browser.desktop"

_USAGE = (
    "usage: ftbackup diff ...\n"
    "       ftbackup help\n"
    "       ftbackup version\n"
)


def _warn(message: str) -> None:
    print(f"ftbackup: {message}", file=sys.stderr)


def _find_line(file, prefix: str) -> str | None:
    """First line starting with prefix (case-insensitive), or None."""
    size = len(prefix)
    while True:
        line = read_line(file)
        if line is None:
            return None
        if line[:size].lower() == prefix:
            return line


def _open_text(path: str):
    return open(path, encoding="utf-8", errors="replace")


def _desktop_from_mime_cache():
    """Open the desktop file of the application that reads text/html."""
    cache = os.path.join(APPLICATIONS_DIR, "mimeinfo.cache")
    try:
        cachefile = _open_text(cache)
    except OSError as exc:
        raise LookupError(f"fopen({cache}) error: {describe_error(exc)}") from exc
    with cachefile:
        line = _find_line(cachefile, "text/html=")
    if line is None:
        raise LookupError(f"can't find text/html= in {cache}")

    entries = [entry for entry in line[10:].split(";") if entry]
    if not entries:
        raise LookupError(f"can't find text/html= in {cache}")
    for index, entry in enumerate(entries):
        path = os.path.join(APPLICATIONS_DIR, entry)
        last = index == len(entries) - 1
        try:
            return path, _open_text(path)
        except OSError as exc:
            message = f"fopen({path}) error: {describe_error(exc)}"
            if last:
                raise LookupError(message) from exc
            if exc.errno != errno.ENOENT:
                _warn(message)
    raise LookupError(f"can't find text/html= in {cache}")


def find_browser_command(html: str) -> str:
    """Shell command that opens the file html in the user's web browser.

    Looks at the preferred-browser desktop file in the home directory, then
    at the text/html entry of the system MIME cache.  Raises LookupError
    with a message when no usable command is found.
    """
    name = None
    desktop = None
    home = os.environ.get("HOME")
    if home is not None:
        name = os.path.join(home, PREFERRED_BROWSER)
        try:
            desktop = _open_text(name)
        except OSError:
            desktop = None
    if desktop is None:
        name, desktop = _desktop_from_mime_cache()

    with desktop:
        exec_line = _find_line(desktop, "exec=")
    if exec_line is None:
        raise LookupError(f"can't find exec= in {name}")

    command = exec_line[5:]
    # the tag and everything after it is replaced by the file reference
    for tags, prefix in ((("%u", "%U"), "file://"), (("%f", "%F"), "")):
        for tag in tags:
            pos = command.find(tag)
            if pos >= 0:
                return command[:pos] + prefix + html
    raise LookupError(f"can't find %f,%F,%u,%U tag in {command} of {name}")


def cmd_help(argv) -> int:
    """Open the HTML manual in a web browser."""
    html = os.path.realpath(sys.argv[0] or "ftbackup") + ".html"
    try:
        command = find_browser_command(html)
    except LookupError as exc:
        _warn(str(exc))
        _warn("open ftbackup.html in web browser")
        return 1
    _warn(f"spawning {command}")
    try:
        subprocess.run(command, shell=True, input=b"", check=False)
    except OSError as exc:
        _warn(f"popen({command}) error: {describe_error(exc)}")
        return 1
    return 0


def cmd_diff(argv) -> int:
    """Compare two directory trees; argv is ['diff', path1, path2]."""
    if len(argv) != 3:
        print("usage: ftbackup diff <path1> <path2>", file=sys.stderr)
        return EX_CMD
    rc = EX_SSIO if diff_file(argv[1], argv[2]) else EX_OK
    if rc != EX_OK:
        print()
    return rc


def cmd_version(argv) -> int:
    """Print the package version."""
    try:
        text = version("ftbkup")
    except PackageNotFoundError:
        text = "unknown"
    print(text)
    return 0


_COMMANDS = {
    "diff": cmd_diff,
    "help": cmd_help,
    "version": cmd_version,
}


def main(argv=None) -> int:
    """Run the command named by the first argument and return its exit code."""
    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)
    if argv:
        command = _COMMANDS.get(argv[0].lower())
        if command is not None:
            return command(argv)
        _warn(f"unknown command {argv[0]}")
    sys.stderr.write(_USAGE)
    return EX_CMD


if __name__ == "__main__":
    sys.exit(main())