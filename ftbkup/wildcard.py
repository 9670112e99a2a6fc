"""Filename wildcard matching and byte-order sorting."""

from __future__ import annotations

import os

_WILDCARD_CHARS = frozenset("*?[")


def is_wildcard_char(c: str) -> bool:
    """True if c is one of the wildcard characters '*', '?' or '['."""
    return c in _WILDCARD_CHARS and len(c) == 1


def wildcard_length(wild: str) -> int:
    """Number of leading characters of wild that are literal."""
    for i, wc in enumerate(wild):
        if wc == "\\" or is_wildcard_char(wc):
            return i
    return len(wild)


def wildcard_match(wild: str, name: str) -> bool:
    """Match name against wild.

    '*' matches any run of characters except '/', '**' also matches '/',
    '?' matches one character, '[...]' a set or range ('!' or '^' negates),
    and '\\' quotes the next character.
    """
    i = j = 0
    wcend = len(wild)
    nmend = len(name)

    while i < wcend:
        wc = wild[i]

        if wc == "*":
            supa = False
            i += 1
            while i < wcend and wild[i] == "*":
                supa = True
                i += 1
            rest = wild[i:]

            # no further '*', '[' or '\\': the tail must match the end of name
            if "*" not in rest and "[" not in rest and "\\" not in rest:
                k = nmend - (wcend - i)
                if j > k:
                    return False
                if not supa and "/" in name[j:k]:
                    return False
                return wildcard_match(rest, name[k:])

            while not wildcard_match(rest, name[j:]):
                j += 1
                if j >= nmend:
                    return False
                if not supa and name[j - 1] == "/":
                    return False
            return True

        if j >= nmend:
            return False
        nc = name[j]

        if wc == "[":
            match = False
            notflag = False
            i += 1
            if i >= wcend:
                break
            wc = wild[i]
            if wc in ("!", "^"):
                notflag = True
                i += 1
                if i >= wcend:
                    break
                wc = wild[i]
            while True:
                if wc == "\\":
                    i += 1
                    if i >= wcend:
                        break
                    wc = wild[i]
                if i + 2 < wcend and wild[i + 1] == "-":
                    i += 2
                    wc2 = wild[i]
                    if wc2 == "\\":
                        i += 1
                        if i >= wcend:
                            break
                        wc2 = wild[i]
                    match |= wc <= nc <= wc2
                else:
                    match |= nc == wc
                i += 1
                if i >= wcend:
                    break
                wc = wild[i]
                if wc == "]":
                    break
            if (not match) != notflag:
                return False
        elif wc != "?":
            if wc == "\\":
                i += 1
                if i >= wcend:
                    break
                wc = wild[i]
            if nc != wc:
                return False

        i += 1
        j += 1

    return j >= nmend


def alpha_sort_key(name: str | bytes) -> bytes:
    """Sort key ordering names by unsigned bytes, independent of locale."""
    if isinstance(name, bytes):
        return name
    return os.fsencode(name)