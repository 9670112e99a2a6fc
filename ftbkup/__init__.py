"""Fault-tolerant backup helpers: block records, wildcards, ciphers, listings and tree diff."""

__version__ = "0.1.0"