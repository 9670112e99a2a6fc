# ftbkup

Building blocks for fault-tolerant backups. A saveset is a series of
fixed-size blocks, with XOR recovery blocks written after each group of data
blocks. This package holds the on-disk block and header records, filename
wildcard matching, the block ciphers and hashers used to protect blocks, the
formatting of listing lines, and a command that compares two directory trees.

## Command line

Installing the package gives one command, `ftbkup`. Its first argument names
a subcommand; case does not matter.

```
ftbkup diff <path1> <path2>
ftbkup help
ftbkup version
```

- `diff` walks two trees and prints every difference it finds to standard
  output: file mode and type, modification time, extended attributes, the
  contents of regular files, symlink targets, and device numbers of special
  files. Sockets are ignored. Two directories that are both mount points or
  both empty are treated as equal, and so are two directories that both hold a
  `~SKIPDIR.FTB` marker. The exit status is 0 when the trees match and 2 when
  they do not.
- `help` looks up the user's web browser (the preferred-browser desktop file
  in the home directory, otherwise the `text/html` entry of the system MIME
  cache) and starts it on the HTML manual found next to the running program,
  with `.html` appended to its path. If no browser command can be found it
  says so and exits with status 1.
- `version` prints the installed package version.

Any other subcommand, or none, prints a usage message and exits with status 1.

## Library

- `ftbkup.common`: constants for block sizes, exit statuses, magic numbers
  and header flags; the `Block` and `Header` records, each with `pack()` and
  `unpack()`; the `DataCompareError`, `SimulatedReadError` and
  `EndOfFileError` exceptions (all `OSError`s); `describe_error()`, which gives
  a message for an exception or error number; and `quadswab()`, which reverses
  the bytes of a 64-bit value.
- `ftbkup.wildcard`: `wildcard_match()` understands `*` (not crossing `/`),
  `**` (crossing `/`), `?`, `[...]` sets and ranges negated by `!` or `^`, and
  `\` escapes. `wildcard_length()` gives the length of the literal prefix,
  `is_wildcard_char()` tests one character, and `alpha_sort_key()` orders
  names by unsigned byte value.
- `ftbkup.crypto`: `BackupConfig` holds block geometry, cipher, hasher and
  key; `decode_cipher_args()` reads `-encrypt`/`-decrypt [:<cipher>]
  [:<hasher>] <keyspec>` arguments, where the keyspec is `-` to prompt,
  `@file` to read the first line of a file, or the literal key. It also checks
  blocks with `block_is_valid()` and `block_base_is_valid()`, and gives
  `hash_size()`; `set_default_hasher()` selects MD5. `get_cipher()` and
  `get_hasher()` look names up case-insensitively; `cipher_names()` lists AES,
  Blowfish, CAST128, DES, DES_EDE2, DES_EDE3, RC2 and Rijndael, and
  `hasher_names()` lists RIPEMD160 and SHA1 through SHA512. Also
  `xor_block_data()`, `read_password()` and `cipher_usage()`.
- `ftbkup.diff`: `diff_file()`, `diff_regular()`, `diff_directory()`,
  `diff_symlink()` and `diff_special()` return `True` when the paths differ
  and write their report to the given text stream (standard output by
  default), with helpers such as `read_xattr_names()` and `format_time()`.
- `ftbkup.listing`: `format_header()` makes one `ls -l`-style listing line
  for a `Header`; `file_type_char()` and `protection_string()` give its parts;
  `sanitize_date_str()` fills a `yyyy-mm-dd hh:mm:ss` template from a partial
  date; `read_line()` reads one newline-terminated line.

Example:

```python
from ftbkup.wildcard import wildcard_match

wildcard_match("/home/**.txt", "/home/user/notes/a.txt")   # True
wildcard_match("/home/*.txt", "/home/user/notes/a.txt")    # False
```

## What it does not do

The package does not write or read savesets. There are no commands to make a
backup, restore or compare files from a saveset, list a saveset, verify its
XOR blocks, dump a backup record file, or query a history database, and there
is no file-system layer for restoring files.