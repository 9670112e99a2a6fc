[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ftbkup"
version = "0.1.0"
description = "Fault-tolerant backup helpers: saveset block records, wildcards, block ciphers and directory tree diff"
requires-python = ">=3.10"
dependencies = [
    "pycryptodome",
]
keywords = ["backup", "saveset", "xor", "wildcard", "diff", "archive"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving :: Backup",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
ftbkup = "ftbkup.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["ftbkup"]

[tool.pytest.ini_options]
addopts = "-ra"
