[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "zipfsm"
version = "0.1.0"
description = "I/O-free state machines for reading zip archives and decompressing their entries"
requires-python = ">=3.10"
keywords = ["zip", "archive", "zip64", "deflate", "bzip2", "lzma", "zstd", "parser", "sans-io"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving :: Compression",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "chardet",
    "zstandard",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["zipfsm"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
