[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kanekfs"
version = "0.1.0"
description = "On-disk structures, block bitmaps and superblock verification for the Kanek graph file system"
requires-python = ">=3.10"
dependencies = []
keywords = ["filesystem", "bitmap", "superblock", "extents", "graph"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
kfs-verify = "kanekfs.superblock:main"

[tool.hatch.build.targets.wheel]
packages = ["kanekfs"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
