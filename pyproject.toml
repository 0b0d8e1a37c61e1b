[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "logstore"
version = "0.1.0"
description = "Append-only record store with a sparse index file and revision-based conflict detection"
requires-python = ">=3.10"
dependencies = []
keywords = ["log", "storage", "key-value", "append-only", "index", "revision"]
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
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
logstore-bench = "logstore.bench:main"

[tool.hatch.build.targets.wheel]
packages = ["logstore"]

[tool.pytest.ini_options]
addopts = "-ra"
