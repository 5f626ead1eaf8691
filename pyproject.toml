[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "raftcore"
version = "0.1.0"
description = "Building blocks of the Raft consensus algorithm: log storage, replication progress and flow control."
requires-python = ">=3.10"
dependencies = []
keywords = ["raft", "consensus", "distributed", "replication", "storage"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["raftcore"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
