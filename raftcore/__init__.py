"""Building blocks of the Raft consensus algorithm: storage, progress and flow control."""

__version__ = "0.1.0"

__all__ = [
    "errors",
    "inflights",
    "messages",
    "progress",
    "state",
    "storage",
    "util",
]