"""Operation history tooling — track and query file operations of an AI coding assistant."""

__version__ = "0.1.0"
