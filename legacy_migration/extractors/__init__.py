"""Readers for the legacy store."""

from .json_reader import ABSENT, SourceReader

__all__ = [
    "ABSENT",
    "SourceReader",
]
