"""Merged download packages for arcade sets."""

from .composer import ArchiveComposer, ArchiveError, parent_of

__all__ = ["ArchiveComposer", "ArchiveError", "parent_of"]
