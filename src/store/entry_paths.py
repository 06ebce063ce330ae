"""Database path layout helpers.

Entries live at ``<root>/<type name>/<entry name>.<extension>``. These
helpers validate every segment so no name can escape the root.
"""

from __future__ import annotations

from pathlib import Path

from store.entry import validate_name


def entry_file_name(name: str, extension: str) -> str:
    """Return the file name of an entry, without directories."""
    validate_name(name)
    if not extension:
        return name
    return f"{name}.{extension}"


def type_dir(root: Path, type_name: str) -> Path:
    """Return the folder holding all entries of one type."""
    return root / validate_name(type_name, kind="type")


def entry_path(root: Path, type_name: str, name: str, extension: str) -> Path:
    """Return the full path of an entry file.

    Args:
        root: Database root directory.
        type_name: Entry type name.
        name: Entry name.
        extension: Format file extension; empty for none.

    Returns:
        Path of the entry file.

    Raises:
        InvalidNameError: If a segment is not a safe path segment.
    """
    return type_dir(root, type_name) / entry_file_name(name, extension)


def adjusted_name(name: str, counter: int, separator: str) -> str:
    """Return the collision-free variant of a name for a counter value."""
    return f"{name}{separator}{counter}"
